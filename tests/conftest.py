from datetime import datetime

import pytest

from history_store import Command, MemoryCommandStore

# Thursday; yesterday is Wednesday 2026-02-04
NOW = datetime(2026, 2, 5, 12, 0)

API_DIR = "/work/api"
API_REPO = "git@example.com:team/api.git"
WEB_DIR = "/work/web"


def at(*args) -> int:
    return int(datetime(*args).timestamp())


def build_command(id, timestamp, text="ls", working_dir=API_DIR, exit_status=0, **kwargs) -> Command:
    return Command(
        id=id,
        timestamp=timestamp,
        exit_status=exit_status,
        command_text=text,
        working_dir=working_dir,
        **kwargs,
    )


@pytest.fixture(autouse=True)
def home(monkeypatch):
    # Context names abbreviate paths under $HOME
    monkeypatch.setenv("HOME", "/home/tester")


@pytest.fixture
def now():
    return lambda: NOW


@pytest.fixture
def make_command():
    return build_command


@pytest.fixture
def history():
    """
    Wed Feb 4:  /work/api on main: 3 commands (9am x2, 10am x1), session zsh:100
                /work/web (no repo): 2 commands, session zsh:200
    Tue Feb 3:  /work/web: 1 command
    Thu Feb 5:  /work/api on main: 1 command, session zsh:300
    """
    api = dict(working_dir=API_DIR, git_repo=API_REPO, git_branch="main", source_app="zsh")
    web = dict(working_dir=WEB_DIR, source_app="zsh")
    return [
        build_command(1, at(2026, 2, 4, 9, 15), "git status", source_pid=100, duration=850, **api),
        build_command(2, at(2026, 2, 4, 9, 22), "go test ./...", source_pid=100, exit_status=1, **api),
        build_command(3, at(2026, 2, 4, 10, 5), "git status", source_pid=100, **api),
        build_command(4, at(2026, 2, 4, 14, 0), "npm run build", source_pid=200, **web),
        build_command(5, at(2026, 2, 4, 14, 30), "npm test", source_pid=200, **web),
        build_command(6, at(2026, 2, 3, 16, 45), "npm install", source_pid=200, **web),
        build_command(7, at(2026, 2, 5, 8, 0), "git pull", source_pid=300, **api),
    ]


@pytest.fixture
def store(history):
    return MemoryCommandStore(history)
