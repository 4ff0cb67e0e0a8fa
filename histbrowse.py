#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.11"
# dependencies = ["rich", "textual", "pygments"]
# ///
"""
histbrowse.py - Interactive browser for recorded shell history

Browses a shy-style SQLite history database one day, week or month at a time.

Views
-----
1. Summary: one row per working directory and git branch, busiest first.
2. Context detail: that row's commands, bucketed by hour (day), day (week) or week (month).
3. Command detail: one command's metadata and the commands around it in the same shell session.
4. Help: the keys of the view it was opened from.

Architecture
------------
The app is a thin host around a pure reducer (`history_nav.update`). Every key press,
resize and finished load becomes an event; the reducer returns a new model plus effects.
The host runs loads on worker threads, copies text to the clipboard, quits, and re-renders
the whole screen from the model (`history_render.render_screen`) after each event.

Database
--------
Resolved in order: --db, $HISTBROWSE_DB, $XDG_DATA_HOME/shy/history.db,
~/.local/share/shy/history.db. The database is opened read-only.

Usage
-----
    uv run histbrowse.py --period week --date 2026-02-02
"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Mapping

from rich.console import Console
from rich.theme import Theme
from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.widgets import Static

from history_nav import (
    Effect,
    Event,
    FocusChanged,
    KeyPressed,
    LoadFailed,
    Model,
    Quit,
    Resized,
    Yank,
    init,
    is_latest,
    new_model,
    update,
)
from history_periods import Period
from history_render import first_line, render_screen
from history_runner import is_load, run_effect
from history_store import CommandStore, SQLiteCommandStore

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

CUSTOM_THEME = Theme({
    "title": "bold #C678DD",
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})

console = Console(stderr=True, theme=CUSTOM_THEME)

DB_ENV_VAR = "HISTBROWSE_DB"
DB_RELATIVE_PATH = Path("shy") / "history.db"


class Config:
    """Where the history lives"""

    def __init__(self, db: Path | str | None = None, environ: Mapping[str, str] | None = None):
        self._db = db
        self._environ = os.environ if environ is None else environ

    @property
    def data_home(self) -> Path:
        """→ $XDG_DATA_HOME, or ~/.local/share when unset"""
        xdg = self._environ.get("XDG_DATA_HOME")
        if xdg:
            return Path(xdg)
        return Path.home() / ".local" / "share"

    @property
    def db_path(self) -> Path:
        """→ History database path, first match wins"""
        if self._db:
            return Path(self._db).expanduser()
        if env_path := self._environ.get(DB_ENV_VAR):
            return Path(env_path).expanduser()
        return self.data_home / DB_RELATIVE_PATH


# ============================================================================
# UTILITIES
# ============================================================================


def _console_print(string="", *args, **kwargs) -> None:
    """→ Safe console printing with fallback"""
    try:
        console.print(string, *args, **kwargs)
    except Exception:
        kwargs_clean = {k: v for k, v in kwargs.items() if k in ["sep", "end"]}
        print(string, *args, file=sys.stderr, **kwargs_clean)


def parse_date(value: str, today: date | None = None) -> date:
    """→ 'today', 'yesterday' or YYYY-MM-DD"""
    today = today or date.today()
    if value == "today":
        return today
    if value == "yesterday":
        return today - timedelta(days=1)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid date '{value}' (expected today, yesterday or YYYY-MM-DD)"
        ) from None


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="histbrowse",
        description="Browse recorded shell history by day, week or month",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    ap.add_argument(
        "--db",
        metavar="PATH",
        type=Path,
        help=f"History database (default: ${DB_ENV_VAR} or $XDG_DATA_HOME/{DB_RELATIVE_PATH})",
    )
    ap.add_argument(
        "--date",
        type=parse_date,
        default=None,
        help="Starting date: today, yesterday or YYYY-MM-DD (default: yesterday)",
    )
    ap.add_argument(
        "--period",
        choices=[p.value for p in Period],
        default=Period.DAY.value,
        help="Starting period (default: day)",
    )
    return ap


# ============================================================================
# TEXTUAL APP
# ============================================================================


class LoadCompleted(Message):
    """A worker finished a load; carries the reducer event it produced."""

    def __init__(self, event: Event) -> None:
        super().__init__()
        self.event = event


def key_name(event: events.Key) -> str:
    """→ The reducer's name for a key: the typed character when printable, else textual's key"""
    if event.key == "space":
        return "space"
    if event.is_printable and event.character:
        return event.character
    return event.key


class HistoryBrowserApp(App[None]):
    CSS = """
    Screen {
        overflow: hidden;
    }
    #screen {
        width: 100%;
        height: 100%;
    }
    """

    TITLE = "histbrowse"
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(self, store: CommandStore, model: Model, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.store = store
        self.nav_model = model

    def compose(self) -> ComposeResult:
        yield Static(id="screen")

    def on_mount(self) -> None:
        self.nav_model, effects = init(self.nav_model)
        self.nav_model, more = update(self.nav_model, Resized(self.size.width, self.size.height))
        self.run_effects(effects + more)
        self.refresh_screen()

    def apply(self, event: Event) -> None:
        self.nav_model, effects = update(self.nav_model, event)
        self.run_effects(effects)
        self.refresh_screen()

    def refresh_screen(self) -> None:
        self.query_one("#screen", Static).update(render_screen(self.nav_model))

    def run_effects(self, effects: list[Effect]) -> None:
        for effect in effects:
            if is_load(effect):
                self.log(f"load {type(effect).__name__} generation={effect.generation}")
                self.load(effect)
            elif isinstance(effect, Yank):
                self.copy_to_clipboard(effect.text)
                self.notify(first_line(effect.text), title="Copied to clipboard")
            elif isinstance(effect, Quit):
                self.exit()

    @work(thread=True)
    def load(self, effect: Effect) -> None:
        result = run_effect(effect, self.store)
        if result is not None:
            self.post_message(LoadCompleted(result))

    def on_load_completed(self, message: LoadCompleted) -> None:
        event = message.event
        if isinstance(event, LoadFailed):
            if not is_latest(self.nav_model, event.kind, event.generation):
                self.log(f"dropped stale {event.kind.value} failure: {event.message}")
                return
            self.log.error(f"{event.kind.value} load failed: {event.message}")
            self.notify(event.message, title="History unavailable", severity="error")
        self.apply(event)

    def on_key(self, event: events.Key) -> None:
        event.stop()
        self.apply(KeyPressed(key_name(event)))

    def on_resize(self, event: events.Resize) -> None:
        self.apply(Resized(event.size.width, event.size.height))

    def on_app_focus(self, event: events.AppFocus) -> None:
        self.apply(FocusChanged(True))

    def on_app_blur(self, event: events.AppBlur) -> None:
        self.apply(FocusChanged(False))


# ============================================================================
# MAIN
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """→ Main: resolves the database, then hands the terminal to the browser"""
    args = build_parser().parse_args(argv)
    db_path = Config(db=args.db).db_path
    if not db_path.is_file():
        _console_print(f"[error]Error: History database not found at '{db_path}'[/error]")
        return 1

    model = new_model(start=args.date, period=Period(args.period))
    HistoryBrowserApp(SQLiteCommandStore(db_path), model).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
