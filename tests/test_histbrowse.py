import argparse
import asyncio
from datetime import date
from pathlib import Path

import pytest
from textual import events

from histbrowse import Config, HistoryBrowserApp, build_parser, key_name, main, parse_date
from history_nav import ViewState, new_model
from history_periods import Period

TODAY = date(2026, 2, 5)


class TestConfig:
    def test_argument_wins(self):
        config = Config(db="/tmp/a.db", environ={"HISTBROWSE_DB": "/tmp/b.db"})
        assert config.db_path == Path("/tmp/a.db")

    def test_environment_variable(self):
        config = Config(environ={"HISTBROWSE_DB": "/tmp/b.db", "XDG_DATA_HOME": "/xdg"})
        assert config.db_path == Path("/tmp/b.db")

    def test_xdg_data_home(self):
        assert Config(environ={"XDG_DATA_HOME": "/xdg"}).db_path == Path("/xdg/shy/history.db")

    def test_default_location(self):
        assert Config(environ={}).db_path == Path("/home/tester/.local/share/shy/history.db")


class TestParseDate:
    def test_relative_names(self):
        assert parse_date("today", TODAY) == TODAY
        assert parse_date("yesterday", TODAY) == date(2026, 2, 4)

    def test_iso_date(self):
        assert parse_date("2025-12-31", TODAY) == date(2025, 12, 31)

    def test_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_date("last tuesday", TODAY)


class TestArguments:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.db is None
        assert args.date is None
        assert args.period == "day"

    def test_all_options(self):
        args = build_parser().parse_args(["--db", "h.db", "--date", "2026-01-02", "--period", "month"])
        assert args.db == Path("h.db")
        assert args.date == date(2026, 1, 2)
        assert Period(args.period) is Period.MONTH

    def test_rejects_unknown_period(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--period", "year"])

    def test_missing_database_exits_with_error(self, tmp_path):
        assert main(["--db", str(tmp_path / "missing.db")]) == 1


class TestKeyNames:
    @pytest.mark.parametrize(
        "key, character, expected",
        [
            ("j", "j", "j"),
            ("H", "H", "H"),
            ("minus", "-", "-"),
            ("question_mark", "?", "?"),
            ("right_square_bracket", "]", "]"),
            ("space", " ", "space"),
            ("enter", "\r", "enter"),
            ("escape", "\x1b", "escape"),
            ("ctrl+c", "\x03", "ctrl+c"),
            ("down", None, "down"),
        ],
    )
    def test_key_name(self, key, character, expected):
        assert key_name(events.Key(key, character)) == expected


def test_app_browses_history(store, now):
    async def scenario():
        app = HistoryBrowserApp(store, new_model(now=now))
        async with app.run_test(size=(100, 30)) as pilot:
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert [item.key.working_dir for item in app.nav_model.contexts] == [
                "/work/api",
                "/work/web",
            ]
            assert app.nav_model.height == 30

            await pilot.press("enter")
            assert app.nav_model.view is ViewState.CONTEXT_DETAIL
            assert len(app.nav_model.detail_commands) == 3

            await pilot.press("enter")
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert app.nav_model.view is ViewState.COMMAND_DETAIL

            await pilot.press("minus", "minus")
            assert app.nav_model.view is ViewState.SUMMARY

            await pilot.press("q")

    asyncio.run(scenario())
