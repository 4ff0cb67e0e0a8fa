import pytest

from history_filters import (
    DisplayMode,
    apply_filters,
    filter_by_mode,
    filter_by_substring,
    filtered_command_count,
)


@pytest.fixture
def commands(make_command):
    texts = ["git status", "git push", "git status", "ls", "make"]
    return [make_command(i, 1_770_000_000 + i, text) for i, text in enumerate(texts, 1)]


def texts(commands):
    return [c.command_text for c in commands]


class TestSubstring:
    def test_empty_filter_keeps_everything(self, commands):
        assert filter_by_substring(commands, "") == commands

    def test_substring_is_case_sensitive(self, commands):
        assert texts(filter_by_substring(commands, "git")) == ["git status", "git push", "git status"]
        assert filter_by_substring(commands, "GIT") == []


class TestDisplayMode:
    def test_all_passes_everything(self, commands):
        assert filter_by_mode(commands, DisplayMode.ALL) == commands

    def test_unique_keeps_single_occurrences(self, commands):
        assert texts(filter_by_mode(commands, DisplayMode.UNIQUE)) == ["git push", "ls", "make"]

    def test_unique_is_computed_after_substring(self, commands):
        # "git push" is unique among git commands; "ls" is filtered out first
        assert texts(apply_filters(commands, DisplayMode.UNIQUE, "git")) == ["git push"]


class TestFilteredCount:
    @pytest.mark.parametrize(
        "mode, text, expected",
        [
            (DisplayMode.ALL, "", 5),
            (DisplayMode.UNIQUE, "", 3),
            (DisplayMode.ALL, "git", 3),
            (DisplayMode.UNIQUE, "git", 1),
            (DisplayMode.UNIQUE, "status", 0),
            (DisplayMode.ALL, "nope", 0),
        ],
    )
    def test_matches_materialized_filter(self, commands, mode, text, expected):
        assert filtered_command_count(commands, mode, text) == expected
        assert len(apply_filters(commands, mode, text)) == expected


@pytest.mark.parametrize("text", ["", "git", "s", "zzz"])
def test_unique_never_exceeds_all(commands, text):
    unique = filtered_command_count(commands, DisplayMode.UNIQUE, text)
    everything = filtered_command_count(commands, DisplayMode.ALL, text)
    assert unique <= everything <= len(commands)
