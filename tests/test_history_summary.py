import random
from datetime import date, datetime

import pytest

from history_summary import (
    NO_BRANCH,
    BucketSize,
    ContextKey,
    bucket_by,
    bucket_id_for,
    context_items,
    format_context_name,
    format_hour,
    get_ordered_buckets,
    group_by_context,
    local_midnight,
    tilde_path,
    week_start,
)


def at(*args) -> int:
    return int(datetime(*args).timestamp())


class TestGroupByContext:
    def test_groups_by_directory_repo_and_branch(self, make_command):
        commands = [
            make_command(1, at(2026, 2, 4, 9), "make", "/a", git_repo="r", git_branch="main"),
            make_command(2, at(2026, 2, 4, 10), "make", "/a", git_repo="r", git_branch="dev"),
            make_command(3, at(2026, 2, 4, 11), "ls", "/b"),
            make_command(4, at(2026, 2, 4, 12), "make test", "/a", git_repo="r", git_branch="main"),
        ]
        grouped = group_by_context(commands)

        assert set(grouped) == {ContextKey("/a", "r"), ContextKey("/b", "")}
        assert [c.id for c in grouped[ContextKey("/a", "r")]["main"]] == [1, 4]
        assert [c.id for c in grouped[ContextKey("/a", "r")]["dev"]] == [2]

    def test_missing_branch_uses_sentinel(self, make_command):
        grouped = group_by_context([make_command(1, at(2026, 2, 4, 9), "ls", "/b")])
        assert list(grouped[ContextKey("/b")]) == [NO_BRANCH]

    def test_empty_branch_string_uses_sentinel(self, make_command):
        command = make_command(1, at(2026, 2, 4, 9), "ls", "/a", git_repo="r", git_branch="")
        assert list(group_by_context([command])[ContextKey("/a", "r")]) == [NO_BRANCH]

    def test_empty_input(self):
        assert group_by_context([]) == {}


class TestContextItems:
    def test_busiest_first_with_deterministic_ties(self, make_command):
        commands = [
            make_command(1, at(2026, 2, 4, 9), "a", "/z"),
            make_command(2, at(2026, 2, 4, 9), "b", "/m"),
            make_command(3, at(2026, 2, 4, 9), "c", "/c"),
            make_command(4, at(2026, 2, 4, 9), "d", "/c"),
        ]
        items = context_items(group_by_context(commands))

        assert [item.key.working_dir for item in items] == ["/c", "/m", "/z"]
        assert [item.command_count for item in items] == [2, 1, 1]

    def test_item_matches_key_and_branch(self, make_command):
        item = context_items(group_by_context([make_command(1, at(2026, 2, 4, 9), "a", "/z")]))[0]
        assert item.matches(ContextKey("/z"), NO_BRANCH)
        assert not item.matches(ContextKey("/z"), "main")
        assert not item.matches(None, None)


class TestBucketing:
    def test_hourly_buckets_by_local_hour(self, make_command):
        commands = [
            make_command(1, at(2026, 2, 4, 9, 15)),
            make_command(2, at(2026, 2, 4, 14, 0)),
            make_command(3, at(2026, 2, 4, 9, 50)),
        ]
        buckets = bucket_by(commands, BucketSize.HOURLY)

        assert get_ordered_buckets(buckets) == [9, 14]
        assert [c.id for c in buckets[9].commands] == [1, 3]
        assert buckets[9].format_label() == "9am"
        assert buckets[14].format_label() == "2pm"
        assert buckets[9].first_time == at(2026, 2, 4, 9, 15)
        assert buckets[9].last_time == at(2026, 2, 4, 9, 50)

    def test_every_command_lands_in_exactly_one_bucket(self, history):
        for size in BucketSize:
            buckets = bucket_by(history, size)
            assert sum(len(b.commands) for b in buckets.values()) == len(history)

    def test_daily_bucket_id_is_local_midnight(self, make_command):
        buckets = bucket_by([make_command(1, at(2026, 2, 2, 23, 59))], BucketSize.DAILY)
        (bucket_id,) = buckets
        assert bucket_id == local_midnight(date(2026, 2, 2))
        assert buckets[bucket_id].format_label() == "Mon Feb 2"

    def test_weekly_bucket_starts_on_monday(self, make_command):
        # Sunday belongs to the week that began the previous Monday
        sunday = make_command(1, at(2026, 2, 8, 20, 0))
        monday = make_command(2, at(2026, 2, 9, 8, 0))
        buckets = bucket_by([sunday, monday], BucketSize.WEEKLY)

        ordered = get_ordered_buckets(buckets)
        assert ordered == [local_midnight(date(2026, 2, 2)), local_midnight(date(2026, 2, 9))]
        assert buckets[ordered[0]].format_label() == "Week of Feb 2"
        assert buckets[ordered[1]].format_label() == "Week of Feb 9"

    def test_bucket_ids_sort_chronologically(self, history):
        ordered = get_ordered_buckets(bucket_by(history, BucketSize.DAILY))
        assert ordered == sorted(ordered)
        assert len(ordered) == 3

    def test_duplicate_counts(self, make_command):
        commands = [make_command(i, at(2026, 2, 4, 9, i), text) for i, text in enumerate("aab")]
        bucket = bucket_by(commands, BucketSize.HOURLY)[9]
        assert bucket.command_counts == {"a": 2, "b": 1}

    def test_week_start(self):
        assert week_start(date(2026, 2, 8)) == date(2026, 2, 2)
        assert week_start(date(2026, 2, 2)) == date(2026, 2, 2)
        assert bucket_id_for(at(2026, 2, 4, 12), BucketSize.WEEKLY) == local_midnight(date(2026, 2, 2))


@pytest.mark.parametrize(
    "hour, label",
    [(0, "12am"), (1, "1am"), (8, "8am"), (11, "11am"), (12, "12pm"), (14, "2pm"), (23, "11pm")],
)
def test_format_hour(hour, label):
    assert format_hour(hour) == label


class TestContextNames:
    # $HOME is /home/tester for every test
    def test_tilde_path(self):
        assert tilde_path("/home/tester/src/app") == "~/src/app"
        assert tilde_path("/opt/tools") == "/opt/tools"

    def test_repo_with_branch(self):
        assert format_context_name(ContextKey("/home/tester/src/app", "r"), "main") == "~/src/app:main"

    def test_no_repo_or_no_branch(self):
        assert format_context_name(ContextKey("/opt/tools"), NO_BRANCH) == "/opt/tools"
        assert format_context_name(ContextKey("/opt/tools", "r"), NO_BRANCH) == "/opt/tools"

    def test_home_directory_stays_full(self):
        assert format_context_name(ContextKey("/home/tester"), NO_BRANCH) == "/home/tester"


def _membership(grouped):
    return {
        (key, branch): sorted(c.id for c in commands)
        for key, branches in grouped.items()
        for branch, commands in branches.items()
    }


@pytest.mark.parametrize("seed", range(5))
def test_grouping_ignores_input_order(history, seed):
    shuffled = list(history)
    random.Random(seed).shuffle(shuffled)
    assert _membership(group_by_context(shuffled)) == _membership(group_by_context(history))
    assert _membership(group_by_context(history[::-1])) == _membership(group_by_context(history))


def test_hourly_counts_repeated_text(make_command):
    commands = [
        make_command(1, at(2026, 2, 4, 9, 1), "go build"),
        make_command(2, at(2026, 2, 4, 9, 2), "go build"),
        make_command(3, at(2026, 2, 4, 9, 3), "go test"),
    ]
    buckets = bucket_by(commands, BucketSize.HOURLY)
    assert list(buckets) == [9]
    assert buckets[9].command_counts == {"go build": 2, "go test": 1}
