"""
history_summary.py - Grouping and time bucketing of commands.

Both engines are pure functions over a list of `Command`s:

- `group_by_context` nests commands as context -> branch -> commands, keeping input order.
- `bucket_by` splits commands into hourly, daily or weekly buckets keyed by an integer id
  whose numeric order is chronological order.
"""

from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path

from history_store import Command

# ============================================================================
# GROUPING
# ============================================================================

NO_BRANCH = "No branch"


@dataclass(frozen=True, order=True)
class ContextKey:
    """A (working directory, repository) pair. Repository is "" outside git."""

    working_dir: str
    git_repo: str = ""


GroupedCommands = dict[ContextKey, dict[str, list[Command]]]


def branch_key(command: Command) -> str:
    return command.git_branch or NO_BRANCH


def group_by_context(commands: list[Command]) -> GroupedCommands:
    """→ Groups commands by context and then by branch, preserving input order"""
    grouped: GroupedCommands = {}
    for command in commands:
        key = ContextKey(command.working_dir, command.git_repo or "")
        grouped.setdefault(key, {}).setdefault(branch_key(command), []).append(command)
    return grouped


@dataclass(frozen=True)
class ContextItem:
    """One summary row: a context on one branch, with its commands."""

    key: ContextKey
    branch: str
    commands: tuple[Command, ...]

    @property
    def command_count(self) -> int:
        return len(self.commands)

    def matches(self, key: ContextKey | None, branch: str | None) -> bool:
        return self.key == key and self.branch == branch


def context_items(grouped: GroupedCommands) -> list[ContextItem]:
    """→ Flattens a grouping into summary rows, busiest first"""
    items = [
        ContextItem(key=key, branch=branch, commands=tuple(cmds))
        for key, branches in grouped.items()
        for branch, cmds in branches.items()
    ]
    items.sort(key=lambda item: (-item.command_count, item.key, item.branch))
    return items


# ============================================================================
# TIME BUCKETING
# ============================================================================


class BucketSize(Enum):
    HOURLY = "hour"
    DAILY = "day"
    WEEKLY = "week"


def local_midnight(day: date) -> int:
    return int(datetime(day.year, day.month, day.day).timestamp())


def week_start(day: date) -> date:
    """Monday of the ISO week containing `day` (Sunday is day 7)."""
    return day - timedelta(days=day.isoweekday() - 1)


def bucket_id_for(timestamp: int, bucket_size: BucketSize) -> int:
    moment = datetime.fromtimestamp(timestamp)
    if bucket_size is BucketSize.HOURLY:
        return moment.hour
    if bucket_size is BucketSize.DAILY:
        return local_midnight(moment.date())
    return local_midnight(week_start(moment.date()))


def format_hour(hour: int) -> str:
    """→ 0 -> 12am, 8 -> 8am, 12 -> 12pm, 14 -> 2pm"""
    if hour == 0:
        return "12am"
    if hour < 12:
        return f"{hour}am"
    if hour == 12:
        return "12pm"
    return f"{hour - 12}pm"


@dataclass
class Bucket:
    bucket_size: BucketSize
    bucket_id: int
    commands: list[Command] = field(default_factory=list)
    first_time: int = 0
    last_time: int = 0
    command_counts: Counter[str] = field(default_factory=Counter)

    def add(self, command: Command) -> None:
        if not self.commands:
            self.first_time = self.last_time = command.timestamp
        self.commands.append(command)
        self.first_time = min(self.first_time, command.timestamp)
        self.last_time = max(self.last_time, command.timestamp)
        self.command_counts[command.command_text] += 1

    def format_label(self) -> str:
        if self.bucket_size is BucketSize.HOURLY:
            return format_hour(self.bucket_id)
        start = datetime.fromtimestamp(self.bucket_id)
        if self.bucket_size is BucketSize.DAILY:
            return f"{start:%a %b} {start.day}"
        return f"Week of {start:%b} {start.day}"


def bucket_by(commands: list[Command], bucket_size: BucketSize) -> dict[int, Bucket]:
    """→ Every command lands in exactly one bucket; buckets keep input order"""
    buckets: dict[int, Bucket] = {}
    for command in commands:
        bucket_id = bucket_id_for(command.timestamp, bucket_size)
        if bucket_id not in buckets:
            buckets[bucket_id] = Bucket(bucket_size=bucket_size, bucket_id=bucket_id)
        buckets[bucket_id].add(command)
    return buckets


def get_ordered_buckets(buckets: dict[int, Bucket]) -> list[int]:
    return sorted(buckets)


# ============================================================================
# DISPLAY NAMES
# ============================================================================


def tilde_path(path: str) -> str:
    """→ Abbreviates paths under the home directory with ~"""
    home = Path.home()
    try:
        relative = Path(os.path.abspath(path)).relative_to(home)
    except ValueError:
        return path
    return "~" if str(relative) == "." else f"~/{relative.as_posix()}"


def format_dir(path: str) -> str:
    # The home directory itself reads better in full than as a bare "~"
    if os.path.abspath(path) == str(Path.home()):
        return path
    return tilde_path(path)


def format_context_name(key: ContextKey | None, branch: str | None) -> str:
    if key is None:
        return ""
    name = format_dir(key.working_dir)
    if key.git_repo and branch and branch != NO_BRANCH:
        return f"{name}:{branch}"
    return name
