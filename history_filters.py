"""
history_filters.py - Substring filter and display-mode filter.

The two compose in a fixed order: substring first, then display mode computed over
what the substring filter kept.
"""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Sequence

from history_store import Command


class DisplayMode(Enum):
    ALL = "all"
    UNIQUE = "unique"


def filter_by_substring(commands: Sequence[Command], text: str) -> list[Command]:
    """→ Case-sensitive substring match; an empty filter keeps everything"""
    if not text:
        return list(commands)
    return [c for c in commands if text in c.command_text]


def command_frequencies(commands: Sequence[Command]) -> Counter[str]:
    return Counter(c.command_text for c in commands)


def filter_by_mode(commands: Sequence[Command], mode: DisplayMode) -> list[Command]:
    """→ UNIQUE keeps commands whose exact text occurs once in `commands`"""
    if mode is DisplayMode.ALL:
        return list(commands)
    frequencies = command_frequencies(commands)
    return [c for c in commands if frequencies[c.command_text] == 1]


def apply_filters(commands: Sequence[Command], mode: DisplayMode, text: str) -> list[Command]:
    return filter_by_mode(filter_by_substring(commands, text), mode)


def filtered_command_count(commands: Sequence[Command], mode: DisplayMode, text: str) -> int:
    """→ Badge count for a summary row"""
    subset = filter_by_substring(commands, text)
    if mode is DisplayMode.ALL:
        return len(subset)
    return sum(1 for count in command_frequencies(subset).values() if count == 1)
