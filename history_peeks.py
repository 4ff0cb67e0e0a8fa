"""
history_peeks.py - Hints shown when a context's detail view has nothing to display.

Two kinds of hint:

- Context hints (H/L) come from the already-loaded summary rows, so they are synchronous.
- Period peeks (h/l) ask the store how many matching commands the same context has in
  the neighbouring periods.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from history_filters import DisplayMode, filtered_command_count
from history_periods import Period, adjacent_date, date_range_for_period, period_date_label
from history_store import CommandStore, StoreError
from history_summary import ContextItem, ContextKey, group_by_context


@dataclass(frozen=True)
class PeriodPeek:
    date_label: str
    count: int


def peek_period(
    store: CommandStore,
    key: ContextKey,
    branch: str,
    day: date,
    period: Period,
    mode: DisplayMode,
    filter_text: str,
    today: date,
) -> PeriodPeek | None:
    """→ Post-filter count for one context in the period containing `day`; None if the lookup failed"""
    start, end = date_range_for_period(day, period)
    try:
        commands = store.get_commands_by_date_range(start, end)
    except StoreError:
        return None
    branch_commands = group_by_context(commands).get(key, {}).get(branch, [])
    return PeriodPeek(
        date_label=period_date_label(day, period, today),
        count=filtered_command_count(branch_commands, mode, filter_text),
    )


def resolve_peeks(
    store: CommandStore,
    key: ContextKey,
    branch: str,
    day: date,
    period: Period,
    mode: DisplayMode,
    filter_text: str,
    today: date,
    include_next: bool,
) -> tuple[PeriodPeek | None, PeriodPeek | None]:
    """→ (previous, next) peeks; the next period is only consulted when it is reachable"""
    prev_peek = peek_period(
        store, key, branch, adjacent_date(day, period, -1), period, mode, filter_text, today
    )
    next_peek = None
    if include_next:
        next_peek = peek_period(
            store, key, branch, adjacent_date(day, period, 1), period, mode, filter_text, today
        )
    return prev_peek, next_peek


def context_hints(
    contexts: Sequence[ContextItem], selected_idx: int, orphaned: bool
) -> tuple[ContextItem | None, ContextItem | None]:
    """→ The rows H and L would switch to, mirroring their clamping rules"""
    if not contexts:
        return None, None
    if orphaned:
        return contexts[-1], contexts[0]
    prev_item = contexts[selected_idx - 1] if selected_idx > 0 else None
    next_item = contexts[selected_idx + 1] if selected_idx < len(contexts) - 1 else None
    return prev_item, next_item
