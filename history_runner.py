"""
history_runner.py - Performs the load effects the navigation reducer asks for.

`run_effect` turns one load into the event that reports its result. The app calls it on
a worker thread; `settle` calls it inline, which is how tests play a session through.
"""

from __future__ import annotations

from collections import deque

from history_nav import (
    CommandWindowLoaded,
    ContextsLoaded,
    Effect,
    Event,
    LoadCommandWindow,
    LoadContexts,
    LoadFailed,
    LoadKind,
    LoadPeeks,
    Model,
    PeeksLoaded,
    update,
)
from history_peeks import resolve_peeks
from history_periods import date_range_for_period
from history_store import CommandStore, StoreError
from history_summary import context_items, group_by_context
from history_viewport import balance_context

LOAD_EFFECTS = (LoadContexts, LoadCommandWindow, LoadPeeks)


def is_load(effect: Effect) -> bool:
    return isinstance(effect, LOAD_EFFECTS)


def _load_contexts(effect: LoadContexts, store: CommandStore) -> Event:
    start, end = date_range_for_period(effect.day, effect.period)
    try:
        commands = store.get_commands_by_date_range(start, end)
    except StoreError as e:
        return LoadFailed(LoadKind.CONTEXTS, str(e), effect.generation)
    items = context_items(group_by_context(commands))
    return ContextsLoaded(contexts=tuple(items), generation=effect.generation)


def _load_window(effect: LoadCommandWindow, store: CommandStore) -> Event:
    # Ask for the full budget on both sides, then balance down to the budget in total
    try:
        before, target, after = store.get_command_with_context(effect.command_id, effect.budget)
    except StoreError as e:
        return LoadFailed(LoadKind.WINDOW, str(e), effect.generation)
    before, after = balance_context(before, after, effect.budget)
    return CommandWindowLoaded(
        before=tuple(before), target=target, after=tuple(after), generation=effect.generation
    )


def _load_peeks(effect: LoadPeeks, store: CommandStore) -> Event:
    prev_peek, next_peek = resolve_peeks(
        store,
        effect.key,
        effect.branch,
        effect.day,
        effect.period,
        effect.mode,
        effect.filter_text,
        effect.today,
        effect.include_next,
    )
    return PeeksLoaded(prev=prev_peek, next=next_peek, generation=effect.generation)


def run_effect(effect: Effect, store: CommandStore) -> Event | None:
    """→ The result event of a load; None for effects the host performs itself (yank, quit)"""
    if isinstance(effect, LoadContexts):
        return _load_contexts(effect, store)
    if isinstance(effect, LoadCommandWindow):
        return _load_window(effect, store)
    if isinstance(effect, LoadPeeks):
        return _load_peeks(effect, store)
    return None


def settle(model: Model, event: Event, store: CommandStore) -> tuple[Model, list[Effect]]:
    """→ Applies `event`, then every load it triggers, in issue order.

    Returns the settled model and the effects left for the host (yank, quit).
    """
    model, effects = update(model, event)
    pending = deque(effects)
    host_effects: list[Effect] = []
    while pending:
        effect = pending.popleft()
        result = run_effect(effect, store)
        if result is None:
            host_effects.append(effect)
            continue
        model, more = update(model, result)
        pending.extend(more)
    return model, host_effects
