"""
history_nav.py - The navigation state machine.

**How it fits together**

All session state lives in one `Model`. Nothing mutates it in place: `update(model, event)`
copies the model, lets one handler change the copy, and returns it together with a list of
effects, i.e. `(model, event) -> (model', [effects])`.

- **Events** are things that happened: a key press, a resize, a finished load.
- **Effects** are things the host should do: load contexts, load a command's session
  window, peek at neighbouring periods, copy text, quit. Loads come back later as events.

Key handling is a table keyed by `ViewState`; each view's handler reads the key and
returns effects. Because the reducer never performs I/O, tests drive it with a runner
that resolves every load immediately (see `history_runner.settle`).

**Stale loads**

Every load carries a generation number from a per-kind counter on the model. A result
whose generation is not the latest one issued for its kind is dropped, so a slow load
for a screen the user already left cannot overwrite fresher state.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Sequence, Union

from history_filters import DisplayMode, apply_filters
from history_peeks import PeriodPeek
from history_periods import (
    Period,
    adjacent_date,
    bucket_size_for,
    is_current_period,
)
from history_store import Command
from history_summary import ContextItem, ContextKey, bucket_by, get_ordered_buckets
from history_viewport import command_detail_budget, ensure_detail_visible

# ============================================================================
# STATE
# ============================================================================


class ViewState(Enum):
    SUMMARY = "summary"
    CONTEXT_DETAIL = "context_detail"
    COMMAND_DETAIL = "command_detail"
    HELP = "help"


QUIT_KEYS = ("q", "ctrl+c")
DOWN_KEYS = ("j", "down")
UP_KEYS = ("k", "up")
BACK_KEYS = ("-", "escape")


@dataclass(frozen=True)
class DetailBucket:
    label: str
    commands: tuple[Command, ...]


@dataclass
class Model:
    """Everything one browsing session knows. Sequences are tuples so copies stay independent."""

    current_date: date
    period: Period = Period.DAY
    anchor_date: date | None = None
    now: Callable[[], datetime] = field(default=datetime.now, repr=False, compare=False)

    view: ViewState = ViewState.SUMMARY
    help_previous_view: ViewState = ViewState.SUMMARY

    # Summary
    contexts: tuple[ContextItem, ...] = ()
    selected_idx: int = 0

    # Filter and display mode
    filter_text: str = ""
    filter_active: bool = False
    filter_prev_text: str = ""
    display_mode: DisplayMode = DisplayMode.ALL

    # Context detail
    detail_context_key: ContextKey | None = None
    detail_context_branch: str | None = None
    detail_buckets: tuple[DetailBucket, ...] = ()
    detail_commands: tuple[Command, ...] = ()
    detail_cmd_idx: int = 0
    detail_scroll_offset: int = 0
    pending_detail_reentry: bool = False
    empty_prev_peek: PeriodPeek | None = None
    empty_next_peek: PeriodPeek | None = None

    # Command detail: [before..., target, after...]
    cmd_detail_all: tuple[Command, ...] = ()
    cmd_detail_idx: int = 0
    cmd_detail_start_idx: int = 0

    # Terminal
    width: int = 0
    height: int = 0
    focused: bool = True

    # Load bookkeeping
    contexts_generation: int = 0
    window_generation: int = 0
    peeks_generation: int = 0
    loading: bool = False
    last_error: str | None = None

    @property
    def today(self) -> date:
        return self.now().date()

    @property
    def is_current_period(self) -> bool:
        return is_current_period(self.current_date, self.period, self.today)

    @property
    def selected_context(self) -> ContextItem | None:
        if 0 <= self.selected_idx < len(self.contexts):
            return self.contexts[self.selected_idx]
        return None

    @property
    def detail_orphaned(self) -> bool:
        """True when the context the detail view shows is missing from the loaded rows."""
        selected = self.selected_context
        return selected is None or not selected.matches(
            self.detail_context_key, self.detail_context_branch
        )

    @property
    def cmd_detail_target(self) -> Command | None:
        if self.cmd_detail_idx < len(self.cmd_detail_all):
            return self.cmd_detail_all[self.cmd_detail_idx]
        return None

    @property
    def cmd_detail_before(self) -> tuple[Command, ...]:
        return self.cmd_detail_all[: self.cmd_detail_start_idx]

    @property
    def cmd_detail_after(self) -> tuple[Command, ...]:
        return self.cmd_detail_all[self.cmd_detail_start_idx + 1 :]

    @property
    def context_budget(self) -> int:
        return command_detail_budget(self.height)


def new_model(
    start: date | None = None,
    period: Period = Period.DAY,
    now: Callable[[], datetime] = datetime.now,
) -> Model:
    """→ A fresh session, by default looking at yesterday"""
    current = start if start is not None else now().date() - timedelta(days=1)
    return Model(current_date=current, period=period, now=now)


# ============================================================================
# EVENTS & EFFECTS
# ============================================================================


class LoadKind(Enum):
    CONTEXTS = "contexts"
    WINDOW = "window"
    PEEKS = "peeks"


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class FocusChanged:
    focused: bool


@dataclass(frozen=True)
class ContextsLoaded:
    contexts: tuple[ContextItem, ...]
    generation: int


@dataclass(frozen=True)
class CommandWindowLoaded:
    before: tuple[Command, ...]
    target: Command
    after: tuple[Command, ...]
    generation: int


@dataclass(frozen=True)
class PeeksLoaded:
    prev: PeriodPeek | None
    next: PeriodPeek | None
    generation: int


@dataclass(frozen=True)
class LoadFailed:
    kind: LoadKind
    message: str
    generation: int


Event = Union[
    KeyPressed, Resized, FocusChanged, ContextsLoaded, CommandWindowLoaded, PeeksLoaded, LoadFailed
]


@dataclass(frozen=True)
class LoadContexts:
    day: date
    period: Period
    generation: int


@dataclass(frozen=True)
class LoadCommandWindow:
    command_id: int
    budget: int
    generation: int


@dataclass(frozen=True)
class LoadPeeks:
    key: ContextKey
    branch: str
    day: date
    period: Period
    mode: DisplayMode
    filter_text: str
    today: date
    include_next: bool
    generation: int


@dataclass(frozen=True)
class Yank:
    text: str


@dataclass(frozen=True)
class Quit:
    pass


Effect = Union[LoadContexts, LoadCommandWindow, LoadPeeks, Yank, Quit]

# ============================================================================
# LOAD REQUESTS
# ============================================================================


def _abandon_window(m: Model) -> None:
    """Any session window still loading belongs to a screen that is going away."""
    m.window_generation += 1


def _load_contexts(m: Model) -> list[Effect]:
    _abandon_window(m)
    m.contexts_generation += 1
    m.loading = True
    return [LoadContexts(day=m.current_date, period=m.period, generation=m.contexts_generation)]


def _load_window(m: Model, command_id: int) -> list[Effect]:
    m.window_generation += 1
    return [
        LoadCommandWindow(
            command_id=command_id, budget=m.context_budget, generation=m.window_generation
        )
    ]


def _clear_peeks(m: Model) -> None:
    m.empty_prev_peek = None
    m.empty_next_peek = None
    m.peeks_generation += 1


def _load_peeks(m: Model) -> list[Effect]:
    if m.detail_context_key is None or m.detail_context_branch is None:
        return []
    return [
        LoadPeeks(
            key=m.detail_context_key,
            branch=m.detail_context_branch,
            day=m.current_date,
            period=m.period,
            mode=m.display_mode,
            filter_text=m.filter_text,
            today=m.today,
            include_next=not m.is_current_period,
            generation=m.peeks_generation,
        )
    ]


def init(model: Model) -> tuple[Model, list[Effect]]:
    """→ Initial effects: load the starting period"""
    m = dataclasses.replace(model)
    return m, _load_contexts(m)


# ============================================================================
# DETAIL VIEW BUILDING
# ============================================================================


def build_detail_buckets(
    commands: Sequence[Command], period: Period, mode: DisplayMode, filter_text: str
) -> tuple[DetailBucket, ...]:
    """→ Filtered commands bucketed one step finer than the period, each bucket time-ordered"""
    buckets = bucket_by(apply_filters(commands, mode, filter_text), bucket_size_for(period))
    return tuple(
        DetailBucket(
            label=buckets[bucket_id].format_label(),
            commands=tuple(sorted(buckets[bucket_id].commands, key=lambda c: c.timestamp)),
        )
        for bucket_id in get_ordered_buckets(buckets)
    )


def _clear_detail(m: Model) -> None:
    m.detail_buckets = ()
    m.detail_commands = ()
    m.detail_cmd_idx = 0
    m.detail_scroll_offset = 0


def _underlying_view(m: Model) -> ViewState:
    """→ The view the user returns to, looking through Help"""
    return m.help_previous_view if m.view is ViewState.HELP else m.view


def _enter_detail_view(m: Model) -> list[Effect]:
    _abandon_window(m)
    # Opened over an unfinished reload: the rows it was built from are about to change
    if m.loading:
        m.pending_detail_reentry = True
    m.view = ViewState.CONTEXT_DETAIL
    return _rebuild_detail(m)


def _show_orphaned(m: Model) -> list[Effect]:
    _clear_peeks(m)
    _clear_detail(m)
    return _load_peeks(m)


def _rebuild_detail(m: Model) -> list[Effect]:
    """Rebuilds the detail lists from the selected row; the active view is untouched."""
    selected = m.selected_context
    if selected is None:
        return _show_orphaned(m)

    _clear_peeks(m)
    m.detail_context_key = selected.key
    m.detail_context_branch = selected.branch
    m.detail_buckets = build_detail_buckets(
        selected.commands, m.period, m.display_mode, m.filter_text
    )
    m.detail_commands = tuple(c for bucket in m.detail_buckets for c in bucket.commands)
    m.detail_cmd_idx = 0
    m.detail_scroll_offset = 0
    if not m.detail_commands:
        return _load_peeks(m)
    return []


def _refresh_detail_view(m: Model) -> list[Effect]:
    """Reapplies filters to the shown context without switching to another one."""
    if m.view is ViewState.CONTEXT_DETAIL:
        _abandon_window(m)
    if m.detail_orphaned:
        return _show_orphaned(m)
    return _rebuild_detail(m)


def _scroll_to_selection(m: Model) -> None:
    m.detail_scroll_offset = ensure_detail_visible(
        [len(bucket.commands) for bucket in m.detail_buckets],
        m.detail_cmd_idx,
        m.detail_scroll_offset,
        m.height,
    )


# ============================================================================
# DATE & PERIOD NAVIGATION
# ============================================================================


def _step_date(m: Model, direction: int) -> bool:
    """Moves one period back or forward; the future is out of reach."""
    if direction > 0 and m.is_current_period:
        return False
    m.current_date = adjacent_date(m.current_date, m.period, direction)
    return True


def _jump_to(m: Model, key: str) -> None:
    today = m.today
    m.current_date = today if key == "t" else today - timedelta(days=1)
    m.period = Period.DAY
    m.selected_idx = 0


def _cycle_period(m: Model, up: bool) -> bool:
    if up:
        if m.period is Period.DAY:
            m.anchor_date = m.current_date
            m.period = Period.WEEK
            return True
        if m.period is Period.WEEK:
            m.period = Period.MONTH
            return True
        return False

    if m.period is Period.MONTH:
        m.period = Period.WEEK
        return True
    if m.period is Period.WEEK:
        m.period = Period.DAY
        if m.anchor_date is not None:
            m.current_date = m.anchor_date
        return True
    return False


# ============================================================================
# KEY HANDLERS
# ============================================================================


def _open_help(m: Model) -> list[Effect]:
    m.help_previous_view = m.view
    m.view = ViewState.HELP
    return []


def _open_filter(m: Model) -> list[Effect]:
    m.filter_active = True
    m.filter_prev_text = m.filter_text
    return []


def _summary_key(m: Model, key: str) -> list[Effect]:
    if key in QUIT_KEYS:
        return [Quit()]
    if key in DOWN_KEYS:
        if m.selected_idx < len(m.contexts) - 1:
            m.selected_idx += 1
        return []
    if key in UP_KEYS:
        if m.selected_idx > 0:
            m.selected_idx -= 1
        return []
    if key == "enter":
        return _enter_detail_view(m) if m.contexts else []
    if key in ("h", "l"):
        if not _step_date(m, -1 if key == "h" else 1):
            return []
        m.selected_idx = 0
        return _load_contexts(m)
    if key in ("t", "e"):
        _jump_to(m, key)
        return _load_contexts(m)
    if key in ("u", "a"):
        m.display_mode = DisplayMode.UNIQUE if key == "u" else DisplayMode.ALL
        return []
    if key in ("]", "["):
        if not _cycle_period(m, up=key == "]"):
            return []
        m.selected_idx = 0
        return _load_contexts(m)
    if key == "/":
        return _open_filter(m)
    if key == "?":
        return _open_help(m)
    return []


def _switch_context(m: Model, step: int) -> list[Effect]:
    """H/L: neighbouring row, or the far end of the list when the shown context is gone."""
    if m.detail_orphaned:
        if not m.contexts:
            return []
        m.selected_idx = len(m.contexts) - 1 if step < 0 else 0
        return _enter_detail_view(m)
    target = m.selected_idx + step
    if not 0 <= target < len(m.contexts):
        return []
    m.selected_idx = target
    return _enter_detail_view(m)


def _detail_key(m: Model, key: str) -> list[Effect]:
    if key in QUIT_KEYS:
        return [Quit()]
    if key in DOWN_KEYS:
        if m.detail_cmd_idx < len(m.detail_commands) - 1:
            m.detail_cmd_idx += 1
            _scroll_to_selection(m)
        return []
    if key in UP_KEYS:
        if m.detail_cmd_idx > 0:
            m.detail_cmd_idx -= 1
            _scroll_to_selection(m)
        return []
    if key == "enter":
        if not m.detail_commands:
            return []
        return _load_window(m, m.detail_commands[m.detail_cmd_idx].id)
    if key == "y":
        if not m.detail_commands:
            return []
        return [Yank(m.detail_commands[m.detail_cmd_idx].command_text)]
    if key in BACK_KEYS:
        _abandon_window(m)
        m.view = ViewState.SUMMARY
        m.pending_detail_reentry = False
        return []
    if key in ("H", "L"):
        return _switch_context(m, -1 if key == "H" else 1)
    if key in ("h", "l"):
        if not _step_date(m, -1 if key == "h" else 1):
            return []
        m.pending_detail_reentry = True
        return _load_contexts(m)
    if key in ("t", "e"):
        _jump_to(m, key)
        m.view = ViewState.SUMMARY
        m.pending_detail_reentry = False
        return _load_contexts(m)
    if key in ("u", "a"):
        m.display_mode = DisplayMode.UNIQUE if key == "u" else DisplayMode.ALL
        return _refresh_detail_view(m)
    if key in ("]", "["):
        if not _cycle_period(m, up=key == "]"):
            return []
        m.pending_detail_reentry = True
        return _load_contexts(m)
    if key == "/":
        return _open_filter(m)
    if key == "?":
        return _open_help(m)
    return []


def _leave_command_detail(m: Model) -> list[Effect]:
    _abandon_window(m)
    m.view = ViewState.CONTEXT_DETAIL
    target = m.cmd_detail_target
    if target is not None:
        for i, command in enumerate(m.detail_commands):
            if command.id == target.id:
                m.detail_cmd_idx = i
                _scroll_to_selection(m)
                break
    return []


def _command_detail_key(m: Model, key: str) -> list[Effect]:
    if key in QUIT_KEYS:
        return [Quit()]
    if key in DOWN_KEYS:
        if m.cmd_detail_idx < len(m.cmd_detail_all) - 1:
            return _load_window(m, m.cmd_detail_all[m.cmd_detail_idx + 1].id)
        return []
    if key in UP_KEYS:
        if m.cmd_detail_idx > 0:
            return _load_window(m, m.cmd_detail_all[m.cmd_detail_idx - 1].id)
        return []
    if key == "y":
        target = m.cmd_detail_target
        return [Yank(target.command_text)] if target else []
    if key in BACK_KEYS:
        return _leave_command_detail(m)
    if key == "?":
        return _open_help(m)
    return []


def _help_key(m: Model, key: str) -> list[Effect]:
    if key in QUIT_KEYS:
        return [Quit()]
    if key in ("?", "escape"):
        m.view = m.help_previous_view
    return []


def _filter_key(m: Model, key: str) -> list[Effect]:
    """Filter bar is open: keys edit the text; the detail view follows live."""
    live = m.view is ViewState.CONTEXT_DETAIL
    if key == "ctrl+c":
        return [Quit()]
    if key == "enter":
        m.filter_active = False
        return _refresh_detail_view(m) if live else []
    if key == "escape":
        m.filter_active = False
        m.filter_text = m.filter_prev_text
        return _refresh_detail_view(m) if live else []
    if key == "backspace":
        if not m.filter_text:
            m.filter_active = False
            return []
        m.filter_text = m.filter_text[:-1]
    elif key == "space":
        m.filter_text += " "
    elif len(key) == 1 and key.isprintable():
        m.filter_text += key
    else:
        return []
    return _refresh_detail_view(m) if live else []


_KEY_HANDLERS: dict[ViewState, Callable[[Model, str], list[Effect]]] = {
    ViewState.SUMMARY: _summary_key,
    ViewState.CONTEXT_DETAIL: _detail_key,
    ViewState.COMMAND_DETAIL: _command_detail_key,
    ViewState.HELP: _help_key,
}

# ============================================================================
# EVENT HANDLERS
# ============================================================================


def _on_key(m: Model, event: KeyPressed) -> list[Effect]:
    key = event.key
    if m.filter_active:
        return _filter_key(m, key)
    # Escape drops a committed filter before it means "back"
    if key == "escape" and m.filter_text and m.view is not ViewState.HELP:
        m.filter_text = ""
        if m.view in (ViewState.CONTEXT_DETAIL, ViewState.COMMAND_DETAIL):
            return _refresh_detail_view(m)
        return []
    return _KEY_HANDLERS[m.view](m, key)


def _on_resize(m: Model, event: Resized) -> list[Effect]:
    m.width = event.width
    m.height = event.height
    if m.view is ViewState.CONTEXT_DETAIL:
        _scroll_to_selection(m)
    elif m.view is ViewState.COMMAND_DETAIL and m.cmd_detail_target is not None:
        return _load_window(m, m.cmd_detail_target.id)
    return []


def _on_focus(m: Model, event: FocusChanged) -> list[Effect]:
    m.focused = event.focused
    return []


def _on_contexts_loaded(m: Model, event: ContextsLoaded) -> list[Effect]:
    if event.generation != m.contexts_generation:
        return []
    m.loading = False
    m.last_error = None
    m.contexts = event.contexts
    m.selected_idx = 0
    if not m.pending_detail_reentry:
        return []

    m.pending_detail_reentry = False
    for i, item in enumerate(m.contexts):
        if item.matches(m.detail_context_key, m.detail_context_branch):
            m.selected_idx = i
            return _rebuild_detail(m)
    # The context has nothing in this period: stay on it, empty and orphaned
    return _show_orphaned(m)


def _on_window_loaded(m: Model, event: CommandWindowLoaded) -> list[Effect]:
    if event.generation != m.window_generation:
        return []
    m.cmd_detail_all = (*event.before, event.target, *event.after)
    m.cmd_detail_idx = len(event.before)
    if _underlying_view(m) is not ViewState.COMMAND_DETAIL:
        m.cmd_detail_start_idx = m.cmd_detail_idx
    if m.view is ViewState.HELP:
        m.help_previous_view = ViewState.COMMAND_DETAIL
        return []
    m.view = ViewState.COMMAND_DETAIL
    return []


def _on_peeks_loaded(m: Model, event: PeeksLoaded) -> list[Effect]:
    if event.generation != m.peeks_generation:
        return []
    m.empty_prev_peek = event.prev
    m.empty_next_peek = event.next
    return []


_GENERATION_FIELDS = {
    LoadKind.CONTEXTS: "contexts_generation",
    LoadKind.WINDOW: "window_generation",
    LoadKind.PEEKS: "peeks_generation",
}


def is_latest(model: Model, kind: LoadKind, generation: int) -> bool:
    return generation == getattr(model, _GENERATION_FIELDS[kind])


def _on_load_failed(m: Model, event: LoadFailed) -> list[Effect]:
    if not is_latest(m, event.kind, event.generation):
        return []
    m.last_error = event.message
    if event.kind is LoadKind.CONTEXTS:
        m.loading = False
        m.pending_detail_reentry = False
    return []


_EVENT_HANDLERS: dict[type, Callable[[Model, Event], list[Effect]]] = {
    KeyPressed: _on_key,
    Resized: _on_resize,
    FocusChanged: _on_focus,
    ContextsLoaded: _on_contexts_loaded,
    CommandWindowLoaded: _on_window_loaded,
    PeeksLoaded: _on_peeks_loaded,
    LoadFailed: _on_load_failed,
}


def update(model: Model, event: Event) -> tuple[Model, list[Effect]]:
    """→ Applies one event to a copy of `model`; returns the copy and the effects to run"""
    m = dataclasses.replace(model)
    return m, _EVENT_HANDLERS[type(event)](m, event)
