from datetime import date

from history_filters import DisplayMode
from history_nav import (
    CommandWindowLoaded,
    ContextsLoaded,
    KeyPressed,
    LoadCommandWindow,
    LoadContexts,
    LoadFailed,
    LoadKind,
    LoadPeeks,
    PeeksLoaded,
    Quit,
    Yank,
    new_model,
)
from history_periods import Period
from history_runner import is_load, run_effect, settle
from history_store import MemoryCommandStore, StoreError
from history_summary import ContextKey


class BrokenStore:
    def get_commands_by_date_range(self, start_time, end_time, source_app=None):
        raise StoreError("disk I/O error")

    def get_command_with_context(self, command_id, context_size):
        raise StoreError("disk I/O error")


def session(make_command, size):
    return MemoryCommandStore(
        make_command(i, 1_770_000_000 + i, f"cmd {i}", source_pid=42) for i in range(1, size + 1)
    )


class TestRunEffect:
    def test_contexts(self, store):
        event = run_effect(LoadContexts(date(2026, 2, 4), Period.DAY, 3), store)
        assert isinstance(event, ContextsLoaded)
        assert event.generation == 3
        assert [item.command_count for item in event.contexts] == [3, 2]

    def test_window_is_balanced_to_budget(self, make_command):
        event = run_effect(LoadCommandWindow(15, 10, 1), session(make_command, 30))
        assert isinstance(event, CommandWindowLoaded)
        assert event.target.id == 15
        assert [c.id for c in event.before] == [10, 11, 12, 13, 14]
        assert [c.id for c in event.after] == [16, 17, 18, 19, 20]

    def test_window_near_session_start_uses_slack(self, make_command):
        event = run_effect(LoadCommandWindow(2, 10, 1), session(make_command, 30))
        assert [c.id for c in event.before] == [1]
        assert [c.id for c in event.after] == list(range(3, 12))

    def test_peeks(self, store):
        effect = LoadPeeks(
            key=ContextKey("/work/web"),
            branch="No branch",
            day=date(2026, 2, 3),
            period=Period.DAY,
            mode=DisplayMode.ALL,
            filter_text="",
            today=date(2026, 2, 5),
            include_next=True,
            generation=7,
        )
        event = run_effect(effect, store)
        assert isinstance(event, PeeksLoaded)
        assert event.prev.count == 0
        assert event.next.count == 2
        assert event.generation == 7

    def test_store_errors_become_events(self):
        event = run_effect(LoadContexts(date(2026, 2, 4), Period.DAY, 2), BrokenStore())
        assert event == LoadFailed(LoadKind.CONTEXTS, "disk I/O error", 2)
        event = run_effect(LoadCommandWindow(1, 10, 5), BrokenStore())
        assert event == LoadFailed(LoadKind.WINDOW, "disk I/O error", 5)

    def test_host_effects_have_no_result(self, store):
        assert run_effect(Yank("ls"), store) is None
        assert run_effect(Quit(), store) is None
        assert not is_load(Quit())
        assert is_load(LoadContexts(date(2026, 2, 4), Period.DAY, 1))


class TestSettle:
    def test_returns_only_host_effects(self, store, now):
        model, effects = settle(new_model(now=now), KeyPressed("q"), store)
        assert effects == [Quit()]

    def test_resolves_chained_loads(self, store, now):
        model, effects = settle(new_model(now=now), KeyPressed("h"), store)
        assert effects == []
        assert model.current_date == date(2026, 2, 3)
        assert [item.key.working_dir for item in model.contexts] == ["/work/web"]
