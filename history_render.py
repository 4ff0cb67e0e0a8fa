"""
history_render.py - Turns a `Model` into the screen, one rich `Text` per frame.

Rendering is a pure function of the model: the app calls `render_screen(model)` after
every update and hands the result to a single `Static`. Layout is fixed-line:

    header            ─┐
    ====               │ chrome
    body ...           │
    (blank)            │
    ────              │
    status bar        ─┘
"""

from __future__ import annotations

from datetime import datetime

from rich.cells import cell_len
from rich.text import Text

from history_filters import DisplayMode, command_frequencies, filtered_command_count
from history_nav import Model, ViewState
from history_peeks import context_hints
from history_periods import header_date_label
from history_store import Command
from history_summary import ContextItem, format_context_name
from history_syntax import highlight_command
from history_viewport import balance_context, detail_available_lines

# ============================================================================
# STYLES & LAYOUT
# ============================================================================

HEADER = "bold #C678DD"
FOCUS_DOT = "bold #C678DD"
BLUR_DOT = "#5C6370"
SELECTED = "#98C379"
NORMAL = "#ABB2BF"
MUTED = "#5C6370"
BUCKET_LABEL = "bold #C678DD"
LABEL = "bold #61AFEF"
SUCCESS = "#98C379"
ERROR = "bold #E06C75"
GIT = "#E5C07B"
FILTER = "bold #E5C07B"

MARGIN = "  "
DEFAULT_WIDTH = 80
MIN_CONTENT_WIDTH = 20

# header + "=" + blank + ... + blank + "─" + status bar
SUMMARY_CHROME_LINES = 6

SELECTED_PREFIX = "▶ "
PLAIN_PREFIX = "  "

HELP_BINDINGS: dict[ViewState, list[tuple[str, str]]] = {
    ViewState.SUMMARY: [
        ("j", "Navigate down"),
        ("k", "Navigate up"),
        ("enter", "Open context"),
        ("h", "Previous period"),
        ("l", "Next period"),
        ("t", "Today"),
        ("e", "Yesterday"),
        ("u", "Unique mode"),
        ("a", "All mode"),
        ("/", "Filter"),
        ("esc", "Clear filter"),
        ("]", "Cycle period up"),
        ("[", "Cycle period down"),
        ("?", "Help"),
        ("q", "Quit"),
    ],
    ViewState.CONTEXT_DETAIL: [
        ("j", "Navigate down"),
        ("k", "Navigate up"),
        ("enter", "View command detail"),
        ("y", "Yank command"),
        ("-", "Back to summary"),
        ("H", "Previous context"),
        ("L", "Next context"),
        ("h", "Previous period"),
        ("l", "Next period"),
        ("t", "Today"),
        ("e", "Yesterday"),
        ("u", "Unique mode"),
        ("a", "All mode"),
        ("/", "Filter"),
        ("esc", "Clear filter"),
        ("]", "Cycle period up"),
        ("[", "Cycle period down"),
        ("?", "Help"),
        ("q", "Quit"),
    ],
    ViewState.COMMAND_DETAIL: [
        ("j", "Navigate down"),
        ("k", "Navigate up"),
        ("y", "Yank command"),
        ("-", "Back to context"),
        ("?", "Help"),
        ("q", "Quit"),
    ],
}


def bindings_for_view(view: ViewState) -> list[tuple[str, str]]:
    return HELP_BINDINGS.get(view, HELP_BINDINGS[ViewState.SUMMARY])


def _content_width(model: Model) -> int:
    width = model.width or DEFAULT_WIDTH
    return max(width - 2 * len(MARGIN), MIN_CONTENT_WIDTH)


def truncate_with_ellipsis(text: str, max_width: int) -> str:
    if cell_len(text) <= max_width:
        return text
    while text and cell_len(text) > max_width - 1:
        text = text[:-1]
    return text + "…"


def format_duration(duration_ms: int | None) -> str:
    """→ 850 -> 850ms, 75000 -> 1m 15s, 3725000 -> 1h 2m 5s"""
    if duration_ms is None:
        return "0s"
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    total_seconds = duration_ms // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def first_line(command_text: str) -> str:
    head, newline, _ = command_text.partition("\n")
    return f"{head} ↵" if newline else head


def _line(*parts: str | Text | tuple[str, str]) -> Text:
    return Text.assemble(MARGIN, *parts)


# ============================================================================
# FRAME
# ============================================================================


def render_header(model: Model) -> Text:
    if model.view in (ViewState.CONTEXT_DETAIL, ViewState.COMMAND_DETAIL):
        title = format_context_name(model.detail_context_key, model.detail_context_branch)
    elif model.view is ViewState.HELP:
        title = "Help"
    else:
        title = "Work Summary"
    dot = ("●", FOCUS_DOT) if model.focused else ("○", BLUR_DOT)
    date_label = header_date_label(model.current_date, model.period, model.today)
    return _line((title, HEADER), " ", dot, " ", (date_label, HEADER))


def _mode_hint(model: Model) -> str:
    if model.display_mode is DisplayMode.UNIQUE:
        return "[u] *Uniq*  [a] All"
    return "[u] Uniq  [a] *All*"


def render_status_bar(model: Model) -> Text:
    if model.filter_active:
        return _line(("/", FILTER), (model.filter_text, NORMAL), ("█", MUTED))

    if model.view is ViewState.HELP:
        hint = "[?/Esc] Close  [q] Quit"
    elif model.view is ViewState.COMMAND_DETAIL:
        hint = "[j/k] Walk session  [y] Yank  [-] Back  [?] Help  [q] Quit"
    elif model.view is ViewState.CONTEXT_DETAIL:
        select = "[j/k] Select  [Enter] Detail  [y] Yank  " if model.detail_commands else ""
        hint = f"{select}[-] Back  [h/l] Time  [H/L] Context  {_mode_hint(model)}"
    else:
        hint = (
            "[j/k] Select  [Enter] View commands  [h/l] Time  [t] Today  [e] Yesterday  "
            f"[?] Help  [q] Quit  {_mode_hint(model)}"
        )

    status = _line()
    if model.last_error:
        status.append(f"⚠ {model.last_error}  ", style=ERROR)
    if model.filter_text:
        status.append(f'filter: "{model.filter_text}"  ', style=FILTER)
    status.append(hint, style=MUTED)
    return status


def _frame(model: Model, body: list[Text], chrome_lines: int, blank_after_rule: bool) -> Text:
    width = _content_width(model)
    lines = [render_header(model), _line(("=" * width, MUTED))]
    if blank_after_rule:
        lines.append(Text())
    lines.extend(body)
    if model.height > 0:
        lines.extend(Text() for _ in range(model.height - chrome_lines - len(body)))
    lines += [Text(), _line(("─" * width, MUTED)), render_status_bar(model)]
    return Text("\n").join(lines)


# ============================================================================
# SUMMARY
# ============================================================================


def _count_text(count: int) -> str:
    return "1 command " if count == 1 else f"{count} commands"


def render_context_item(
    model: Model, item: ContextItem, selected: bool, width: int, count_width: int
) -> Text:
    prefix = SELECTED_PREFIX if selected else PLAIN_PREFIX
    count = _count_text(filtered_command_count(item.commands, model.display_mode, model.filter_text))
    name_width = max(width - len(prefix) - 2 - count_width, 10)
    name = truncate_with_ellipsis(format_context_name(item.key, item.branch), name_width)
    padding = max(width - cell_len(prefix) - cell_len(name) - cell_len(count), 1)
    return _line((f"{prefix}{name}{' ' * padding}{count}", SELECTED if selected else NORMAL))


def render_summary(model: Model) -> Text:
    if not model.contexts:
        message = "Loading…" if model.loading else "No commands found"
        return _frame(model, [_line(message)], SUMMARY_CHROME_LINES, blank_after_rule=True)

    width = _content_width(model)
    counts = [
        filtered_command_count(item.commands, model.display_mode, model.filter_text)
        for item in model.contexts
    ]
    count_width = len(_count_text(max(counts)))

    # Keep the selected row inside the visible rows
    rows = list(enumerate(model.contexts))
    if model.height > 0:
        available = max(model.height - SUMMARY_CHROME_LINES, 1)
        offset = max(model.selected_idx - available + 1, 0)
        rows = rows[offset : offset + available]

    body = [
        render_context_item(model, item, i == model.selected_idx, width, count_width)
        for i, item in rows
    ]
    return _frame(model, body, SUMMARY_CHROME_LINES, blank_after_rule=True)


# ============================================================================
# CONTEXT DETAIL
# ============================================================================


def render_detail_command(
    command: Command, selected: bool, frequencies: dict[str, int] | None = None
) -> Text:
    prefix = SELECTED_PREFIX if selected else PLAIN_PREFIX
    minute = f":{datetime.fromtimestamp(command.timestamp):%M}"
    text = first_line(command.command_text)
    if frequencies and frequencies.get(command.command_text, 0) > 1:
        text += f"  ⟳ {frequencies[command.command_text]}"
    return _line((f"{prefix}  {minute}  {text}", SELECTED if selected else NORMAL))


def detail_body_lines(model: Model) -> list[Text]:
    """→ Every line of the bucketed body, before scrolling"""
    width = _content_width(model)
    frequencies = command_frequencies(model.detail_commands)
    lines: list[Text] = []
    index = 0
    for bucket in model.detail_buckets:
        lines.append(Text())
        dashes = max(width - 2 - cell_len(bucket.label) - 1, 2)
        lines.append(_line("  ", (bucket.label, BUCKET_LABEL), " ", ("─" * dashes, MUTED)))
        for command in bucket.commands:
            lines.append(render_detail_command(command, index == model.detail_cmd_idx, frequencies))
            index += 1
    return lines


def render_empty_detail(model: Model) -> list[Text]:
    name = format_context_name(model.detail_context_key, model.detail_context_branch)
    lines = [Text(), _line(f"No commands found in {name}")]
    if model.filter_text:
        lines.append(_line((f'matching "{model.filter_text}"', MUTED)))

    prev_item, next_item = context_hints(model.contexts, model.selected_idx, model.detail_orphaned)
    prev_peek, next_peek = model.empty_prev_peek, model.empty_next_peek
    hints: list[Text] = []
    if prev_item is not None:
        hints.append(_line(("[H] ", LABEL), format_context_name(prev_item.key, prev_item.branch)))
    if next_item is not None:
        hints.append(_line(("[L] ", LABEL), format_context_name(next_item.key, next_item.branch)))
    if prev_peek is not None:
        hints.append(_line(("[h] ", LABEL), f"{prev_peek.date_label} ({_count_text(prev_peek.count).strip()})"))
    if next_peek is not None:
        hints.append(_line(("[l] ", LABEL), f"{next_peek.date_label} ({_count_text(next_peek.count).strip()})"))
    if hints:
        lines.append(Text())
        lines.extend(hints)
    return lines


def render_context_detail(model: Model) -> Text:
    if not model.detail_commands:
        body = render_empty_detail(model)
    else:
        body = detail_body_lines(model)
        if model.height > 0:
            start = min(model.detail_scroll_offset, len(body))
            body = body[start : start + detail_available_lines(model.height)]
    return _frame(model, body, chrome_lines=5, blank_after_rule=False)


# ============================================================================
# COMMAND DETAIL
# ============================================================================


def command_metadata(command: Command) -> list[Text]:
    def field(label: str, value: str | Text, style: str = NORMAL) -> Text:
        return _line((f"{label:<13}", LABEL), value if isinstance(value, Text) else (value, style))

    lines = [
        field("Event:", str(command.id), HEADER),
        field("Command:", highlight_command(first_line(command.command_text))),
        field("Exit Status:", str(command.exit_status), SUCCESS if command.exit_status == 0 else ERROR),
        field("Timestamp:", f"{datetime.fromtimestamp(command.timestamp):%Y-%m-%d %H:%M:%S}"),
        field("Working Dir:", command.working_dir),
    ]
    if command.duration is not None:
        lines.append(field("Duration:", format_duration(command.duration)))
    else:
        lines.append(field("Duration:", "(not recorded)", MUTED))
    if command.git_repo is not None:
        lines.append(field("Git Repo:", command.git_repo, GIT))
    if command.git_branch is not None:
        lines.append(field("Git Branch:", command.git_branch, GIT))
    if command.source_app is not None and command.source_pid is not None:
        session = f"{command.source_app}:{command.source_pid}"
        if command.source_active is False:
            session += ":X"
        lines.append(field("Session:", session))
    return lines


def render_command_detail(model: Model) -> Text:
    target = model.cmd_detail_target
    if target is None:
        return _frame(model, [_line("Loading…")], chrome_lines=5, blank_after_rule=False)

    width = _content_width(model)
    body = [Text(), *command_metadata(target)]
    if len(model.cmd_detail_all) > 1:
        body += [Text(), _line(("─" * width, MUTED)), Text()]
        window = list(enumerate(model.cmd_detail_all))
        idx = model.cmd_detail_idx
        if model.height > 0:
            # Whatever does not fit goes, but never the target row
            room = max(detail_available_lines(model.height) - len(body) - 1, 0)
            before, after = balance_context(window[:idx], window[idx + 1 :], room)
            window = [*before, window[idx], *after]
        for i, command in window:
            if i == idx:
                body.append(
                    _line(
                        (f"{SELECTED_PREFIX}{command.id} ", SELECTED),
                        highlight_command(first_line(command.command_text)),
                    )
                )
            else:
                body.append(
                    _line((f"{PLAIN_PREFIX}{command.id} {first_line(command.command_text)}", MUTED))
                )
    if model.height > 0:
        body = body[: detail_available_lines(model.height)]
    return _frame(model, body, chrome_lines=5, blank_after_rule=False)


# ============================================================================
# HELP
# ============================================================================


def render_help(model: Model) -> Text:
    bindings = bindings_for_view(model.help_previous_view)
    key_width = max(len(key) for key, _ in bindings)
    body = [Text()] + [
        _line((f"  {key:<{key_width}}", LABEL), "   ", (desc, NORMAL)) for key, desc in bindings
    ]
    if model.height > 0:
        body = body[: detail_available_lines(model.height)]
    return _frame(model, body, chrome_lines=5, blank_after_rule=False)


_RENDERERS = {
    ViewState.SUMMARY: render_summary,
    ViewState.CONTEXT_DETAIL: render_context_detail,
    ViewState.COMMAND_DETAIL: render_command_detail,
    ViewState.HELP: render_help,
}


def render_screen(model: Model) -> Text:
    return _RENDERERS[model.view](model)
