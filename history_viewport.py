"""
history_viewport.py - Geometry for the two scrolling views.

- `balance_context` trims a command's session window to a line budget.
- `ensure_detail_visible` keeps the selected command (and, when scrolling up, its
  bucket header) inside the context-detail viewport.

The context-detail body is a flat list of lines. Each bucket contributes a blank
line, a header line, then one line per command:

    0  (blank)          <- bucket start
    1  9am ─────────
    2    :15  go build
    3    :22  go test
    4  (blank)          <- bucket start
    5  10am ────────
    6    :05  git push
"""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

# header(1) + "="(1) + blank(1) + "─"(1) + status bar(1)
DETAIL_CHROME_LINES = 5

# chrome(5) + blank(1) + metadata(up to 9) + blank, separator, blank(3) + target(1)
COMMAND_DETAIL_OVERHEAD = 19

FALLBACK_CONTEXT_BUDGET = 10


def command_detail_budget(height: int) -> int:
    """→ How many neighbours (before + after) fit beside a command's metadata"""
    if height <= 0:
        return FALLBACK_CONTEXT_BUDGET
    return max(height - COMMAND_DETAIL_OVERHEAD, 1)


def balance_context(
    before: Sequence[T], after: Sequence[T], total: int
) -> tuple[list[T], list[T]]:
    """→ Trims both sides to `total`, handing one side's slack to the other.

    `before` loses its oldest entries, `after` its newest, so the window always
    stays adjacent to the target that sits between them.
    """
    before, after = list(before), list(after)
    if len(before) + len(after) <= total:
        return before, after

    half = total // 2
    if len(before) <= half:
        return before, after[: total - len(before)]
    if len(after) <= half:
        keep = total - len(after)
        return before[len(before) - keep :], after
    return before[len(before) - half :], after[: total - half]


def detail_available_lines(height: int) -> int:
    return max(height - DETAIL_CHROME_LINES, 1)


def detail_line_of(bucket_sizes: Sequence[int], index: int) -> tuple[int, int]:
    """→ (line of the command at flat `index`, line where its bucket starts)"""
    line = 0
    seen = 0
    for size in bucket_sizes:
        bucket_start = line
        line += 2  # blank + header
        if index < seen + size:
            return line + (index - seen), bucket_start
        line += size
        seen += size
    return line, 0


def ensure_detail_visible(
    bucket_sizes: Sequence[int], index: int, offset: int, height: int
) -> int:
    """→ New scroll offset that keeps the selected command on screen.

    Scrolling up lands on the bucket's blank line so its header shows too;
    scrolling down moves just far enough to put the command on the last row.
    """
    if height <= 0 or not any(bucket_sizes):
        return offset
    available = detail_available_lines(height)
    command_line, bucket_start = detail_line_of(bucket_sizes, index)
    if command_line < offset:
        offset = bucket_start
    if command_line >= offset + available:
        offset = command_line - available + 1
    return offset
