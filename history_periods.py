"""
history_periods.py - Day / week / month periods and the date arithmetic around them.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from enum import Enum

from history_summary import BucketSize, local_midnight, week_start


class Period(Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# A context's detail view is bucketed one step finer than the period it shows
_BUCKET_SIZES = {
    Period.DAY: BucketSize.HOURLY,
    Period.WEEK: BucketSize.DAILY,
    Period.MONTH: BucketSize.WEEKLY,
}


def bucket_size_for(period: Period) -> BucketSize:
    return _BUCKET_SIZES[period]


def add_months(day: date, months: int) -> date:
    """→ Shifts by whole months, clamping the day to the target month's length"""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def date_range_for_period(day: date, period: Period) -> tuple[int, int]:
    """→ (start, end) unix timestamps of local midnights; start inclusive, end exclusive"""
    if period is Period.WEEK:
        monday = week_start(day)
        return local_midnight(monday), local_midnight(monday + timedelta(days=7))
    if period is Period.MONTH:
        first = day.replace(day=1)
        return local_midnight(first), local_midnight(add_months(first, 1))
    return local_midnight(day), local_midnight(day + timedelta(days=1))


def adjacent_date(day: date, period: Period, direction: int) -> date:
    if period is Period.WEEK:
        return day + timedelta(days=7 * direction)
    if period is Period.MONTH:
        return add_months(day, direction)
    return day + timedelta(days=direction)


def is_current_period(day: date, period: Period, today: date) -> bool:
    """True when `day` already lies in today's period, so there is nothing later to show."""
    if period is Period.WEEK:
        return day.isocalendar()[:2] == today.isocalendar()[:2]
    if period is Period.MONTH:
        return (day.year, day.month) == (today.year, today.month)
    return day >= today


def _month_day(day: date, today: date) -> str:
    if day.year == today.year:
        return f"{day:%b} {day.day}"
    return f"{day:%b} {day.day}, {day.year}"


def period_date_label(day: date, period: Period, today: date) -> str:
    """→ Short label for a period, e.g. "Wed Feb 4", "Week of Feb 2", "February 2026" """
    if period is Period.WEEK:
        return f"Week of {_month_day(week_start(day), today)}"
    if period is Period.MONTH:
        return f"{day:%B %Y}"
    return f"{day:%a} {_month_day(day, today)}"


def relative_day_label(day: date, today: date) -> str:
    delta = (today - day).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Yesterday"
    return ""


def header_date_label(day: date, period: Period, today: date) -> str:
    """→ Header text: full date for days (with Today/Yesterday), period labels otherwise"""
    if period is Period.DAY:
        label = f"{day:%A %Y-%m-%d}"
        relative = relative_day_label(day, today)
        return f"{label} ({relative})" if relative else label
    if period is Period.WEEK:
        monday = week_start(day)
        sunday = monday + timedelta(days=6)
        label = f"Week of {monday:%Y-%m-%d} - {sunday:%Y-%m-%d}"
        return f"{label} (This week)" if is_current_period(day, period, today) else label
    label = f"{day:%B %Y}"
    return f"{label} (This month)" if is_current_period(day, period, today) else label
