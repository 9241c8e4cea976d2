"""Working-day arithmetic over pure calendar dates."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

# Weekday numbering used by stored policies: 0 = Sunday ... 6 = Saturday.
SUNDAY = 0
SATURDAY = 6
DEFAULT_WORKING_DAYS: frozenset[int] = frozenset({1, 2, 3, 4, 5, 6})
_ALL_WEEKDAYS: frozenset[int] = frozenset(range(SUNDAY, SATURDAY + 1))

_DATE_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")
_MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class InvalidDateError(ValueError):
    """A value could not be read as a ``YYYY-MM-DD`` calendar date."""


def parse_calendar_date(value: date | str) -> date:
    """Parse a calendar date without going through any timestamp or timezone logic.

    Accepts a ``date`` (a ``datetime`` is rejected: it carries a time of day) or a
    ``YYYY-MM-DD`` string. Raises ``InvalidDateError`` for anything else,
    including impossible dates such as ``2025-02-30``.
    """
    if isinstance(value, datetime):
        msg = f"Expected a calendar date, got a timestamp: {value.isoformat()}"
        raise InvalidDateError(msg)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        msg = f"Expected a YYYY-MM-DD string, got {type(value).__name__}"
        raise InvalidDateError(msg)

    match = _DATE_RE.match(value)
    if match is None:
        msg = f"Expected a YYYY-MM-DD date, got {value!r}"
        raise InvalidDateError(msg)
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        msg = f"Not a real calendar date: {value!r}"
        raise InvalidDateError(msg) from exc


def weekday_index(day: date) -> int:
    """Return the weekday of ``day`` as 0 (Sunday) through 6 (Saturday)."""
    return day.isoweekday() % 7


def working_day_count(start: date, end: date, working_days: Iterable[int]) -> int:
    """Count the days in ``[start, end]`` whose weekday is in ``working_days``.

    A reversed range counts as zero days so that historical anomalies never
    abort a batch recompute.
    """
    weekdays = frozenset(working_days) & _ALL_WEEKDAYS
    if not weekdays:
        msg = "working_days must contain at least one weekday"
        raise ValueError(msg)
    if end < start:
        return 0

    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * len(weekdays)

    # Whole weeks hit every weekday once; only the tail needs walking.
    current = start + timedelta(days=full_weeks * 7)
    for _ in range(remainder):
        if weekday_index(current) in weekdays:
            count += 1
        current += timedelta(days=1)
    return count


def format_registered_date(moment: date) -> str:
    """Render a date the way approval stamps are shown, e.g. ``5th May 2025``.

    Timezone-aware datetimes are rendered on their UTC calendar day, so the
    registered date never depends on the offset the stamp was taken in.
    """
    if isinstance(moment, datetime) and moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    day = moment.day
    if 11 <= day <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix} {_MONTH_ABBREVIATIONS[moment.month - 1]} {moment.year}"
