"""Accounting-period keys and membership tests for each quota type."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from leavequota.engine.calendar import InvalidDateError, parse_calendar_date
from leavequota.models.enums import QuotaType


def _quarter(month: int) -> int:
    return (month - 1) // 3 + 1


def period_key(quota_type: QuotaType, start_date: date | str) -> str:
    """Return the accounting-period identifier for a record starting on ``start_date``.

    YEARLY:    ``2025``
    QUARTERLY: ``2025-Q2``
    MONTHLY:   ``2025-05``
    """
    start = parse_calendar_date(start_date)
    if quota_type == QuotaType.YEARLY:
        return f"{start.year}"
    if quota_type == QuotaType.QUARTERLY:
        return f"{start.year}-Q{_quarter(start.month)}"
    return f"{start.year}-{start.month:02d}"


def period_bounds(quota_type: QuotaType, start_date: date | str) -> tuple[date, date]:
    """Return (period_start, period_end) as half-open interval [start, end).

    MONTHLY:   [1st of month, 1st of next month)
    QUARTERLY: [1st of quarter, 1st of next quarter)
    YEARLY:    [Jan 1, Jan 1 next year)

    Only the year and month of ``start_date`` matter, never the day.
    """
    start = parse_calendar_date(start_date)
    if quota_type == QuotaType.YEARLY:
        return date(start.year, 1, 1), date(start.year + 1, 1, 1)

    if quota_type == QuotaType.QUARTERLY:
        first_month = (_quarter(start.month) - 1) * 3 + 1
        period_start = date(start.year, first_month, 1)
    else:
        first_month = start.month
        period_start = date(start.year, start.month, 1)

    span = 3 if quota_type == QuotaType.QUARTERLY else 1
    next_month = first_month + span
    if next_month > 12:
        return period_start, date(start.year + 1, next_month - 12, 1)
    return period_start, date(start.year, next_month, 1)


def period_predicate(quota_type: QuotaType, start_date: date | str) -> Callable[[date | str | None], bool]:
    """Build a test selecting every start date that falls in the same period.

    The returned callable accepts dates or ``YYYY-MM-DD`` strings; missing or
    malformed values simply do not match.
    """
    lower, upper = period_bounds(quota_type, start_date)

    def _matches(candidate: date | str | None) -> bool:
        if candidate is None:
            return False
        try:
            day = parse_calendar_date(candidate)
        except InvalidDateError:
            return False
        return lower <= day < upper

    return _matches
