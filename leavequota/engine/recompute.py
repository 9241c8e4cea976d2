"""Recomputation engine: running leave balances per person and accounting period.

The engine never reads persisted derived fields as input. They are only compared
against the fresh values to report drift, and the caller decides whether to write
the fresh values back.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from leavequota.engine.allocation import QuotaTerms, resolve_quota
from leavequota.engine.calendar import working_day_count
from leavequota.engine.period import period_key
from leavequota.models.enums import LeaveStatus

if TYPE_CHECKING:
    from leavequota.schemas.policy import LeavePolicySettings

logger = logging.getLogger(__name__)

RecordId = uuid.UUID | str

# Only approved records consume quota.
COUNTED_STATUSES: frozenset[LeaveStatus] = frozenset({LeaveStatus.APPROVED})

DERIVED_FIELDS: tuple[str, ...] = ("days", "allocation_total", "allocation_used", "balance", "limit_reached")
DAYS_ONLY: tuple[str, ...] = ("days",)

# ---------------------------------------------------------------------------
# Input and result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DerivedFields:
    """The derived values currently persisted on a record."""

    days: int | None = None
    allocation_total: int | None = None
    allocation_used: int | None = None
    balance: int | None = None
    limit_reached: bool = False


@dataclass(frozen=True)
class LeaveEntry:
    """An accepted leave record as seen by the engine.

    ``sequence`` is the record's creation order and breaks ties between records
    starting on the same day.
    """

    id: RecordId
    person_id: str
    status: LeaveStatus
    start_date: date | None = None
    end_date: date | None = None
    sequence: int = 0
    job_level: str | None = None
    persisted: DerivedFields = field(default_factory=DerivedFields)

    @property
    def counted(self) -> bool:
        return self.status in COUNTED_STATUSES

    @property
    def has_dates(self) -> bool:
        return self.start_date is not None and self.end_date is not None


@dataclass(frozen=True)
class BalanceResult:
    """Freshly computed derived fields for one record.

    ``owned`` names the fields this pass is responsible for; an owned ``None``
    clears the persisted value. Fields outside ``owned`` must not be written.
    ``drift`` names the owned fields whose persisted value differs.
    """

    record_id: RecordId
    person_id: str
    period_key: str | None
    days: int | None = None
    allocation_total: int | None = None
    allocation_used: int | None = None
    balance: int | None = None
    limit_reached: bool | None = None
    owned: tuple[str, ...] = ()
    drift: tuple[str, ...] = ()

    @property
    def stale(self) -> bool:
        return bool(self.drift)

    def changes(self) -> dict[str, int | bool | None]:
        """Return the drifted fields with their fresh values."""
        return {name: getattr(self, name) for name in self.drift}


@dataclass
class PeriodRecompute:
    """Outcome of recomputing one person's records for one accounting period."""

    person_id: str
    period_key: str
    allocation: int | None
    used: int = 0
    results: list[BalanceResult] = field(default_factory=list)

    @property
    def stale(self) -> list[BalanceResult]:
        return [r for r in self.results if r.stale]


@dataclass
class SweepResult:
    """Outcome of a read-time sweep over many people and periods."""

    periods: list[PeriodRecompute] = field(default_factory=list)
    undated: list[BalanceResult] = field(default_factory=list)

    @property
    def results(self) -> list[BalanceResult]:
        collected = [r for p in self.periods for r in p.results]
        collected.extend(self.undated)
        return collected

    @property
    def stale(self) -> list[BalanceResult]:
        return [r for r in self.results if r.stale]


@dataclass(frozen=True)
class BalancePreview:
    """Write-time view of a candidate record: what remains if it is committed."""

    period_key: str | None
    days: int | None
    allocation_total: int | None
    prior_used: int
    allocation_used: int | None
    balance: int | None
    limit_reached: bool


# ---------------------------------------------------------------------------
# Pure computation helpers
# ---------------------------------------------------------------------------


def compute_days(entry: LeaveEntry, working_days: Iterable[int]) -> int | None:
    """Working days consumed by ``entry``, or ``None`` when it lacks a date."""
    if entry.start_date is None or entry.end_date is None:
        return None
    return working_day_count(entry.start_date, entry.end_date, working_days)


def entry_period(entry: LeaveEntry, terms: QuotaTerms) -> str | None:
    """Period key of an entry, or ``None`` for an undated draft."""
    if entry.start_date is None:
        return None
    return period_key(terms.quota_type, entry.start_date)


def _drift(entry: LeaveEntry, fresh: Mapping[str, int | bool | None], owned: Iterable[str]) -> tuple[str, ...]:
    return tuple(name for name in owned if getattr(entry.persisted, name) != fresh[name])


def _build_result(
    entry: LeaveEntry,
    key: str | None,
    *,
    owned: tuple[str, ...],
    days: int | None,
    allocation_total: int | None = None,
    allocation_used: int | None = None,
    balance: int | None = None,
    limit_reached: bool | None = None,
) -> BalanceResult:
    fresh: dict[str, int | bool | None] = {
        "days": days,
        "allocation_total": allocation_total,
        "allocation_used": allocation_used,
        "balance": balance,
        "limit_reached": limit_reached,
    }
    return BalanceResult(
        record_id=entry.id,
        person_id=entry.person_id,
        period_key=key,
        days=days,
        allocation_total=allocation_total,
        allocation_used=allocation_used,
        balance=balance,
        limit_reached=limit_reached,
        owned=owned,
        drift=_drift(entry, fresh, owned),
    )


def _recompute_period(
    person_id: str,
    key: str,
    entries: Iterable[LeaveEntry],
    terms: QuotaTerms,
) -> PeriodRecompute:
    """Core routine shared by the per-period and sweep entry points."""
    members = [e for e in entries if e.person_id == person_id and entry_period(e, terms) == key]
    outcome = PeriodRecompute(person_id=person_id, period_key=key, allocation=terms.allocation)

    counted = sorted((e for e in members if e.counted), key=lambda e: (e.start_date, e.sequence))
    running = 0
    for entry in counted:
        days = compute_days(entry, terms.working_days)
        running += days or 0
        if terms.allocation is None:
            # Quota not enforced for this person: clear any old snapshot, never flag a limit.
            outcome.results.append(_build_result(entry, key, owned=DERIVED_FIELDS, days=days, limit_reached=False))
            continue
        remaining = max(0, terms.allocation - running)
        outcome.results.append(
            _build_result(
                entry,
                key,
                owned=DERIVED_FIELDS,
                days=days,
                allocation_total=terms.allocation,
                allocation_used=running,
                balance=remaining,
                limit_reached=remaining == 0,
            )
        )
    outcome.used = running

    # Records outside the counted set keep their allocation snapshot; only days are refreshed.
    for entry in members:
        if not entry.counted:
            days = compute_days(entry, terms.working_days)
            outcome.results.append(_build_result(entry, key, owned=DAYS_ONLY, days=days))

    logger.debug(
        "Recomputed period person=%s period=%s allocation=%s used=%d records=%d",
        person_id,
        key,
        terms.allocation,
        running,
        len(members),
    )
    return outcome


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def recompute_balances(
    person_id: str,
    period: str,
    entries: Iterable[LeaveEntry],
    policy: LeavePolicySettings,
    job_level: str | None,
) -> PeriodRecompute:
    """Recompute running balances for one person and one period.

    Approved records are ordered by start date (creation order breaks ties) and
    accumulate days; every other record only has ``days`` refreshed. Entries for
    other people or other periods are ignored.
    """
    return _recompute_period(person_id, period, entries, resolve_quota(job_level, policy))


def sweep(
    entries: Iterable[LeaveEntry],
    policy: LeavePolicySettings,
    job_levels: Mapping[str, str | None] | None = None,
) -> SweepResult:
    """Read-time sweep: recompute every person and period present in ``entries``.

    ``job_levels`` maps person ids to their live job level. A person missing from
    it falls back to the first job-level snapshot found on their records.
    """
    by_person: dict[str, list[LeaveEntry]] = defaultdict(list)
    for entry in entries:
        by_person[entry.person_id].append(entry)

    live_levels = job_levels or {}
    result = SweepResult()
    for person_id, person_entries in by_person.items():
        person_entries.sort(key=lambda e: e.sequence)
        job_level = live_levels.get(person_id)
        if not job_level:
            job_level = next((e.job_level for e in person_entries if e.job_level), None)
        terms = resolve_quota(job_level, policy)

        keys: list[str] = []
        for entry in person_entries:
            key = entry_period(entry, terms)
            if key is None:
                result.undated.append(_build_result(entry, None, owned=DAYS_ONLY, days=None))
            elif key not in keys:
                keys.append(key)

        for key in sorted(keys):
            result.periods.append(_recompute_period(person_id, key, person_entries, terms))

    logger.debug("Sweep recomputed %d periods, %d stale records", len(result.periods), len(result.stale))
    return result


def preview_balance(
    candidate: LeaveEntry,
    others: Iterable[LeaveEntry],
    policy: LeavePolicySettings,
    job_level: str | None,
) -> BalancePreview:
    """Write-time preview of ``candidate`` against the person's approved records.

    The candidate is excluded from the prior usage by identity, so editing a
    record in place never counts it twice.
    """
    terms = resolve_quota(job_level, policy)
    days = compute_days(candidate, terms.working_days)
    key = entry_period(candidate, terms)
    if key is None:
        return BalancePreview(
            period_key=None,
            days=days,
            allocation_total=terms.allocation,
            prior_used=0,
            allocation_used=None,
            balance=None,
            limit_reached=False,
        )

    prior_used = sum(
        compute_days(e, terms.working_days) or 0
        for e in others
        if e.id != candidate.id
        and e.person_id == candidate.person_id
        and e.counted
        and entry_period(e, terms) == key
    )
    used_after = prior_used + (days or 0)
    if terms.allocation is None:
        return BalancePreview(
            period_key=key,
            days=days,
            allocation_total=None,
            prior_used=prior_used,
            allocation_used=used_after,
            balance=None,
            limit_reached=False,
        )

    remaining = max(0, terms.allocation - used_after)
    return BalancePreview(
        period_key=key,
        days=days,
        allocation_total=terms.allocation,
        prior_used=prior_used,
        allocation_used=used_after,
        balance=remaining,
        limit_reached=remaining == 0,
    )
