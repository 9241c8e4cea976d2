"""Leave record state machine: allowed moves, required fields, lifecycle stamps."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from datetime import UTC, date, datetime
from typing import Any

from leavequota.engine.calendar import format_registered_date
from leavequota.engine.period import period_key
from leavequota.exceptions import InvalidTransitionError, LeaveValidationError
from leavequota.models.enums import LeaveStatus, QuotaType

REQUIRED_FIELDS: tuple[str, ...] = ("person_id", "person_name", "leave_type", "start_date", "end_date", "reason")

# Same-state moves are in-place edits.
_TRANSITIONS: dict[LeaveStatus, frozenset[LeaveStatus]] = {
    LeaveStatus.DRAFT: frozenset(
        {LeaveStatus.DRAFT, LeaveStatus.PENDING, LeaveStatus.APPROVED, LeaveStatus.CANCELLED}
    ),
    LeaveStatus.PENDING: frozenset(
        {LeaveStatus.PENDING, LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED}
    ),
    LeaveStatus.APPROVED: frozenset({LeaveStatus.APPROVED, LeaveStatus.CANCELLED}),
    LeaveStatus.REJECTED: frozenset(),
    LeaveStatus.CANCELLED: frozenset(),
}
_CREATABLE: frozenset[LeaveStatus] = frozenset({LeaveStatus.DRAFT, LeaveStatus.PENDING, LeaveStatus.APPROVED})
_RESUBMITTABLE: frozenset[LeaveStatus] = frozenset(
    {LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED}
)
_VALIDATED: frozenset[LeaveStatus] = frozenset({LeaveStatus.PENDING, LeaveStatus.APPROVED})


@dataclass(frozen=True)
class LeaveState:
    """Caller-owned fields of a leave record plus its lifecycle stamps."""

    person_id: str | None = None
    person_name: str | None = None
    job_level: str | None = None
    leave_type: str | None = None
    title: str | None = None
    reason: str | None = None
    comments: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: LeaveStatus = LeaveStatus.DRAFT
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    registered_date: str | None = None


EDITABLE_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(LeaveState) if f.name not in {"status", "submitted_at", "approved_at", "registered_date"}
)


@dataclass(frozen=True)
class TransitionResult:
    """The state after a transition and the (person, period) pairs to recompute."""

    previous: LeaveState | None
    state: LeaveState
    affected_periods: frozenset[tuple[str, str]]

    @property
    def recompute_required(self) -> bool:
        return bool(self.affected_periods)


def parse_status(value: str | LeaveStatus) -> LeaveStatus:
    """Read a status in any casing. Raises ``ValueError`` for unknown statuses."""
    if isinstance(value, LeaveStatus):
        return value
    return LeaveStatus(value.strip().upper())


def missing_required_fields(state: LeaveState) -> list[str]:
    """Every required field that is empty on ``state``, in declaration order."""
    missing = []
    for name in REQUIRED_FIELDS:
        value = getattr(state, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return missing


def _periods(state: LeaveState | None, quota_type: QuotaType) -> set[tuple[str, str]]:
    if state is None or not state.person_id or state.start_date is None:
        return set()
    return {(state.person_id, period_key(quota_type, state.start_date))}


def _check_move(current: LeaveState | None, target: LeaveStatus, *, resubmit: bool) -> None:
    if current is None:
        if target not in _CREATABLE:
            raise InvalidTransitionError("new", target.value)
        return
    if resubmit:
        if target != LeaveStatus.PENDING or current.status not in _RESUBMITTABLE:
            raise InvalidTransitionError(current.status.value, f"{target.value} (resubmit)")
        return
    if target not in _TRANSITIONS[current.status]:
        raise InvalidTransitionError(current.status.value, target.value)


def transition(
    current: LeaveState | None,
    target: LeaveStatus | str | None,
    changes: Mapping[str, Any] | None = None,
    *,
    quota_type: QuotaType,
    now: datetime | None = None,
    resubmit: bool = False,
) -> TransitionResult:
    """Apply field ``changes`` and move the record to ``target``.

    ``current`` is ``None`` when the record is being created. A ``None`` target
    keeps the current status (an in-place edit). Raises ``InvalidTransitionError``
    for a forbidden move and ``LeaveValidationError`` listing every missing field
    when the record enters PENDING or APPROVED.
    """
    changes = dict(changes or {})
    unknown = sorted(set(changes) - EDITABLE_FIELDS)
    if unknown:
        msg = f"Fields cannot be edited through a transition: {', '.join(unknown)}"
        raise ValueError(msg)

    if target is None:
        new_status = current.status if current is not None else LeaveStatus.DRAFT
    else:
        new_status = parse_status(target)
    _check_move(current, new_status, resubmit=resubmit)

    state = replace(current or LeaveState(), **changes, status=new_status)

    if new_status in _VALIDATED:
        missing = missing_required_fields(state)
        if missing:
            raise LeaveValidationError(missing)

    stamp = now or datetime.now(UTC)
    if resubmit:
        state = replace(state, submitted_at=stamp, approved_at=None, registered_date=None)
    if new_status in _VALIDATED and state.submitted_at is None:
        state = replace(state, submitted_at=stamp)
    if new_status == LeaveStatus.APPROVED:
        approved_at = state.approved_at or stamp
        state = replace(
            state,
            approved_at=approved_at,
            registered_date=state.registered_date or format_registered_date(approved_at),
        )

    previous_counted = current is not None and current.status == LeaveStatus.APPROVED
    moved = (
        current is None
        or current.start_date != state.start_date
        or current.end_date != state.end_date
        or current.person_id != state.person_id
        or previous_counted != (new_status == LeaveStatus.APPROVED)
    )
    affected = _periods(current, quota_type) | _periods(state, quota_type) if moved else set()
    return TransitionResult(previous=current, state=state, affected_periods=frozenset(affected))


def backfill_registered_date(
    status: LeaveStatus,
    registered_date: str | None,
    approved_at: datetime | None,
    created_at: datetime | None,
) -> str | None:
    """Registered date an approved record should carry when it has none yet.

    Returns ``None`` when nothing needs to be written.
    """
    if status != LeaveStatus.APPROVED or registered_date:
        return None
    source = approved_at or created_at or datetime.now(UTC)
    return format_registered_date(source)
