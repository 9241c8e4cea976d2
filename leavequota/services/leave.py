from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from leavequota.engine.lifecycle import LeaveState, backfill_registered_date, transition
from leavequota.engine.period import period_key
from leavequota.engine.recompute import (
    BalancePreview,
    BalanceResult,
    DerivedFields,
    LeaveEntry,
    preview_balance,
    recompute_balances,
    sweep,
)
from leavequota.exceptions import AppError
from leavequota.models.enums import LeaveStatus
from leavequota.models.leave import LeaveRecord
from leavequota.schemas.leave import (
    BalancePreviewResponse,
    LeaveListResponse,
    LeaveResponse,
)
from leavequota.services.person import get_person_directory, live_job_levels
from leavequota.services.policy import load_policy

if TYPE_CHECKING:
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavequota.engine.lifecycle import TransitionResult
    from leavequota.schemas.leave import CreateLeavePayload, UpdateLeavePayload
    from leavequota.schemas.policy import LeavePolicySettings

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = [LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value]


@dataclass
class SweepRunResult:
    """Summary of a self-healing sweep over one or more tenants."""

    tenants: int = 0
    records: int = 0
    healed: int = 0
    errors: int = 0


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _to_entry(record: LeaveRecord, sequence: int) -> LeaveEntry:
    """Map a stored record onto the engine's input type."""
    return LeaveEntry(
        id=record.id,
        person_id=record.person_id or "",
        status=LeaveStatus(record.status),
        start_date=record.start_date,
        end_date=record.end_date,
        sequence=sequence,
        job_level=record.job_level,
        persisted=DerivedFields(
            days=record.days,
            allocation_total=record.allocation_total,
            allocation_used=record.allocation_used,
            balance=record.balance,
            limit_reached=record.limit_reached,
        ),
    )


def _to_state(record: LeaveRecord) -> LeaveState:
    return LeaveState(
        person_id=record.person_id,
        person_name=record.person_name,
        job_level=record.job_level,
        leave_type=record.leave_type,
        title=record.title,
        reason=record.reason,
        comments=record.comments,
        start_date=record.start_date,
        end_date=record.end_date,
        status=LeaveStatus(record.status),
        submitted_at=record.submitted_at,
        approved_at=record.approved_at,
        registered_date=record.registered_date,
    )


def _apply_state(record: LeaveRecord, state: LeaveState) -> None:
    record.person_id = state.person_id
    record.person_name = state.person_name
    record.job_level = state.job_level
    record.leave_type = state.leave_type
    record.title = state.title
    record.reason = state.reason
    record.comments = state.comments
    record.start_date = state.start_date
    record.end_date = state.end_date
    record.status = state.status.value
    record.submitted_at = state.submitted_at
    record.approved_at = state.approved_at
    record.registered_date = state.registered_date


def _apply_results(records: dict[uuid.UUID, LeaveRecord], results: list[BalanceResult]) -> int:
    """Write drifted derived fields onto the loaded records. Returns the healed count."""
    healed = 0
    for result in results:
        if not result.stale:
            continue
        record = records.get(result.record_id)  # type: ignore[arg-type]
        if record is None:
            continue
        for name, value in result.changes().items():
            setattr(record, name, value)
        healed += 1
    return healed


def _backfill_registered_dates(records: list[LeaveRecord]) -> int:
    filled = 0
    for record in records:
        value = backfill_registered_date(
            LeaveStatus(record.status), record.registered_date, record.approved_at, record.created_at
        )
        if value is not None:
            record.registered_date = value
            filled += 1
    return filled


def _build_preview_response(preview: BalancePreview) -> BalancePreviewResponse:
    return BalancePreviewResponse(
        period_key=preview.period_key,
        days=preview.days,
        allocation_total=preview.allocation_total,
        prior_used=preview.prior_used,
        allocation_used=preview.allocation_used,
        balance=preview.balance,
        limit_reached=preview.limit_reached,
        enforced=preview.allocation_total is not None,
    )


def _build_leave_response(record: LeaveRecord, preview: BalancePreview | None = None) -> LeaveResponse:
    """Map a leave record model to its response schema."""
    return LeaveResponse(
        id=record.id,
        tenant_id=record.tenant_id,
        person_id=record.person_id,
        person_name=record.person_name,
        job_level=record.job_level,
        leave_type=record.leave_type,
        title=record.title,
        reason=record.reason,
        comments=record.comments,
        start_date=record.start_date,
        end_date=record.end_date,
        status=LeaveStatus(record.status),
        days=record.days,
        allocation_total=record.allocation_total,
        allocation_used=record.allocation_used,
        balance=record.balance,
        limit_reached=record.limit_reached,
        submitted_at=record.submitted_at,
        approved_at=record.approved_at,
        registered_date=record.registered_date,
        created_at=record.created_at,
        preview=_build_preview_response(preview) if preview is not None else None,
    )


async def _get_leave_or_404(
    session: AsyncSession,
    tenant_id: str,
    leave_id: uuid.UUID,
) -> LeaveRecord:
    """Fetch a leave record by ID scoped to tenant. Raises 404 if not found."""
    result = await session.execute(
        select(LeaveRecord).where(
            col(LeaveRecord.id) == leave_id,
            col(LeaveRecord.tenant_id) == tenant_id,
        )
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise AppError("Leave record not found", status_code=404)
    return record


async def _load_records(
    session: AsyncSession,
    tenant_id: str,
    person_id: str | None = None,
) -> list[LeaveRecord]:
    """Load records in creation order, which is the engine's tie-break order."""
    query = select(LeaveRecord).where(col(LeaveRecord.tenant_id) == tenant_id)
    if person_id is not None:
        query = query.where(col(LeaveRecord.person_id) == person_id)
    result = await session.execute(query.order_by(col(LeaveRecord.created_at), col(LeaveRecord.id)))
    return list(result.scalars().all())


async def _resolve_job_level(tenant_id: str, person_id: str | None, snapshot: str | None) -> str | None:
    """Prefer the live directory job level, falling back to the record snapshot."""
    if person_id:
        person = await get_person_directory().get_person(tenant_id, person_id)
        if person is not None and person.job_level:
            return person.job_level
    return snapshot


async def _require_person(tenant_id: str, person_id: str | None) -> None:
    if not person_id or await get_person_directory().get_person(tenant_id, person_id) is None:
        raise AppError("The selected person does not exist or has been deleted", status_code=400)


async def _check_leave_overlap(
    session: AsyncSession,
    tenant_id: str,
    person_id: str,
    start_date: date,
    end_date: date,
    exclude_leave_id: uuid.UUID | None = None,
) -> None:
    """Raise 409 if a pending or approved record of the same person overlaps the range.

    Ranges are inclusive: existing.start <= new.end AND existing.end >= new.start.
    """
    query = select(LeaveRecord).where(
        col(LeaveRecord.tenant_id) == tenant_id,
        col(LeaveRecord.person_id) == person_id,
        col(LeaveRecord.status).in_(_ACTIVE_STATUSES),
        col(LeaveRecord.start_date) <= end_date,
        col(LeaveRecord.end_date) >= start_date,
    )
    if exclude_leave_id is not None:
        query = query.where(col(LeaveRecord.id) != exclude_leave_id)

    result = await session.execute(query.limit(1))
    existing = result.scalar_one_or_none()
    if existing is not None:
        raise AppError(
            f"A leave record already exists for this person from {existing.start_date} to {existing.end_date}",
            status_code=409,
        )


async def _validate_active_record(
    session: AsyncSession,
    tenant_id: str,
    outcome: TransitionResult,
    exclude_leave_id: uuid.UUID | None = None,
) -> None:
    """Directory and overlap checks for a record entering or staying in PENDING/APPROVED."""
    state = outcome.state
    if state.status.value not in _ACTIVE_STATUSES:
        return
    previous = outcome.previous
    if previous is None or previous.status == LeaveStatus.DRAFT or previous.person_id != state.person_id:
        await _require_person(tenant_id, state.person_id)
    if state.person_id and state.start_date is not None and state.end_date is not None:
        await _check_leave_overlap(
            session, tenant_id, state.person_id, state.start_date, state.end_date, exclude_leave_id
        )


async def _recompute_affected(
    session: AsyncSession,
    tenant_id: str,
    affected: frozenset[tuple[str, str]],
    policy: LeavePolicySettings,
) -> int:
    """Recompute every affected (person, period) pair and write drift onto the records."""
    periods_by_person: dict[str, set[str]] = defaultdict(set)
    for person_id, key in affected:
        periods_by_person[person_id].add(key)

    healed = 0
    for person_id, keys in periods_by_person.items():
        records = await _load_records(session, tenant_id, person_id)
        entries = [_to_entry(r, i) for i, r in enumerate(records)]
        snapshot = next((r.job_level for r in records if r.job_level), None)
        job_level = await _resolve_job_level(tenant_id, person_id, snapshot)
        by_id = {r.id: r for r in records}
        for key in sorted(keys):
            outcome = recompute_balances(person_id, key, entries, policy, job_level)
            healed += _apply_results(by_id, outcome.results)
    return healed


def _record_periods(record: LeaveRecord, policy: LeavePolicySettings) -> frozenset[tuple[str, str]]:
    if not record.person_id or record.start_date is None:
        return frozenset()
    return frozenset({(record.person_id, period_key(policy.quota_type, record.start_date))})


async def _preview_for(
    session: AsyncSession,
    tenant_id: str,
    candidate: LeaveRecord,
    policy: LeavePolicySettings,
) -> BalancePreview:
    others: list[LeaveRecord] = []
    if candidate.person_id:
        others = await _load_records(session, tenant_id, candidate.person_id)
    entries = [_to_entry(r, i) for i, r in enumerate(others)]
    job_level = await _resolve_job_level(tenant_id, candidate.person_id, candidate.job_level)
    return preview_balance(_to_entry(candidate, len(entries)), entries, policy, job_level)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_leave(
    session: AsyncSession,
    tenant_id: str,
    payload: CreateLeavePayload,
) -> LeaveResponse:
    """Create a leave record.

    Flow:
    1. Load the tenant policy.
    2. Run the lifecycle transition (validates required fields, stamps timestamps).
    3. Directory and overlap checks for non-draft records.
    4. Write-time preview against the person's other records.
    5. Insert, recompute the affected periods, commit.
    """
    policy = await load_policy(session, tenant_id)
    outcome = transition(
        None,
        payload.status,
        payload.model_dump(exclude={"status"}),
        quota_type=policy.quota_type,
    )
    await _validate_active_record(session, tenant_id, outcome)

    record = LeaveRecord(tenant_id=tenant_id)
    _apply_state(record, outcome.state)
    record.job_level = await _resolve_job_level(tenant_id, record.person_id, record.job_level)

    preview = await _preview_for(session, tenant_id, record, policy) if record.person_id else None
    session.add(record)
    await session.flush()

    healed = await _recompute_affected(session, tenant_id, outcome.affected_periods, policy)
    await session.commit()
    await session.refresh(record)

    logger.info(
        "Created leave record id=%s tenant=%s status=%s healed=%d", record.id, tenant_id, record.status, healed
    )
    return _build_leave_response(record, preview)


async def update_leave(
    session: AsyncSession,
    tenant_id: str,
    leave_id: uuid.UUID,
    payload: UpdateLeavePayload,
) -> LeaveResponse:
    """Edit and/or transition a leave record, recomputing both old and new periods."""
    record = await _get_leave_or_404(session, tenant_id, leave_id)
    policy = await load_policy(session, tenant_id)

    outcome = transition(
        _to_state(record),
        payload.status,
        payload.field_changes(),
        quota_type=policy.quota_type,
        resubmit=payload.resubmit,
    )
    await _validate_active_record(session, tenant_id, outcome, exclude_leave_id=record.id)

    _apply_state(record, outcome.state)
    record.job_level = await _resolve_job_level(tenant_id, record.person_id, record.job_level)

    preview = await _preview_for(session, tenant_id, record, policy) if record.person_id else None
    await session.flush()

    healed = await _recompute_affected(session, tenant_id, outcome.affected_periods, policy)
    await session.commit()
    await session.refresh(record)

    logger.info(
        "Updated leave record id=%s tenant=%s status=%s healed=%d", record.id, tenant_id, record.status, healed
    )
    return _build_leave_response(record, preview)


async def delete_leave(
    session: AsyncSession,
    tenant_id: str,
    leave_id: uuid.UUID,
) -> None:
    """Delete a leave record and recompute the period it consumed quota in."""
    record = await _get_leave_or_404(session, tenant_id, leave_id)
    policy = await load_policy(session, tenant_id)

    affected = _record_periods(record, policy)

    await session.delete(record)
    await session.flush()

    healed = await _recompute_affected(session, tenant_id, affected, policy)
    await session.commit()
    logger.info("Deleted leave record id=%s tenant=%s healed=%d", leave_id, tenant_id, healed)


async def get_leave(
    session: AsyncSession,
    tenant_id: str,
    leave_id: uuid.UUID,
) -> LeaveResponse:
    """Get a single leave record by ID."""
    record = await _get_leave_or_404(session, tenant_id, leave_id)
    return _build_leave_response(record)


async def preview_leave(
    session: AsyncSession,
    tenant_id: str,
    payload: CreateLeavePayload,
    leave_id: uuid.UUID | None = None,
) -> BalancePreviewResponse:
    """Show the remaining quota for a candidate record without persisting anything.

    When ``leave_id`` names an existing record the candidate takes its identity,
    so the record is excluded from its own prior usage. The person and job level
    fall back to the existing record when the payload leaves them out.
    """
    policy = await load_policy(session, tenant_id)
    candidate = LeaveRecord(tenant_id=tenant_id, **payload.model_dump(exclude={"status"}))
    candidate.status = payload.status.value
    if leave_id is not None:
        existing = await _get_leave_or_404(session, tenant_id, leave_id)
        candidate.id = existing.id
        candidate.person_id = candidate.person_id or existing.person_id
        candidate.job_level = candidate.job_level or existing.job_level
    preview = await _preview_for(session, tenant_id, candidate, policy)
    return _build_preview_response(preview)


async def sweep_tenant(session: AsyncSession, tenant_id: str) -> tuple[list[LeaveRecord], int]:
    """Read-time sweep over every record of a tenant, applying fresh values in memory.

    Returns the loaded records and the number of records whose derived fields
    (or missing registered date) were healed. The caller commits.
    """
    policy = await load_policy(session, tenant_id)
    records = await _load_records(session, tenant_id)
    levels = await live_job_levels(get_person_directory(), tenant_id)

    entries = [_to_entry(r, i) for i, r in enumerate(records)]
    result = sweep(entries, policy, levels)
    healed = _apply_results({r.id: r for r in records}, result.results)
    healed += _backfill_registered_dates(records)
    if healed:
        logger.info("Sweep healed %d stale leave records for tenant=%s", healed, tenant_id)
    return records, healed


async def list_leaves(
    session: AsyncSession,
    tenant_id: str,
    person_id: str | None = None,
    status_filter: LeaveStatus | None = None,
) -> LeaveListResponse:
    """List leave records after a read-time sweep.

    Fresh values are returned even when writing the healed fields back fails;
    the next sweep retries the write.
    """
    records, healed = await sweep_tenant(session, tenant_id)
    if person_id is not None:
        records = [r for r in records if r.person_id == person_id]
    if status_filter is not None:
        records = [r for r in records if r.status == status_filter.value]
    items = [_build_leave_response(r) for r in records]

    if healed:
        try:
            await session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to persist %d healed leave records for tenant=%s", healed, tenant_id)
            await session.rollback()

    return LeaveListResponse(items=items, total=len(items), healed=healed)


async def list_tenant_ids(session: AsyncSession) -> list[str]:
    """Every tenant that has at least one leave record."""
    result = await session.execute(select(LeaveRecord.tenant_id).distinct())
    return [row[0] for row in result.all()]


async def run_recompute_sweep(
    session: AsyncSession,
    tenant_id: str | None = None,
) -> SweepRunResult:
    """Heal stale derived fields for one tenant, or every tenant when ``tenant_id`` is None.

    A failing tenant is logged and counted; the run carries on with the next one.
    """
    tenant_ids = [tenant_id] if tenant_id is not None else await list_tenant_ids(session)
    result = SweepRunResult()

    for tid in tenant_ids:
        result.tenants += 1
        try:
            records, healed = await sweep_tenant(session, tid)
            await session.commit()
            result.records += len(records)
            result.healed += healed
        except Exception:
            logger.exception("Error sweeping leave records for tenant=%s", tid)
            await session.rollback()
            result.errors += 1

    return result

