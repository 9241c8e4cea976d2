from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leavequota.config import get_settings
from leavequota.models.policy import LeavePolicyRecord
from leavequota.schemas.policy import LeavePolicySettings, PolicyResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def default_policy() -> LeavePolicySettings:
    """Policy applied to tenants that have not stored one."""
    settings = get_settings()
    return LeavePolicySettings(
        quota_type=settings.default_quota_type,
        working_days=tuple(settings.default_working_days),
        allocations=dict(settings.default_allocations),
    )


def _settings_from_record(record: LeavePolicyRecord) -> LeavePolicySettings:
    """Validate a stored policy, falling back to default working days when none are stored."""
    return LeavePolicySettings(
        quota_type=record.quota_type,
        working_days=tuple(record.working_days or get_settings().default_working_days),
        allocations=record.allocations or {},
    )


def _build_policy_response(
    tenant_id: str,
    policy: LeavePolicySettings,
    record: LeavePolicyRecord | None,
) -> PolicyResponse:
    return PolicyResponse(
        tenant_id=tenant_id,
        quota_type=policy.quota_type,
        working_days=list(policy.working_days),
        allocations=policy.allocations,
        is_default=record is None,
        updated_at=record.updated_at if record is not None else None,
    )


async def _get_policy_record(session: AsyncSession, tenant_id: str) -> LeavePolicyRecord | None:
    result = await session.execute(select(LeavePolicyRecord).where(col(LeavePolicyRecord.tenant_id) == tenant_id))
    return result.scalar_one_or_none()


async def load_policy(session: AsyncSession, tenant_id: str) -> LeavePolicySettings:
    """Load the tenant's policy fresh on every call, or the default when none is stored."""
    record = await _get_policy_record(session, tenant_id)
    if record is None:
        return default_policy()
    return _settings_from_record(record)


async def get_policy(session: AsyncSession, tenant_id: str) -> PolicyResponse:
    """Get the tenant's policy (or the default) as a response."""
    record = await _get_policy_record(session, tenant_id)
    policy = default_policy() if record is None else _settings_from_record(record)
    return _build_policy_response(tenant_id, policy, record)


async def save_policy(
    session: AsyncSession,
    tenant_id: str,
    payload: LeavePolicySettings,
) -> LeavePolicyRecord:
    """Create or replace the tenant's policy. The caller commits."""
    record = await _get_policy_record(session, tenant_id)
    if record is None:
        record = LeavePolicyRecord(tenant_id=tenant_id)
        session.add(record)

    record.quota_type = payload.quota_type.value
    record.working_days = list(payload.working_days)
    record.allocations = dict(payload.allocations)
    await session.flush()

    logger.info(
        "Saved leave policy tenant=%s quota_type=%s working_days=%s buckets=%d",
        tenant_id,
        record.quota_type,
        record.working_days,
        len(record.allocations),
    )
    return record


async def replace_policy(
    session: AsyncSession,
    tenant_id: str,
    payload: LeavePolicySettings,
) -> PolicyResponse:
    """Replace the tenant's policy, then re-derive every record of the tenant under it.

    The policy is committed before the sweep, so a failing sweep leaves the new
    policy in place for the next read or worker run to heal against.
    """
    from leavequota.services.leave import run_recompute_sweep

    record = await save_policy(session, tenant_id, payload)
    await session.commit()
    await session.refresh(record)

    result = await run_recompute_sweep(session, tenant_id)
    logger.info(
        "Policy change sweep tenant=%s records=%d healed=%d errors=%d",
        tenant_id,
        result.records,
        result.healed,
        result.errors,
    )
    return _build_policy_response(tenant_id, _settings_from_record(record), record)
