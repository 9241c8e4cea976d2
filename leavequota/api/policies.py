# ruff: noqa: TC001
from __future__ import annotations

from fastapi import APIRouter

from leavequota.db import SessionDep
from leavequota.schemas.policy import LeavePolicySettings, PolicyResponse
from leavequota.services import policy as policy_service

policies_router = APIRouter(
    prefix="/tenants/{tenant_id}/leave-policy",
    tags=["policies"],
)


@policies_router.get("", response_model=PolicyResponse)
async def get_policy(
    tenant_id: str,
    session: SessionDep,
) -> PolicyResponse:
    """Get the tenant's leave policy, or the default when none is stored."""
    return await policy_service.get_policy(session, tenant_id)


@policies_router.put("", response_model=PolicyResponse)
async def replace_policy(
    tenant_id: str,
    payload: LeavePolicySettings,
    session: SessionDep,
) -> PolicyResponse:
    """Replace the tenant's leave policy and re-derive every record under it."""
    return await policy_service.replace_policy(session, tenant_id, payload)
