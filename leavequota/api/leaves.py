# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leavequota.db import SessionDep
from leavequota.models.enums import LeaveStatus
from leavequota.schemas.leave import (
    BalancePreviewResponse,
    CreateLeavePayload,
    LeaveListResponse,
    LeaveResponse,
    UpdateLeavePayload,
)
from leavequota.services import leave as leave_service

leaves_router = APIRouter(
    prefix="/tenants/{tenant_id}/leaves",
    tags=["leaves"],
)


@leaves_router.get("", response_model=LeaveListResponse)
async def list_leaves(
    tenant_id: str,
    session: SessionDep,
    person_id: str | None = Query(default=None),
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
) -> LeaveListResponse:
    """List leave records, healing stale quota fields on the way."""
    return await leave_service.list_leaves(session, tenant_id, person_id, status_filter)


@leaves_router.post("", response_model=LeaveResponse, status_code=status.HTTP_201_CREATED)
async def create_leave(
    tenant_id: str,
    payload: CreateLeavePayload,
    session: SessionDep,
) -> LeaveResponse:
    """Create a leave record (DRAFT unless another status is given)."""
    return await leave_service.create_leave(session, tenant_id, payload)


@leaves_router.post("/preview", response_model=BalancePreviewResponse)
async def preview_leave(
    tenant_id: str,
    payload: CreateLeavePayload,
    session: SessionDep,
    leave_id: uuid.UUID | None = Query(default=None),
) -> BalancePreviewResponse:
    """Show the balance a candidate record would leave, without saving it."""
    return await leave_service.preview_leave(session, tenant_id, payload, leave_id)


@leaves_router.get("/{leave_id}", response_model=LeaveResponse)
async def get_leave(
    tenant_id: str,
    leave_id: uuid.UUID,
    session: SessionDep,
) -> LeaveResponse:
    """Get a single leave record."""
    return await leave_service.get_leave(session, tenant_id, leave_id)


@leaves_router.patch("/{leave_id}", response_model=LeaveResponse)
async def update_leave(
    tenant_id: str,
    leave_id: uuid.UUID,
    payload: UpdateLeavePayload,
    session: SessionDep,
) -> LeaveResponse:
    """Edit and/or transition a leave record."""
    return await leave_service.update_leave(session, tenant_id, leave_id, payload)


@leaves_router.delete("/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave(
    tenant_id: str,
    leave_id: uuid.UUID,
    session: SessionDep,
) -> None:
    """Delete a leave record."""
    await leave_service.delete_leave(session, tenant_id, leave_id)
