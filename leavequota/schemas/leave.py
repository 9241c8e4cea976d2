# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from leavequota.engine.calendar import parse_calendar_date
from leavequota.engine.lifecycle import parse_status
from leavequota.models.enums import LeaveStatus


def _calendar_date(value: Any) -> Any:
    if value is None or value == "":
        return None
    return parse_calendar_date(value)


def _status(value: Any) -> Any:
    if value is None or isinstance(value, LeaveStatus):
        return value
    if isinstance(value, str):
        return parse_status(value)
    return value


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class LeaveFields(BaseModel):
    """Caller-owned leave fields shared by create and update payloads.

    Dates must be plain ``YYYY-MM-DD`` calendar dates; timestamps are rejected.
    """

    person_id: str | None = Field(default=None, max_length=255)
    person_name: str | None = Field(default=None, max_length=255)
    job_level: str | None = Field(default=None, max_length=255)
    leave_type: str | None = Field(default=None, max_length=100)
    title: str | None = Field(default=None, max_length=255)
    reason: str | None = None
    comments: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Any:
        return _calendar_date(value)


class CreateLeavePayload(LeaveFields):
    """Request body for creating a leave record. Records start as drafts by default."""

    status: LeaveStatus = LeaveStatus.DRAFT

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> Any:
        return _status(value)


class UpdateLeavePayload(LeaveFields):
    """Request body for editing and/or transitioning a leave record.

    Only fields present in the body are applied. ``resubmit`` sends an approved,
    rejected or cancelled record back to PENDING with fresh lifecycle stamps.
    """

    status: LeaveStatus | None = None
    resubmit: bool = False

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> Any:
        return _status(value)

    def field_changes(self) -> dict[str, Any]:
        """Return the explicitly set leave fields."""
        return self.model_dump(include=set(LeaveFields.model_fields) & self.model_fields_set)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalancePreviewResponse(BaseModel):
    """Remaining quota if the candidate record is committed."""

    period_key: str | None
    days: int | None
    allocation_total: int | None
    prior_used: int
    allocation_used: int | None
    balance: int | None
    limit_reached: bool
    enforced: bool


class LeaveResponse(BaseModel):
    """Response schema for a single leave record."""

    id: uuid.UUID
    tenant_id: str
    person_id: str | None
    person_name: str | None
    job_level: str | None
    leave_type: str | None
    title: str | None
    reason: str | None
    comments: str | None
    start_date: date | None
    end_date: date | None
    status: LeaveStatus
    days: int | None
    allocation_total: int | None
    allocation_used: int | None
    balance: int | None
    limit_reached: bool
    submitted_at: datetime | None
    approved_at: datetime | None
    registered_date: str | None
    created_at: datetime
    preview: BalancePreviewResponse | None = None


class LeaveListResponse(BaseModel):
    """Leave records for a tenant after a read-time sweep."""

    items: list[LeaveResponse]
    total: int
    healed: int = Field(description="Records whose persisted derived fields were stale and rewritten")
