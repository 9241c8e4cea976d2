# ruff: noqa: TC003
from __future__ import annotations

from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leavequota.models.base import TenantRecord
from leavequota.models.enums import LeaveStatus


class LeaveRecord(TenantRecord, table=True):
    """A person's leave record with its lifecycle state and derived quota fields.

    ``days``, ``allocation_total``, ``allocation_used``, ``balance`` and
    ``limit_reached`` are written only by the recompute engine.
    """

    __tablename__ = "leave_record"
    __table_args__ = (
        sa.Index("ix_leave_tenant_person_start", "tenant_id", "person_id", "start_date"),
        sa.Index("ix_leave_tenant_status", "tenant_id", "status"),
    )

    person_id: str | None = Field(default=None, max_length=255)
    person_name: str | None = Field(default=None, max_length=255)
    job_level: str | None = Field(default=None, max_length=255)
    leave_type: str | None = Field(default=None, max_length=100)
    title: str | None = Field(default=None, max_length=255)
    reason: str | None = None
    comments: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: str = Field(
        default=LeaveStatus.DRAFT, max_length=50, index=True, sa_column_kwargs={"server_default": "DRAFT"}
    )

    days: int | None = None
    allocation_total: int | None = None
    allocation_used: int | None = None
    balance: int | None = None
    limit_reached: bool = Field(default=False, sa_column_kwargs={"server_default": sa.false()})

    submitted_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
    approved_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
    registered_date: str | None = Field(default=None, max_length=50)
