# ruff: noqa: TC003
from __future__ import annotations

from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from leavequota.models.base import TenantRecord
from leavequota.models.enums import QuotaType


class LeavePolicyRecord(TenantRecord, table=True):
    """A tenant's leave policy: quota period, working weekdays and per-level allocations."""

    __tablename__ = "leave_policy"
    __table_args__ = (sa.UniqueConstraint("tenant_id", name="uq_leave_policy_tenant"),)

    quota_type: str = Field(default=QuotaType.MONTHLY, max_length=50)
    working_days: list[int] = Field(default_factory=list, sa_type=sa.JSON)
    allocations: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
