from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from leavequota.models.enums import QuotaType

# ---------------------------------------------------------------------------
# Policy value passed into the engine
# ---------------------------------------------------------------------------


class LeavePolicySettings(BaseModel):
    """Validated leave policy for one tenant.

    Weekdays are numbered 0 (Sunday) through 6 (Saturday).
    """

    quota_type: QuotaType = QuotaType.MONTHLY
    working_days: tuple[int, ...] = (1, 2, 3, 4, 5, 6)
    allocations: dict[str, int] = Field(default_factory=dict)

    @field_validator("quota_type", mode="before")
    @classmethod
    def _normalize_quota_type(cls, value: Any) -> Any:
        # Legacy records store "Monthly Quota", "Quarterly Quota", "Yearly Quota".
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized.endswith(" QUOTA"):
                normalized = normalized.removesuffix(" QUOTA").strip()
            return normalized
        return value

    @field_validator("working_days")
    @classmethod
    def _validate_working_days(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            msg = "working_days must contain at least one weekday"
            raise ValueError(msg)
        out_of_range = [d for d in value if d < 0 or d > 6]
        if out_of_range:
            msg = f"working_days must be between 0 (Sunday) and 6 (Saturday), got {out_of_range}"
            raise ValueError(msg)
        return tuple(sorted(set(value)))

    @field_validator("allocations")
    @classmethod
    def _validate_allocations(cls, value: dict[str, int]) -> dict[str, int]:
        cleaned: dict[str, int] = {}
        for label, days in value.items():
            key = label.strip()
            if not key:
                msg = "allocation labels must not be blank"
                raise ValueError(msg)
            if days < 0:
                msg = f"allocation for {key!r} must not be negative"
                raise ValueError(msg)
            cleaned[key] = days
        return cleaned


# ---------------------------------------------------------------------------
# API response schemas
# ---------------------------------------------------------------------------


class PolicyResponse(BaseModel):
    """Response schema for a tenant's leave policy."""

    tenant_id: str
    quota_type: QuotaType
    working_days: list[int]
    allocations: dict[str, int]
    is_default: bool
    updated_at: datetime | None
