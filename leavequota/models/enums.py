from __future__ import annotations

import enum


class QuotaType(enum.StrEnum):
    """Accounting period over which a person's leave allowance resets."""

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class LeaveStatus(enum.StrEnum):
    """State machine for leave records."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
