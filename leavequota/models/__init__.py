from sqlmodel import SQLModel

from leavequota.models.base import TenantRecord
from leavequota.models.enums import LeaveStatus, QuotaType
from leavequota.models.leave import LeaveRecord
from leavequota.models.policy import LeavePolicyRecord

__all__ = [
    "LeavePolicyRecord",
    "LeaveRecord",
    "LeaveStatus",
    "QuotaType",
    "SQLModel",
    "TenantRecord",
]
