from sqlmodel import SQLModel

from leave_engine.models.audit import BalanceAuditEntry
from leave_engine.models.balance import LeaveBalance, TrainerLeaveAccount
from leave_engine.models.base import TimestampMixin, UUIDBase
from leave_engine.models.enums import (
    AuditEntryType,
    LeaveType,
    NotificationEvent,
    RequestStatus,
    TrainerCategory,
    UserRole,
    UserStatus,
)
from leave_engine.models.job import JobLease
from leave_engine.models.request import LeaveRequest

__all__ = [
    "AuditEntryType",
    "BalanceAuditEntry",
    "JobLease",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveType",
    "NotificationEvent",
    "RequestStatus",
    "SQLModel",
    "TimestampMixin",
    "TrainerCategory",
    "TrainerLeaveAccount",
    "UUIDBase",
    "UserRole",
    "UserStatus",
]
