from __future__ import annotations

import enum


class LeaveType(enum.StrEnum):
    """Kinds of leave a trainer can request."""

    SICK = "SICK"
    CASUAL = "CASUAL"
    PAID = "PAID"


class TrainerCategory(enum.StrEnum):
    """Employment category; only PERMANENT trainers accrue and roll over."""

    PERMANENT = "PERMANENT"
    CONTRACTED = "CONTRACTED"


class UserRole(enum.StrEnum):
    ADMIN = "ADMIN"
    HR = "HR"
    TRAINER = "TRAINER"


class UserStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"


class RequestStatus(enum.StrEnum):
    """State machine for leave requests."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class AuditEntryType(enum.StrEnum):
    """Kind of balance mutation recorded in the audit log."""

    APPROVE_DEBIT = "APPROVE_DEBIT"
    CANCEL_CREDIT = "CANCEL_CREDIT"
    ACCRUAL = "ACCRUAL"
    ROLLOVER = "ROLLOVER"
    ADMIN_EDIT = "ADMIN_EDIT"


class NotificationEvent(enum.StrEnum):
    LEAVE_REQUEST = "LEAVE_REQUEST"
    LEAVE_APPROVED = "LEAVE_APPROVED"
    LEAVE_REJECTED = "LEAVE_REJECTED"
    LEAVE_CANCELLED = "LEAVE_CANCELLED"
    BALANCE_UPDATED = "BALANCE_UPDATED"


ACTIVE_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.APPROVED)
ADMIN_ROLES = (UserRole.ADMIN, UserRole.HR)
