"""Balance ledger mutations.

Every function here acts on a ``LeaveBalance`` row that the caller has
already locked, and records exactly one audit entry through the caller's
session. Nothing here commits: the caller's unit of work owns the
transaction, so a request status change, the counter update and its audit
entry land together or not at all.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from leave_engine.exceptions import InsufficientBalanceError, ValidationError
from leave_engine.models.base import now_utc
from leave_engine.models.enums import AuditEntryType, LeaveType
from leave_engine.services.audit import write_audit_entry

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.models.audit import BalanceAuditEntry
    from leave_engine.models.balance import LeaveBalance


def check_available(balance: LeaveBalance, days: int) -> bool:
    """True if the balance is unlimited or covers ``days``."""
    return balance.is_unlimited or balance.available >= days


def resulting_available(balance: LeaveBalance) -> int | None:
    return None if balance.is_unlimited else balance.available


def _touch(balance: LeaveBalance) -> None:
    balance.version += 1
    balance.updated_at = now_utc()


def _require_positive(days: int) -> None:
    if days <= 0:
        raise ValidationError(f"Day count must be positive, got {days}")


def debit(
    session: AsyncSession,
    balance: LeaveBalance,
    days: int,
    *,
    actor_id: uuid.UUID,
    reason: str,
    source_id: str,
    request_id: uuid.UUID | None = None,
) -> BalanceAuditEntry:
    """Consume ``days`` from the balance. Raises InsufficientBalanceError if not covered."""
    _require_positive(days)
    if not check_available(balance, days):
        raise InsufficientBalanceError(
            f"Insufficient {balance.leave_type} leave balance. Available: {balance.available}, Requested: {days}",
            context={"leave_type": balance.leave_type, "available": balance.available, "requested": days},
        )

    if not balance.is_unlimited:
        balance.available -= days
    balance.used += days
    _touch(balance)

    return write_audit_entry(
        session,
        trainer_id=balance.trainer_id,
        leave_type=LeaveType(balance.leave_type),
        entry_type=AuditEntryType.APPROVE_DEBIT,
        delta=-days,
        reason=reason,
        actor_id=actor_id,
        resulting_available=resulting_available(balance),
        source_id=source_id,
        request_id=request_id,
    )


def credit(
    session: AsyncSession,
    balance: LeaveBalance,
    days: int,
    *,
    actor_id: uuid.UUID,
    reason: str,
    source_id: str,
    request_id: uuid.UUID | None = None,
) -> BalanceAuditEntry:
    """Give back ``days`` previously consumed by an approved request."""
    _require_positive(days)
    if not balance.is_unlimited:
        balance.available += days
    balance.used = max(0, balance.used - days)
    _touch(balance)

    return write_audit_entry(
        session,
        trainer_id=balance.trainer_id,
        leave_type=LeaveType(balance.leave_type),
        entry_type=AuditEntryType.CANCEL_CREDIT,
        delta=days,
        reason=reason,
        actor_id=actor_id,
        resulting_available=resulting_available(balance),
        source_id=source_id,
        request_id=request_id,
    )


def accrue(
    session: AsyncSession,
    balance: LeaveBalance,
    delta: int,
    *,
    actor_id: uuid.UUID,
    reason: str,
    source_id: str,
) -> BalanceAuditEntry:
    """Credit a scheduled entitlement to a finite balance."""
    _require_positive(delta)
    if balance.is_unlimited:
        raise ValidationError(f"{balance.leave_type} balance is unlimited and does not accrue")

    balance.available += delta
    _touch(balance)

    return write_audit_entry(
        session,
        trainer_id=balance.trainer_id,
        leave_type=LeaveType(balance.leave_type),
        entry_type=AuditEntryType.ACCRUAL,
        delta=delta,
        reason=reason,
        actor_id=actor_id,
        resulting_available=balance.available,
        source_id=source_id,
    )


def rollover_apply(
    session: AsyncSession,
    balance: LeaveBalance,
    cap: int | None,
    *,
    actor_id: uuid.UUID,
    source_id: str,
) -> tuple[BalanceAuditEntry, int]:
    """Move min(available, cap) into carry-forward and reset the cycle.

    Anything above the cap is forfeited. Returns the audit entry and the
    number of days carried.
    """
    if balance.is_unlimited:
        raise ValidationError(f"{balance.leave_type} balance is unlimited and does not roll over")

    unused = balance.available
    carried = unused if cap is None else min(unused, cap)
    forfeited = unused - carried

    balance.carry_forward += carried
    balance.available = 0
    balance.used = 0
    _touch(balance)

    entry = write_audit_entry(
        session,
        trainer_id=balance.trainer_id,
        leave_type=LeaveType(balance.leave_type),
        entry_type=AuditEntryType.ROLLOVER,
        delta=-unused,
        reason=f"Year-end rollover: carried {carried}, forfeited {forfeited}",
        actor_id=actor_id,
        resulting_available=0,
        source_id=source_id,
    )
    return entry, carried


def set_available(
    session: AsyncSession,
    balance: LeaveBalance,
    *,
    new_value: int | None,
    unlimited: bool,
    actor_id: uuid.UUID,
    reason: str,
    source_id: str,
) -> BalanceAuditEntry:
    """Privileged overwrite of the available counter (or the unlimited flag)."""
    previous = resulting_available(balance)
    if unlimited:
        balance.is_unlimited = True
        balance.available = 0
        delta = 0
    elif new_value is None:
        raise ValidationError("Provide a new value or mark the balance unlimited")
    elif new_value < 0:
        raise ValidationError("Balance cannot be negative")
    else:
        balance.is_unlimited = False
        balance.available = new_value
        delta = 0 if previous is None else new_value - previous
    _touch(balance)

    return write_audit_entry(
        session,
        trainer_id=balance.trainer_id,
        leave_type=LeaveType(balance.leave_type),
        entry_type=AuditEntryType.ADMIN_EDIT,
        delta=delta,
        reason=reason,
        actor_id=actor_id,
        resulting_available=resulting_available(balance),
        source_id=source_id,
    )
