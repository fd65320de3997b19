from __future__ import annotations

import math
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_engine.models.audit import BalanceAuditEntry
from leave_engine.models.enums import AuditEntryType, LeaveType
from leave_engine.schemas.audit import AuditEntryListResponse, AuditEntryResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

SYSTEM_ACTOR = uuid.UUID(int=0)


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


def _build_audit_entry_response(entry: BalanceAuditEntry) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=entry.id,
        trainer_id=entry.trainer_id,
        leave_type=LeaveType(entry.leave_type),
        entry_type=AuditEntryType(entry.entry_type),
        delta=entry.delta,
        reason=entry.reason,
        actor_id=entry.actor_id,
        resulting_available=entry.resulting_available,
        request_id=entry.request_id,
        created_at=entry.created_at,
    )


async def audit_entry_exists(session: AsyncSession, entry_type: AuditEntryType, source_id: str) -> bool:
    """Whether a mutation with this idempotency key has already been recorded."""
    result = await session.execute(
        select(func.count())
        .select_from(BalanceAuditEntry)
        .where(
            col(BalanceAuditEntry.entry_type) == entry_type.value,
            col(BalanceAuditEntry.source_id) == source_id,
        )
    )
    return result.scalar_one() > 0


def write_audit_entry(
    session: AsyncSession,
    *,
    trainer_id: uuid.UUID,
    leave_type: LeaveType,
    entry_type: AuditEntryType,
    delta: int,
    reason: str,
    actor_id: uuid.UUID,
    resulting_available: int | None,
    source_id: str,
    request_id: uuid.UUID | None = None,
) -> BalanceAuditEntry:
    """Add an immutable audit entry to the caller's transaction.

    Entries are never updated or deleted.
    """
    entry = BalanceAuditEntry(
        trainer_id=trainer_id,
        leave_type=leave_type.value,
        entry_type=entry_type.value,
        delta=delta,
        reason=reason[:500],
        actor_id=actor_id,
        resulting_available=resulting_available,
        request_id=request_id,
        source_id=source_id,
    )
    session.add(entry)
    return entry


async def list_audit_entries(
    session: AsyncSession,
    trainer_id: uuid.UUID,
    page: int = 1,
    limit: int = 20,
    leave_type: LeaveType | None = None,
) -> AuditEntryListResponse:
    """Paginated audit history for a trainer, newest first."""
    filters = [col(BalanceAuditEntry.trainer_id) == trainer_id]
    if leave_type is not None:
        filters.append(col(BalanceAuditEntry.leave_type) == leave_type.value)

    count_result = await session.execute(select(func.count()).select_from(BalanceAuditEntry).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(BalanceAuditEntry)
        .where(*filters)
        .order_by(col(BalanceAuditEntry.created_at).desc(), col(BalanceAuditEntry.id))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    entries = list(result.scalars().all())

    return AuditEntryListResponse(
        items=[_build_audit_entry_response(e) for e in entries],
        total=total,
        page=page,
        limit=limit,
        pages=page_count(total, limit),
    )
