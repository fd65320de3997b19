# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from leave_engine.api.deps import AdminDep, SelfOrAdminDep
from leave_engine.db import SessionDep
from leave_engine.models.enums import LeaveType
from leave_engine.schemas.audit import AuditEntryListResponse
from leave_engine.schemas.balance import BalanceSnapshot, EditBalancePayload, LeaveStatisticsResponse
from leave_engine.services import audit as audit_service
from leave_engine.services import balance as balance_service

trainer_balance_router = APIRouter(
    prefix="/trainers/{trainer_id}",
    tags=["balances"],
)


@trainer_balance_router.get("/balance", response_model=BalanceSnapshot)
async def get_balance(
    trainer_id: uuid.UUID,
    session: SessionDep,
    _auth: SelfOrAdminDep,
) -> BalanceSnapshot:
    """Current SICK/CASUAL/PAID balances of a trainer."""
    return await balance_service.get_balance(session, trainer_id)


@trainer_balance_router.put("/balance/{leave_type}", response_model=BalanceSnapshot)
async def edit_balance(
    trainer_id: uuid.UUID,
    leave_type: LeaveType,
    payload: EditBalancePayload,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceSnapshot:
    """Overwrite one balance of a PERMANENT trainer (admin only)."""
    return await balance_service.edit_balance(session, auth, trainer_id, leave_type, payload)


@trainer_balance_router.get("/statistics", response_model=LeaveStatisticsResponse)
async def get_statistics(
    trainer_id: uuid.UUID,
    session: SessionDep,
    _auth: SelfOrAdminDep,
) -> LeaveStatisticsResponse:
    """Balance snapshot with approved, pending and rejected request counts."""
    return await balance_service.get_leave_statistics(session, trainer_id)


@trainer_balance_router.get("/audit", response_model=AuditEntryListResponse)
async def get_audit_log(
    trainer_id: uuid.UUID,
    session: SessionDep,
    _auth: SelfOrAdminDep,
    leave_type: LeaveType | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> AuditEntryListResponse:
    """Paginated balance mutation history, newest first."""
    await balance_service.get_trainer_or_404(trainer_id)
    return await audit_service.list_audit_entries(session, trainer_id, page, limit, leave_type)
