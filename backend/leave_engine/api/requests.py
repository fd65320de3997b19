# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from leave_engine.api.deps import AdminDep, AuthDep
from leave_engine.db import SessionDep
from leave_engine.models.enums import LeaveType, RequestStatus
from leave_engine.schemas.request import (
    ApplyLeavePayload,
    DecisionPayload,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    RequestFilters,
)
from leave_engine.services import request as request_service

trainer_leaves_router = APIRouter(
    prefix="/trainers/{trainer_id}/leaves",
    tags=["leaves"],
)

leaves_router = APIRouter(
    prefix="/leaves",
    tags=["leaves"],
)


@trainer_leaves_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def apply_leave(
    trainer_id: uuid.UUID,
    payload: ApplyLeavePayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Apply for leave. Trainers apply for themselves; ADMIN/HR may apply on behalf."""
    return await request_service.apply_leave(session, auth, trainer_id, payload)


@leaves_router.get("/pending", response_model=LeaveRequestListResponse)
async def list_pending(
    session: SessionDep,
    _auth: AdminDep,
    trainer_id: uuid.UUID | None = Query(default=None),
    leave_type: LeaveType | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List requests awaiting a decision (admin only)."""
    filters = RequestFilters(trainer_id=trainer_id, leave_type=leave_type)
    return await request_service.list_pending(session, filters, page, limit)


@leaves_router.get("", response_model=LeaveRequestListResponse)
async def list_history(
    session: SessionDep,
    auth: AuthDep,
    trainer_id: uuid.UUID | None = Query(default=None),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    leave_type: LeaveType | None = Query(default=None),
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> LeaveRequestListResponse:
    """Leave history with filters. Trainers only see their own requests."""
    filters = RequestFilters(
        trainer_id=trainer_id,
        status=status_filter,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
    )
    return await request_service.list_history(session, auth, filters, page, limit)


@leaves_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request."""
    return await request_service.get_request(session, auth, request_id)


@leaves_router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_leave(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Approve a pending leave request and debit the balance (admin only)."""
    return await request_service.approve_leave(session, auth, request_id, payload)


@leaves_router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_leave(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Reject a pending leave request (admin only)."""
    return await request_service.reject_leave(session, auth, request_id, payload)


@leaves_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Cancel a pending or approved leave request."""
    return await request_service.cancel_leave(session, auth, request_id, payload)
