# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from leave_engine.models.enums import LeaveType, RequestStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class ApplyLeavePayload(BaseModel):
    """Request body for applying for leave."""

    leave_type: LeaveType
    from_date: date
    to_date: date
    reason: str = Field(max_length=1000)


class DecisionPayload(BaseModel):
    """Request body for approve/reject/cancel actions."""

    comments: str | None = Field(default=None, max_length=500)


class RequestFilters(BaseModel):
    """Filters shared by the pending and history listings."""

    trainer_id: uuid.UUID | None = None
    status: RequestStatus | None = None
    leave_type: LeaveType | None = None
    from_date: date | None = None
    to_date: date | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    trainer_id: uuid.UUID
    leave_type: LeaveType
    from_date: date
    to_date: date
    number_of_days: int
    reason: str
    status: RequestStatus
    applied_by: uuid.UUID
    applied_on: datetime
    approved_by: uuid.UUID | None
    approved_at: datetime | None
    rejected_by: uuid.UUID | None
    rejected_at: datetime | None
    cancelled_by: uuid.UUID | None
    cancelled_at: datetime | None
    admin_remarks: str


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int
    page: int
    limit: int
    pages: int
