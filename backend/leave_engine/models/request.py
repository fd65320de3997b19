# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import UUIDBase, now_utc
from leave_engine.models.enums import RequestStatus


class LeaveRequest(UUIDBase, table=True):
    """A trainer's leave request with approval workflow state."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_request_trainer_status", "trainer_id", "status"),
        sa.Index("ix_leave_request_trainer_range", "trainer_id", "from_date", "to_date"),
        sa.CheckConstraint("from_date <= to_date", name="ck_leave_request_date_order"),
    )

    trainer_id: uuid.UUID = Field(index=True)
    leave_type: str = Field(max_length=50)
    from_date: date
    to_date: date
    number_of_days: int
    reason: str = Field(max_length=500)
    status: str = Field(
        default=RequestStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "PENDING"}
    )
    applied_by: uuid.UUID
    applied_on: datetime = Field(
        default_factory=now_utc,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejected_by: uuid.UUID | None = None
    rejected_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    cancelled_by: uuid.UUID | None = None
    cancelled_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    admin_remarks: str = Field(default="", max_length=500)
