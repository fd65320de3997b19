# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from leave_engine.models.base import TimestampMixin, now_utc


class TrainerLeaveAccount(TimestampMixin, table=True):
    """Per-trainer ledger header; locked FOR UPDATE by every balance-affecting transaction."""

    __tablename__ = "trainer_leave_account"

    trainer_id: uuid.UUID = Field(primary_key=True, sa_type=sa.Uuid)
    category: str = Field(max_length=50)
    last_increment_date: date
    last_rollover_date: date | None = None
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})


class LeaveBalance(SQLModel, table=True):
    """Counters for one (trainer, leave type) pair."""

    __tablename__ = "leave_balance"
    __table_args__ = (
        sa.CheckConstraint("available >= 0", name="ck_leave_balance_available_non_negative"),
        sa.CheckConstraint("used >= 0", name="ck_leave_balance_used_non_negative"),
    )

    trainer_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("trainer_leave_account.trainer_id", ondelete="CASCADE"), primary_key=True
        ),
    )
    leave_type: str = Field(primary_key=True, max_length=50)
    available: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    carry_forward: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    is_unlimited: bool = Field(default=False, sa_column_kwargs={"server_default": "0"})
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
