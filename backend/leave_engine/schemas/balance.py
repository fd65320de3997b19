# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Self

from pydantic import BaseModel, Field, model_validator

from leave_engine.models.enums import LeaveType, TrainerCategory


class LeaveTypeBalance(BaseModel):
    """Counters for a single leave type."""

    leave_type: LeaveType
    available: int | None  # None for unlimited balances
    used: int
    carry_forward: int
    is_unlimited: bool


class BalanceSnapshot(BaseModel):
    """All leave balances of one trainer."""

    trainer_id: uuid.UUID
    category: TrainerCategory
    allowed_leave_types: list[LeaveType]
    balances: list[LeaveTypeBalance]
    last_increment_date: date | None
    last_rollover_date: date | None

    def for_type(self, leave_type: LeaveType) -> LeaveTypeBalance | None:
        return next((b for b in self.balances if b.leave_type == leave_type), None)


class EditBalancePayload(BaseModel):
    """Request body for a privileged balance overwrite."""

    new_value: int | None = Field(default=None, ge=0)
    unlimited: bool = False
    reason: str = Field(min_length=1, max_length=500)

    @model_validator(mode="after")
    def _validate_value(self) -> Self:
        if self.unlimited == (self.new_value is not None):
            msg = "Provide exactly one of new_value or unlimited=true"
            raise ValueError(msg)
        return self


class LeaveStatistics(BaseModel):
    approved_this_year: int
    pending_requests: int
    rejected_requests: int


class LeaveStatisticsResponse(BaseModel):
    """Balance snapshot plus request counts."""

    balance: BalanceSnapshot
    statistics: LeaveStatistics
