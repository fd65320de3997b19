# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel


class TrainerJobDetail(BaseModel):
    trainer_id: uuid.UUID
    status: str
    windows: int = 0
    message: str | None = None


class AccrualRunResponse(BaseModel):
    """Response from the accrual trigger endpoint."""

    target_date: date
    as_of: date
    test_mode: bool
    processed: int
    accrued: int
    skipped: int
    errors: int
    details: list[TrainerJobDetail]


class RolloverRunResponse(BaseModel):
    """Response from the rollover trigger endpoint."""

    target_date: date
    test_mode: bool
    ran: bool
    processed: int
    rolled_over: int
    skipped: int
    errors: int
    details: list[TrainerJobDetail]
    message: str | None = None


class JobStatusResponse(BaseModel):
    name: str
    interval_seconds: int
    running: bool
