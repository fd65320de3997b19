# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from leave_engine.models.enums import AuditEntryType, LeaveType


class AuditEntryResponse(BaseModel):
    """A single balance mutation."""

    id: uuid.UUID
    trainer_id: uuid.UUID
    leave_type: LeaveType
    entry_type: AuditEntryType
    delta: int
    reason: str
    actor_id: uuid.UUID
    resulting_available: int | None
    request_id: uuid.UUID | None
    created_at: datetime


class AuditEntryListResponse(BaseModel):
    """Paginated audit entries, newest first."""

    items: list[AuditEntryResponse]
    total: int
    page: int
    limit: int
    pages: int
