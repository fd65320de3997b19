# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import UUIDBase, now_utc


class BalanceAuditEntry(UUIDBase, table=True):
    """Immutable record of a single balance mutation."""

    __tablename__ = "balance_audit_entry"
    __table_args__ = (
        sa.Index("ix_audit_trainer_type", "trainer_id", "leave_type"),
        sa.UniqueConstraint("entry_type", "source_id", name="uq_audit_idempotency"),
    )

    trainer_id: uuid.UUID = Field(index=True)
    leave_type: str = Field(max_length=50)
    entry_type: str = Field(max_length=50)
    delta: int
    reason: str = Field(max_length=500)
    actor_id: uuid.UUID
    resulting_available: int | None = None
    request_id: uuid.UUID | None = Field(default=None, index=True)
    source_id: str = Field(max_length=255)
    created_at: datetime = Field(
        default_factory=now_utc,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
