from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


class JobLease(SQLModel, table=True):
    """Cross-process advisory lock for a named scheduled job."""

    __tablename__ = "job_lease"

    job_name: str = Field(primary_key=True, max_length=100)
    holder: str = Field(max_length=255)
    acquired_at: datetime = Field(sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    expires_at: datetime = Field(sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
