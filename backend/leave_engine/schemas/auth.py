# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from leave_engine.models.enums import ADMIN_ROLES, UserRole


class AuthContext(BaseModel):
    """Already-authenticated caller, supplied by the gateway in request headers."""

    user_id: uuid.UUID
    role: UserRole = UserRole.TRAINER

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
