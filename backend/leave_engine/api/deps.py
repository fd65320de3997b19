# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Path

from leave_engine.exceptions import UnauthorizedError
from leave_engine.models.enums import UserRole
from leave_engine.schemas.auth import AuthContext
from leave_engine.services.jobs import JobRunner, get_job_runner


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: UserRole = Header(default=UserRole.TRAINER),
) -> AuthContext:
    """Extract the caller's identity from gateway-supplied headers."""
    return AuthContext(user_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require the ADMIN or HR role for the request."""
    if not auth.is_admin:
        raise UnauthorizedError("ADMIN or HR access required")
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


async def require_self_or_admin(
    trainer_id: uuid.UUID = Path(),
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Trainers may only access their own records; ADMIN/HR may access any."""
    if not auth.is_admin and auth.user_id != trainer_id:
        raise UnauthorizedError("Trainers can only access their own leave records")
    return auth


SelfOrAdminDep = Annotated[AuthContext, Depends(require_self_or_admin)]

JobRunnerDep = Annotated[JobRunner, Depends(get_job_runner)]
