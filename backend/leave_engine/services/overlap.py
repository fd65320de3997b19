"""Leave application validation and overlap detection.

Everything here is read-only. The overlap query is only race-free when the
caller holds the trainer's account lock for the rest of the transaction.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leave_engine.config import get_settings
from leave_engine.exceptions import ConflictError, ValidationError
from leave_engine.models.enums import ACTIVE_REQUEST_STATUSES, RequestStatus
from leave_engine.models.request import LeaveRequest
from leave_engine.services.duration import count_leave_days
from leave_engine.services.policy import get_category_policy

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.config import Settings
    from leave_engine.models.enums import LeaveType
    from leave_engine.services.directory import TrainerInfo


def validate_leave_application(
    trainer: TrainerInfo,
    leave_type: LeaveType,
    from_date: date,
    to_date: date,
    reason: str,
    today: date,
    settings: Settings | None = None,
) -> int:
    """Check category, dates, span and reason. Returns the number of days."""
    settings = settings or get_settings()

    policy = get_category_policy(trainer.category, settings)
    if not policy.allows(leave_type):
        raise ValidationError(f"{leave_type} leaves are not available for {trainer.category} trainers")

    if from_date > to_date:
        raise ValidationError("End date must be on or after start date")

    if from_date < today:
        raise ValidationError("Leave cannot start in the past")

    number_of_days = count_leave_days(from_date, to_date)
    if number_of_days > settings.max_leave_days:
        raise ValidationError(f"Leave cannot exceed {settings.max_leave_days} days")

    stripped = reason.strip()
    if len(stripped) < settings.reason_min_length:
        raise ValidationError(f"Reason must be at least {settings.reason_min_length} characters")
    if len(stripped) > settings.reason_max_length:
        raise ValidationError(f"Reason must be at most {settings.reason_max_length} characters")

    return number_of_days


async def find_conflicting_request(
    session: AsyncSession,
    trainer_id: uuid.UUID,
    from_date: date,
    to_date: date,
    *,
    statuses: Iterable[RequestStatus] = ACTIVE_REQUEST_STATUSES,
    exclude_request_id: uuid.UUID | None = None,
) -> LeaveRequest | None:
    """Return the earliest-applied request of the trainer whose range intersects [from_date, to_date].

    Leave type is ignored: a trainer cannot be on two kinds of leave on the
    same day.
    """
    query = select(LeaveRequest).where(
        col(LeaveRequest.trainer_id) == trainer_id,
        col(LeaveRequest.status).in_([s.value for s in statuses]),
        col(LeaveRequest.from_date) <= to_date,
        col(LeaveRequest.to_date) >= from_date,
    )
    if exclude_request_id is not None:
        query = query.where(col(LeaveRequest.id) != exclude_request_id)

    result = await session.execute(
        query.order_by(col(LeaveRequest.applied_on), col(LeaveRequest.id)).limit(1)
    )
    return result.scalar_one_or_none()


def conflict_error(conflict: LeaveRequest) -> ConflictError:
    return ConflictError(
        f"You already have a {conflict.status.lower()} leave request for the overlapping dates",
        context={
            "conflicting_request_id": str(conflict.id),
            "status": conflict.status,
            "from_date": conflict.from_date.isoformat(),
            "to_date": conflict.to_date.isoformat(),
        },
    )


async def ensure_no_overlap(
    session: AsyncSession,
    trainer_id: uuid.UUID,
    from_date: date,
    to_date: date,
    *,
    statuses: Iterable[RequestStatus] = ACTIVE_REQUEST_STATUSES,
    exclude_request_id: uuid.UUID | None = None,
) -> None:
    """Raise ConflictError carrying the first active request that intersects the range."""
    conflict = await find_conflicting_request(
        session, trainer_id, from_date, to_date, statuses=statuses, exclude_request_id=exclude_request_id
    )
    if conflict is not None:
        raise conflict_error(conflict)
