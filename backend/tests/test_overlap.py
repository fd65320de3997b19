"""Tests for leave application validation and overlap detection."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from leave_engine.exceptions import ConflictError, ValidationError
from leave_engine.models.enums import LeaveType, RequestStatus, TrainerCategory
from leave_engine.models.request import LeaveRequest
from leave_engine.services.directory import TrainerInfo
from leave_engine.services.overlap import (
    ensure_no_overlap,
    find_conflicting_request,
    validate_leave_application,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

TODAY = date(2025, 3, 3)
TRAINER_ID = uuid.uuid4()
REASON = "Family function out of town"

PERMANENT = TrainerInfo(id=TRAINER_ID, first_name="Asha", last_name="Rao", email="asha@example.com")
CONTRACTED = TrainerInfo(
    id=uuid.uuid4(),
    first_name="Ravi",
    last_name="Kumar",
    email="ravi@example.com",
    category=TrainerCategory.CONTRACTED,
)


async def _add_request(
    session: AsyncSession,
    from_date: date,
    to_date: date,
    status: RequestStatus = RequestStatus.PENDING,
    *,
    applied_on: datetime | None = None,
    trainer_id: uuid.UUID = TRAINER_ID,
) -> LeaveRequest:
    request = LeaveRequest(
        trainer_id=trainer_id,
        leave_type=LeaveType.SICK.value,
        from_date=from_date,
        to_date=to_date,
        number_of_days=(to_date - from_date).days + 1,
        reason=REASON,
        status=status.value,
        applied_by=trainer_id,
    )
    if applied_on is not None:
        request.applied_on = applied_on
    session.add(request)
    await session.commit()
    return request


# ---------------------------------------------------------------------------
# validate_leave_application
# ---------------------------------------------------------------------------


def test_valid_application_returns_day_count() -> None:
    days = validate_leave_application(PERMANENT, LeaveType.SICK, date(2025, 3, 10), date(2025, 3, 12), REASON, TODAY)
    assert days == 3


def test_application_starting_today_is_allowed() -> None:
    assert validate_leave_application(PERMANENT, LeaveType.CASUAL, TODAY, TODAY, REASON, TODAY) == 1


def test_contracted_trainer_cannot_apply_for_sick_leave() -> None:
    with pytest.raises(ValidationError, match="not available for CONTRACTED"):
        validate_leave_application(CONTRACTED, LeaveType.SICK, date(2025, 3, 10), date(2025, 3, 10), REASON, TODAY)


def test_contracted_trainer_can_apply_for_paid_leave() -> None:
    days = validate_leave_application(CONTRACTED, LeaveType.PAID, date(2025, 3, 10), date(2025, 3, 11), REASON, TODAY)
    assert days == 2


def test_end_before_start_rejected() -> None:
    with pytest.raises(ValidationError, match="End date"):
        validate_leave_application(PERMANENT, LeaveType.SICK, date(2025, 3, 12), date(2025, 3, 10), REASON, TODAY)


def test_start_in_the_past_rejected() -> None:
    yesterday = TODAY - timedelta(days=1)
    with pytest.raises(ValidationError, match="past"):
        validate_leave_application(PERMANENT, LeaveType.SICK, yesterday, TODAY, REASON, TODAY)


def test_span_over_thirty_days_rejected() -> None:
    start = date(2025, 4, 1)
    with pytest.raises(ValidationError, match="30 days"):
        validate_leave_application(PERMANENT, LeaveType.PAID, start, start + timedelta(days=30), REASON, TODAY)


def test_span_of_exactly_thirty_days_allowed() -> None:
    start = date(2025, 4, 1)
    days = validate_leave_application(PERMANENT, LeaveType.PAID, start, start + timedelta(days=29), REASON, TODAY)
    assert days == 30


@pytest.mark.parametrize("reason", ["short", "          padded   ", "x" * 501])
def test_reason_length_enforced(reason: str) -> None:
    with pytest.raises(ValidationError, match="Reason"):
        validate_leave_application(PERMANENT, LeaveType.SICK, date(2025, 3, 10), date(2025, 3, 10), reason, TODAY)


# ---------------------------------------------------------------------------
# Overlap detection
# ---------------------------------------------------------------------------


async def test_no_conflict_when_no_requests(db_session: AsyncSession) -> None:
    assert await find_conflicting_request(db_session, TRAINER_ID, date(2025, 3, 10), date(2025, 3, 12)) is None


async def test_partial_overlap_detected(db_session: AsyncSession) -> None:
    existing = await _add_request(db_session, date(2025, 3, 10), date(2025, 3, 12))

    conflict = await find_conflicting_request(db_session, TRAINER_ID, date(2025, 3, 12), date(2025, 3, 15))
    assert conflict is not None
    assert conflict.id == existing.id


async def test_adjacent_ranges_do_not_overlap(db_session: AsyncSession) -> None:
    await _add_request(db_session, date(2025, 3, 10), date(2025, 3, 12))

    assert await find_conflicting_request(db_session, TRAINER_ID, date(2025, 3, 13), date(2025, 3, 14)) is None


async def test_enclosing_range_overlaps(db_session: AsyncSession) -> None:
    await _add_request(db_session, date(2025, 3, 11), date(2025, 3, 11), RequestStatus.APPROVED)

    conflict = await find_conflicting_request(db_session, TRAINER_ID, date(2025, 3, 10), date(2025, 3, 20))
    assert conflict is not None
    assert conflict.status == RequestStatus.APPROVED


@pytest.mark.parametrize("status", [RequestStatus.REJECTED, RequestStatus.CANCELLED])
async def test_inactive_requests_do_not_conflict(db_session: AsyncSession, status: RequestStatus) -> None:
    await _add_request(db_session, date(2025, 3, 10), date(2025, 3, 12), status)

    assert await find_conflicting_request(db_session, TRAINER_ID, date(2025, 3, 10), date(2025, 3, 12)) is None


async def test_other_trainers_requests_do_not_conflict(db_session: AsyncSession) -> None:
    await _add_request(db_session, date(2025, 3, 10), date(2025, 3, 12), trainer_id=uuid.uuid4())

    assert await find_conflicting_request(db_session, TRAINER_ID, date(2025, 3, 10), date(2025, 3, 12)) is None


async def test_earliest_applied_conflict_is_reported(db_session: AsyncSession) -> None:
    later = await _add_request(
        db_session, date(2025, 3, 14), date(2025, 3, 15), applied_on=datetime(2025, 3, 2, 10, 0)
    )
    earlier = await _add_request(
        db_session, date(2025, 3, 10), date(2025, 3, 11), applied_on=datetime(2025, 3, 1, 10, 0)
    )

    conflict = await find_conflicting_request(db_session, TRAINER_ID, date(2025, 3, 9), date(2025, 3, 20))
    assert conflict is not None
    assert conflict.id == earlier.id
    assert conflict.id != later.id


async def test_excluded_request_is_ignored(db_session: AsyncSession) -> None:
    existing = await _add_request(db_session, date(2025, 3, 10), date(2025, 3, 12))

    conflict = await find_conflicting_request(
        db_session, TRAINER_ID, date(2025, 3, 10), date(2025, 3, 12), exclude_request_id=existing.id
    )
    assert conflict is None


async def test_ensure_no_overlap_raises_with_conflicting_record(db_session: AsyncSession) -> None:
    existing = await _add_request(db_session, date(2025, 3, 10), date(2025, 3, 12))

    with pytest.raises(ConflictError) as exc_info:
        await ensure_no_overlap(db_session, TRAINER_ID, date(2025, 3, 11), date(2025, 3, 11))

    assert exc_info.value.status_code == 409
    assert exc_info.value.context is not None
    assert exc_info.value.context["conflicting_request_id"] == str(existing.id)
    assert exc_info.value.context["status"] == "PENDING"
