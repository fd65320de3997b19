# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_engine.db import unit_of_work
from leave_engine.exceptions import (
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from leave_engine.models.base import now_utc
from leave_engine.models.enums import (
    LeaveType,
    NotificationEvent,
    RequestStatus,
    TrainerCategory,
    UserStatus,
)
from leave_engine.models.request import LeaveRequest
from leave_engine.schemas.request import (
    LeaveRequestListResponse,
    LeaveRequestResponse,
    RequestFilters,
)
from leave_engine.services import ledger
from leave_engine.services.audit import page_count
from leave_engine.services.balance import (
    get_balance_for_update,
    get_or_open_account_for_update,
    get_trainer_or_404,
)
from leave_engine.services.notifier import ADMIN_AUDIENCE, dispatch_notification, trainer_recipient
from leave_engine.services.overlap import ensure_no_overlap, validate_leave_application
from leave_engine.services.policy import get_category_policy

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.request import ApplyLeavePayload, DecisionPayload

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        trainer_id=request.trainer_id,
        leave_type=LeaveType(request.leave_type),
        from_date=request.from_date,
        to_date=request.to_date,
        number_of_days=request.number_of_days,
        reason=request.reason,
        status=RequestStatus(request.status),
        applied_by=request.applied_by,
        applied_on=request.applied_on,
        approved_by=request.approved_by,
        approved_at=request.approved_at,
        rejected_by=request.rejected_by,
        rejected_at=request.rejected_at,
        cancelled_by=request.cancelled_by,
        cancelled_at=request.cancelled_at,
        admin_remarks=request.admin_remarks,
    )


async def _get_request_or_404(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveRequest:
    """Fetch a request by ID. Raises 404 if not found.

    With ``for_update`` the row is locked and reloaded, so the status seen is
    the committed one.
    """
    query = select(LeaveRequest).where(col(LeaveRequest.id) == request_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Leave request not found", context={"request_id": str(request_id)})
    return request


def _require_admin(auth: AuthContext, action: str) -> None:
    if not auth.is_admin:
        raise UnauthorizedError(f"Only ADMIN or HR can {action} leave requests")


def _require_status(request: LeaveRequest, allowed: tuple[RequestStatus, ...], action: str) -> None:
    if request.status not in {s.value for s in allowed}:
        expected = " or ".join(s.value.lower() for s in allowed)
        raise InvalidStateError(
            f"Can only {action} {expected} leave requests. Current status: {request.status}",
            context={"request_id": str(request.id), "current_status": request.status},
        )


def _event_payload(request: LeaveRequest) -> dict[str, object]:
    return {
        "request_id": str(request.id),
        "trainer_id": str(request.trainer_id),
        "leave_type": request.leave_type,
        "from_date": request.from_date.isoformat(),
        "to_date": request.to_date.isoformat(),
        "number_of_days": request.number_of_days,
        "status": request.status,
        "admin_remarks": request.admin_remarks,
    }


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def apply_leave(
    session: AsyncSession,
    auth: AuthContext,
    trainer_id: uuid.UUID,
    payload: ApplyLeavePayload,
    today: date | None = None,
) -> LeaveRequestResponse:
    """Create a PENDING leave request.

    Flow:
    1. Authorize (own request, or ADMIN/HR on behalf)
    2. Resolve trainer and validate category, dates, span and reason
    3. Lock the trainer's account
    4. Reject overlaps with PENDING/APPROVED requests
    5. Soft balance check (re-verified at approval)
    6. Insert request, commit, notify admins
    """
    today = today or date.today()

    if not auth.is_admin and auth.user_id != trainer_id:
        raise UnauthorizedError("Trainers can only apply for their own leave")

    trainer = await get_trainer_or_404(trainer_id)
    if trainer.status != UserStatus.ACTIVE:
        raise ValidationError(f"Trainer is {trainer.status} and cannot apply for leave")

    number_of_days = validate_leave_application(
        trainer, payload.leave_type, payload.from_date, payload.to_date, payload.reason, today
    )

    async with unit_of_work(session):
        account = await get_or_open_account_for_update(session, trainer, today)

        await ensure_no_overlap(session, trainer_id, payload.from_date, payload.to_date)

        balance = await get_balance_for_update(session, account, payload.leave_type)
        if not ledger.check_available(balance, number_of_days):
            raise InsufficientBalanceError(
                f"Insufficient {payload.leave_type} leave balance. "
                f"Available: {balance.available}, Requested: {number_of_days}",
                context={
                    "leave_type": payload.leave_type.value,
                    "available": balance.available,
                    "requested": number_of_days,
                },
            )

        leave_request = LeaveRequest(
            trainer_id=trainer_id,
            leave_type=payload.leave_type.value,
            from_date=payload.from_date,
            to_date=payload.to_date,
            number_of_days=number_of_days,
            reason=payload.reason.strip(),
            status=RequestStatus.PENDING.value,
            applied_by=auth.user_id,
        )
        session.add(leave_request)
        await session.flush()

    logger.info(
        "Leave request %s created for trainer %s: %s %s..%s (%d days)",
        leave_request.id,
        trainer_id,
        leave_request.leave_type,
        leave_request.from_date,
        leave_request.to_date,
        number_of_days,
    )
    await dispatch_notification(
        [ADMIN_AUDIENCE],
        NotificationEvent.LEAVE_REQUEST,
        {**_event_payload(leave_request), "trainer_name": trainer.display_name},
    )
    return _build_request_response(leave_request)


async def approve_leave(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Approve a PENDING request and debit the trainer's balance atomically.

    The balance is re-checked under lock because it may have changed since
    the request was applied. On any failure the request stays PENDING and
    the balance is untouched.
    """
    _require_admin(auth, "approve")

    async with unit_of_work(session):
        leave_request = await _get_request_or_404(session, request_id)
        _require_status(leave_request, (RequestStatus.PENDING,), "approve")

        trainer = await get_trainer_or_404(leave_request.trainer_id)
        account = await get_or_open_account_for_update(session, trainer)

        leave_request = await _get_request_or_404(session, request_id, for_update=True)
        _require_status(leave_request, (RequestStatus.PENDING,), "approve")

        leave_type = LeaveType(leave_request.leave_type)
        if not get_category_policy(trainer.category).allows(leave_type):
            raise ValidationError(
                f"{leave_type.value} leave is not allowed for {trainer.category.value} trainers",
                context={"leave_type": leave_type.value, "category": trainer.category.value},
            )

        await ensure_no_overlap(
            session,
            leave_request.trainer_id,
            leave_request.from_date,
            leave_request.to_date,
            statuses=(RequestStatus.APPROVED,),
            exclude_request_id=leave_request.id,
        )

        if trainer.category != TrainerCategory.CONTRACTED:
            balance = await get_balance_for_update(session, account, leave_type)
            ledger.debit(
                session,
                balance,
                leave_request.number_of_days,
                actor_id=auth.user_id,
                reason=f"Leave approved (ID: {leave_request.id})",
                source_id=str(leave_request.id),
                request_id=leave_request.id,
            )

        leave_request.status = RequestStatus.APPROVED.value
        leave_request.approved_by = auth.user_id
        leave_request.approved_at = now_utc()
        leave_request.admin_remarks = (payload.comments if payload else None) or ""
        await session.flush()

    logger.info(
        "Leave %s approved by %s: %d %s days",
        leave_request.id,
        auth.user_id,
        leave_request.number_of_days,
        leave_request.leave_type,
    )
    await dispatch_notification(
        [trainer_recipient(leave_request.trainer_id)],
        NotificationEvent.LEAVE_APPROVED,
        _event_payload(leave_request),
    )
    return _build_request_response(leave_request)


async def reject_leave(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Reject a PENDING request. No balance changes."""
    _require_admin(auth, "reject")

    async with unit_of_work(session):
        leave_request = await _get_request_or_404(session, request_id, for_update=True)
        _require_status(leave_request, (RequestStatus.PENDING,), "reject")

        leave_request.status = RequestStatus.REJECTED.value
        leave_request.rejected_by = auth.user_id
        leave_request.rejected_at = now_utc()
        leave_request.admin_remarks = (payload.comments if payload else None) or ""
        await session.flush()

    logger.info("Leave %s rejected by %s", leave_request.id, auth.user_id)
    await dispatch_notification(
        [trainer_recipient(leave_request.trainer_id)],
        NotificationEvent.LEAVE_REJECTED,
        _event_payload(leave_request),
    )
    return _build_request_response(leave_request)


async def cancel_leave(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Cancel a PENDING or APPROVED request.

    The owning trainer can cancel their own request, ADMIN/HR can cancel any.
    Cancelling an APPROVED request credits the days back in the same
    transaction.
    """
    cancellable = (RequestStatus.PENDING, RequestStatus.APPROVED)

    async with unit_of_work(session):
        leave_request = await _get_request_or_404(session, request_id)

        if not auth.is_admin and auth.user_id != leave_request.trainer_id:
            raise UnauthorizedError("Not authorized to cancel this request")

        _require_status(leave_request, cancellable, "cancel")

        trainer = await get_trainer_or_404(leave_request.trainer_id)
        account = await get_or_open_account_for_update(session, trainer)

        leave_request = await _get_request_or_404(session, request_id, for_update=True)
        _require_status(leave_request, cancellable, "cancel")

        if leave_request.status == RequestStatus.APPROVED.value and trainer.category != TrainerCategory.CONTRACTED:
            balance = await get_balance_for_update(session, account, LeaveType(leave_request.leave_type))
            ledger.credit(
                session,
                balance,
                leave_request.number_of_days,
                actor_id=auth.user_id,
                reason=f"Leave cancelled by {auth.role}",
                source_id=str(leave_request.id),
                request_id=leave_request.id,
            )

        leave_request.status = RequestStatus.CANCELLED.value
        leave_request.cancelled_by = auth.user_id
        leave_request.cancelled_at = now_utc()
        if payload is not None and payload.comments:
            leave_request.admin_remarks = payload.comments
        await session.flush()

    logger.info("Leave %s cancelled by %s (%s)", leave_request.id, auth.user_id, auth.role)
    recipients = [trainer_recipient(leave_request.trainer_id)]
    if auth.user_id == leave_request.trainer_id:
        recipients.append(ADMIN_AUDIENCE)
    await dispatch_notification(recipients, NotificationEvent.LEAVE_CANCELLED, _event_payload(leave_request))
    return _build_request_response(leave_request)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Get a single request. Trainers can only see their own."""
    leave_request = await _get_request_or_404(session, request_id)
    if not auth.is_admin and auth.user_id != leave_request.trainer_id:
        raise UnauthorizedError("Not authorized to view this request")
    return _build_request_response(leave_request)


async def _list_requests(
    session: AsyncSession,
    filters: RequestFilters,
    page: int,
    limit: int,
) -> LeaveRequestListResponse:
    base_filters = []
    if filters.trainer_id is not None:
        base_filters.append(col(LeaveRequest.trainer_id) == filters.trainer_id)
    if filters.status is not None:
        base_filters.append(col(LeaveRequest.status) == filters.status.value)
    if filters.leave_type is not None:
        base_filters.append(col(LeaveRequest.leave_type) == filters.leave_type.value)
    if filters.from_date is not None:
        base_filters.append(col(LeaveRequest.from_date) >= filters.from_date)
    if filters.to_date is not None:
        base_filters.append(col(LeaveRequest.from_date) <= filters.to_date)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*base_filters)
        .order_by(col(LeaveRequest.applied_on).desc(), col(LeaveRequest.id))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    requests = list(result.scalars().all())

    return LeaveRequestListResponse(
        items=[_build_request_response(r) for r in requests],
        total=total,
        page=page,
        limit=limit,
        pages=page_count(total, limit),
    )


async def list_pending(
    session: AsyncSession,
    filters: RequestFilters | None = None,
    page: int = 1,
    limit: int = 10,
) -> LeaveRequestListResponse:
    """PENDING requests awaiting a decision, newest first."""
    filters = (filters or RequestFilters()).model_copy(update={"status": RequestStatus.PENDING})
    return await _list_requests(session, filters, page, limit)


async def list_history(
    session: AsyncSession,
    auth: AuthContext,
    filters: RequestFilters | None = None,
    page: int = 1,
    limit: int = 10,
) -> LeaveRequestListResponse:
    """Leave history with filters. Trainers only ever see their own requests."""
    filters = filters or RequestFilters()
    if not auth.is_admin:
        filters = filters.model_copy(update={"trainer_id": auth.user_id})
    return await _list_requests(session, filters, page, limit)
