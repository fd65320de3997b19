from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import extract, func, select
from sqlmodel import col

from leave_engine.db import unit_of_work
from leave_engine.exceptions import NotFoundError, UnauthorizedError, ValidationError
from leave_engine.models.balance import LeaveBalance, TrainerLeaveAccount
from leave_engine.models.enums import LeaveType, NotificationEvent, RequestStatus, TrainerCategory
from leave_engine.models.request import LeaveRequest
from leave_engine.schemas.balance import (
    BalanceSnapshot,
    LeaveStatistics,
    LeaveStatisticsResponse,
    LeaveTypeBalance,
)
from leave_engine.services import ledger
from leave_engine.services.directory import TrainerInfo, get_user_directory
from leave_engine.services.notifier import dispatch_notification, trainer_recipient
from leave_engine.services.policy import get_category_policy

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.balance import EditBalancePayload


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def get_trainer_or_404(trainer_id: uuid.UUID) -> TrainerInfo:
    """Look the trainer up in the User Directory. Raises 404 if unknown."""
    trainer = await get_user_directory().get_trainer(trainer_id)
    if trainer is None:
        raise NotFoundError("Trainer not found", context={"trainer_id": str(trainer_id)})
    return trainer


async def get_or_open_account_for_update(
    session: AsyncSession,
    trainer: TrainerInfo,
    today: date | None = None,
) -> TrainerLeaveAccount:
    """Lock the trainer's ledger header with FOR UPDATE, opening it if absent.

    A new account gets the opening balances of the trainer's category and
    starts its first accrual window on ``today``.
    """
    result = await session.execute(
        select(TrainerLeaveAccount)
        .where(col(TrainerLeaveAccount.trainer_id) == trainer.id)
        .with_for_update()
    )
    account = result.scalar_one_or_none()

    if account is None:
        policy = get_category_policy(trainer.category)
        account = TrainerLeaveAccount(
            trainer_id=trainer.id,
            category=trainer.category.value,
            last_increment_date=today or date.today(),
        )
        session.add(account)
        for leave_type in policy.allowed_leave_types:
            opening = policy.initial[leave_type]
            session.add(
                LeaveBalance(
                    trainer_id=trainer.id,
                    leave_type=leave_type.value,
                    available=opening or 0,
                    is_unlimited=opening is None,
                )
            )
        await session.flush()
    elif account.category != trainer.category.value:
        # The directory owns the category; follow it. Accrual starts from the
        # switch date, never from time spent in a non-accruing category.
        previous = get_category_policy(TrainerCategory(account.category))
        if get_category_policy(trainer.category).accrues and not previous.accrues:
            account.last_increment_date = today or date.today()
        account.category = trainer.category.value
        account.version += 1

    return account


async def get_balance_for_update(
    session: AsyncSession,
    account: TrainerLeaveAccount,
    leave_type: LeaveType,
) -> LeaveBalance:
    """Lock one balance row of a locked account, creating it from the category default if missing."""
    result = await session.execute(
        select(LeaveBalance)
        .where(
            col(LeaveBalance.trainer_id) == account.trainer_id,
            col(LeaveBalance.leave_type) == leave_type.value,
        )
        .with_for_update()
    )
    balance = result.scalar_one_or_none()

    if balance is None:
        opening = get_category_policy(TrainerCategory(account.category)).initial.get(leave_type)
        balance = LeaveBalance(
            trainer_id=account.trainer_id,
            leave_type=leave_type.value,
            available=opening or 0,
            is_unlimited=opening is None,
        )
        session.add(balance)
        await session.flush()

    return balance


def _build_type_balance(leave_type: LeaveType, row: LeaveBalance | None, opening: int | None) -> LeaveTypeBalance:
    if row is None:
        return LeaveTypeBalance(
            leave_type=leave_type,
            available=opening,
            used=0,
            carry_forward=0,
            is_unlimited=opening is None,
        )
    return LeaveTypeBalance(
        leave_type=leave_type,
        available=None if row.is_unlimited else row.available,
        used=row.used,
        carry_forward=row.carry_forward,
        is_unlimited=row.is_unlimited,
    )


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_balance(session: AsyncSession, trainer_id: uuid.UUID) -> BalanceSnapshot:
    """Current balances of a trainer. Reports category defaults when no account exists yet."""
    trainer = await get_trainer_or_404(trainer_id)
    policy = get_category_policy(trainer.category)

    account_result = await session.execute(
        select(TrainerLeaveAccount).where(col(TrainerLeaveAccount.trainer_id) == trainer_id)
    )
    account = account_result.scalar_one_or_none()

    rows_result = await session.execute(select(LeaveBalance).where(col(LeaveBalance.trainer_id) == trainer_id))
    rows = {LeaveType(r.leave_type): r for r in rows_result.scalars().all()}

    return BalanceSnapshot(
        trainer_id=trainer_id,
        category=trainer.category,
        allowed_leave_types=list(policy.allowed_leave_types),
        balances=[_build_type_balance(t, rows.get(t), policy.initial[t]) for t in policy.allowed_leave_types],
        last_increment_date=account.last_increment_date if account else None,
        last_rollover_date=account.last_rollover_date if account else None,
    )


async def get_leave_statistics(
    session: AsyncSession,
    trainer_id: uuid.UUID,
    today: date | None = None,
) -> LeaveStatisticsResponse:
    """Balance snapshot plus request counts for the trainer."""
    today = today or date.today()
    snapshot = await get_balance(session, trainer_id)

    async def _count(*filters: object) -> int:
        result = await session.execute(
            select(func.count())
            .select_from(LeaveRequest)
            .where(col(LeaveRequest.trainer_id) == trainer_id, *filters)  # type: ignore[arg-type]
        )
        return int(result.scalar_one())

    return LeaveStatisticsResponse(
        balance=snapshot,
        statistics=LeaveStatistics(
            approved_this_year=await _count(
                col(LeaveRequest.status) == RequestStatus.APPROVED.value,
                extract("year", col(LeaveRequest.from_date)) == today.year,
            ),
            pending_requests=await _count(col(LeaveRequest.status) == RequestStatus.PENDING.value),
            rejected_requests=await _count(col(LeaveRequest.status) == RequestStatus.REJECTED.value),
        ),
    )


# ---------------------------------------------------------------------------
# Write path: privileged balance edit
# ---------------------------------------------------------------------------


async def edit_balance(
    session: AsyncSession,
    auth: AuthContext,
    trainer_id: uuid.UUID,
    leave_type: LeaveType,
    payload: EditBalancePayload,
) -> BalanceSnapshot:
    """Overwrite a trainer's available balance (ADMIN/HR only).

    Bypasses debit/credit arithmetic but still records an ADMIN_EDIT audit entry
    in the same transaction.
    """
    if not auth.is_admin:
        raise UnauthorizedError("Only ADMIN or HR can edit leave balances")

    trainer = await get_trainer_or_404(trainer_id)
    if trainer.category == TrainerCategory.CONTRACTED:
        raise ValidationError("Cannot update leave balance for CONTRACTED trainers")

    policy = get_category_policy(trainer.category)
    if not policy.allows(leave_type):
        raise ValidationError(f"{leave_type} leaves are not available for {trainer.category} trainers")

    async with unit_of_work(session):
        account = await get_or_open_account_for_update(session, trainer)
        balance = await get_balance_for_update(session, account, leave_type)
        entry = ledger.set_available(
            session,
            balance,
            new_value=payload.new_value,
            unlimited=payload.unlimited,
            actor_id=auth.user_id,
            reason=payload.reason,
            source_id=f"edit:{uuid.uuid4()}",
        )

    await dispatch_notification(
        [trainer_recipient(trainer_id)],
        NotificationEvent.BALANCE_UPDATED,
        {"leave_type": leave_type.value, "delta": entry.delta, "available": entry.resulting_available},
    )
    return await get_balance(session, trainer_id)
