"""Monthly accrual for PERMANENT trainers.

Each trainer's account tracks the start of its current accrual window in
``last_increment_date``. A run credits every window that has fully elapsed
by ``as_of`` and advances the marker by exactly one interval per window, so
delayed runs catch up without drifting the schedule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING

from leave_engine.config import get_settings
from leave_engine.db import unit_of_work
from leave_engine.models.base import now_utc
from leave_engine.models.enums import AuditEntryType, TrainerCategory
from leave_engine.services import ledger
from leave_engine.services.audit import SYSTEM_ACTOR, audit_entry_exists
from leave_engine.services.balance import get_balance_for_update, get_or_open_account_for_update
from leave_engine.services.directory import list_active_trainers
from leave_engine.services.policy import get_category_policy

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.config import Settings
    from leave_engine.models.balance import TrainerLeaveAccount
    from leave_engine.services.directory import TrainerInfo

logger = logging.getLogger(__name__)

DEFAULT_SIMULATED_DAYS = 30


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class TrainerOutcome:
    """What a scheduler run did for one trainer."""

    trainer_id: uuid.UUID
    status: str
    windows: int = 0
    message: str | None = None


@dataclass
class AccrualRunResult:
    """Summary of a monthly accrual run."""

    target_date: date
    as_of: date
    test_mode: bool = False
    processed: int = 0
    accrued: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[TrainerOutcome] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure computation helpers (no DB)
# ---------------------------------------------------------------------------


def elapsed_windows(last_increment_date: date, as_of: date, interval_days: int) -> list[date]:
    """Start dates of every full accrual window between the marker and ``as_of``."""
    starts: list[date] = []
    window_start = last_increment_date
    step = timedelta(days=interval_days)
    while (as_of - window_start).days >= interval_days:
        starts.append(window_start)
        window_start += step
    return starts


def build_accrual_source_id(trainer_id: uuid.UUID, window_start: date, leave_type: str) -> str:
    return f"accrual:{trainer_id}:{window_start.isoformat()}:{leave_type}"


# ---------------------------------------------------------------------------
# Per-trainer processing
# ---------------------------------------------------------------------------


async def _accrue_account(
    session: AsyncSession,
    account: TrainerLeaveAccount,
    as_of: date,
    settings: Settings,
) -> int:
    """Credit every elapsed window on a locked account. Returns the number of windows."""
    policy = get_category_policy(TrainerCategory(account.category), settings)
    increments = {
        leave_type: amount
        for leave_type, amount in policy.monthly_increment.items()
        if amount > 0 and policy.initial.get(leave_type) is not None
    }

    windows = elapsed_windows(account.last_increment_date, as_of, settings.accrual_interval_days)
    for window_start in windows:
        for leave_type, amount in increments.items():
            source_id = build_accrual_source_id(account.trainer_id, window_start, leave_type.value)
            if await audit_entry_exists(session, AuditEntryType.ACCRUAL, source_id):
                continue

            balance = await get_balance_for_update(session, account, leave_type)
            if balance.is_unlimited:
                continue
            ledger.accrue(
                session,
                balance,
                amount,
                actor_id=SYSTEM_ACTOR,
                reason=f"Monthly accrual for window starting {window_start.isoformat()}",
                source_id=source_id,
            )

        account.last_increment_date = window_start + timedelta(days=settings.accrual_interval_days)

    if windows:
        account.version += 1
        account.updated_at = now_utc()
    return len(windows)


async def _accrue_trainer(
    session: AsyncSession,
    trainer: TrainerInfo,
    today: date,
    as_of: date,
    settings: Settings,
) -> int:
    async with unit_of_work(session):
        account = await get_or_open_account_for_update(session, trainer, today)
        return await _accrue_account(session, account, as_of, settings)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


async def run_monthly_accrual(
    session: AsyncSession,
    today: date | None = None,
    *,
    test_mode: bool = False,
    simulated_days: int = DEFAULT_SIMULATED_DAYS,
) -> AccrualRunResult:
    """Credit the monthly increment to every ACTIVE PERMANENT trainer whose window has elapsed.

    Idempotent: windows are keyed by their start date, so re-running for the
    same date credits nothing new. Each trainer commits on its own; a
    failure is logged and counted and the run moves on.

    Args:
        session: Database session. Committed once per trainer.
        today: Evaluation date (defaults to today).
        test_mode: Evaluate as if ``simulated_days`` had already elapsed.
        simulated_days: Days to jump ahead in test mode.
    """
    settings = get_settings()
    if today is None:
        today = date.today()
    as_of = today + timedelta(days=simulated_days) if test_mode else today

    result = AccrualRunResult(target_date=today, as_of=as_of, test_mode=test_mode)

    for trainer in await list_active_trainers():
        if not get_category_policy(trainer.category, settings).accrues:
            continue
        result.processed += 1
        try:
            windows = await _accrue_trainer(session, trainer, today, as_of, settings)
        except Exception as exc:
            logger.exception("Error processing monthly accrual for trainer=%s", trainer.id)
            result.errors += 1
            result.details.append(TrainerOutcome(trainer_id=trainer.id, status="error", message=str(exc)))
            continue

        if windows:
            result.accrued += 1
            result.details.append(TrainerOutcome(trainer_id=trainer.id, status="accrued", windows=windows))
        else:
            result.skipped += 1
            result.details.append(
                TrainerOutcome(trainer_id=trainer.id, status="skipped", message="No accrual window has elapsed")
            )

    logger.info(
        "Monthly accrual for %s (as of %s, test_mode=%s): processed=%d accrued=%d skipped=%d errors=%d",
        today,
        as_of,
        test_mode,
        result.processed,
        result.accrued,
        result.skipped,
        result.errors,
    )
    return result
