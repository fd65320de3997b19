"""Year-end rollover: move unused finite balances into carry-forward."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from leave_engine.config import get_settings
from leave_engine.db import unit_of_work
from leave_engine.models.base import now_utc
from leave_engine.models.enums import AuditEntryType
from leave_engine.services import ledger
from leave_engine.services.accrual import TrainerOutcome
from leave_engine.services.audit import SYSTEM_ACTOR, audit_entry_exists
from leave_engine.services.balance import get_balance_for_update, get_or_open_account_for_update
from leave_engine.services.directory import list_active_trainers
from leave_engine.services.policy import get_category_policy

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.config import Settings
    from leave_engine.services.directory import TrainerInfo

logger = logging.getLogger(__name__)


@dataclass
class RolloverRunResult:
    """Summary of a year-end rollover run."""

    target_date: date
    test_mode: bool = False
    ran: bool = False
    processed: int = 0
    rolled_over: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[TrainerOutcome] = field(default_factory=list)
    message: str | None = None


def build_rollover_source_id(trainer_id: uuid.UUID, year: int, leave_type: str) -> str:
    return f"rollover:{trainer_id}:{year}:{leave_type}"


async def _rollover_trainer(
    session: AsyncSession,
    trainer: TrainerInfo,
    today: date,
    settings: Settings,
) -> int | None:
    """Roll one trainer over. Returns the total days carried, or None if already done this year."""
    policy = get_category_policy(trainer.category, settings)

    async with unit_of_work(session):
        account = await get_or_open_account_for_update(session, trainer, today)
        if account.last_rollover_date is not None and account.last_rollover_date.year == today.year:
            return None

        carried_total = 0
        for leave_type in policy.finite_leave_types():
            source_id = build_rollover_source_id(trainer.id, today.year, leave_type.value)
            if await audit_entry_exists(session, AuditEntryType.ROLLOVER, source_id):
                continue

            balance = await get_balance_for_update(session, account, leave_type)
            if balance.is_unlimited:
                continue
            _, carried = ledger.rollover_apply(
                session,
                balance,
                settings.rollover_cap_days,
                actor_id=SYSTEM_ACTOR,
                source_id=source_id,
            )
            carried_total += carried

        account.last_rollover_date = today
        account.version += 1
        account.updated_at = now_utc()

    return carried_total


async def run_year_end_rollover(
    session: AsyncSession,
    today: date | None = None,
    *,
    test_mode: bool = False,
) -> RolloverRunResult:
    """Carry unused SICK/CASUAL days forward for every ACTIVE PERMANENT trainer.

    Acts only in the configured rollover month (test mode skips that check)
    and at most once per trainer per calendar year.
    """
    settings = get_settings()
    if today is None:
        today = date.today()

    result = RolloverRunResult(target_date=today, test_mode=test_mode)

    if not test_mode and today.month != settings.rollover_month:
        result.message = f"Rollover only runs in month {settings.rollover_month}"
        logger.debug("Skipping year-end rollover on %s: not the rollover month", today)
        return result

    result.ran = True
    for trainer in await list_active_trainers():
        if not get_category_policy(trainer.category, settings).rolls_over:
            continue
        result.processed += 1
        try:
            carried = await _rollover_trainer(session, trainer, today, settings)
        except Exception as exc:
            logger.exception("Error processing year-end rollover for trainer=%s", trainer.id)
            result.errors += 1
            result.details.append(TrainerOutcome(trainer_id=trainer.id, status="error", message=str(exc)))
            continue

        if carried is None:
            result.skipped += 1
            result.details.append(
                TrainerOutcome(
                    trainer_id=trainer.id, status="skipped", message=f"Already rolled over in {today.year}"
                )
            )
        else:
            result.rolled_over += 1
            result.details.append(
                TrainerOutcome(trainer_id=trainer.id, status="rolled_over", message=f"Carried {carried} days")
            )

    logger.info(
        "Year-end rollover for %s (test_mode=%s): processed=%d rolled_over=%d skipped=%d errors=%d",
        today,
        test_mode,
        result.processed,
        result.rolled_over,
        result.skipped,
        result.errors,
    )
    return result
