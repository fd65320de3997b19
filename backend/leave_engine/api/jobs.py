# ruff: noqa: B008, TC001, TC003
"""API endpoints for manually triggering the scheduled jobs."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query

from leave_engine.api.deps import AdminDep, JobRunnerDep
from leave_engine.schemas.jobs import (
    AccrualRunResponse,
    JobStatusResponse,
    RolloverRunResponse,
    TrainerJobDetail,
)
from leave_engine.services.accrual import DEFAULT_SIMULATED_DAYS, TrainerOutcome
from leave_engine.services.jobs import ACCRUAL_JOB, ROLLOVER_JOB

jobs_router = APIRouter(
    prefix="/jobs",
    tags=["jobs"],
)


def _details(outcomes: list[TrainerOutcome]) -> list[TrainerJobDetail]:
    return [
        TrainerJobDetail(trainer_id=o.trainer_id, status=o.status, windows=o.windows, message=o.message)
        for o in outcomes
    ]


@jobs_router.get("", response_model=list[JobStatusResponse])
async def list_jobs(
    _auth: AdminDep,
    runner: JobRunnerDep,
) -> list[JobStatusResponse]:
    """Registered jobs and whether they are currently running in this process."""
    return [
        JobStatusResponse(name=t.name, interval_seconds=t.interval_seconds, running=runner.is_running(t.name))
        for t in runner.tasks
    ]


@jobs_router.post("/accrual/trigger", response_model=AccrualRunResponse)
async def trigger_accrual(
    _auth: AdminDep,
    runner: JobRunnerDep,
    test_mode: bool = Query(default=False),
    target_date: date | None = Query(default=None),
    simulated_days: int = Query(default=DEFAULT_SIMULATED_DAYS, ge=1, le=366),
) -> AccrualRunResponse:
    """Run the monthly accrual now (admin only).

    In test mode the run evaluates as if ``simulated_days`` had already
    elapsed. Returns 409 if the job is already running.
    """
    result = await runner.run_once(
        ACCRUAL_JOB,
        today=target_date,
        test_mode=test_mode,
        simulated_days=simulated_days,
    )
    return AccrualRunResponse(
        target_date=result.target_date,
        as_of=result.as_of,
        test_mode=result.test_mode,
        processed=result.processed,
        accrued=result.accrued,
        skipped=result.skipped,
        errors=result.errors,
        details=_details(result.details),
    )


@jobs_router.post("/rollover/trigger", response_model=RolloverRunResponse)
async def trigger_rollover(
    _auth: AdminDep,
    runner: JobRunnerDep,
    test_mode: bool = Query(default=False),
    target_date: date | None = Query(default=None),
) -> RolloverRunResponse:
    """Run the year-end rollover now (admin only).

    Outside the rollover month nothing happens unless ``test_mode`` is set.
    """
    result = await runner.run_once(ROLLOVER_JOB, today=target_date, test_mode=test_mode)
    return RolloverRunResponse(
        target_date=result.target_date,
        test_mode=result.test_mode,
        ran=result.ran,
        processed=result.processed,
        rolled_over=result.rolled_over,
        skipped=result.skipped,
        errors=result.errors,
        details=_details(result.details),
        message=result.message,
    )
