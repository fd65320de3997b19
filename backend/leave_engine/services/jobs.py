"""Named scheduled jobs with single-flight execution.

A job can only run once at a time. Within a process this is an
``asyncio.Lock`` per job name; across processes it is a ``JobLease`` row
that expires after ``job_lease_seconds`` so a crashed holder cannot block
the job forever.
"""

from __future__ import annotations

import asyncio
import logging
import os
import socket
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_engine.config import get_settings
from leave_engine.db import get_session_factory, unit_of_work
from leave_engine.exceptions import JobAlreadyRunningError, NotFoundError
from leave_engine.models.base import now_utc
from leave_engine.models.job import JobLease
from leave_engine.services.accrual import run_monthly_accrual
from leave_engine.services.rollover import run_year_end_rollover

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from leave_engine.config import Settings

logger = logging.getLogger(__name__)

ACCRUAL_JOB = "monthly-accrual"
ROLLOVER_JOB = "year-end-rollover"


@dataclass(frozen=True)
class ScheduledTask:
    """A named job and how often the runner ticks it.

    ``run`` receives a fresh session plus any keyword arguments passed to
    ``JobRunner.run_once``.
    """

    name: str
    interval_seconds: int
    run: Callable[..., Awaitable[Any]]


class JobRunner:
    """Runs registered tasks on demand or on their own interval."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        lease_seconds: int | None = None,
        holder: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._tasks: dict[str, ScheduledTask] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._stop = asyncio.Event()
        self.lease_seconds = lease_seconds if lease_seconds is not None else get_settings().job_lease_seconds
        self.holder = holder or f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    @property
    def tasks(self) -> list[ScheduledTask]:
        return list(self._tasks.values())

    def register(self, task: ScheduledTask) -> None:
        if task.name in self._tasks:
            raise ValueError(f"Job {task.name!r} is already registered")
        self._tasks[task.name] = task
        self._locks[task.name] = asyncio.Lock()

    def is_running(self, name: str) -> bool:
        lock = self._locks.get(name)
        return lock is not None and lock.locked()

    # -----------------------------------------------------------------------
    # Lease handling
    # -----------------------------------------------------------------------

    async def _acquire_lease(self, name: str) -> bool:
        """Take the cross-process lease for ``name``. Returns False if another holder owns it."""
        now = now_utc()
        expires_at = now + timedelta(seconds=self.lease_seconds)
        try:
            async with self.session_factory() as session, unit_of_work(session):
                result = await session.execute(
                    update(JobLease)
                    .where(
                        col(JobLease.job_name) == name,
                        or_(col(JobLease.expires_at) <= now, col(JobLease.holder) == self.holder),
                    )
                    .values(holder=self.holder, acquired_at=now, expires_at=expires_at)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:  # ty: ignore[unresolved-attribute]
                    return True

                existing = await session.execute(select(JobLease.job_name).where(col(JobLease.job_name) == name))
                if existing.scalar_one_or_none() is not None:
                    return False

                session.add(JobLease(job_name=name, holder=self.holder, acquired_at=now, expires_at=expires_at))
        except IntegrityError:
            # Another process inserted the lease first.
            return False
        return True

    async def _release_lease(self, name: str) -> None:
        async with self.session_factory() as session, unit_of_work(session):
            await session.execute(
                delete(JobLease).where(col(JobLease.job_name) == name, col(JobLease.holder) == self.holder)
            )

    # -----------------------------------------------------------------------
    # Execution
    # -----------------------------------------------------------------------

    async def run_once(self, name: str, **kwargs: Any) -> Any:
        """Run a job now. Raises JobAlreadyRunningError if it is already in flight anywhere."""
        task = self._tasks.get(name)
        if task is None:
            raise NotFoundError(f"Unknown job {name!r}")

        lock = self._locks[name]
        if lock.locked():
            raise JobAlreadyRunningError(f"Job {name!r} is already running", context={"job": name})

        async with lock:
            if not await self._acquire_lease(name):
                raise JobAlreadyRunningError(
                    f"Job {name!r} is already running in another process", context={"job": name}
                )
            logger.info("Job %s started (holder=%s)", name, self.holder)
            try:
                async with self.session_factory() as session:
                    return await task.run(session, **kwargs)
            finally:
                await self._release_lease(name)
                logger.info("Job %s finished", name)

    async def run_forever(self) -> None:
        """Tick every registered task on its own interval until ``stop`` is called."""
        loop = asyncio.get_running_loop()
        next_run = {name: loop.time() for name in self._tasks}
        self._stop.clear()
        logger.info("Job runner started with %s", ", ".join(self._tasks) or "no jobs")

        while not self._stop.is_set():
            for name, task in self._tasks.items():
                if loop.time() < next_run[name]:
                    continue
                next_run[name] = loop.time() + task.interval_seconds
                try:
                    result = await self.run_once(name)
                    logger.info("Job %s result: %s", name, result)
                except JobAlreadyRunningError:
                    logger.info("Job %s skipped: already running", name)
                except Exception:
                    logger.exception("Job %s failed; retrying on the next tick", name)

            if not next_run:
                await self._stop.wait()
                break
            timeout = max(0.0, min(next_run.values()) - loop.time())
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=timeout)
            except TimeoutError:
                continue

        logger.info("Job runner stopped")

    def stop(self) -> None:
        self._stop.set()


def build_default_runner(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> JobRunner:
    """Runner with the monthly accrual and year-end rollover jobs registered."""
    settings = settings or get_settings()
    runner = JobRunner(session_factory, lease_seconds=settings.job_lease_seconds)
    runner.register(ScheduledTask(ACCRUAL_JOB, settings.accrual_tick_seconds, run_monthly_accrual))
    runner.register(ScheduledTask(ROLLOVER_JOB, settings.rollover_tick_seconds, run_year_end_rollover))
    return runner


_job_runner: JobRunner | None = None


def get_job_runner() -> JobRunner:
    """Return the process-wide job runner, building the default one on first use."""
    global _job_runner
    if _job_runner is None:
        _job_runner = build_default_runner()
    return _job_runner


def set_job_runner(runner: JobRunner | None) -> None:
    """Override the runner (for testing or production wiring)."""
    global _job_runner
    _job_runner = runner
