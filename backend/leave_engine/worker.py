"""Worker process for the scheduled leave jobs.

Runs the job runner loop: monthly accrual and year-end rollover, each ticked
once a day by default. Manual triggers through the API share the same
single-flight lease, so a trigger never overlaps a scheduled run.
"""

from __future__ import annotations

import asyncio
import logging

from leave_engine.config import configure_logging, get_settings
from leave_engine.db import create_schema, dispose_engine
from leave_engine.services.jobs import build_default_runner

logger = logging.getLogger(__name__)


async def run_worker() -> None:
    """Main worker loop."""
    settings = get_settings()
    if settings.auto_create_schema:
        await create_schema()

    runner = build_default_runner(settings)
    logger.info("Leave worker started (holder=%s)", runner.holder)
    try:
        await runner.run_forever()
    finally:
        await dispose_engine()


def main() -> None:
    """Entry point for the worker process."""
    configure_logging()
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
