"""
Ledger job scheduler.

Enqueues the periodic dramatiq jobs (maturation sweep, reconciliation)
and serves the health check endpoint. Run with ``python -m jobs.scheduler``;
workers run with ``dramatiq jobs.worker``.
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from app.config.settings import settings
from app.utils.logging_setup import setup_logging
from jobs.health import set_scheduler, start_health_server, stop_health_server
from jobs.tasks.maturation_sweep import run_maturation_sweep
from jobs.tasks.reconciliation import reconcile_ledger

scheduler_instance: AsyncIOScheduler | None = None


def create_scheduler() -> AsyncIOScheduler:
    """
    Create the scheduler with the ledger jobs registered.

    Returns:
        Scheduler (not started)
    """
    scheduler = AsyncIOScheduler(
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
        timezone="UTC",
    )

    scheduler.add_job(
        run_maturation_sweep.send,
        "interval",
        minutes=settings.maturation_sweep_interval_minutes,
        id="maturation_sweep",
        replace_existing=True,
    )
    scheduler.add_job(
        reconcile_ledger.send,
        "interval",
        minutes=settings.reconciliation_interval_minutes,
        id="ledger_reconciliation",
        replace_existing=True,
    )
    return scheduler


async def main() -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    global scheduler_instance

    setup_logging("scheduler", settings.log_level)

    scheduler_instance = create_scheduler()
    scheduler_instance.start()
    set_scheduler(scheduler_instance)
    logger.info(
        f"Scheduler started: maturation sweep every "
        f"{settings.maturation_sweep_interval_minutes} min, reconciliation every "
        f"{settings.reconciliation_interval_minutes} min"
    )

    runner = await start_health_server(port=settings.health_check_port)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        logger.info("Graceful shutdown initiated...")
        scheduler_instance.shutdown(wait=False)
        await stop_health_server(runner)
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
