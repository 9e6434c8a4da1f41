"""
Maturation sweep.

Confirms pending commissions whose hold period has elapsed. Scheduled
every few minutes; reads also mature lazily, so a late sweep only delays
the dashboard, never a withdrawal.
"""

import dramatiq
from loguru import logger

from app.config.operational_constants import (
    DRAMATIQ_TIME_LIMIT_STANDARD,
    LOCK_TIMEOUT_SWEEP,
    MATURATION_SWEEP_BATCH_SIZE,
)
from app.services.ledger import LedgerService
from app.utils.datetime_utils import utc_now
from app.utils.distributed_lock import DistributedLock
from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401
from jobs.utils.database import task_session_maker
from jobs.utils.redis import create_redis_client


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_STANDARD)
def run_maturation_sweep() -> dict:
    """
    Confirm every due commission.

    Returns:
        Dict with confirmed, affiliates and skipped counts
    """
    logger.info("Starting maturation sweep...")

    result = run_async(_run_maturation_sweep_async())

    logger.info(
        f"Maturation sweep complete: {result['confirmed']} confirmed, "
        f"{result['affiliates']} affiliates, {result['skipped']} skipped"
    )
    return result


async def _run_maturation_sweep_async() -> dict:
    """Async implementation of the maturation sweep."""
    redis_client = create_redis_client()
    lock = DistributedLock(redis_client=redis_client)

    try:
        async with lock.lock("maturation_sweep", timeout=LOCK_TIMEOUT_SWEEP) as acquired:
            if not acquired:
                return {"confirmed": 0, "affiliates": 0, "skipped": 0, "locked": True}

            async with task_session_maker() as session:
                ledger = LedgerService(session)
                sweep = await ledger.run_maturation_sweep(
                    utc_now(), batch_size=MATURATION_SWEEP_BATCH_SIZE
                )

            return {
                "confirmed": sweep.confirmed_count,
                "affiliates": sweep.affiliates_processed,
                "skipped": len(sweep.skipped_affiliates),
            }
    finally:
        if redis_client:
            await redis_client.close()
