"""
Ledger reconciliation.

Rebuilds every affiliate's balances from commission and withdrawal rows
and compares them with the cached columns. Drift is reported to admins
and written to the audit log; nothing is corrected automatically.
"""

import dramatiq
from loguru import logger

from app.config.operational_constants import (
    DRAMATIQ_TIME_LIMIT_LONG,
    LOCK_TIMEOUT_RECONCILIATION,
)
from app.services.ledger import LedgerService
from app.utils.distributed_lock import DistributedLock
from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401
from jobs.utils.database import task_session_maker
from jobs.utils.redis import create_redis_client


@dramatiq.actor(max_retries=1, time_limit=DRAMATIQ_TIME_LIMIT_LONG)
def reconcile_ledger() -> dict:
    """
    Reconcile cached balances of all affiliates.

    Returns:
        Dict with drifted affiliate IDs
    """
    logger.info("Starting ledger reconciliation...")

    result = run_async(_reconcile_ledger_async())

    if result["drifted"]:
        logger.warning(
            f"Ledger reconciliation found drift for "
            f"{len(result['drifted'])} affiliate(s): {result['drifted']}"
        )
    else:
        logger.info("Ledger reconciliation complete: no drift")
    return result


async def _reconcile_ledger_async() -> dict:
    """Async implementation of ledger reconciliation."""
    redis_client = create_redis_client()
    lock = DistributedLock(redis_client=redis_client)

    try:
        async with lock.lock(
            "ledger_reconciliation", timeout=LOCK_TIMEOUT_RECONCILIATION
        ) as acquired:
            if not acquired:
                return {"drifted": [], "locked": True}

            async with task_session_maker() as session:
                reports = await LedgerService(session).reconcile_all()

            return {"drifted": [report.affiliate_id for report in reports]}
    finally:
        if redis_client:
            await redis_client.close()
