"""
Database decorators for row-lock conflict retries.

Service methods lock the affiliate row with NOWAIT; a held lock surfaces
as a DBAPIError (SQLSTATE 55P03 on PostgreSQL) and the whole unit of work
is retried with backoff.
"""

import asyncio
import random
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger

from app.config.operational_constants import (
    AFFILIATE_LOCK_MAX_RETRIES,
    AFFILIATE_LOCK_RETRY_DELAY_BASE,
    AFFILIATE_LOCK_RETRY_JITTER,
)
from app.utils.exceptions import ConflictError, is_lock_not_available


T = TypeVar("T")


def retry_on_lock_conflict(
    max_retries: int = AFFILIATE_LOCK_MAX_RETRIES,
    delay_base: float = AFFILIATE_LOCK_RETRY_DELAY_BASE,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry a whole unit of work when an affiliate row lock is taken.

    Wraps an async service method whose instance exposes ``self.session``.
    A NOWAIT lock conflict rolls back the session, waits with exponential
    backoff plus jitter and runs the method again from the start. When the
    retry budget is exhausted a ``ConflictError`` is raised so the caller
    can retry later with the same idempotency key.

    Usage:
        @retry_on_lock_conflict()
        async def request(self, affiliate_id: int, ...):
            ...

    Args:
        max_retries: Total attempts
        delay_base: Base delay in seconds (doubled per attempt)

    Returns:
        Decorator
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries):
                try:
                    return await func(self, *args, **kwargs)
                except Exception as e:
                    if not is_lock_not_available(e):
                        raise
                    await self.session.rollback()
                    if attempt < max_retries - 1:
                        delay = delay_base * (2 ** attempt) + random.uniform(
                            0, AFFILIATE_LOCK_RETRY_JITTER
                        )
                        logger.debug(
                            f"Lock conflict in {func.__name__}, retrying",
                            extra={"attempt": attempt + 1, "delay": round(delay, 3)},
                        )
                        await asyncio.sleep(delay)
                        continue
                    logger.warning(
                        f"Lock conflict in {func.__name__} after {max_retries} attempts"
                    )
                    raise ConflictError(
                        "Affiliate balance is being updated concurrently, retry later",
                        function=func.__name__,
                    ) from e
            raise ConflictError("Retry budget exhausted", function=func.__name__)

        return wrapper

    return decorator
