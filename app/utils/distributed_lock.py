"""
Distributed lock.

Redis-backed lock that keeps periodic jobs (maturation sweep,
reconciliation) from running concurrently on several dramatiq workers.
Falls back to a process-local asyncio lock when Redis is unavailable.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from redis.exceptions import LockError, RedisError

from app.config.operational_constants import BLOCKING_TIMEOUT_DEFAULT


_local_locks: dict[str, asyncio.Lock] = {}


class DistributedLock:
    """Named lock shared between worker processes through Redis."""

    def __init__(self, redis_client: Any | None = None, prefix: str = "lock:") -> None:
        """
        Initialize distributed lock.

        Args:
            redis_client: redis.asyncio client (None = local fallback)
            prefix: Key prefix for lock names
        """
        self.redis_client = redis_client
        self.prefix = prefix

    @asynccontextmanager
    async def lock(
        self,
        name: str,
        timeout: int,
        blocking_timeout: float = BLOCKING_TIMEOUT_DEFAULT,
    ) -> AsyncIterator[bool]:
        """
        Acquire the named lock.

        Yields True when the lock is held and False when another holder
        kept it for longer than ``blocking_timeout``; callers skip their
        work in the latter case.

        Args:
            name: Lock name
            timeout: Auto-release after this many seconds
            blocking_timeout: How long to wait for acquisition
        """
        if self.redis_client is None:
            async with self._local_lock(name, blocking_timeout) as acquired:
                yield acquired
            return

        redis_lock = self.redis_client.lock(
            f"{self.prefix}{name}",
            timeout=timeout,
            blocking_timeout=blocking_timeout,
        )
        try:
            acquired = await redis_lock.acquire()
        except RedisError as e:
            logger.warning(f"Redis lock '{name}' unavailable, using local lock: {e}")
            async with self._local_lock(name, blocking_timeout) as local_acquired:
                yield local_acquired
            return

        if not acquired:
            logger.info(f"Lock '{name}' is held by another worker, skipping")
            yield False
            return

        try:
            yield True
        finally:
            try:
                await redis_lock.release()
            except LockError:
                logger.warning(f"Lock '{name}' expired before release")

    @asynccontextmanager
    async def _local_lock(
        self, name: str, blocking_timeout: float
    ) -> AsyncIterator[bool]:
        local = _local_locks.setdefault(name, asyncio.Lock())
        try:
            await asyncio.wait_for(local.acquire(), timeout=blocking_timeout)
        except TimeoutError:
            yield False
            return
        try:
            yield True
        finally:
            local.release()
