"""
Base service class.

Session handling, bound logging and the unit-of-work decorators shared by
the ledger services.
"""

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.exceptions import (
    ValidationError,
    is_fatal,
    is_retryable,
    is_soft_no_op,
)


T = TypeVar("T")


class BaseService:
    """
    Base service class.

    Every service shares the request's session; ``self.logger`` carries
    the service name on each record.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
        """
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback current transaction."""
        await self.session.rollback()


def _log_rollback(service: BaseService, name: str, error: Exception) -> None:
    """Log a rolled back unit of work at a level matching its cause."""
    context = {"function": name, "error": str(error)}

    if isinstance(error, ValidationError) or is_soft_no_op(error):
        # Business rejection or idempotent replay
        service.logger.info(
            f"Transaction rejected in {name}: {type(error).__name__}",
            extra=context,
        )
    elif is_retryable(error) and not is_fatal(error):
        # Lost a row-lock race, the retry decorator takes over
        service.logger.debug(f"Transaction conflict in {name}", extra=context)
    else:
        service.logger.opt(exception=error).error(
            f"Transaction failed in {name}", extra=context
        )


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Run a service method as one unit of work.

    Commits on success, rolls back and re-raises on any exception.
    Balance-mutating methods stack it under ``retry_on_lock_conflict``
    so every retry starts a fresh transaction.

    Usage:
        @retry_on_lock_conflict()
        @transaction
        async def resolve(self, withdrawal_id: int, ...):
            ...

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
            return result
        except Exception as e:
            await self.rollback()
            _log_rollback(self, func.__name__, e)
            raise

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Log a long-running service operation with its duration.

    Used on batch operations (maturation sweep, reconciliation) so job
    logs show how long each run took.

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        started = time.perf_counter()
        self.logger.debug(f"Starting {func.__name__}")

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            self.logger.error(
                f"Failed {func.__name__}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(time.perf_counter() - started, 3),
                    "error": str(e),
                },
            )
            raise

        self.logger.info(
            f"Completed {func.__name__}",
            extra={
                "function": func.__name__,
                "duration_seconds": round(time.perf_counter() - started, 3),
            },
        )
        return result

    return wrapper
