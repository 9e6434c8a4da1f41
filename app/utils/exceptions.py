"""
Exception handling utilities.

Defines the ledger's error taxonomy and categorized exception types for
proper error handling.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.exc import DBAPIError, OperationalError


class SecurityError(Exception):
    """Raised when a security-critical operation fails."""
    pass


class LedgerError(Exception):
    """Base class for affiliate ledger errors."""

    error_code = "LEDGER_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(LedgerError):
    """Malformed request. Rejected synchronously, no state change."""

    error_code = "VALIDATION_ERROR"


class BelowMinimum(ValidationError):
    """Withdrawal amount is below the configured minimum."""

    error_code = "BELOW_MINIMUM"

    def __init__(self, amount: Decimal, minimum: Decimal) -> None:
        super().__init__(
            f"Minimum withdrawal amount is {minimum}, requested {amount}",
            amount=str(amount),
            minimum=str(minimum),
        )


class InsufficientBalance(ValidationError):
    """Withdrawal amount exceeds the available balance."""

    error_code = "INSUFFICIENT_BALANCE"

    def __init__(self, amount: Decimal, available: Decimal) -> None:
        super().__init__(
            f"Requested {amount} exceeds available balance {available}",
            amount=str(amount),
            available=str(available),
        )


class InvalidTransition(ValidationError):
    """Requested status transition is not allowed from the current state."""

    error_code = "INVALID_TRANSITION"


class AffiliateNotActive(ValidationError):
    """Operation requires an active affiliate."""

    error_code = "AFFILIATE_NOT_ACTIVE"


class ConflictError(LedgerError):
    """Concurrent balance mutation lost a race. Caller must retry."""

    error_code = "CONFLICT"


class NotFoundError(LedgerError):
    """Unknown affiliate, code, order or withdrawal."""

    error_code = "NOT_FOUND"


class InvariantViolation(LedgerError):
    """
    Balance invariant would be broken by an applied event.

    Fatal for the specific apply. Never auto-corrected.
    """

    error_code = "INVARIANT_VIOLATION"


class DuplicateEventError(LedgerError):
    """
    Idempotency short-circuit.

    Not a failure: carries the result of the first delivery so callers can
    return it unchanged.
    """

    error_code = "DUPLICATE_EVENT"

    def __init__(self, message: str, prior_result: Any = None, **context: Any) -> None:
        super().__init__(message, **context)
        self.prior_result = prior_result


class CodeSpaceExhausted(LedgerError):
    """Could not generate a unique referral code within the retry budget."""

    error_code = "CODE_SPACE_EXHAUSTED"


# Exception categories based on handling strategy

# Retry the whole unit of work with the same idempotency key
RETRYABLE = (
    ConflictError,
    OperationalError,  # Lock not available, connection reset
)

# Expected outcomes surfaced as explicit results, not failures
SOFT_NO_OP = (
    NotFoundError,
    DuplicateEventError,
)

# Must halt, log with full context and alert administrators
FATAL = (
    InvariantViolation,
    SecurityError,
)


def is_retryable(exc: Exception) -> bool:
    """
    Check if the failed operation can be retried by the caller.

    Args:
        exc: Exception to check

    Returns:
        True if exception is retryable
    """
    return isinstance(exc, RETRYABLE) or is_lock_not_available(exc)


def is_soft_no_op(exc: Exception) -> bool:
    """
    Check if exception means "nothing to do" rather than a failure.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a soft no-op
    """
    return isinstance(exc, SOFT_NO_OP)


def is_fatal(exc: Exception) -> bool:
    """
    Check if exception requires manual intervention.

    Args:
        exc: Exception to check

    Returns:
        True if exception is fatal
    """
    return isinstance(exc, FATAL)


# PostgreSQL lock_not_available (FOR UPDATE NOWAIT on a held row)
LOCK_NOT_AVAILABLE_SQLSTATE = "55P03"


def _sqlstate(exc: BaseException) -> str | None:
    """Find the SQLSTATE of a driver error behind a SQLAlchemy wrapper."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        # asyncpg: sqlstate; psycopg: pgcode
        code = getattr(current, "sqlstate", None) or getattr(current, "pgcode", None)
        if isinstance(code, str):
            return code
        current = getattr(current, "orig", None) or current.__cause__
    return None


def is_lock_not_available(exc: Exception) -> bool:
    """
    Check if a database error is a NOWAIT row-lock conflict.

    asyncpg errors reach us as a plain DBAPIError whose driver error
    carries SQLSTATE 55P03; SQLite only reports it in the message.

    Args:
        exc: Exception to check

    Returns:
        True if the row lock was held by another transaction
    """
    if not isinstance(exc, DBAPIError):
        return False
    if _sqlstate(exc) == LOCK_NOT_AVAILABLE_SQLSTATE:
        return True
    error_str = str(exc).lower()
    return (
        "could not obtain lock" in error_str
        or "lock_not_available" in error_str
        or "lock not available" in error_str
        or "database is locked" in error_str
    )
