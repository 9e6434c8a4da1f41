"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC (processor payloads without
    an offset).

    Args:
        value: Datetime to normalize

    Returns:
        Aware UTC datetime
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def add_days(value: datetime, days: int) -> datetime:
    """
    Shift a datetime by whole days.

    Args:
        value: Start datetime
        days: Number of days

    Returns:
        Shifted datetime
    """
    return value + timedelta(days=days)
