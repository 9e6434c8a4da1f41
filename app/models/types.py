"""
Standard type definitions for database models.

Provides consistent types for monetary, rate and timestamp fields across
all models.
"""

from datetime import UTC, datetime

from sqlalchemy import DECIMAL, DateTime
from sqlalchemy.types import TypeDecorator

# Standard money type for amounts and balances
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Commission rate stored as a fraction (0.2500 = 25%)
# Precision: 5 digits total, 4 after decimal point
# Range: 0.0000 to 9.9999
RateType = DECIMAL(5, 4)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp that always comes back as UTC.

    Backends without native timezone support (SQLite in tests) return
    naive values; those are tagged as UTC so comparisons against
    ``utc_now()`` never mix naive and aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime is not allowed: {value!r}")
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
