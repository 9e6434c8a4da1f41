"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for settings validation; must run before app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ENCRYPTION_KEY", "YWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWE=")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")
os.environ.setdefault("ADMIN_TELEGRAM_IDS", "")

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory configured like app.config.database."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_maker):
    """Database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def alert_service():
    """Mock AdminAlertService recording every alert."""
    service = AsyncMock()
    service.notify = AsyncMock(return_value=1)
    service.notify_clawback_debt = AsyncMock(return_value=1)
    service.notify_invariant_violation = AsyncMock(return_value=1)
    service.notify_reconciliation_drift = AsyncMock(return_value=1)
    return service


@pytest.fixture
def now():
    """Fixed evaluation time."""
    return datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def bank_details():
    """Valid bank transfer payout details."""
    return {
        "account_holder": "Jane Doe",
        "iban": "DE89 3704 0044 0532 0130 00",
        "swift": "COBADEFFXXX",
    }


@pytest.fixture
def paypal_details():
    """Valid PayPal payout details."""
    return {"email": "Affiliate@Example.com"}
