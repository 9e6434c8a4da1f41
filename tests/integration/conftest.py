"""
Shared fixtures for integration tests.

Build real services over the in-memory database and seed affiliates.
"""

from decimal import Decimal

import pytest
import pytest_asyncio

from app.models.enums import AffiliateTier, PaymentEventType, ProductPlan
from app.services.affiliate import AffiliateRegistry
from app.services.attribution import AttributionTracker
from app.services.commission import CommissionEngine, PaymentEvent
from app.services.ledger import LedgerService
from app.services.withdrawal.withdrawal_validator import WithdrawalValidator
from app.services.withdrawal_service import WithdrawalService


@pytest.fixture
def registry(session):
    return AffiliateRegistry(session)


@pytest.fixture
def tracker(session):
    return AttributionTracker(session)


@pytest.fixture
def ledger(session, alert_service):
    return LedgerService(session, alert_service)


@pytest.fixture
def engine_service(session, alert_service):
    """CommissionEngine (named to avoid clashing with the DB engine fixture)."""
    return CommissionEngine(session, alert_service)


@pytest.fixture
def withdrawals(session, alert_service):
    return WithdrawalService(
        session,
        validator=WithdrawalValidator(emergency_stop=False),
        alert_service=alert_service,
    )


@pytest_asyncio.fixture
async def affiliate(registry, now):
    """Active prime affiliate (25%)."""
    return await registry.enroll(1001, "2026-01", now)


@pytest_asyncio.fixture
async def elite_affiliate(registry, now):
    """Active elite affiliate (50%)."""
    affiliate = await registry.enroll(1002, "2026-01", now)
    return await registry.set_tier(affiliate.id, AffiliateTier.ELITE)


@pytest.fixture
def pay(engine_service, now):
    """Deliver a payment_succeeded webhook through the commission engine."""

    async def _pay(
        order_id: str,
        referral_code: str | None,
        sale_amount: str = "100.00",
        plan: ProductPlan = ProductPlan.PRIME,
        at=None,
        **fields,
    ):
        event = PaymentEvent(
            order_id=order_id,
            event_type=fields.pop("event_type", PaymentEventType.PAYMENT_SUCCEEDED),
            plan=plan,
            sale_amount=Decimal(sale_amount),
            currency=fields.pop("currency", "USD"),
            affiliate_referral_code=referral_code,
            occurred_at=at or now,
            **fields,
        )
        return await engine_service.handle_payment_event(event)

    return _pay


@pytest.fixture
def refund(engine_service, now):
    """Deliver a refund (or chargeback) webhook."""

    async def _refund(order_id: str, at=None, chargeback: bool = False):
        event = PaymentEvent(
            order_id=order_id,
            event_type=(
                PaymentEventType.CHARGEBACK if chargeback else PaymentEventType.REFUNDED
            ),
            plan=ProductPlan.PRIME,
            sale_amount=Decimal("1.00"),
            currency="USD",
            occurred_at=at or now,
        )
        return await engine_service.handle_payment_event(event)

    return _refund
