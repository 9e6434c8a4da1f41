"""Pydantic models for API request bodies."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import (
    AffiliateTier,
    PaymentEventType,
    PaymentMethod,
    ProductPlan,
    WithdrawalOutcome,
)


class PaymentWebhook(BaseModel):
    """Payment processor callback."""

    model_config = ConfigDict(str_strip_whitespace=True)

    order_id: str = Field(..., min_length=1, max_length=128)
    event_type: PaymentEventType
    plan: ProductPlan
    sale_amount: Decimal = Field(..., gt=0, decimal_places=2)
    currency: str = Field(..., min_length=3, max_length=3)
    affiliate_referral_code: str | None = Field(default=None, max_length=32)
    visitor_token: str | None = Field(default=None, max_length=128)
    customer_user_id: int | None = None
    occurred_at: datetime | None = None


class AttributionCapture(BaseModel):
    """A storefront visit, with or without a referral code."""

    model_config = ConfigDict(str_strip_whitespace=True)

    visitor_token: str = Field(..., min_length=1, max_length=128)
    referral_code: str | None = Field(default=None, max_length=32)
    timestamp: datetime | None = None
    source: str | None = Field(default=None, max_length=64)
    user_id: int | None = None


class EnrollRequest(BaseModel):
    """Affiliate sign-up."""

    user_id: int = Field(..., ge=1)
    terms_version: str = Field(..., min_length=1, max_length=32)


class TermsAcceptance(BaseModel):
    """Acceptance of a terms version."""

    terms_version: str = Field(..., min_length=1, max_length=32)


class WithdrawalCreate(BaseModel):
    """Withdrawal request."""

    amount: Decimal
    payment_method: PaymentMethod
    payment_details: dict[str, Any] = Field(default_factory=dict)


class WithdrawalResolution(BaseModel):
    """Administrative resolution of a withdrawal."""

    outcome: WithdrawalOutcome
    note: str | None = Field(default=None, max_length=500)


class TierChange(BaseModel):
    """Administrative tier change."""

    tier: AffiliateTier


class SuspensionRequest(BaseModel):
    """Administrative suspension."""

    reason: str = Field(..., min_length=1, max_length=500)


class SubscriptionStandingChange(BaseModel):
    """Billing report on the affiliate's own subscription."""

    overdue: bool
    release_holds: bool = True
