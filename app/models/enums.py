"""
Enumerations shared by models, services and the web layer.
"""

from enum import StrEnum


class AffiliateTier(StrEnum):
    """Affiliate tier, determines the affiliate's commission percentage."""

    PRIME = "prime"  # 25%
    ELITE = "elite"  # 50%


class AffiliateStatus(StrEnum):
    """Affiliate lifecycle status."""

    PENDING = "pending"  # Terms not accepted yet
    ACTIVE = "active"
    SUSPENDED = "suspended"  # Administrative, reversible


class ProductPlan(StrEnum):
    """What the customer paid for."""

    PRIME = "prime"
    ELITE = "elite"
    SUPREME = "supreme"
    DOMAIN = "domain"  # One-time registration
    PREMIUM_DOMAIN = "premium_domain"  # One-time, company-exclusive


class CommissionStatus(StrEnum):
    """Commission lifecycle status."""

    PENDING = "pending"  # Inside the refund window
    CONFIRMED = "confirmed"  # Matured, withdrawable
    PAID = "paid"  # Covered by a completed withdrawal
    CANCELLED = "cancelled"  # Refund or chargeback


class CancelReason(StrEnum):
    """Why a commission was cancelled."""

    REFUNDED = "refunded"
    CHARGEBACK = "chargeback"


class WithdrawalStatus(StrEnum):
    """Withdrawal request status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class WithdrawalOutcome(StrEnum):
    """Administrative resolution of a withdrawal."""

    COMPLETED = "completed"
    REJECTED = "rejected"


class PaymentMethod(StrEnum):
    """Payout rails."""

    PAYPAL = "paypal"
    WISE = "wise"
    BANK_TRANSFER = "bank_transfer"


class PaymentEventType(StrEnum):
    """Payment processor callback types."""

    PAYMENT_SUCCEEDED = "payment_succeeded"
    REFUNDED = "refunded"
    CHARGEBACK = "chargeback"


class LedgerEventType(StrEnum):
    """Balance-affecting (or status-only) ledger events."""

    COMMISSION_CREATED = "commission_created"
    COMMISSION_CONFIRMED = "commission_confirmed"
    COMMISSION_CANCELLED = "commission_cancelled"
    COMMISSION_RELEASED = "commission_released"
    WITHDRAWAL_DEBITED = "withdrawal_debited"
    WITHDRAWAL_PROCESSING = "withdrawal_processing"
    WITHDRAWAL_COMPLETED = "withdrawal_completed"
    WITHDRAWAL_REVERSED = "withdrawal_reversed"
