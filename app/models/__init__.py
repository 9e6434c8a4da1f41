"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.affiliate import Affiliate
from app.models.attribution import Attribution
from app.models.base import Base
from app.models.commission import Commission
from app.models.enums import (
    AffiliateStatus,
    AffiliateTier,
    CancelReason,
    CommissionStatus,
    LedgerEventType,
    PaymentEventType,
    PaymentMethod,
    ProductPlan,
    WithdrawalOutcome,
    WithdrawalStatus,
)
from app.models.ledger_event import LedgerEvent
from app.models.withdrawal import Withdrawal


__all__ = [
    # Base
    "Base",
    # Enums
    "AffiliateStatus",
    "AffiliateTier",
    "CancelReason",
    "CommissionStatus",
    "LedgerEventType",
    "PaymentEventType",
    "PaymentMethod",
    "ProductPlan",
    "WithdrawalOutcome",
    "WithdrawalStatus",
    # Core Models
    "Affiliate",
    "Attribution",
    "Commission",
    "LedgerEvent",
    "Withdrawal",
]
