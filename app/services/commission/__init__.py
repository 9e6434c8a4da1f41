"""
Commission services package.

- rate_calculator: (tier, plan) rate lookup and rounding
- engine: Payment callbacks to commissions and clawbacks
- standing: Affiliate subscription standing (payout holds)
"""

from app.services.commission.engine import (
    CommissionCancellation,
    CommissionEngine,
    CommissionOutcome,
    OutcomeStatus,
    PaymentEvent,
)
from app.services.commission.rate_calculator import (
    calculate_commission,
    get_commission_rate,
    is_commissionable,
)
from app.services.commission.standing import (
    AffiliateRowStanding,
    SubscriptionStanding,
)


__all__ = [
    "CommissionEngine",
    "CommissionOutcome",
    "CommissionCancellation",
    "OutcomeStatus",
    "PaymentEvent",
    "SubscriptionStanding",
    "AffiliateRowStanding",
    "calculate_commission",
    "get_commission_rate",
    "is_commissionable",
]
