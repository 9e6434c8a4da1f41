"""
Affiliate subscription standing.

Affiliates are storefront subscribers themselves. Commissions earned
while their own subscription payment is overdue are created on payout
hold and stay out of maturation until the hold is released.
"""

from datetime import datetime
from typing import Protocol

from app.models.affiliate import Affiliate


class SubscriptionStanding(Protocol):
    """Decides whether an affiliate may receive commission payouts."""

    async def can_receive_payout(self, affiliate: Affiliate, now: datetime) -> bool:
        ...


class AffiliateRowStanding:
    """
    Standing recorded on the affiliate row.

    Billing marks ``subscription_overdue_since`` through the admin API;
    an unset column means the affiliate is in good standing.
    """

    async def can_receive_payout(self, affiliate: Affiliate, now: datetime) -> bool:
        return not affiliate.subscription_overdue
