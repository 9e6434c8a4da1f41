"""
Business logic constants for the affiliate ledger.

Central location for business rules used across the application.
This module is imported by settings, services and the web layer, so it
must not import anything from app.services.
"""

from decimal import Decimal

from app.models.enums import AffiliateTier, PaymentMethod, ProductPlan


# Currency all commissions and withdrawals are booked in
LEDGER_CURRENCY = "USD"

# First-touch attribution window (cookie lifetime in the storefront)
ATTRIBUTION_WINDOW_DAYS = 30

# Refund / chargeback absorption window before a commission is withdrawable
COMMISSION_MATURATION_DAYS = 30

# Minimum withdrawal amount (ledger currency)
MINIMUM_WITHDRAWAL_AMOUNT = Decimal("200")

# Quantum for commission amounts
MONEY_QUANTUM = Decimal("0.01")

# Referral code issuance
# Ambiguous characters (0/O, 1/I/L) are excluded so codes survive being
# read aloud or copied from a screenshot.
REFERRAL_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_LENGTH = 8
REFERRAL_CODE_MAX_ATTEMPTS = 10

# Affiliate's own commission percentage, determined by their tier
TIER_COMMISSION_RATES: dict[AffiliateTier, Decimal] = {
    AffiliateTier.PRIME: Decimal("0.25"),
    AffiliateTier.ELITE: Decimal("0.50"),
}

# Recurring subscription plans that generate commissions
COMMISSIONABLE_PLANS = frozenset(
    {ProductPlan.PRIME, ProductPlan.ELITE, ProductPlan.SUPREME}
)

# One-time purchases: revenue exclusive to the company, never commissioned
NON_COMMISSIONABLE_PLANS = frozenset(
    {ProductPlan.DOMAIN, ProductPlan.PREMIUM_DOMAIN}
)

# (affiliate tier, purchased plan) -> commission rate.
# Cross combinations follow the tier percentage; the resulting amount
# differs only because plan prices differ.
COMMISSION_RATE_TABLE: dict[tuple[AffiliateTier, ProductPlan], Decimal] = {
    (tier, plan): rate
    for tier, rate in TIER_COMMISSION_RATES.items()
    for plan in COMMISSIONABLE_PLANS
}

# Payout rails offered to affiliates
SUPPORTED_PAYMENT_METHODS = frozenset(
    {PaymentMethod.PAYPAL, PaymentMethod.WISE, PaymentMethod.BANK_TRANSFER}
)

# Default tier for newly registered affiliates
DEFAULT_AFFILIATE_TIER = AffiliateTier.PRIME

# Recorded on commissions created while the affiliate owes its own
# subscription payment
COMMISSION_HOLD_REASON_OVERDUE = "Affiliate subscription payment overdue"
