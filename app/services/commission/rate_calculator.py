"""
Commission rate calculator.

Pure lookup of the (tier, plan) rate table and commission rounding.
"""

from decimal import ROUND_HALF_UP, Decimal

from app.config.business_constants import (
    COMMISSION_RATE_TABLE,
    MONEY_QUANTUM,
    NON_COMMISSIONABLE_PLANS,
)
from app.models.enums import AffiliateTier, ProductPlan


def is_commissionable(plan: ProductPlan | str) -> bool:
    """
    Check whether a purchase can generate a commission.

    Domain registrations are company-exclusive revenue.

    Args:
        plan: Purchased plan

    Returns:
        True for recurring subscription plans
    """
    try:
        plan = ProductPlan(plan)
    except ValueError:
        return False
    return plan not in NON_COMMISSIONABLE_PLANS


def get_commission_rate(
    tier: AffiliateTier | str, plan: ProductPlan | str
) -> Decimal | None:
    """
    Look up the commission rate for a sale.

    Rates are frozen into the commission row at creation. A tier change
    therefore only affects commissions created afterwards; applying new
    rates to existing subscriptions would mean re-reading the tier at
    maturation instead of here.

    Args:
        tier: Affiliate tier at sale time
        plan: Purchased plan

    Returns:
        Rate as a fraction, None if the plan is not commissionable
    """
    if not is_commissionable(plan):
        return None
    return COMMISSION_RATE_TABLE.get((AffiliateTier(tier), ProductPlan(plan)))


def calculate_commission(sale_amount: Decimal, rate: Decimal) -> Decimal:
    """
    Compute the commission amount, rounded half-up to cents.

    Args:
        sale_amount: Billed amount
        rate: Commission rate

    Returns:
        Commission amount

    Example:
        >>> calculate_commission(Decimal("70.00"), Decimal("0.50"))
        Decimal('35.00')
    """
    return (sale_amount * rate).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
