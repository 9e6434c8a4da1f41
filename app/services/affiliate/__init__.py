"""
Affiliate services package.

- code_generator: Referral code generation
- registry: Registration, terms, tier and suspension
"""

from app.services.affiliate.code_generator import (
    generate_referral_code,
    normalize_referral_code,
)
from app.services.affiliate.registry import AffiliateRegistry


__all__ = [
    "AffiliateRegistry",
    "generate_referral_code",
    "normalize_referral_code",
]
