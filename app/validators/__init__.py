"""
Validators package.

Provides common validation functions for user input.
"""

from app.validators.common import (
    validate_amount,
    validate_email,
    validate_payment_details,
    validate_referral_code,
)


__all__ = [
    "validate_amount",
    "validate_email",
    "validate_payment_details",
    "validate_referral_code",
]
