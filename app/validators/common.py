"""
Common validators for user input.

Each validator returns a tuple of (is_valid, parsed_value, error_message).

This module provides parsing wrappers around unified validators.
"""

from decimal import Decimal
from typing import Any

from app.config.business_constants import SUPPORTED_PAYMENT_METHODS
from app.models.enums import PaymentMethod
from app.validators.unified import (
    normalize_email as _normalize_email,
    normalize_iban as _normalize_iban,
    validate_account_holder as _validate_account_holder,
    validate_amount as _validate_amount,
    validate_email as _validate_email,
    validate_referral_code as _validate_referral_code,
    validate_swift as _validate_swift,
)


def validate_amount(
    value: str, min_amount: Decimal = Decimal("0")
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a ledger amount (two decimal places).

    Args:
        value: String to validate as amount
        min_amount: Minimum allowed amount (default: 0)

    Returns:
        Tuple of (is_valid, parsed_amount, error_message)

    Examples:
        >>> validate_amount("200.00")
        (True, Decimal('200.00'), None)
        >>> validate_amount("abc")
        (False, None, "Invalid amount format")
    """
    return _validate_amount(value, min_val=min_amount)


def validate_email(value: str) -> tuple[bool, str | None, str | None]:
    """
    Validate email address.

    Args:
        value: String to validate as email

    Returns:
        Tuple of (is_valid, normalized_email, error_message)
    """
    is_valid, error = _validate_email(value)

    if not is_valid:
        return False, None, error

    return True, _normalize_email(value), None


def validate_referral_code(value: str) -> tuple[bool, str | None, str | None]:
    """
    Validate referral code.

    Args:
        value: Code as typed

    Returns:
        Tuple of (is_valid, normalized_code, error_message)

    Examples:
        >>> validate_referral_code(" ab2cd3ef ")
        (True, "AB2CD3EF", None)
    """
    is_valid, error = _validate_referral_code(value)

    if not is_valid:
        return False, None, error

    return True, value.strip().upper(), None


def validate_payment_details(
    method: PaymentMethod | str, details: dict[str, Any] | None
) -> tuple[bool, dict[str, str] | None, str | None]:
    """
    Validate payout details for a payment method.

    PayPal and Wise need the account email; bank transfers need the
    account holder and IBAN, with an optional SWIFT/BIC.

    Args:
        method: Payout method
        details: Raw details from the request

    Returns:
        Tuple of (is_valid, normalized_details, error_message)
    """
    try:
        method = PaymentMethod(method)
    except ValueError:
        return False, None, f"Unsupported payment method: {method}"

    if method not in SUPPORTED_PAYMENT_METHODS:
        return False, None, f"Unsupported payment method: {method}"

    if not details or not isinstance(details, dict):
        return False, None, "Payment details are required"

    if method in (PaymentMethod.PAYPAL, PaymentMethod.WISE):
        is_valid, email, error = validate_email(str(details.get("email", "")))
        if not is_valid:
            return False, None, error
        return True, {"email": email}, None

    holder = str(details.get("account_holder", ""))
    is_valid, error = _validate_account_holder(holder)
    if not is_valid:
        return False, None, error

    try:
        iban = _normalize_iban(str(details.get("iban", "")))
    except ValueError as e:
        return False, None, str(e)

    normalized = {"account_holder": holder.strip(), "iban": iban}

    swift = details.get("swift")
    if swift:
        is_valid, error = _validate_swift(str(swift))
        if not is_valid:
            return False, None, error
        normalized["swift"] = str(swift).strip().upper()

    return True, normalized, None
