"""
Unified validators.

Single source of truth for the low-level format checks. Each validator
returns (is_valid, error_message) or, for parsers, (is_valid, value,
error_message).
"""

import re
from decimal import Decimal, InvalidOperation

from app.config.business_constants import REFERRAL_CODE_ALPHABET


def validate_email(email: str) -> tuple[bool, str | None]:
    """
    Validate an email address (PayPal / Wise payout account).

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_email("user@example.com")
        (True, None)
        >>> validate_email("invalid")
        (False, "Email must contain '@'")
    """
    if not email or not isinstance(email, str):
        return False, "Email is empty"

    email = email.strip()

    if not email:
        return False, "Email is empty"

    if len(email) > 255:
        return False, "Email is too long (maximum 255 characters)"

    if "@" not in email:
        return False, "Email must contain '@'"

    parts = email.split("@")
    if len(parts) != 2:
        return False, "Email must contain exactly one '@'"

    local, domain = parts

    if not local or len(local) > 64:
        return False, "Email local part must be 1-64 characters"

    if not domain or len(domain) < 3:
        return False, "Email domain is too short"

    if "." not in domain:
        return False, "Email domain must contain a dot (.)"

    if any(not part for part in domain.split(".")):
        return False, "Email domain has invalid structure"

    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(pattern, email):
        return False, "Invalid email format"

    return True, None


def validate_iban(iban: str) -> tuple[bool, str | None]:
    """
    Validate an IBAN (structure and ISO 7064 mod-97 checksum).

    Args:
        iban: IBAN, spaces allowed

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_iban("DE89 3704 0044 0532 0130 00")
        (True, None)
        >>> validate_iban("DE00 3704 0044 0532 0130 00")
        (False, "IBAN checksum is invalid")
    """
    if not iban or not isinstance(iban, str):
        return False, "IBAN is empty"

    compact = iban.replace(" ", "").upper()

    if not re.fullmatch(r"[A-Z]{2}[0-9]{2}[A-Z0-9]{11,30}", compact):
        return False, "Invalid IBAN format"

    rearranged = compact[4:] + compact[:4]
    numeric = "".join(str(int(ch, 36)) for ch in rearranged)
    if int(numeric) % 97 != 1:
        return False, "IBAN checksum is invalid"

    return True, None


def validate_swift(swift: str) -> tuple[bool, str | None]:
    """
    Validate a SWIFT/BIC code.

    Args:
        swift: 8 or 11 character BIC

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not swift or not isinstance(swift, str):
        return False, "SWIFT code is empty"

    if not re.fullmatch(r"[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?", swift.strip().upper()):
        return False, "Invalid SWIFT/BIC format"

    return True, None


def validate_account_holder(name: str) -> tuple[bool, str | None]:
    """
    Validate a bank account holder name.

    Args:
        name: Holder name

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not name or not isinstance(name, str) or not name.strip():
        return False, "Account holder is empty"

    if len(name.strip()) > 140:
        return False, "Account holder is too long (maximum 140 characters)"

    return True, None


def validate_referral_code(code: str) -> tuple[bool, str | None]:
    """
    Validate referral code syntax.

    Args:
        code: Code as typed by the user (any case)

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_referral_code("ab2cd3ef")
        (True, None)
        >>> validate_referral_code("AB0CD1EF")
        (False, "Referral code contains invalid characters")
    """
    if not code or not isinstance(code, str) or not code.strip():
        return False, "Referral code is empty"

    normalized = code.strip().upper()

    if not 4 <= len(normalized) <= 32:
        return False, "Referral code must be 4-32 characters"

    if any(ch not in REFERRAL_CODE_ALPHABET for ch in normalized):
        return False, "Referral code contains invalid characters"

    return True, None


def validate_amount(
    amount: str,
    min_val: Decimal = Decimal("0"),
    max_val: Decimal | None = None,
    max_places: int = 2,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a money amount.

    Args:
        amount: Amount string to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value (optional)
        max_places: Maximum decimal places

    Returns:
        Tuple of (is_valid, parsed_value, error_message)

    Examples:
        >>> validate_amount("100.50")
        (True, Decimal('100.50'), None)
        >>> validate_amount("-10")
        (False, None, "Amount must be >= 0")
    """
    if not amount or not isinstance(amount, str):
        return False, None, "Amount is empty"

    amount = amount.strip()

    if not amount:
        return False, None, "Amount is empty"

    amount = amount.replace(",", ".")

    try:
        value = Decimal(amount)
    except InvalidOperation:
        return False, None, "Invalid amount format"

    if not value.is_finite():
        return False, None, "Amount must be a finite number"

    if value < min_val:
        return False, None, f"Amount must be >= {min_val}"

    if max_val and value > max_val:
        return False, None, f"Amount must be <= {max_val}"

    if value.as_tuple().exponent < -max_places:
        return False, None, f"Amount has too many decimal places (maximum {max_places})"

    return True, value, None


def normalize_email(email: str) -> str:
    """
    Normalize email to lowercase.

    Raises:
        ValueError: If email is invalid
    """
    is_valid, error = validate_email(email)
    if not is_valid:
        raise ValueError(error)

    return email.strip().lower()


def normalize_iban(iban: str) -> str:
    """
    Normalize IBAN to compact upper case.

    Raises:
        ValueError: If IBAN is invalid
    """
    is_valid, error = validate_iban(iban)
    if not is_valid:
        raise ValueError(error)

    return iban.replace(" ", "").upper()
