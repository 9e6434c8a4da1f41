"""
Referral code generation.
"""

import secrets

from app.config.business_constants import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
)


def generate_referral_code(
    length: int = REFERRAL_CODE_LENGTH,
    alphabet: str = REFERRAL_CODE_ALPHABET,
) -> str:
    """
    Generate an unpredictable referral code.

    Args:
        length: Code length
        alphabet: Allowed characters (no 0/O/1/I/L)

    Returns:
        Referral code
    """
    return "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_referral_code(code: str) -> str:
    """Strip whitespace and upper-case a user-supplied code."""
    return code.strip().upper()


def looks_like_referral_code(
    code: str, alphabet: str = REFERRAL_CODE_ALPHABET
) -> bool:
    """
    Cheap syntactic check before hitting the database.

    Args:
        code: Normalized code

    Returns:
        True if every character belongs to the alphabet
    """
    return 4 <= len(code) <= 32 and all(ch in alphabet for ch in code)
