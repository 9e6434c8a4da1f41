"""
Unit tests for input validators.

Tests cover:
- Amount parsing (two decimal places)
- Email, IBAN, SWIFT and referral code formats
- Payout details per payment method
"""

from decimal import Decimal

import pytest

from app.validators import (
    validate_amount,
    validate_email,
    validate_payment_details,
    validate_referral_code,
)
from app.validators.unified import normalize_iban, validate_iban, validate_swift


class TestValidateAmount:
    """Test amount parsing."""

    def test_valid(self):
        assert validate_amount("200.00") == (True, Decimal("200.00"), None)

    def test_comma_separator(self):
        is_valid, value, _ = validate_amount("199,99")
        assert is_valid is True
        assert value == Decimal("199.99")

    def test_too_many_places(self):
        is_valid, value, error = validate_amount("10.001")
        assert is_valid is False
        assert value is None
        assert "decimal places" in error

    def test_garbage(self):
        assert validate_amount("abc") == (False, None, "Invalid amount format")

    def test_below_minimum(self):
        is_valid, _, _ = validate_amount("-1")
        assert is_valid is False

    def test_infinity(self):
        is_valid, _, error = validate_amount("Infinity")
        assert is_valid is False
        assert "finite" in error


class TestValidateEmail:
    """Test email validation."""

    def test_normalizes_case(self):
        assert validate_email(" User@Example.COM ") == (True, "user@example.com", None)

    @pytest.mark.parametrize(
        "value", ["", "plainaddress", "a@b", "a@@example.com", "a@example..com"]
    )
    def test_invalid(self, value):
        is_valid, normalized, error = validate_email(value)
        assert is_valid is False
        assert normalized is None
        assert error


class TestBankFormats:
    """Test IBAN and SWIFT validation."""

    def test_valid_iban(self):
        assert validate_iban("DE89 3704 0044 0532 0130 00") == (True, None)

    def test_iban_bad_checksum(self):
        assert validate_iban("DE00 3704 0044 0532 0130 00") == (
            False,
            "IBAN checksum is invalid",
        )

    def test_normalize_iban(self):
        assert normalize_iban("de89 3704 0044 0532 0130 00") == "DE89370400440532013000"

    def test_swift(self):
        assert validate_swift("COBADEFFXXX") == (True, None)
        assert validate_swift("COBADEFF") == (True, None)
        assert validate_swift("CO1")[0] is False


class TestValidateReferralCode:
    """Test referral code syntax."""

    def test_normalizes(self):
        assert validate_referral_code(" ab2cd3ef ") == (True, "AB2CD3EF", None)

    def test_ambiguous_characters_rejected(self):
        is_valid, _, error = validate_referral_code("AB0CD1EF")
        assert is_valid is False
        assert "invalid characters" in error

    def test_length(self):
        is_valid, _, _ = validate_referral_code("AB2")
        assert is_valid is False


class TestValidatePaymentDetails:
    """Test payout details per method."""

    def test_paypal(self, paypal_details):
        assert validate_payment_details("paypal", paypal_details) == (
            True,
            {"email": "affiliate@example.com"},
            None,
        )

    def test_wise_requires_email(self):
        is_valid, _, error = validate_payment_details("wise", {"iban": "x"})
        assert is_valid is False
        assert error

    def test_bank_transfer(self, bank_details):
        is_valid, normalized, error = validate_payment_details(
            "bank_transfer", bank_details
        )
        assert is_valid is True
        assert error is None
        assert normalized == {
            "account_holder": "Jane Doe",
            "iban": "DE89370400440532013000",
            "swift": "COBADEFFXXX",
        }

    def test_bank_transfer_swift_optional(self, bank_details):
        del bank_details["swift"]
        is_valid, normalized, _ = validate_payment_details("bank_transfer", bank_details)
        assert is_valid is True
        assert "swift" not in normalized

    def test_bank_transfer_bad_iban(self, bank_details):
        bank_details["iban"] = "DE00 3704 0044 0532 0130 00"
        is_valid, _, error = validate_payment_details("bank_transfer", bank_details)
        assert is_valid is False
        assert error == "IBAN checksum is invalid"

    def test_unknown_method(self, paypal_details):
        is_valid, _, error = validate_payment_details("crypto", paypal_details)
        assert is_valid is False
        assert "Unsupported payment method" in error

    def test_missing_details(self):
        assert validate_payment_details("paypal", None) == (
            False,
            None,
            "Payment details are required",
        )
