"""
Unit tests for withdrawal rules.

Tests cover:
- Request gate order (emergency stop, format, minimum, details, status, balance)
- The $200 minimum boundary
- Withdrawal state machine
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.models.enums import WithdrawalStatus
from app.services.withdrawal import can_transition
from app.services.withdrawal.withdrawal_validator import WithdrawalValidator


def make_affiliate(available: str, active: bool = True, status: str = "active"):
    affiliate = MagicMock()
    affiliate.id = 1
    affiliate.is_active = active
    affiliate.status = status
    affiliate.available_balance = Decimal(available)
    return affiliate


@pytest.fixture
def validator():
    return WithdrawalValidator(minimum_amount=Decimal("200"), emergency_stop=False)


class TestWithdrawalGate:
    """Test WithdrawalValidator.validate_withdrawal_request."""

    def test_exact_balance_at_minimum(self, validator, paypal_details):
        """$200 against $200 available succeeds."""
        result = validator.validate_withdrawal_request(
            make_affiliate("200.00"), Decimal("200.00"), "paypal", paypal_details
        )

        assert result.is_valid is True
        assert result.normalized_details == {"email": "affiliate@example.com"}

    def test_below_minimum(self, validator, paypal_details):
        """$199.99 is rejected even with enough balance."""
        result = validator.validate_withdrawal_request(
            make_affiliate("500.00"), Decimal("199.99"), "paypal", paypal_details
        )

        assert result.is_valid is False
        assert result.error_code == "BELOW_MINIMUM"

    def test_insufficient_balance(self, validator, paypal_details):
        result = validator.validate_withdrawal_request(
            make_affiliate("199.99"), Decimal("200.00"), "paypal", paypal_details
        )

        assert result.is_valid is False
        assert result.error_code == "INSUFFICIENT_BALANCE"

    def test_negative_balance(self, validator, paypal_details):
        """An affiliate in clawback debt cannot withdraw."""
        result = validator.validate_withdrawal_request(
            make_affiliate("-35.00"), Decimal("200.00"), "paypal", paypal_details
        )

        assert result.error_code == "INSUFFICIENT_BALANCE"

    def test_suspended_affiliate(self, validator, paypal_details):
        result = validator.validate_withdrawal_request(
            make_affiliate("500.00", active=False, status="suspended"),
            Decimal("200.00"),
            "paypal",
            paypal_details,
        )

        assert result.error_code == "AFFILIATE_NOT_ACTIVE"
        assert result.error_message == "Affiliate is suspended"

    def test_too_many_decimal_places(self, validator, paypal_details):
        result = validator.validate_withdrawal_request(
            make_affiliate("500.00"), Decimal("200.001"), "paypal", paypal_details
        )

        assert result.error_code == "VALIDATION_ERROR"

    def test_non_positive_amount(self, validator, paypal_details):
        result = validator.validate_request_shape(Decimal("0"), "paypal", paypal_details)

        assert result.error_message == "Amount must be a positive number"

    def test_invalid_details(self, validator):
        result = validator.validate_request_shape(
            Decimal("200"), "bank_transfer", {"account_holder": "Jane Doe"}
        )

        assert result.is_valid is False
        assert result.error_code == "VALIDATION_ERROR"

    def test_emergency_stop_blocks_everything(self, paypal_details):
        validator = WithdrawalValidator(
            minimum_amount=Decimal("200"), emergency_stop=True
        )
        result = validator.validate_withdrawal_request(
            make_affiliate("500.00"), Decimal("200.00"), "paypal", paypal_details
        )

        assert result.error_message == "Withdrawals are temporarily suspended"


class TestWithdrawalTransitions:
    """Test the withdrawal state machine."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING),
            (WithdrawalStatus.PENDING, WithdrawalStatus.REJECTED),
            (WithdrawalStatus.PROCESSING, WithdrawalStatus.COMPLETED),
            (WithdrawalStatus.PROCESSING, WithdrawalStatus.REJECTED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current.value, target.value) is True

    @pytest.mark.parametrize(
        "current,target",
        [
            (WithdrawalStatus.PENDING, WithdrawalStatus.COMPLETED),
            (WithdrawalStatus.COMPLETED, WithdrawalStatus.REJECTED),
            (WithdrawalStatus.REJECTED, WithdrawalStatus.COMPLETED),
            (WithdrawalStatus.REJECTED, WithdrawalStatus.PENDING),
            (WithdrawalStatus.PROCESSING, WithdrawalStatus.PENDING),
        ],
    )
    def test_forbidden(self, current, target):
        assert can_transition(current.value, target.value) is False
