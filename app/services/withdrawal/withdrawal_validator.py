"""
Withdrawal validation.

Runs the request gate checks in order and reports the first failure.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from app.config.settings import settings
from app.models.affiliate import Affiliate
from app.models.enums import PaymentMethod
from app.utils.exceptions import (
    AffiliateNotActive,
    BelowMinimum,
    InsufficientBalance,
    LedgerError,
    ValidationError,
)
from app.validators.common import validate_payment_details


@dataclass
class ValidationResult:
    """Result of withdrawal validation."""

    is_valid: bool
    error: LedgerError | None = None
    normalized_details: dict[str, str] | None = None

    @property
    def error_message(self) -> str | None:
        return self.error.message if self.error else None

    @property
    def error_code(self) -> str | None:
        return self.error.error_code if self.error else None

    @classmethod
    def success(cls, normalized_details: dict[str, str]) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True, normalized_details=normalized_details)

    @classmethod
    def failure(cls, error: LedgerError) -> "ValidationResult":
        """Create an error validation result."""
        return cls(is_valid=False, error=error)


class WithdrawalValidator:
    """Validator for withdrawal requests."""

    def __init__(
        self,
        minimum_amount: Decimal | None = None,
        emergency_stop: bool | None = None,
    ) -> None:
        """
        Initialize withdrawal validator.

        Args:
            minimum_amount: Minimum withdrawal (defaults to settings)
            emergency_stop: Block all requests (defaults to settings)
        """
        self.minimum_amount = (
            minimum_amount
            if minimum_amount is not None
            else settings.minimum_withdrawal_amount
        )
        self.emergency_stop = (
            emergency_stop
            if emergency_stop is not None
            else settings.emergency_stop_withdrawals
        )

    def check_emergency_stop(self) -> tuple[bool, str | None]:
        if self.emergency_stop:
            return False, "Withdrawals are temporarily suspended"
        return True, None

    def check_affiliate_status(self, affiliate: Affiliate) -> tuple[bool, str | None]:
        if not affiliate.is_active:
            return False, f"Affiliate is {affiliate.status}"
        return True, None

    def check_amount_format(self, amount: Decimal) -> tuple[bool, str | None]:
        if not amount.is_finite() or amount <= 0:
            return False, "Amount must be a positive number"
        if amount.as_tuple().exponent < -2:
            return False, "Amount has too many decimal places (maximum 2)"
        return True, None

    def check_min_amount(self, amount: Decimal) -> tuple[bool, str | None]:
        if amount < self.minimum_amount:
            return False, f"Minimum withdrawal amount is {self.minimum_amount}"
        return True, None

    def check_balance(
        self, amount: Decimal, available_balance: Decimal
    ) -> tuple[bool, str | None]:
        if amount > available_balance:
            return False, f"Requested {amount} exceeds available balance {available_balance}"
        return True, None

    def validate_request_shape(
        self,
        amount: Decimal,
        payment_method: PaymentMethod | str,
        payment_details: dict[str, Any] | None,
    ) -> ValidationResult:
        """
        Checks that need no database state.

        Args:
            amount: Requested amount
            payment_method: Payout method
            payment_details: Raw payout details

        Returns:
            ValidationResult
        """
        # 1. Emergency stop
        is_valid, error_msg = self.check_emergency_stop()
        if not is_valid:
            return ValidationResult.failure(ValidationError(error_msg))

        # 2. Amount format
        is_valid, error_msg = self.check_amount_format(amount)
        if not is_valid:
            return ValidationResult.failure(
                ValidationError(error_msg, amount=str(amount))
            )

        # 3. Minimum amount
        is_valid, _ = self.check_min_amount(amount)
        if not is_valid:
            return ValidationResult.failure(BelowMinimum(amount, self.minimum_amount))

        # 4. Payment method and details
        is_valid, normalized, error_msg = validate_payment_details(
            payment_method, payment_details
        )
        if not is_valid:
            return ValidationResult.failure(
                ValidationError(error_msg, payment_method=str(payment_method))
            )

        return ValidationResult.success(normalized)

    def validate_withdrawal_request(
        self,
        affiliate: Affiliate,
        amount: Decimal,
        payment_method: PaymentMethod | str,
        payment_details: dict[str, Any] | None,
    ) -> ValidationResult:
        """
        Run all validations and return result.

        Must be called with the affiliate row locked so the balance check
        sees the same state the debit will.

        Args:
            affiliate: Locked affiliate
            amount: Requested amount
            payment_method: Payout method
            payment_details: Raw payout details

        Returns:
            ValidationResult with normalized details on success
        """
        result = self.validate_request_shape(amount, payment_method, payment_details)
        if not result.is_valid:
            return result

        # 5. Affiliate status
        is_valid, error_msg = self.check_affiliate_status(affiliate)
        if not is_valid:
            return ValidationResult.failure(
                AffiliateNotActive(error_msg, affiliate_id=affiliate.id)
            )

        # 6. Balance
        is_valid, _ = self.check_balance(amount, affiliate.available_balance)
        if not is_valid:
            return ValidationResult.failure(
                InsufficientBalance(amount, affiliate.available_balance)
            )

        return result
