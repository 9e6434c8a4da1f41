"""
Withdrawal services package.

This package provides modular withdrawal management functionality:
- withdrawal_validator: Gate checks for withdrawal requests
- withdrawal_request_handler: Request creation and reservation
- withdrawal_lifecycle_handler: Processing, completion, rejection
- withdrawal_query_service: Queries and decrypted payout details

All components are re-exported for easy importing.
"""

from app.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
    can_transition,
)
from app.services.withdrawal.withdrawal_query_service import (
    WithdrawalQueryService,
)
from app.services.withdrawal.withdrawal_request_handler import (
    WithdrawalRequestHandler,
)
from app.services.withdrawal.withdrawal_validator import (
    ValidationResult,
    WithdrawalValidator,
)


__all__ = [
    "WithdrawalValidator",
    "ValidationResult",
    "WithdrawalRequestHandler",
    "WithdrawalLifecycleHandler",
    "WithdrawalQueryService",
    "can_transition",
]
