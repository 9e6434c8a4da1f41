"""
Withdrawal service - Main service facade.

This service acts as a facade that delegates to specialized modules.

Module structure:
- withdrawal/withdrawal_request_handler: Request creation and reservation
- withdrawal/withdrawal_lifecycle_handler: Processing, completion, rejection
- withdrawal/withdrawal_query_service: Queries and payout details
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PaymentMethod, WithdrawalOutcome
from app.models.withdrawal import Withdrawal
from app.services.admin_alert_service import AdminAlertService
from app.services.base_service import BaseService
from app.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
)
from app.services.withdrawal.withdrawal_query_service import (
    WithdrawalQueryService,
)
from app.services.withdrawal.withdrawal_request_handler import (
    WithdrawalRequestHandler,
)
from app.services.withdrawal.withdrawal_validator import WithdrawalValidator


class WithdrawalService(BaseService):
    """
    Withdrawal workflow: reserves funds and drives the approval state
    machine. Balances change only through ledger events.
    """

    def __init__(
        self,
        session: AsyncSession,
        validator: WithdrawalValidator | None = None,
        alert_service: AdminAlertService | None = None,
    ) -> None:
        """Initialize withdrawal service and all sub-components."""
        super().__init__(session)

        self.request_handler = WithdrawalRequestHandler(
            session, validator=validator, alert_service=alert_service
        )
        self.lifecycle_handler = WithdrawalLifecycleHandler(
            session, alert_service=alert_service
        )
        self.query_service = WithdrawalQueryService(session)

    # ========================================================================
    # REQUEST HANDLING (delegates to WithdrawalRequestHandler)
    # ========================================================================

    async def request(
        self,
        affiliate_id: int,
        amount: Decimal,
        payment_method: PaymentMethod | str,
        payment_details: dict[str, Any] | None,
        now: datetime | None = None,
    ) -> Withdrawal:
        """
        Request a withdrawal and reserve the amount.

        Args:
            affiliate_id: Affiliate ID
            amount: Requested amount
            payment_method: paypal / wise / bank_transfer
            payment_details: Payout details
            now: Request time

        Returns:
            Pending withdrawal
        """
        return await self.request_handler.request(
            affiliate_id, amount, payment_method, payment_details, now
        )

    # ========================================================================
    # LIFECYCLE (delegates to WithdrawalLifecycleHandler)
    # ========================================================================

    async def start_processing(
        self, withdrawal_id: int, now: datetime | None = None
    ) -> Withdrawal:
        """Admin: pending -> processing."""
        return await self.lifecycle_handler.start_processing(withdrawal_id, now)

    async def resolve(
        self,
        withdrawal_id: int,
        outcome: WithdrawalOutcome | str,
        note: str | None = None,
        now: datetime | None = None,
    ) -> Withdrawal:
        """Admin: complete or reject a withdrawal."""
        return await self.lifecycle_handler.resolve(withdrawal_id, outcome, note, now)

    # ========================================================================
    # QUERIES (delegates to WithdrawalQueryService)
    # ========================================================================

    async def get_affiliate_withdrawals(
        self, affiliate_id: int, status: str | None = None
    ) -> list[Withdrawal]:
        """Withdrawal history of an affiliate, newest first."""
        return await self.query_service.get_affiliate_withdrawals(affiliate_id, status)

    async def get_pending_withdrawals(self) -> list[Withdrawal]:
        """Admin queue, oldest first."""
        return await self.query_service.get_pending_withdrawals()

    async def get_withdrawal(self, withdrawal_id: int) -> Withdrawal:
        """Get withdrawal by ID."""
        return await self.query_service.get_withdrawal(withdrawal_id)

    def get_payment_details(self, withdrawal: Withdrawal) -> dict[str, str]:
        """Decrypted payout details."""
        return self.query_service.get_payment_details(withdrawal)
