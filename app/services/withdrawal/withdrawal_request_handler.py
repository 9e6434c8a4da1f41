"""
Withdrawal request handling module.

Handles the creation of withdrawal requests including validation and
immediate reservation of the requested amount.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PaymentMethod, WithdrawalStatus
from app.models.withdrawal import Withdrawal
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.admin_alert_service import AdminAlertService
from app.services.base_service import BaseService, transaction
from app.services.ledger.events import WithdrawalDebited
from app.services.ledger.ledger_service import LedgerService
from app.services.withdrawal.withdrawal_validator import WithdrawalValidator
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.db_decorators import retry_on_lock_conflict
from app.utils.encryption import get_encryption_service


class WithdrawalRequestHandler(BaseService):
    """Handles withdrawal request creation and validation."""

    def __init__(
        self,
        session: AsyncSession,
        validator: WithdrawalValidator | None = None,
        alert_service: AdminAlertService | None = None,
    ) -> None:
        """
        Initialize withdrawal request handler.

        Args:
            session: Database session
            validator: Request validator (defaults to settings-driven)
            alert_service: Admin alerts passed on to the ledger
        """
        super().__init__(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.ledger = LedgerService(session, alert_service)
        self.validator = validator or WithdrawalValidator()

    @retry_on_lock_conflict()
    @transaction
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

        Due commissions are matured first so a lagging sweep never blocks
        a legitimate request.

        Args:
            affiliate_id: Affiliate ID
            amount: Requested amount
            payment_method: Payout method
            payment_details: Payout details (encrypted at rest)
            now: Request time

        Returns:
            Pending withdrawal

        Raises:
            BelowMinimum: amount below the configured minimum
            InsufficientBalance: amount above the available balance
            AffiliateNotActive: affiliate pending or suspended
            ValidationError: malformed amount or payout details
        """
        now = ensure_utc(now) if now else utc_now()

        # Fail fast before taking the lock
        shape = self.validator.validate_request_shape(
            amount, payment_method, payment_details
        )
        if not shape.is_valid:
            raise shape.error

        affiliate = await self.ledger.lock_affiliate(affiliate_id)
        await self.ledger.mature_affiliate(affiliate_id, now)

        validation = self.validator.validate_withdrawal_request(
            affiliate, amount, payment_method, payment_details
        )
        if not validation.is_valid:
            raise validation.error

        encrypted_details = get_encryption_service().seal_details(
            validation.normalized_details
        )

        withdrawal = await self.withdrawal_repo.create(
            affiliate_id=affiliate_id,
            amount=amount,
            payment_method=PaymentMethod(payment_method).value,
            payment_details=encrypted_details,
            status=WithdrawalStatus.PENDING.value,
            created_at=now,
        )
        balances = await self.ledger.apply(
            WithdrawalDebited(
                affiliate_id=affiliate_id,
                amount=amount,
                withdrawal_id=withdrawal.id,
            )
        )

        self.logger.info(
            "Withdrawal request created",
            extra={
                "withdrawal_id": withdrawal.id,
                "affiliate_id": affiliate_id,
                "amount": str(amount),
                "payment_method": withdrawal.payment_method,
                "available_balance": str(balances.available_balance),
            },
        )
        return withdrawal
