"""
Withdrawal lifecycle handling module.

Admin transitions: pending -> processing -> completed | rejected, and
pending -> rejected. Completed and rejected withdrawals are immutable.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import WithdrawalOutcome, WithdrawalStatus
from app.models.withdrawal import Withdrawal
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.admin_alert_service import AdminAlertService
from app.services.base_service import BaseService, transaction
from app.services.ledger.events import (
    WithdrawalCompleted,
    WithdrawalProcessing,
    WithdrawalReversed,
)
from app.services.ledger.ledger_service import LedgerService
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.db_decorators import retry_on_lock_conflict
from app.utils.exceptions import InvalidTransition, NotFoundError, ValidationError


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    WithdrawalStatus.PENDING.value: frozenset(
        {WithdrawalStatus.PROCESSING.value, WithdrawalStatus.REJECTED.value}
    ),
    WithdrawalStatus.PROCESSING.value: frozenset(
        {WithdrawalStatus.COMPLETED.value, WithdrawalStatus.REJECTED.value}
    ),
    WithdrawalStatus.COMPLETED.value: frozenset(),
    WithdrawalStatus.REJECTED.value: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    """Whether the withdrawal state machine allows ``current -> target``."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class WithdrawalLifecycleHandler(BaseService):
    """Handles withdrawal processing, completion and rejection."""

    def __init__(
        self,
        session: AsyncSession,
        alert_service: AdminAlertService | None = None,
    ) -> None:
        """
        Initialize withdrawal lifecycle handler.

        Args:
            session: Database session
            alert_service: Admin alerts passed on to the ledger
        """
        super().__init__(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.ledger = LedgerService(session, alert_service)

    async def _get_locked_withdrawal(self, withdrawal_id: int) -> Withdrawal:
        """
        Lock the owning affiliate, then load the withdrawal.

        Raises:
            NotFoundError: Unknown withdrawal
        """
        withdrawal = await self.withdrawal_repo.get_by_id(withdrawal_id)
        if not withdrawal:
            raise NotFoundError(
                f"Withdrawal {withdrawal_id} not found", withdrawal_id=withdrawal_id
            )
        await self.ledger.lock_affiliate(withdrawal.affiliate_id)
        await self.session.refresh(withdrawal)
        return withdrawal

    def _check_transition(self, withdrawal: Withdrawal, target: str) -> None:
        if not can_transition(withdrawal.status, target):
            raise InvalidTransition(
                f"Withdrawal {withdrawal.id} cannot move from "
                f"{withdrawal.status} to {target}",
                withdrawal_id=withdrawal.id,
                status=withdrawal.status,
                target=target,
            )

    @retry_on_lock_conflict()
    @transaction
    async def start_processing(
        self, withdrawal_id: int, now: datetime | None = None
    ) -> Withdrawal:
        """
        Mark a pending withdrawal as being processed.

        Args:
            withdrawal_id: Withdrawal ID
            now: Transition time

        Returns:
            Updated withdrawal
        """
        now = ensure_utc(now) if now else utc_now()
        withdrawal = await self._get_locked_withdrawal(withdrawal_id)
        self._check_transition(withdrawal, WithdrawalStatus.PROCESSING.value)

        withdrawal.status = WithdrawalStatus.PROCESSING.value
        withdrawal.processing_at = now
        await self.session.flush()

        await self.ledger.apply(
            WithdrawalProcessing(
                affiliate_id=withdrawal.affiliate_id,
                amount=withdrawal.amount,
                withdrawal_id=withdrawal.id,
            )
        )

        self.logger.info(
            "Withdrawal processing started",
            extra={"withdrawal_id": withdrawal.id, "affiliate_id": withdrawal.affiliate_id},
        )
        return withdrawal

    @retry_on_lock_conflict()
    @transaction
    async def resolve(
        self,
        withdrawal_id: int,
        outcome: WithdrawalOutcome | str,
        note: str | None = None,
        now: datetime | None = None,
    ) -> Withdrawal:
        """
        Complete or reject a withdrawal.

        Completion turns the reservation into a withdrawal and marks the
        covered commissions paid. Rejection returns the reservation to the
        available balance.

        Args:
            withdrawal_id: Withdrawal ID
            outcome: completed / rejected
            note: Payout reference or rejection reason
            now: Resolution time

        Returns:
            Updated withdrawal

        Raises:
            InvalidTransition: Withdrawal already terminal, or completing a
                withdrawal that was never processed
        """
        try:
            outcome = WithdrawalOutcome(outcome)
        except ValueError:
            raise ValidationError(f"Unknown outcome: {outcome}", outcome=str(outcome))

        now = ensure_utc(now) if now else utc_now()
        withdrawal = await self._get_locked_withdrawal(withdrawal_id)
        self._check_transition(withdrawal, outcome.value)

        withdrawal.status = outcome.value
        withdrawal.resolved_at = now
        withdrawal.resolution_note = note
        await self.session.flush()

        if outcome == WithdrawalOutcome.COMPLETED:
            balances = await self.ledger.apply(
                WithdrawalCompleted(
                    affiliate_id=withdrawal.affiliate_id,
                    amount=withdrawal.amount,
                    withdrawal_id=withdrawal.id,
                )
            )
            await self.ledger.mark_paid(withdrawal.affiliate_id, now)
        else:
            balances = await self.ledger.apply(
                WithdrawalReversed(
                    affiliate_id=withdrawal.affiliate_id,
                    amount=withdrawal.amount,
                    withdrawal_id=withdrawal.id,
                )
            )

        self.logger.info(
            f"Withdrawal {outcome.value}",
            extra={
                "withdrawal_id": withdrawal.id,
                "affiliate_id": withdrawal.affiliate_id,
                "amount": str(withdrawal.amount),
                "available_balance": str(balances.available_balance),
                "note": note,
            },
        )
        return withdrawal
