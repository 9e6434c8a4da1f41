"""
Ledger service.

Owns commission status transitions and the cached affiliate balances.
Every balance change goes through ``apply``, which runs under the
affiliate row lock, writes one LedgerEvent row and then verifies the
cache against a rebuild from history.

Methods here never commit: they join the caller's unit of work. The
maturation sweep and hold release are the exceptions and commit once per
affiliate.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.operational_constants import MATURATION_SWEEP_BATCH_SIZE
from app.models.affiliate import Affiliate
from app.models.commission import Commission
from app.models.enums import CancelReason, CommissionStatus
from app.models.ledger_event import LedgerEvent
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.repositories.ledger_event_repository import LedgerEventRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.admin_alert_service import AdminAlertService, get_alert_service
from app.services.base_service import BaseService, log_operation, transaction
from app.services.ledger.balance_calculator import (
    ZERO,
    Balances,
    apply_delta,
    balances_from_totals,
    delta_for,
    select_commissions_to_mark_paid,
)
from app.services.ledger.events import (
    CommissionCancelled,
    CommissionConfirmed,
    CommissionReleased,
    LedgerEventBase,
    WithdrawalDebited,
)
from app.utils.db_decorators import retry_on_lock_conflict
from app.utils.exceptions import (
    ConflictError,
    InvalidTransition,
    InvariantViolation,
    NotFoundError,
)


@dataclass
class SweepResult:
    """Outcome of one maturation sweep run."""

    confirmed_count: int = 0
    affiliates_processed: int = 0
    skipped_affiliates: list[int] = field(default_factory=list)


@dataclass
class ReconciliationReport:
    """Cached balances compared with a rebuild from history."""

    affiliate_id: int
    cached: Balances
    rebuilt: Balances

    @property
    def has_drift(self) -> bool:
        return self.cached.quantized() != self.rebuilt.quantized()

    def to_dict(self) -> dict:
        return {
            "affiliate_id": self.affiliate_id,
            "cached": self.cached.to_dict(),
            "rebuilt": self.rebuilt.to_dict(),
            "has_drift": self.has_drift,
        }


def cached_balances(affiliate: Affiliate) -> Balances:
    """Read the balance cache of an affiliate row."""
    return Balances(
        total_earnings=affiliate.total_earnings or ZERO,
        withdrawn_balance=affiliate.withdrawn_balance or ZERO,
        available_balance=affiliate.available_balance or ZERO,
    )


class LedgerService(BaseService):
    """
    Append-mostly ledger of commission entries and balance events.

    The only writer of affiliate balance columns.
    """

    def __init__(
        self,
        session: AsyncSession,
        alert_service: AdminAlertService | None = None,
    ) -> None:
        """
        Initialize ledger service.

        Args:
            session: Database session
            alert_service: Admin alerts (defaults to the process-wide bot)
        """
        super().__init__(session)
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.event_repo = LedgerEventRepository(session)
        self.alert_service = alert_service or get_alert_service()

    async def lock_affiliate(self, affiliate_id: int) -> Affiliate:
        """
        Lock the affiliate row for the rest of the transaction.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Locked affiliate

        Raises:
            NotFoundError: Unknown affiliate
            DBAPIError: Row locked by another transaction (NOWAIT)
        """
        affiliate = await self.affiliate_repo.get_for_update(affiliate_id)
        if not affiliate:
            raise NotFoundError(
                f"Affiliate {affiliate_id} not found", affiliate_id=affiliate_id
            )
        return affiliate

    async def rebuild_balances(self, affiliate_id: int) -> Balances:
        """
        Recompute balances from commission and withdrawal history.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Balances derived from history
        """
        earned = await self.commission_repo.sum_earned(affiliate_id)
        completed = await self.withdrawal_repo.sum_completed(affiliate_id)
        reserved = await self.withdrawal_repo.sum_reserved(affiliate_id)
        return balances_from_totals(earned, completed, reserved)

    async def apply(self, event: LedgerEventBase) -> Balances:
        """
        Apply a ledger event to the affiliate's cached balances.

        The row backing the event (commission or withdrawal) must already
        carry its new status, so the rebuild from history reflects it.

        Args:
            event: Ledger event

        Returns:
            Balances after the event

        Raises:
            InvariantViolation: Cache and history disagree after applying
        """
        affiliate = await self.lock_affiliate(event.affiliate_id)
        before = cached_balances(affiliate)
        delta = delta_for(event)
        after = apply_delta(before, delta)

        if isinstance(event, WithdrawalDebited) and after.available_balance < ZERO:
            await self._invariant_violation(
                event, expected=after, actual=before,
                reason="Withdrawal debit would make available balance negative",
            )

        affiliate.total_earnings = after.total_earnings
        affiliate.withdrawn_balance = after.withdrawn_balance
        affiliate.available_balance = after.available_balance

        await self.event_repo.create(
            affiliate_id=affiliate.id,
            event_type=event.event_type.value,
            commission_id=getattr(event, "commission_id", None),
            withdrawal_id=getattr(event, "withdrawal_id", None),
            amount=event.amount,
            earnings_delta=delta.earnings,
            withdrawn_delta=delta.withdrawn,
            available_delta=delta.available,
            total_earnings_after=after.total_earnings,
            withdrawn_balance_after=after.withdrawn_balance,
            available_balance_after=after.available_balance,
        )

        rebuilt = await self.rebuild_balances(affiliate.id)
        if rebuilt.quantized() != after.quantized():
            await self._invariant_violation(
                event, expected=rebuilt, actual=after,
                reason="Cached balances diverge from history",
            )
        if after.reserved < ZERO or after.withdrawn_balance < ZERO:
            await self._invariant_violation(
                event, expected=rebuilt, actual=after,
                reason="Negative reservation or withdrawn balance",
            )

        self.logger.info(
            f"Ledger event applied: {event.event_type.value}",
            extra={
                "affiliate_id": affiliate.id,
                "amount": str(event.amount),
                "available_balance": str(after.available_balance),
            },
        )
        return after

    async def _invariant_violation(
        self,
        event: LedgerEventBase,
        expected: Balances,
        actual: Balances,
        reason: str,
    ) -> None:
        """Log with full context, alert admins and raise."""
        self.logger.bind(audit=True).error(
            f"INVARIANT VIOLATION: {reason}",
            event=repr(event),
            expected=expected.to_dict(),
            actual=actual.to_dict(),
        )
        try:
            await self.alert_service.notify_invariant_violation(
                affiliate_id=event.affiliate_id,
                event_type=event.event_type.value,
                expected=expected.to_dict(),
                actual=actual.to_dict(),
            )
        except Exception as e:
            self.logger.error(f"Failed to alert admins about invariant violation: {e}")
        raise InvariantViolation(
            reason,
            affiliate_id=event.affiliate_id,
            event_type=event.event_type.value,
        )

    async def confirm_commission(
        self, commission: Commission, now: datetime
    ) -> Balances | None:
        """
        Mature a pending commission.

        Caller must hold the affiliate lock. A commission that is no longer
        pending (confirmed by a concurrent sweep, or cancelled) is skipped.

        Args:
            commission: Commission row
            now: Confirmation time

        Returns:
            Balances after confirmation, None if skipped
        """
        await self.session.refresh(commission)
        if not commission.is_due(now):
            return None

        commission.status = CommissionStatus.CONFIRMED.value
        commission.confirmed_at = now
        await self.session.flush()

        return await self.apply(
            CommissionConfirmed(
                affiliate_id=commission.affiliate_id,
                amount=commission.commission_amount,
                commission_id=commission.id,
            )
        )

    async def cancel_commission(
        self,
        commission: Commission,
        reason: CancelReason,
        now: datetime,
    ) -> Balances:
        """
        Cancel a commission after a refund or chargeback.

        A confirmed or paid commission is clawed back from earnings and
        availability. Clawing back a paid commission can leave the
        available balance negative: that debt is kept, logged and reported
        to admins.

        Args:
            commission: Commission row
            reason: refunded / chargeback
            now: Cancellation time

        Returns:
            Balances after cancellation

        Raises:
            InvalidTransition: Commission already cancelled
        """
        await self.lock_affiliate(commission.affiliate_id)
        await self.session.refresh(commission)

        if commission.status == CommissionStatus.CANCELLED.value:
            raise InvalidTransition(
                f"Commission {commission.id} is already cancelled",
                commission_id=commission.id,
            )

        was_paid = commission.status == CommissionStatus.PAID.value
        was_earned = commission.is_earned

        commission.status = CommissionStatus.CANCELLED.value
        commission.cancelled_at = now
        commission.cancel_reason = reason.value
        await self.session.flush()

        balances = await self.apply(
            CommissionCancelled(
                affiliate_id=commission.affiliate_id,
                amount=commission.commission_amount,
                commission_id=commission.id,
                was_earned=was_earned,
            )
        )

        if balances.has_debt:
            self.logger.bind(audit=True).warning(
                "Clawback left affiliate with negative available balance",
                affiliate_id=commission.affiliate_id,
                order_id=commission.order_id,
                clawed_back=str(commission.commission_amount),
                available_balance=str(balances.available_balance),
                was_paid=was_paid,
            )
            try:
                await self.alert_service.notify_clawback_debt(
                    affiliate_id=commission.affiliate_id,
                    order_id=commission.order_id,
                    clawed_back=commission.commission_amount,
                    available_balance=balances.available_balance,
                )
            except Exception as e:
                self.logger.error(f"Failed to alert admins about clawback debt: {e}")

        return balances

    async def mature_affiliate(self, affiliate_id: int, now: datetime) -> int:
        """
        Confirm every due commission of one affiliate (lazy maturation).

        Used by read and withdrawal paths so a late sweep never hides
        matured earnings. Joins the caller's transaction.

        Args:
            affiliate_id: Affiliate ID
            now: Evaluation time

        Returns:
            Number of commissions confirmed
        """
        await self.lock_affiliate(affiliate_id)
        due = await self.commission_repo.get_due_for_affiliate(affiliate_id, now)

        confirmed = 0
        for commission in due:
            if await self.confirm_commission(commission, now) is not None:
                confirmed += 1
        return confirmed

    @retry_on_lock_conflict()
    @transaction
    async def run_lazy_maturation(self, affiliate_id: int, now: datetime) -> int:
        """
        Mature one affiliate in its own committed transaction.

        Used per affiliate by the sweep and by read paths before showing
        balances.

        Returns:
            Number of commissions confirmed
        """
        return await self.mature_affiliate(affiliate_id, now)

    @retry_on_lock_conflict()
    @transaction
    async def release_holds(
        self, affiliate_id: int, now: datetime
    ) -> list[Commission]:
        """
        Lift the payout hold of every held commission of an affiliate.

        Each release writes a status-only CommissionReleased event.
        Released commissions past their maturation date are confirmed in
        the same transaction; the rest mature normally.

        Args:
            affiliate_id: Affiliate ID
            now: Release time

        Returns:
            Released commissions

        Raises:
            InvalidTransition: Affiliate subscription is still overdue
        """
        affiliate = await self.lock_affiliate(affiliate_id)
        if affiliate.subscription_overdue:
            raise InvalidTransition(
                f"Affiliate {affiliate_id} subscription is still overdue",
                affiliate_id=affiliate_id,
            )

        held = await self.commission_repo.get_held_for_affiliate(affiliate_id)
        for commission in held:
            commission.payment_held = False
            commission.released_at = now
            await self.session.flush()
            await self.apply(
                CommissionReleased(
                    affiliate_id=affiliate_id,
                    amount=commission.commission_amount,
                    commission_id=commission.id,
                )
            )

        confirmed = await self.mature_affiliate(affiliate_id, now) if held else 0
        if held:
            self.logger.info(
                f"Released {len(held)} held commissions",
                extra={"affiliate_id": affiliate_id, "confirmed": confirmed},
            )
        return held

    @log_operation
    async def run_maturation_sweep(
        self,
        now: datetime,
        batch_size: int = MATURATION_SWEEP_BATCH_SIZE,
    ) -> SweepResult:
        """
        Confirm every pending, uncancelled commission with matures_at <= now.

        Each affiliate is processed in its own transaction under its row
        lock. Affiliates whose lock stays taken are skipped and picked up
        by the next run. Re-running with the same ``now`` is a no-op.

        Args:
            now: Evaluation time
            batch_size: Affiliates fetched per query

        Returns:
            SweepResult
        """
        result = SweepResult()
        attempted: set[int] = set()

        while True:
            affiliate_ids = [
                affiliate_id
                for affiliate_id in await self.commission_repo.get_affiliates_with_due(
                    now, limit=batch_size
                )
                if affiliate_id not in attempted
            ]
            if not affiliate_ids:
                break

            for affiliate_id in affiliate_ids:
                attempted.add(affiliate_id)
                try:
                    confirmed = await self.run_lazy_maturation(affiliate_id, now)
                except ConflictError:
                    result.skipped_affiliates.append(affiliate_id)
                    continue
                result.confirmed_count += confirmed
                result.affiliates_processed += 1

        if result.confirmed_count or result.skipped_affiliates:
            self.logger.info(
                f"Maturation sweep confirmed {result.confirmed_count} commissions",
                extra={
                    "affiliates_processed": result.affiliates_processed,
                    "skipped_affiliates": result.skipped_affiliates,
                },
            )
        return result

    async def mark_paid(self, affiliate_id: int, now: datetime) -> list[Commission]:
        """
        Mark confirmed commissions paid once withdrawals fully cover them.

        Oldest confirmations are paid first. Status-only change: paid
        commissions stay in total earnings. Caller must hold the lock.

        Args:
            affiliate_id: Affiliate ID
            now: Payment time

        Returns:
            Commissions marked paid
        """
        affiliate = await self.lock_affiliate(affiliate_id)
        already_paid = await self.commission_repo.sum_paid(affiliate_id)
        confirmed = await self.commission_repo.get_confirmed_oldest_first(affiliate_id)

        to_pay = select_commissions_to_mark_paid(
            confirmed, affiliate.withdrawn_balance, already_paid
        )
        for commission in to_pay:
            commission.status = CommissionStatus.PAID.value
            commission.paid_at = now
        await self.session.flush()

        if to_pay:
            self.logger.info(
                f"Marked {len(to_pay)} commissions paid",
                extra={"affiliate_id": affiliate_id},
            )
        return to_pay

    async def get_balances(self, affiliate_id: int) -> Balances:
        """
        Get cached balances of an affiliate.

        Raises:
            NotFoundError: Unknown affiliate
        """
        affiliate = await self.affiliate_repo.get_by_id(affiliate_id)
        if not affiliate:
            raise NotFoundError(
                f"Affiliate {affiliate_id} not found", affiliate_id=affiliate_id
            )
        await self.session.refresh(affiliate)
        return cached_balances(affiliate)

    async def reconcile(self, affiliate_id: int) -> ReconciliationReport:
        """
        Compare cached balances with a rebuild from history.

        Drift is logged and reported to admins but never corrected.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            ReconciliationReport
        """
        cached = await self.get_balances(affiliate_id)
        rebuilt = await self.rebuild_balances(affiliate_id)
        report = ReconciliationReport(
            affiliate_id=affiliate_id, cached=cached, rebuilt=rebuilt
        )

        if report.has_drift:
            self.logger.bind(audit=True).error(
                "Balance drift detected",
                affiliate_id=affiliate_id,
                cached=cached.to_dict(),
                rebuilt=rebuilt.to_dict(),
            )
            try:
                await self.alert_service.notify_reconciliation_drift(
                    affiliate_id=affiliate_id,
                    cached=cached.to_dict(),
                    rebuilt=rebuilt.to_dict(),
                )
            except Exception as e:
                self.logger.error(f"Failed to alert admins about drift: {e}")

        return report

    @log_operation
    async def reconcile_all(self) -> list[ReconciliationReport]:
        """
        Reconcile every affiliate.

        Returns:
            Reports with drift
        """
        drifted = []
        for affiliate_id in await self.affiliate_repo.get_all_ids():
            report = await self.reconcile(affiliate_id)
            if report.has_drift:
                drifted.append(report)
        return drifted

    async def event_history(
        self, affiliate_id: int, limit: int | None = None
    ) -> list[LedgerEvent]:
        """
        Get the balance event trail of an affiliate in replay order.

        Args:
            affiliate_id: Affiliate ID
            limit: Optional max number of events

        Returns:
            Ledger events, oldest first

        Raises:
            NotFoundError: Unknown affiliate
        """
        await self.get_balances(affiliate_id)
        return await self.event_repo.get_by_affiliate(affiliate_id, limit=limit)
