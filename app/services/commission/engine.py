"""
Commission engine.

Turns payment processor callbacks into commission entries and
clawbacks. Both callbacks are idempotent on ``order_id``: the unique
constraint on commissions.order_id is the final guard against
concurrent deliveries.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import StrEnum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import COMMISSION_HOLD_REASON_OVERDUE
from app.config.settings import settings
from app.models.affiliate import Affiliate
from app.models.commission import Commission
from app.models.enums import (
    CancelReason,
    CommissionStatus,
    PaymentEventType,
    ProductPlan,
)
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.services.admin_alert_service import AdminAlertService
from app.services.affiliate.registry import AffiliateRegistry
from app.services.attribution.tracker import AttributionTracker
from app.services.base_service import BaseService, transaction
from app.services.commission.rate_calculator import (
    calculate_commission,
    get_commission_rate,
    is_commissionable,
)
from app.services.commission.standing import (
    AffiliateRowStanding,
    SubscriptionStanding,
)
from app.services.ledger.balance_calculator import Balances
from app.services.ledger.events import CommissionCreated
from app.services.ledger.ledger_service import LedgerService
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.db_decorators import retry_on_lock_conflict
from app.utils.exceptions import DuplicateEventError, ValidationError


class OutcomeStatus(StrEnum):
    """Explicit result of a payment callback."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    NO_REFERRER = "no_referrer"
    NOT_ELIGIBLE = "not_eligible"
    SELF_REFERRAL = "self_referral"
    UNSUPPORTED_CURRENCY = "unsupported_currency"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class PaymentEvent:
    """Normalized payment processor callback."""

    order_id: str
    event_type: PaymentEventType
    plan: ProductPlan
    sale_amount: Decimal
    currency: str
    affiliate_referral_code: str | None = None
    visitor_token: str | None = None
    customer_user_id: int | None = None
    occurred_at: datetime | None = None


@dataclass
class CommissionOutcome:
    """What a payment callback did to the ledger."""

    status: OutcomeStatus
    order_id: str
    commission: Commission | None = None
    balances: Balances | None = None
    message: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"status": self.status.value, "order_id": self.order_id}
        if self.commission is not None:
            data["commission_id"] = self.commission.id
            data["affiliate_id"] = self.commission.affiliate_id
            data["commission_amount"] = str(self.commission.commission_amount)
            data["commission_status"] = self.commission.status
            data["payment_held"] = bool(self.commission.payment_held)
        if self.message:
            data["message"] = self.message
        return data


@dataclass
class CommissionCancellation:
    """Result of a refund or chargeback callback."""

    order_id: str
    commission: Commission | None = None
    balances: Balances | None = None
    clawed_back: Decimal = Decimal("0")
    is_duplicate: bool = False

    @property
    def found(self) -> bool:
        return self.commission is not None


class CommissionEngine(BaseService):
    """Computes commissions from confirmed payments and reverses them."""

    def __init__(
        self,
        session: AsyncSession,
        alert_service: AdminAlertService | None = None,
        standing: SubscriptionStanding | None = None,
    ) -> None:
        """
        Initialize commission engine.

        Args:
            session: Database session
            alert_service: Admin alerts passed on to the ledger
            standing: Subscription standing check (defaults to the
                affiliate row)
        """
        super().__init__(session)
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.ledger = LedgerService(session, alert_service)
        self.registry = AffiliateRegistry(session)
        self.tracker = AttributionTracker(session)
        self.standing = standing or AffiliateRowStanding()

    @retry_on_lock_conflict()
    @transaction
    async def _record_commission(
        self,
        order_id: str,
        affiliate_id: int,
        plan: ProductPlan,
        sale_amount: Decimal,
        now: datetime,
        currency: str,
    ) -> CommissionOutcome:
        affiliate = await self.ledger.lock_affiliate(affiliate_id)

        existing = await self.commission_repo.get_by_order_id(order_id)
        if existing:
            raise DuplicateEventError(
                f"Order {order_id} already has a commission",
                prior_result=existing,
                order_id=order_id,
            )

        if not affiliate.is_active:
            return CommissionOutcome(
                OutcomeStatus.NO_REFERRER, order_id,
                message=f"Affiliate is {affiliate.status}",
            )

        # Rate is frozen here from the tier at sale time. Applying tier
        # changes to existing subscriptions would need the tier re-read
        # at maturation instead.
        rate = get_commission_rate(affiliate.tier, plan)
        if rate is None:
            return CommissionOutcome(
                OutcomeStatus.NOT_ELIGIBLE, order_id,
                message=f"Plan {plan} is not commissionable",
            )

        # Overdue affiliates still earn, but the commission is held out of
        # maturation until billing clears and an admin releases it
        held = not await self.standing.can_receive_payout(affiliate, now)

        commission = await self.commission_repo.create(
            affiliate_id=affiliate.id,
            order_id=order_id,
            plan=ProductPlan(plan).value,
            currency=currency,
            sale_amount=sale_amount,
            commission_rate=rate,
            commission_amount=calculate_commission(sale_amount, rate),
            status=CommissionStatus.PENDING.value,
            created_at=now,
            matures_at=now + timedelta(days=settings.commission_maturation_days),
            payment_held=held,
            held_reason=COMMISSION_HOLD_REASON_OVERDUE if held else None,
            held_at=now if held else None,
        )
        balances = await self.ledger.apply(
            CommissionCreated(
                affiliate_id=affiliate.id,
                amount=commission.commission_amount,
                commission_id=commission.id,
            )
        )

        self.logger.info(
            "Commission created",
            extra={
                "commission_id": commission.id,
                "order_id": order_id,
                "affiliate_id": affiliate.id,
                "tier": affiliate.tier,
                "plan": commission.plan,
                "amount": str(commission.commission_amount),
            },
        )
        if held:
            self.logger.warning(
                "Commission held: affiliate subscription overdue",
                extra={"commission_id": commission.id, "affiliate_id": affiliate.id},
            )
        return CommissionOutcome(OutcomeStatus.CREATED, order_id, commission, balances)

    async def record_commission(
        self,
        order_id: str,
        affiliate_id: int,
        plan: ProductPlan,
        sale_amount: Decimal,
        now: datetime,
        currency: str | None = None,
    ) -> CommissionOutcome:
        """
        Record a commission for a confirmed payment.

        Args:
            order_id: Processor order id (idempotency key)
            affiliate_id: Referring affiliate
            plan: Purchased plan
            sale_amount: Billed amount
            now: Payment confirmation time
            currency: Sale currency (defaults to the ledger currency)

        Returns:
            CommissionOutcome (created, duplicate, no_referrer, not_eligible)

        Raises:
            ValidationError: Non-positive sale amount
        """
        if sale_amount <= 0:
            raise ValidationError(
                "Sale amount must be positive", sale_amount=str(sale_amount)
            )
        try:
            return await self._record_commission(
                order_id,
                affiliate_id,
                plan,
                sale_amount,
                ensure_utc(now),
                currency or settings.ledger_currency,
            )
        except DuplicateEventError:
            # Rollback expired the prior row; reload it
            existing = await self.commission_repo.get_by_order_id(order_id)
            return CommissionOutcome(OutcomeStatus.DUPLICATE, order_id, existing)
        except IntegrityError:
            # A concurrent delivery inserted the same order first
            existing = await self.commission_repo.get_by_order_id(order_id)
            if existing is None:
                raise
            self.logger.info(
                "Duplicate payment delivery resolved by unique order_id",
                extra={"order_id": order_id},
            )
            return CommissionOutcome(OutcomeStatus.DUPLICATE, order_id, existing)

    async def on_payment_confirmed(
        self,
        order_id: str,
        affiliate_id: int,
        plan: ProductPlan,
        sale_amount: Decimal,
        now: datetime,
    ) -> Commission | None:
        """
        Create a pending commission for a confirmed payment.

        Idempotent: a second call with the same order returns the existing
        commission unchanged.

        Args:
            order_id: Processor order id
            affiliate_id: Referring affiliate
            plan: Purchased plan
            sale_amount: Billed amount
            now: Payment confirmation time

        Returns:
            Commission, None if the purchase is not commissionable
        """
        outcome = await self.record_commission(
            order_id, affiliate_id, plan, sale_amount, now
        )
        return outcome.commission

    @retry_on_lock_conflict()
    @transaction
    async def on_payment_refunded_or_chargedback(
        self,
        order_id: str,
        now: datetime,
        reason: CancelReason = CancelReason.REFUNDED,
    ) -> CommissionCancellation:
        """
        Cancel the commission of a refunded or charged back order.

        A second callback for the same order returns the prior
        cancellation; an unknown order is a soft no-op.

        Args:
            order_id: Processor order id
            now: Refund time
            reason: refunded / chargeback

        Returns:
            CommissionCancellation
        """
        commission = await self.commission_repo.get_by_order_id(order_id)
        if commission is None:
            self.logger.info(
                "Refund for order without commission",
                extra={"order_id": order_id},
            )
            return CommissionCancellation(order_id)

        await self.ledger.lock_affiliate(commission.affiliate_id)
        await self.session.refresh(commission)

        if commission.status == CommissionStatus.CANCELLED.value:
            return CommissionCancellation(
                order_id,
                commission,
                balances=await self.ledger.get_balances(commission.affiliate_id),
                clawed_back=Decimal("0"),
                is_duplicate=True,
            )

        was_earned = commission.is_earned
        balances = await self.ledger.cancel_commission(
            commission, reason, ensure_utc(now)
        )

        self.logger.info(
            "Commission cancelled",
            extra={
                "commission_id": commission.id,
                "order_id": order_id,
                "reason": reason.value,
                "clawback": was_earned,
            },
        )
        return CommissionCancellation(
            order_id,
            commission,
            balances=balances,
            clawed_back=commission.commission_amount if was_earned else Decimal("0"),
        )

    async def _resolve_referrer(
        self, event: PaymentEvent, now: datetime
    ) -> Affiliate | None:
        """
        Find the affiliate to credit for a payment.

        The visitor's unexpired binding wins over the code carried by the
        payment. A binding to a suspended affiliate counts as absent.
        Without a binding the carried code is attributed to the visitor
        first, so the same first-touch rules apply.
        """
        if event.visitor_token:
            binding = await self.tracker.lookup(event.visitor_token, now)
            if binding is None and event.affiliate_referral_code:
                result = await self.tracker.attribute(
                    event.visitor_token, event.affiliate_referral_code, now
                )
                binding = result.attribution
            if binding is None:
                return None
            affiliate = await self.affiliate_repo.get_by_id(binding.affiliate_id)
            return affiliate if affiliate and affiliate.is_active else None

        return await self.registry.resolve_code(event.affiliate_referral_code)

    async def handle_payment_event(self, event: PaymentEvent) -> CommissionOutcome:
        """
        Process a payment processor webhook.

        Absent, expired, unknown, suspended and self-referential codes are
        silent no-ops with an explicit outcome.

        Args:
            event: Normalized payment event

        Returns:
            CommissionOutcome
        """
        now = ensure_utc(event.occurred_at) if event.occurred_at else utc_now()

        if event.event_type in (PaymentEventType.REFUNDED, PaymentEventType.CHARGEBACK):
            reason = (
                CancelReason.CHARGEBACK
                if event.event_type == PaymentEventType.CHARGEBACK
                else CancelReason.REFUNDED
            )
            cancellation = await self.on_payment_refunded_or_chargedback(
                event.order_id, now, reason
            )
            if not cancellation.found:
                return CommissionOutcome(OutcomeStatus.NOT_FOUND, event.order_id)
            return CommissionOutcome(
                OutcomeStatus.DUPLICATE if cancellation.is_duplicate else OutcomeStatus.CANCELLED,
                event.order_id,
                cancellation.commission,
                cancellation.balances,
            )

        existing = await self.commission_repo.get_by_order_id(event.order_id)
        if existing:
            return CommissionOutcome(OutcomeStatus.DUPLICATE, event.order_id, existing)

        if event.currency.upper() != settings.ledger_currency:
            self.logger.warning(
                "Payment in unsupported currency ignored",
                extra={"order_id": event.order_id, "currency": event.currency},
            )
            return CommissionOutcome(
                OutcomeStatus.UNSUPPORTED_CURRENCY, event.order_id,
                message=f"Only {settings.ledger_currency} payments are commissioned",
            )

        if not is_commissionable(event.plan):
            return CommissionOutcome(
                OutcomeStatus.NOT_ELIGIBLE, event.order_id,
                message=f"Plan {event.plan} is not commissionable",
            )

        affiliate = await self._resolve_referrer(event, now)
        if affiliate is None:
            # Commit a binding created while resolving
            await self.commit()
            return CommissionOutcome(OutcomeStatus.NO_REFERRER, event.order_id)

        if (
            event.customer_user_id is not None
            and event.customer_user_id == affiliate.user_id
        ):
            await self.commit()
            self.logger.info(
                "Self-referral ignored",
                extra={"order_id": event.order_id, "affiliate_id": affiliate.id},
            )
            return CommissionOutcome(OutcomeStatus.SELF_REFERRAL, event.order_id)

        await self.commit()
        return await self.record_commission(
            event.order_id,
            affiliate.id,
            event.plan,
            event.sale_amount,
            now,
            event.currency.upper(),
        )
