"""
Affiliate query service.

Read model for the affiliate dashboard. Never mutates: callers wanting
fresh maturity run LedgerService.run_lazy_maturation first.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import TIER_COMMISSION_RATES
from app.config.settings import settings
from app.models.affiliate import Affiliate
from app.models.enums import AffiliateTier
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.utils.exceptions import NotFoundError


@dataclass
class AffiliateSummary:
    """Dashboard view of one affiliate."""

    affiliate_id: int
    user_id: int
    referral_code: str
    tier: str
    commission_rate: Decimal
    status: str
    terms_accepted_at: datetime | None
    total_earnings: Decimal
    withdrawn_balance: Decimal
    available_balance: Decimal
    reserved_balance: Decimal
    pending_earnings: Decimal
    held_earnings: Decimal
    subscription_overdue: bool
    minimum_withdrawal: Decimal

    @property
    def has_debt(self) -> bool:
        return self.available_balance < 0

    @property
    def can_withdraw(self) -> bool:
        return (
            self.status == "active"
            and self.available_balance >= self.minimum_withdrawal
        )

    def to_dict(self) -> dict:
        return {
            "id": self.affiliate_id,
            "user_id": self.user_id,
            "referral_code": self.referral_code,
            "tier": self.tier,
            "commission_rate": str(self.commission_rate),
            "status": self.status,
            "terms_accepted_at": (
                self.terms_accepted_at.isoformat() if self.terms_accepted_at else None
            ),
            "total_earnings": str(self.total_earnings),
            "withdrawn_balance": str(self.withdrawn_balance),
            "available_balance": str(self.available_balance),
            "reserved_balance": str(self.reserved_balance),
            "pending_earnings": str(self.pending_earnings),
            "held_earnings": str(self.held_earnings),
            "subscription_overdue": self.subscription_overdue,
            "minimum_withdrawal": str(self.minimum_withdrawal),
            "has_debt": self.has_debt,
            "can_withdraw": self.can_withdraw,
        }


class AffiliateQueryService:
    """Read-only queries behind the affiliate API."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize affiliate query service.

        Args:
            session: Database session
        """
        self.session = session
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)

    async def _get_affiliate(self, affiliate_id: int) -> Affiliate:
        affiliate = await self.affiliate_repo.get_by_id(affiliate_id)
        if not affiliate:
            raise NotFoundError(
                f"Affiliate {affiliate_id} not found", affiliate_id=affiliate_id
            )
        await self.session.refresh(affiliate)
        return affiliate

    async def get_summary(self, affiliate_id: int) -> AffiliateSummary:
        """
        Build the dashboard summary of an affiliate.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            AffiliateSummary

        Raises:
            NotFoundError: Unknown affiliate
        """
        affiliate = await self._get_affiliate(affiliate_id)
        pending = await self.commission_repo.sum_pending(affiliate_id)
        held = await self.commission_repo.sum_held(affiliate_id)
        reserved = await self.withdrawal_repo.sum_reserved(affiliate_id)

        return AffiliateSummary(
            affiliate_id=affiliate.id,
            user_id=affiliate.user_id,
            referral_code=affiliate.referral_code,
            tier=affiliate.tier,
            commission_rate=TIER_COMMISSION_RATES[AffiliateTier(affiliate.tier)],
            status=affiliate.status,
            terms_accepted_at=affiliate.terms_accepted_at,
            total_earnings=affiliate.total_earnings,
            withdrawn_balance=affiliate.withdrawn_balance,
            available_balance=affiliate.available_balance,
            reserved_balance=reserved,
            pending_earnings=pending,
            held_earnings=held,
            subscription_overdue=affiliate.subscription_overdue,
            minimum_withdrawal=settings.minimum_withdrawal_amount,
        )

    async def get_commissions(
        self,
        affiliate_id: int,
        page: int = 1,
        per_page: int = 20,
    ) -> dict:
        """
        Get paginated commission history.

        Args:
            affiliate_id: Affiliate ID
            page: Page number (1-indexed)
            per_page: Items per page

        Returns:
            Dict with items, total, page, per_page and pages
        """
        await self._get_affiliate(affiliate_id)
        items, total = await self.commission_repo.get_history(
            affiliate_id, page=page, per_page=per_page
        )
        return {
            "items": [
                {
                    "id": c.id,
                    "order_id": c.order_id,
                    "plan": c.plan,
                    "sale_amount": str(c.sale_amount),
                    "commission_rate": str(c.commission_rate),
                    "commission_amount": str(c.commission_amount),
                    "status": c.status,
                    "created_at": c.created_at.isoformat(),
                    "matures_at": c.matures_at.isoformat(),
                    "cancel_reason": c.cancel_reason,
                    "payment_held": c.payment_held,
                    "held_reason": c.held_reason,
                }
                for c in items
            ],
            "total": total,
            "page": page,
            "per_page": per_page,
            "pages": (total + per_page - 1) // per_page if per_page else 0,
        }

    async def get_withdrawals(self, affiliate_id: int) -> list[dict]:
        """
        Get withdrawal history (payout details never leave the ledger).

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Serialized withdrawals, newest first
        """
        await self._get_affiliate(affiliate_id)
        withdrawals = await self.withdrawal_repo.get_by_affiliate(affiliate_id)
        return [serialize_withdrawal(w) for w in withdrawals]


def serialize_withdrawal(withdrawal) -> dict:
    """Public view of a withdrawal."""
    return {
        "id": withdrawal.id,
        "affiliate_id": withdrawal.affiliate_id,
        "amount": str(withdrawal.amount),
        "payment_method": withdrawal.payment_method,
        "status": withdrawal.status,
        "created_at": withdrawal.created_at.isoformat(),
        "processing_at": (
            withdrawal.processing_at.isoformat() if withdrawal.processing_at else None
        ),
        "resolved_at": (
            withdrawal.resolved_at.isoformat() if withdrawal.resolved_at else None
        ),
        "resolution_note": withdrawal.resolution_note,
    }
