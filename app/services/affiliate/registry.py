"""
Affiliate registry.

Affiliate identity, referral code issuance, tier and activation gating.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import DEFAULT_AFFILIATE_TIER
from app.config.settings import settings
from app.models.affiliate import Affiliate
from app.models.enums import AffiliateStatus, AffiliateTier
from app.repositories.affiliate_repository import AffiliateRepository
from app.services.affiliate.code_generator import (
    generate_referral_code,
    looks_like_referral_code,
    normalize_referral_code,
)
from app.services.base_service import BaseService, transaction
from app.utils.datetime_utils import utc_now
from app.utils.db_decorators import retry_on_lock_conflict
from app.utils.exceptions import (
    CodeSpaceExhausted,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)


class AffiliateRegistry(BaseService):
    """Registration, activation and administration of affiliates."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize affiliate registry.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.affiliate_repo = AffiliateRepository(session)

    async def _get_locked(self, affiliate_id: int) -> Affiliate:
        affiliate = await self.affiliate_repo.get_for_update(affiliate_id)
        if not affiliate:
            raise NotFoundError(
                f"Affiliate {affiliate_id} not found", affiliate_id=affiliate_id
            )
        return affiliate

    async def _generate_unique_code(self) -> str:
        """
        Generate a referral code not yet issued.

        Raises:
            CodeSpaceExhausted: Every attempt collided
        """
        attempts = settings.referral_code_max_attempts
        for _ in range(attempts):
            code = generate_referral_code(length=settings.referral_code_length)
            if not await self.affiliate_repo.code_exists(code):
                return code
            self.logger.debug("Referral code collision, regenerating")

        self.logger.error(
            f"Could not generate a unique referral code in {attempts} attempts"
        )
        raise CodeSpaceExhausted(
            f"Could not generate a unique referral code in {attempts} attempts",
            attempts=attempts,
        )

    @retry_on_lock_conflict()
    @transaction
    async def issue_code(self, affiliate_id: int) -> str:
        """
        Issue a fresh referral code to an affiliate.

        The previous code stops resolving; bindings already captured keep
        pointing at the affiliate.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            New referral code
        """
        affiliate = await self._get_locked(affiliate_id)
        code = await self._generate_unique_code()
        previous = affiliate.referral_code
        affiliate.referral_code = code
        await self.session.flush()

        self.logger.info(
            "Referral code issued",
            extra={"affiliate_id": affiliate_id, "previous_code": previous},
        )
        return code

    async def _register(self, user_id: int) -> Affiliate:
        affiliate = await self.affiliate_repo.get_by_user_id(user_id)
        if affiliate:
            return affiliate

        code = await self._generate_unique_code()
        affiliate = await self.affiliate_repo.create(
            user_id=user_id,
            referral_code=code,
            tier=DEFAULT_AFFILIATE_TIER.value,
            status=AffiliateStatus.PENDING.value,
        )
        self.logger.info(
            "Affiliate registered",
            extra={"affiliate_id": affiliate.id, "user_id": user_id},
        )
        return affiliate

    @transaction
    async def register(self, user_id: int) -> Affiliate:
        """
        Get or create the pending affiliate profile of an account.

        Args:
            user_id: Storefront user ID

        Returns:
            Affiliate (pending until terms are accepted)
        """
        return await self._register(user_id)

    async def _accept_terms(
        self, affiliate: Affiliate, terms_version: str, now: datetime
    ) -> Affiliate:
        if affiliate.terms_accepted_at and affiliate.terms_version == terms_version:
            return affiliate

        affiliate.terms_accepted_at = now
        affiliate.terms_version = terms_version
        if affiliate.status == AffiliateStatus.PENDING.value:
            affiliate.status = AffiliateStatus.ACTIVE.value
        await self.session.flush()

        self.logger.info(
            "Affiliate terms accepted",
            extra={
                "affiliate_id": affiliate.id,
                "terms_version": terms_version,
                "status": affiliate.status,
            },
        )
        return affiliate

    @retry_on_lock_conflict()
    @transaction
    async def accept_terms(
        self,
        affiliate_id: int,
        terms_version: str,
        now: datetime | None = None,
    ) -> Affiliate:
        """
        Record terms acceptance and activate a pending affiliate.

        Idempotent for the same terms version. A suspended affiliate stays
        suspended.

        Args:
            affiliate_id: Affiliate ID
            terms_version: Accepted terms version
            now: Acceptance time

        Returns:
            Updated affiliate
        """
        if not terms_version or not terms_version.strip():
            raise ValidationError("Terms version is required")
        affiliate = await self._get_locked(affiliate_id)
        return await self._accept_terms(
            affiliate, terms_version.strip(), now or utc_now()
        )

    @transaction
    async def enroll(
        self,
        user_id: int,
        terms_version: str,
        now: datetime | None = None,
    ) -> Affiliate:
        """
        Register an account and accept terms in one step.

        Args:
            user_id: Storefront user ID
            terms_version: Accepted terms version
            now: Acceptance time

        Returns:
            Affiliate (active unless suspended)
        """
        if not terms_version or not terms_version.strip():
            raise ValidationError("Terms version is required")
        affiliate = await self._register(user_id)
        return await self._accept_terms(
            affiliate, terms_version.strip(), now or utc_now()
        )

    @retry_on_lock_conflict()
    @transaction
    async def set_tier(self, affiliate_id: int, tier: AffiliateTier | str) -> Affiliate:
        """
        Change an affiliate's tier.

        Only commissions created afterwards use the new rate.

        Args:
            affiliate_id: Affiliate ID
            tier: New tier

        Returns:
            Updated affiliate
        """
        try:
            tier = AffiliateTier(tier)
        except ValueError:
            raise ValidationError(f"Unknown tier: {tier}", tier=str(tier))

        affiliate = await self._get_locked(affiliate_id)
        previous = affiliate.tier
        affiliate.tier = tier.value
        await self.session.flush()

        self.logger.info(
            "Affiliate tier changed",
            extra={"affiliate_id": affiliate_id, "from": previous, "to": tier.value},
        )
        return affiliate

    @retry_on_lock_conflict()
    @transaction
    async def suspend(
        self,
        affiliate_id: int,
        reason: str,
        now: datetime | None = None,
    ) -> Affiliate:
        """
        Suspend an affiliate.

        Its code stops resolving; existing balances are untouched.

        Args:
            affiliate_id: Affiliate ID
            reason: Admin's reason
            now: Suspension time

        Returns:
            Updated affiliate
        """
        affiliate = await self._get_locked(affiliate_id)
        if affiliate.status == AffiliateStatus.SUSPENDED.value:
            raise InvalidTransition(
                f"Affiliate {affiliate_id} is already suspended",
                affiliate_id=affiliate_id,
            )

        affiliate.status = AffiliateStatus.SUSPENDED.value
        affiliate.suspended_at = now or utc_now()
        affiliate.suspension_reason = reason
        await self.session.flush()

        self.logger.warning(
            "Affiliate suspended",
            extra={"affiliate_id": affiliate_id, "reason": reason},
        )
        return affiliate

    @retry_on_lock_conflict()
    @transaction
    async def reactivate(self, affiliate_id: int) -> Affiliate:
        """
        Lift a suspension.

        Returns to active when terms were accepted, otherwise to pending.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Updated affiliate
        """
        affiliate = await self._get_locked(affiliate_id)
        if affiliate.status != AffiliateStatus.SUSPENDED.value:
            raise InvalidTransition(
                f"Affiliate {affiliate_id} is not suspended",
                affiliate_id=affiliate_id,
            )

        affiliate.status = (
            AffiliateStatus.ACTIVE.value
            if affiliate.terms_accepted_at
            else AffiliateStatus.PENDING.value
        )
        affiliate.suspended_at = None
        affiliate.suspension_reason = None
        await self.session.flush()

        self.logger.info(
            "Affiliate reactivated",
            extra={"affiliate_id": affiliate_id, "status": affiliate.status},
        )
        return affiliate

    @retry_on_lock_conflict()
    @transaction
    async def set_subscription_standing(
        self,
        affiliate_id: int,
        overdue: bool,
        now: datetime | None = None,
    ) -> Affiliate:
        """
        Record whether the affiliate's own subscription payment is overdue.

        New commissions of an overdue affiliate are created on payout
        hold. Clearing the flag does not release existing holds; that is
        LedgerService.release_holds.

        Args:
            affiliate_id: Affiliate ID
            overdue: Subscription payment overdue
            now: When billing reported it

        Returns:
            Updated affiliate
        """
        affiliate = await self._get_locked(affiliate_id)
        if overdue and affiliate.subscription_overdue_since is None:
            affiliate.subscription_overdue_since = now or utc_now()
        elif not overdue:
            affiliate.subscription_overdue_since = None
        await self.session.flush()

        self.logger.info(
            "Affiliate subscription standing updated",
            extra={"affiliate_id": affiliate_id, "overdue": overdue},
        )
        return affiliate

    async def resolve_code(self, code: str | None) -> Affiliate | None:
        """
        Resolve a referral code to an affiliate allowed to earn.

        Unknown, pending and suspended affiliates resolve to None.

        Args:
            code: Code as received (any case)

        Returns:
            Active affiliate or None
        """
        if not code:
            return None
        normalized = normalize_referral_code(code)
        if not looks_like_referral_code(normalized):
            return None

        affiliate = await self.affiliate_repo.get_by_code(normalized)
        if not affiliate or not affiliate.is_active:
            return None
        return affiliate

    async def get(self, affiliate_id: int) -> Affiliate:
        """
        Get affiliate by ID.

        Raises:
            NotFoundError: Unknown affiliate
        """
        affiliate = await self.affiliate_repo.get_by_id(affiliate_id)
        if not affiliate:
            raise NotFoundError(
                f"Affiliate {affiliate_id} not found", affiliate_id=affiliate_id
            )
        return affiliate
