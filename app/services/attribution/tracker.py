"""
Attribution tracker.

Persists first-touch bindings between visitor tokens and referral codes.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.attribution import Attribution
from app.repositories.attribution_repository import AttributionRepository
from app.services.affiliate.code_generator import normalize_referral_code
from app.services.affiliate.registry import AffiliateRegistry
from app.services.attribution.decision import (
    AttributionAction,
    decide_attribution,
)
from app.services.base_service import BaseService, transaction
from app.utils.datetime_utils import ensure_utc


@dataclass(frozen=True)
class CaptureMetadata:
    """Request context recorded with a new binding."""

    source: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    referrer_url: str | None = None


@dataclass
class AttributionResult:
    """Outcome of an attribution attempt."""

    action: AttributionAction
    attribution: Attribution | None = None

    @property
    def is_attributed(self) -> bool:
        return self.attribution is not None

    @property
    def affiliate_id(self) -> int | None:
        return self.attribution.affiliate_id if self.attribution else None

    @property
    def referral_code(self) -> str | None:
        return self.attribution.referral_code if self.attribution else None

    @property
    def expires_at(self) -> datetime | None:
        return self.attribution.expires_at if self.attribution else None


class AttributionTracker(BaseService):
    """
    First-touch, time-windowed attribution.

    ``attribute``, ``link_user`` and ``lookup`` join the caller's
    transaction; ``capture`` is the committing entry point for visits.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize attribution tracker.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.attribution_repo = AttributionRepository(session)
        self.registry = AffiliateRegistry(session)

    async def lookup(self, visitor_token: str, now: datetime) -> Attribution | None:
        """
        Get the unexpired binding of a visitor that can still earn.

        A binding to a suspended affiliate is not returned.

        Args:
            visitor_token: Visitor token
            now: Evaluation time

        Returns:
            Active attribution or None
        """
        if not visitor_token:
            return None
        return await self.attribution_repo.get_earning_binding(
            visitor_token, ensure_utc(now)
        )

    async def attribute(
        self,
        visitor_token: str,
        incoming_code: str | None,
        now: datetime,
        metadata: CaptureMetadata | None = None,
    ) -> AttributionResult:
        """
        Attribute a visit to an affiliate, first touch wins.

        Unknown, suspended and not-yet-active codes are ignored. A valid
        code replaces a binding whose affiliate was suspended since; the
        old binding is closed at ``now``.

        Args:
            visitor_token: Visitor token (cookie/session id or user id)
            incoming_code: Referral code carried by the visit
            now: Visit time
            metadata: Request context for a new binding

        Returns:
            AttributionResult
        """
        now = ensure_utc(now)
        existing = await self.lookup(visitor_token, now)
        existing_is_valid = existing is not None
        if existing is None and visitor_token:
            existing = await self.attribution_repo.get_active_binding(
                visitor_token, now
            )

        affiliate = None
        if incoming_code and not existing_is_valid:
            affiliate = await self.registry.resolve_code(incoming_code)
            if affiliate is None:
                self.logger.debug(
                    "Ignoring invalid referral code",
                    extra={"visitor_token": visitor_token},
                )

        decision = decide_attribution(
            visitor_token=visitor_token,
            incoming_code=incoming_code,
            now=now,
            existing_binding=existing,
            code_is_valid=affiliate is not None,
            existing_is_valid=existing_is_valid,
            window_days=settings.attribution_window_days,
        )

        if decision.action == AttributionAction.KEPT_EXISTING:
            return AttributionResult(decision.action, existing)
        if decision.action == AttributionAction.NO_ATTRIBUTION:
            return AttributionResult(decision.action)

        if decision.replaces_existing:
            existing.expires_at = now
            self.logger.info(
                "Attribution to inactive affiliate replaced",
                extra={
                    "attribution_id": existing.id,
                    "affiliate_id": existing.affiliate_id,
                },
            )

        metadata = metadata or CaptureMetadata()
        attribution = await self.attribution_repo.create(
            visitor_token=visitor_token,
            referral_code=normalize_referral_code(incoming_code),
            affiliate_id=affiliate.id,
            captured_at=decision.captured_at,
            expires_at=decision.expires_at,
            source=metadata.source,
            ip_address=metadata.ip_address,
            user_agent=metadata.user_agent,
            referrer_url=metadata.referrer_url,
        )
        self.logger.info(
            "Attribution created",
            extra={
                "attribution_id": attribution.id,
                "affiliate_id": affiliate.id,
                "expires_at": attribution.expires_at.isoformat(),
            },
        )
        return AttributionResult(decision.action, attribution)

    async def link_user(
        self, visitor_token: str, user_id: int, now: datetime
    ) -> Attribution | None:
        """
        Record the account a visitor signed up with on its active binding.

        Args:
            visitor_token: Visitor token
            user_id: Storefront user ID
            now: Sign-up time

        Returns:
            Updated attribution or None if the visitor is unattributed
        """
        attribution = await self.lookup(visitor_token, now)
        if attribution is None:
            return None
        if attribution.user_id is None:
            attribution.user_id = user_id
            await self.session.flush()
        return attribution

    @transaction
    async def capture(
        self,
        visitor_token: str,
        incoming_code: str | None,
        now: datetime,
        metadata: CaptureMetadata | None = None,
        user_id: int | None = None,
    ) -> AttributionResult:
        """
        Record a visit and commit.

        Args:
            visitor_token: Visitor token
            incoming_code: Referral code carried by the visit
            now: Visit time
            metadata: Request context
            user_id: Signed-up account, if known

        Returns:
            AttributionResult
        """
        result = await self.attribute(visitor_token, incoming_code, now, metadata)
        if user_id is not None and result.is_attributed:
            await self.link_user(visitor_token, user_id, now)
        return result
