"""
Attribution repository.

Data access layer for Attribution model.
"""

from datetime import datetime

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.affiliate import Affiliate
from app.models.attribution import Attribution
from app.models.enums import AffiliateStatus
from app.repositories.base import BaseRepository


class AttributionRepository(BaseRepository[Attribution]):
    """Attribution repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize attribution repository."""
        super().__init__(Attribution, session)

    async def get_active_binding(
        self, visitor_token: str, now: datetime
    ) -> Attribution | None:
        """
        Get the unexpired binding for a visitor.

        The oldest unexpired row wins, so a binding created by a racing
        request can never displace the first touch.

        Args:
            visitor_token: Visitor token
            now: Evaluation time

        Returns:
            Active attribution or None
        """
        stmt = (
            select(Attribution)
            .where(
                and_(
                    Attribution.visitor_token == visitor_token,
                    Attribution.captured_at <= now,
                    Attribution.expires_at > now,
                )
            )
            .order_by(Attribution.captured_at.asc(), Attribution.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_earning_binding(
        self, visitor_token: str, now: datetime
    ) -> Attribution | None:
        """
        Get the unexpired binding whose affiliate is still active.

        Bindings to suspended affiliates are skipped, so they never
        block a later valid referral.

        Args:
            visitor_token: Visitor token
            now: Evaluation time

        Returns:
            Attribution or None
        """
        stmt = (
            select(Attribution)
            .join(Affiliate, Affiliate.id == Attribution.affiliate_id)
            .where(
                and_(
                    Attribution.visitor_token == visitor_token,
                    Attribution.captured_at <= now,
                    Attribution.expires_at > now,
                    Affiliate.status == AffiliateStatus.ACTIVE.value,
                )
            )
            .order_by(Attribution.captured_at.asc(), Attribution.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
