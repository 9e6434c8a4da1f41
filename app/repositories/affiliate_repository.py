"""
Affiliate repository.

Data access layer for Affiliate model.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.affiliate import Affiliate
from app.repositories.base import BaseRepository


class AffiliateRepository(BaseRepository[Affiliate]):
    """Affiliate repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate repository."""
        super().__init__(Affiliate, session)

    async def get_by_code(self, referral_code: str) -> Affiliate | None:
        """
        Get affiliate by referral code (case-insensitive).

        Args:
            referral_code: Referral code

        Returns:
            Affiliate or None
        """
        stmt = select(Affiliate).where(
            func.upper(Affiliate.referral_code) == referral_code.strip().upper()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: int) -> Affiliate | None:
        """
        Get affiliate owned by a storefront account.

        Args:
            user_id: Storefront user ID

        Returns:
            Affiliate or None
        """
        return await self.get_by(user_id=user_id)

    async def code_exists(self, referral_code: str) -> bool:
        """
        Check whether a referral code is already issued.

        Args:
            referral_code: Candidate code

        Returns:
            True if taken
        """
        return await self.exists(referral_code=referral_code)

    async def get_all_ids(self) -> list[int]:
        """
        Get IDs of all affiliates (for reconciliation).

        Returns:
            Affiliate IDs in ascending order
        """
        result = await self.session.execute(
            select(Affiliate.id).order_by(Affiliate.id)
        )
        return list(result.scalars().all())
