"""
Commission repository.

Data access layer for Commission model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import Commission
from app.models.enums import CommissionStatus
from app.repositories.base import BaseRepository


EARNED_STATUSES = (
    CommissionStatus.CONFIRMED.value,
    CommissionStatus.PAID.value,
)


class CommissionRepository(BaseRepository[Commission]):
    """Commission repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(Commission, session)

    async def get_by_order_id(self, order_id: str) -> Commission | None:
        """
        Get commission by payment processor order id.

        Args:
            order_id: Order/invoice id

        Returns:
            Commission or None
        """
        return await self.get_by(order_id=order_id)

    async def get_affiliates_with_due(
        self, now: datetime, limit: int = 500
    ) -> list[int]:
        """
        Get affiliates owning pending commissions past maturation.

        Args:
            now: Evaluation time
            limit: Max affiliates per sweep batch

        Returns:
            Affiliate IDs in ascending order
        """
        stmt = (
            select(Commission.affiliate_id)
            .where(
                and_(
                    Commission.status == CommissionStatus.PENDING.value,
                    Commission.cancelled_at.is_(None),
                    Commission.payment_held.is_(False),
                    Commission.matures_at <= now,
                )
            )
            .group_by(Commission.affiliate_id)
            .order_by(Commission.affiliate_id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_due_for_affiliate(
        self, affiliate_id: int, now: datetime
    ) -> list[Commission]:
        """
        Get pending commissions of one affiliate that are due to mature.

        Args:
            affiliate_id: Affiliate ID
            now: Evaluation time

        Returns:
            Commissions ordered by maturation date
        """
        stmt = (
            select(Commission)
            .where(
                and_(
                    Commission.affiliate_id == affiliate_id,
                    Commission.status == CommissionStatus.PENDING.value,
                    Commission.cancelled_at.is_(None),
                    Commission.payment_held.is_(False),
                    Commission.matures_at <= now,
                )
            )
            .order_by(Commission.matures_at.asc(), Commission.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_held_for_affiliate(self, affiliate_id: int) -> list[Commission]:
        """
        Get pending commissions of one affiliate that are on payout hold.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Held commissions, oldest first
        """
        stmt = (
            select(Commission)
            .where(
                and_(
                    Commission.affiliate_id == affiliate_id,
                    Commission.status == CommissionStatus.PENDING.value,
                    Commission.payment_held.is_(True),
                )
            )
            .order_by(Commission.created_at.asc(), Commission.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_confirmed_oldest_first(
        self, affiliate_id: int
    ) -> list[Commission]:
        """
        Get confirmed (unpaid) commissions, oldest confirmation first.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Confirmed commissions
        """
        stmt = (
            select(Commission)
            .where(
                and_(
                    Commission.affiliate_id == affiliate_id,
                    Commission.status == CommissionStatus.CONFIRMED.value,
                )
            )
            .order_by(Commission.confirmed_at.asc(), Commission.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_by_status(
        self, affiliate_id: int, statuses: tuple[str, ...]
    ) -> Decimal:
        """
        Sum commission amounts of an affiliate in the given statuses.

        Args:
            affiliate_id: Affiliate ID
            statuses: Commission statuses to include

        Returns:
            Total amount
        """
        return await self.sum_where(
            Commission.commission_amount,
            Commission.affiliate_id == affiliate_id,
            Commission.status.in_(statuses),
        )

    async def sum_earned(self, affiliate_id: int) -> Decimal:
        """Sum of confirmed and paid commissions."""
        return await self.sum_by_status(affiliate_id, EARNED_STATUSES)

    async def sum_paid(self, affiliate_id: int) -> Decimal:
        """Sum of paid commissions."""
        return await self.sum_by_status(
            affiliate_id, (CommissionStatus.PAID.value,)
        )

    async def sum_pending(self, affiliate_id: int) -> Decimal:
        """Sum of commissions still inside the refund window."""
        return await self.sum_by_status(
            affiliate_id, (CommissionStatus.PENDING.value,)
        )

    async def sum_held(self, affiliate_id: int) -> Decimal:
        """Sum of pending commissions on payout hold."""
        return await self.sum_where(
            Commission.commission_amount,
            Commission.affiliate_id == affiliate_id,
            Commission.status == CommissionStatus.PENDING.value,
            Commission.payment_held.is_(True),
        )

    async def get_history(
        self,
        affiliate_id: int,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Commission], int]:
        """
        Get paginated commission history of an affiliate, newest first.

        Args:
            affiliate_id: Affiliate ID
            page: Page number (1-indexed)
            per_page: Items per page

        Returns:
            Tuple of (commissions, total_count)
        """
        return await self.find_paginated(
            page=page, per_page=per_page, affiliate_id=affiliate_id
        )
