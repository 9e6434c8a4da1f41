"""
Withdrawal repository.

Data access layer for Withdrawal model.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import WithdrawalStatus
from app.models.withdrawal import Withdrawal
from app.repositories.base import BaseRepository


RESERVED_STATUSES = (
    WithdrawalStatus.PENDING.value,
    WithdrawalStatus.PROCESSING.value,
)


class WithdrawalRepository(BaseRepository[Withdrawal]):
    """Withdrawal repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(Withdrawal, session)

    async def get_by_affiliate(
        self,
        affiliate_id: int,
        status: str | None = None,
    ) -> list[Withdrawal]:
        """
        Get withdrawals of an affiliate, newest first.

        Args:
            affiliate_id: Affiliate ID
            status: Optional status filter

        Returns:
            List of withdrawals
        """
        stmt = select(Withdrawal).where(Withdrawal.affiliate_id == affiliate_id)

        if status:
            stmt = stmt.where(Withdrawal.status == status)

        stmt = stmt.order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_by_status(
        self, affiliate_id: int, statuses: tuple[str, ...]
    ) -> Decimal:
        """
        Sum withdrawal amounts of an affiliate in the given statuses.

        Args:
            affiliate_id: Affiliate ID
            statuses: Withdrawal statuses to include

        Returns:
            Total amount
        """
        return await self.sum_where(
            Withdrawal.amount,
            Withdrawal.affiliate_id == affiliate_id,
            Withdrawal.status.in_(statuses),
        )

    async def sum_reserved(self, affiliate_id: int) -> Decimal:
        """Sum of pending and processing withdrawals."""
        return await self.sum_by_status(affiliate_id, RESERVED_STATUSES)

    async def sum_completed(self, affiliate_id: int) -> Decimal:
        """Sum of completed withdrawals."""
        return await self.sum_by_status(
            affiliate_id, (WithdrawalStatus.COMPLETED.value,)
        )
