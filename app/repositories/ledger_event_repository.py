"""
LedgerEvent repository.

Data access layer for the append-only ledger event log.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.ledger_event import LedgerEvent
from app.repositories.base import BaseRepository


class LedgerEventRepository(BaseRepository[LedgerEvent]):
    """LedgerEvent repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger event repository."""
        super().__init__(LedgerEvent, session)

    async def get_by_affiliate(
        self, affiliate_id: int, limit: int | None = None
    ) -> list[LedgerEvent]:
        """
        Get events of an affiliate in replay order.

        Args:
            affiliate_id: Affiliate ID
            limit: Optional max number of events

        Returns:
            Events ordered by id
        """
        stmt = (
            select(LedgerEvent)
            .where(LedgerEvent.affiliate_id == affiliate_id)
            .order_by(LedgerEvent.id.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
