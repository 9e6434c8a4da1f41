"""
Base repository.

Shared data access for ledger tables. Ledger rows are never hard-deleted,
so there is no delete helper.
"""

from decimal import Decimal
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one model.

    Example:
        class AffiliateRepository(BaseRepository[Affiliate]):
            def __init__(self, session: AsyncSession):
                super().__init__(Affiliate, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        """Get entity by primary key (identity map first)."""
        return await self.session.get(self.model, id)

    async def get_for_update(self, id: int, nowait: bool = True) -> ModelType | None:
        """
        Get entity by ID holding a row lock until the transaction ends.

        The row is re-read even if already in the identity map, so the
        caller always sees the committed state it locked.

        Args:
            id: Entity ID
            nowait: Fail immediately instead of waiting for the lock

        Returns:
            Locked entity or None if not found
        """
        stmt = (
            select(self.model)
            .where(self.model.id == id)
            .with_for_update(nowait=nowait)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by(self, **filters: Any) -> ModelType | None:
        """Get the single entity matching column filters."""
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **data: Any) -> ModelType:
        """
        Insert an entity and flush so it gets its ID.

        Args:
            **data: Column values

        Returns:
            Created entity
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def exists(self, **filters: Any) -> bool:
        """Whether any entity matches column filters."""
        stmt = select(self.model.id).filter_by(**filters).limit(1)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def sum_where(
        self, column: ColumnElement, *conditions: ColumnElement[bool]
    ) -> Decimal:
        """
        Sum a money column over matching rows.

        Always a Decimal, zero when nothing matches (SQLite hands sums
        back as floats).

        Args:
            column: Column to sum
            *conditions: WHERE clauses

        Returns:
            Total
        """
        stmt = select(func.sum(column)).where(*conditions)
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def find_paginated(
        self,
        page: int = 1,
        per_page: int = 20,
        **filters: Any,
    ) -> tuple[list[ModelType], int]:
        """
        Find entities page by page, newest first.

        Args:
            page: Page number (1-indexed)
            per_page: Items per page
            **filters: Column filters

        Returns:
            Tuple of (items, total_count)
        """
        count_stmt = select(func.count(self.model.id)).filter_by(**filters)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(self.model)
            .filter_by(**filters)
            .order_by(self.model.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total
