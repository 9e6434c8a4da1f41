"""
Withdrawal query service module.

Handles read queries for withdrawals: affiliate history, admin queue and
decrypted payout details.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import WithdrawalStatus
from app.models.withdrawal import Withdrawal
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.utils.encryption import get_encryption_service
from app.utils.exceptions import NotFoundError


class WithdrawalQueryService:
    """Handles withdrawal query operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal query service.

        Args:
            session: Database session
        """
        self.session = session
        self.withdrawal_repo = WithdrawalRepository(session)

    async def get_pending_withdrawals(self) -> list[Withdrawal]:
        """
        Get withdrawals awaiting an admin decision, oldest first.

        Returns:
            Pending and processing withdrawals
        """
        stmt = (
            select(Withdrawal)
            .where(
                Withdrawal.status.in_(
                    (WithdrawalStatus.PENDING.value, WithdrawalStatus.PROCESSING.value)
                )
            )
            .order_by(Withdrawal.created_at.asc(), Withdrawal.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_affiliate_withdrawals(
        self, affiliate_id: int, status: str | None = None
    ) -> list[Withdrawal]:
        """
        Get withdrawal history of an affiliate, newest first.

        Args:
            affiliate_id: Affiliate ID
            status: Optional status filter

        Returns:
            Withdrawals
        """
        return await self.withdrawal_repo.get_by_affiliate(affiliate_id, status)

    async def get_withdrawal(self, withdrawal_id: int) -> Withdrawal:
        """
        Get withdrawal by ID.

        Raises:
            NotFoundError: Unknown withdrawal
        """
        withdrawal = await self.withdrawal_repo.get_by_id(withdrawal_id)
        if not withdrawal:
            raise NotFoundError(
                f"Withdrawal {withdrawal_id} not found", withdrawal_id=withdrawal_id
            )
        return withdrawal

    def get_payment_details(self, withdrawal: Withdrawal) -> dict[str, str]:
        """
        Decrypt payout details for the admin processing the payout.

        Args:
            withdrawal: Withdrawal

        Returns:
            Payout details
        """
        return get_encryption_service().open_details(withdrawal.payment_details)
