"""
Withdrawal model.

Represents an affiliate's payout request and its approval lifecycle.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import WithdrawalStatus
from app.models.types import MoneyType, UTCDateTime


if TYPE_CHECKING:
    from app.models.affiliate import Affiliate


class Withdrawal(Base):
    """
    Withdrawal entity.

    Immutable once completed or rejected.

    Attributes:
        id: Primary key
        affiliate_id: Requesting affiliate
        amount: Requested (and reserved) amount
        payment_method: paypal / wise / bank_transfer
        payment_details: Fernet-encrypted payout details
        status: pending / processing / completed / rejected
        created_at: Request time
        processing_at: When an admin started processing
        resolved_at: When the request was completed or rejected
        resolution_note: Admin note (payout reference or rejection reason)
    """

    __tablename__ = "withdrawals"
    __table_args__ = (
        CheckConstraint(
            'amount > 0', name='check_withdrawal_amount_positive'
        ),
        Index("idx_withdrawals_affiliate_status", "affiliate_id", "status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    affiliate_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("affiliates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)
    payment_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=WithdrawalStatus.PENDING.value,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    processing_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    resolution_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    affiliate: Mapped["Affiliate"] = relationship(
        "Affiliate",
        back_populates="withdrawals",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Withdrawal(id={self.id}, affiliate_id={self.affiliate_id}, "
            f"amount={self.amount}, status={self.status})>"
        )

    @property
    def is_reserved(self) -> bool:
        """Amount is held against the available balance."""
        return self.status in (
            WithdrawalStatus.PENDING.value,
            WithdrawalStatus.PROCESSING.value,
        )

    @property
    def is_terminal(self) -> bool:
        """Completed or rejected."""
        return self.status in (
            WithdrawalStatus.COMPLETED.value,
            WithdrawalStatus.REJECTED.value,
        )
