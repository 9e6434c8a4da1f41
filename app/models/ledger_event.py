"""
LedgerEvent model.

Append-only transition log. Every balance change (and every withdrawal
status change) writes exactly one row; balances are rebuildable from it.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType, UTCDateTime


class LedgerEvent(Base):
    """
    LedgerEvent entity.

    Attributes:
        id: Primary key (monotonic, defines replay order)
        affiliate_id: Affiliate whose balances changed
        event_type: LedgerEventType value
        commission_id: Source commission (commission events)
        withdrawal_id: Source withdrawal (withdrawal events)
        amount: Event amount (always positive)
        earnings_delta: Change of total_earnings
        withdrawn_delta: Change of withdrawn_balance
        available_delta: Change of available_balance
        total_earnings_after: Balance after applying the event
        withdrawn_balance_after: Balance after applying the event
        available_balance_after: Balance after applying the event
        created_at: When the event was applied
    """

    __tablename__ = "ledger_events"
    __table_args__ = (
        Index("idx_ledger_events_affiliate_id", "affiliate_id", "id"),
        Index("idx_ledger_events_commission", "commission_id"),
        Index("idx_ledger_events_withdrawal", "withdrawal_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    affiliate_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("affiliates.id", ondelete="RESTRICT"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)

    commission_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("commissions.id", ondelete="RESTRICT"),
        nullable=True,
    )
    withdrawal_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("withdrawals.id", ondelete="RESTRICT"),
        nullable=True,
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Deltas
    earnings_delta: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    withdrawn_delta: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    available_delta: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )

    # Snapshot after the event
    total_earnings_after: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    withdrawn_balance_after: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    available_balance_after: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerEvent(id={self.id}, affiliate_id={self.affiliate_id}, "
            f"type={self.event_type}, available_delta={self.available_delta})>"
        )
