"""
Commission model.

One entry per billing event (not per customer).
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import CommissionStatus
from app.models.types import MoneyType, RateType, UTCDateTime


if TYPE_CHECKING:
    from app.models.affiliate import Affiliate


class Commission(Base):
    """
    Commission entity.

    ``commission_rate`` is frozen when the row is created from the
    affiliate's tier at that moment and the purchased plan. Later tier
    changes never touch existing rows.

    Attributes:
        id: Primary key
        affiliate_id: Referring affiliate
        order_id: Payment processor order/invoice id (idempotency key)
        plan: Purchased subscription plan
        currency: ISO currency of sale_amount
        sale_amount: Billed amount
        commission_rate: Rate fixed at creation
        commission_amount: sale_amount * commission_rate
        status: pending / confirmed / paid / cancelled
        created_at: Creation time
        matures_at: created_at + maturation window
        confirmed_at: When the commission matured
        paid_at: When a completed withdrawal covered it
        cancelled_at: When the sale was refunded or charged back
        cancel_reason: refunded / chargeback
        payment_held: Held out of maturation (affiliate subscription overdue)
        held_reason: Why the commission is held
        held_at: When the hold was placed
        released_at: When the hold was lifted
    """

    __tablename__ = "commissions"
    __table_args__ = (
        CheckConstraint(
            'sale_amount > 0', name='check_commission_sale_positive'
        ),
        CheckConstraint(
            'commission_amount >= 0',
            name='check_commission_amount_non_negative'
        ),
        Index("idx_commissions_status_matures", "status", "matures_at"),
        Index("idx_commissions_affiliate_status", "affiliate_id", "status"),
        Index("idx_commissions_affiliate_held", "affiliate_id", "payment_held"),
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

    # Idempotency key
    order_id: Mapped[str] = mapped_column(
        String(128), unique=True, nullable=False
    )

    plan: Mapped[str] = mapped_column(String(32), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Amounts
    sale_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=CommissionStatus.PENDING.value,
    )

    # Lifecycle timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    matures_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    cancel_reason: Mapped[str | None] = mapped_column(
        String(16), nullable=True
    )

    # Payout hold
    payment_held: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    held_reason: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    held_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    released_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )

    # Relationships
    affiliate: Mapped["Affiliate"] = relationship(
        "Affiliate",
        back_populates="commissions",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Commission(id={self.id}, order_id={self.order_id}, "
            f"amount={self.commission_amount}, status={self.status})>"
        )

    @property
    def is_earned(self) -> bool:
        """Counted in total earnings (matured and not reversed)."""
        return self.status in (
            CommissionStatus.CONFIRMED.value,
            CommissionStatus.PAID.value,
        )

    def is_due(self, now: datetime) -> bool:
        """Pending, not held and past its maturation date."""
        return (
            self.status == CommissionStatus.PENDING.value
            and self.cancelled_at is None
            and not self.payment_held
            and now >= self.matures_at
        )
