"""
Affiliate model.

Represents an affiliate (referrer) and its cached balances.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import AffiliateStatus, AffiliateTier
from app.models.types import MoneyType, UTCDateTime


if TYPE_CHECKING:
    from app.models.commission import Commission
    from app.models.withdrawal import Withdrawal


class Affiliate(Base):
    """
    Affiliate entity.

    Balance columns are caches owned by the ledger: they are written only
    through ledger events and can always be rebuilt from the commission and
    withdrawal history.

    Attributes:
        id: Primary key
        user_id: Storefront account owning this affiliate profile
        referral_code: Unique, human-shareable code
        tier: prime (25%) or elite (50%)
        status: pending / active / suspended
        terms_accepted_at: When affiliate terms were accepted
        terms_version: Accepted terms version
        suspended_at: When the affiliate was suspended
        suspension_reason: Admin's reason for suspension
        subscription_overdue_since: Set while the affiliate's own
            subscription payment is overdue
        total_earnings: Confirmed + paid commissions
        withdrawn_balance: Completed withdrawals
        available_balance: Earnings minus withdrawals and reservations
        created_at: Registration time
        updated_at: Last mutation time
    """

    __tablename__ = "affiliates"
    __table_args__ = (
        Index("idx_affiliates_status", "status"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Owner account
    user_id: Mapped[int] = mapped_column(
        BigInteger, unique=True, nullable=False, index=True
    )

    # Referral code
    referral_code: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True
    )

    # Tier and status
    tier: Mapped[str] = mapped_column(
        String(16), nullable=False, default=AffiliateTier.PRIME.value
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=AffiliateStatus.PENDING.value
    )

    # Terms acceptance
    terms_accepted_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    terms_version: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )

    # Suspension
    suspended_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    suspension_reason: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )

    # Own subscription standing (commissions are held while overdue)
    subscription_overdue_since: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )

    # Cached balances (ledger-owned)
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    withdrawn_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    available_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    commissions: Mapped[list["Commission"]] = relationship(
        "Commission",
        back_populates="affiliate",
        lazy="raise",
    )
    withdrawals: Mapped[list["Withdrawal"]] = relationship(
        "Withdrawal",
        back_populates="affiliate",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Affiliate(id={self.id}, code={self.referral_code}, "
            f"tier={self.tier}, status={self.status})>"
        )

    @property
    def is_active(self) -> bool:
        """Whether the affiliate may earn commissions and withdraw."""
        return self.status == AffiliateStatus.ACTIVE.value

    @property
    def subscription_overdue(self) -> bool:
        """Whether the affiliate owes its own subscription payment."""
        return self.subscription_overdue_since is not None

    @property
    def has_debt(self) -> bool:
        """Clawbacks exceeded the remaining balance."""
        return self.available_balance < 0
