"""
Attribution model.

Binds a prospective customer (visitor token) to the first valid referral
code seen inside the attribution window.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import UTCDateTime


class Attribution(Base):
    """
    Attribution entity.

    Rows are never overwritten. An expired binding stays as history and a
    later qualifying visit inserts a new row; the active binding for a
    visitor is the row whose ``expires_at`` is still in the future.

    Attributes:
        id: Primary key
        visitor_token: Cookie/session identifier or user id
        referral_code: Code captured on the first qualifying visit
        affiliate_id: Affiliate owning the code at capture time
        captured_at: First qualifying visit
        expires_at: captured_at + attribution window
        user_id: Storefront account, once the visitor signs up
        source: Where the visit came from (short link, campaign, ...)
        ip_address: Visitor IP at capture
        user_agent: Visitor user agent at capture
        referrer_url: HTTP referrer at capture
    """

    __tablename__ = "attributions"
    __table_args__ = (
        Index("idx_attributions_visitor_expires", "visitor_token", "expires_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    visitor_token: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True
    )
    referral_code: Mapped[str] = mapped_column(
        String(32), nullable=False
    )
    affiliate_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("affiliates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    captured_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False
    )

    # Conversion and capture metadata
    user_id: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, index=True
    )
    source: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Attribution(id={self.id}, visitor={self.visitor_token}, "
            f"code={self.referral_code}, expires_at={self.expires_at})>"
        )

    def is_active_at(self, now: datetime) -> bool:
        """Whether the binding is still inside its window at ``now``."""
        return self.captured_at <= now < self.expires_at
