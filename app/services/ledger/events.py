"""
Ledger events.

Every balance-affecting transition is expressed as one of these events
and applied through LedgerService.apply.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from app.models.enums import LedgerEventType


@dataclass(frozen=True)
class LedgerEventBase:
    """Common event fields."""

    event_type: ClassVar[LedgerEventType]

    affiliate_id: int
    amount: Decimal


@dataclass(frozen=True)
class CommissionEvent(LedgerEventBase):
    """Event attached to a commission row."""

    commission_id: int


@dataclass(frozen=True)
class WithdrawalEvent(LedgerEventBase):
    """Event attached to a withdrawal row."""

    withdrawal_id: int


@dataclass(frozen=True)
class CommissionCreated(CommissionEvent):
    """New pending commission. Not withdrawable until it matures."""

    event_type: ClassVar[LedgerEventType] = LedgerEventType.COMMISSION_CREATED


@dataclass(frozen=True)
class CommissionConfirmed(CommissionEvent):
    """Commission matured: counts toward earnings and availability."""

    event_type: ClassVar[LedgerEventType] = LedgerEventType.COMMISSION_CONFIRMED


@dataclass(frozen=True)
class CommissionCancelled(CommissionEvent):
    """
    Refund or chargeback.

    ``was_earned`` tells whether the commission had already matured
    (confirmed or paid) and therefore must be clawed back.
    """

    event_type: ClassVar[LedgerEventType] = LedgerEventType.COMMISSION_CANCELLED

    was_earned: bool = False


@dataclass(frozen=True)
class CommissionReleased(CommissionEvent):
    """Payout hold lifted. Status-only entry, maturation may follow."""

    event_type: ClassVar[LedgerEventType] = LedgerEventType.COMMISSION_RELEASED


@dataclass(frozen=True)
class WithdrawalDebited(WithdrawalEvent):
    """Withdrawal requested: amount reserved out of availability."""

    event_type: ClassVar[LedgerEventType] = LedgerEventType.WITHDRAWAL_DEBITED


@dataclass(frozen=True)
class WithdrawalProcessing(WithdrawalEvent):
    """Admin started processing. Status-only entry."""

    event_type: ClassVar[LedgerEventType] = LedgerEventType.WITHDRAWAL_PROCESSING


@dataclass(frozen=True)
class WithdrawalCompleted(WithdrawalEvent):
    """Payout sent: reservation becomes withdrawn."""

    event_type: ClassVar[LedgerEventType] = LedgerEventType.WITHDRAWAL_COMPLETED


@dataclass(frozen=True)
class WithdrawalReversed(WithdrawalEvent):
    """Withdrawal rejected: reservation returned to availability."""

    event_type: ClassVar[LedgerEventType] = LedgerEventType.WITHDRAWAL_REVERSED


LedgerEventT = (
    CommissionCreated
    | CommissionConfirmed
    | CommissionCancelled
    | CommissionReleased
    | WithdrawalDebited
    | WithdrawalProcessing
    | WithdrawalCompleted
    | WithdrawalReversed
)
