"""
Balance calculator.

Pure functions deriving affiliate balances, either incrementally from a
ledger event or from scratch out of commission and withdrawal history.
No I/O: the ledger service feeds it rows and events.

Definitions:
    total_earnings    = sum of confirmed + paid commissions
    withdrawn_balance = sum of completed withdrawals
    reserved          = sum of pending + processing withdrawals
    available_balance = total_earnings - withdrawn_balance - reserved
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from app.config.business_constants import MONEY_QUANTUM
from app.models.enums import CommissionStatus, WithdrawalStatus
from app.services.ledger.events import (
    CommissionCancelled,
    CommissionConfirmed,
    CommissionCreated,
    CommissionReleased,
    LedgerEventBase,
    WithdrawalCompleted,
    WithdrawalDebited,
    WithdrawalProcessing,
    WithdrawalReversed,
)


ZERO = Decimal("0")


@dataclass(frozen=True)
class Balances:
    """Snapshot of an affiliate's three balance fields."""

    total_earnings: Decimal = ZERO
    withdrawn_balance: Decimal = ZERO
    available_balance: Decimal = ZERO

    @property
    def reserved(self) -> Decimal:
        """Amount held by pending and processing withdrawals."""
        return self.total_earnings - self.withdrawn_balance - self.available_balance

    @property
    def has_debt(self) -> bool:
        """Clawbacks exceeded what was left to withdraw."""
        return self.available_balance < ZERO

    def quantized(self) -> "Balances":
        """Round every field to cents (for comparisons)."""
        return Balances(
            total_earnings=quantize_money(self.total_earnings),
            withdrawn_balance=quantize_money(self.withdrawn_balance),
            available_balance=quantize_money(self.available_balance),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "total_earnings": str(self.total_earnings),
            "withdrawn_balance": str(self.withdrawn_balance),
            "available_balance": str(self.available_balance),
            "reserved": str(self.reserved),
        }


@dataclass(frozen=True)
class BalanceDelta:
    """Change applied to each balance field by one event."""

    earnings: Decimal = ZERO
    withdrawn: Decimal = ZERO
    available: Decimal = ZERO

    @property
    def is_zero(self) -> bool:
        return self.earnings == ZERO and self.withdrawn == ZERO and self.available == ZERO


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents."""
    return Decimal(value).quantize(MONEY_QUANTUM)


def delta_for(event: LedgerEventBase) -> BalanceDelta:
    """
    Compute the balance delta of a ledger event.

    Args:
        event: Ledger event

    Returns:
        Balance delta

    Raises:
        TypeError: Unknown event type
    """
    amount = event.amount

    if isinstance(event, (CommissionCreated, CommissionReleased)):
        # Pending commissions are visible but not counted
        return BalanceDelta()
    if isinstance(event, CommissionConfirmed):
        return BalanceDelta(earnings=amount, available=amount)
    if isinstance(event, CommissionCancelled):
        if event.was_earned:
            # Clawback, may push available below zero
            return BalanceDelta(earnings=-amount, available=-amount)
        return BalanceDelta()
    if isinstance(event, WithdrawalDebited):
        return BalanceDelta(available=-amount)
    if isinstance(event, WithdrawalProcessing):
        return BalanceDelta()
    if isinstance(event, WithdrawalCompleted):
        # Reservation turns into a withdrawal, available is unchanged
        return BalanceDelta(withdrawn=amount)
    if isinstance(event, WithdrawalReversed):
        return BalanceDelta(available=amount)

    raise TypeError(f"Unknown ledger event: {type(event).__name__}")


def apply_delta(balances: Balances, delta: BalanceDelta) -> Balances:
    """
    Fold a delta into a balance snapshot.

    Args:
        balances: Current balances
        delta: Delta to apply

    Returns:
        New balances
    """
    return Balances(
        total_earnings=balances.total_earnings + delta.earnings,
        withdrawn_balance=balances.withdrawn_balance + delta.withdrawn,
        available_balance=balances.available_balance + delta.available,
    )


def apply_events(
    balances: Balances, events: Iterable[LedgerEventBase]
) -> Balances:
    """
    Fold a sequence of events into a balance snapshot.

    Args:
        balances: Starting balances
        events: Events in application order

    Returns:
        Resulting balances
    """
    for event in events:
        balances = apply_delta(balances, delta_for(event))
    return balances


def balances_from_totals(
    earned: Decimal, completed: Decimal, reserved: Decimal
) -> Balances:
    """
    Build balances from history aggregates.

    Args:
        earned: Sum of confirmed + paid commissions
        completed: Sum of completed withdrawals
        reserved: Sum of pending + processing withdrawals

    Returns:
        Balances
    """
    return Balances(
        total_earnings=earned,
        withdrawn_balance=completed,
        available_balance=earned - completed - reserved,
    )


def compute_balances(
    commissions: Iterable[Any], withdrawals: Iterable[Any]
) -> Balances:
    """
    Rebuild balances from commission and withdrawal rows.

    Rows only need ``status`` and ``commission_amount`` / ``amount``.

    Args:
        commissions: Commission rows of one affiliate
        withdrawals: Withdrawal rows of one affiliate

    Returns:
        Balances
    """
    earned = sum(
        (
            c.commission_amount
            for c in commissions
            if c.status in (CommissionStatus.CONFIRMED.value, CommissionStatus.PAID.value)
        ),
        ZERO,
    )
    completed = ZERO
    reserved = ZERO
    for w in withdrawals:
        if w.status == WithdrawalStatus.COMPLETED.value:
            completed += w.amount
        elif w.status in (WithdrawalStatus.PENDING.value, WithdrawalStatus.PROCESSING.value):
            reserved += w.amount

    return balances_from_totals(earned, completed, reserved)


def select_commissions_to_mark_paid(
    confirmed: Iterable[Any], withdrawn: Decimal, already_paid: Decimal
) -> list[Any]:
    """
    Pick confirmed commissions fully covered by completed withdrawals.

    Walks commissions oldest first and stops at the first one that the
    uncovered withdrawn amount cannot fully pay.

    Args:
        confirmed: Confirmed commissions, oldest first
        withdrawn: Sum of completed withdrawals
        already_paid: Sum of commissions already marked paid

    Returns:
        Commissions to mark paid
    """
    remaining = withdrawn - already_paid
    selected = []
    for commission in confirmed:
        if commission.commission_amount > remaining:
            break
        remaining -= commission.commission_amount
        selected.append(commission)
    return selected
