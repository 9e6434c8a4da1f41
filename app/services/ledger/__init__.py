"""
Ledger services package.

- events: Ledger event types
- balance_calculator: Pure balance derivation
- ledger_service: Balance cache, maturation, reconciliation
"""

from app.services.ledger.balance_calculator import (
    Balances,
    BalanceDelta,
    apply_delta,
    apply_events,
    compute_balances,
    delta_for,
)
from app.services.ledger.events import (
    CommissionCancelled,
    CommissionConfirmed,
    CommissionCreated,
    CommissionReleased,
    WithdrawalCompleted,
    WithdrawalDebited,
    WithdrawalProcessing,
    WithdrawalReversed,
)
from app.services.ledger.ledger_service import (
    LedgerService,
    ReconciliationReport,
    SweepResult,
)


__all__ = [
    # Events
    "CommissionCreated",
    "CommissionConfirmed",
    "CommissionCancelled",
    "CommissionReleased",
    "WithdrawalDebited",
    "WithdrawalProcessing",
    "WithdrawalCompleted",
    "WithdrawalReversed",
    # Balances
    "Balances",
    "BalanceDelta",
    "apply_delta",
    "apply_events",
    "compute_balances",
    "delta_for",
    # Service
    "LedgerService",
    "ReconciliationReport",
    "SweepResult",
]
