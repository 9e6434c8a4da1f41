"""
Operational constants for the affiliate ledger.

Technical/operational constants used across the application.
Includes timeouts, retry configurations and job intervals.
"""

# =============================================================================
# LOCK TIMEOUTS (seconds)
# =============================================================================
# Used by distributed_lock.py for Redis locks

# Maturation sweep over all due commissions
LOCK_TIMEOUT_SWEEP = 300

# Full-ledger reconciliation
LOCK_TIMEOUT_RECONCILIATION = 600


# =============================================================================
# BLOCKING TIMEOUTS (seconds)
# =============================================================================
# How long to wait for lock acquisition

BLOCKING_TIMEOUT_DEFAULT = 5.0


# =============================================================================
# AFFILIATE ROW LOCK RETRIES
# =============================================================================
# SELECT ... FOR UPDATE NOWAIT conflicts on the affiliate row

AFFILIATE_LOCK_MAX_RETRIES = 3
AFFILIATE_LOCK_RETRY_DELAY_BASE = 0.2  # seconds, doubled per attempt
AFFILIATE_LOCK_RETRY_JITTER = 0.1  # seconds


# =============================================================================
# DRAMATIQ TASK TIME LIMITS (milliseconds)
# =============================================================================

# Standard tasks (5 minutes) - maturation sweep
DRAMATIQ_TIME_LIMIT_STANDARD = 300_000

# Long tasks (15 minutes) - reconciliation of every affiliate
DRAMATIQ_TIME_LIMIT_LONG = 900_000


# =============================================================================
# SCHEDULER INTERVALS (minutes)
# =============================================================================

MATURATION_SWEEP_INTERVAL_MINUTES = 5
RECONCILIATION_INTERVAL_MINUTES = 60

# Commissions confirmed per sweep batch (one commit per affiliate)
MATURATION_SWEEP_BATCH_SIZE = 500


# =============================================================================
# TELEGRAM ALERTS
# =============================================================================

TELEGRAM_TIMEOUT = 10.0  # seconds per admin message


# =============================================================================
# PAGINATION
# =============================================================================

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
