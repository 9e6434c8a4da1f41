"""
Logging configuration.

Configures loguru sinks for the web and jobs processes.
"""

import sys

from loguru import logger


def setup_logging(process_name: str, level: str = "INFO") -> None:
    """
    Configure logger with stderr output and file rotation.

    Args:
        process_name: Log file name (web, scheduler, worker)
        level: Minimum log level
    """
    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.add(
        f"logs/{process_name}.log",
        rotation="1 day",
        retention="7 days",
        level=level,
        encoding="utf-8",
    )
    # Ledger audit trail: invariant violations, clawback debts, drift
    logger.add(
        "logs/ledger_audit.log",
        rotation="1 week",
        retention="90 days",
        level="WARNING",
        encoding="utf-8",
        filter=lambda record: record["extra"].get("audit") is True,
    )

    logger.info(f"Starting affiliate ledger {process_name}...")
