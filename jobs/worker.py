"""
Dramatiq worker entry point.

Run with ``dramatiq jobs.worker``. Importing the broker first makes it
the default before the actors are declared.
"""

from app.config.settings import settings
from app.utils.logging_setup import setup_logging
from jobs.broker import broker
from jobs.tasks import maturation_sweep, reconciliation

setup_logging("worker", settings.log_level)

__all__ = ["broker", "maturation_sweep", "reconciliation"]
