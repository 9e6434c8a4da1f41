"""
Services.

Business logic layer.
"""

from app.services.admin_alert_service import AdminAlertService, get_alert_service
from app.services.affiliate import AffiliateRegistry
from app.services.affiliate_query_service import (
    AffiliateQueryService,
    AffiliateSummary,
)
from app.services.attribution import AttributionTracker
from app.services.base_service import BaseService, log_operation, transaction
from app.services.commission import CommissionEngine, PaymentEvent
from app.services.ledger import LedgerService
from app.services.withdrawal_service import WithdrawalService


__all__ = [
    # Base
    "BaseService",
    "log_operation",
    "transaction",
    # Domain services
    "AffiliateRegistry",
    "AttributionTracker",
    "CommissionEngine",
    "PaymentEvent",
    "LedgerService",
    "WithdrawalService",
    # Read model
    "AffiliateQueryService",
    "AffiliateSummary",
    # Alerts
    "AdminAlertService",
    "get_alert_service",
]
