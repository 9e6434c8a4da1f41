"""Administrative endpoints (X-Admin-Token)."""

from aiohttp import web

from app.config.operational_constants import MAX_PAGE_SIZE
from app.services.affiliate import AffiliateRegistry
from app.services.affiliate_query_service import serialize_withdrawal
from app.services.ledger import LedgerService
from app.services.withdrawal_service import WithdrawalService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import ValidationError
from web.handlers.common import (
    alert_service,
    parse_body,
    path_id,
    serialize_affiliate,
)
from web.schemas import (
    SubscriptionStandingChange,
    SuspensionRequest,
    TierChange,
    WithdrawalResolution,
)


def _withdrawal_service(request: web.Request) -> WithdrawalService:
    return WithdrawalService(request["session"], alert_service=alert_service(request))


async def list_pending_withdrawals(request: web.Request) -> web.Response:
    """GET /admin/withdrawals - approval queue, oldest first."""
    withdrawals = await _withdrawal_service(request).get_pending_withdrawals()
    return web.json_response({"items": [serialize_withdrawal(w) for w in withdrawals]})


async def get_withdrawal(request: web.Request) -> web.Response:
    """GET /admin/withdrawals/{withdrawal_id} - includes decrypted payout details."""
    service = _withdrawal_service(request)
    withdrawal = await service.get_withdrawal(path_id(request, "withdrawal_id"))
    data = serialize_withdrawal(withdrawal)
    data["payment_details"] = service.get_payment_details(withdrawal)
    return web.json_response(data)


async def start_processing(request: web.Request) -> web.Response:
    """POST /admin/withdrawals/{withdrawal_id}/processing"""
    withdrawal = await _withdrawal_service(request).start_processing(
        path_id(request, "withdrawal_id")
    )
    return web.json_response(serialize_withdrawal(withdrawal))


async def resolve_withdrawal(request: web.Request) -> web.Response:
    """POST /admin/withdrawals/{withdrawal_id}/resolve"""
    body = await parse_body(request, WithdrawalResolution)
    withdrawal = await _withdrawal_service(request).resolve(
        path_id(request, "withdrawal_id"), body.outcome, body.note
    )
    return web.json_response(serialize_withdrawal(withdrawal))


async def set_tier(request: web.Request) -> web.Response:
    """POST /admin/affiliates/{affiliate_id}/tier"""
    body = await parse_body(request, TierChange)
    affiliate = await AffiliateRegistry(request["session"]).set_tier(
        path_id(request, "affiliate_id"), body.tier
    )
    return web.json_response(serialize_affiliate(affiliate))


async def suspend(request: web.Request) -> web.Response:
    """POST /admin/affiliates/{affiliate_id}/suspend"""
    body = await parse_body(request, SuspensionRequest)
    affiliate = await AffiliateRegistry(request["session"]).suspend(
        path_id(request, "affiliate_id"), body.reason
    )
    return web.json_response(serialize_affiliate(affiliate))


async def reactivate(request: web.Request) -> web.Response:
    """POST /admin/affiliates/{affiliate_id}/reactivate"""
    affiliate = await AffiliateRegistry(request["session"]).reactivate(
        path_id(request, "affiliate_id")
    )
    return web.json_response(serialize_affiliate(affiliate))


async def subscription_standing(request: web.Request) -> web.Response:
    """
    POST /admin/affiliates/{affiliate_id}/subscription

    Records the affiliate's own billing standing. Clearing an overdue
    standing releases held commissions unless ``release_holds`` is false.
    """
    body = await parse_body(request, SubscriptionStandingChange)
    affiliate_id = path_id(request, "affiliate_id")
    now = utc_now()
    affiliate = await AffiliateRegistry(request["session"]).set_subscription_standing(
        affiliate_id, body.overdue, now
    )

    released = []
    if not body.overdue and body.release_holds:
        ledger = LedgerService(request["session"], alert_service(request))
        released = await ledger.release_holds(affiliate_id, now)

    data = serialize_affiliate(affiliate)
    data["released_commissions"] = [c.id for c in released]
    return web.json_response(data)


async def reconcile(request: web.Request) -> web.Response:
    """
    GET /admin/affiliates/{affiliate_id}/reconcile

    Reports drift between cached and rebuilt balances without correcting it.
    """
    ledger = LedgerService(request["session"], alert_service(request))
    report = await ledger.reconcile(path_id(request, "affiliate_id"))
    return web.json_response(report.to_dict())


async def ledger_events(request: web.Request) -> web.Response:
    """GET /admin/affiliates/{affiliate_id}/events?limit= - balance audit trail."""
    try:
        limit = int(request.query["limit"]) if "limit" in request.query else None
    except ValueError:
        raise ValidationError("limit must be an integer")
    if limit is not None and not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    ledger = LedgerService(request["session"], alert_service(request))
    events = await ledger.event_history(path_id(request, "affiliate_id"), limit)
    return web.json_response(
        {
            "items": [
                {
                    "id": e.id,
                    "event_type": e.event_type,
                    "commission_id": e.commission_id,
                    "withdrawal_id": e.withdrawal_id,
                    "amount": str(e.amount),
                    "earnings_delta": str(e.earnings_delta),
                    "withdrawn_delta": str(e.withdrawn_delta),
                    "available_delta": str(e.available_delta),
                    "available_balance_after": str(e.available_balance_after),
                    "created_at": e.created_at.isoformat(),
                }
                for e in events
            ]
        }
    )
