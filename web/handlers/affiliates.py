"""Affiliate self-service endpoints."""

from aiohttp import web

from app.services.affiliate import AffiliateRegistry
from app.services.affiliate_query_service import (
    AffiliateQueryService,
    serialize_withdrawal,
)
from app.services.ledger import LedgerService
from app.services.withdrawal_service import WithdrawalService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import ConflictError
from web.handlers.common import (
    alert_service,
    pagination,
    parse_body,
    path_id,
    serialize_affiliate,
)
from web.schemas import EnrollRequest, TermsAcceptance, WithdrawalCreate


async def enroll(request: web.Request) -> web.Response:
    """POST /affiliates/enroll"""
    body = await parse_body(request, EnrollRequest)
    affiliate = await AffiliateRegistry(request["session"]).enroll(
        body.user_id, body.terms_version
    )
    return web.json_response(serialize_affiliate(affiliate), status=201)


async def accept_terms(request: web.Request) -> web.Response:
    """POST /affiliates/{affiliate_id}/terms"""
    body = await parse_body(request, TermsAcceptance)
    affiliate = await AffiliateRegistry(request["session"]).accept_terms(
        path_id(request, "affiliate_id"), body.terms_version
    )
    return web.json_response(serialize_affiliate(affiliate))


async def get_affiliate(request: web.Request) -> web.Response:
    """
    GET /affiliates/{affiliate_id}

    Matures due commissions first so the dashboard never lags the sweep.
    """
    affiliate_id = path_id(request, "affiliate_id")
    session = request["session"]

    try:
        await LedgerService(session, alert_service(request)).run_lazy_maturation(
            affiliate_id, utc_now()
        )
    except ConflictError:
        # Balance is being updated right now, the cached view is still consistent
        pass

    summary = await AffiliateQueryService(session).get_summary(affiliate_id)
    return web.json_response(summary.to_dict())


async def get_commissions(request: web.Request) -> web.Response:
    """GET /affiliates/{affiliate_id}/commissions?page=&per_page="""
    page, per_page = pagination(request)
    history = await AffiliateQueryService(request["session"]).get_commissions(
        path_id(request, "affiliate_id"), page=page, per_page=per_page
    )
    return web.json_response(history)


async def get_withdrawals(request: web.Request) -> web.Response:
    """GET /affiliates/{affiliate_id}/withdrawals"""
    withdrawals = await AffiliateQueryService(request["session"]).get_withdrawals(
        path_id(request, "affiliate_id")
    )
    return web.json_response({"items": withdrawals})


async def request_withdrawal(request: web.Request) -> web.Response:
    """POST /affiliates/{affiliate_id}/withdrawals"""
    body = await parse_body(request, WithdrawalCreate)
    service = WithdrawalService(
        request["session"], alert_service=alert_service(request)
    )
    withdrawal = await service.request(
        path_id(request, "affiliate_id"),
        body.amount,
        body.payment_method,
        body.payment_details,
    )
    return web.json_response(serialize_withdrawal(withdrawal), status=201)
