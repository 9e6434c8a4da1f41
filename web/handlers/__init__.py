"""
API handlers.

Route table for the public, webhook and admin endpoints.
"""

from aiohttp import web

from web.handlers import admin, affiliates, attribution, payments


def setup_routes(app: web.Application) -> None:
    """Register every API route."""
    app.router.add_post("/webhooks/payments", payments.payment_webhook)
    app.router.add_post("/attribution", attribution.capture_attribution)

    app.router.add_post("/affiliates/enroll", affiliates.enroll)
    app.router.add_post("/affiliates/{affiliate_id:\\d+}/terms", affiliates.accept_terms)
    app.router.add_get("/affiliates/{affiliate_id:\\d+}", affiliates.get_affiliate)
    app.router.add_get(
        "/affiliates/{affiliate_id:\\d+}/commissions", affiliates.get_commissions
    )
    app.router.add_get(
        "/affiliates/{affiliate_id:\\d+}/withdrawals", affiliates.get_withdrawals
    )
    app.router.add_post(
        "/affiliates/{affiliate_id:\\d+}/withdrawals", affiliates.request_withdrawal
    )

    app.router.add_get("/admin/withdrawals", admin.list_pending_withdrawals)
    app.router.add_get(
        "/admin/withdrawals/{withdrawal_id:\\d+}", admin.get_withdrawal
    )
    app.router.add_post(
        "/admin/withdrawals/{withdrawal_id:\\d+}/processing", admin.start_processing
    )
    app.router.add_post(
        "/admin/withdrawals/{withdrawal_id:\\d+}/resolve", admin.resolve_withdrawal
    )
    app.router.add_post("/admin/affiliates/{affiliate_id:\\d+}/tier", admin.set_tier)
    app.router.add_post("/admin/affiliates/{affiliate_id:\\d+}/suspend", admin.suspend)
    app.router.add_post(
        "/admin/affiliates/{affiliate_id:\\d+}/reactivate", admin.reactivate
    )
    app.router.add_post(
        "/admin/affiliates/{affiliate_id:\\d+}/subscription", admin.subscription_standing
    )
    app.router.add_get(
        "/admin/affiliates/{affiliate_id:\\d+}/reconcile", admin.reconcile
    )
    app.router.add_get(
        "/admin/affiliates/{affiliate_id:\\d+}/events", admin.ledger_events
    )
