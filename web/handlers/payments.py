"""Payment processor webhook."""

from aiohttp import web

from app.services.commission import CommissionEngine, PaymentEvent
from web.handlers.common import alert_service, parse_body
from web.schemas import PaymentWebhook


async def payment_webhook(request: web.Request) -> web.Response:
    """
    POST /webhooks/payments

    Always answers 200 with an explicit outcome for well-formed events, so
    the processor does not redeliver no-ops.
    """
    body = await parse_body(request, PaymentWebhook)
    engine = CommissionEngine(request["session"], alert_service(request))

    outcome = await engine.handle_payment_event(
        PaymentEvent(
            order_id=body.order_id,
            event_type=body.event_type,
            plan=body.plan,
            sale_amount=body.sale_amount,
            currency=body.currency,
            affiliate_referral_code=body.affiliate_referral_code,
            visitor_token=body.visitor_token,
            customer_user_id=body.customer_user_id,
            occurred_at=body.occurred_at,
        )
    )
    return web.json_response(outcome.to_dict())
