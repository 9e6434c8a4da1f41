"""Visit attribution capture."""

from aiohttp import web

from app.services.attribution import AttributionTracker, CaptureMetadata
from app.utils.datetime_utils import ensure_utc, utc_now
from web.handlers.common import parse_body
from web.schemas import AttributionCapture


def _client_ip(request: web.Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote


async def capture_attribution(request: web.Request) -> web.Response:
    """
    POST /attribution

    Records a visit. The first unexpired binding of a visitor is never
    replaced by a later code.
    """
    body = await parse_body(request, AttributionCapture)
    tracker = AttributionTracker(request["session"])

    result = await tracker.capture(
        visitor_token=body.visitor_token,
        incoming_code=body.referral_code,
        now=ensure_utc(body.timestamp) if body.timestamp else utc_now(),
        metadata=CaptureMetadata(
            source=body.source,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
            referrer_url=request.headers.get("Referer"),
        ),
        user_id=body.user_id,
    )

    return web.json_response(
        {
            "action": result.action.value,
            "affiliate_id": result.affiliate_id,
            "referral_code": result.referral_code,
            "expires_at": result.expires_at.isoformat() if result.expires_at else None,
        }
    )
