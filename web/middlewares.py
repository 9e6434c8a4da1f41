"""
API middlewares.

Session per request, admin token check and the mapping of ledger errors
to JSON responses.
"""

import hmac
from collections.abc import Awaitable, Callable

from aiohttp import web
from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import DBAPIError

from app.config.settings import settings
from app.utils.exceptions import (
    ConflictError,
    InvariantViolation,
    LedgerError,
    NotFoundError,
    SecurityError,
    ValidationError,
    is_lock_not_available,
)
from web.keys import SESSION_MAKER

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

ADMIN_PREFIX = "/admin/"
ADMIN_TOKEN_HEADER = "X-Admin-Token"


def error_response(status: int, error_code: str, message: str, **extra) -> web.Response:
    """JSON error body shared by every failure."""
    body = {"error": error_code, "message": message}
    if extra:
        body.update(extra)
    return web.json_response(body, status=status)


def _status_for(error: LedgerError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, ValidationError):
        return 422
    return 500


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """
    Turn exceptions into JSON responses.

    Validation and not-found errors carry their specific error_code;
    conflicts ask the client to retry; invariant violations have already
    been logged and alerted by the ledger.
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except PydanticValidationError as e:
        return error_response(
            422,
            "VALIDATION_ERROR",
            "Invalid request body",
            details=e.errors(
                include_url=False, include_context=False, include_input=False
            ),
        )
    except InvariantViolation as e:
        logger.error(
            f"Invariant violation on {request.method} {request.path}: {e.message}"
        )
        return error_response(500, e.error_code, "Ledger invariant violated")
    except LedgerError as e:
        return error_response(_status_for(e), e.error_code, e.message)
    except SecurityError as e:
        logger.error(f"Security error on {request.method} {request.path}: {e}")
        return error_response(500, "SECURITY_ERROR", "Payout details unavailable")
    except DBAPIError as e:
        if is_lock_not_available(e):
            # Row lock taken outside a retrying unit of work
            return error_response(
                409, ConflictError.error_code, "Affiliate is busy, retry later"
            )
        logger.bind(error_type=type(e).__name__).error(
            f"Database error on {request.method} {request.path}: {e}"
        )
        return error_response(503, "DATABASE_UNAVAILABLE", "Database unavailable")
    except Exception:
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return error_response(500, "INTERNAL_ERROR", "Internal server error")


@web.middleware
async def database_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """
    Open one session per request.

    Services commit their own units of work; whatever is left
    uncommitted when the handler returns is rolled back on close.
    """
    async with request.app[SESSION_MAKER]() as session:
        request["session"] = session
        return await handler(request)


@web.middleware
async def admin_auth_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Require the shared admin token on /admin/ routes."""
    if not request.path.startswith(ADMIN_PREFIX):
        return await handler(request)

    token = request.headers.get(ADMIN_TOKEN_HEADER, "")
    expected = settings.admin_api_token
    if not expected or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning(
            f"Rejected admin request {request.method} {request.path} "
            f"from {request.remote}"
        )
        return error_response(401, "UNAUTHORIZED", "Invalid admin token")

    return await handler(request)
