"""
API application factory.

Builds the aiohttp application serving the payment webhook, attribution
capture, the affiliate dashboard and the admin endpoints.
"""

from aiohttp import web
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.admin_alert_service import (
    AdminAlertService,
    close_alert_bot,
    get_alert_service,
)
from web.handlers import setup_routes
from web.keys import ALERT_SERVICE, SESSION_MAKER
from web.middlewares import (
    admin_auth_middleware,
    database_middleware,
    error_middleware,
)


async def health(request: web.Request) -> web.Response:
    """GET /health"""
    return web.json_response({"status": "ok"})


async def _on_cleanup(app: web.Application) -> None:
    await close_alert_bot()
    logger.info("API shutdown complete")


def create_app(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    alert_service: AdminAlertService | None = None,
) -> web.Application:
    """
    Create the API application.

    Args:
        session_maker: Session factory (defaults to the shared engine)
        alert_service: Admin alerts (defaults to the Telegram bot)

    Returns:
        Configured application
    """
    if session_maker is None:
        from app.config.database import async_session_maker

        session_maker = async_session_maker

    app = web.Application(
        middlewares=[error_middleware, admin_auth_middleware, database_middleware]
    )
    app[SESSION_MAKER] = session_maker
    app[ALERT_SERVICE] = alert_service or get_alert_service()

    app.router.add_get("/health", health)
    setup_routes(app)
    app.on_cleanup.append(_on_cleanup)
    return app
