"""Typed application keys."""

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.admin_alert_service import AdminAlertService

SESSION_MAKER = web.AppKey("session_maker", async_sessionmaker[AsyncSession])
ALERT_SERVICE = web.AppKey("alert_service", AdminAlertService)
