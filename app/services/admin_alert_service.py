"""
Admin alert service.

Notifies administrators over Telegram about ledger events that need a
human: clawback debts, invariant violations and reconciliation drift.
Alerts are best-effort: a failed delivery is logged and never replaces
the error that triggered it.
"""

import asyncio
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from loguru import logger

from app.config.operational_constants import TELEGRAM_TIMEOUT
from app.config.settings import settings


if TYPE_CHECKING:
    from aiogram import Bot


class AlertPriority(StrEnum):
    """Alert priority."""

    CRITICAL = "critical"  # Ledger integrity at stake
    HIGH = "high"  # Money at risk, manual follow-up
    MEDIUM = "medium"  # Informational for finance


PRIORITY_EMOJI = {
    AlertPriority.CRITICAL: "🔴",
    AlertPriority.HIGH: "🟠",
    AlertPriority.MEDIUM: "🟡",
}


class AdminAlertService:
    """
    Sends formatted alerts to every configured admin in parallel.

    Without a bot (no TELEGRAM_BOT_TOKEN) alerts are only written to the
    audit log.
    """

    def __init__(
        self,
        bot: "Bot | None",
        admin_ids: list[int] | None = None,
    ) -> None:
        """
        Initialize alert service.

        Args:
            bot: aiogram Bot instance (None = log only)
            admin_ids: Telegram chat ids of administrators
        """
        self.bot = bot
        self.admin_ids = admin_ids if admin_ids is not None else settings.get_admin_ids()

    def _format_message(
        self,
        priority: AlertPriority,
        title: str,
        details: dict[str, Any],
        footer: str | None = None,
    ) -> str:
        """
        Format alert text.

        Args:
            priority: Alert priority
            title: Headline
            details: Key/value details
            footer: Optional trailing note

        Returns:
            Markdown message
        """
        lines = [
            f"{PRIORITY_EMOJI.get(priority, '⚪')} *{title}*",
            f"Priority: {priority.value}",
            "",
        ]

        for key, value in details.items():
            if value is None:
                continue
            if isinstance(value, Decimal):
                value = f"{value:,.2f}"
            elif isinstance(value, datetime):
                value = value.strftime("%Y-%m-%d %H:%M:%S")
            lines.append(f"• {key}: `{value}`")

        lines.append("")
        lines.append(f"🕐 {datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S')} UTC")

        if footer:
            lines.append("")
            lines.append(f"_{footer}_")

        return "\n".join(lines)

    async def _send_to_admins(self, message: str, priority: AlertPriority) -> int:
        """
        Send message to all admins.

        Args:
            message: Message text
            priority: Priority (for logging)

        Returns:
            Number of admins notified
        """
        if self.bot is None or not self.admin_ids:
            logger.warning(
                "Admin alert not delivered: Telegram bot or admin ids not configured"
            )
            return 0

        async def send_to_admin(admin_id: int) -> bool:
            try:
                await asyncio.wait_for(
                    self.bot.send_message(
                        chat_id=admin_id,
                        text=message,
                        parse_mode="Markdown",
                    ),
                    timeout=TELEGRAM_TIMEOUT,
                )
                return True
            except TimeoutError:
                logger.warning(f"Timeout sending alert to admin {admin_id}")
                return False
            except Exception as e:
                logger.error(f"Failed to send alert to admin {admin_id}: {e}")
                return False

        results = await asyncio.gather(
            *(send_to_admin(admin_id) for admin_id in self.admin_ids),
            return_exceptions=True,
        )
        success_count = sum(1 for r in results if r is True)

        if success_count < len(self.admin_ids):
            logger.warning(
                f"Notified {success_count}/{len(self.admin_ids)} admins "
                f"(priority: {priority.value})"
            )

        return success_count

    async def notify(
        self,
        priority: AlertPriority,
        title: str,
        details: dict[str, Any],
        footer: str | None = None,
    ) -> int:
        """
        Send an alert.

        Args:
            priority: Alert priority
            title: Headline
            details: Key/value details
            footer: Optional trailing note

        Returns:
            Number of admins notified
        """
        logger.bind(audit=True).warning(
            f"ADMIN ALERT [{priority.value}] {title}",
            details={k: str(v) for k, v in details.items()},
        )
        message = self._format_message(priority, title, details, footer)
        return await self._send_to_admins(message, priority)

    async def notify_clawback_debt(
        self,
        affiliate_id: int,
        order_id: str,
        clawed_back: Decimal,
        available_balance: Decimal,
    ) -> int:
        """Paid commission was refunded and left the affiliate in debt."""
        return await self.notify(
            priority=AlertPriority.HIGH,
            title="Clawback left affiliate with negative balance",
            details={
                "Affiliate": affiliate_id,
                "Order": order_id,
                "Clawed back": clawed_back,
                "Available balance": available_balance,
            },
            footer="Debt is offset by future commissions",
        )

    async def notify_invariant_violation(
        self,
        affiliate_id: int,
        event_type: str,
        expected: dict[str, str],
        actual: dict[str, str],
    ) -> int:
        """Applying an event would break the balance invariant."""
        return await self.notify(
            priority=AlertPriority.CRITICAL,
            title="Ledger invariant violation",
            details={
                "Affiliate": affiliate_id,
                "Event": event_type,
                "Cached": ", ".join(f"{k}={v}" for k, v in actual.items()),
                "From history": ", ".join(f"{k}={v}" for k, v in expected.items()),
            },
            footer="Transaction rolled back, manual investigation required",
        )

    async def notify_reconciliation_drift(
        self,
        affiliate_id: int,
        cached: dict[str, str],
        rebuilt: dict[str, str],
    ) -> int:
        """Reconciliation found cached balances differing from history."""
        return await self.notify(
            priority=AlertPriority.CRITICAL,
            title="Balance drift detected",
            details={
                "Affiliate": affiliate_id,
                "Cached": ", ".join(f"{k}={v}" for k, v in cached.items()),
                "From history": ", ".join(f"{k}={v}" for k, v in rebuilt.items()),
            },
            footer="Not corrected automatically",
        )


_bot: "Bot | None" = None


def get_alert_service() -> AdminAlertService:
    """
    Get alert service bound to the process-wide bot.

    The bot is created lazily from TELEGRAM_BOT_TOKEN.

    Returns:
        AdminAlertService
    """
    global _bot
    if _bot is None and settings.telegram_bot_token:
        from aiogram import Bot

        _bot = Bot(token=settings.telegram_bot_token)
    return AdminAlertService(_bot)


async def close_alert_bot() -> None:
    """Close the bot HTTP session on shutdown."""
    global _bot
    if _bot is not None:
        await _bot.session.close()
        _bot = None
