"""Telegram ops alerts.

Sends refund and manual-review alerts to the configured admin chats so an
operator can act on orders the pipeline could not complete.
"""

import asyncio
import logging
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError

from remitdex.config import get_settings
from remitdex.notifications.base import EventType, NotificationEvent, NotificationPort

logger = logging.getLogger(__name__)

# Events worth waking an operator for
ALERT_EVENTS = {
    EventType.REFUND_REQUIRED,
    EventType.MANUAL_REVIEW_REQUIRED,
}


class TelegramNotifier(NotificationPort):
    """Forwards ops-relevant events to admin chats via a Telegram bot."""

    def __init__(
        self,
        bot: Optional[Bot] = None,
        admin_ids: Optional[list[int]] = None,
    ):
        """Initialize with optional bot instance and recipients.

        If no bot is provided, one is created lazily from the configured
        token. Recipients default to the configured admin chat IDs.
        """
        self._bot = bot
        self._bot_lock = asyncio.Lock()
        self.admin_ids = admin_ids if admin_ids is not None else get_settings().admin_ids

    async def _get_bot(self) -> Optional[Bot]:
        """Get or create the bot instance."""
        if self._bot is not None:
            return self._bot

        async with self._bot_lock:
            if self._bot is not None:
                return self._bot

            settings = get_settings()
            if not settings.telegram_bot_token:
                logger.warning("Telegram bot token not configured - ops alerts disabled")
                return None

            self._bot = Bot(token=settings.telegram_bot_token)
            return self._bot

    async def close(self) -> None:
        """Close the bot session (call on shutdown)."""
        if self._bot is not None:
            await self._bot.session.close()
            self._bot = None

    async def send_message(
        self,
        chat_id: int,
        message: str,
        parse_mode: Optional[str] = "HTML",
    ) -> bool:
        """Send a message to one chat.

        Returns:
            True if message was sent successfully
        """
        try:
            bot = await self._get_bot()
            if not bot:
                logger.warning("Cannot send alert - bot not initialized")
                return False

            await bot.send_message(chat_id=chat_id, text=message, parse_mode=parse_mode)
            return True
        except TelegramForbiddenError:
            logger.warning(f"Chat {chat_id} has blocked the bot")
            return False
        except TelegramBadRequest as e:
            logger.error(f"Bad request sending to {chat_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to send alert to {chat_id}: {e}")
            return False

    @staticmethod
    def format_event(event: NotificationEvent) -> str:
        """Render an alert as Telegram HTML."""
        if event.type == EventType.REFUND_REQUIRED:
            title = "Refund Required"
        else:
            title = "Manual Review Required"

        lines = [
            f"<b>{title}</b>\n",
            f"Order: <code>{event.order_id}</code>",
        ]
        reason = event.payload.get("reason")
        if reason:
            lines.append(f"Reason: {reason}")
        kind = event.payload.get("kind")
        if kind:
            lines.append(f"Error: <code>{kind}</code>")
        lines.append(f"Time: {event.timestamp:%Y-%m-%d %H:%M:%S} UTC")
        return "\n".join(lines)

    async def notify(self, event: NotificationEvent) -> None:
        if event.type not in ALERT_EVENTS or not self.admin_ids:
            return

        message = self.format_event(event)
        for chat_id in self.admin_ids:
            await self.send_message(chat_id, message)
