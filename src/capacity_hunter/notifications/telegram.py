"""
Telegram chat notifications.

Lets a headless box running the monitor reach the operator's phone.
"""

from typing import Optional

import httpx
import structlog

from capacity_hunter.exceptions import NotificationFailure
from capacity_hunter.models.enums import Urgency
from capacity_hunter.notifications.base import BaseNotifier

logger = structlog.get_logger(__name__)

URGENCY_ICON = {
    Urgency.NORMAL: "ℹ️",
    Urgency.URGENT: "⚠️",
    Urgency.CRITICAL: "🚨",
}


class TelegramNotifier(BaseNotifier):
    """Sends notifications through the Telegram Bot API."""

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__()
        self.chat_id = chat_id
        self.url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _send(self, title: str, message: str, urgency: Urgency) -> None:
        payload = {
            "chat_id": self.chat_id,
            "text": f"{URGENCY_ICON[urgency]} *{title}*\n{message}",
            "parse_mode": "Markdown",
            "disable_notification": urgency is Urgency.NORMAL,
        }
        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationFailure(f"Telegram delivery failed: {e}") from e
        logger.debug("Telegram notification sent", urgency=urgency.value)

    async def close(self) -> None:
        await super().close()
        await self._client.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(chat_id={self.chat_id})"
