"""
Telegram Notifier

Sends MarkdownV2 messages through the Telegram Bot API.
Fire-and-forget: delivery failures are logged and reported as False,
never raised to the caller.
"""

import logging
from typing import Optional
import httpx

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramNotifier:
    """Notification sink for sell alerts."""

    def __init__(
        self,
        bot_token: str,
        user_id: Optional[int],
        client: Optional[httpx.AsyncClient] = None,
        api_url: str = TELEGRAM_API_URL
    ):
        self.bot_token = bot_token
        self.user_id = user_id
        self.api_url = api_url
        self.session = client or httpx.AsyncClient(timeout=15.0)

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token) and self.user_id is not None

    async def close(self):
        await self.session.aclose()

    async def send(self, message: str) -> bool:
        """
        Send a MarkdownV2 message to the configured user.

        Returns:
            True if Telegram accepted the message, False otherwise
        """
        if not self.enabled:
            logger.debug("Telegram disabled, dropping message: %s", message)
            return False

        try:
            resp = await self.session.post(
                f"{self.api_url}/bot{self.bot_token}/sendMessage",
                json={
                    "chat_id": self.user_id,
                    "text": message,
                    "parse_mode": "MarkdownV2",
                    "disable_web_page_preview": True
                }
            )
        except httpx.HTTPError as e:
            logger.error("Telegram send failed: %s", e)
            return False

        if resp.status_code != 200:
            logger.error("Telegram send failed: HTTP %d %s", resp.status_code, resp.text[:200])
            return False

        try:
            data = resp.json()
        except ValueError:
            logger.error("Telegram send failed: non-JSON response %s", resp.text[:200])
            return False

        if not isinstance(data, dict) or not data.get("ok", False):
            description = data.get("description", "unknown error") if isinstance(data, dict) else data
            logger.error("Telegram rejected message: %s", description)
            return False

        return True
