"""Telegram Bot API client for sending notifications."""

import httpx
import structlog

from telegrep.metrics import DELIVERIES

log = structlog.get_logger()

API_BASE_URL = "https://api.telegram.org"


class TelegramClient:
    """Simple Telegram bot client posting to a single chat."""

    def __init__(self, token: str, chat_id: str, timeout: float = 10.0):
        self.token = token
        self.chat_id = chat_id
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{API_BASE_URL}/bot{self.token}/sendMessage"

    def send(self, message: str) -> bool:
        """Send a message to the configured chat.

        Args:
            message: The message text (Telegram HTML parse mode)

        Returns:
            True if successful, False otherwise
        """
        try:
            response = httpx.post(
                self.url,
                data={
                    "chat_id": self.chat_id,
                    "text": message,
                    "parse_mode": "HTML",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            DELIVERIES.labels(status="success").inc()
            log.debug("Telegram message sent", length=len(message))
            return True
        except httpx.HTTPStatusError as e:
            DELIVERIES.labels(status="http_error").inc()
            # The token is part of the URL, so log the response body only
            log.error(
                "Telegram API error",
                status=e.response.status_code,
                response=e.response.text[:500],
            )
            return False
        except httpx.RequestError as e:
            DELIVERIES.labels(status="request_error").inc()
            log.error("Telegram request failed", error=type(e).__name__)
            return False
