"""Telegram Bot API replies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from tablehand.config import settings
from tablehand.observability.logging import get_logger

logger = get_logger("notifications.telegram")

__all__ = ["TelegramNotifier", "NotificationResult", "redact_chat_id"]

# Telegram rejects messages longer than this.
MAX_MESSAGE_LENGTH = 4096


@dataclass
class NotificationResult:
    """Result of sending a notification."""

    success: bool
    message_id: Optional[int] = None
    error: Optional[str] = None


def redact_chat_id(chat_id: str) -> str:
    suffix = chat_id[-4:] if len(chat_id) > 4 else chat_id
    return f"telegram_*{suffix}"


class TelegramNotifier:
    """Send chat replies to Telegram users."""

    def __init__(self, bot_token: str | None = None):
        token = settings.telegram_bot_token if bot_token is None else bot_token
        self.bot_token = token
        self.api_base = f"https://api.telegram.org/bot{token}" if token else None

    async def send_message(
        self,
        chat_id: str,
        text: str,
        *,
        parse_mode: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> NotificationResult:
        """Send a text message.

        Args:
            chat_id: Telegram chat ID
            text: Message text, truncated to Telegram's length limit
            parse_mode: Optional Telegram parse mode (plain text when omitted)
            client: Optional pre-configured HTTP client (useful for testing)
        """

        if not self.bot_token or not self.api_base:
            logger.error("telegram_token_missing")
            return NotificationResult(success=False, error="No bot token")

        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text[:MAX_MESSAGE_LENGTH],
            "disable_web_page_preview": True,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode

        async def _post(active_client: httpx.AsyncClient) -> NotificationResult:
            try:
                response = await active_client.post(f"{self.api_base}/sendMessage", json=payload)
                data = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(
                    "telegram_send_failed", chat=redact_chat_id(chat_id), error=str(exc)
                )
                return NotificationResult(success=False, error=str(exc))

            if data.get("ok"):
                logger.info("telegram_message_sent", chat=redact_chat_id(chat_id))
                return NotificationResult(
                    success=True,
                    message_id=data.get("result", {}).get("message_id"),
                )
            return NotificationResult(
                success=False,
                error=data.get("description", "Unknown error"),
            )

        if client is not None:
            return await _post(client)

        async with httpx.AsyncClient(timeout=10) as async_client:
            return await _post(async_client)
