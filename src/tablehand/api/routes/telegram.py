"""Telegram webhook integration."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from tablehand.api.concurrency import InboundGuard
from tablehand.api.dependencies import get_inbound_guard, get_orchestrator
from tablehand.api.schemas import ErrorResponse, TelegramWebhookResponse
from tablehand.config import settings
from tablehand.conversation import messages
from tablehand.conversation.orchestrator import Orchestrator
from tablehand.notifications.telegram import TelegramNotifier, redact_chat_id
from tablehand.observability.logging import bind_sender, get_logger
from tablehand.reasoning.base import ReasoningTransportError

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/telegram", tags=["telegram"])


def _build_message_key(
    body: dict[str, Any], chat_id: str, message_obj: dict[str, Any]
) -> str | None:
    update_id = body.get("update_id")
    if update_id is not None:
        return f"update:{update_id}"
    message_id = message_obj.get("message_id")
    if message_id is not None:
        return f"chat:{chat_id}:message:{message_id}"
    return None


def get_notifier() -> TelegramNotifier:
    return TelegramNotifier()


@router.post(
    "/webhook",
    response_model=TelegramWebhookResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def telegram_webhook(
    request: Request,
    orchestrator: Orchestrator = Depends(get_orchestrator),
    guard: InboundGuard = Depends(get_inbound_guard),
    notifier: TelegramNotifier = Depends(get_notifier),
) -> TelegramWebhookResponse:
    """Receive a Telegram update, run it through the orchestrator and reply."""

    # Require webhook secret in production
    if settings.environment == "production" and not settings.telegram_webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret required in production",
        )

    secret = request.headers.get("X-Telegram-Bot-Api-Secret-Token")
    if settings.telegram_webhook_secret and secret != settings.telegram_webhook_secret:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret token")

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON")

    message_obj = body.get("message") or body.get("edited_message") or {}
    message_text = (message_obj.get("text") or "").strip()
    chat = message_obj.get("chat") or {}
    chat_id = str(chat.get("id") or "")

    if not message_text or not chat_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing message or chat id"
        )

    # Validate chat ID against allowlist
    allowed_ids = settings.telegram_allowed_chat_ids
    if allowed_ids:
        if chat_id not in allowed_ids:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Chat not allowed")
    elif not settings.telegram_allow_all_chats:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No allowed chat IDs configured. Set TELEGRAM_ALLOW_ALL_CHATS=true to allow all.",
        )

    message_key = _build_message_key(body, chat_id, message_obj)
    if message_key and await guard.seen_recently(message_key):
        logger.info("telegram_duplicate_skipped", key=message_key)
        return TelegramWebhookResponse(ok=True, status="ignored", reason="duplicate")

    sender = f"telegram:{chat_id}"
    with bind_sender(f"telegram:{redact_chat_id(chat_id)}"):
        async with guard.sender_lock(sender):
            try:
                reply = await orchestrator.handle_message(sender, message_text)
                text = reply.text
            except ReasoningTransportError as exc:
                logger.error(
                    "reasoning_unavailable", chat=redact_chat_id(chat_id), provider=exc.provider
                )
                text = messages.ENGINE_UNAVAILABLE

    await notifier.send_message(chat_id, text)
    return TelegramWebhookResponse(ok=True, status="ok")


__all__ = ["router"]
