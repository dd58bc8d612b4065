"""Chat endpoint: one inbound user message in, one assistant reply out."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from tablehand.api.concurrency import InboundGuard
from tablehand.api.dependencies import get_inbound_guard, get_orchestrator, normalize_sender
from tablehand.api.rate_limit import chat_rate_limit, limiter
from tablehand.api.schemas import ChatMessageRequest, ChatMessageResponse, ErrorResponse
from tablehand.conversation import messages
from tablehand.conversation.orchestrator import Orchestrator
from tablehand.observability.logging import bind_sender, get_logger
from tablehand.reasoning.base import ReasoningTransportError

router = APIRouter(prefix="/v1/chat", tags=["chat"])
logger = get_logger(__name__)


@router.post(
    "/message",
    response_model=ChatMessageResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ChatMessageResponse},
    },
)
@limiter.limit(chat_rate_limit)
async def post_message(
    request: Request,
    body: ChatMessageRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
    guard: InboundGuard = Depends(get_inbound_guard),
) -> ChatMessageResponse | JSONResponse:
    """Handle one chat message for ``body.sender``."""

    sender = normalize_sender(body.sender)
    if body.message_id and await guard.seen_recently(f"{sender}:{body.message_id}"):
        logger.info("duplicate_message_skipped", sender=sender, message_id=body.message_id)
        return ChatMessageResponse(
            success=True, response="", kind="duplicate", duplicate=True
        )

    with bind_sender(sender):
        async with guard.sender_lock(sender):
            try:
                reply = await orchestrator.handle_message(sender, body.message)
            except ReasoningTransportError as exc:
                logger.error("reasoning_unavailable", provider=exc.provider)
                failed = ChatMessageResponse(
                    success=False, response=messages.ENGINE_UNAVAILABLE, kind="error"
                )
                return JSONResponse(status_code=503, content=failed.model_dump())

    return ChatMessageResponse.from_reply(reply)


__all__ = ["router"]
