"""Session memory introspection and administrative clear."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tablehand.api.dependencies import get_inbound_guard, get_orchestrator, normalize_sender
from tablehand.api.concurrency import InboundGuard
from tablehand.api.schemas import ClearMemoryRequest, ClearMemoryResponse, MemoryResponse
from tablehand.conversation.orchestrator import Orchestrator
from tablehand.observability.logging import get_logger

router = APIRouter(prefix="/v1/memory", tags=["memory"])
logger = get_logger(__name__)


@router.get("/{sender}", response_model=MemoryResponse)
async def get_memory(
    sender: str, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> MemoryResponse:
    """Inspect a sender's session without creating or touching it."""
    return MemoryResponse.from_snapshot(orchestrator.snapshot(normalize_sender(sender)))


@router.post("/clear", response_model=ClearMemoryResponse)
async def clear_memory(
    body: ClearMemoryRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
    guard: InboundGuard = Depends(get_inbound_guard),
) -> ClearMemoryResponse:
    sender = normalize_sender(body.sender)
    async with guard.sender_lock(sender):
        existed = orchestrator.clear(sender)
    logger.info("memory_cleared", sender=sender, existed=existed)
    return ClearMemoryResponse(
        success=True, message=f"Memory cleared for {sender}", existed=existed
    )


__all__ = ["router"]
