"""Health check endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tablehand.api.schemas import HealthResponse, RecordStoreHealthResponse
from tablehand.app_version import get_app_version
from tablehand.config import (
    effective_reasoning_provider,
    effective_record_store_provider,
    settings,
)
from tablehand.observability.logging import get_logger
from tablehand.records.errors import RecordStoreError

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> dict[str, Any]:
    """Liveness probe; degraded provider state is reported, not failed."""

    provider_modes = {
        "reasoning": effective_reasoning_provider(settings),
        "record_store": effective_record_store_provider(settings),
    }
    degraded_mode = "fake" in provider_modes.values()

    breaker = getattr(getattr(request.app.state, "engine", None), "breaker", None)
    orchestrator = getattr(request.app.state, "orchestrator", None)
    sweeper = getattr(request.app.state, "sweeper", None)

    return {
        "status": "healthy",
        "version": get_app_version(),
        "degraded_mode": degraded_mode,
        "provider_modes": provider_modes,
        "reasoning_circuit": breaker.state.value if breaker is not None else None,
        "active_sessions": len(orchestrator.sessions.senders()) if orchestrator else 0,
        "sweeper_running": sweeper.running if sweeper is not None else None,
    }


@router.get("/health/record-store", response_model=RecordStoreHealthResponse)
async def record_store_health(request: Request) -> JSONResponse:
    """Check record store connectivity.

    Returns 200 if the store answers, 503 otherwise.
    """
    provider = effective_record_store_provider(settings)
    store = getattr(request.app.state, "record_store", None)
    if store is None:
        body = RecordStoreHealthResponse(
            success=False, provider=provider, message="not initialized"
        )
        return JSONResponse(content=body.model_dump(), status_code=503)

    try:
        await store.ping()
    except RecordStoreError as exc:
        logger.error("record_store_health_failed", kind=exc.kind, error=str(exc))
        body = RecordStoreHealthResponse(
            success=False, provider=provider, message="unreachable", error=str(exc)
        )
        return JSONResponse(content=body.model_dump(), status_code=503)

    body = RecordStoreHealthResponse(success=True, provider=provider, message="connected")
    return JSONResponse(content=body.model_dump(), status_code=200)


__all__ = ["router"]
