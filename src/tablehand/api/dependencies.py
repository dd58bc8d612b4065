"""Common FastAPI dependencies for the tablehand API."""

from __future__ import annotations

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from tablehand.api.concurrency import InboundGuard
from tablehand.api.errors import InvalidSenderError, ServiceNotReadyError
from tablehand.api.rate_limit import API_KEY_HEADER
from tablehand.config import settings
from tablehand.conversation.orchestrator import Orchestrator
from tablehand.records.protocols import RecordStore

__all__ = [
    "get_orchestrator",
    "get_record_store",
    "get_inbound_guard",
    "normalize_sender",
    "verify_api_key",
    "api_key_header",
]


def get_orchestrator(request: Request) -> Orchestrator:
    """Return the orchestrator built during application startup."""

    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise ServiceNotReadyError("Orchestrator is not initialized")
    return orchestrator


def get_record_store(request: Request) -> RecordStore:
    store = getattr(request.app.state, "record_store", None)
    if store is None:
        raise ServiceNotReadyError("Record store is not initialized")
    return store


def get_inbound_guard(request: Request) -> InboundGuard:
    guard = getattr(request.app.state, "inbound_guard", None)
    if guard is None:
        raise ServiceNotReadyError("Inbound guard is not initialized")
    return guard


SENDER_MAX_LENGTH = 200


def normalize_sender(sender: str) -> str:
    """Trim a sender id; sessions are keyed by the trimmed value."""
    trimmed = sender.strip()
    if not trimmed:
        raise InvalidSenderError("Sender must not be blank")
    if len(trimmed) > SENDER_MAX_LENGTH:
        raise InvalidSenderError(f"Sender must be at most {SENDER_MAX_LENGTH} characters")
    return trimmed


# API key verification (shared)
api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)) -> str:
    """Verify API key authentication for all endpoints."""

    if api_key is None:
        raise HTTPException(status_code=401, detail="Missing API key")
    if api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return api_key
