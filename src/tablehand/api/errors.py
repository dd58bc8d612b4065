"""API error types reported with the ``{"error", "detail"}`` envelope."""

from __future__ import annotations

from typing import Any

from fastapi import status


class DomainError(Exception):
    """Base class for errors the API turns into an error envelope."""

    error: str = "domain_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, error: str | None = None, status_code: int | None = None):
        super().__init__(message)
        if error:
            self.error = error
        if status_code:
            self.status_code = status_code

    def envelope(self) -> dict[str, Any]:
        return {"error": self.error, "detail": str(self)}


class InvalidSenderError(DomainError):
    """Sender id cannot key a session (blank after trimming, or too long)."""

    error = "invalid_sender"


class ServiceNotReadyError(DomainError):
    """Lifespan has not built the orchestrator stack yet."""

    error = "service_not_ready"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
