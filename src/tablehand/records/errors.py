"""Record-store failure taxonomy.

Every failure the tool executor raises is one of four kinds. The kind drives
the hint the conversational model sees so it can correct itself on the next
step.
"""

from __future__ import annotations

from typing import Any, ClassVar

__all__ = [
    "RecordStoreError",
    "RecordNotFoundError",
    "InvalidArgumentError",
    "SchemaMismatchError",
    "RecordStoreTransportError",
    "classify_airtable_error",
]


class RecordStoreError(Exception):
    """Base class for record-store failures."""

    kind: ClassVar[str] = "record_store_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


class RecordNotFoundError(RecordStoreError):
    kind = "not_found"


class InvalidArgumentError(RecordStoreError):
    kind = "invalid_argument"


class SchemaMismatchError(RecordStoreError):
    kind = "schema_mismatch"


class RecordStoreTransportError(RecordStoreError):
    kind = "transport"


_NOT_FOUND_TYPES = {
    "NOT_FOUND",
    "MODEL_ID_NOT_FOUND",
    "ROW_DOES_NOT_EXIST",
    "TABLE_NOT_FOUND",
}
_SCHEMA_TYPES = {
    "UNKNOWN_FIELD_NAME",
    "INVALID_MULTIPLE_CHOICE_OPTIONS",
    "INVALID_VALUE_FOR_COLUMN",
    "CANNOT_UPDATE_COMPUTED_FIELD",
}


def _error_parts(payload: Any) -> tuple[str, str]:
    """Extract (type, message) from an Airtable error body."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            return str(error.get("type") or ""), str(error.get("message") or "")
        if isinstance(error, str):
            return error, str(payload.get("message") or error)
    if isinstance(payload, str):
        return "", payload
    return "", ""


def classify_airtable_error(status_code: int, payload: Any) -> RecordStoreError:
    """Map an Airtable HTTP error response onto the failure taxonomy."""
    error_type, message = _error_parts(payload)
    text = f"{error_type}: {message}" if error_type and message else (message or error_type)
    text = text or f"Airtable request failed with status code {status_code}"
    details = {"status_code": status_code, "type": error_type, "message": message}

    if "select option" in message.lower() or error_type in _SCHEMA_TYPES:
        return SchemaMismatchError(text, status_code=status_code, details=details)
    if "does not exist in this table" in message or error_type in _NOT_FOUND_TYPES:
        return RecordNotFoundError(text, status_code=status_code, details=details)
    if status_code == 404:
        return RecordNotFoundError(text, status_code=status_code, details=details)
    if status_code in (400, 422):
        return InvalidArgumentError(text, status_code=status_code, details=details)
    return RecordStoreTransportError(text, status_code=status_code, details=details)
