"""Record-store interface and the matching rules every implementation shares."""

from __future__ import annotations

import json
from typing import Any, Protocol

from tablehand.records.errors import InvalidArgumentError

__all__ = [
    "RecordStore",
    "fields_contain",
    "is_linked_to",
    "validate_record_id",
    "validate_table_id",
]


class RecordStore(Protocol):
    async def search(self, table_id: str, search_term: str) -> dict[str, Any]: ...

    async def search_related(self, customer_id: str, project_id: str) -> dict[str, Any]: ...

    async def list_all(self, table_id: str, page_size: int = 100) -> list[dict[str, Any]]: ...

    async def create(self, table_id: str, fields: dict[str, Any]) -> dict[str, Any]: ...

    async def update(
        self, table_id: str, record_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def describe_fields(self, table_id: str) -> dict[str, Any]: ...

    async def ping(self) -> None: ...

    async def aclose(self) -> None: ...


def fields_contain(fields: dict[str, Any], search_term: str) -> bool:
    """Case-insensitive containment over the JSON rendering of a record's fields."""
    rendered = json.dumps(fields, ensure_ascii=False, default=str).lower()
    return search_term.lower() in rendered


def is_linked_to(value: Any, record_id: str) -> bool:
    """True when a linked-record field value references ``record_id``."""
    if isinstance(value, (list, tuple)):
        return record_id in value
    if isinstance(value, str):
        return record_id in value
    return False


def validate_record_id(record_id: Any) -> str:
    if not isinstance(record_id, str) or not record_id.startswith("rec") or len(record_id) < 15:
        raise InvalidArgumentError(f"Invalid Record ID: {record_id}")
    return record_id


def validate_table_id(table_id: Any) -> str:
    if not isinstance(table_id, str) or not table_id.strip():
        raise InvalidArgumentError(f"Invalid table id: {table_id!r}")
    return table_id.strip()
