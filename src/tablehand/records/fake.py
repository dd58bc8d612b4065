"""In-memory record store for development and tests."""

from __future__ import annotations

import copy
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from tablehand.config import settings
from tablehand.records.errors import RecordNotFoundError, SchemaMismatchError
from tablehand.records.protocols import (
    fields_contain,
    is_linked_to,
    validate_record_id,
    validate_table_id,
)

__all__ = ["FakeRecordStore"]


def _record_id() -> str:
    return "rec" + uuid4().hex[:14]


class FakeRecordStore:
    """Dict-of-tables stand-in for Airtable with the same failure semantics.

    ``strict_fields`` maps a table id to its allowed field names; writing any
    other field raises :class:`SchemaMismatchError` the way Airtable rejects an
    unknown field name.
    """

    def __init__(
        self,
        tables: dict[str, list[dict[str, Any]]] | None = None,
        *,
        strict_fields: dict[str, set[str]] | None = None,
    ) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        for table_id, records in (tables or {}).items():
            self.tables[table_id] = [self._normalize(record) for record in records]
        self.strict_fields = strict_fields or {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    @staticmethod
    def _normalize(record: dict[str, Any]) -> dict[str, Any]:
        if "fields" in record:
            return {
                "id": record.get("id") or _record_id(),
                "createdTime": record.get("createdTime", datetime.now(UTC).isoformat()),
                "fields": dict(record["fields"]),
            }
        return {
            "id": _record_id(),
            "createdTime": datetime.now(UTC).isoformat(),
            "fields": dict(record),
        }

    def _table(self, table_id: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(validate_table_id(table_id), [])

    def _check_fields(self, table_id: str, fields: dict[str, Any]) -> None:
        allowed = self.strict_fields.get(table_id)
        if allowed is None:
            return
        for name in fields:
            if name not in allowed:
                raise SchemaMismatchError(f'UNKNOWN_FIELD_NAME: Unknown field name: "{name}"')

    async def search(self, table_id: str, search_term: str) -> dict[str, Any]:
        self.calls.append(("search", (table_id, search_term)))
        matches = [
            copy.deepcopy(record)
            for record in self._table(table_id)
            if fields_contain(record["fields"], search_term)
        ]
        return {"found": len(matches), "records": matches}

    async def search_related(self, customer_id: str, project_id: str) -> dict[str, Any]:
        self.calls.append(("search_related", (customer_id, project_id)))
        matches = [
            copy.deepcopy(record)
            for record in self._table(settings.airtable_transactions_table)
            if is_linked_to(record["fields"].get(settings.transaction_customer_field), customer_id)
            and is_linked_to(record["fields"].get(settings.transaction_project_field), project_id)
        ]
        return {"found": len(matches), "transactions": matches}

    async def list_all(self, table_id: str, page_size: int = 100) -> list[dict[str, Any]]:
        self.calls.append(("list_all", (table_id, page_size)))
        return copy.deepcopy(self._table(table_id)[:page_size])

    async def create(self, table_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("create", (table_id, fields)))
        self._check_fields(table_id, fields)
        record = self._normalize({"fields": fields})
        self._table(table_id).append(record)
        return copy.deepcopy(record)

    async def update(
        self, table_id: str, record_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(("update", (table_id, record_id, fields)))
        validate_record_id(record_id)
        self._check_fields(table_id, fields)
        for record in self._table(table_id):
            if record["id"] == record_id:
                record["fields"].update(fields)
                return copy.deepcopy(record)
        raise RecordNotFoundError(
            f'Record ID "{record_id}" does not exist in this table', status_code=404
        )

    async def describe_fields(self, table_id: str) -> dict[str, Any]:
        self.calls.append(("describe_fields", (table_id,)))
        records = self._table(table_id)[:3]
        names: list[str] = []
        for record in records:
            for name in record["fields"]:
                if name not in names:
                    names.append(name)
        return {
            "availableFields": names,
            "sampleRecord": copy.deepcopy(records[0]["fields"]) if records else None,
        }

    async def ping(self) -> None:
        return None

    async def aclose(self) -> None:
        return None
