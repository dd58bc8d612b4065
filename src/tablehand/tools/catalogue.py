"""The fixed set of record-store operations advertised to the reasoning engine.

Each tool carries a static capability class. Mutating tools are never executed
without the sender's explicit approval; read-only tools run immediately.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Sequence

from tablehand.conversation.models import ToolInvocationRequest

__all__ = [
    "Capability",
    "ToolSpec",
    "ToolCatalogue",
    "TOOL_CATALOGUE",
    "SEARCH_RECORDS",
    "SEARCH_TRANSACTIONS",
    "LIST_RECORDS",
    "GET_TABLE_FIELDS",
    "CREATE_RECORD",
    "UPDATE_RECORD",
]

SEARCH_RECORDS = "search_records"
SEARCH_TRANSACTIONS = "search_transactions"
LIST_RECORDS = "list_records"
GET_TABLE_FIELDS = "get_table_fields"
CREATE_RECORD = "create_record"
UPDATE_RECORD = "update_record"


class Capability(str, Enum):
    READ_ONLY = "read_only"
    MUTATING = "mutating"


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_schema: dict[str, Any]
    capability: Capability

    @property
    def is_mutating(self) -> bool:
        return self.capability == Capability.MUTATING

    def to_anthropic(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": copy.deepcopy(self.input_schema),
        }

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": copy.deepcopy(self.input_schema),
            },
        }


class ToolCatalogue:
    """Immutable, name-indexed collection of tool specs."""

    def __init__(self, specs: Iterable[ToolSpec]) -> None:
        self._specs: tuple[ToolSpec, ...] = tuple(specs)
        self._by_name = {spec.name: spec for spec in self._specs}
        if len(self._by_name) != len(self._specs):
            raise ValueError("Duplicate tool names in catalogue")

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self._specs]

    def get(self, name: str) -> ToolSpec | None:
        return self._by_name.get(name)

    def is_mutating(self, name: str) -> bool:
        spec = self._by_name.get(name)
        return spec is not None and spec.is_mutating

    def partition(
        self, requests: Sequence[ToolInvocationRequest]
    ) -> tuple[list[ToolInvocationRequest], list[ToolInvocationRequest]]:
        """Split requests into (read_only, mutating), preserving order."""
        read_only: list[ToolInvocationRequest] = []
        mutating: list[ToolInvocationRequest] = []
        for request in requests:
            (mutating if self.is_mutating(request.name) else read_only).append(request)
        return read_only, mutating

    def to_anthropic(self) -> list[dict[str, Any]]:
        return [spec.to_anthropic() for spec in self._specs]

    def to_openai(self) -> list[dict[str, Any]]:
        return [spec.to_openai() for spec in self._specs]


def _object(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_TABLE_ID = {"type": "string", "description": "Airtable table id (tbl...)"}

TOOL_CATALOGUE = ToolCatalogue(
    [
        ToolSpec(
            name=SEARCH_RECORDS,
            description="Search a table for records whose field values contain the given text",
            input_schema=_object(
                {"table_id": _TABLE_ID, "search_term": {"type": "string"}},
                ["table_id", "search_term"],
            ),
            capability=Capability.READ_ONLY,
        ),
        ToolSpec(
            name=SEARCH_TRANSACTIONS,
            description="Find existing transactions linked to both a customer and a project",
            input_schema=_object(
                {
                    "customer_id": {"type": "string", "description": "Customer record id"},
                    "project_id": {"type": "string", "description": "Project record id"},
                },
                ["customer_id", "project_id"],
            ),
            capability=Capability.READ_ONLY,
        ),
        ToolSpec(
            name=LIST_RECORDS,
            description="List records from a table",
            input_schema=_object(
                {
                    "table_id": _TABLE_ID,
                    "max_records": {"type": "number", "default": 100},
                },
                ["table_id"],
            ),
            capability=Capability.READ_ONLY,
        ),
        ToolSpec(
            name=GET_TABLE_FIELDS,
            description="List the field names available in a table, with a sample record",
            input_schema=_object({"table_id": _TABLE_ID}, ["table_id"]),
            capability=Capability.READ_ONLY,
        ),
        ToolSpec(
            name=CREATE_RECORD,
            description="Create a new record in a table",
            input_schema=_object(
                {"table_id": _TABLE_ID, "fields": {"type": "object"}},
                ["table_id", "fields"],
            ),
            capability=Capability.MUTATING,
        ),
        ToolSpec(
            name=UPDATE_RECORD,
            description="Update fields of a single existing record",
            input_schema=_object(
                {
                    "table_id": _TABLE_ID,
                    "record_id": {"type": "string", "description": "Record id (rec...)"},
                    "fields": {"type": "object"},
                },
                ["table_id", "record_id", "fields"],
            ),
            capability=Capability.MUTATING,
        ),
    ]
)
