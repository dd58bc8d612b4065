"""Dispatch tool invocation requests onto the record store."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

from tablehand.conversation.models import ToolInvocationRequest
from tablehand.observability.logging import get_logger
from tablehand.records.errors import InvalidArgumentError
from tablehand.records.protocols import RecordStore
from tablehand.tools import catalogue as tools

logger = get_logger(__name__)

__all__ = ["ToolExecutor", "RecordToolExecutor"]


class ToolExecutor(Protocol):
    async def execute(self, request: ToolInvocationRequest) -> Any: ...


def _require(arguments: dict[str, Any], key: str) -> Any:
    value = arguments.get(key)
    if value is None or value == "":
        raise InvalidArgumentError(f"Missing required argument: {key}")
    return value


def _fields(arguments: dict[str, Any]) -> dict[str, Any]:
    fields = _require(arguments, "fields")
    if not isinstance(fields, dict):
        raise InvalidArgumentError("Argument 'fields' must be an object")
    return fields


class RecordToolExecutor:
    """Executes catalogue tools against a :class:`RecordStore`.

    Raises :class:`~tablehand.records.errors.RecordStoreError` subclasses on
    failure; the orchestrator turns those into error tool results.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            tools.SEARCH_RECORDS: self._search_records,
            tools.SEARCH_TRANSACTIONS: self._search_transactions,
            tools.LIST_RECORDS: self._list_records,
            tools.GET_TABLE_FIELDS: self._get_table_fields,
            tools.CREATE_RECORD: self._create_record,
            tools.UPDATE_RECORD: self._update_record,
        }

    async def execute(self, request: ToolInvocationRequest) -> Any:
        handler = self._handlers.get(request.name)
        if handler is None:
            raise InvalidArgumentError(f"Unknown tool: {request.name}")
        logger.info("tool_started", tool=request.name, request_id=request.id)
        logger.debug("tool_arguments", tool=request.name, arguments=request.arguments)
        result = await handler(request.arguments or {})
        logger.info("tool_finished", tool=request.name, request_id=request.id)
        return result

    async def _search_records(self, arguments: dict[str, Any]) -> Any:
        return await self.store.search(
            _require(arguments, "table_id"), str(_require(arguments, "search_term"))
        )

    async def _search_transactions(self, arguments: dict[str, Any]) -> Any:
        return await self.store.search_related(
            str(_require(arguments, "customer_id")), str(_require(arguments, "project_id"))
        )

    async def _list_records(self, arguments: dict[str, Any]) -> Any:
        raw = arguments.get("max_records", 100)
        try:
            max_records = int(raw)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(f"Invalid max_records: {raw!r}") from exc
        if max_records < 1:
            raise InvalidArgumentError(f"Invalid max_records: {raw!r}")
        return await self.store.list_all(_require(arguments, "table_id"), max_records)

    async def _get_table_fields(self, arguments: dict[str, Any]) -> Any:
        return await self.store.describe_fields(_require(arguments, "table_id"))

    async def _create_record(self, arguments: dict[str, Any]) -> Any:
        return await self.store.create(_require(arguments, "table_id"), _fields(arguments))

    async def _update_record(self, arguments: dict[str, Any]) -> Any:
        return await self.store.update(
            _require(arguments, "table_id"),
            _require(arguments, "record_id"),
            _fields(arguments),
        )
