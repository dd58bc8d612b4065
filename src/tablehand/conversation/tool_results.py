"""Run one tool request and turn its outcome into a transcript ToolResult."""

from __future__ import annotations

import json
from typing import Any

from tablehand.conversation.messages import DEFAULT_ERROR_HINT, ERROR_HINTS
from tablehand.conversation.models import ToolInvocationRequest, ToolResult
from tablehand.observability.logging import get_logger
from tablehand.observability.metrics import TOOL_EXECUTIONS
from tablehand.records.errors import RecordStoreError
from tablehand.records.executor import ToolExecutor

logger = get_logger(__name__)

__all__ = [
    "format_tool_error",
    "format_tool_success",
    "error_result",
    "success_result",
    "execute_tool",
]


def format_tool_error(
    error_type: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Format a tool error response with a hint the model can act on."""
    response: dict[str, Any] = {
        "error": True,
        "error_type": error_type,
        "message": ERROR_HINTS.get(error_type, DEFAULT_ERROR_HINT),
        "details": {"raw": message, **(details or {})},
    }
    return response


def format_tool_success(data: Any) -> dict[str, Any]:
    if isinstance(data, dict):
        return {"success": True, **data}
    return {"success": True, "records": data}


def _dump(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def success_result(request: ToolInvocationRequest, data: Any) -> ToolResult:
    return ToolResult(
        request_id=request.id, name=request.name, content=_dump(format_tool_success(data))
    )


def error_result(request: ToolInvocationRequest, error_type: str, message: str) -> ToolResult:
    return ToolResult(
        request_id=request.id,
        name=request.name,
        content=_dump(format_tool_error(error_type, message)),
        is_error=True,
        error_type=error_type,
    )


async def execute_tool(executor: ToolExecutor, request: ToolInvocationRequest) -> ToolResult:
    """Execute ``request``; failures come back as error results, never raised."""
    try:
        data = await executor.execute(request)
    except RecordStoreError as exc:
        TOOL_EXECUTIONS.labels(tool=request.name, outcome=exc.kind).inc()
        logger.warning("tool_failed", tool=request.name, kind=exc.kind, error=str(exc))
        return error_result(request, exc.kind, str(exc))
    except Exception as exc:
        TOOL_EXECUTIONS.labels(tool=request.name, outcome="internal").inc()
        logger.exception("tool_crashed", tool=request.name)
        return error_result(request, "internal", str(exc))

    TOOL_EXECUTIONS.labels(tool=request.name, outcome="ok").inc()
    return success_result(request, data)
