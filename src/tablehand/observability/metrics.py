"""Prometheus instruments shared by the API and the conversation core."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "tablehand_http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
REQUEST_LATENCY = Histogram(
    "tablehand_http_request_duration_seconds",
    "HTTP request duration in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
    labelnames=["path"],
)
TURNS_TOTAL = Counter(
    "tablehand_turns_total", "Inbound messages handled, by reply kind", ["kind"]
)
REASONING_STEPS = Histogram(
    "tablehand_reasoning_steps",
    "Reasoning engine calls per inbound message",
    buckets=(1, 2, 3, 5, 8, 13, 21),
)
TOOL_EXECUTIONS = Counter(
    "tablehand_tool_executions_total", "Tool executor calls", ["tool", "outcome"]
)
CONFIRMATIONS = Counter(
    "tablehand_confirmations_total", "Confirmation gate transitions", ["transition"]
)
SESSION_RESETS = Counter("tablehand_session_resets_total", "Session resets", ["reason"])

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "TURNS_TOTAL",
    "REASONING_STEPS",
    "TOOL_EXECUTIONS",
    "CONFIRMATIONS",
    "SESSION_RESETS",
]
