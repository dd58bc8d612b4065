"""Reasoning engine interface.

An engine is stateless: it receives the full transcript and the tool
catalogue on every call and returns either final text or tool requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Sequence, TypeVar

from tablehand.conversation.models import ToolInvocationRequest, Turn
from tablehand.resilience import CircuitBreaker, CircuitBreakerError
from tablehand.tools.catalogue import ToolCatalogue

__all__ = [
    "EngineTurn",
    "ReasoningEngine",
    "ReasoningTransportError",
    "guarded_call",
]

T = TypeVar("T")


@dataclass(frozen=True)
class EngineTurn:
    """One engine response: final text, tool requests, or both."""

    text: str = ""
    tool_requests: tuple[ToolInvocationRequest, ...] = ()

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_requests)


class ReasoningTransportError(Exception):
    """The engine could not be reached or returned an unusable response."""

    def __init__(self, message: str, *, provider: str, cause: Exception | None = None):
        self.provider = provider
        self.cause = cause
        super().__init__(f"{message} (provider={provider})")


class ReasoningEngine(Protocol):
    async def converse(
        self, transcript: Sequence[Turn], catalogue: ToolCatalogue
    ) -> EngineTurn: ...


async def guarded_call(
    breaker: CircuitBreaker | None,
    provider: str,
    func: Callable[..., Awaitable[T]],
    **kwargs: Any,
) -> T:
    """Run an engine call through the circuit breaker, if one is configured."""
    if breaker is None:
        return await func(**kwargs)
    try:
        return await breaker.call_async(func, **kwargs)
    except CircuitBreakerError as exc:
        raise ReasoningTransportError(str(exc), provider=provider, cause=exc) from exc
