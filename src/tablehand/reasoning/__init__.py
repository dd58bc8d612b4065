"""Reasoning engines: the tool-calling conversational model behind the loop."""

from __future__ import annotations

from tablehand.config import effective_reasoning_provider, settings
from tablehand.observability.logging import get_logger
from tablehand.reasoning.base import (
    EngineTurn,
    ReasoningEngine,
    ReasoningTransportError,
)
from tablehand.reasoning.fake import FakeReasoningEngine
from tablehand.resilience import CircuitBreaker

logger = get_logger(__name__)

__all__ = [
    "EngineTurn",
    "ReasoningEngine",
    "ReasoningTransportError",
    "FakeReasoningEngine",
    "get_reasoning_engine",
]


def _breaker(name: str) -> CircuitBreaker | None:
    if not settings.circuit_breaker_enabled:
        return None
    return CircuitBreaker(
        name=name,
        failure_threshold=settings.circuit_breaker_failure_threshold,
        recovery_timeout=settings.circuit_breaker_recovery_timeout,
    )


def get_reasoning_engine() -> ReasoningEngine:
    """Build the engine selected by configuration."""
    provider = effective_reasoning_provider(settings)
    logger.info("reasoning_engine_selected", provider=provider)
    if provider == "fake":
        return FakeReasoningEngine()
    if provider == "llama_stack":
        from tablehand.reasoning.llama_stack_engine import LlamaStackReasoningEngine

        return LlamaStackReasoningEngine(breaker=_breaker("llama_stack"))

    from tablehand.reasoning.anthropic_engine import AnthropicReasoningEngine

    return AnthropicReasoningEngine(breaker=_breaker("anthropic"))
