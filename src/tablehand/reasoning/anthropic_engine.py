"""Anthropic Messages API engine (tool use)."""

from __future__ import annotations

from typing import Any, Sequence

import anthropic

from tablehand.config import settings
from tablehand.conversation.models import ToolInvocationRequest, Turn
from tablehand.observability.logging import get_logger
from tablehand.reasoning.base import EngineTurn, ReasoningTransportError, guarded_call
from tablehand.reasoning.prompts import build_system_prompt
from tablehand.reasoning.wire import to_anthropic_messages
from tablehand.resilience import CircuitBreaker
from tablehand.tools.catalogue import ToolCatalogue

logger = get_logger(__name__)

__all__ = ["AnthropicReasoningEngine"]

PROVIDER = "anthropic"


def _parse_response(response: Any) -> EngineTurn:
    texts: list[str] = []
    requests: list[ToolInvocationRequest] = []
    for block in getattr(response, "content", None) or []:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            texts.append(str(getattr(block, "text", "") or ""))
        elif block_type == "tool_use":
            arguments = getattr(block, "input", None) or {}
            requests.append(
                ToolInvocationRequest(
                    id=str(block.id),
                    name=str(block.name),
                    arguments=dict(arguments) if isinstance(arguments, dict) else {},
                )
            )
    return EngineTurn(text="\n".join(t for t in texts if t), tool_requests=tuple(requests))


class AnthropicReasoningEngine:
    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None = None,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        system_prompt: str | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._client = client or anthropic.AsyncAnthropic(
            api_key=settings.anthropic_api_key, max_retries=0
        )
        self.model = model or settings.anthropic_model
        self.max_tokens = max_tokens or settings.reasoning_max_tokens
        self.system_prompt = system_prompt or build_system_prompt()
        self.breaker = breaker

    async def converse(self, transcript: Sequence[Turn], catalogue: ToolCatalogue) -> EngineTurn:
        messages = to_anthropic_messages(transcript)
        try:
            response = await guarded_call(
                self.breaker,
                PROVIDER,
                self._client.messages.create,
                model=self.model,
                max_tokens=self.max_tokens,
                system=self.system_prompt,
                messages=messages,
                tools=catalogue.to_anthropic(),
            )
        except anthropic.APIError as exc:
            logger.warning("reasoning_call_failed", provider=PROVIDER, error=str(exc))
            raise ReasoningTransportError(str(exc), provider=PROVIDER, cause=exc) from exc

        turn = _parse_response(response)
        logger.debug(
            "reasoning_turn",
            provider=PROVIDER,
            stop_reason=getattr(response, "stop_reason", None),
            tools=[request.name for request in turn.tool_requests],
        )
        return turn
