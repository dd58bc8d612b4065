"""Llama Stack engine using the OpenAI-compatible chat completions API."""

from __future__ import annotations

import json
from typing import Any, Sequence

import llama_stack_client
from llama_stack_client import AsyncLlamaStackClient

from tablehand.config import settings
from tablehand.conversation.models import ToolInvocationRequest, Turn
from tablehand.observability.logging import get_logger
from tablehand.reasoning.base import EngineTurn, ReasoningTransportError, guarded_call
from tablehand.reasoning.prompts import build_system_prompt
from tablehand.reasoning.wire import to_openai_messages
from tablehand.resilience import CircuitBreaker
from tablehand.tools.catalogue import ToolCatalogue

logger = get_logger(__name__)

__all__ = ["LlamaStackReasoningEngine"]

PROVIDER = "llama_stack"


def _decode_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("tool_arguments_undecodable", raw=str(raw)[:200])
        return {}
    return decoded if isinstance(decoded, dict) else {}


def _parse_response(response: Any) -> EngineTurn:
    choices = getattr(response, "choices", None)
    if not choices:
        raise ReasoningTransportError("LLM returned no choices", provider=PROVIDER)
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None) if message else None
    requests = []
    for call in getattr(message, "tool_calls", None) or []:
        function = getattr(call, "function", None)
        requests.append(
            ToolInvocationRequest(
                id=str(call.id),
                name=str(getattr(function, "name", "")),
                arguments=_decode_arguments(getattr(function, "arguments", None)),
            )
        )
    return EngineTurn(text=str(content) if content else "", tool_requests=tuple(requests))


class LlamaStackReasoningEngine:
    def __init__(
        self,
        client: AsyncLlamaStackClient | None = None,
        *,
        model: str | None = None,
        system_prompt: str | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._client = client or AsyncLlamaStackClient(
            base_url=settings.llama_stack_url, max_retries=0
        )
        self.model = model or settings.llama_stack_model
        self.system_prompt = system_prompt or build_system_prompt()
        self.breaker = breaker

    async def converse(self, transcript: Sequence[Turn], catalogue: ToolCatalogue) -> EngineTurn:
        messages = to_openai_messages(transcript, self.system_prompt)
        try:
            response = await guarded_call(
                self.breaker,
                PROVIDER,
                self._client.chat.completions.create,
                model=self.model,
                messages=messages,
                tools=catalogue.to_openai(),
                stream=False,
            )
        except llama_stack_client.APIError as exc:
            logger.warning("reasoning_call_failed", provider=PROVIDER, error=str(exc))
            raise ReasoningTransportError(str(exc), provider=PROVIDER, cause=exc) from exc
        return _parse_response(response)
