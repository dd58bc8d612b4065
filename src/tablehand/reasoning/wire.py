"""Transcript to provider message conversion.

Retention pruning can split an assistant tool request from its results. Both
providers reject such orphans, so :func:`sanitize` drops unpaired tool
requests and results before conversion.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Any, Sequence

from tablehand.conversation.models import Role, Turn
from tablehand.reasoning.prompts import NEW_CONVERSATION_NOTE

__all__ = ["sanitize", "to_anthropic_messages", "to_openai_messages"]


def _paired(assistant: Turn, following: Turn | None) -> bool:
    if following is None or following.role != Role.TOOL_RESULT:
        return False
    requested = {request.id for request in assistant.tool_requests}
    answered = {result.request_id for result in following.tool_results}
    return requested == answered


def sanitize(transcript: Sequence[Turn]) -> list[Turn]:
    """Return a provider-safe copy of ``transcript``.

    Tool requests without matching results lose their requests, results
    without a matching request are dropped, and the history is made to start
    with a user turn.
    """
    turns = list(transcript)
    cleaned: list[Turn] = []
    index = 0
    while index < len(turns):
        turn = turns[index]
        following = turns[index + 1] if index + 1 < len(turns) else None
        if turn.role == Role.ASSISTANT and turn.tool_requests:
            if _paired(turn, following):
                cleaned.extend([turn, following])  # type: ignore[list-item]
                index += 2
                continue
            if turn.content:
                cleaned.append(replace(turn, tool_requests=()))
        elif turn.role == Role.TOOL_RESULT:
            pass
        elif turn.content:
            cleaned.append(turn)
        index += 1

    while cleaned and cleaned[0].role != Role.USER:
        cleaned.pop(0)
    return cleaned


def _is_new_conversation(turns: list[Turn]) -> bool:
    return len(turns) == 1 and turns[0].role == Role.USER


def to_anthropic_messages(transcript: Sequence[Turn]) -> list[dict[str, Any]]:
    turns = sanitize(transcript)
    messages: list[dict[str, Any]] = []
    for turn in turns:
        if turn.role == Role.USER:
            messages.append({"role": "user", "content": turn.content})
        elif turn.role == Role.ASSISTANT:
            blocks: list[dict[str, Any]] = []
            if turn.content:
                blocks.append({"type": "text", "text": turn.content})
            for request in turn.tool_requests:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": request.id,
                        "name": request.name,
                        "input": request.arguments,
                    }
                )
            messages.append({"role": "assistant", "content": blocks})
        else:
            messages.append(
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": result.request_id,
                            "content": result.content,
                            "is_error": result.is_error,
                        }
                        for result in turn.tool_results
                    ],
                }
            )

    if _is_new_conversation(turns):
        messages[0] = {
            "role": "user",
            "content": [
                {"type": "text", "text": NEW_CONVERSATION_NOTE},
                {"type": "text", "text": turns[0].content},
            ],
        }
    return messages


def to_openai_messages(transcript: Sequence[Turn], system_prompt: str) -> list[dict[str, Any]]:
    turns = sanitize(transcript)
    system = system_prompt
    if _is_new_conversation(turns):
        system = f"{system_prompt}\n\n{NEW_CONVERSATION_NOTE}"

    messages: list[dict[str, Any]] = [{"role": "system", "content": system}]
    for turn in turns:
        if turn.role == Role.USER:
            messages.append({"role": "user", "content": turn.content})
        elif turn.role == Role.ASSISTANT:
            message: dict[str, Any] = {"role": "assistant", "content": turn.content or None}
            if turn.tool_requests:
                message["tool_calls"] = [
                    {
                        "id": request.id,
                        "type": "function",
                        "function": {
                            "name": request.name,
                            "arguments": json.dumps(request.arguments, ensure_ascii=False),
                        },
                    }
                    for request in turn.tool_requests
                ]
            messages.append(message)
        else:
            for result in turn.tool_results:
                messages.append(
                    {"role": "tool", "tool_call_id": result.request_id, "content": result.content}
                )
    return messages
