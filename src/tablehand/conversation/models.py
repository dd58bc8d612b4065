"""Conversation domain types: transcript turns, sessions, pending actions, replies."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union
from uuid import uuid4

__all__ = [
    "Role",
    "ToolInvocationRequest",
    "ToolResult",
    "Turn",
    "Session",
    "SessionSnapshot",
    "PendingAction",
    "Idle",
    "AwaitingConfirmation",
    "SenderState",
    "ReplyKind",
    "ChatReply",
    "new_epoch",
]


def new_epoch() -> str:
    """Return a fresh opaque conversation epoch token."""
    return uuid4().hex[:8]


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


@dataclass(frozen=True)
class ToolInvocationRequest:
    """A tool call proposed by the reasoning engine."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool invocation, paired to its request by ``request_id``."""

    request_id: str
    name: str
    content: str
    is_error: bool = False
    error_type: str | None = None

    def payload(self) -> Any:
        """Decode ``content`` when it holds JSON, otherwise return it verbatim."""
        try:
            return json.loads(self.content)
        except (TypeError, ValueError):
            return self.content

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "name": self.name,
            "content": self.content,
            "is_error": self.is_error,
            "error_type": self.error_type,
        }


@dataclass(frozen=True)
class Turn:
    """One transcript entry.

    Assistant turns may carry the tool requests the engine made; tool-result
    turns carry the results for the preceding assistant turn.
    """

    role: Role
    content: str = ""
    timestamp: float = 0.0
    tool_requests: tuple[ToolInvocationRequest, ...] = ()
    tool_results: tuple[ToolResult, ...] = ()

    @classmethod
    def user(cls, text: str, timestamp: float) -> "Turn":
        return cls(role=Role.USER, content=text, timestamp=timestamp)

    @classmethod
    def assistant(
        cls,
        text: str,
        timestamp: float,
        tool_requests: tuple[ToolInvocationRequest, ...] = (),
    ) -> "Turn":
        return cls(
            role=Role.ASSISTANT,
            content=text,
            timestamp=timestamp,
            tool_requests=tuple(tool_requests),
        )

    @classmethod
    def results(cls, results: list[ToolResult], timestamp: float) -> "Turn":
        return cls(role=Role.TOOL_RESULT, timestamp=timestamp, tool_results=tuple(results))

    def searchable_text(self) -> str:
        parts = [self.content] if self.content else []
        parts.extend(result.content for result in self.tool_results)
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.tool_requests:
            data["tool_requests"] = [r.to_dict() for r in self.tool_requests]
        if self.tool_results:
            data["tool_results"] = [r.to_dict() for r in self.tool_results]
        return data


@dataclass
class Session:
    """Per-sender conversational state. Lives for the process lifetime only."""

    sender_id: str
    transcript: list[Turn] = field(default_factory=list)
    last_activity_at: float = 0.0
    epoch: str = field(default_factory=new_epoch)

    def last_user_text(self) -> str | None:
        for turn in reversed(self.transcript):
            if turn.role == Role.USER:
                return turn.content
        return None

    def transcript_text(self) -> str:
        return " ".join(turn.searchable_text() for turn in self.transcript)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a sender's state for introspection endpoints."""

    sender_id: str
    epoch: str | None
    history_length: int
    last_activity_at: float | None
    seconds_since_last_activity: float | None
    history: list[dict[str, Any]]
    has_pending_action: bool
    pending_tools: list[str]


@dataclass(frozen=True)
class PendingAction:
    """Held, not yet executed tool requests awaiting the sender's approval."""

    sender_id: str
    requested_invocations: tuple[ToolInvocationRequest, ...]
    originating_message: str
    description: str
    created_at: float
    session_epoch: str

    @property
    def tool_names(self) -> list[str]:
        return [invocation.name for invocation in self.requested_invocations]


@dataclass(frozen=True)
class Idle:
    kind: Literal["idle"] = "idle"


@dataclass(frozen=True)
class AwaitingConfirmation:
    pending: PendingAction
    kind: Literal["awaiting_confirmation"] = "awaiting_confirmation"


SenderState = Union[Idle, AwaitingConfirmation]


class ReplyKind(str, Enum):
    ANSWER = "answer"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    NEEDS_CLARIFICATION = "needs_clarification"
    ACTION_COMPLETED = "action_completed"
    ACTION_CANCELLED = "action_cancelled"


@dataclass
class ChatReply:
    """What the caller sends back to the user for one inbound message."""

    kind: ReplyKind
    text: str
    success: bool = True
    tools_executed: list[str] = field(default_factory=list)
    steps: int = 0
    session_epoch: str = ""

    @property
    def needs_confirmation(self) -> bool:
        return self.kind == ReplyKind.AWAITING_CONFIRMATION

    @property
    def needs_clarification(self) -> bool:
        return self.kind == ReplyKind.NEEDS_CLARIFICATION
