"""Conversation core: sessions, topic boundaries, confirmation and the tool loop."""

from tablehand.conversation.models import (
    AwaitingConfirmation,
    ChatReply,
    Idle,
    PendingAction,
    ReplyKind,
    Role,
    Session,
    SessionSnapshot,
    ToolInvocationRequest,
    ToolResult,
    Turn,
)

__all__ = [
    "AwaitingConfirmation",
    "ChatReply",
    "Idle",
    "PendingAction",
    "ReplyKind",
    "Role",
    "Session",
    "SessionSnapshot",
    "ToolInvocationRequest",
    "ToolResult",
    "Turn",
]
