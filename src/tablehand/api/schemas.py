"""Shared Pydantic request and response models for OpenAPI."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tablehand.conversation.models import ChatReply, ReplyKind, SessionSnapshot


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Machine-readable error code")
    detail: Optional[str | Dict[str, Any]] = Field(
        None, description="Human-readable or structured error detail"
    )


class HealthResponse(BaseModel):
    status: str
    version: str
    degraded_mode: bool = False
    provider_modes: Dict[str, str] = Field(default_factory=dict)
    reasoning_circuit: Optional[str] = Field(
        None, description="Circuit breaker state: closed, open, or half_open"
    )
    active_sessions: int = 0
    sweeper_running: Optional[bool] = None


class ChatMessageRequest(BaseModel):
    sender: str = Field(default="default", min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=8000)
    message_id: Optional[str] = Field(
        None, description="Delivery id; repeats within the dedup window are ignored"
    )


class ChatMessageResponse(BaseModel):
    success: bool
    response: str
    kind: str
    needs_confirmation: bool = False
    needs_clarification: bool = False
    action_completed: bool = False
    action_cancelled: bool = False
    tools_executed: List[str] = Field(default_factory=list)
    steps: int = 0
    context_id: str = ""
    duplicate: bool = False

    @classmethod
    def from_reply(cls, reply: ChatReply) -> "ChatMessageResponse":
        return cls(
            success=reply.success,
            response=reply.text,
            kind=reply.kind.value,
            needs_confirmation=reply.needs_confirmation,
            needs_clarification=reply.needs_clarification,
            action_completed=reply.kind == ReplyKind.ACTION_COMPLETED,
            action_cancelled=reply.kind == ReplyKind.ACTION_CANCELLED,
            tools_executed=reply.tools_executed,
            steps=reply.steps,
            context_id=reply.session_epoch,
        )


class MemoryResponse(BaseModel):
    sender: str
    context_id: Optional[str] = None
    history_length: int
    last_activity: Optional[float] = None
    seconds_since_last_activity: Optional[float] = None
    has_pending_action: bool
    pending_tools: List[str] = Field(default_factory=list)
    history: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "MemoryResponse":
        return cls(
            sender=snapshot.sender_id,
            context_id=snapshot.epoch,
            history_length=snapshot.history_length,
            last_activity=snapshot.last_activity_at,
            seconds_since_last_activity=snapshot.seconds_since_last_activity,
            has_pending_action=snapshot.has_pending_action,
            pending_tools=snapshot.pending_tools,
            history=snapshot.history,
        )


class ClearMemoryRequest(BaseModel):
    sender: str = Field(default="default", min_length=1)


class ClearMemoryResponse(BaseModel):
    success: bool
    message: str
    existed: bool


class RecordStoreHealthResponse(BaseModel):
    success: bool
    provider: str
    message: str
    error: Optional[str] = None


class TelegramWebhookResponse(BaseModel):
    ok: bool
    status: str
    reason: Optional[str] = None
