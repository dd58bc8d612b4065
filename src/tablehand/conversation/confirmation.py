"""Confirmation gate for mutating tool requests.

Per sender the gate is either idle or awaiting confirmation of exactly one
PendingAction. Holding a new action replaces the old one; approving,
rejecting or superseding always returns the sender to idle.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

from tablehand.config import settings
from tablehand.conversation import messages, phrases
from tablehand.conversation.models import (
    AwaitingConfirmation,
    Idle,
    PendingAction,
    Role,
    SenderState,
    ToolInvocationRequest,
    ToolResult,
    Turn,
)
from tablehand.conversation.session_store import InMemoryKeyValueStore, KeyValueStore
from tablehand.conversation.tool_results import error_result, execute_tool
from tablehand.observability.logging import get_logger
from tablehand.observability.metrics import CONFIRMATIONS
from tablehand.records.executor import ToolExecutor
from tablehand.tools import catalogue as tools

logger = get_logger(__name__)

__all__ = [
    "Classification",
    "ApprovalOutcome",
    "ConfirmationGate",
    "classify_reply",
]

_NAME_FIELDS = ("שם מלא", "שם העסקה", "שם הפרויקט", "שם המשרד", "שם", "Name")


class Classification(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    NEW_REQUEST = "new_request"
    UNCLEAR = "unclear"


def classify_reply(message: str) -> Classification:
    """Classify a reply to a confirmation prompt.

    Approval and rejection match whole words; a reply carrying both is
    unclear. Without either, an action verb anywhere in the text marks an
    unrelated new request.
    """
    normalized = phrases.normalize(message)
    rejects = phrases.contains_any_phrase(normalized, phrases.REJECTION)

    approval_text = f" {normalized} "
    for phrase in phrases.REJECTION:
        if " " in phrase:
            approval_text = approval_text.replace(f" {phrase} ", " ")
    approves = phrases.contains_any_phrase(approval_text.strip(), phrases.APPROVAL)

    if approves and not rejects:
        return Classification.APPROVE
    if rejects and not approves:
        return Classification.REJECT
    if approves and rejects:
        return Classification.UNCLEAR
    if any(verb in message for verb in phrases.NEW_REQUEST_VERBS):
        return Classification.NEW_REQUEST
    return Classification.UNCLEAR


@dataclass
class ApprovalOutcome:
    pending: PendingAction
    results: list[ToolResult] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.results) - len(self.failures)

    @property
    def text(self) -> str:
        return messages.approval_summary(len(self.results), self.failures)


def _render_value(value: Any) -> str:
    if value is None or value == "":
        return messages.UNKNOWN_VALUE
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def _record_name(fields: dict[str, Any]) -> str | None:
    for name in _NAME_FIELDS:
        if fields.get(name):
            return str(fields[name])
    return None


def _find_record(transcript: Sequence[Turn], record_id: str) -> dict[str, Any] | None:
    """Latest known fields of ``record_id`` from earlier tool results."""
    for turn in reversed(transcript):
        if turn.role != Role.TOOL_RESULT:
            continue
        for result in turn.tool_results:
            payload = result.payload()
            if not isinstance(payload, dict):
                continue
            if payload.get("id") == record_id and isinstance(payload.get("fields"), dict):
                return payload["fields"]
            for key in ("records", "transactions"):
                for record in payload.get(key) or []:
                    if isinstance(record, dict) and record.get("id") == record_id:
                        return record.get("fields") or {}
    return None


class ConfirmationGate:
    """Holds, describes and resolves mutating tool requests per sender."""

    def __init__(
        self,
        executor: ToolExecutor,
        *,
        backend: KeyValueStore[PendingAction] | None = None,
        table_labels: dict[str, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.executor = executor
        self._pending: KeyValueStore[PendingAction] = (
            backend if backend is not None else InMemoryKeyValueStore()
        )
        self.table_labels = table_labels if table_labels is not None else settings.table_labels
        self._clock = clock

    def state(self, sender_id: str) -> SenderState:
        pending = self._pending.get(sender_id)
        if pending is None:
            return Idle()
        return AwaitingConfirmation(pending=pending)

    def pending(self, sender_id: str) -> PendingAction | None:
        return self._pending.get(sender_id)

    def hold(
        self,
        sender_id: str,
        invocations: Sequence[ToolInvocationRequest],
        originating_message: str,
        *,
        transcript: Sequence[Turn] = (),
        session_epoch: str = "",
    ) -> PendingAction:
        pending = PendingAction(
            sender_id=sender_id,
            requested_invocations=tuple(invocations),
            originating_message=originating_message,
            description=self.describe(invocations, transcript),
            created_at=self._clock(),
            session_epoch=session_epoch,
        )
        replaced = self._pending.get(sender_id)
        self._pending.set(sender_id, pending)
        if replaced is not None:
            CONFIRMATIONS.labels(transition="replaced").inc()
        CONFIRMATIONS.labels(transition="held").inc()
        logger.info(
            "confirmation_held",
            sender=sender_id,
            tools=pending.tool_names,
            replaced=replaced is not None,
        )
        return pending

    classify = staticmethod(classify_reply)

    async def approve(self, sender_id: str) -> ApprovalOutcome | None:
        """Execute every held invocation in order, each attempted independently."""
        pending = self._pending.delete(sender_id)
        if pending is None:
            return None
        outcome = ApprovalOutcome(pending=pending)
        for request in pending.requested_invocations:
            result = await execute_tool(self.executor, request)
            outcome.results.append(result)
            if result.is_error:
                payload = result.payload()
                hint = payload.get("message") if isinstance(payload, dict) else result.content
                outcome.failures.append((request.name, str(hint)))
        CONFIRMATIONS.labels(transition="approved").inc()
        logger.info(
            "confirmation_approved",
            sender=sender_id,
            total=len(outcome.results),
            failed=len(outcome.failures),
        )
        return outcome

    def reject(self, sender_id: str) -> PendingAction | None:
        pending = self._pending.delete(sender_id)
        if pending is not None:
            CONFIRMATIONS.labels(transition="rejected").inc()
            logger.info("confirmation_rejected", sender=sender_id, tools=pending.tool_names)
        return pending

    def discard(self, sender_id: str, reason: str) -> PendingAction | None:
        pending = self._pending.delete(sender_id)
        if pending is not None:
            CONFIRMATIONS.labels(transition=reason).inc()
            logger.info("confirmation_discarded", sender=sender_id, reason=reason)
        return pending

    def on_session_reset(self, sender_id: str, reason: str) -> None:
        """Session-store listener: a reset conversation owes no confirmation."""
        self.discard(sender_id, f"session_{reason}")

    def sweep(self, max_age_seconds: float, live_senders: set[str]) -> list[str]:
        """Drop actions whose session is gone or that are older than ``max_age_seconds``."""
        now = self._clock()
        removed: list[str] = []
        for sender_id in self._pending.keys():
            pending = self._pending.get(sender_id)
            if pending is None:
                continue
            if sender_id in live_senders and now - pending.created_at <= max_age_seconds:
                continue
            self.discard(sender_id, "swept")
            removed.append(sender_id)
        return removed

    def cancelled_results(self, pending: PendingAction) -> list[ToolResult]:
        """Error results closing out held requests that will never run."""
        return [
            error_result(request, "cancelled", messages.CANCELLED_TOOL_RESULT)
            for request in pending.requested_invocations
        ]

    def describe(
        self, invocations: Sequence[ToolInvocationRequest], transcript: Sequence[Turn] = ()
    ) -> str:
        """Render a proposal for the user to approve."""
        lines: list[str] = [messages.CONFIRMATION_HEADER]
        for request in invocations:
            arguments = request.arguments or {}
            fields = arguments.get("fields") if isinstance(arguments.get("fields"), dict) else {}
            label = self.table_labels.get(str(arguments.get("table_id", "")), "רשומה")

            if request.name == tools.CREATE_RECORD:
                lines.append(f"🆕 יצירת {label} חדשה\n")
                for name, value in fields.items():
                    lines.append(f"📝 {name}: {_render_value(value)}\n")
                lines.append("\n")
            elif request.name == tools.UPDATE_RECORD:
                record_id = str(arguments.get("record_id", ""))
                current = _find_record(transcript, record_id) or {}
                record_name = _record_name(current) or record_id or label
                lines.append(f"🔄 עדכון {label} עבור: {record_name}\n")
                for name, value in fields.items():
                    lines.append(
                        f"📝 {name}:\n   {_render_value(current.get(name))}\n"
                        f"   ⬇️\n   {_render_value(value)}\n\n"
                    )
            else:
                lines.append(f"🔍 {request.name}\n\n")
        lines.append(messages.CONFIRMATION_FOOTER)
        return "".join(lines)
