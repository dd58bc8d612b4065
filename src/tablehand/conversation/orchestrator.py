"""The per-message control loop.

Each inbound message passes the topic-boundary detector, then the
confirmation gate, then the bounded reasoning loop. Mutating tool requests
suspend the loop until the sender answers the confirmation prompt.
"""

from __future__ import annotations

from typing import Sequence

from tablehand.config import settings
from tablehand.conversation import messages
from tablehand.conversation.boundary import BoundaryDetector, KeywordBoundaryDetector
from tablehand.conversation.confirmation import Classification, ConfirmationGate
from tablehand.conversation.models import (
    AwaitingConfirmation,
    ChatReply,
    PendingAction,
    ReplyKind,
    SessionSnapshot,
    ToolInvocationRequest,
    Turn,
)
from tablehand.conversation.session_store import SessionStore
from tablehand.conversation.tool_results import execute_tool
from tablehand.observability.logging import get_logger
from tablehand.observability.metrics import REASONING_STEPS, TURNS_TOTAL
from tablehand.reasoning.base import ReasoningEngine
from tablehand.records.executor import ToolExecutor
from tablehand.tools.catalogue import TOOL_CATALOGUE, ToolCatalogue

logger = get_logger(__name__)

__all__ = ["Orchestrator"]


class Orchestrator:
    """Drives one sender's conversation between the user, the engine and the tools.

    Engine failures propagate as
    :class:`~tablehand.reasoning.base.ReasoningTransportError`; tool failures
    never escape and are handed back to the engine as error results.
    """

    def __init__(
        self,
        engine: ReasoningEngine,
        executor: ToolExecutor,
        *,
        sessions: SessionStore | None = None,
        gate: ConfirmationGate | None = None,
        detector: BoundaryDetector | None = None,
        catalogue: ToolCatalogue = TOOL_CATALOGUE,
        max_steps: int | None = None,
    ) -> None:
        self.engine = engine
        self.executor = executor
        self.sessions = sessions or SessionStore()
        self.gate = gate or ConfirmationGate(executor, clock=self.sessions.now)
        self.detector = detector or KeywordBoundaryDetector()
        self.catalogue = catalogue
        self.max_steps = max_steps if max_steps is not None else settings.max_steps
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.sessions.add_reset_listener(self.gate.on_session_reset)

    async def handle_message(self, sender_id: str, message: str) -> ChatReply:
        session = self.sessions.get(sender_id)
        logger.info("message_received", sender=sender_id, epoch=session.epoch, length=len(message))

        state = self.gate.state(sender_id)
        awaiting = isinstance(state, AwaitingConfirmation)
        if (session.transcript or awaiting) and self.detector.should_reset(
            message, session, awaiting_confirmation=awaiting
        ):
            self.sessions.reset(sender_id, reason="topic_boundary")
            state = self.gate.state(sender_id)

        if isinstance(state, AwaitingConfirmation):
            classification = self.gate.classify(message)
            logger.info(
                "confirmation_reply", sender=sender_id, classification=classification.value
            )
            if classification == Classification.APPROVE:
                return await self._approve(sender_id)
            if classification == Classification.REJECT:
                return self._reject(sender_id)
            if classification == Classification.UNCLEAR:
                return self._reply(
                    sender_id, ReplyKind.NEEDS_CLARIFICATION, messages.UNCLEAR_CONFIRMATION
                )

            # Superseded: the new message is a request of its own.
            self.gate.discard(sender_id, "superseded")
            self._close_pending(sender_id, state.pending, messages.ACTION_SUPERSEDED)
            session = self.sessions.get(sender_id)
            if self.detector.should_reset(message, session):
                self.sessions.reset(sender_id, reason="topic_boundary")

        return await self._run_loop(sender_id, message)

    async def _run_loop(self, sender_id: str, message: str) -> ChatReply:
        self.sessions.append(sender_id, Turn.user(message, self.sessions.now()))
        tools_executed: list[str] = []

        for step in range(1, self.max_steps + 1):
            session = self.sessions.get(sender_id)
            turn = await self.engine.converse(list(session.transcript), self.catalogue)
            logger.info(
                "reasoning_step",
                sender=sender_id,
                step=step,
                tools=[request.name for request in turn.tool_requests],
            )

            if not turn.wants_tools:
                text = turn.text.strip()
                if not text:
                    text = (
                        messages.EMPTY_ANSWER_AFTER_TOOLS if tools_executed else messages.EMPTY_ANSWER
                    )
                self.sessions.append(sender_id, Turn.assistant(text, self.sessions.now()))
                return self._reply(
                    sender_id, ReplyKind.ANSWER, text, tools_executed=tools_executed, steps=step
                )

            self.sessions.append(
                sender_id, Turn.assistant(turn.text, self.sessions.now(), turn.tool_requests)
            )
            read_only, mutating = self.catalogue.partition(turn.tool_requests)
            if mutating:
                return self._suspend(sender_id, message, turn.tool_requests, tools_executed, step)

            results = []
            for request in read_only:
                tools_executed.append(request.name)
                results.append(await execute_tool(self.executor, request))
            self.sessions.append(sender_id, Turn.results(results, self.sessions.now()))

        logger.warning(
            "loop_exhausted", sender=sender_id, max_steps=self.max_steps, tools=tools_executed
        )
        text = messages.exhausted_summary(tools_executed)
        self.sessions.append(sender_id, Turn.assistant(text, self.sessions.now()))
        return self._reply(
            sender_id,
            ReplyKind.ANSWER,
            text,
            tools_executed=tools_executed,
            steps=self.max_steps,
        )

    def _suspend(
        self,
        sender_id: str,
        message: str,
        requests: Sequence[ToolInvocationRequest],
        tools_executed: list[str],
        step: int,
    ) -> ChatReply:
        session = self.sessions.get(sender_id)
        pending = self.gate.hold(
            sender_id,
            requests,
            message,
            transcript=session.transcript,
            session_epoch=session.epoch,
        )
        return self._reply(
            sender_id,
            ReplyKind.AWAITING_CONFIRMATION,
            pending.description,
            tools_executed=tools_executed,
            steps=step,
        )

    async def _approve(self, sender_id: str) -> ChatReply:
        outcome = await self.gate.approve(sender_id)
        if outcome is None:
            return self._reply(sender_id, ReplyKind.ANSWER, messages.EMPTY_ANSWER)
        now = self.sessions.now()
        self.sessions.append(sender_id, Turn.results(outcome.results, now))
        self.sessions.append(sender_id, Turn.assistant(outcome.text, now))
        return self._reply(
            sender_id,
            ReplyKind.ACTION_COMPLETED,
            outcome.text,
            success=not outcome.failures,
            tools_executed=[result.name for result in outcome.results],
        )

    def _reject(self, sender_id: str) -> ChatReply:
        pending = self.gate.reject(sender_id)
        if pending is not None:
            self._close_pending(sender_id, pending, messages.ACTION_CANCELLED)
        return self._reply(sender_id, ReplyKind.ACTION_CANCELLED, messages.ACTION_CANCELLED)

    def _close_pending(self, sender_id: str, pending: PendingAction, text: str) -> None:
        """Answer held requests with cancellation results so the transcript stays paired."""
        now = self.sessions.now()
        self.sessions.append(sender_id, Turn.results(self.gate.cancelled_results(pending), now))
        self.sessions.append(sender_id, Turn.assistant(text, now))

    def _reply(
        self,
        sender_id: str,
        kind: ReplyKind,
        text: str,
        *,
        success: bool = True,
        tools_executed: list[str] | None = None,
        steps: int = 0,
    ) -> ChatReply:
        session = self.sessions.peek(sender_id)
        TURNS_TOTAL.labels(kind=kind.value).inc()
        if steps:
            REASONING_STEPS.observe(steps)
        logger.info("reply_sent", sender=sender_id, kind=kind.value, steps=steps)
        return ChatReply(
            kind=kind,
            text=text,
            success=success,
            tools_executed=list(tools_executed or []),
            steps=steps,
            session_epoch=session.epoch if session else "",
        )

    def snapshot(self, sender_id: str) -> SessionSnapshot:
        session = self.sessions.peek(sender_id)
        pending = self.gate.pending(sender_id)
        if session is None:
            return SessionSnapshot(
                sender_id=sender_id,
                epoch=None,
                history_length=0,
                last_activity_at=None,
                seconds_since_last_activity=None,
                history=[],
                has_pending_action=pending is not None,
                pending_tools=pending.tool_names if pending else [],
            )
        return SessionSnapshot(
            sender_id=sender_id,
            epoch=session.epoch,
            history_length=len(session.transcript),
            last_activity_at=session.last_activity_at,
            seconds_since_last_activity=self.sessions.now() - session.last_activity_at,
            history=[turn.to_dict() for turn in session.transcript],
            has_pending_action=pending is not None,
            pending_tools=pending.tool_names if pending else [],
        )

    def clear(self, sender_id: str) -> bool:
        """Administrative reset: drop the session and any pending action."""
        existed = self.sessions.delete(sender_id)
        self.gate.discard(sender_id, "cleared")
        return existed
