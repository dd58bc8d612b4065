"""Per-sender session memory with idle timeout and bounded transcripts.

Sessions live in a pluggable key-value backend (in-memory by default) and are
never persisted beyond the process lifetime. Every reset or removal is
broadcast to listeners so dependent per-sender state, such as a pending
confirmation, can be dropped with it.
"""

from __future__ import annotations

import time
from typing import Callable, Generic, Protocol, TypeVar

from tablehand.config import settings
from tablehand.conversation.models import Session, Turn, new_epoch
from tablehand.observability.logging import get_logger
from tablehand.observability.metrics import SESSION_RESETS

logger = get_logger(__name__)

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SessionStore",
    "ResetListener",
]

V = TypeVar("V")

ResetListener = Callable[[str, str], None]


class KeyValueStore(Protocol[V]):
    def get(self, key: str) -> V | None: ...

    def set(self, key: str, value: V) -> None: ...

    def delete(self, key: str) -> V | None: ...

    def keys(self) -> list[str]: ...


class InMemoryKeyValueStore(Generic[V]):
    """Dict-backed store; one instance per concern keeps tests isolated."""

    def __init__(self) -> None:
        self._data: dict[str, V] = {}

    def get(self, key: str) -> V | None:
        return self._data.get(key)

    def set(self, key: str, value: V) -> None:
        self._data[key] = value

    def delete(self, key: str) -> V | None:
        return self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)


class SessionStore:
    """Sender-keyed sessions with lazy creation, idle reset and retention."""

    def __init__(
        self,
        backend: KeyValueStore[Session] | None = None,
        *,
        max_history: int | None = None,
        keep_head: int | None = None,
        idle_timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend: KeyValueStore[Session] = (
            backend if backend is not None else InMemoryKeyValueStore()
        )
        self.max_history = max_history if max_history is not None else settings.session_max_history
        self.keep_head = keep_head if keep_head is not None else settings.session_keep_head
        self.idle_timeout_seconds = (
            idle_timeout_seconds
            if idle_timeout_seconds is not None
            else settings.session_idle_timeout_seconds
        )
        if not 0 <= self.keep_head < self.max_history:
            raise ValueError("keep_head must be smaller than max_history")
        self._clock = clock
        self._listeners: list[ResetListener] = []

    def now(self) -> float:
        return self._clock()

    def add_reset_listener(self, listener: ResetListener) -> None:
        self._listeners.append(listener)

    def _notify(self, sender_id: str, reason: str) -> None:
        SESSION_RESETS.labels(reason=reason).inc()
        for listener in self._listeners:
            listener(sender_id, reason)

    def _create(self, sender_id: str) -> Session:
        session = Session(sender_id=sender_id, last_activity_at=self._clock())
        self._backend.set(sender_id, session)
        logger.info("session_created", sender=sender_id, epoch=session.epoch)
        return session

    def _clear(self, session: Session, reason: str) -> None:
        session.transcript = []
        session.epoch = new_epoch()
        logger.info("session_reset", sender=session.sender_id, reason=reason, epoch=session.epoch)
        self._notify(session.sender_id, reason)

    def get(self, sender_id: str) -> Session:
        """Return the sender's session, creating it or clearing it if idle too long."""
        session = self._backend.get(sender_id)
        if session is None:
            return self._create(sender_id)

        now = self._clock()
        if now - session.last_activity_at > self.idle_timeout_seconds:
            self._clear(session, reason="idle_timeout")
        session.last_activity_at = now
        return session

    def peek(self, sender_id: str) -> Session | None:
        """Return the session without creating or touching it."""
        return self._backend.get(sender_id)

    def append(self, sender_id: str, turn: Turn) -> Session:
        session = self._backend.get(sender_id) or self._create(sender_id)
        session.transcript.append(turn)
        session.last_activity_at = self._clock()
        self.prune(sender_id)
        return session

    def prune(self, sender_id: str) -> int:
        """Apply the retention policy; returns how many entries were dropped."""
        session = self._backend.get(sender_id)
        if session is None or len(session.transcript) <= self.max_history:
            return 0

        tail = self.max_history - self.keep_head
        before = len(session.transcript)
        session.transcript = session.transcript[: self.keep_head] + session.transcript[-tail:]
        dropped = before - len(session.transcript)
        logger.info("session_pruned", sender=sender_id, dropped=dropped, kept=len(session.transcript))
        return dropped

    def reset(self, sender_id: str, reason: str = "explicit") -> Session:
        session = self._backend.get(sender_id)
        if session is None:
            session = self._create(sender_id)
            self._notify(sender_id, reason)
            return session
        self._clear(session, reason)
        session.last_activity_at = self._clock()
        return session

    def delete(self, sender_id: str) -> bool:
        """Administrative clear: drop the session entirely."""
        removed = self._backend.delete(sender_id)
        self._notify(sender_id, "cleared")
        logger.info("session_deleted", sender=sender_id, existed=removed is not None)
        return removed is not None

    def sweep(self, max_idle_seconds: float) -> list[str]:
        """Remove sessions idle for longer than ``max_idle_seconds``.

        Each entry is re-read right before removal so a session touched while
        the sweep runs survives.
        """
        removed: list[str] = []
        for sender_id in self._backend.keys():
            session = self._backend.get(sender_id)
            if session is None:
                continue
            if self._clock() - session.last_activity_at <= max_idle_seconds:
                continue
            self._backend.delete(sender_id)
            self._notify(sender_id, "swept")
            removed.append(sender_id)
        return removed

    def senders(self) -> list[str]:
        return self._backend.keys()
