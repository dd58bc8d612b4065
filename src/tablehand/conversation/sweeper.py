"""Background removal of long-idle sessions and orphaned pending actions."""

from __future__ import annotations

import asyncio

from tablehand.config import settings
from tablehand.conversation.confirmation import ConfirmationGate
from tablehand.conversation.session_store import SessionStore
from tablehand.observability.logging import get_logger

logger = get_logger(__name__)

__all__ = ["SessionSweeper"]


class SessionSweeper:
    def __init__(
        self,
        sessions: SessionStore,
        gate: ConfirmationGate,
        *,
        interval_seconds: float | None = None,
        max_idle_seconds: float | None = None,
    ) -> None:
        self.sessions = sessions
        self.gate = gate
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else settings.session_sweep_interval_seconds
        )
        self.max_idle_seconds = (
            max_idle_seconds
            if max_idle_seconds is not None
            else settings.session_idle_timeout_seconds * settings.session_sweep_idle_multiplier
        )
        self._task: asyncio.Task[None] | None = None

    def run_once(self) -> tuple[list[str], list[str]]:
        """One sweep pass; returns (removed sessions, removed pending actions)."""
        sessions = self.sessions.sweep(self.max_idle_seconds)
        orphans = self.gate.sweep(self.max_idle_seconds, set(self.sessions.senders()))
        if sessions or orphans:
            logger.info("sweep_completed", sessions=len(sessions), pending_actions=len(orphans))
        return sessions, orphans

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception:
                logger.exception("sweep_failed")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop(), name="session-sweeper")
            logger.info(
                "sweeper_started",
                interval_seconds=self.interval_seconds,
                max_idle_seconds=self.max_idle_seconds,
            )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("sweeper_stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
