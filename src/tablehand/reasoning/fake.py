"""Deterministic engine for local development and tests."""

from __future__ import annotations

from collections import deque
from typing import Callable, Iterable, Sequence

from tablehand.conversation.models import Role, Turn
from tablehand.reasoning.base import EngineTurn
from tablehand.tools.catalogue import ToolCatalogue

__all__ = ["FakeReasoningEngine"]

Responder = Callable[[Sequence[Turn]], EngineTurn]


def _echo(transcript: Sequence[Turn]) -> EngineTurn:
    for turn in reversed(transcript):
        if turn.role == Role.USER:
            return EngineTurn(text=f"קיבלתי: {turn.content}")
    return EngineTurn(text="קיבלתי")


class FakeReasoningEngine:
    """Replays scripted turns, then falls back to ``responder``.

    Every call records a copy of the transcript it was given in ``calls``.
    """

    def __init__(
        self,
        turns: Iterable[EngineTurn] = (),
        *,
        responder: Responder | None = None,
    ) -> None:
        self._script: deque[EngineTurn] = deque(turns)
        self._responder = responder or _echo
        self.calls: list[list[Turn]] = []

    def queue(self, *turns: EngineTurn) -> None:
        self._script.extend(turns)

    async def converse(self, transcript: Sequence[Turn], catalogue: ToolCatalogue) -> EngineTurn:
        self.calls.append(list(transcript))
        if self._script:
            return self._script.popleft()
        return self._responder(transcript)
