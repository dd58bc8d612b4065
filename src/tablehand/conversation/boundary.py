"""Topic-boundary detection: should an inbound message start a fresh conversation?

The default strategy is keyword and lexical-overlap based. Greeting and
start-over phrases always reset; the heuristic rules only run on an existing
conversation and are suppressed while the sender owes a confirmation answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from tablehand.config import settings
from tablehand.conversation import phrases
from tablehand.conversation.models import Session
from tablehand.observability.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "BoundaryDetector",
    "BoundaryDecision",
    "KeywordBoundaryDetector",
    "lexical_similarity",
    "name_like_tokens",
]


class BoundaryDetector(Protocol):
    def should_reset(
        self, message: str, session: Session, *, awaiting_confirmation: bool = False
    ) -> bool: ...


@dataclass(frozen=True)
class BoundaryDecision:
    reset: bool
    rule: str | None = None


def _significant_words(text: str) -> set[str]:
    return {word for word in text.split(" ") if len(word) > 2}


def lexical_similarity(first: str, second: str) -> float:
    """Shared words longer than two characters over the larger word set."""
    words_a = _significant_words(first)
    words_b = _significant_words(second)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / max(len(words_a), len(words_b))


def name_like_tokens(message: str) -> list[str]:
    """Tokens that look like a proper name being introduced.

    Capitalized Latin words count on their own. Hebrew has no letter case, so a
    Hebrew word counts when it directly follows an entity marker such as
    "הלקוח" or "פרויקט".
    """
    words = phrases.normalize(message).split()
    original = message.split()
    names: list[str] = []
    for raw in original:
        token = raw.strip(".,!?:;\"'()")
        if len(token) >= 2 and token[0].isascii() and token[0].isupper():
            names.append(token)
    for index, word in enumerate(words[:-1]):
        if word in phrases.ENTITY_MARKERS:
            names.append(words[index + 1])
    return names


class KeywordBoundaryDetector:
    """First-match-wins rule list over fixed phrase sets."""

    def __init__(
        self,
        *,
        similarity_threshold: float | None = None,
        greetings: tuple[str, ...] = phrases.GREETINGS,
        start_over: tuple[str, ...] = phrases.START_OVER,
        action_verbs: tuple[str, ...] = phrases.ACTION_VERBS,
        continuation: tuple[str, ...] = phrases.CONTINUATION,
    ) -> None:
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else settings.topic_similarity_threshold
        )
        self.greetings = greetings
        self.start_over = start_over
        self.action_verbs = action_verbs
        self.continuation = continuation

    def _is_continuation(self, lowered: str) -> bool:
        return any(
            lowered == keyword or lowered.startswith(keyword + " ") for keyword in self.continuation
        )

    def explain(
        self, message: str, session: Session, *, awaiting_confirmation: bool = False
    ) -> BoundaryDecision:
        lowered = message.lower().strip()

        if lowered in self.greetings or phrases.normalize(message) in self.greetings:
            return BoundaryDecision(True, "greeting")
        if any(phrase in lowered for phrase in self.start_over):
            return BoundaryDecision(True, "start_over")

        if awaiting_confirmation or not session.transcript:
            return BoundaryDecision(False)

        has_action = any(verb in lowered for verb in self.action_verbs)
        if has_action and not self._is_continuation(lowered):
            previous = session.last_user_text()
            if previous is not None:
                similarity = lexical_similarity(lowered, previous.lower())
                if similarity < self.similarity_threshold:
                    return BoundaryDecision(True, "new_action")

        history_text = session.transcript_text()
        if any(name not in history_text for name in name_like_tokens(message)):
            return BoundaryDecision(True, "new_entity")

        return BoundaryDecision(False)

    def should_reset(
        self, message: str, session: Session, *, awaiting_confirmation: bool = False
    ) -> bool:
        decision = self.explain(message, session, awaiting_confirmation=awaiting_confirmation)
        if decision.reset:
            logger.info("topic_boundary", sender=session.sender_id, rule=decision.rule)
        return decision.reset
