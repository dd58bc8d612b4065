"""Circuit breaker for reasoning engine calls.

Stops hammering the conversational model while it is unreachable. It never
retries; a rejected call surfaces to the caller as a transport failure.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from tablehand.config import settings
from tablehand.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing fast
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitBreakerError(Exception):
    """Raised when circuit breaker is open."""


class CircuitBreaker:
    """Circuit breaker implementation.

    Transitions:
    - CLOSED -> OPEN: After failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: After recovery_timeout seconds
    - HALF_OPEN -> CLOSED: After a successful call
    - HALF_OPEN -> OPEN: After a failure, or when half_open_max_calls is exceeded
    """

    def __init__(
        self,
        failure_threshold: int | None = None,
        recovery_timeout: float | None = None,
        half_open_max_calls: int = 3,
        name: str = "circuit_breaker",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold or settings.circuit_breaker_failure_threshold
        self.recovery_timeout = recovery_timeout or settings.circuit_breaker_recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self.name = name
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._half_open_calls = 0

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if self._clock() - self._last_failure_time >= self.recovery_timeout:
                logger.info("circuit_half_open", breaker=self.name)
                self._state = CircuitState.HALF_OPEN
                self._half_open_calls = 0
        return self._state

    def _admit(self) -> None:
        current_state = self.state

        if current_state == CircuitState.OPEN:
            logger.warning("circuit_rejected_call", breaker=self.name)
            raise CircuitBreakerError(f"Circuit breaker {self.name} is OPEN")

        if current_state == CircuitState.HALF_OPEN:
            if self._half_open_calls >= self.half_open_max_calls:
                self._trip()
                raise CircuitBreakerError(f"Circuit breaker {self.name} exceeded half-open limit")
            self._half_open_calls += 1

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute a sync function with circuit breaker protection.

        Raises:
            CircuitBreakerError: If circuit is open
        """
        self._admit()
        try:
            result = func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    async def call_async(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Await a coroutine function with circuit breaker protection."""
        self._admit()
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _trip(self) -> None:
        self._state = CircuitState.OPEN
        self._last_failure_time = self._clock()
        self._half_open_calls = 0

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            logger.info("circuit_closed", breaker=self.name)
            self._state = CircuitState.CLOSED
            self._half_open_calls = 0
            self._last_failure_time = None
        self._failure_count = 0

    def _on_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            logger.warning("circuit_reopened", breaker=self.name)
            self._trip()
        elif self._failure_count >= self.failure_threshold:
            logger.warning(
                "circuit_opened", breaker=self.name, failure_threshold=self.failure_threshold
            )
            self._trip()

    def reset(self) -> None:
        """Manually reset circuit breaker to closed state."""
        logger.info("circuit_reset", breaker=self.name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None
        self._half_open_calls = 0
