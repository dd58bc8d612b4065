"""Resilience patterns for production reliability."""

from tablehand.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerError, CircuitState

__all__ = ["CircuitBreaker", "CircuitBreakerError", "CircuitState"]
