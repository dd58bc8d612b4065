"""tablehand observability module - Logging and metrics.

Observability is handled at two levels:
1. **Logging**: Structured JSON logs via structlog
2. **Metrics**: Prometheus counters exposed at ``/metrics``

Usage:
    from tablehand.observability import get_logger

    logger = get_logger(__name__)
    logger.info("tool_finished", tool=name, sender=sender_id)
"""

from __future__ import annotations

from tablehand.observability.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "init_observability",
]

_OBSERVABILITY_INITIALIZED = False


def init_observability() -> None:
    """Initialize logging for the process (idempotent).

    This is intentionally *not* executed on import so `tablehand` can be used as a
    library without mutating global logging configuration.
    """
    global _OBSERVABILITY_INITIALIZED
    if _OBSERVABILITY_INITIALIZED:
        return
    from tablehand.config import settings

    configure_logging(settings.log_level)
    _OBSERVABILITY_INITIALIZED = True
