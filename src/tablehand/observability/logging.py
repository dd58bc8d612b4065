"""Structured JSON logging.

Every event carries the service name and, when set, the ``request_id`` of the
HTTP request and the ``sender`` whose conversation is being handled. Hebrew
text is rendered as-is rather than ``\\u`` escaped.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, MutableMapping

import structlog

SERVICE_NAME = "tablehand"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
sender_var: ContextVar[str] = ContextVar("sender", default="")


def _add_conversation_context(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    request_id = request_id_var.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    sender = sender_var.get()
    if sender:
        event_dict.setdefault("sender", sender)
    return event_dict


def configure_logging(level: str = "INFO") -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_conversation_context,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=log_level, format="%(message)s")


def get_logger(name: str | None = None) -> Any:
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)


def get_request_id() -> str:
    return request_id_var.get()


@contextmanager
def bind_sender(sender_id: str) -> Iterator[None]:
    """Tag log events emitted inside the block with ``sender``."""
    token = sender_var.set(sender_id)
    try:
        yield
    finally:
        sender_var.reset(token)


logger = get_logger(SERVICE_NAME)
