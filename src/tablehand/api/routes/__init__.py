"""API route modules."""

from tablehand.api.routes import chat, health, memory, metrics, telegram

__all__ = ["chat", "health", "memory", "metrics", "telegram"]
