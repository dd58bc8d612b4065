"""Inbound delivery guards: per-sender serialization and duplicate suppression."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from cachetools import TTLCache  # type: ignore

from tablehand.config import settings

__all__ = ["InboundGuard"]


class InboundGuard:
    """One asyncio lock per sender plus a TTL cache of recently seen message ids."""

    def __init__(self, dedup_window_seconds: int | None = None, maxsize: int = 10000) -> None:
        window = (
            dedup_window_seconds
            if dedup_window_seconds is not None
            else settings.inbound_dedup_window_seconds
        )
        self._seen: TTLCache = TTLCache(maxsize=maxsize, ttl=window)
        self._seen_lock = asyncio.Lock()
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    async def seen_recently(self, message_key: str) -> bool:
        """Record ``message_key``; True if it was already recorded within the window."""
        async with self._seen_lock:
            if message_key in self._seen:
                return True
            self._seen[message_key] = True  # TTLCache handles expiration
            return False

    @asynccontextmanager
    async def sender_lock(self, sender_id: str) -> AsyncIterator[None]:
        """Serialize handling of messages from the same sender."""
        lock = self._locks.setdefault(sender_id, asyncio.Lock())
        self._holders[sender_id] = self._holders.get(sender_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[sender_id] -= 1
            if self._holders[sender_id] == 0:
                del self._holders[sender_id]
                del self._locks[sender_id]

    def __len__(self) -> int:
        return len(self._locks)
