"""Unit tests for inbound delivery guards."""

from __future__ import annotations

import asyncio

import pytest

from tablehand.api.concurrency import InboundGuard


@pytest.mark.anyio
async def test_seen_recently_is_idempotent() -> None:
    guard = InboundGuard(dedup_window_seconds=60, maxsize=10)

    assert await guard.seen_recently("k") is False
    assert await guard.seen_recently("k") is True
    assert await guard.seen_recently("other") is False


@pytest.mark.anyio
async def test_sender_lock_serializes_same_sender() -> None:
    guard = InboundGuard(dedup_window_seconds=60)
    order: list[str] = []

    async def handle(name: str, delay: float) -> None:
        async with guard.sender_lock("u1"):
            order.append(f"{name}-start")
            await asyncio.sleep(delay)
            order.append(f"{name}-end")

    await asyncio.gather(handle("a", 0.02), handle("b", 0))

    assert order == ["a-start", "a-end", "b-start", "b-end"]
    assert len(guard) == 0


@pytest.mark.anyio
async def test_sender_lock_does_not_block_other_senders() -> None:
    guard = InboundGuard(dedup_window_seconds=60)

    async with guard.sender_lock("u1"):
        async with guard.sender_lock("u2"):
            assert len(guard) == 2

    assert len(guard) == 0
