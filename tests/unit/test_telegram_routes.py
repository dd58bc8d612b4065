"""Unit tests for the Telegram webhook route."""

from __future__ import annotations

from typing import Any, Sequence

import pytest

from tablehand.conversation import messages
from tablehand.conversation.models import Turn
from tablehand.notifications.telegram import NotificationResult
from tablehand.reasoning.base import ReasoningTransportError
from tablehand.tools.catalogue import ToolCatalogue


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send_message(self, chat_id: str, text: str, **_kwargs: Any) -> NotificationResult:
        self.sent.append((chat_id, text))
        return NotificationResult(success=True, message_id=1)


@pytest.fixture
def notifier():  # type: ignore[no-untyped-def]
    from tablehand.api.routes.telegram import get_notifier
    from tablehand.api.server import app

    fake = FakeNotifier()
    app.dependency_overrides[get_notifier] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_notifier, None)


def _update(text: str = "היי", *, update_id: int = 1, chat_id: int = 42) -> dict[str, Any]:
    return {
        "update_id": update_id,
        "message": {"message_id": 7, "text": text, "chat": {"id": chat_id}},
    }


def test_build_message_key_prefers_update_id() -> None:
    from tablehand.api.routes.telegram import _build_message_key

    assert _build_message_key({"update_id": 123}, "c", {"message_id": 9}) == "update:123"
    assert _build_message_key({}, "c", {"message_id": 9}) == "chat:c:message:9"
    assert _build_message_key({}, "c", {}) is None


@pytest.mark.anyio
async def test_webhook_rejects_when_no_chats_allowed(async_client, notifier) -> None:
    resp = await async_client.post("/v1/telegram/webhook", json=_update())

    assert resp.status_code == 403
    assert notifier.sent == []


@pytest.mark.anyio
async def test_webhook_rejects_chat_outside_allowlist(async_client, notifier, monkeypatch) -> None:
    from tablehand.config import settings

    monkeypatch.setattr(settings, "telegram_allowed_chat_ids", ["1000"])

    resp = await async_client.post("/v1/telegram/webhook", json=_update(chat_id=42))

    assert resp.status_code == 403


@pytest.mark.anyio
async def test_webhook_checks_secret_token(async_client, notifier, monkeypatch) -> None:
    from tablehand.config import settings

    monkeypatch.setattr(settings, "telegram_webhook_secret", "s3cret")
    monkeypatch.setattr(settings, "telegram_allow_all_chats", True)

    bad = await async_client.post("/v1/telegram/webhook", json=_update())
    good = await async_client.post(
        "/v1/telegram/webhook",
        json=_update(),
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )

    assert bad.status_code == 401
    assert good.status_code == 200


@pytest.mark.anyio
async def test_webhook_replies_through_orchestrator(async_client, notifier, monkeypatch) -> None:
    from tablehand.api.server import app
    from tablehand.config import settings

    monkeypatch.setattr(settings, "telegram_allowed_chat_ids", ["42"])

    resp = await async_client.post("/v1/telegram/webhook", json=_update("חפש את דני"))

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "status": "ok", "reason": None}
    assert notifier.sent == [("42", "קיבלתי: חפש את דני")]
    assert app.state.orchestrator.snapshot("telegram:42").history_length == 2


@pytest.mark.anyio
async def test_webhook_ignores_redelivered_update(async_client, notifier, monkeypatch) -> None:
    from tablehand.config import settings

    monkeypatch.setattr(settings, "telegram_allow_all_chats", True)

    first = await async_client.post("/v1/telegram/webhook", json=_update(update_id=5))
    second = await async_client.post("/v1/telegram/webhook", json=_update(update_id=5))

    assert first.json()["status"] == "ok"
    assert second.json() == {"ok": True, "status": "ignored", "reason": "duplicate"}
    assert len(notifier.sent) == 1


@pytest.mark.anyio
async def test_webhook_requires_text_and_chat(async_client, notifier, monkeypatch) -> None:
    from tablehand.config import settings

    monkeypatch.setattr(settings, "telegram_allow_all_chats", True)

    resp = await async_client.post(
        "/v1/telegram/webhook", json={"update_id": 9, "message": {"chat": {"id": 1}}}
    )

    assert resp.status_code == 400


@pytest.mark.anyio
async def test_webhook_engine_outage_sends_apology(async_client, notifier, monkeypatch) -> None:
    from tablehand.api.server import app
    from tablehand.config import settings

    class DownEngine:
        async def converse(self, transcript: Sequence[Turn], catalogue: ToolCatalogue):  # type: ignore[no-untyped-def]
            raise ReasoningTransportError("down", provider="fake")

    monkeypatch.setattr(settings, "telegram_allow_all_chats", True)
    app.state.orchestrator.engine = DownEngine()

    resp = await async_client.post("/v1/telegram/webhook", json=_update())

    assert resp.status_code == 200
    assert notifier.sent == [("42", messages.ENGINE_UNAVAILABLE)]


@pytest.mark.anyio
async def test_webhook_requires_secret_in_production_settings(
    async_client, notifier, monkeypatch
) -> None:
    from tablehand.config import settings

    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "telegram_allow_all_chats", True)

    resp = await async_client.post("/v1/telegram/webhook", json=_update())

    assert resp.status_code == 500
    assert notifier.sent == []
