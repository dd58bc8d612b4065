"""Conversation scenarios through the orchestrator with fake engine and store."""

from __future__ import annotations

from itertools import count
from typing import Sequence

import pytest

from tablehand.config import settings
from tablehand.conversation import messages
from tablehand.conversation.models import (
    AwaitingConfirmation,
    Idle,
    ReplyKind,
    Role,
    ToolInvocationRequest,
    Turn,
)
from tablehand.conversation.orchestrator import Orchestrator
from tablehand.conversation.session_store import SessionStore
from tablehand.reasoning.base import EngineTurn, ReasoningTransportError
from tablehand.reasoning.fake import FakeReasoningEngine
from tablehand.records.errors import RecordNotFoundError
from tablehand.records.executor import RecordToolExecutor
from tablehand.records.fake import FakeRecordStore
from tablehand.tools.catalogue import TOOL_CATALOGUE, ToolCatalogue

CUSTOMERS = settings.airtable_customers_table
DANI = "recDani000000001"
UPDATE_MESSAGE = "עדכן את הלקוח דני לסטטוס בתהליך"


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _store() -> FakeRecordStore:
    return FakeRecordStore(
        {CUSTOMERS: [{"id": DANI, "fields": {"שם מלא": "דני כהן", "סטטוס": "חדש"}}]}
    )


def _orchestrator(
    engine: FakeReasoningEngine,
    store: FakeRecordStore | None = None,
    *,
    clock: FakeClock | None = None,
    max_steps: int = 10,
    max_history: int = 10,
    keep_head: int = 2,
) -> tuple[Orchestrator, FakeRecordStore, FakeClock]:
    clock = clock or FakeClock()
    store = store or _store()
    sessions = SessionStore(
        max_history=max_history, keep_head=keep_head, idle_timeout_seconds=1800, clock=clock
    )
    orchestrator = Orchestrator(
        engine, RecordToolExecutor(store), sessions=sessions, max_steps=max_steps
    )
    return orchestrator, store, clock


def _search(request_id: str = "tu1", term: str = "דני") -> EngineTurn:
    return EngineTurn(
        tool_requests=(
            ToolInvocationRequest(
                request_id, "search_records", {"table_id": CUSTOMERS, "search_term": term}
            ),
        )
    )


def _update(request_id: str = "tu2", record_id: str = DANI) -> EngineTurn:
    return EngineTurn(
        text="מצאתי את דני, מעדכן",
        tool_requests=(
            ToolInvocationRequest(
                request_id,
                "update_record",
                {"table_id": CUSTOMERS, "record_id": record_id, "fields": {"סטטוס": "בתהליך"}},
            ),
        ),
    )


def _operations(store: FakeRecordStore) -> list[str]:
    return [name for name, _ in store.calls]


async def _propose_update(orchestrator: Orchestrator, engine: FakeReasoningEngine):  # type: ignore[no-untyped-def]
    engine.queue(_search(), _update())
    return await orchestrator.handle_message("u1", UPDATE_MESSAGE)


@pytest.mark.anyio
async def test_greeting_on_fresh_session_answers_directly() -> None:
    engine = FakeReasoningEngine([EngineTurn(text="שלום! איך אפשר לעזור?")])
    orchestrator, store, _ = _orchestrator(engine)

    reply = await orchestrator.handle_message("u1", "היי")

    assert reply.kind == ReplyKind.ANSWER
    assert reply.text == "שלום! איך אפשר לעזור?"
    assert reply.steps == 1
    assert [turn.content for turn in engine.calls[0]] == ["היי"]
    assert store.calls == []
    assert orchestrator.snapshot("u1").history_length == 2


@pytest.mark.anyio
async def test_unrelated_request_starts_a_new_conversation() -> None:
    engine = FakeReasoningEngine()
    orchestrator, _, _ = _orchestrator(engine)

    first = await orchestrator.handle_message("u1", "חפש את הפרויקט מגדלי הים")
    engine.queue(EngineTurn(text="בסדר"))
    second = await orchestrator.handle_message("u1", UPDATE_MESSAGE)

    assert second.session_epoch != first.session_epoch
    assert [turn.content for turn in engine.calls[-1]] == [UPDATE_MESSAGE]


@pytest.mark.anyio
async def test_update_waits_for_approval_then_executes_exactly_once() -> None:
    engine = FakeReasoningEngine()
    orchestrator, store, _ = _orchestrator(engine)

    proposal = await _propose_update(orchestrator, engine)

    assert proposal.kind == ReplyKind.AWAITING_CONFIRMATION
    assert proposal.needs_confirmation
    assert proposal.tools_executed == ["search_records"]
    assert "דני כהן" in proposal.text
    assert "בתהליך" in proposal.text
    assert _operations(store) == ["search"]
    assert isinstance(orchestrator.gate.state("u1"), AwaitingConfirmation)

    done = await orchestrator.handle_message("u1", "כן")

    assert done.kind == ReplyKind.ACTION_COMPLETED
    assert done.success
    assert done.text == "✅ הפעולה בוצעה בהצלחה!"
    assert done.tools_executed == ["update_record"]
    assert _operations(store) == ["search", "update"]
    assert store.tables[CUSTOMERS][0]["fields"]["סטטוס"] == "בתהליך"
    assert len(engine.calls) == 2
    assert isinstance(orchestrator.gate.state("u1"), Idle)

    await orchestrator.handle_message("u1", "כן")
    assert _operations(store).count("update") == 1


@pytest.mark.anyio
async def test_rejection_executes_nothing() -> None:
    engine = FakeReasoningEngine()
    orchestrator, store, _ = _orchestrator(engine)
    await _propose_update(orchestrator, engine)

    reply = await orchestrator.handle_message("u1", "לא")

    assert reply.kind == ReplyKind.ACTION_CANCELLED
    assert reply.text == messages.ACTION_CANCELLED
    assert _operations(store) == ["search"]
    transcript = orchestrator.sessions.get("u1").transcript
    assert transcript[-2].role == Role.TOOL_RESULT
    assert transcript[-2].tool_results[0].request_id == "tu2"
    assert transcript[-1].content == messages.ACTION_CANCELLED


@pytest.mark.anyio
async def test_unclear_reply_keeps_pending_action() -> None:
    engine = FakeReasoningEngine()
    orchestrator, store, _ = _orchestrator(engine)
    await _propose_update(orchestrator, engine)
    before = len(orchestrator.sessions.get("u1").transcript)

    reply = await orchestrator.handle_message("u1", "אולי")

    assert reply.kind == ReplyKind.NEEDS_CLARIFICATION
    assert reply.needs_clarification
    assert isinstance(orchestrator.gate.state("u1"), AwaitingConfirmation)
    assert len(orchestrator.sessions.get("u1").transcript) == before
    assert len(engine.calls) == 2
    assert _operations(store) == ["search"]


@pytest.mark.anyio
async def test_new_request_supersedes_pending_action() -> None:
    engine = FakeReasoningEngine()
    orchestrator, store, _ = _orchestrator(engine)
    await _propose_update(orchestrator, engine)
    engine.queue(EngineTurn(text="מה הסטטוס החדש?"))

    reply = await orchestrator.handle_message("u1", "עדכן את הלקוח דני לסטטוס סגור")

    assert reply.kind == ReplyKind.ANSWER
    assert isinstance(orchestrator.gate.state("u1"), Idle)
    assert "update" not in _operations(store)
    sent = engine.calls[-1]
    assert sent[-1].content == "עדכן את הלקוח דני לסטטוס סגור"
    assert sent[-3].role == Role.TOOL_RESULT
    assert sent[-3].tool_results[0].error_type == "cancelled"
    assert sent[-2].content == messages.ACTION_SUPERSEDED


@pytest.mark.anyio
async def test_superseding_unrelated_request_also_resets_topic() -> None:
    engine = FakeReasoningEngine()
    orchestrator, _, _ = _orchestrator(engine)
    proposal = await _propose_update(orchestrator, engine)

    reply = await orchestrator.handle_message("u1", "חפש את הלקוח משה")

    assert reply.session_epoch != proposal.session_epoch
    assert [turn.content for turn in engine.calls[-1]] == ["חפש את הלקוח משה"]


@pytest.mark.anyio
async def test_second_proposal_replaces_the_first() -> None:
    engine = FakeReasoningEngine()
    orchestrator, store, _ = _orchestrator(engine)
    await _propose_update(orchestrator, engine)
    engine.queue(_update("tu9"))

    await orchestrator.handle_message("u1", "עדכן את הלקוח דני לסטטוס חדש")
    pending = orchestrator.gate.pending("u1")

    assert pending is not None
    assert [request.id for request in pending.requested_invocations] == ["tu9"]
    await orchestrator.handle_message("u1", "כן")
    assert _operations(store).count("update") == 1


@pytest.mark.anyio
async def test_tool_error_is_returned_to_engine_for_another_step() -> None:
    class MissingTableStore(FakeRecordStore):
        async def search(self, table_id: str, search_term: str):  # type: ignore[no-untyped-def]
            self.calls.append(("search", (table_id, search_term)))
            raise RecordNotFoundError("Could not find table", status_code=404)

    engine = FakeReasoningEngine([_search(), EngineTurn(text="לא מצאתי את הלקוח")])
    orchestrator, _, _ = _orchestrator(engine, MissingTableStore())

    reply = await orchestrator.handle_message("u1", "חפש את הלקוח דני")

    assert reply.kind == ReplyKind.ANSWER
    assert reply.text == "לא מצאתי את הלקוח"
    assert reply.steps == 2
    assert reply.tools_executed == ["search_records"]
    results_turn = engine.calls[1][-1]
    assert results_turn.role == Role.TOOL_RESULT
    result = results_turn.tool_results[0]
    assert result.is_error
    assert result.error_type == "not_found"
    assert result.payload()["message"] == messages.ERROR_HINTS["not_found"]


@pytest.mark.anyio
async def test_loop_is_bounded_by_max_steps() -> None:
    ids = count()

    def always_search(_transcript: Sequence[Turn]) -> EngineTurn:
        return _search(f"tu{next(ids)}")

    engine = FakeReasoningEngine(responder=always_search)
    orchestrator, store, _ = _orchestrator(engine, max_steps=3)

    reply = await orchestrator.handle_message("u1", "חפש את הלקוח דני")

    assert reply.kind == ReplyKind.ANSWER
    assert reply.steps == 3
    assert len(engine.calls) == 3
    assert _operations(store) == ["search", "search", "search"]
    assert reply.text == messages.exhausted_summary(["search_records"])


@pytest.mark.anyio
async def test_empty_final_text_gets_fallback() -> None:
    engine = FakeReasoningEngine([_search(), EngineTurn(text="  ")])
    orchestrator, _, _ = _orchestrator(engine)

    reply = await orchestrator.handle_message("u1", "חפש את הלקוח דני")

    assert reply.text == messages.EMPTY_ANSWER_AFTER_TOOLS


@pytest.mark.anyio
async def test_idle_timeout_drops_history_and_pending_action() -> None:
    engine = FakeReasoningEngine()
    orchestrator, store, clock = _orchestrator(engine)
    await _propose_update(orchestrator, engine)

    clock.now += 31 * 60
    reply = await orchestrator.handle_message("u1", "כן")

    assert reply.kind == ReplyKind.ANSWER
    assert "update" not in _operations(store)
    assert [turn.content for turn in engine.calls[-1]] == ["כן"]


@pytest.mark.anyio
async def test_transcript_is_bounded_by_retention() -> None:
    engine = FakeReasoningEngine()
    orchestrator, _, _ = _orchestrator(engine, max_history=4, keep_head=1)

    for text in ("חפש את דני", "גם את הטלפון", "עוד פרט", "המשך"):
        await orchestrator.handle_message("u1", text)

    transcript = orchestrator.sessions.get("u1").transcript
    assert len(transcript) == 4
    assert transcript[0].content == "חפש את דני"
    assert transcript[-1].content == "קיבלתי: המשך"


@pytest.mark.anyio
async def test_senders_are_isolated() -> None:
    engine = FakeReasoningEngine()
    orchestrator, store, _ = _orchestrator(engine)
    await _propose_update(orchestrator, engine)

    reply = await orchestrator.handle_message("u2", "כן")

    assert reply.kind == ReplyKind.ANSWER
    assert isinstance(orchestrator.gate.state("u1"), AwaitingConfirmation)
    assert "update" not in _operations(store)


@pytest.mark.anyio
async def test_start_over_drops_pending_action() -> None:
    engine = FakeReasoningEngine()
    orchestrator, store, _ = _orchestrator(engine)
    await _propose_update(orchestrator, engine)

    await orchestrator.handle_message("u1", "התחל מחדש")

    assert isinstance(orchestrator.gate.state("u1"), Idle)
    assert [turn.content for turn in engine.calls[-1]] == ["התחל מחדש"]
    assert "update" not in _operations(store)


@pytest.mark.anyio
async def test_engine_transport_errors_propagate() -> None:
    class DownEngine:
        async def converse(self, transcript: Sequence[Turn], catalogue: ToolCatalogue) -> EngineTurn:
            raise ReasoningTransportError("connection refused", provider="fake")

    orchestrator = Orchestrator(DownEngine(), RecordToolExecutor(_store()))

    with pytest.raises(ReasoningTransportError):
        await orchestrator.handle_message("u1", "חפש את דני")


@pytest.mark.anyio
async def test_snapshot_and_clear() -> None:
    engine = FakeReasoningEngine()
    orchestrator, _, _ = _orchestrator(engine)
    await _propose_update(orchestrator, engine)

    snapshot = orchestrator.snapshot("u1")

    assert snapshot.has_pending_action
    assert snapshot.pending_tools == ["update_record"]
    assert snapshot.history_length == 4
    assert snapshot.history[0]["role"] == "user"
    assert orchestrator.clear("u1") is True
    assert orchestrator.snapshot("u1").epoch is None
    assert not orchestrator.snapshot("u1").has_pending_action
    assert orchestrator.clear("u1") is False


def test_max_steps_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Orchestrator(FakeReasoningEngine(), RecordToolExecutor(_store()), max_steps=0)


def test_default_catalogue_is_shared() -> None:
    orchestrator = Orchestrator(FakeReasoningEngine(), RecordToolExecutor(_store()))

    assert orchestrator.catalogue is TOOL_CATALOGUE


@pytest.mark.anyio
async def test_exhausted_loop_reports_existing_deal_after_both_searches() -> None:
    related = EngineTurn(
        tool_requests=(
            ToolInvocationRequest(
                "tu2",
                "search_transactions",
                {"customer_id": DANI, "project_id": "recProj000000001"},
            ),
        )
    )
    engine = FakeReasoningEngine([_search(), related])
    orchestrator, _, _ = _orchestrator(engine, max_steps=2)

    reply = await orchestrator.handle_message("u1", "רשום את דני לפרויקט")

    assert reply.steps == 2
    assert reply.tools_executed == ["search_records", "search_transactions"]
    assert reply.text == messages.EXISTING_DEAL_FOUND


def test_exhausted_summary_without_both_searches_is_partial() -> None:
    text = messages.exhausted_summary(["search_records", "list_records", "search_records"])

    assert text.startswith(messages.PARTIAL_RESULT)
    assert text.endswith("search_records, list_records")
    assert messages.exhausted_summary([]) != ""
