from __future__ import annotations

import pytest

import pollagent.core.ids as ids_module
from pollagent.core import (
    AlreadyFulfilledError,
    IdentityAllocator,
    IdentityExhaustedError,
    InMemoryTelemetrySink,
    NotFoundError,
    PendingPoll,
    PendingRequestTable,
    Principal,
    UnauthorizedError,
)


def _table(telemetry=None) -> tuple[PendingRequestTable, Principal]:
    responder = Principal(name="responder")
    kwargs = {"telemetry": telemetry} if telemetry is not None else {}
    return PendingRequestTable(ids=IdentityAllocator(), responder=responder, **kwargs), responder


def test_ids_are_unique_and_prefixed():
    alloc = IdentityAllocator()
    minted = {alloc.next("same-context", prefix="run") for _ in range(500)}

    assert len(minted) == 500
    assert all(value.startswith("run_") for value in minted)
    assert alloc.counter == 500


def test_id_digest_length_is_configurable():
    alloc = IdentityAllocator(digest_chars=16)
    value = alloc.next(b"ctx", requester="tests")

    assert value.startswith("id_")
    assert len(value) == len("id_") + 16


def test_id_digest_length_is_validated():
    with pytest.raises(ValueError):
        IdentityAllocator(digest_chars=8)


def test_counter_overflow_is_fatal(monkeypatch):
    monkeypatch.setattr(ids_module, "MAX_COUNTER", 2)
    alloc = IdentityAllocator()
    alloc.next("a")
    alloc.next("b")

    with pytest.raises(IdentityExhaustedError):
        alloc.next("c")
    assert alloc.counter == 2


def test_pending_request_lifecycle():
    table, responder = _table()
    request_id = table.open("model", kind="model", context="hello")

    assert table.poll(request_id) == PendingPoll(is_complete=False)
    assert table.outstanding() == [request_id]
    assert request_id in table

    table.fulfill(request_id, {"text": "hi"}, responder=responder)

    polled = table.poll(request_id)
    assert polled.is_complete is True
    assert polled.payload == {"text": "hi"}
    assert table.outstanding() == []
    record = table.get(request_id)
    assert record.kind == "model"
    assert record.requester == "model"
    assert record.fulfilled_at_ms is not None
    assert record.fulfilled_at_ms >= record.issued_at_ms


def test_second_fulfil_is_rejected_and_payload_kept():
    table, responder = _table()
    request_id = table.open("tool", kind="tool")
    table.fulfill(request_id, "first", responder=responder)

    with pytest.raises(AlreadyFulfilledError):
        table.fulfill(request_id, "second", responder=responder)
    assert table.poll(request_id).payload == "first"


def test_only_designated_responder_may_fulfil():
    table, _ = _table()
    request_id = table.open("model", kind="model")
    impostor = Principal(name="responder")

    with pytest.raises(UnauthorizedError):
        table.fulfill(request_id, "x", responder=impostor)
    with pytest.raises(UnauthorizedError):
        table.fulfill(request_id, "x", responder=None)
    assert table.poll(request_id).is_complete is False


def test_unknown_request_ids_raise_not_found():
    table, responder = _table()

    with pytest.raises(NotFoundError):
        table.poll("req_missing")
    with pytest.raises(NotFoundError):
        table.fulfill("req_missing", "x", responder=responder)


def test_outstanding_filters_by_kind_in_issue_order():
    table, responder = _table()
    first_tool = table.open("echo", kind="tool")
    model = table.open("model", kind="model")
    second_tool = table.open("echo", kind="tool")
    table.fulfill(model, "done", responder=responder)

    assert table.outstanding(kind="tool") == [first_tool, second_tool]
    assert table.outstanding(kind="model") == []
    assert len(table) == 3


def test_pending_table_emits_telemetry():
    sink = InMemoryTelemetrySink()
    table, responder = _table(sink)
    request_id = table.open("classifier", kind="classifier")
    table.fulfill(request_id, {"overall_score": 900}, responder=responder)

    assert sink.event_names() == ["pending.opened", "pending.fulfilled"]
    assert sink.events("pending.opened")[0].attributes["kind"] == "classifier"
    assert sink.counter("pending.fulfilled") == 1
