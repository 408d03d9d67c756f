from __future__ import annotations

import pytest

from pollagent.core import (
    AlreadyFulfilledError,
    IdentityAllocator,
    NotFoundError,
    PendingRequestTable,
    Principal,
    UnauthorizedError,
)
from pollagent.llms import ModelBackend, ModelPrompt, ModelReply, PendingModelBackend, ToolCall


def _backend(reply_fn=None, *, responder: Principal | None = None) -> tuple[PendingModelBackend, PendingRequestTable]:
    designated = Principal(name="responder")
    table = PendingRequestTable(ids=IdentityAllocator(), responder=designated)
    return PendingModelBackend(table, responder=responder or designated, reply_fn=reply_fn), table


def test_reply_is_absent_until_responded():
    backend, table = _backend()
    correlation_id = backend.request("be brief", "hello")

    assert isinstance(backend, ModelBackend)
    assert backend.poll(correlation_id) is None
    assert backend.detects_tool_call(correlation_id, "echo") is False
    assert table.get(correlation_id).kind == "model"
    assert backend.prompt_for(correlation_id) == ModelPrompt(
        correlation_id=correlation_id,
        system_instructions="be brief",
        input="hello",
    )

    backend.respond(correlation_id, "hi there")

    assert backend.poll(correlation_id) == "hi there"
    assert backend.reply(correlation_id) == ModelReply(text="hi there")
    assert backend.pending_prompts() == []


def test_tool_call_detection_and_arguments():
    backend, _ = _backend(
        lambda prompt: ModelReply(
            text="",
            tool_calls=[
                ToolCall(tool_name="search", arguments={"q": prompt.input}),
                ToolCall(tool_name="echo", arguments="hi"),
            ],
        )
    )
    correlation_id = backend.request("", "weather")

    assert backend.poll(correlation_id) == ""
    assert backend.detects_tool_call(correlation_id, "search") is True
    assert backend.detects_tool_call(correlation_id, "echo") is True
    assert backend.detects_tool_call(correlation_id, "calculator") is False
    assert backend.tool_arguments(correlation_id, "search") == {"q": "weather"}
    with pytest.raises(NotFoundError):
        backend.tool_arguments(correlation_id, "calculator")


def test_reply_fn_returning_none_leaves_request_pending():
    backend, _ = _backend(lambda prompt: None)
    correlation_id = backend.request("", "later")

    assert backend.poll(correlation_id) is None
    assert [p.correlation_id for p in backend.pending_prompts()] == [correlation_id]
    assert backend.request_count == 1


def test_reply_is_delivered_exactly_once():
    backend, _ = _backend()
    correlation_id = backend.request("", "hello")
    backend.respond(correlation_id, "first")

    with pytest.raises(AlreadyFulfilledError):
        backend.respond(correlation_id, "second")
    assert backend.poll(correlation_id) == "first"


def test_backend_with_wrong_responder_cannot_deliver():
    backend, _ = _backend(responder=Principal(name="someone-else"))
    correlation_id = backend.request("", "hello")

    with pytest.raises(UnauthorizedError):
        backend.respond(correlation_id, "forged")
    assert backend.poll(correlation_id) is None


def test_unknown_correlation_id():
    backend, _ = _backend()

    with pytest.raises(NotFoundError):
        backend.poll("req_missing")
    with pytest.raises(NotFoundError):
        backend.respond("req_missing", "x")
