"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Model backend that correlates requests through a `PendingRequestTable`.

Replies are delivered by an external responder (a bridge to a real provider,
a scheduler, a test) through `respond(...)`. An optional `reply_fn` answers
synchronously at request time, which is how in-process stubs are built.
"""

from __future__ import annotations

from typing import Callable

from ..core.auth import Principal
from ..core.errors import NotFoundError
from ..core.pending import PendingRequestTable
from ..core.types import JSONValue
from .types import ModelPrompt, ModelReply

ReplyFn = Callable[[ModelPrompt], "ModelReply | str | None"]


class PendingModelBackend:
    """`ModelBackend` implementation over a pending-request table."""

    def __init__(
        self,
        table: PendingRequestTable,
        *,
        responder: Principal,
        reply_fn: ReplyFn | None = None,
        name: str = "model",
    ) -> None:
        self._table = table
        self._responder = responder
        self._reply_fn = reply_fn
        self.name = name
        self._prompts: dict[str, ModelPrompt] = {}

    # ''''''''''''''''''''''''''''''''''''''
    # ModelBackend
    # ''''''''''''''''''''''''''''''''''''''

    def request(self, system_instructions: str, input: str) -> str:
        correlation_id = self._table.open(self.name, kind="model", context=input[:256])
        prompt = ModelPrompt(
            correlation_id=correlation_id,
            system_instructions=system_instructions,
            input=input,
        )
        self._prompts[correlation_id] = prompt
        if self._reply_fn is not None:
            reply = self._reply_fn(prompt)
            if reply is not None:
                self.respond(correlation_id, reply)
        return correlation_id

    def poll(self, correlation_id: str) -> str | None:
        reply = self.reply(correlation_id)
        return None if reply is None else reply.text

    def detects_tool_call(self, correlation_id: str, tool_name: str) -> bool:
        reply = self.reply(correlation_id)
        if reply is None:
            return False
        return any(call.tool_name == tool_name for call in reply.tool_calls)

    def tool_arguments(self, correlation_id: str, tool_name: str) -> JSONValue:
        reply = self.reply(correlation_id)
        if reply is not None:
            for call in reply.tool_calls:
                if call.tool_name == tool_name:
                    return call.arguments
        raise NotFoundError(f"No '{tool_name}' tool call in reply {correlation_id}")

    # ''''''''''''''''''''''''''''''''''''''
    # Responder side
    # ''''''''''''''''''''''''''''''''''''''

    def respond(self, correlation_id: str, reply: ModelReply | str) -> None:
        """
        Deliver the reply for `correlation_id`.

        Raises:
            NotFoundError: If the id was not issued by this backend.
            AlreadyFulfilledError: If a reply was already delivered.
        """
        self.prompt_for(correlation_id)
        if isinstance(reply, str):
            reply = ModelReply(text=reply)
        self._table.fulfill(correlation_id, reply, responder=self._responder)

    def prompt_for(self, correlation_id: str) -> ModelPrompt:
        try:
            return self._prompts[correlation_id]
        except KeyError as e:
            raise NotFoundError(f"Unknown model request: {correlation_id}") from e

    def pending_prompts(self) -> list[ModelPrompt]:
        """Prompts still waiting for a reply, in issue order."""
        return [p for cid, p in self._prompts.items() if not self._table.poll(cid).is_complete]

    def reply(self, correlation_id: str) -> ModelReply | None:
        self.prompt_for(correlation_id)
        polled = self._table.poll(correlation_id)
        if not polled.is_complete:
            return None
        return polled.payload

    @property
    def request_count(self) -> int:
        return len(self._prompts)
