"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Classifier capability and its pending-table backed implementation.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from ..core.auth import Principal
from ..core.errors import NotFoundError
from ..core.pending import PendingRequestTable

ScoreFn = Callable[[str], Any]


@runtime_checkable
class Classifier(Protocol):
    """Start/poll contract for guardrail scoring."""

    def request(self, prompt: str) -> str:
        """Issue a classification request and return its correlation id."""
        ...

    def poll(self, correlation_id: str) -> Any | None:
        """Return the scored payload once available, else `None`."""
        ...


class PendingClassifier:
    """
    `Classifier` over a pending-request table.

    Payloads are delivered with `respond(...)`, or synchronously by
    `score_fn(prompt)` when one is configured and returns non-`None`.
    """

    def __init__(
        self,
        table: PendingRequestTable,
        *,
        responder: Principal,
        score_fn: ScoreFn | None = None,
        name: str = "classifier",
    ) -> None:
        self._table = table
        self._responder = responder
        self._score_fn = score_fn
        self.name = name
        self._prompts: dict[str, str] = {}

    def request(self, prompt: str) -> str:
        correlation_id = self._table.open(self.name, kind="classifier", context=prompt[:256])
        self._prompts[correlation_id] = prompt
        if self._score_fn is not None:
            payload = self._score_fn(prompt)
            if payload is not None:
                self.respond(correlation_id, payload)
        return correlation_id

    def poll(self, correlation_id: str) -> Any | None:
        self.prompt_for(correlation_id)
        polled = self._table.poll(correlation_id)
        return polled.payload if polled.is_complete else None

    def respond(self, correlation_id: str, payload: Any) -> None:
        self.prompt_for(correlation_id)
        self._table.fulfill(correlation_id, payload, responder=self._responder)

    def prompt_for(self, correlation_id: str) -> str:
        try:
            return self._prompts[correlation_id]
        except KeyError as e:
            raise NotFoundError(f"Unknown classifier request: {correlation_id}") from e

    @property
    def request_count(self) -> int:
        return len(self._prompts)
