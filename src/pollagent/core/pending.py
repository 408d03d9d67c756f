"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Pending-request correlation table.

Every "send a request now, receive the result later" interaction in pollagent
(model calls, tool executions, guardrail classifications) is an entry in a
`PendingRequestTable`. Requesters open an entry and poll it; only the table's
designated responder may fulfil it, exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal

from .auth import Principal, require_principal
from .errors import AlreadyFulfilledError, NotFoundError
from .ids import IdentityAllocator
from .telemetry import NullTelemetrySink, TelemetrySink, emit, now_ms

RequestKind = Literal["model", "tool", "classifier", "other"]


@dataclass(frozen=True, slots=True)
class PendingRequest:
    """
    Correlation record for one issued asynchronous call.

    Attributes:
        id: Opaque correlation id.
        requester: Name of the component that opened the request.
        kind: Which capability the request targets.
        issued_at_ms: Epoch milliseconds when opened.
        is_complete: Whether the responder has fulfilled it.
        payload: Responder payload; `None` until fulfilled.
        fulfilled_at_ms: Epoch milliseconds when fulfilled.
    """

    id: str
    requester: str
    kind: RequestKind
    issued_at_ms: int
    is_complete: bool = False
    payload: Any = None
    fulfilled_at_ms: int | None = None


@dataclass(frozen=True, slots=True)
class PendingPoll:
    """Result of polling a pending request."""

    is_complete: bool
    payload: Any = None


@dataclass(slots=True)
class PendingRequestTable:
    """
    Maps request ids to their asynchronous completion state.

    Entries are never removed. A fulfilled entry is immutable.
    """

    ids: IdentityAllocator
    responder: Principal
    telemetry: TelemetrySink = field(default_factory=NullTelemetrySink)
    _requests: dict[str, PendingRequest] = field(default_factory=dict, init=False, repr=False)

    def open(self, requester: str, *, kind: RequestKind = "other", context: str = "") -> str:
        """
        Open a new unresolved request.

        Args:
            requester: Name of the requesting component.
            kind: Capability the request targets.
            context: Extra context mixed into the id digest.

        Returns:
            The new request id.
        """
        request_id = self.ids.next(f"{kind}:{context}", requester=requester, prefix="req")
        self._requests[request_id] = PendingRequest(
            id=request_id,
            requester=requester,
            kind=kind,
            issued_at_ms=now_ms(),
        )
        emit(self.telemetry, "pending.opened", request_id=request_id, kind=kind, requester=requester)
        return request_id

    def fulfill(self, request_id: str, payload: Any, *, responder: Principal | None) -> None:
        """
        Complete a request with its payload. Allowed exactly once.

        Raises:
            UnauthorizedError: If `responder` is not the designated responder.
            NotFoundError: If the id was never opened.
            AlreadyFulfilledError: If the request is already complete.
        """
        require_principal(responder, [self.responder], action="fulfill pending request")
        current = self.get(request_id)
        if current.is_complete:
            raise AlreadyFulfilledError(f"Pending request already fulfilled: {request_id}")
        self._requests[request_id] = replace(
            current,
            is_complete=True,
            payload=payload,
            fulfilled_at_ms=now_ms(),
        )
        emit(self.telemetry, "pending.fulfilled", request_id=request_id, kind=current.kind)

    def poll(self, request_id: str) -> PendingPoll:
        """
        Read completion state without side effects.

        Raises:
            NotFoundError: If the id was never opened.
        """
        req = self.get(request_id)
        if not req.is_complete:
            return PendingPoll(is_complete=False)
        return PendingPoll(is_complete=True, payload=req.payload)

    def get(self, request_id: str) -> PendingRequest:
        try:
            return self._requests[request_id]
        except KeyError as e:
            raise NotFoundError(f"Unknown pending request: {request_id}") from e

    def outstanding(self, kind: RequestKind | None = None) -> list[str]:
        """Return unresolved request ids in issue order."""
        return [
            req.id
            for req in self._requests.values()
            if not req.is_complete and (kind is None or req.kind == kind)
        ]

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._requests

    def __len__(self) -> int:
        return len(self._requests)
