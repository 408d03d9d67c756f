"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Agent-to-agent handoffs.

A handoff starts the target agent's run synchronously and records the
resulting run id. The handoff's own status is closed explicitly by the
source agent, the target agent, or the owning authority.
"""

from __future__ import annotations

from ..core.auth import Principal, require_principal
from ..core.ids import IdentityAllocator
from ..core.telemetry import NullTelemetrySink, TelemetrySink, emit, now_ms
from .base import Agent
from .errors import AgentConfigurationError, HandoffNotFoundError, NotCompletedError
from .types import HANDOFF_STATUSES, Handoff, HandoffStatus


class HandoffManager:
    """Creates handoffs and tracks their status."""

    def __init__(
        self,
        *,
        owner: Principal,
        ids: IdentityAllocator,
        telemetry: TelemetrySink | None = None,
    ) -> None:
        self._owner = owner
        self._ids = ids
        self._telemetry = telemetry or NullTelemetrySink()
        self._handoffs: dict[str, Handoff] = {}
        self._parties: dict[str, tuple[Agent, Agent]] = {}
        self._order: list[str] = []
        self._by_source: dict[str, list[str]] = {}

    def handoff(
        self,
        source: Agent,
        target: Agent,
        input_data: str,
        *,
        caller: Principal | None,
    ) -> str:
        """
        Transfer `input_data` from `source` to `target`.

        Returns:
            The handoff id. The target run id is on `get(id).result_run_id`.

        Raises:
            UnauthorizedError: If `caller` is neither the source agent nor the owner.
            BusyError: If the target agent is processing another run.
        """
        require_principal(caller, [source.principal, self._owner], action="handoff")
        handoff_id = self._ids.next(
            f"{source.name}->{target.name}:{input_data[:256]}",
            requester=caller.name if caller else "",
            prefix="handoff",
        )
        record = Handoff(
            id=handoff_id,
            source_agent=source.name,
            target_agent=target.name,
            input_data=input_data,
            status="pending",
            created_at_ms=now_ms(),
        )
        record.result_run_id = target.start(input_data)

        self._handoffs[handoff_id] = record
        self._parties[handoff_id] = (source, target)
        self._order.append(handoff_id)
        self._by_source.setdefault(source.name, []).append(handoff_id)
        emit(
            self._telemetry,
            "handoff.created",
            handoff_id=handoff_id,
            source=source.name,
            target=target.name,
            result_run_id=record.result_run_id,
        )
        return handoff_id

    def update_status(
        self,
        handoff_id: str,
        status: HandoffStatus,
        *,
        caller: Principal | None,
    ) -> None:
        """
        Set the handoff status.

        Raises:
            HandoffNotFoundError: If the id is unknown.
            UnauthorizedError: If `caller` is not the source, the target, or the owner.
        """
        record = self.get(handoff_id)
        source, target = self._parties[handoff_id]
        require_principal(
            caller,
            [source.principal, target.principal, self._owner],
            action="update handoff status",
        )
        if status not in HANDOFF_STATUSES:
            raise AgentConfigurationError(f"Unknown handoff status: {status!r}")
        previous = record.status
        record.status = status
        emit(
            self._telemetry,
            "handoff.status_changed",
            handoff_id=handoff_id,
            previous=previous,
            status=status,
            caller=caller.name if caller else None,
        )

    def get_result(self, handoff_id: str) -> str:
        """
        Return the target run's final output.

        Raises:
            NotCompletedError: Unless the handoff status is `completed`.
        """
        record = self.get(handoff_id)
        if record.status != "completed":
            raise NotCompletedError(f"Handoff {handoff_id} is {record.status}, not completed")
        _, target = self._parties[handoff_id]
        return target.get_result(record.result_run_id)

    def get(self, handoff_id: str) -> Handoff:
        try:
            return self._handoffs[handoff_id]
        except KeyError as e:
            raise HandoffNotFoundError(f"Unknown handoff: {handoff_id}") from e

    def handoff_ids(self) -> list[str]:
        return list(self._order)

    def handoffs_from(self, agent_name: str) -> list[str]:
        return list(self._by_source.get(agent_name, []))
