"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Top-level poll-driven runner.

The runner wires registries, the pending-request table, the guardrail engine
and the handoff manager around agent runs. External drivers call
`run(...)` once and then `process_run(run_id)` until it returns `True`.

Run phases:
    input_guardrails -> running -> output_guardrails -> completed

Input guardrails are evaluated one at a time in registration order; the
first failure completes the run as failed and later guardrails are never
requested. Output guardrails run after the agent finishes and before the
final output is exposed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal

from pydantic import BaseModel

from ..agents.base import Agent
from ..agents.errors import BusyError, NotCompletedError
from ..agents.handoff import HandoffManager
from ..agents.registry import AgentRegistry
from ..agents.types import HandoffStatus
from ..guardrails.classifier import Classifier, PendingClassifier, ScoreFn
from ..guardrails.engine import GuardrailEngine
from ..guardrails.registry import GuardrailRegistry
from ..guardrails.types import (
    DEFAULT_CONTENT_CATEGORIES,
    Guardrail,
    GuardrailDirection,
    GuardrailValidation,
    GuardrailVariant,
)
from ..llms.backend import PendingModelBackend, ReplyFn
from ..tools.base import Tool, ToolFn, function_tool
from ..tools.registry import ToolRegistry
from .auth import Principal
from .config import RunConfig, RunnerConfig
from .errors import NotFoundError, RunnerClosedError
from .ids import IdentityAllocator
from .pending import PendingRequestTable
from .telemetry import NullTelemetrySink, TelemetrySink, emit
from .types import JSONValue

RunPhase = Literal["input_guardrails", "running", "output_guardrails", "completed"]


@dataclass(slots=True)
class RunResult:
    """
    Runner-side mirror of one run.

    Attributes:
        run_id: Run identifier (shared with the agent's run).
        agent_id: Registry id of the executing agent.
        agent_name: Display name of the executing agent.
        input_text: Run input.
        phase: Current runner phase.
        final_output: Exposed output; empty until every output guardrail passed.
        completed: Whether the run is terminal from the runner's view.
        failed: Whether a guardrail blocked the run.
        failure_reason: Reason reported by the blocking guardrail.
        blocked_by: Name of the blocking guardrail.
        validation_ids: Guardrail validations issued for this run, in order.
        terminated_early: Whether the agent's step budget ended the run.
        handoff_id: Set when the run was started by a handoff.
    """

    run_id: str
    agent_id: str
    agent_name: str
    input_text: str
    phase: RunPhase = "input_guardrails"
    final_output: str = ""
    completed: bool = False
    failed: bool = False
    failure_reason: str | None = None
    blocked_by: str | None = None
    validation_ids: list[str] = field(default_factory=list)
    terminated_early: bool = False
    handoff_id: str | None = None


@dataclass(slots=True)
class _TrackedRun:
    result: RunResult
    agent: Agent
    config: RunConfig
    gate: list[Guardrail] = field(default_factory=list)
    gate_index: int = 0
    validation_id: str | None = None


class Runner:
    """
    Poll-driven orchestrator for agents, tools, guardrails and handoffs.

    All shared state (registries, pending table, guardrail engine, handoff
    manager) is created here and injected into the components that use it.
    Mutations of registries require the runner's `owner` principal, and only
    the `responder` principal may fulfil pending requests.
    """

    def __init__(
        self,
        *,
        config: RunnerConfig | None = None,
        telemetry: TelemetrySink | None = None,
        ids: IdentityAllocator | None = None,
        owner: Principal | None = None,
        responder: Principal | None = None,
    ) -> None:
        self.config = config or RunnerConfig()
        self.telemetry = telemetry or NullTelemetrySink()
        self.ids = ids or IdentityAllocator()
        self.owner = owner or Principal(name="runner")
        self.responder = responder or Principal(name="responder")

        self.pending = PendingRequestTable(ids=self.ids, responder=self.responder, telemetry=self.telemetry)
        self.tools = ToolRegistry(owner=self.owner, ids=self.ids, telemetry=self.telemetry)
        self.agents = AgentRegistry(owner=self.owner, ids=self.ids, telemetry=self.telemetry)
        self.guardrails = GuardrailRegistry(owner=self.owner, ids=self.ids, telemetry=self.telemetry)
        self.guardrail_engine = GuardrailEngine(telemetry=self.telemetry)
        self.handoffs = HandoffManager(owner=self.owner, ids=self.ids, telemetry=self.telemetry)

        self._records: dict[str, _TrackedRun] = {}
        self._closed = False

    # ''''''''''''''''''''''''''''''''''''''
    # Wiring helpers
    # ''''''''''''''''''''''''''''''''''''''

    def model_backend(self, *, reply_fn: ReplyFn | None = None, name: str = "model") -> PendingModelBackend:
        """Model backend correlated through this runner's pending table."""
        return PendingModelBackend(self.pending, responder=self.responder, reply_fn=reply_fn, name=name)

    def classifier(self, *, score_fn: ScoreFn | None = None, name: str = "classifier") -> PendingClassifier:
        """Classifier correlated through this runner's pending table."""
        return PendingClassifier(self.pending, responder=self.responder, score_fn=score_fn, name=name)

    def guardrail(
        self,
        name: str,
        direction: GuardrailDirection,
        classifier: Classifier,
        *,
        variant: GuardrailVariant = "simple",
        threshold: int | None = None,
        categories: dict[str, int] | None = None,
        prompt_template: str | None = None,
    ) -> Guardrail:
        """
        Build a guardrail whose thresholds default to `config.guardrail_threshold`.

        For the content-filter variant without explicit `categories`, every
        default category gets the runner threshold.
        """
        limit = threshold if threshold is not None else self.config.guardrail_threshold
        if variant == "content_filter" and not categories:
            categories = {category: limit for category in DEFAULT_CONTENT_CATEGORIES}
        return Guardrail(
            name=name,
            direction=direction,
            classifier=classifier,
            variant=variant,
            threshold=limit,
            categories=dict(categories or {}),
            prompt_template=prompt_template,
        )

    def function_tool(
        self,
        fn: ToolFn | None,
        *,
        name: str | None = None,
        description: str | None = None,
        args_model: type[BaseModel] | None = None,
        deferred: bool = False,
    ) -> Tool:
        """Tool around a Python callable, correlated through this runner's pending table."""
        return function_tool(
            fn,
            table=self.pending,
            responder=self.responder,
            name=name,
            description=description,
            args_model=args_model,
            deferred=deferred,
        )

    # ''''''''''''''''''''''''''''''''''''''
    # Registration
    # ''''''''''''''''''''''''''''''''''''''

    def register_agent(self, agent: Agent) -> str:
        self._ensure_open()
        agent.bind(ids=self.ids, telemetry=self.telemetry, defaults=self.config, tools=self.tools)
        return self.agents.register(agent, caller=self.owner)

    def unregister_agent(self, agent_id: str) -> None:
        self._ensure_open()
        self.agents.unregister(agent_id, caller=self.owner)

    def register_guardrail(self, guardrail: Guardrail) -> str:
        self._ensure_open()
        return self.guardrails.register(guardrail, caller=self.owner)

    def unregister_guardrail(self, guardrail_id: str) -> None:
        self._ensure_open()
        self.guardrails.unregister(guardrail_id, caller=self.owner)

    def register_tool(self, tool: Tool) -> str:
        self._ensure_open()
        return self.tools.register(tool, caller=self.owner)

    def unregister_tool(self, tool_id: str) -> None:
        self._ensure_open()
        self.tools.unregister(tool_id, caller=self.owner)

    # ''''''''''''''''''''''''''''''''''''''
    # Runs
    # ''''''''''''''''''''''''''''''''''''''

    def run(self, agent_id: str, input_text: str, *, config: RunConfig | None = None) -> str:
        """
        Gate `input_text` through input guardrails and start the agent.

        Guardrails whose classifier answers synchronously are resolved inside
        this call; otherwise `process_run` continues the gate.

        Returns:
            The run id to poll with `process_run`.

        Raises:
            NotFoundError: If `agent_id` is unknown.
            BusyError: If the agent is processing another run.
            ValueError: If `input_text` exceeds `RunnerConfig.max_input_chars`.
        """
        self._ensure_open()
        agent = self.agents.resolve(agent_id)
        self._check_input_size("input_text", input_text)
        if agent.state == "processing":
            raise BusyError(f"Agent '{agent.name}' is processing run {agent.active_run_id}")
        gated = self._gated_run_for(agent)
        if gated is not None:
            raise BusyError(f"Agent '{agent.name}' is reserved by gated run {gated}")

        cfg = config or RunConfig()
        run_id = self.ids.next(input_text[:256], requester=self.owner.name, prefix="run")
        tracked = _TrackedRun(
            result=RunResult(
                run_id=run_id,
                agent_id=agent_id,
                agent_name=agent.name,
                input_text=input_text,
            ),
            agent=agent,
            config=cfg,
            gate=[] if cfg.skip_input_guardrails else self.guardrails.for_direction("input"),
        )
        self._records[run_id] = tracked
        self._drive(tracked)
        return run_id

    def process_run(self, run_id: str) -> bool:
        """
        Make progress on a run; the re-entry point external drivers poll.

        Returns:
            `True` once the runner-side result is terminal.
        """
        self._ensure_open()
        tracked = self._get(run_id)
        if tracked.result.completed:
            return True
        return self._drive(tracked)

    def get_result(self, run_id: str) -> RunResult:
        """Copy of the runner's mirrored result for `run_id`."""
        result = self._get(run_id).result
        return replace(result, validation_ids=list(result.validation_ids))

    def is_complete(self, run_id: str) -> bool:
        return self._get(run_id).result.completed

    def run_ids(self) -> list[str]:
        return list(self._records)

    def snapshot(self, run_id: str) -> dict[str, JSONValue]:
        """Runner record plus the agent's step history, JSON-safe."""
        tracked = self._get(run_id)
        res = tracked.result
        agent_run: dict[str, JSONValue] | None = None
        if run_id in tracked.agent.run_ids():
            agent_run = tracked.agent.snapshot(run_id)
        return {
            "run_id": res.run_id,
            "agent_name": res.agent_name,
            "phase": res.phase,
            "completed": res.completed,
            "failed": res.failed,
            "failure_reason": res.failure_reason,
            "blocked_by": res.blocked_by,
            "final_output": res.final_output,
            "validation_ids": list(res.validation_ids),
            "agent_run": agent_run,
        }

    # ''''''''''''''''''''''''''''''''''''''
    # Handoffs
    # ''''''''''''''''''''''''''''''''''''''

    def handoff(
        self,
        source_agent_id: str,
        target_agent_id: str,
        input_data: str,
        *,
        caller: Principal | None = None,
    ) -> str:
        """
        Hand `input_data` from one registered agent to another.

        The target run is tracked by the runner under its run id
        (`handoffs.get(handoff_id).result_run_id`), so `process_run` drives it
        and output guardrails apply before its result is exposed.

        Raises:
            ValueError: If `input_data` exceeds `RunnerConfig.max_input_chars`.
        """
        self._ensure_open()
        source = self.agents.resolve(source_agent_id)
        target = self.agents.resolve(target_agent_id)
        self._check_input_size("input_data", input_data)
        gated = self._gated_run_for(target)
        if gated is not None:
            raise BusyError(f"Agent '{target.name}' is reserved by gated run {gated}")
        handoff_id = self.handoffs.handoff(source, target, input_data, caller=caller or self.owner)
        run_id = self.handoffs.get(handoff_id).result_run_id
        self._records[run_id] = _TrackedRun(
            result=RunResult(
                run_id=run_id,
                agent_id=target_agent_id,
                agent_name=target.name,
                input_text=input_data,
                phase="running",
                handoff_id=handoff_id,
            ),
            agent=target,
            config=RunConfig(),
        )
        return handoff_id

    def update_handoff_status(
        self,
        handoff_id: str,
        status: HandoffStatus,
        *,
        caller: Principal | None = None,
    ) -> None:
        self._ensure_open()
        self.handoffs.update_status(handoff_id, status, caller=caller or self.owner)

    def get_handoff_result(self, handoff_id: str) -> str:
        """
        Gated final output of the handoff's target run.

        Empty when an output guardrail blocked the run.

        Raises:
            NotCompletedError: Until the handoff is marked `completed` and the
                runner has finished gating the target run.
        """
        record = self.handoffs.get(handoff_id)
        if record.status != "completed":
            raise NotCompletedError(f"Handoff {handoff_id} is {record.status}, not completed")
        result = self._get(record.result_run_id).result
        if not result.completed:
            raise NotCompletedError(f"Handoff {handoff_id} target run is in phase {result.phase}")
        return result.final_output

    # ''''''''''''''''''''''''''''''''''''''
    # Teardown
    # ''''''''''''''''''''''''''''''''''''''

    def close(self) -> None:
        """Unregister every live agent, guardrail and tool; the runner is unusable afterwards."""
        if self._closed:
            return
        for registry in (self.agents, self.guardrails, self.tools):
            for entry_id, _ in registry.live_items():
                registry.unregister(entry_id, caller=self.owner)
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "Runner":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ''''''''''''''''''''''''''''''''''''''
    # Internals
    # ''''''''''''''''''''''''''''''''''''''

    def _check_input_size(self, field_name: str, text: str) -> None:
        limit = self.config.max_input_chars
        if len(text) > limit:
            raise ValueError(f"{field_name} has {len(text)} chars; limit is {limit}")

    def _drive(self, tracked: _TrackedRun) -> bool:
        res = tracked.result
        if res.phase == "input_guardrails":
            if not self._step_gate(tracked, "input"):
                return False
            if res.completed:
                return True
            tracked.agent.start(res.input_text, run_id=res.run_id, max_steps=tracked.config.max_steps)
            res.phase = "running"
            return False

        if res.phase == "running":
            if not tracked.agent.advance(res.run_id):
                return False
            res.terminated_early = tracked.agent.get_run(res.run_id).terminated_early
            res.phase = "output_guardrails"
            tracked.gate = [] if tracked.config.skip_output_guardrails else self.guardrails.for_direction("output")
            tracked.gate_index = 0
            tracked.validation_id = None

        if not self._step_gate(tracked, "output"):
            return False
        if res.completed:
            return True
        res.final_output = tracked.agent.get_result(res.run_id)
        res.completed = True
        res.phase = "completed"
        return True

    def _step_gate(self, tracked: _TrackedRun, direction: GuardrailDirection) -> bool:
        """
        Advance the current gate as far as possible without waiting.

        Returns:
            `True` when the gate is finished (passed or blocked), `False`
            while a classifier is still pending.
        """
        res = tracked.result
        engine = self.guardrail_engine
        while tracked.gate_index < len(tracked.gate):
            guardrail = tracked.gate[tracked.gate_index]
            if tracked.validation_id is None:
                if direction == "input":
                    tracked.validation_id = engine.validate_input(guardrail, res.input_text)
                else:
                    tracked.validation_id = engine.validate_output(
                        guardrail,
                        tracked.agent.get_result(res.run_id),
                        res.input_text,
                    )
                res.validation_ids.append(tracked.validation_id)
            if not engine.advance(tracked.validation_id):
                return False
            validation = engine.get_result(tracked.validation_id)
            if self._blocks(validation):
                self._block(tracked, validation)
                return True
            tracked.gate_index += 1
            tracked.validation_id = None
        return True

    def _blocks(self, validation: GuardrailValidation) -> bool:
        if validation.result == "fail":
            return True
        return validation.result == "error" and self.config.fail_on_guardrail_error

    def _block(self, tracked: _TrackedRun, validation: GuardrailValidation) -> None:
        res = tracked.result
        res.completed = True
        res.failed = True
        res.final_output = ""
        res.failure_reason = validation.reason
        res.blocked_by = validation.guardrail_name
        res.phase = "completed"
        emit(
            self.telemetry,
            "runner.run_blocked",
            run_id=res.run_id,
            guardrail=validation.guardrail_name,
            direction=validation.direction,
            result=validation.result,
        )

    def _gated_run_for(self, agent: Agent) -> str | None:
        for run_id, tracked in self._records.items():
            res = tracked.result
            if tracked.agent is agent and res.phase == "input_guardrails" and not res.completed:
                return run_id
        return None

    def _get(self, run_id: str) -> _TrackedRun:
        try:
            return self._records[run_id]
        except KeyError as e:
            raise NotFoundError(f"Unknown run: {run_id}") from e

    def _ensure_open(self) -> None:
        if self._closed:
            raise RunnerClosedError("Runner is closed")
