"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Re-entrant step state machine for agent runs.

External callers drive a run by calling `advance(run_id)` until it returns
`True`. Each call does at most one unit of progress and never waits: a model
or tool that has not answered yet makes `advance` return `False`, and the
caller decides when to poll again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.telemetry import emit
from ..core.types import JSONValue
from ..tools import Tool, ToolNotFoundError, ToolResult
from .errors import AgentConfigurationError, BusyError, RunNotFoundError
from .types import AgentState, Run, Step

if TYPE_CHECKING:
    from .base import Agent


class RunStateMachine:
    """
    Step sequencer for one agent.

    The agent is single-run-at-a-time: `start` raises `BusyError` while a run
    is processing. Runs are kept forever; a completed run is immutable.
    """

    def __init__(self, agent: "Agent") -> None:
        self._agent = agent
        self._runs: dict[str, Run] = {}
        self._active_run_id: str | None = None

    @property
    def state(self) -> AgentState:
        return "idle" if self._active_run_id is None else "processing"

    @property
    def active_run_id(self) -> str | None:
        return self._active_run_id

    def run_ids(self) -> list[str]:
        return list(self._runs)

    # ''''''''''''''''''''''''''''''''''''''
    # Lifecycle
    # ''''''''''''''''''''''''''''''''''''''

    def start(
        self,
        input_text: str,
        *,
        run_id: str | None = None,
        max_steps: int | None = None,
    ) -> str:
        """
        Start a run and issue its first model request.

        Args:
            input_text: User input for the run.
            run_id: Pre-minted run id (for example reserved by a runner).
            max_steps: Per-run step budget override.

        Returns:
            The run id.

        Raises:
            BusyError: If the agent is already processing a run.
            AgentConfigurationError: If `run_id` was already used or the
                budget is below one.
        """
        agent = self._agent
        if self._active_run_id is not None:
            raise BusyError(f"Agent '{agent.name}' is processing run {self._active_run_id}")
        budget = max_steps if max_steps is not None else agent.max_steps
        if budget < 1:
            raise AgentConfigurationError("max_steps must be >= 1")
        if run_id is None:
            run_id = agent.ids.next(input_text[:256], requester=agent.name, prefix="run")
        elif not run_id or run_id in self._runs:
            raise AgentConfigurationError(f"Run id is empty or already used: {run_id!r}")

        correlation_id = agent.model.request(agent.instructions, input_text)
        run = Run(
            run_id=run_id,
            agent_name=agent.name,
            input_text=input_text,
            max_steps=budget,
            steps=[Step(kind="model_call", correlation_id=correlation_id)],
        )
        self._runs[run_id] = run
        self._active_run_id = run_id
        emit(agent.telemetry, "run.started", run_id=run_id, agent=agent.name, max_steps=budget)
        return run_id

    def advance(self, run_id: str) -> bool:
        """
        Make at most one unit of progress on `run_id`.

        Returns:
            `True` once the run is completed, `False` while work remains.

        Raises:
            RunNotFoundError: If the run id is unknown.
        """
        run = self.get_run(run_id)
        if run.completed:
            return True
        if run.current_step_index >= run.max_steps:
            return self._budget_exhausted(run)

        run.advance_calls += 1
        done = self._advance_step(run)
        if not done and run.advance_calls >= run.max_steps:
            return self._budget_exhausted(run)
        return done

    # ''''''''''''''''''''''''''''''''''''''
    # Reads
    # ''''''''''''''''''''''''''''''''''''''

    def get_run(self, run_id: str) -> Run:
        try:
            return self._runs[run_id]
        except KeyError as e:
            raise RunNotFoundError(f"Unknown run: {run_id}") from e

    def get_result(self, run_id: str) -> str:
        return self.get_run(run_id).final_output

    def is_complete(self, run_id: str) -> bool:
        return self.get_run(run_id).completed

    def snapshot(self, run_id: str) -> dict[str, JSONValue]:
        """JSON-safe copy of the run for inspection."""
        return self.get_run(run_id).to_dict()

    # ''''''''''''''''''''''''''''''''''''''
    # Step handlers
    # ''''''''''''''''''''''''''''''''''''''

    def _advance_step(self, run: Run) -> bool:
        step = run.current_step
        if step.completed:
            if run.current_step_index + 1 < len(run.steps):
                run.current_step_index += 1
            return False
        if step.kind == "model_call":
            return self._advance_model_step(run, step)
        if step.kind == "tool_call":
            return self._advance_tool_step(run, step)
        return self._finish(run, step)

    def _advance_model_step(self, run: Run, step: Step) -> bool:
        model = self._agent.model
        text = model.poll(step.correlation_id)
        if text is None:
            return False

        self._complete_step(run, step, text)
        tool = self._detect_tool(step.correlation_id)
        if tool is None:
            run.final_output = text
            self._append(run, Step(kind="complete"))
            return False

        tool_step = Step(kind="tool_call", tool_name=tool.name)
        self._append(run, tool_step)
        return self._advance_tool_step(run, tool_step)

    def _advance_tool_step(self, run: Run, step: Step) -> bool:
        agent = self._agent
        assert step.tool_name is not None
        previous = run.steps[run.current_step_index - 1]
        tool = self._lookup_tool(step.tool_name)

        if tool is None:
            res: ToolResult = ToolResult(
                success=False,
                error_message=f"Tool '{step.tool_name}' is no longer registered",
                tool_name=step.tool_name,
            )
        elif not step.correlation_id:
            step.tool_args = agent.model.tool_arguments(previous.correlation_id, step.tool_name)
            step.correlation_id = tool.backend.execute(step.tool_args)
            return False
        elif not tool.backend.poll(step.correlation_id):
            return False
        else:
            res = tool.backend.result(step.correlation_id)

        step.success = res.success
        self._complete_step(run, step, res.render())

        if agent.tool_use_behavior == "stop_on_first_tool":
            run.final_output = step.output
            self._append(run, Step(kind="complete"))
            return False

        prompt = agent.follow_up_template.format(
            previous_output=previous.output,
            tool_name=step.tool_name,
            tool_output=step.output,
        )
        correlation_id = agent.model.request(agent.instructions, prompt)
        self._append(run, Step(kind="model_call", correlation_id=correlation_id))
        return False

    def _finish(self, run: Run, step: Step) -> bool:
        self._complete_step(run, step, run.final_output)
        run.completed = True
        self._release(run)
        emit(
            self._agent.telemetry,
            "run.completed",
            run_id=run.run_id,
            agent=run.agent_name,
            steps=len(run.steps),
            terminated_early=False,
        )
        return True

    def _budget_exhausted(self, run: Run) -> bool:
        step = run.current_step
        if step.kind == "complete" and not step.completed:
            # Output already settled on this call; finish rather than cut short.
            return self._finish(run, step)
        return self._force_terminate(run)

    def _force_terminate(self, run: Run) -> bool:
        if not run.final_output:
            run.final_output = run.last_completed_output()
        run.completed = True
        run.terminated_early = True
        self._release(run)
        emit(
            self._agent.telemetry,
            "run.completed",
            run_id=run.run_id,
            agent=run.agent_name,
            steps=len(run.steps),
            terminated_early=True,
        )
        return True

    # ''''''''''''''''''''''''''''''''''''''
    # Helpers
    # ''''''''''''''''''''''''''''''''''''''

    def _append(self, run: Run, step: Step) -> None:
        run.steps.append(step)
        run.current_step_index += 1

    def _complete_step(self, run: Run, step: Step, output: str) -> None:
        step.completed = True
        step.output = output
        emit(
            self._agent.telemetry,
            "step.completed",
            run_id=run.run_id,
            agent=run.agent_name,
            index=run.current_step_index,
            kind=step.kind,
            tool_name=step.tool_name,
        )

    def _detect_tool(self, correlation_id: str) -> Tool | None:
        """First registered tool the reply asks for; registration order breaks ties."""
        tools = self._agent.tools
        if tools is None:
            return None
        for _, tool in tools.live_items():
            if self._agent.model.detects_tool_call(correlation_id, tool.name):
                return tool
        return None

    def _lookup_tool(self, name: str) -> Tool | None:
        tools = self._agent.tools
        if tools is None:
            return None
        try:
            return tools.get(name)
        except ToolNotFoundError:
            return None

    def _release(self, run: Run) -> None:
        if self._active_run_id == run.run_id:
            self._active_run_id = None
