"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Agent definition and its poll-driven run surface.
"""

from __future__ import annotations

from ..core.auth import Principal
from ..core.config import RunnerConfig, ToolUseBehavior
from ..core.ids import IdentityAllocator
from ..core.telemetry import NullTelemetrySink, TelemetrySink
from ..core.types import JSONValue
from ..llms import ModelBackend
from ..tools import ToolRegistry
from .errors import AgentConfigurationError
from .runtime import RunStateMachine
from .types import AgentState, Run


class Agent:
    """
    Agent configuration plus the state machine that executes its runs.

    Unset settings (`max_steps`, `tool_use_behavior`, `follow_up_template`)
    fall back to the `RunnerConfig` the agent is bound to, which is the
    registering runner's config or `RunnerConfig()` for standalone agents.
    """

    def __init__(
        self,
        *,
        name: str,
        model: ModelBackend,
        tools: ToolRegistry | None = None,
        instructions: str = "",
        tool_use_behavior: ToolUseBehavior | None = None,
        max_steps: int | None = None,
        follow_up_template: str | None = None,
        ids: IdentityAllocator | None = None,
        telemetry: TelemetrySink | None = None,
        principal: Principal | None = None,
    ) -> None:
        """
        Initialize an agent.

        Args:
            name: Unique display name used for registration and handoffs.
            model: Start/poll model capability.
            tools: Registry scanned, in registration order, for tool calls.
            instructions: System instructions sent with every model request.
            tool_use_behavior: `run_llm_again` loops the model with each tool
                result; `stop_on_first_tool` returns the first tool result.
            max_steps: Step budget per run.
            follow_up_template: Prompt template used after a tool result.
            ids: Identity allocator for run ids. Runners inject a shared one.
            telemetry: Sink for run/step notifications.
            principal: Caller identity used for handoff authorization.

        Raises:
            AgentConfigurationError: If `name` is empty, `max_steps < 1`, or
                `tool_use_behavior` is unknown.
        """
        if not name or not name.strip():
            raise AgentConfigurationError("agent name must be a non-empty string")
        if max_steps is not None and max_steps < 1:
            raise AgentConfigurationError("max_steps must be >= 1")
        if tool_use_behavior is not None and tool_use_behavior not in ("run_llm_again", "stop_on_first_tool"):
            raise AgentConfigurationError(
                "tool_use_behavior must be one of: run_llm_again, stop_on_first_tool"
            )
        self.name = name
        self.model = model
        self.tools = tools
        self.instructions = instructions
        self._tool_use_behavior = tool_use_behavior
        self._max_steps = max_steps
        self._follow_up_template = follow_up_template
        self.ids = ids or IdentityAllocator()
        self.telemetry = telemetry or NullTelemetrySink()
        self.principal = principal or Principal(name=f"agent:{name}")
        self.defaults = RunnerConfig()
        self._machine = RunStateMachine(self)

    def bind(
        self,
        *,
        ids: IdentityAllocator,
        telemetry: TelemetrySink,
        defaults: RunnerConfig,
        tools: ToolRegistry | None = None,
    ) -> None:
        """
        Attach runner-wide dependencies. Called by `Runner.register_agent`.

        `tools` only applies when the agent was built without its own registry.
        """
        self.ids = ids
        self.telemetry = telemetry
        self.defaults = defaults
        if self.tools is None:
            self.tools = tools

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def max_steps(self) -> int:
        return self._max_steps if self._max_steps is not None else self.defaults.default_max_steps

    @property
    def tool_use_behavior(self) -> ToolUseBehavior:
        if self._tool_use_behavior is not None:
            return self._tool_use_behavior
        return self.defaults.default_tool_use_behavior

    @property
    def follow_up_template(self) -> str:
        return self._follow_up_template or self.defaults.follow_up_template

    @property
    def state(self) -> AgentState:
        return self._machine.state

    @property
    def active_run_id(self) -> str | None:
        return self._machine.active_run_id

    def start(self, input_text: str, *, run_id: str | None = None, max_steps: int | None = None) -> str:
        return self._machine.start(input_text, run_id=run_id, max_steps=max_steps)

    def advance(self, run_id: str) -> bool:
        return self._machine.advance(run_id)

    def get_run(self, run_id: str) -> Run:
        return self._machine.get_run(run_id)

    def get_result(self, run_id: str) -> str:
        return self._machine.get_result(run_id)

    def is_complete(self, run_id: str) -> bool:
        return self._machine.is_complete(run_id)

    def snapshot(self, run_id: str) -> dict[str, JSONValue]:
        return self._machine.snapshot(run_id)

    def run_ids(self) -> list[str]:
        return self._machine.run_ids()

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, state={self.state!r})"
