"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Run, step and handoff records for the agent runtime.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ..core.config import ToolUseBehavior
from ..core.types import JSONValue, to_json_value

AgentState = Literal["idle", "processing"]
StepKind = Literal["model_call", "tool_call", "complete"]
HandoffStatus = Literal["none", "pending", "completed", "rejected"]

HANDOFF_STATUSES: tuple[HandoffStatus, ...] = ("none", "pending", "completed", "rejected")

__all__ = [
    "AgentState",
    "StepKind",
    "HandoffStatus",
    "HANDOFF_STATUSES",
    "ToolUseBehavior",
    "Step",
    "Run",
    "Handoff",
]


@dataclass(slots=True)
class Step:
    """
    One unit of work within a run.

    Attributes:
        kind: Model call, tool call, or terminal marker.
        correlation_id: Request/execution id; empty until issued.
        tool_name: Target tool (tool calls only).
        tool_args: Arguments taken from the preceding model reply.
        completed: Whether the step has finished.
        output: Step output text once completed.
        success: `False` when a tool step finished with a failed result.
    """

    kind: StepKind
    correlation_id: str = ""
    tool_name: str | None = None
    tool_args: JSONValue = None
    completed: bool = False
    output: str = ""
    success: bool = True

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "kind": self.kind,
            "correlation_id": self.correlation_id,
            "tool_name": self.tool_name,
            "tool_args": to_json_value(self.tool_args),
            "completed": self.completed,
            "output": self.output,
            "success": self.success,
        }


@dataclass(slots=True)
class Run:
    """
    One execution of an agent against one input.

    `steps` is append-only and `current_step_index` never decreases. Once
    `completed` is set the run is terminal.
    """

    run_id: str
    agent_name: str
    input_text: str
    max_steps: int
    steps: list[Step] = field(default_factory=list)
    current_step_index: int = 0
    final_output: str = ""
    completed: bool = False
    advance_calls: int = 0
    terminated_early: bool = False

    @property
    def current_step(self) -> Step:
        return self.steps[self.current_step_index]

    def last_completed_output(self) -> str:
        for step in reversed(self.steps):
            if step.completed and step.kind != "complete":
                return step.output
        return ""

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "run_id": self.run_id,
            "agent_name": self.agent_name,
            "input_text": self.input_text,
            "max_steps": self.max_steps,
            "current_step_index": self.current_step_index,
            "final_output": self.final_output,
            "completed": self.completed,
            "advance_calls": self.advance_calls,
            "terminated_early": self.terminated_early,
            "steps": [step.to_dict() for step in self.steps],
        }


@dataclass(slots=True)
class Handoff:
    """
    Transfer of a conversation from one agent to another.

    `status` staying `pending` only means the handoff has not been closed; the
    target run starts as soon as the handoff is created.
    """

    id: str
    source_agent: str
    target_agent: str
    input_data: str
    status: HandoffStatus = "pending"
    result_run_id: str = ""
    created_at_ms: int = 0
