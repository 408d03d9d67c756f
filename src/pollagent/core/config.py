"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Runtime configuration for runners and per-run overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

ToolUseBehavior = Literal["run_llm_again", "stop_on_first_tool"]

DEFAULT_FOLLOW_UP_TEMPLATE = (
    "Previous response:\n{previous_output}\n\n"
    "Tool '{tool_name}' returned:\n{tool_output}\n\n"
    "Continue the task using the tool result."
)


def _env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean environment variable with common truthy values."""
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


@dataclass(frozen=True, slots=True)
class RunnerConfig:
    """
    Runner-wide defaults.

    Attributes:
        default_max_steps: Step budget for agents that do not set one. Bounds
            both the step index and the number of `advance` calls per run.
        default_tool_use_behavior: Tool-use policy for agents that do not set one.
        guardrail_threshold: Default threshold (0-1000 scale) for guardrails
            built through the runner.
        max_input_chars: Practical bound on run input text.
        follow_up_template: Prompt template used after a tool result when the
            model runs again. Receives `previous_output`, `tool_name`, `tool_output`.
        fail_on_guardrail_error: Treat an uninterpretable classifier payload as
            a blocking failure.
    """

    default_max_steps: int = 10
    default_tool_use_behavior: ToolUseBehavior = "run_llm_again"
    guardrail_threshold: int = 700
    max_input_chars: int = 200_000
    follow_up_template: str = DEFAULT_FOLLOW_UP_TEMPLATE
    fail_on_guardrail_error: bool = True

    def __post_init__(self) -> None:
        if self.default_max_steps < 1:
            raise ValueError("default_max_steps must be >= 1")
        if self.default_tool_use_behavior not in ("run_llm_again", "stop_on_first_tool"):
            raise ValueError("default_tool_use_behavior must be 'run_llm_again' or 'stop_on_first_tool'")
        if not 0 <= self.guardrail_threshold <= 1000:
            raise ValueError("guardrail_threshold must be within 0..1000")
        if self.max_input_chars < 1:
            raise ValueError("max_input_chars must be >= 1")

    @staticmethod
    def from_env() -> "RunnerConfig":
        return RunnerConfig(
            default_max_steps=int(os.getenv("POLLAGENT_MAX_STEPS", "10")),
            default_tool_use_behavior=os.getenv(  # type: ignore[arg-type]
                "POLLAGENT_TOOL_USE_BEHAVIOR", "run_llm_again"
            ),
            guardrail_threshold=int(os.getenv("POLLAGENT_GUARDRAIL_THRESHOLD", "700")),
            max_input_chars=int(os.getenv("POLLAGENT_MAX_INPUT_CHARS", "200000")),
            follow_up_template=os.getenv("POLLAGENT_FOLLOW_UP_TEMPLATE", DEFAULT_FOLLOW_UP_TEMPLATE),
            fail_on_guardrail_error=_env_bool("POLLAGENT_FAIL_ON_GUARDRAIL_ERROR", True),
        )


@dataclass(frozen=True, slots=True)
class RunConfig:
    """
    Per-run overrides passed to `Runner.run`.

    Attributes:
        max_steps: Overrides the agent's step budget for this run.
        skip_input_guardrails: Start the agent without input gating.
        skip_output_guardrails: Expose the final output without output gating.
    """

    max_steps: int | None = None
    skip_input_guardrails: bool = False
    skip_output_guardrails: bool = False
