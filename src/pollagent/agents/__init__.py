"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Agent runtime exports.
"""

from .base import Agent
from .errors import (
    AgentConfigurationError,
    AgentError,
    BusyError,
    HandoffNotFoundError,
    NotCompletedError,
    RunNotFoundError,
)
from .handoff import HandoffManager
from .registry import AgentRegistry
from .runtime import RunStateMachine
from .types import AgentState, Handoff, HandoffStatus, Run, Step, StepKind, ToolUseBehavior

__all__ = [
    "Agent",
    "AgentRegistry",
    "RunStateMachine",
    "HandoffManager",
    "AgentState",
    "StepKind",
    "HandoffStatus",
    "ToolUseBehavior",
    "Run",
    "Step",
    "Handoff",
    "AgentError",
    "AgentConfigurationError",
    "BusyError",
    "NotCompletedError",
    "RunNotFoundError",
    "HandoffNotFoundError",
]
