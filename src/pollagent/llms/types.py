"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the provider-agnostic model capability used by the run
state machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ..core.types import JSONValue


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool-use intent expressed by a model reply."""

    tool_name: str
    arguments: JSONValue = None
    id: str | None = None


@dataclass(frozen=True, slots=True)
class ModelReply:
    """
    Normalized model response.

    Attributes:
        text: Assistant text. May be empty when the reply only calls tools.
        tool_calls: Tool-use intents, in the order the model emitted them.
        model: Optional model identifier reported by the backend.
    """

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    model: str | None = None


@dataclass(frozen=True, slots=True)
class ModelPrompt:
    """Prompt issued to a model backend for one correlation id."""

    correlation_id: str
    system_instructions: str
    input: str


@runtime_checkable
class ModelBackend(Protocol):
    """
    Start/poll contract for generative model backends.

    `poll` returns `None` until the reply is available; callers retry later.
    """

    def request(self, system_instructions: str, input: str) -> str:
        """Issue a model request and return its correlation id."""
        ...

    def poll(self, correlation_id: str) -> str | None:
        """Return the reply text once available, else `None`."""
        ...

    def detects_tool_call(self, correlation_id: str, tool_name: str) -> bool:
        """Return `True` when the reply asks to call `tool_name`."""
        ...

    def tool_arguments(self, correlation_id: str, tool_name: str) -> JSONValue:
        """Return the arguments the reply supplies for `tool_name`."""
        ...
