"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Agent registry.
"""

from __future__ import annotations

from ..core.registry import Registry
from ..core.types import JSONValue
from .base import Agent


class AgentRegistry(Registry[Agent]):
    kind = "agent"

    def metadata(self, handle: Agent) -> dict[str, JSONValue]:
        return {
            "tool_use_behavior": handle.tool_use_behavior,
            "max_steps": handle.max_steps,
            "tools": handle.tools.names() if handle.tools is not None else [],
        }
