"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module implements the ToolRegistry: owner-gated registration of tools
and the registration-order scan used for tool-call detection.
"""

from __future__ import annotations

from typing import Any, Dict, List

from ..core.errors import NotFoundError
from ..core.registry import Registry
from ..core.types import JSONValue
from .base import Tool, ToolSpec
from .errors import ToolNotFoundError


class ToolRegistry(Registry[Tool]):
    """Registry of tools; iteration order is registration order."""

    kind = "tool"

    def metadata(self, handle: Tool) -> dict[str, JSONValue]:
        return {"tool_type": handle.spec.tool_type, "description": handle.spec.description}

    def get(self, name: str) -> Tool:
        try:
            return self.resolve(self.resolve_by_name(name))
        except NotFoundError as e:
            raise ToolNotFoundError(f"Unknown tool: {name}") from e

    def has(self, name: str) -> bool:
        return name in self.names()

    def specs(self) -> List[ToolSpec]:
        return [t.spec for t in self]

    def list_tool_summaries(self) -> List[Dict[str, Any]]:
        """
        Lightweight listing for debugging.
        """
        return [
            {"name": t.spec.name, "description": t.spec.description, "tool_type": t.spec.tool_type}
            for t in self
        ]
