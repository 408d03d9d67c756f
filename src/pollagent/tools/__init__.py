"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

pollagent tools public API.

This package exposes:
- Core tool types (Tool, ToolSpec, ToolResult, ToolBackend)
- FunctionToolBackend and the `function_tool` factory
- ToolRegistry
"""

from .base import (
    FunctionToolBackend,
    Tool,
    ToolBackend,
    ToolFn,
    ToolResult,
    ToolSpec,
    function_tool,
)
from .errors import ToolError, ToolExecutionError, ToolNotFoundError, ToolValidationError
from .registry import ToolRegistry

__all__ = [
    "Tool",
    "ToolSpec",
    "ToolResult",
    "ToolBackend",
    "ToolFn",
    "FunctionToolBackend",
    "function_tool",
    "ToolRegistry",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolValidationError",
]
