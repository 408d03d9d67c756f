"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines custom exceptions for error handling in the tools.
"""

from __future__ import annotations

from ..core.errors import NotFoundError, PollAgentError


class ToolError(PollAgentError):
    """Base exception for all tool-related errors."""

    pass


class ToolValidationError(ToolError):
    pass


class ToolExecutionError(ToolError):
    pass


class ToolNotFoundError(ToolError, NotFoundError):
    pass
