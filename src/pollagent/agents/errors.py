"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Agent-layer error taxonomy.
"""

from __future__ import annotations

from ..core.errors import NotFoundError, PollAgentError


class AgentError(PollAgentError):
    """Base exception for all agent-runtime failures."""
    pass


class AgentConfigurationError(AgentError):
    """
    Raised when agent configuration is invalid.

    Typical cases:
    - invalid constructor values
    - a step budget below one
    - a reused run id
    """
    pass


class BusyError(AgentError):
    """Raised when `start` is called while the agent is processing a run."""
    pass


class NotCompletedError(AgentError):
    """Raised when a handoff result is requested before the handoff is completed."""
    pass


class RunNotFoundError(AgentError, NotFoundError):
    pass


class HandoffNotFoundError(AgentError, NotFoundError):
    pass
