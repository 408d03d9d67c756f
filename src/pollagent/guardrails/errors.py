"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Guardrail-layer error taxonomy.
"""

from __future__ import annotations

from ..core.errors import NotFoundError, PollAgentError


class GuardrailError(PollAgentError):
    """Base exception for all guardrail failures."""
    pass


class GuardrailConfigurationError(GuardrailError):
    """Raised when a guardrail definition is invalid."""
    pass


class WrongDirectionError(GuardrailError):
    """Raised when an input guardrail validates output, or vice versa."""
    pass


class ValidationNotFoundError(GuardrailError, NotFoundError):
    pass
