"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Guardrail registry.
"""

from __future__ import annotations

from ..core.registry import Registry
from ..core.types import JSONValue
from .types import Guardrail, GuardrailDirection


class GuardrailRegistry(Registry[Guardrail]):
    """Registry of guardrails; gating order is registration order."""

    kind = "guardrail"

    def metadata(self, handle: Guardrail) -> dict[str, JSONValue]:
        return {"direction": handle.direction, "variant": handle.variant}

    def for_direction(self, direction: GuardrailDirection) -> list[Guardrail]:
        return [g for g in self if g.direction == direction]
