"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Guardrail exports.
"""

from .classifier import Classifier, PendingClassifier, ScoreFn
from .engine import GuardrailEngine
from .errors import (
    GuardrailConfigurationError,
    GuardrailError,
    ValidationNotFoundError,
    WrongDirectionError,
)
from .registry import GuardrailRegistry
from .types import (
    DEFAULT_CONTENT_CATEGORIES,
    DEFAULT_THRESHOLD,
    ClassifierVerdict,
    Guardrail,
    GuardrailDirection,
    GuardrailValidation,
    GuardrailVariant,
    ValidationResult,
    content_filter_guardrail,
)

__all__ = [
    "Classifier",
    "PendingClassifier",
    "ScoreFn",
    "GuardrailEngine",
    "GuardrailRegistry",
    "Guardrail",
    "GuardrailDirection",
    "GuardrailVariant",
    "GuardrailValidation",
    "ValidationResult",
    "ClassifierVerdict",
    "content_filter_guardrail",
    "DEFAULT_CONTENT_CATEGORIES",
    "DEFAULT_THRESHOLD",
    "GuardrailError",
    "GuardrailConfigurationError",
    "WrongDirectionError",
    "ValidationNotFoundError",
]
