"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Guardrail definitions, validation records and the classifier payload schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from .errors import GuardrailConfigurationError

if TYPE_CHECKING:
    from .classifier import Classifier


GuardrailDirection = Literal["input", "output"]
GuardrailVariant = Literal["simple", "content_filter"]
ValidationResult = Literal["pending", "pass", "fail", "error"]

SCORE_MAX = 1000
DEFAULT_THRESHOLD = 700
DEFAULT_CONTENT_CATEGORIES: tuple[str, ...] = (
    "hate",
    "harassment",
    "self_harm",
    "sexual",
    "violence",
)

DEFAULT_INPUT_TEMPLATE = (
    "Score the following user input from 0 to 1000 for safety and policy compliance.\n"
    "Input:\n{text}"
)
DEFAULT_OUTPUT_TEMPLATE = (
    "Score the following assistant response from 0 to 1000 for safety and policy compliance.\n"
    "Response:\n{text}\n\n"
    "Original input:\n{context}"
)


class ClassifierVerdict(BaseModel):
    """
    Scored classifier payload.

    Scores use a 0-1000 scale. `categories` is only consulted by the
    content-filter variant.
    """

    model_config = ConfigDict(extra="ignore")

    overall_score: int = Field(ge=0, le=SCORE_MAX)
    categories: dict[str, int] = Field(default_factory=dict)
    reason: str | None = None


@dataclass(frozen=True, slots=True, eq=False)
class Guardrail:
    """
    Validation gate definition.

    Attributes:
        name: Unique display name.
        direction: Whether it gates run input or run output.
        classifier: Start/poll scoring capability.
        variant: `simple` fails when `overall_score < threshold`;
            `content_filter` fails when any configured category's score is
            `>=` its threshold.
        threshold: Scalar threshold for the simple variant.
        categories: Category → threshold map for the content-filter variant.
        prompt_template: Classifier prompt; receives `text` (and `context`
            for output guardrails).
    """

    name: str
    direction: GuardrailDirection
    classifier: "Classifier"
    variant: GuardrailVariant = "simple"
    threshold: int = DEFAULT_THRESHOLD
    categories: dict[str, int] = field(default_factory=dict)
    prompt_template: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise GuardrailConfigurationError("guardrail name must be a non-empty string")
        if self.direction not in ("input", "output"):
            raise GuardrailConfigurationError("direction must be 'input' or 'output'")
        if self.variant not in ("simple", "content_filter"):
            raise GuardrailConfigurationError("variant must be 'simple' or 'content_filter'")
        if not 0 <= self.threshold <= SCORE_MAX:
            raise GuardrailConfigurationError(f"threshold must be within 0..{SCORE_MAX}")
        if self.variant == "content_filter" and not self.categories:
            raise GuardrailConfigurationError("content_filter guardrails need at least one category")
        for category, limit in self.categories.items():
            if not 0 <= limit <= SCORE_MAX:
                raise GuardrailConfigurationError(
                    f"category '{category}' threshold must be within 0..{SCORE_MAX}"
                )

    @property
    def display_name(self) -> str:
        return self.name

    def build_prompt(self, text: str, context: str = "") -> str:
        template = self.prompt_template or (
            DEFAULT_INPUT_TEMPLATE if self.direction == "input" else DEFAULT_OUTPUT_TEMPLATE
        )
        return template.format(text=text, context=context)


def content_filter_guardrail(
    name: str,
    classifier: "Classifier",
    *,
    direction: GuardrailDirection = "input",
    categories: tuple[str, ...] | list[str] = DEFAULT_CONTENT_CATEGORIES,
    threshold: int = DEFAULT_THRESHOLD,
    overrides: dict[str, int] | None = None,
) -> Guardrail:
    """Build a content-filter guardrail with one threshold for every category."""
    limits = {category: threshold for category in categories}
    limits.update(overrides or {})
    return Guardrail(
        name=name,
        direction=direction,
        classifier=classifier,
        variant="content_filter",
        threshold=threshold,
        categories=limits,
    )


@dataclass(frozen=True, slots=True)
class GuardrailValidation:
    """
    One validation of one text by one guardrail.

    Created `pending`; resolved exactly once to `pass`/`fail`/`error`.
    """

    id: str
    guardrail_name: str
    direction: GuardrailDirection
    result: ValidationResult = "pending"
    score: int | None = None
    reason: str | None = None
    timestamp_ms: int = 0
    category_scores: dict[str, int] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.result != "pending"

    @property
    def passed(self) -> bool:
        return self.result == "pass"
