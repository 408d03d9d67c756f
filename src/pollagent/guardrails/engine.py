"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Guardrail validation engine.

A validation is started with `validate_input`/`validate_output`, which issue
a classifier request and record a `pending` validation keyed by the
classifier's correlation id. `advance` resolves it once the classifier has
answered. Nothing here waits: an unanswered classifier leaves the validation
pending and `advance` returns `False`.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Any

from pydantic import ValidationError

from ..core.telemetry import NullTelemetrySink, TelemetrySink, emit, now_ms
from .errors import ValidationNotFoundError, WrongDirectionError
from .types import ClassifierVerdict, Guardrail, GuardrailValidation


class GuardrailEngine:
    """Runs guardrail validations and turns classifier scores into verdicts."""

    def __init__(self, *, telemetry: TelemetrySink | None = None) -> None:
        self._telemetry = telemetry or NullTelemetrySink()
        self._validations: dict[str, GuardrailValidation] = {}
        self._guardrails: dict[str, Guardrail] = {}

    def validate_input(self, guardrail: Guardrail, text: str) -> str:
        """
        Start validating run input.

        Raises:
            WrongDirectionError: If `guardrail` gates output.
        """
        if guardrail.direction != "input":
            raise WrongDirectionError(f"Guardrail '{guardrail.name}' does not validate input")
        return self._start(guardrail, guardrail.build_prompt(text))

    def validate_output(self, guardrail: Guardrail, text: str, context: str = "") -> str:
        """
        Start validating run output; `context` is the originating input.

        Raises:
            WrongDirectionError: If `guardrail` gates input.
        """
        if guardrail.direction != "output":
            raise WrongDirectionError(f"Guardrail '{guardrail.name}' does not validate output")
        return self._start(guardrail, guardrail.build_prompt(text, context))

    def advance(self, validation_id: str) -> bool:
        """
        Resolve the validation if its classifier has answered.

        Returns:
            `True` once the validation is resolved (now or earlier).
        """
        current = self.get_result(validation_id)
        if current.is_complete:
            return True
        guardrail = self._guardrails[validation_id]
        payload = guardrail.classifier.poll(validation_id)
        if payload is None:
            return False

        resolved = self._interpret(guardrail, current, payload)
        self._validations[validation_id] = resolved
        emit(
            self._telemetry,
            "guardrail.resolved",
            validation_id=validation_id,
            guardrail=guardrail.name,
            direction=guardrail.direction,
            result=resolved.result,
            score=resolved.score,
        )
        return True

    def get_result(self, validation_id: str) -> GuardrailValidation:
        try:
            return self._validations[validation_id]
        except KeyError as e:
            raise ValidationNotFoundError(f"Unknown guardrail validation: {validation_id}") from e

    def is_complete(self, validation_id: str) -> bool:
        return self.get_result(validation_id).is_complete

    def _start(self, guardrail: Guardrail, prompt: str) -> str:
        validation_id = guardrail.classifier.request(prompt)
        self._guardrails[validation_id] = guardrail
        self._validations[validation_id] = GuardrailValidation(
            id=validation_id,
            guardrail_name=guardrail.name,
            direction=guardrail.direction,
            timestamp_ms=now_ms(),
        )
        emit(
            self._telemetry,
            "guardrail.requested",
            validation_id=validation_id,
            guardrail=guardrail.name,
            direction=guardrail.direction,
        )
        return validation_id

    def _interpret(
        self,
        guardrail: Guardrail,
        current: GuardrailValidation,
        payload: Any,
    ) -> GuardrailValidation:
        try:
            verdict = _parse_verdict(payload)
        except (ValidationError, ValueError, TypeError) as e:
            return replace(
                current,
                result="error",
                reason=f"Guardrail '{guardrail.name}' received a malformed classifier payload: {e}",
                timestamp_ms=now_ms(),
            )

        if guardrail.variant == "content_filter":
            scores = {name: verdict.categories.get(name, 0) for name in guardrail.categories}
            flagged = [name for name, limit in guardrail.categories.items() if scores[name] >= limit]
            if flagged:
                details = ", ".join(f"{name} ({scores[name]} >= {guardrail.categories[name]})" for name in flagged)
                reason = f"Guardrail '{guardrail.name}' flagged: {details}"
                result = "fail"
            else:
                reason = f"Guardrail '{guardrail.name}' passed"
                result = "pass"
        else:
            scores = dict(verdict.categories)
            if verdict.overall_score < guardrail.threshold:
                reason = (
                    f"Guardrail '{guardrail.name}' failed: score {verdict.overall_score} "
                    f"below threshold {guardrail.threshold}"
                )
                result = "fail"
            else:
                reason = f"Guardrail '{guardrail.name}' passed"
                result = "pass"

        if verdict.reason:
            reason = f"{reason} ({verdict.reason})"
        return replace(
            current,
            result=result,
            score=verdict.overall_score,
            reason=reason,
            timestamp_ms=now_ms(),
            category_scores=scores,
        )


def _parse_verdict(payload: Any) -> ClassifierVerdict:
    if isinstance(payload, ClassifierVerdict):
        return payload
    if isinstance(payload, (str, bytes)):
        return ClassifierVerdict.model_validate(json.loads(payload))
    return ClassifierVerdict.model_validate(payload)
