from __future__ import annotations

import pytest

from pollagent.core import (
    DEFAULT_FOLLOW_UP_TEMPLATE,
    InMemoryTelemetrySink,
    NullTelemetrySink,
    OpenTelemetrySink,
    RunConfig,
    RunnerConfig,
    emit,
)


def test_runner_config_defaults():
    cfg = RunnerConfig()

    assert cfg.default_max_steps == 10
    assert cfg.default_tool_use_behavior == "run_llm_again"
    assert cfg.guardrail_threshold == 700
    assert cfg.follow_up_template == DEFAULT_FOLLOW_UP_TEMPLATE
    assert cfg.fail_on_guardrail_error is True


def test_runner_config_from_env(monkeypatch):
    monkeypatch.setenv("POLLAGENT_MAX_STEPS", "4")
    monkeypatch.setenv("POLLAGENT_TOOL_USE_BEHAVIOR", "stop_on_first_tool")
    monkeypatch.setenv("POLLAGENT_GUARDRAIL_THRESHOLD", "650")
    monkeypatch.setenv("POLLAGENT_MAX_INPUT_CHARS", "128")
    monkeypatch.setenv("POLLAGENT_FOLLOW_UP_TEMPLATE", "{tool_name}: {tool_output}")
    monkeypatch.setenv("POLLAGENT_FAIL_ON_GUARDRAIL_ERROR", "no")

    cfg = RunnerConfig.from_env()

    assert cfg.default_max_steps == 4
    assert cfg.default_tool_use_behavior == "stop_on_first_tool"
    assert cfg.guardrail_threshold == 650
    assert cfg.max_input_chars == 128
    assert cfg.follow_up_template == "{tool_name}: {tool_output}"
    assert cfg.fail_on_guardrail_error is False


def test_runner_config_from_env_uses_defaults(monkeypatch):
    for name in (
        "POLLAGENT_MAX_STEPS",
        "POLLAGENT_TOOL_USE_BEHAVIOR",
        "POLLAGENT_GUARDRAIL_THRESHOLD",
        "POLLAGENT_MAX_INPUT_CHARS",
        "POLLAGENT_FOLLOW_UP_TEMPLATE",
        "POLLAGENT_FAIL_ON_GUARDRAIL_ERROR",
    ):
        monkeypatch.delenv(name, raising=False)

    assert RunnerConfig.from_env() == RunnerConfig()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"default_max_steps": 0},
        {"default_tool_use_behavior": "loop_forever"},
        {"guardrail_threshold": 1001},
        {"max_input_chars": 0},
    ],
)
def test_runner_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        RunnerConfig(**kwargs)


def test_run_config_defaults():
    cfg = RunConfig()

    assert cfg.max_steps is None
    assert cfg.skip_input_guardrails is False
    assert cfg.skip_output_guardrails is False


def test_emit_records_json_safe_event_and_counter():
    sink = InMemoryTelemetrySink()

    class _Opaque:
        def __repr__(self) -> str:
            return "<opaque>"

    emit(sink, "step.completed", index=2, names=("a", "b"), handle=_Opaque())
    emit(sink, "step.completed", index=3)

    first = sink.events("step.completed")[0]
    assert first.attributes == {"index": 2, "names": ["a", "b"], "handle": "<opaque>"}
    assert first.timestamp_ms > 0
    assert sink.counter("step.completed") == 2
    assert sink.counter("never.emitted") == 0


def test_emit_accepts_a_name_attribute():
    sink = InMemoryTelemetrySink()

    emit(sink, "registry.registered", name="echo", kind="tool")

    event = sink.events("registry.registered")[0]
    assert event.name == "registry.registered"
    assert event.attributes == {"name": "echo", "kind": "tool"}


def test_null_sink_accepts_everything():
    emit(NullTelemetrySink(), "run.started", run_id="run_1")


def test_open_telemetry_sink_records_through_global_meter():
    pytest.importorskip("opentelemetry.metrics")
    sink = OpenTelemetrySink()

    emit(sink, "run.completed", run_id="run_1", steps=3, terminated_early=False)
