from __future__ import annotations

from dataclasses import dataclass

import pytest

from pollagent.agents import Agent, AgentConfigurationError, BusyError, RunNotFoundError
from pollagent.core import IdentityAllocator, InMemoryTelemetrySink, NotFoundError, PendingRequestTable, Principal
from pollagent.llms import ModelPrompt, ModelReply, PendingModelBackend, ReplyFn, ToolCall
from pollagent.tools import Tool, ToolRegistry, function_tool


@dataclass
class _Harness:
    ids: IdentityAllocator
    owner: Principal
    responder: Principal
    table: PendingRequestTable
    tools: ToolRegistry
    model: PendingModelBackend

    def add_tool(self, fn, *, name: str, deferred: bool = False) -> tuple[str, Tool]:
        tool = function_tool(fn, table=self.table, responder=self.responder, name=name, deferred=deferred)
        return self.tools.register(tool, caller=self.owner), tool

    def agent(self, **kwargs) -> Agent:
        kwargs.setdefault("name", "assistant")
        return Agent(model=self.model, tools=self.tools, ids=self.ids, **kwargs)


def _harness(reply_fn: ReplyFn | None = None) -> _Harness:
    ids = IdentityAllocator()
    owner = Principal(name="owner")
    responder = Principal(name="responder")
    table = PendingRequestTable(ids=ids, responder=responder)
    return _Harness(
        ids=ids,
        owner=owner,
        responder=responder,
        table=table,
        tools=ToolRegistry(owner=owner, ids=ids),
        model=PendingModelBackend(table, responder=responder, reply_fn=reply_fn),
    )


def _calls(*names: str, text: str = "calling tools") -> ModelReply:
    return ModelReply(text=text, tool_calls=[ToolCall(tool_name=name, arguments="hi") for name in names])


def _echo_then_answer(prompt: ModelPrompt) -> ModelReply:
    if "Tool 'echo' returned" in prompt.input:
        return ModelReply(text="final answer")
    return _calls("echo", text="calling echo")


def test_echo_scenario_completes_in_three_advances():
    h = _harness(reply_fn=lambda prompt: _calls("echo", text="calling echo"))
    h.add_tool(lambda text: f"{text}-echoed", name="echo")
    agent = h.agent(tool_use_behavior="stop_on_first_tool")
    run_id = agent.start("please echo")

    assert agent.state == "processing"
    assert [agent.advance(run_id) for _ in range(3)] == [False, False, True]

    run = agent.get_run(run_id)
    assert run.completed is True
    assert run.final_output == "hi-echoed"
    assert [step.kind for step in run.steps] == ["model_call", "tool_call", "complete"]
    assert run.steps[1].tool_args == "hi"
    assert run.steps[1].output == "hi-echoed"
    assert agent.state == "idle"
    assert agent.get_result(run_id) == "hi-echoed"


def test_run_llm_again_feeds_tool_result_back_to_model():
    h = _harness(reply_fn=_echo_then_answer)
    h.add_tool(lambda text: f"{text}-echoed", name="echo")
    agent = h.agent()
    run_id = agent.start("please echo")

    assert [agent.advance(run_id) for _ in range(4)] == [False, False, False, True]

    run = agent.get_run(run_id)
    assert run.final_output == "final answer"
    assert [step.kind for step in run.steps] == ["model_call", "tool_call", "model_call", "complete"]
    follow_up = h.model.prompt_for(run.steps[2].correlation_id).input
    assert "calling echo" in follow_up
    assert "hi-echoed" in follow_up


def test_completed_run_is_idempotent():
    h = _harness(reply_fn=lambda prompt: "plain answer")
    agent = h.agent()
    run_id = agent.start("question")
    while not agent.advance(run_id):
        pass

    before = agent.snapshot(run_id)
    assert agent.advance(run_id) is True
    assert agent.advance(run_id) is True
    assert agent.snapshot(run_id) == before
    assert before["final_output"] == "plain answer"


def test_step_index_is_monotonic_while_waiting():
    h = _harness()
    _, tool = h.add_tool(lambda text: text.upper(), name="shout", deferred=True)
    agent = h.agent(tool_use_behavior="stop_on_first_tool", max_steps=20)
    run_id = agent.start("question")
    indices = [agent.get_run(run_id).current_step_index]

    def step() -> bool:
        done = agent.advance(run_id)
        indices.append(agent.get_run(run_id).current_step_index)
        return done

    assert step() is False
    assert step() is False
    h.model.respond(h.model.pending_prompts()[0].correlation_id, _calls("shout"))
    assert step() is False
    assert step() is False
    tool.backend.complete(tool.backend.pending_executions()[0])
    assert step() is False
    assert step() is True

    assert indices == sorted(indices)
    assert agent.get_result(run_id) == "HI"


def test_max_steps_guard_terminates_a_stuck_run():
    h = _harness()
    agent = h.agent(max_steps=4)
    run_id = agent.start("question")

    assert [agent.advance(run_id) for _ in range(4)] == [False, False, False, True]

    run = agent.get_run(run_id)
    assert run.completed is True
    assert run.terminated_early is True
    assert run.final_output == ""
    assert agent.state == "idle"


def test_max_steps_guard_keeps_last_completed_output():
    h = _harness(reply_fn=lambda prompt: _calls("echo", text="calling echo"))
    h.add_tool(lambda text: f"{text}-echoed", name="echo")
    agent = h.agent(max_steps=3)
    run_id = agent.start("loop forever")

    assert [agent.advance(run_id) for _ in range(3)] == [False, False, True]

    run = agent.get_run(run_id)
    assert run.terminated_early is True
    assert run.final_output == "calling echo"


def test_run_finishing_on_its_last_budgeted_call_is_not_cut_short():
    h = _harness(reply_fn=lambda prompt: _calls("echo", text="calling echo"))
    h.add_tool(lambda text: f"{text}-echoed", name="echo")
    agent = h.agent(tool_use_behavior="stop_on_first_tool", max_steps=2)
    run_id = agent.start("please echo")

    assert [agent.advance(run_id) for _ in range(2)] == [False, True]

    run = agent.get_run(run_id)
    assert run.terminated_early is False
    assert run.final_output == "hi-echoed"
    assert [step.kind for step in run.steps] == ["model_call", "tool_call", "complete"]
    assert all(step.completed for step in run.steps)
    assert agent.state == "idle"


def test_agent_runs_one_input_at_a_time():
    h = _harness(reply_fn=lambda prompt: "answer")
    agent = h.agent()
    run_id = agent.start("first")

    with pytest.raises(BusyError):
        agent.start("second")

    while not agent.advance(run_id):
        pass
    second = agent.start("second")
    assert second != run_id
    assert agent.run_ids() == [run_id, second]


def test_unknown_run_id_raises_not_found():
    agent = _harness().agent()

    with pytest.raises(RunNotFoundError):
        agent.advance("run_missing")
    with pytest.raises(NotFoundError):
        agent.get_result("run_missing")


def test_reused_run_id_is_rejected():
    h = _harness(reply_fn=lambda prompt: "answer")
    agent = h.agent()
    run_id = agent.start("first", run_id="run_fixed")
    while not agent.advance(run_id):
        pass

    with pytest.raises(AgentConfigurationError):
        agent.start("again", run_id="run_fixed")


def test_first_registered_tool_wins_when_reply_names_several():
    h = _harness(reply_fn=lambda prompt: _calls("beta", "alpha"))
    h.add_tool(lambda args: "from alpha", name="alpha")
    h.add_tool(lambda args: "from beta", name="beta")
    agent = h.agent(tool_use_behavior="stop_on_first_tool")
    run_id = agent.start("question")
    while not agent.advance(run_id):
        pass

    run = agent.get_run(run_id)
    assert run.steps[1].tool_name == "alpha"
    assert run.final_output == "from alpha"


def test_tool_unregistered_mid_run_yields_failed_tool_result():
    h = _harness(reply_fn=lambda prompt: _calls("slow"))
    tool_id, _ = h.add_tool(lambda args: "never", name="slow", deferred=True)
    agent = h.agent(tool_use_behavior="stop_on_first_tool")
    run_id = agent.start("question")

    assert agent.advance(run_id) is False
    h.tools.unregister(tool_id, caller=h.owner)
    assert agent.advance(run_id) is False
    assert agent.advance(run_id) is True

    run = agent.get_run(run_id)
    assert run.steps[1].success is False
    assert run.final_output == "error: Tool 'slow' is no longer registered"


def test_unrequested_tools_are_ignored():
    h = _harness(reply_fn=lambda prompt: "no tools needed")
    h.add_tool(lambda args: "unused", name="echo")
    agent = h.agent()
    run_id = agent.start("question")

    assert [agent.advance(run_id) for _ in range(2)] == [False, True]
    assert agent.get_result(run_id) == "no tools needed"


def test_agent_configuration_is_validated():
    h = _harness()

    with pytest.raises(AgentConfigurationError):
        h.agent(name=" ")
    with pytest.raises(AgentConfigurationError):
        h.agent(max_steps=0)
    with pytest.raises(AgentConfigurationError):
        h.agent(tool_use_behavior="sometimes")


def test_run_lifecycle_is_reported_to_telemetry():
    h = _harness(reply_fn=lambda prompt: "answer")
    sink = InMemoryTelemetrySink()
    agent = h.agent(telemetry=sink)
    run_id = agent.start("question")
    while not agent.advance(run_id):
        pass

    assert sink.event_names() == ["run.started", "step.completed", "step.completed", "run.completed"]
    completed = sink.events("run.completed")[0]
    assert completed.attributes["run_id"] == run_id
    assert completed.attributes["terminated_early"] is False
