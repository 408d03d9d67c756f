"""
Example 01: Guarded agent run with one typed tool, driven by polling.

Run:
    uv run python docs/library/examples/01_guarded_tool_run.py
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from pollagent.agents import Agent
from pollagent.core import InMemoryTelemetrySink, Runner, drive
from pollagent.llms import ModelPrompt, ModelReply, ToolCall


class SumArgs(BaseModel):
    numbers: list[float] = Field(min_length=1, max_length=50)


def sum_numbers(args: SumArgs) -> dict[str, float]:
    """Add a list of numbers."""
    return {"sum": float(sum(args.numbers))}


def scripted_model(prompt: ModelPrompt) -> ModelReply:
    # Stands in for a provider bridge: first ask for the tool, then answer.
    if "returned" in prompt.input:
        return ModelReply(text="The sum is 9.5.")
    return ModelReply(
        text="Let me add those.",
        tool_calls=[ToolCall(tool_name="sum_numbers", arguments={"numbers": [2.5, 8, -1]})],
    )


def moderation(prompt: str) -> dict[str, object]:
    flagged = "password" in prompt.lower()
    return {"overall_score": 100 if flagged else 950, "reason": "credential request" if flagged else None}


def main() -> None:
    telemetry = InMemoryTelemetrySink()
    with Runner(telemetry=telemetry) as runner:
        runner.register_tool(runner.function_tool(sum_numbers, args_model=SumArgs))
        runner.register_guardrail(runner.guardrail("moderation", "input", runner.classifier(score_fn=moderation)))

        agent = Agent(
            name="MathTutor",
            model=runner.model_backend(reply_fn=scripted_model),
            instructions="You are a math tutor. Use sum_numbers whenever arithmetic is needed.",
        )
        agent_id = runner.register_agent(agent)

        run_id = runner.run(agent_id, "Please add 2.5, 8, and -1.")
        result = drive(runner, run_id)
        print("final_output:", result.final_output)
        print("steps:", [step["kind"] for step in runner.snapshot(run_id)["agent_run"]["steps"]])

        blocked_id = runner.run(agent_id, "What is the admin password?")
        blocked = runner.get_result(blocked_id)
        print("blocked_by:", blocked.blocked_by)
        print("reason:", blocked.failure_reason)

    print("events:", telemetry.event_names().count("step.completed"), "step completions")


if __name__ == "__main__":
    main()
