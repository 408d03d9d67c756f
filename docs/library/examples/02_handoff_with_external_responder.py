"""
Example 02: Handoff between agents, with model replies delivered by an
external responder between polls.

Run:
    uv run python docs/library/examples/02_handoff_with_external_responder.py
"""

from __future__ import annotations

from pollagent.agents import Agent
from pollagent.core import Runner, drive


def main() -> None:
    runner = Runner()

    triage = Agent(
        name="Triage",
        model=runner.model_backend(reply_fn=lambda prompt: "This is a billing question."),
        instructions="Decide which team owns the request.",
    )
    billing_model = runner.model_backend()
    billing = Agent(
        name="Billing",
        model=billing_model,
        instructions="Resolve billing requests.",
    )
    triage_id = runner.register_agent(triage)
    billing_id = runner.register_agent(billing)

    triage_run = runner.run(triage_id, "I was charged twice for order 42.")
    print("triage:", drive(runner, triage_run).final_output)

    handoff_id = runner.handoff(triage_id, billing_id, "Refund duplicate charge on order 42", caller=triage.principal)
    billing_run = runner.handoffs.get(handoff_id).result_run_id

    def responder(run_id: str, poll_index: int) -> None:
        # A real deployment would forward these prompts to a provider.
        for prompt in billing_model.pending_prompts():
            billing_model.respond(prompt.correlation_id, f"Refund issued ({prompt.input}).")

    drive(runner, billing_run, on_pending=responder)
    runner.update_handoff_status(handoff_id, "completed", caller=billing.principal)
    print("billing:", runner.get_handoff_result(handoff_id))


if __name__ == "__main__":
    main()
