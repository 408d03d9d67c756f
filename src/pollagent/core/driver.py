"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Polling drivers for runner-managed runs.

The runner never waits on its own; these helpers are the simplest external
driver: call `process_run` until the run is terminal, giving the caller a hook
between polls to fulfil pending requests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable

from .errors import DriverExhaustedError

if TYPE_CHECKING:
    from .runner import Runner, RunResult

PendingHook = Callable[[str, int], None]


def drive(
    runner: "Runner",
    run_id: str,
    *,
    max_polls: int = 1000,
    on_pending: PendingHook | None = None,
) -> "RunResult":
    """
    Poll one run until it completes.

    Args:
        runner: Runner that owns `run_id`.
        run_id: Run to drive.
        max_polls: Upper bound on `process_run` calls.
        on_pending: Called as `on_pending(run_id, poll_index)` after every
            poll that left the run pending.

    Returns:
        The runner's final `RunResult`.

    Raises:
        DriverExhaustedError: If the run is still pending after `max_polls`.
    """
    if max_polls < 1:
        raise ValueError("max_polls must be >= 1")
    for poll_index in range(max_polls):
        if runner.process_run(run_id):
            return runner.get_result(run_id)
        if on_pending is not None:
            on_pending(run_id, poll_index)
    raise DriverExhaustedError(f"Run {run_id} still pending after {max_polls} polls")


def drive_many(
    runner: "Runner",
    run_ids: Iterable[str],
    *,
    max_rounds: int = 1000,
    on_pending: PendingHook | None = None,
) -> dict[str, "RunResult"]:
    """
    Round-robin several runs until all of them complete.

    Each round polls every still-pending run once, in the given order.

    Returns:
        Mapping of run id to final `RunResult`, in input order.

    Raises:
        DriverExhaustedError: If any run is still pending after `max_rounds`.
    """
    if max_rounds < 1:
        raise ValueError("max_rounds must be >= 1")
    order = list(dict.fromkeys(run_ids))
    pending = list(order)
    for round_index in range(max_rounds):
        still_pending: list[str] = []
        for run_id in pending:
            if runner.process_run(run_id):
                continue
            still_pending.append(run_id)
            if on_pending is not None:
                on_pending(run_id, round_index)
        pending = still_pending
        if not pending:
            return {run_id: runner.get_result(run_id) for run_id in order}
    raise DriverExhaustedError(
        f"{len(pending)} run(s) still pending after {max_rounds} rounds: {', '.join(pending)}"
    )
