# src/agent_live/core/view.py

from __future__ import annotations

"""
Read-time merge of the two task containers.

The session controller (polling) and the live synchronizer (push) are never written by each
other; this module only reads both and derives what the user sees:

- steps:      push steps if the push channel has produced any, else polled steps
- screenshot: push channel only (polled steps carry none)
- outcome:    the first channel to report completed/failed wins; a non-terminal status from
              the other channel never overrides it
"""

from dataclasses import dataclass

from ..connectors.live_channel import (
    DEFAULT_COMPLETION_MESSAGE,
    DEFAULT_FAILURE_MESSAGE,
    EMPTY_LIVE_STATE,
    LiveState,
)
from ..tasks.task_models import Step, Task, TaskStatus


@dataclass(slots=True, frozen=True)
class TaskView:
    task_id: str | None
    prompt: str | None
    status: TaskStatus | None
    steps: tuple[Step, ...]
    screenshot: str | None
    completion_message: str | None
    failure_error: str | None
    error: str | None
    latest_url: str | None
    is_connected: bool
    outcome_source: str | None  # "push" | "poll" | None

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal


def _push_outcome(live: LiveState) -> tuple[TaskStatus, str | None, str | None] | None:
    if live.completion_message is not None:
        return TaskStatus.COMPLETED, live.completion_message, None
    if live.failure_error is not None:
        return TaskStatus.FAILED, None, live.failure_error
    return None


def _poll_outcome(task: Task | None) -> tuple[TaskStatus, str | None, str | None] | None:
    if task is None or not task.status.is_terminal:
        return None
    if task.status == TaskStatus.COMPLETED:
        return TaskStatus.COMPLETED, DEFAULT_COMPLETION_MESSAGE, None
    return TaskStatus.FAILED, None, task.error or DEFAULT_FAILURE_MESSAGE


def merge_view(
        task: Task | None,
        live: LiveState | None = None,
        *,
        error: str | None = None,
        poll_terminal_at: float | None = None,
) -> TaskView:
    """
    Derive the user-visible view. Pure: same inputs, same output, nothing is mutated.

    poll_terminal_at is the local monotonic time the controller first saw a terminal poll;
    it is compared with live.terminal_observed_at when both channels claim an outcome.
    Ties, or a missing timestamp on either side, go to the push channel.
    """
    if live is None or (task is not None and live.task_id not in (None, task.id)):
        live = EMPTY_LIVE_STATE

    steps: tuple[Step, ...] = live.steps if live.steps else (task.steps if task is not None else ())

    push = _push_outcome(live)
    poll = _poll_outcome(task)

    outcome = None
    source = None
    if push is not None and poll is not None:
        if (
            poll_terminal_at is not None
            and live.terminal_observed_at is not None
            and poll_terminal_at < live.terminal_observed_at
        ):
            outcome, source = poll, "poll"
        else:
            outcome, source = push, "push"
    elif push is not None:
        outcome, source = push, "push"
    elif poll is not None:
        outcome, source = poll, "poll"

    if outcome is not None:
        status, completion_message, failure_error = outcome
    else:
        status = task.status if task is not None else None
        completion_message = failure_error = None

    return TaskView(
        task_id=task.id if task is not None else live.task_id,
        prompt=task.prompt if task is not None else None,
        status=status,
        steps=steps,
        screenshot=live.screenshot,
        completion_message=completion_message,
        failure_error=failure_error,
        error=error or failure_error,
        latest_url=steps[-1].url if steps else None,
        is_connected=live.is_connected,
        outcome_source=source,
    )
