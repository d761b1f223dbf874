# src/agent_live/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TextIO

from ..core.state import AppState
from ..core.view import TaskView
from ..tasks.task_models import Step

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_step(step: Step) -> str:
    action = step.action
    parts = [f"#{step.iteration}", action.action or "?"]
    if action.selector:
        parts.append(action.selector)
    if action.value:
        parts.append(repr(action.value))
    line = " ".join(parts)
    if step.thought:
        line += f" - {step.thought}"
    if step.url:
        line += f" ({step.url})"
    return line


class ConsoleRenderer:
    """
    Prints only what changed between two merged views.

    Stateless with respect to the task containers: it remembers what it already printed,
    nothing else.
    """

    def __init__(self, out: TextIO) -> None:
        self._out = out
        self._printed_iterations: set[int] = set()
        self._last_status: str | None = None
        self._last_connected: bool | None = None
        self._outcome_printed = False
        self._error_printed: str | None = None

    def _print(self, text: str) -> None:
        self._out.write(f"[{_ts_local()}] {text}\n")
        self._out.flush()

    def render(self, view: TaskView) -> None:
        if view.error and view.error != self._error_printed and view.failure_error is None:
            self._print(f"[ERROR] {view.error}")
            self._error_printed = view.error

        status = view.status.value if view.status is not None else None
        if status != self._last_status and status is not None:
            self._print(f"[STATUS] {status}")
        self._last_status = status

        if view.task_id is not None and view.is_connected != self._last_connected:
            self._print("[LIVE] connected" if view.is_connected else "[LIVE] reconnecting...")
            self._last_connected = view.is_connected

        for step in view.steps:
            if step.iteration in self._printed_iterations:
                continue
            self._printed_iterations.add(step.iteration)
            self._print(f"[STEP] {format_step(step)}")

        if view.is_terminal and not self._outcome_printed:
            self._outcome_printed = True
            if view.completion_message is not None:
                self._print(f"[DONE] {view.completion_message}")
            else:
                self._print(f"[FAILED] {view.failure_error}")


async def watch_task(state: AppState, out: TextIO, *, refresh_seconds: float = 0.2) -> TaskView:
    """
    Render the merged view until the task is terminal or the session no longer holds a task.
    """
    renderer = ConsoleRenderer(out)
    changed = asyncio.Event()

    state.session.add_listener(changed.set)
    state.live.add_listener(changed.set)
    try:
        while True:
            view = state.view()
            renderer.render(view)

            if view.is_terminal:
                return view
            if view.task_id is None:
                return view

            try:
                await asyncio.wait_for(changed.wait(), timeout=refresh_seconds)
            except asyncio.TimeoutError:
                pass
            changed.clear()
    finally:
        state.session.remove_listener(changed.set)
        state.live.remove_listener(changed.set)
