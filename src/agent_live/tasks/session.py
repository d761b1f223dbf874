# src/agent_live/tasks/session.py

from __future__ import annotations

"""
Task session controller.

Single source of truth for "which task, if any, is active":
- submits a prompt (after local validation),
- holds the canonical Task snapshot,
- polls the backend until the task is terminal (sleep, then request: the effective period
  is poll_interval_ms plus request latency),
- resets back to the initial (no task) condition.

Polled snapshots replace the held Task wholesale; merging with the push channel happens
elsewhere, at read time (see core.view).
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable

from ..core.errors import RequestError, ValidationError
from ..core.ports import Listener, Sleep, TaskApi
from .sanitize import PROMPT_MAX_LENGTH, PROMPT_MIN_LENGTH, sanitize_prompt
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

GENERIC_CREATE_ERROR = "Failed to create task. Is the server running?"


class TaskSessionController:
    def __init__(
            self,
            api: TaskApi,
            *,
            poll_interval_ms: int = 2000,
            prompt_min_length: int = PROMPT_MIN_LENGTH,
            prompt_max_length: int = PROMPT_MAX_LENGTH,
            sleep: Sleep = asyncio.sleep,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api = api
        self.poll_interval_ms = int(poll_interval_ms)
        self.prompt_min_length = int(prompt_min_length)
        self.prompt_max_length = int(prompt_max_length)
        self._sleep = sleep
        self._clock = clock

        self.task: Task | None = None
        self.error: str | None = None
        self.is_creating = False
        # Local monotonic time at which a poll first reported completed/failed.
        self.terminal_observed_at: float | None = None

        self._poll_task: asyncio.Task[None] | None = None
        # Bumped on every submit/reset; late results from an older generation are dropped.
        self._generation = 0
        self._listeners: list[Listener] = []

    # ---- read side ----

    @property
    def task_id(self) -> str | None:
        return self.task.id if self.task is not None else None

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Session listener failed")

    # ---- polling ----

    def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is not None and not task.done():
            task.cancel()

    def _start_polling(self, task_id: str) -> None:
        self._stop_polling()
        generation = self._generation
        self._poll_task = asyncio.create_task(
            self._poll_loop(task_id, generation),
            name=f"poll-task-{task_id}",
        )

    async def _poll_loop(self, task_id: str, generation: int) -> None:
        interval_s = max(0.0, self.poll_interval_ms / 1000.0)

        while True:
            await self._sleep(interval_s)

            try:
                updated = await self._api.get_task(task_id)
            except RequestError as e:
                # A missed poll must not blank the view; the next tick retries.
                logger.warning("Poll failed task_id=%s: %s", task_id, e.message)
                continue
            except Exception:
                logger.exception("Poll failed task_id=%s", task_id)
                continue

            if generation != self._generation:
                return

            self.task = updated
            if updated.status.is_terminal and self.terminal_observed_at is None:
                self.terminal_observed_at = self._clock()
            logger.debug("Polled task_id=%s status=%s steps=%d", task_id, updated.status, len(updated.steps))
            self._notify()

            if updated.status.is_terminal:
                logger.info("Task %s is %s; polling stopped", task_id, updated.status.value)
                return

    # ---- write side ----

    async def submit_prompt(self, raw_text: str) -> bool:
        """
        Validate, create and start polling a new task.

        Returns True when a task is now active. Validation and request failures are
        reported through self.error, never raised.
        """
        try:
            prompt = sanitize_prompt(
                raw_text,
                min_length=self.prompt_min_length,
                max_length=self.prompt_max_length,
            )
        except ValidationError as e:
            self.error = str(e)
            self._notify()
            return False

        self._generation += 1
        generation = self._generation
        self._stop_polling()
        self.error = None
        self.is_creating = True
        self._notify()

        try:
            created = await self._api.create_task(prompt)
        except RequestError as e:
            if generation == self._generation:
                self._fail_creation(e.message)
            return False
        except Exception:
            logger.exception("create_task failed")
            if generation == self._generation:
                self._fail_creation(GENERIC_CREATE_ERROR)
            return False

        if generation != self._generation:
            # reset() (or a newer submit) happened while the request was in flight.
            logger.info("Dropping stale create response task_id=%s", created.task_id)
            return False

        self.task = Task(
            id=created.task_id,
            prompt=prompt,
            status=TaskStatus.PENDING,
            steps=(),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.terminal_observed_at = None
        self.is_creating = False
        self._start_polling(created.task_id)
        self._notify()
        return True

    def _fail_creation(self, message: str) -> None:
        logger.warning("Task creation failed: %s", message)
        self.error = message
        self.task = None
        self.terminal_observed_at = None
        self.is_creating = False
        self._notify()

    def reset(self) -> None:
        """Back to the initial condition. Safe to call any number of times."""
        self._generation += 1
        self._stop_polling()
        changed = self.task is not None or self.error is not None or self.is_creating
        self.task = None
        self.error = None
        self.is_creating = False
        self.terminal_observed_at = None
        if changed:
            self._notify()

    async def aclose(self) -> None:
        """Teardown: cancel polling and wait for the loop to unwind."""
        task = self._poll_task
        self.reset()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
