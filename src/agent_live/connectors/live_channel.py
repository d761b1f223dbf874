# src/agent_live/connectors/live_channel.py

from __future__ import annotations

"""
Live event synchronizer (push channel).

One WebSocket per task id:

    IDLE -> CONNECTING -> CONNECTED -> closed
                 ^                       |
                 +--- RECONNECT_PENDING <+  (not terminal, budget left)
                                         |
                                         +-> DISCONNECTED (terminal, or budget exhausted)

Frames are decoded into TaskEvents and folded into accumulated state:
- latest screenshot wins,
- steps are append-only and deduplicated by iteration (first write wins),
- completion / failure is terminal: recorded once, never overwritten, and no reconnect
  is attempted after it.

Reconnect timers and connection loops are asyncio tasks owned by this object; changing the
task id (or closing) cancels both before any state is reset.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

from websockets.asyncio.client import connect

from ..api.client import ws_url_for
from ..core.errors import ChannelError
from ..core.ports import ChannelConnection, ChannelConnector, Listener, Sleep
from ..tasks.task_models import EventType, Step, TaskEvent

logger = logging.getLogger(__name__)

DEFAULT_COMPLETION_MESSAGE = "Task completed"
DEFAULT_FAILURE_MESSAGE = "Task failed"

# Screenshot frames are base64 PNGs; the library default (1 MiB) is too small for large viewports.
MAX_FRAME_BYTES = 32 * 1024 * 1024


def websocket_connector(url: str):
    """Default ChannelConnector backed by the websockets asyncio client."""
    return connect(url, max_size=MAX_FRAME_BYTES, open_timeout=10)


class ChannelPhase(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECT_PENDING = "reconnect_pending"
    DISCONNECTED = "disconnected"


@dataclass(slots=True, frozen=True)
class LiveState:
    """Read-only snapshot of the push channel's accumulated state."""

    task_id: str | None
    phase: ChannelPhase
    screenshot: str | None
    steps: tuple[Step, ...]
    completion_message: str | None
    failure_error: str | None
    terminal_observed_at: float | None
    reconnect_attempts: int

    @property
    def is_connected(self) -> bool:
        return self.phase == ChannelPhase.CONNECTED

    @property
    def is_terminal(self) -> bool:
        return self.completion_message is not None or self.failure_error is not None


EMPTY_LIVE_STATE = LiveState(
    task_id=None,
    phase=ChannelPhase.IDLE,
    screenshot=None,
    steps=(),
    completion_message=None,
    failure_error=None,
    terminal_observed_at=None,
    reconnect_attempts=0,
)


class LiveEventSynchronizer:
    def __init__(
            self,
            base_url: str,
            *,
            reconnect_delay_ms: int = 1000,
            max_reconnect_attempts: int = 5,
            connector: ChannelConnector | None = None,
            sleep: Sleep = asyncio.sleep,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = base_url
        self.reconnect_delay_ms = int(reconnect_delay_ms)
        self.max_reconnect_attempts = int(max_reconnect_attempts)
        self._connector: ChannelConnector = connector or websocket_connector
        self._sleep = sleep
        self._clock = clock

        self._conn_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._connection: ChannelConnection | None = None
        # Bumped on every task id change; work started under an older generation is discarded.
        self._generation = 0
        self._listeners: list[Listener] = []

        self._reset_state(None)

    # ---- state ----

    def _reset_state(self, task_id: str | None) -> None:
        self._task_id = task_id
        self._phase = ChannelPhase.IDLE
        self._screenshot: str | None = None
        self._steps: list[Step] = []
        self._seen_iterations: dict[int, Step] = {}
        self._completion_message: str | None = None
        self._failure_error: str | None = None
        self._terminal_observed_at: float | None = None
        self._attempts = 0

    @property
    def task_id(self) -> str | None:
        return self._task_id

    @property
    def phase(self) -> ChannelPhase:
        return self._phase

    @property
    def is_connected(self) -> bool:
        return self._phase == ChannelPhase.CONNECTED

    @property
    def is_terminal(self) -> bool:
        return self._completion_message is not None or self._failure_error is not None

    @property
    def screenshot(self) -> str | None:
        return self._screenshot

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    @property
    def completion_message(self) -> str | None:
        return self._completion_message

    @property
    def failure_error(self) -> str | None:
        return self._failure_error

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    def snapshot(self) -> LiveState:
        return LiveState(
            task_id=self._task_id,
            phase=self._phase,
            screenshot=self._screenshot,
            steps=tuple(self._steps),
            completion_message=self._completion_message,
            failure_error=self._failure_error,
            terminal_observed_at=self._terminal_observed_at,
            reconnect_attempts=self._attempts,
        )

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
                logger.exception("Live channel listener failed")

    def reconnect_delay_ms_for(self, attempt: int) -> int:
        """Exponential backoff: base, 2*base, 4*base, ..."""
        return self.reconnect_delay_ms * (2 ** attempt)

    # ---- event folding ----

    def handle_frame(self, raw: str | bytes) -> bool:
        """Decode one raw frame and apply it. Malformed frames are logged and dropped."""
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw = bytes(raw).decode("utf-8")
            event = TaskEvent.from_dict(json.loads(raw))
        except (ValueError, ChannelError) as e:
            logger.warning("Dropping malformed frame task_id=%s: %s", self._task_id, e)
            return False
        except RecursionError:
            logger.warning("Dropping malformed frame task_id=%s: nested too deeply", self._task_id)
            return False

        if event.task_id and self._task_id and event.task_id != self._task_id:
            logger.warning("Dropping frame for task_id=%s on channel for %s", event.task_id, self._task_id)
            return False

        return self.handle_event(event)

    def handle_event(self, event: TaskEvent) -> bool:
        """Apply one event; returns True when visible state changed."""
        if self.is_terminal:
            logger.debug("Ignoring %s after terminal outcome task_id=%s", event.type.value, self._task_id)
            return False

        changed = False

        if event.type == EventType.SCREENSHOT:
            if event.screenshot:
                self._screenshot = event.screenshot
                changed = True

        elif event.type == EventType.STEP_COMPLETE:
            step = event.step
            if step is None:
                logger.warning("step_complete without step task_id=%s", self._task_id)
                return False
            if step.screenshot:
                self._screenshot = step.screenshot
                changed = True
            if step.iteration in self._seen_iterations:
                logger.debug("Duplicate step iteration=%d dropped", step.iteration)
            else:
                self._seen_iterations[step.iteration] = step
                self._steps.append(step)
                changed = True

        elif event.type == EventType.TASK_COMPLETE:
            self._completion_message = event.message or DEFAULT_COMPLETION_MESSAGE
            self._terminal_observed_at = self._clock()
            logger.info("Task %s completed (push): %s", self._task_id, self._completion_message)
            changed = True

        elif event.type == EventType.TASK_FAILED:
            self._failure_error = event.error or DEFAULT_FAILURE_MESSAGE
            self._terminal_observed_at = self._clock()
            logger.info("Task %s failed (push): %s", self._task_id, self._failure_error)
            changed = True

        if changed:
            self._notify()
        return changed

    # ---- lifecycle ----

    async def set_task_id(self, task_id: str | None) -> None:
        """
        Point the channel at a new task (or none).

        Tears down the current connection and any pending reconnect, clears all accumulated
        state, then starts connecting if task_id is set. Same id again is a no-op.
        """
        if task_id == self._task_id:
            return
        await self._switch(task_id)

    async def aclose(self) -> None:
        await self._switch(None)

    async def _switch(self, task_id: str | None) -> None:
        self._generation += 1
        await self._teardown()
        self._reset_state(task_id)
        self._notify()
        if task_id:
            self._start_connection()

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done():
            task.cancel()

    async def _teardown(self) -> None:
        self._cancel_reconnect()
        task = self._conn_task
        self._conn_task = None
        self._connection = None
        if task is not None and not task.done():
            task.cancel()
            # Wait so the socket is closed before state for the next task id exists.
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _start_connection(self) -> None:
        self._cancel_reconnect()
        task_id = self._task_id
        if not task_id:
            return
        self._phase = ChannelPhase.CONNECTING
        self._conn_task = asyncio.create_task(
            self._run_connection(task_id, self._generation),
            name=f"live-channel-{task_id}",
        )

    async def _run_connection(self, task_id: str, generation: int) -> None:
        url = ws_url_for(self.base_url, task_id)
        reason = "closed by server"
        logger.debug("Connecting push channel %s (attempt=%d)", url, self._attempts)

        try:
            async with self._connector(url) as conn:
                if generation != self._generation:
                    return
                self._connection = conn
                self._phase = ChannelPhase.CONNECTED
                self._attempts = 0
                logger.info("Push channel connected task_id=%s", task_id)
                self._notify()

                async for frame in conn:
                    if generation != self._generation:
                        return
                    self.handle_frame(frame)
                    if self.is_terminal:
                        reason = "terminal outcome"
                        break
        except Exception as e:
            reason = f"{e.__class__.__name__}: {e}"
        finally:
            if generation == self._generation:
                self._connection = None

        if generation != self._generation:
            return
        self._on_closed(task_id, reason)

    def _on_closed(self, task_id: str, reason: str) -> None:
        if self.is_terminal:
            self._phase = ChannelPhase.DISCONNECTED
            logger.info("Push channel closed task_id=%s (%s)", task_id, reason)
            self._notify()
            return

        if self._attempts >= self.max_reconnect_attempts:
            self._phase = ChannelPhase.DISCONNECTED
            logger.warning(
                "Push channel gave up task_id=%s after %d reconnect attempts (%s); relying on polling",
                task_id,
                self._attempts,
                reason,
            )
            self._notify()
            return

        delay_ms = self.reconnect_delay_ms_for(self._attempts)
        self._attempts += 1
        self._phase = ChannelPhase.RECONNECT_PENDING
        logger.info(
            "Push channel dropped task_id=%s (%s); reconnect %d/%d in %dms",
            task_id,
            reason,
            self._attempts,
            self.max_reconnect_attempts,
            delay_ms,
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(delay_ms, self._generation),
            name=f"live-channel-reconnect-{task_id}",
        )
        self._notify()

    async def _reconnect_after(self, delay_ms: int, generation: int) -> None:
        await self._sleep(delay_ms / 1000.0)
        if generation != self._generation:
            return
        # This task is the pending reconnect; clear it so _start_connection doesn't cancel itself.
        self._reconnect_task = None
        self._start_connection()
