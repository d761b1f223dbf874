# tests/fakes.py

from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Any

from agent_live.core.errors import RequestError
from agent_live.tasks.task_models import CreateTaskResponse, Task


def step_dict(iteration: int, *, screenshot: str = "", url: str = "", thought: str = "") -> dict[str, Any]:
    return {
        "iteration": iteration,
        "screenshot": screenshot,
        "url": url or f"https://example.com/{iteration}",
        "title": f"Page {iteration}",
        "thought": thought or f"thinking about step {iteration}",
        "action": {"action": "click", "selector": f"#b{iteration}", "value": "", "done": False, "success": False},
        "timestamp": "2026-10-16T12:00:00Z",
    }


def task_dict(task_id: str, status: str, steps: list[dict[str, Any]] | None = None, **extra: Any) -> dict[str, Any]:
    out = {
        "id": task_id,
        "prompt": "Book a flight to Tokyo",
        "status": status,
        "steps": steps or [],
        "created_at": "2026-10-16T12:00:00Z",
    }
    out.update(extra)
    return out


def frame(event_type: str, **fields: Any) -> str:
    return json.dumps({"type": event_type, **fields})


async def wait_until(predicate, *, timeout: float = 2.0) -> None:
    """Spin the loop until predicate() holds (tests only)."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)


async def settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class RecordingSleep:
    """asyncio.sleep replacement: records the delay, then returns on the next loop turn."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class GatedSleep:
    """asyncio.sleep replacement that blocks until the test releases it (one tick per release)."""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self._tokens = asyncio.Semaphore(0)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await self._tokens.acquire()

    def release(self, n: int = 1) -> None:
        for _ in range(n):
            self._tokens.release()


class FakeTaskApi:
    """
    Scripted TaskApi.

    create_results / poll_results are consumed in order; each item is either a value or an
    exception to raise. The last poll result repeats once the script is exhausted.
    """

    def __init__(
        self,
        *,
        create_results: list[Any] | None = None,
        poll_results: list[Any] | None = None,
        healthy: bool = True,
    ) -> None:
        self.healthy = healthy
        self.create_results = list(create_results or [CreateTaskResponse(task_id="t1", status="pending")])
        self.poll_results = list(poll_results or [])
        self.created_prompts: list[str] = []
        self.polled_ids: list[str] = []
        self.create_gate: asyncio.Event | None = None

    async def health(self) -> bool:
        return self.healthy

    async def create_task(self, prompt: str) -> CreateTaskResponse:
        self.created_prompts.append(prompt)
        if self.create_gate is not None:
            await self.create_gate.wait()
        result = self.create_results.pop(0) if len(self.create_results) > 1 else self.create_results[0]
        if isinstance(result, BaseException):
            raise result
        return result

    async def get_task(self, task_id: str) -> Task:
        self.polled_ids.append(task_id)
        if not self.poll_results:
            raise RequestError("no scripted poll result")
        result = self.poll_results.pop(0) if len(self.poll_results) > 1 else self.poll_results[0]
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, dict):
            return Task.from_dict(result)
        return result


_CLOSE = object()


class FakeConnection:
    """In-memory push channel: the test feeds frames, closes cleanly, or drops with an error."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.closed = False
        self._queue: asyncio.Queue[Any] = asyncio.Queue()

    def send(self, raw: str | bytes) -> None:
        self._queue.put_nowait(raw)

    def close_cleanly(self) -> None:
        self._queue.put_nowait(_CLOSE)

    def drop(self, exc: BaseException | None = None) -> None:
        self._queue.put_nowait(exc or ConnectionResetError("connection reset by peer"))

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.closed = True


class FakeConnector:
    """ChannelConnector: records URLs, optionally refuses the next N connection attempts."""

    def __init__(self, *, refuse: int = 0) -> None:
        self.refuse = refuse
        self.urls: list[str] = []
        self.connections: list[FakeConnection] = []

    def __call__(self, url: str):
        self.urls.append(url)
        return self._open(url)

    @contextlib.asynccontextmanager
    async def _open(self, url: str):
        if self.refuse > 0:
            self.refuse -= 1
            raise OSError("connection refused")
        conn = FakeConnection(url)
        self.connections.append(conn)
        try:
            yield conn
        finally:
            conn.closed = True

    @property
    def current(self) -> FakeConnection:
        return self.connections[-1]

    @property
    def open_connections(self) -> list[FakeConnection]:
        return [c for c in self.connections if not c.closed]
