# src/agent_live/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The controller and the synchronizer depend on Protocols instead of httpx/websockets directly.
This keeps transports swappable and lets tests drive both channels deterministically.
"""

from typing import AsyncContextManager, AsyncIterator, Awaitable, Callable, Protocol

from ..tasks.task_models import CreateTaskResponse, Task


class TaskApi(Protocol):
    """REST side of the backend: create a task, fetch its snapshot, check liveness."""

    def create_task(self, prompt: str) -> Awaitable[CreateTaskResponse]: ...

    def get_task(self, task_id: str) -> Awaitable[Task]: ...

    def health(self) -> Awaitable[bool]: ...


class ChannelConnection(Protocol):
    """
    An open push channel.

    Iterating yields raw frames (str or bytes) in arrival order. Iteration ends on a clean
    close and raises on an abnormal one.
    """

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...

    def close(self) -> Awaitable[None]: ...


ChannelConnector = Callable[[str], AsyncContextManager[ChannelConnection]]
# url -> `async with connector(url) as conn: ...`

Sleep = Callable[[float], Awaitable[None]]
# asyncio.sleep-compatible; injected so tests can observe backoff delays.

Listener = Callable[[], None]
# Called after a state container changes. Must not raise.
