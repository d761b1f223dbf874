# src/agent_live/core/state.py

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..api.client import TaskApiClient
from ..connectors.live_channel import LiveEventSynchronizer
from ..core.ports import ChannelConnector, TaskApi
from ..tasks.session import TaskSessionController
from .view import TaskView, merge_view

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    Composition of the two task containers.

    The only value shared between them is the active task id, which flows one way:
    controller -> synchronizer, and only through set_task_id() (teardown + reset).
    """

    settings: object
    session: TaskSessionController
    live: LiveEventSynchronizer
    api: TaskApi

    async def submit(self, raw_prompt: str) -> bool:
        ok = await self.session.submit_prompt(raw_prompt)
        # On failure the controller holds no task; that also tears the channel down.
        await self.live.set_task_id(self.session.task_id)
        return ok

    async def reset(self) -> None:
        self.session.reset()
        await self.live.set_task_id(None)

    def view(self) -> TaskView:
        return merge_view(
            self.session.task,
            self.live.snapshot(),
            error=self.session.error,
            poll_terminal_at=self.session.terminal_observed_at,
        )

    async def aclose(self) -> None:
        await self.session.aclose()
        await self.live.aclose()
        close = getattr(self.api, "aclose", None)
        if close is not None:
            try:
                await close()
            except Exception:
                logger.debug("API client close failed.", exc_info=True)


def create_app_state(
        settings,
        *,
        api: TaskApi | None = None,
        connector: ChannelConnector | None = None,
) -> AppState:
    """
    Wire concrete implementations from settings.

    api/connector are injectable so tests (and alternative transports) can replace HTTP and
    WebSocket without touching the containers.
    """
    if api is None:
        api = TaskApiClient(
            settings.api_url,
            timeout_seconds=getattr(settings, "http_timeout_seconds", 30.0),
        )

    session = TaskSessionController(
        api,
        poll_interval_ms=settings.poll_interval_ms,
        prompt_min_length=settings.prompt_min_length,
        prompt_max_length=settings.prompt_max_length,
    )
    live = LiveEventSynchronizer(
        settings.api_url,
        reconnect_delay_ms=settings.ws_reconnect_delay_ms,
        max_reconnect_attempts=settings.ws_max_reconnect_attempts,
        connector=connector,
    )
    return AppState(settings=settings, session=session, live=live, api=api)
