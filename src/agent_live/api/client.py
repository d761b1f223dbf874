# src/agent_live/api/client.py

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..config import normalize_api_url, to_ws_url
from ..core.errors import RequestError
from ..tasks.task_models import CreateTaskResponse, Task

logger = logging.getLogger(__name__)


def _make_timeout(total_s: float) -> httpx.Timeout:
    # Connect fails fast; read is the backend's budget to answer a create/status call.
    connect_s = min(5.0, total_s)
    return httpx.Timeout(connect=connect_s, read=total_s, write=10.0, pool=connect_s)


def task_path(task_id: str) -> str:
    return f"/api/task/{quote(str(task_id), safe='')}"


def ws_url_for(base_url: str, task_id: str) -> str:
    """Push-channel URL for one task: same origin as REST with the scheme swapped."""
    return f"{to_ws_url(normalize_api_url(base_url))}{task_path(task_id)}/ws"


def _error_message(resp: httpx.Response) -> str:
    """Prefer the server's {"error": "..."} body, fall back to status line."""
    msg = f"Request failed: {resp.status_code} {resp.reason_phrase}"
    try:
        body = resp.json()
    except ValueError:
        return msg
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, str) and err.strip():
            return err.strip()
    return msg


class TaskApiClient:
    """
    Async HTTP client for the task backend.

    Endpoints:
    - POST /api/task          {prompt}  -> {task_id, status}
    - GET  /api/task/{id}               -> Task
    - GET  /health                      -> {"status": "ok"}

    Every failure surfaces as RequestError. A caller-provided httpx.AsyncClient is used as-is
    and left open on aclose().
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = normalize_api_url(base_url)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=_make_timeout(float(timeout_seconds)),
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> TaskApiClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.debug("%s %s failed: %r", method, url, e)
            raise RequestError(str(e) or e.__class__.__name__) from e

        if not resp.is_success:
            message = _error_message(resp)
            logger.debug("%s %s -> %s (%s)", method, url, resp.status_code, message)
            raise RequestError(message, resp.status_code, resp.reason_phrase)

        try:
            return resp.json()
        except ValueError as e:
            raise RequestError(f"Invalid JSON in response from {path}", resp.status_code) from e

    async def create_task(self, prompt: str) -> CreateTaskResponse:
        data = await self._request("POST", "/api/task", json={"prompt": prompt})
        try:
            created = CreateTaskResponse.from_dict(data)
        except ValueError as e:
            raise RequestError(f"Unexpected create response: {e}") from e
        logger.info("Task created id=%s status=%s", created.task_id, created.status)
        return created

    async def get_task(self, task_id: str) -> Task:
        data = await self._request("GET", task_path(task_id))
        try:
            return Task.from_dict(data)
        except ValueError as e:
            raise RequestError(f"Unexpected task payload: {e}") from e

    async def health(self) -> bool:
        try:
            data = await self._request("GET", "/health")
        except RequestError:
            return False
        return isinstance(data, dict) and data.get("status") == "ok"
