# tests/test_api_client.py

from __future__ import annotations

import json

import httpx
import pytest

from agent_live.api.client import TaskApiClient, ws_url_for
from agent_live.core.errors import RequestError
from agent_live.tasks.task_models import TaskStatus

from .fakes import step_dict, task_dict


def _client(handler) -> TaskApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TaskApiClient("http://backend.test/", client=http)


@pytest.mark.asyncio
async def test_create_task_posts_prompt() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"task_id": "t1", "status": "pending"})

    api = _client(handler)
    created = await api.create_task("Book a flight to Tokyo")

    assert created.task_id == "t1"
    assert created.status == "pending"
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://backend.test/api/task"
    assert json.loads(seen[0].content) == {"prompt": "Book a flight to Tokyo"}


@pytest.mark.asyncio
async def test_get_task_quotes_id_and_parses() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.raw_path == b"/api/task/a%2Fb"
        return httpx.Response(200, json=task_dict("a/b", "running", [step_dict(1)]))

    task = await _client(handler).get_task("a/b")

    assert task.id == "a/b"
    assert task.status == TaskStatus.RUNNING
    assert len(task.steps) == 1


@pytest.mark.asyncio
async def test_error_body_message_is_used() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "prompt is required"})

    with pytest.raises(RequestError) as ei:
        await _client(handler).create_task("abc")

    assert ei.value.message == "prompt is required"
    assert ei.value.status_code == 400


@pytest.mark.asyncio
async def test_non_json_error_falls_back_to_status_line() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    with pytest.raises(RequestError) as ei:
        await _client(handler).get_task("t1")

    assert ei.value.message == "Request failed: 502 Bad Gateway"
    assert ei.value.reason == "Bad Gateway"


@pytest.mark.asyncio
async def test_transport_error_becomes_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RequestError) as ei:
        await _client(handler).create_task("abc")

    assert ei.value.status_code is None
    assert "connection refused" in ei.value.message


@pytest.mark.asyncio
async def test_unexpected_success_payload_is_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "pending"})

    with pytest.raises(RequestError, match="Unexpected create response"):
        await _client(handler).create_task("abc")


@pytest.mark.asyncio
async def test_health() -> None:
    def ok(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ok"})

    def down(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    assert await _client(ok).health() is True
    assert await _client(down).health() is False


def test_ws_url_swaps_scheme() -> None:
    assert ws_url_for("http://localhost:8080/", "t1") == "ws://localhost:8080/api/task/t1/ws"
    assert ws_url_for("https://api.example.com", "t 1") == "wss://api.example.com/api/task/t%201/ws"
    assert ws_url_for("ws://already.ws", "t1") == "ws://already.ws/api/task/t1/ws"
