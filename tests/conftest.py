# tests/conftest.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from .fakes import FakeConnector, FakeTaskApi


@pytest.fixture()
def settings() -> SimpleNamespace:
    """
    Minimal settings object compatible with create_app_state().

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="agent-live-test",
        api_url="http://backend.test",
        http_timeout_seconds=5.0,
        poll_interval_ms=2000,
        ws_reconnect_delay_ms=1000,
        ws_max_reconnect_attempts=5,
        prompt_min_length=3,
        prompt_max_length=2000,
    )


@pytest.fixture()
def api() -> FakeTaskApi:
    return FakeTaskApi()


@pytest.fixture()
def connector() -> FakeConnector:
    return FakeConnector()
