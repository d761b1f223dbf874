# tests/test_logging_setup.py

from __future__ import annotations

import logging

import pytest

from agent_live.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    "name, level, shown",
    [
        ("agent_live.tasks.session", logging.DEBUG, True),
        ("agent_live.connectors.live_channel", logging.INFO, False),
        ("agent_live.connectors.live_channel", logging.WARNING, True),
        ("websockets.client", logging.WARNING, False),
        ("httpx", logging.ERROR, True),
        ("py.warnings", logging.WARNING, False),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_logging_writes_file(tmp_path, restore_root_logger) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs")
    setup_logging(log_dir=tmp_path / "logs")

    logging.getLogger("agent_live.test").debug("hello file")
    for h in logging.getLogger().handlers:
        h.flush()

    assert log_file == tmp_path / "logs" / "agent-live.log"
    assert "hello file" in log_file.read_text(encoding="utf-8")
    assert len(logging.getLogger().handlers) == 2
    assert logging.getLogger("websockets").level == logging.INFO
