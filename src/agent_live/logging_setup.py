# src/agent_live/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "agent-live.log"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-7s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"

# Console thresholds by logger-name prefix; the first match wins.
# Anything not listed (third-party libraries) only reaches the console at ERROR.
_CONSOLE_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("agent_live.connectors.live_channel", logging.WARNING),
    ("agent_live.", logging.NOTSET),
)

# Library loggers pinned regardless of the root level. websockets at DEBUG would
# write every screenshot frame into the log file.
_LIBRARY_LEVELS = {
    "websockets": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


class _ConsoleNoiseFilter(logging.Filter):
    """Terminal output is the task view; log lines must not drown it."""

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, threshold in _CONSOLE_THRESHOLDS:
            if record.name.startswith(prefix):
                return record.levelno >= threshold
        return record.levelno >= logging.ERROR


def _handler(handler: logging.Handler, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/agent-live",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Filtered stderr console plus a rotating debug file under log_dir.

    Replaces any handlers already on the root logger, so calling it twice is harmless.
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = _handler(logging.StreamHandler(sys.stderr), console_level, fmt)
    console.addFilter(_ConsoleNoiseFilter())
    file = _handler(
        RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"),
        file_level,
        fmt,
    )

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(console)
    root.addHandler(file)

    logging.captureWarnings(True)  # py.warnings: console only at ERROR
    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    return log_file
