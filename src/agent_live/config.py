# src/agent_live/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing is required at import time; every value has a local-dev default.
- The push channel origin is derived from the REST origin (http -> ws).
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "AGENT_LIVE"

DEFAULT_API_URL = "http://localhost:8080"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def normalize_api_url(raw: str | None) -> str:
    url = (raw or "").strip()
    if not url:
        return DEFAULT_API_URL
    return url.rstrip("/")


def to_ws_url(http_url: str) -> str:
    """http://host -> ws://host, https://host -> wss://host."""
    return re.sub(r"^http", "ws", http_url, count=1)


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Backend ----
    api_url: str
    http_timeout_seconds: float

    # ---- Polling ----
    poll_interval_ms: int

    # ---- Push channel ----
    ws_reconnect_delay_ms: int
    ws_max_reconnect_attempts: int

    # ---- Prompt bounds ----
    prompt_min_length: int
    prompt_max_length: int

    @property
    def ws_base_url(self) -> str:
        return to_ws_url(self.api_url)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "agent-live") or "agent-live"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/agent-live"))

        # NEXT_PUBLIC_API_URL is accepted so a shared .env with the web client works as-is.
        api_url = normalize_api_url(_first_env(_k("API_URL"), "NEXT_PUBLIC_API_URL", default=None))
        http_timeout_seconds = max(1.0, _env_float(_k("HTTP_TIMEOUT_SECONDS"), 30.0))

        poll_interval_ms = max(100, _env_int(_k("POLL_INTERVAL_MS"), 2000))

        ws_reconnect_delay_ms = max(1, _env_int(_k("WS_RECONNECT_DELAY_MS"), 1000))
        ws_max_reconnect_attempts = max(0, _env_int(_k("WS_MAX_RECONNECT_ATTEMPTS"), 5))

        prompt_min_length = max(0, _env_int(_k("PROMPT_MIN_LENGTH"), 3))
        prompt_max_length = max(prompt_min_length, _env_int(_k("PROMPT_MAX_LENGTH"), 2000))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            api_url=api_url,
            http_timeout_seconds=http_timeout_seconds,
            poll_interval_ms=poll_interval_ms,
            ws_reconnect_delay_ms=ws_reconnect_delay_ms,
            ws_max_reconnect_attempts=ws_max_reconnect_attempts,
            prompt_min_length=prompt_min_length,
            prompt_max_length=prompt_max_length,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
