# src/agent_live/core/errors.py

from __future__ import annotations


class AgentLiveError(Exception):
    """Base class for errors raised by agent_live."""


class ValidationError(AgentLiveError):
    """Prompt rejected locally; no request was sent."""


class RequestError(AgentLiveError):
    """
    A task-creation or status request failed.

    status_code is None when the server was never reached (connection refused, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None, reason: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason = reason


class ChannelError(AgentLiveError):
    """A push-channel frame could not be decoded into an event."""
