# src/agent_live/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..core.errors import ChannelError


class TaskStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_wire(cls, raw: Any) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(str(raw))
        except ValueError:
            return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class ActionType(StrEnum):
    NAVIGATE = "navigate"
    CLICK = "click"
    TYPE = "type"
    SCROLL = "scroll"
    WAIT = "wait"
    DONE = "done"
    HOLD = "hold"
    DRAG = "drag"


class EventType(StrEnum):
    SCREENSHOT = "screenshot"
    STEP_COMPLETE = "step_complete"
    TASK_COMPLETE = "task_complete"
    TASK_FAILED = "task_failed"


def _str(v: Any) -> str:
    return "" if v is None else str(v)


@dataclass(slots=True, frozen=True)
class Action:
    # Kept as a raw string: the agent may emit action types this client does not know yet.
    action: str
    selector: str = ""
    value: str = ""
    done: bool = False
    success: bool = False

    @property
    def action_type(self) -> ActionType | None:
        try:
            return ActionType(self.action)
        except ValueError:
            return None

    @classmethod
    def from_dict(cls, data: Any) -> Action:
        if not isinstance(data, dict):
            return cls(action="")
        return cls(
            action=_str(data.get("action")),
            selector=_str(data.get("selector")),
            value=_str(data.get("value")),
            done=bool(data.get("done", False)),
            success=bool(data.get("success", False)),
        )


@dataclass(slots=True, frozen=True)
class Step:
    """
    One iteration of the agent loop.

    screenshot is base64 and is only populated on steps delivered over the push channel;
    polled steps carry an empty string.
    """

    iteration: int
    action: Action
    thought: str = ""
    url: str = ""
    title: str = ""
    timestamp: str = ""
    screenshot: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Step:
        if not isinstance(data, dict):
            raise ValueError("step must be a JSON object")
        raw_iter = data.get("iteration")
        if isinstance(raw_iter, bool) or not isinstance(raw_iter, int):
            raise ValueError(f"step.iteration must be an integer, got {raw_iter!r}")
        return cls(
            iteration=raw_iter,
            action=Action.from_dict(data.get("action")),
            thought=_str(data.get("thought")),
            url=_str(data.get("url")),
            title=_str(data.get("title")),
            timestamp=_str(data.get("timestamp")),
            screenshot=_str(data.get("screenshot")),
        )


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    prompt: str
    status: TaskStatus
    steps: tuple[Step, ...] = ()
    error: str | None = None
    created_at: str = ""
    completed_at: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Task:
        if not isinstance(data, dict):
            raise ValueError("task must be a JSON object")
        task_id = data.get("id")
        if not task_id:
            raise ValueError("task.id is required")
        raw_steps = data.get("steps") or []
        if not isinstance(raw_steps, list):
            raise ValueError("task.steps must be a list")
        return cls(
            id=str(task_id),
            prompt=_str(data.get("prompt")),
            status=TaskStatus.from_wire(data.get("status")),
            steps=tuple(Step.from_dict(s) for s in raw_steps),
            error=data.get("error") or None,
            created_at=_str(data.get("created_at")),
            completed_at=data.get("completed_at") or None,
        )


@dataclass(slots=True, frozen=True)
class CreateTaskResponse:
    task_id: str
    status: str

    @classmethod
    def from_dict(cls, data: Any) -> CreateTaskResponse:
        if not isinstance(data, dict) or not data.get("task_id"):
            raise ValueError("create response must carry task_id")
        return cls(task_id=str(data["task_id"]), status=_str(data.get("status")))


@dataclass(slots=True, frozen=True)
class TaskEvent:
    type: EventType
    task_id: str = ""
    step: Step | None = None
    screenshot: str = ""
    message: str | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TaskEvent:
        """Parse one push-channel frame; raises ChannelError on anything malformed."""
        if not isinstance(data, dict):
            raise ChannelError("frame is not a JSON object")
        try:
            event_type = EventType(str(data.get("type")))
        except ValueError as e:
            raise ChannelError(f"unknown event type: {data.get('type')!r}") from e

        step: Step | None = None
        raw_step = data.get("step")
        if raw_step is not None:
            try:
                step = Step.from_dict(raw_step)
            except ValueError as e:
                raise ChannelError(f"bad step payload: {e}") from e

        return cls(
            type=event_type,
            task_id=_str(data.get("task_id")),
            step=step,
            screenshot=_str(data.get("screenshot")),
            message=data.get("message") or None,
            error=data.get("error") or None,
        )
