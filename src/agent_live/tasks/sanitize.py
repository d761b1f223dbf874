# src/agent_live/tasks/sanitize.py

from __future__ import annotations

from ..core.errors import ValidationError

PROMPT_MIN_LENGTH = 3
PROMPT_MAX_LENGTH = 2000


def sanitize_prompt(
    raw: str,
    *,
    min_length: int = PROMPT_MIN_LENGTH,
    max_length: int = PROMPT_MAX_LENGTH,
) -> str:
    """
    Validate a user prompt before it is sent to the backend.

    Bounds apply to the trimmed text; null bytes are stripped only from accepted prompts.
    Raises ValidationError with a user-facing message otherwise.
    """
    trimmed = (raw or "").strip()

    if len(trimmed) < min_length:
        raise ValidationError(f"Prompt must be at least {min_length} characters")

    if len(trimmed) > max_length:
        raise ValidationError(f"Prompt must be {max_length} characters or fewer")

    return trimmed.replace("\0", "")
