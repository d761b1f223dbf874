# src/agent_live/cli/main.py

"""
CLI entrypoint.

Initializes logging, wires AppState from settings, checks the backend's /health, submits one
prompt and renders the merged live view in the terminal until the task finishes (or Ctrl+C).

Exit codes: 0 completed, 1 failed / could not be created, 2 invalid prompt, 130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace

from ..config import get_settings, normalize_api_url
from ..connectors.console_connector import watch_task
from ..core.errors import ValidationError
from ..core.ports import ChannelConnector, TaskApi
from ..core.state import create_app_state
from ..logging_setup import setup_logging
from ..tasks.sanitize import sanitize_prompt
from ..tasks.task_models import TaskStatus

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2
EXIT_INTERRUPTED = 130


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="agent-live",
        description="Submit a browser-automation task and follow it live.",
    )
    p.add_argument("prompt", nargs="*", help="Task prompt (read from stdin when omitted).")
    p.add_argument("--api-url", default=None, help="Backend origin (overrides AGENT_LIVE_API_URL).")
    return p


async def run(prompt: str, settings, *, api: TaskApi | None = None, connector: ChannelConnector | None = None) -> int:
    state = create_app_state(settings, api=api, connector=connector)
    try:
        if not await state.api.health():
            print(f"error: backend at {settings.api_url} is not reachable", file=sys.stderr)
            return EXIT_FAILED

        if not await state.submit(prompt):
            view = state.view()
            print(f"error: {view.error or 'task was not created'}", file=sys.stderr)
            return EXIT_FAILED

        logger.info("Following task %s", state.session.task_id)
        view = await watch_task(state, sys.stdout)
        return EXIT_OK if view.status == TaskStatus.COMPLETED else EXIT_FAILED
    finally:
        await state.aclose()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    if args.api_url:
        settings = replace(settings, api_url=normalize_api_url(args.api_url))

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    raw = " ".join(args.prompt) if args.prompt else sys.stdin.read()

    # Validate before any network setup so a bad prompt never opens a connection.
    try:
        sanitize_prompt(raw, min_length=settings.prompt_min_length, max_length=settings.prompt_max_length)
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INVALID

    logger.info("Starting %s against %s", settings.app_name, settings.api_url)
    try:
        return asyncio.run(run(raw, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, bye.")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
