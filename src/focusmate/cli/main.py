# src/focusmate/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL on an
asyncio loop (the timer ticks share that loop).
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..timer.timer_engine import format_elapsed

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Stop any task still on the clock so the tick source does not outlive the loop."""
    task = state.engine.stop_task()
    if task is not None:
        logger.info("Discarded task %r at exit after %s", task.task_label, format_elapsed(task.total_elapsed_ms))


async def _run(state: AppState) -> None:
    try:
        await run_console_loop(state)
    finally:
        _shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
