# src/focusmate/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime

from ..cli.commands import accept_breakdown, breakdown_request
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..llm.client import friendly_llm_error_message

logger = logging.getLogger(__name__)

_EOF = None


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[str | None]) -> threading.Thread:
    """
    Read stdin lines in a daemon thread and hand them to the event loop.

    input() blocks, and the loop must stay free to run the timer ticks.
    None is queued on EOF / Ctrl+C.
    """

    def reader() -> None:
        while True:
            try:
                line = input()
            except (EOFError, KeyboardInterrupt):
                loop.call_soon_threadsafe(queue.put_nowait, _EOF)
                return
            loop.call_soon_threadsafe(queue.put_nowait, line)

    thread = threading.Thread(target=reader, name="focusmate-stdin", daemon=True)
    thread.start()
    return thread


async def handle_line(state: AppState, line: str) -> str | None:
    """
    One console line -> reply text (None for nothing to print).

    Breakdowns call the model in a worker thread so ticks keep running;
    everything else runs on the loop.
    """
    task = breakdown_request(line)
    if task is not None:
        if not task:
            return "Usage: /breakdown <task>, or just type the task."
        _print_ts("Thinking about the steps...")
        try:
            result = await asyncio.to_thread(state.breakdown_service.breakdown, task)
        except RuntimeError as e:
            msg = friendly_llm_error_message(e)
            logger.info("LLM runtime error: %s", msg)
            return f"[LLM] {msg}"
        return accept_breakdown(state, result)

    return command_registry.handle(state, line, emit=_print_ts)


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (llm=%s).", type(state.llm).__name__)
    _print_ts("[CONSOLE] Type a task to break it down. Use /help for commands. Use /exit to quit.\n")

    queue: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), queue)

    while True:
        print(">>> ", end="", flush=True)
        raw = await queue.get()
        if raw is _EOF:
            logger.info("Console EOF received, exiting.")
            print()
            break

        user_input = raw.strip()
        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = await handle_line(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply + "\n")

    logger.info("Console connector finished.")
