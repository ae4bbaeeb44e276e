# tests/test_console_connector.py

from __future__ import annotations

import pytest

from focusmate.connectors.console_connector import handle_line
from focusmate.core.state import AppState
from focusmate.llm.breakdown import BreakdownService

from .fakes import FailingLLMClient


@pytest.mark.asyncio
async def test_plain_text_is_broken_down(state: AppState) -> None:
    reply = await handle_line(state, "clean the kitchen")
    assert reply is not None
    assert "1. Gather supplies (5 min)" in reply
    assert state.plan is not None


@pytest.mark.asyncio
async def test_commands_run_on_the_loop(state: AppState) -> None:
    await handle_line(state, "clean the kitchen")
    reply = await handle_line(state, "/start")
    assert reply is not None and "Started." in reply
    assert state.engine.has_active_task


@pytest.mark.asyncio
async def test_empty_breakdown_command_shows_usage(state: AppState) -> None:
    reply = await handle_line(state, "/breakdown")
    assert reply is not None and reply.startswith("Usage")


@pytest.mark.asyncio
async def test_llm_failure_is_reported(state: AppState) -> None:
    state.breakdown_service = BreakdownService(FailingLLMClient("LLM is rate-limited. Try again later."))
    reply = await handle_line(state, "clean the kitchen")
    assert reply == "[LLM] LLM is rate-limited. Try again later."
    assert state.plan is None
