# tests/conftest.py

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from focusmate.cli.bootstrap import create_initial_state
from focusmate.config import Settings
from focusmate.core.state import AppState
from focusmate.timer.timer_engine import TimerEngine

from .fakes import FakeBackend, FakeClock, FakeLLMClient, FakeTickerFactory


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing every path into tmp_path.

    Built directly rather than via get_settings(), to keep unit tests
    independent of the developer's environment and .env.
    """
    return Settings(
        app_name="focusmate-test",
        log_level="DEBUG",
        openrouter_api_key=None,
        openrouter_base_url="https://openrouter.invalid/api/v1",
        llm_models=["test/model-a", "test/model-b"],
        llm_temperature=0.7,
        llm_max_tokens=2000,
        extra_headers={},
        data_dir=tmp_path,
        store_db_path=tmp_path / "store.sqlite3",
        store_quota_bytes=0,
        cache_enabled=True,
        cache_max_age_days=7,
        cache_capacity=100,
        cache_strict_lru=False,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def tickers() -> FakeTickerFactory:
    return FakeTickerFactory()


@pytest.fixture()
def engine(tickers: FakeTickerFactory, clock: FakeClock) -> TimerEngine:
    return TimerEngine(ticker_factory=tickers, clock=clock)


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient(
        "1. Gather supplies (5 min)\n"
        "2. Wipe the counters (10 min)\n"
        "3. Put everything away (3 min)\n"
    )


@pytest.fixture()
def state(settings: Settings, llm: FakeLLMClient, tickers: FakeTickerFactory) -> AppState:
    """
    AppState wired by the real composition root, with a fake LLM and a
    hand-driven tick source.

    NOTE: the SQLite backend is real (under tmp_path); its round trip is part
    of what we want to test.
    """
    return create_initial_state(settings=settings, llm=llm, ticker_factory=tickers)


@pytest.fixture()
def no_cache_settings(settings: Settings) -> Settings:
    return replace(settings, cache_enabled=False)
