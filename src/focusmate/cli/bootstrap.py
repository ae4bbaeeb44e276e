# src/focusmate/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- opens one SQLite backend shared by every keyed store,
- wires the LLM client, timer engine and stores into AppState.
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.ports import LLMClient
from ..core.state import AppState
from ..favorites.favorite_store import FavoriteStore
from ..llm.breakdown import BreakdownService
from ..llm.client import OpenRouterLLMClient
from ..llm.offline import OfflineLLMClient
from ..llm.response_cache import ResponseCache
from ..storage.backend import SqliteKVBackend
from ..templates.template_store import TemplateStore
from ..timer.timer_engine import TickerFactory, TimerEngine

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings: Settings | None = None,
    llm: LLMClient | None = None,
    ticker_factory: TickerFactory | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    settings/llm/ticker_factory are injectable for tests; by default the
    OpenRouter client is used when an API key is configured, the offline
    client otherwise.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if llm is None:
        try:
            llm = OpenRouterLLMClient(settings)
        except RuntimeError as e:
            logger.info("Using offline LLM client: %s", e)
            llm = OfflineLLMClient()

    backend = SqliteKVBackend(settings.store_db_path, quota_bytes=settings.store_quota_bytes)

    cache: ResponseCache | None = None
    if settings.cache_enabled:
        cache = ResponseCache(
            backend,
            max_age_ms=settings.cache_max_age_ms,
            capacity=settings.cache_capacity,
            strict_lru=settings.cache_strict_lru,
        )

    engine = TimerEngine(ticker_factory=ticker_factory) if ticker_factory is not None else TimerEngine()

    return AppState(
        settings=settings,
        llm=llm,
        engine=engine,
        favorites=FavoriteStore(backend),
        templates=TemplateStore(backend),
        breakdown_service=BreakdownService(llm, cache),
        response_cache=cache,
        backend=backend,
    )
