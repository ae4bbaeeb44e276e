# src/focusmate/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from ..breakdown.parser import ParsedBreakdown

if TYPE_CHECKING:
    from ..config import Settings
    from ..favorites.favorite_store import FavoriteStore
    from ..llm.breakdown import BreakdownService
    from ..llm.response_cache import ResponseCache
    from ..storage.backend import SqliteKVBackend
    from ..templates.template_store import TemplateStore
    from ..timer.timer_engine import TimerEngine
    from .ports import LLMClient

PlanSource = Literal["model", "cache", "favorite", "template"]


@dataclass(frozen=True, slots=True)
class Plan:
    """The step list a /start would run: from a breakdown, a favorite or a template."""

    label: str
    response: str
    parsed: ParsedBreakdown
    source: PlanSource


@dataclass
class AppState:
    """
    Shared application state passed to connectors and command handlers.

    Everything is constructed once by the composition root (cli.bootstrap)
    and injected; nothing here reads global config.
    """

    settings: Settings
    llm: LLMClient
    engine: TimerEngine
    favorites: FavoriteStore
    templates: TemplateStore
    breakdown_service: BreakdownService
    response_cache: ResponseCache | None = None
    backend: SqliteKVBackend | None = None

    plan: Plan | None = None
