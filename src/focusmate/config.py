# src/focusmate/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

- One Settings object for the whole app.
- No secrets required at import time: without an API key the offline client is used.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "FOCUSMATE"

DEFAULT_MODELS = [
    "meta-llama/llama-3.3-70b-instruct:free",
    "qwen/qwen-2.5-72b-instruct:free",
    "deepseek/deepseek-chat-v3-0324:free",
]


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- LLM / OpenRouter ----
    openrouter_api_key: Optional[str]
    openrouter_base_url: str
    llm_models: List[str]
    llm_temperature: float
    llm_max_tokens: int
    extra_headers: Dict[str, str]

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_db_path: Path
    store_quota_bytes: int

    # ---- Response cache ----
    cache_enabled: bool
    cache_max_age_days: int
    cache_capacity: int
    cache_strict_lru: bool

    @property
    def cache_max_age_ms(self) -> int:
        return self.cache_max_age_days * 24 * 60 * 60 * 1000

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "focusmate") or "focusmate"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        openrouter_api_key = _first_env(_k("OPENROUTER_API_KEY"), "OPENROUTER_API_KEY", default=None)
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")

        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": _env(_k("APP_TITLE"), app_name),
        }

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/focusmate"))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            openrouter_api_key=openrouter_api_key,
            openrouter_base_url=openrouter_base_url,
            llm_models=_env_list(_k("LLM_MODELS"), DEFAULT_MODELS),
            llm_temperature=_env_float(_k("LLM_TEMPERATURE"), 0.7),
            llm_max_tokens=max(1, _env_int(_k("LLM_MAX_TOKENS"), 2000)),
            extra_headers=extra_headers,
            data_dir=data_dir,
            store_db_path=_env_path(_k("STORE_DB_PATH"), data_dir / "store.sqlite3"),
            store_quota_bytes=max(0, _env_int(_k("STORE_QUOTA_BYTES"), 5 * 1024 * 1024)),
            cache_enabled=_env_bool(_k("CACHE_ENABLED"), True),
            cache_max_age_days=max(0, _env_int(_k("CACHE_MAX_AGE_DAYS"), 7)),
            cache_capacity=max(1, _env_int(_k("CACHE_CAPACITY"), 100)),
            cache_strict_lru=_env_bool(_k("CACHE_STRICT_LRU"), False),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Load .env (without overriding the real environment) and build Settings once."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
