# src/focusmate/favorites/favorite_store.py

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from ..core.clock import now_ms
from ..core.ports import Clock, KeyValueBackend
from ..storage.keyed_store import CacheRecord, KeyedStore, drop_oldest

logger = logging.getLogger(__name__)

FAVORITES_STORAGE_KEY = "focusmate_favorites"
QUOTA_PRUNE_COUNT = 5


@dataclass(frozen=True, slots=True)
class FavoriteBreakdown:
    id: str
    task: str
    response_text: str
    saved_at_ms: int
    last_used_ms: int
    usage_count: int
    total_estimated_minutes: int = 0


@dataclass(frozen=True, slots=True)
class FavoriteStats:
    count: int
    total_usage: int
    oldest_saved_ms: int
    newest_saved_ms: int


@dataclass(frozen=True, slots=True)
class _FavoriteBody:
    task: str
    response_text: str
    total_estimated_minutes: int = 0


def _encode(body: _FavoriteBody) -> dict[str, Any]:
    return {
        "task": body.task,
        "response_text": body.response_text,
        "total_estimated_minutes": body.total_estimated_minutes,
    }


def _decode(raw: Any) -> _FavoriteBody:
    return _FavoriteBody(
        task=str(raw["task"]),
        response_text=str(raw["response_text"]),
        total_estimated_minutes=int(raw.get("total_estimated_minutes", 0)),
    )


def _to_favorite(rec: CacheRecord[_FavoriteBody]) -> FavoriteBreakdown:
    return FavoriteBreakdown(
        id=rec.key,
        task=rec.payload.task,
        response_text=rec.payload.response_text,
        saved_at_ms=rec.created_at_ms,
        last_used_ms=rec.last_used_at_ms,
        usage_count=rec.use_count,
        total_estimated_minutes=rec.payload.total_estimated_minutes,
    )


class FavoriteStore:
    """
    User-saved breakdowns, keyed by generated id.

    Unbounded; only a storage quota failure evicts, dropping the least
    recently used favorites first.
    """

    def __init__(self, backend: KeyValueBackend | None, *, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._store: KeyedStore[_FavoriteBody] = KeyedStore(
            FAVORITES_STORAGE_KEY,
            backend=backend,
            encode=_encode,
            decode=_decode,
            clock=clock,
            victims=drop_oldest(QUOTA_PRUNE_COUNT, by=lambda r: r.last_used_at_ms),
        )

    def _generate_id(self) -> str:
        return f"fav_{self._clock()}_{uuid.uuid4().hex[:9]}"

    def save(self, task: str, response_text: str, total_estimated_minutes: int = 0) -> FavoriteBreakdown:
        body = _FavoriteBody(
            task=task,
            response_text=response_text,
            total_estimated_minutes=max(0, int(total_estimated_minutes)),
        )
        rec = self._store.set(self._generate_id(), body)
        logger.info("Saved favorite: %r (%s)", task, rec.key)
        return _to_favorite(rec)

    def remove(self, favorite_id: str) -> bool:
        removed = self._store.delete(favorite_id)
        if removed:
            logger.info("Removed favorite: %s", favorite_id)
        return removed

    def get(self, favorite_id: str) -> FavoriteBreakdown | None:
        rec = self._store.get(favorite_id)
        return _to_favorite(rec) if rec is not None else None

    def list_all(self) -> list[FavoriteBreakdown]:
        """All favorites, most recently used first."""
        favorites = [_to_favorite(r) for r in self._store.records()]
        favorites.sort(key=lambda f: f.last_used_ms, reverse=True)
        return favorites

    def search(self, query: str) -> list[FavoriteBreakdown]:
        q = (query or "").lower()
        return [f for f in self.list_all() if q in f.task.lower()]

    def touch(self, favorite_id: str) -> FavoriteBreakdown | None:
        """Record that a favorite was reused."""
        rec = self._store.touch(favorite_id)
        return _to_favorite(rec) if rec is not None else None

    def is_favorite(self, task: str) -> bool:
        return self.get_by_task(task) is not None

    def get_by_task(self, task: str) -> FavoriteBreakdown | None:
        wanted = (task or "").lower()
        for fav in self.list_all():
            if fav.task.lower() == wanted:
                return fav
        return None

    def clear(self) -> None:
        self._store.clear()
        logger.info("Favorites cleared")

    def stats(self) -> FavoriteStats:
        favorites = self.list_all()
        saved = [f.saved_at_ms for f in favorites]
        return FavoriteStats(
            count=len(favorites),
            total_usage=sum(f.usage_count for f in favorites),
            oldest_saved_ms=min(saved) if saved else 0,
            newest_saved_ms=max(saved) if saved else 0,
        )

    def __len__(self) -> int:
        return len(self._store)
