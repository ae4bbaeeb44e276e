# src/focusmate/llm/response_cache.py

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from ..core.clock import now_ms
from ..core.ports import Clock, KeyValueBackend
from ..storage.keyed_store import KeyedStore, StoreStats, drop_all

logger = logging.getLogger(__name__)

CACHE_STORAGE_KEY = "focusmate_cache"
DEFAULT_MAX_AGE_MS = 7 * 24 * 60 * 60 * 1000
DEFAULT_CAPACITY = 100


@dataclass(frozen=True, slots=True)
class CachedResponse:
    task: str
    response: str
    inference_ms: float
    cached_at_ms: int = 0


def _encode(entry: CachedResponse) -> dict[str, Any]:
    return asdict(entry)


def _decode(raw: Any) -> CachedResponse:
    return CachedResponse(
        task=str(raw["task"]),
        response=str(raw["response"]),
        inference_ms=float(raw.get("inference_ms", 0.0)),
        cached_at_ms=int(raw.get("cached_at_ms", 0)),
    )


class ResponseCache:
    """
    Task text -> previous model response.

    Keys are normalized (case, surrounding and repeated whitespace), so
    "Clean  Kitchen " and "clean kitchen" share one entry. Entries expire
    after max_age_ms; beyond capacity the oldest entries are evicted. On a
    storage quota failure the whole cache is dropped.
    """

    def __init__(
        self,
        backend: KeyValueBackend | None,
        *,
        clock: Clock = now_ms,
        max_age_ms: int = DEFAULT_MAX_AGE_MS,
        capacity: int = DEFAULT_CAPACITY,
        strict_lru: bool = False,
    ) -> None:
        self._store: KeyedStore[CachedResponse] = KeyedStore(
            CACHE_STORAGE_KEY,
            backend=backend,
            encode=_encode,
            decode=_decode,
            clock=clock,
            max_age_ms=max_age_ms,
            capacity=capacity,
            prune_order="last_used" if strict_lru else "created",
            victims=drop_all,
        )
        self._clock = clock
        self._strict_lru = strict_lru

    def get(self, task: str) -> CachedResponse | None:
        rec = self._store.get(task)
        if rec is None:
            return None
        logger.info("Cache hit: %r", task)
        if self._strict_lru:
            self._store.touch(task)
        return rec.payload

    def set(self, task: str, response: str, inference_ms: float = 0.0) -> CachedResponse:
        entry = CachedResponse(task=task, response=response, inference_ms=float(inference_ms), cached_at_ms=self._clock())
        self._store.set(task, entry)
        logger.info("Cache miss: %r - cached now", task)
        return entry

    def clear(self) -> None:
        self._store.clear()
        logger.info("Response cache cleared")

    def prune(self) -> int:
        return self._store.prune()

    def stats(self) -> StoreStats:
        return self._store.stats()

    def all(self) -> list[CachedResponse]:
        return [rec.payload for rec in self._store.records()]

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, task: object) -> bool:
        return task in self._store
