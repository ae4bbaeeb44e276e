# src/focusmate/storage/keyed_store.py

from __future__ import annotations

"""
Generic keyed store.

An in-memory dict of CacheRecord objects mirrored to a KeyValueBackend as one
JSON snapshot per store. Shared by the response cache, the favorites and the
custom templates; each instantiation picks its own bounds:

- max_age_ms: records older than this (by creation time) read as absent and
  are deleted on access.
- capacity: after every set(), the oldest records beyond capacity are evicted.
  "Oldest" means creation time by default; prune_order="last_used" switches
  to strict LRU.
- victims: on a quota failure, which records to drop before the single retry
  (default: all of them).

Persistence is best-effort. If the backend is unavailable at construction, or
a write still fails after the quota retry, the store keeps working from memory
for the rest of the process lifetime.
"""

import copy
import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from ..core.clock import now_ms
from ..core.errors import StorageError, StorageQuotaExceeded
from ..core.ports import Clock, KeyValueBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")

PruneOrder = Literal["created", "last_used"]


@dataclass(slots=True)
class CacheRecord(Generic[T]):
    key: str
    payload: T
    created_at_ms: int
    last_used_at_ms: int
    use_count: int = 1


@dataclass(frozen=True, slots=True)
class StoreStats:
    count: int
    approx_bytes: int


VictimSelector = Callable[[list[CacheRecord[Any]]], list[str]]


def normalize_key(key: str) -> str:
    """Case-fold, trim and collapse internal whitespace."""
    return " ".join((key or "").casefold().split())


def drop_all(records: list[CacheRecord[Any]]) -> list[str]:
    return [r.key for r in records]


def drop_oldest(count: int, *, by: Callable[[CacheRecord[Any]], int]) -> VictimSelector:
    """Victim selector removing `count` records with the smallest `by` value."""

    def select(records: list[CacheRecord[Any]]) -> list[str]:
        return [r.key for r in sorted(records, key=by)[: max(0, count)]]

    return select


class KeyedStore(Generic[T]):
    def __init__(
        self,
        name: str,
        *,
        backend: KeyValueBackend | None,
        encode: Callable[[T], Any],
        decode: Callable[[Any], T],
        clock: Clock = now_ms,
        max_age_ms: int | None = None,
        capacity: int | None = None,
        prune_order: PruneOrder = "created",
        victims: VictimSelector = drop_all,
    ) -> None:
        if capacity is not None and capacity < 0:
            raise ValueError("capacity must be >= 0")

        self.name = name
        self._backend = backend
        self._encode = encode
        self._decode = decode
        self._clock = clock
        self._max_age_ms = max_age_ms
        self._capacity = capacity
        self._prune_order: PruneOrder = prune_order
        self._victims = victims
        self._records: dict[str, CacheRecord[T]] = {}

        self._durable = False
        if backend is not None:
            try:
                self._durable = bool(backend.available())
            except Exception:
                logger.exception("Store %s: backend availability check failed", name)
                self._durable = False

        if self._durable:
            self._load()
        else:
            logger.info("Store %s: no durable backend, running memory-only", name)

    @property
    def durable(self) -> bool:
        return self._durable

    # ---- persistence ----

    def _load(self) -> None:
        assert self._backend is not None
        try:
            raw = self._backend.read(self.name)
        except StorageError:
            logger.exception("Store %s: failed to read snapshot; starting empty", self.name)
            return

        if not raw:
            return

        try:
            data = json.loads(raw)
        except ValueError:
            logger.exception("Store %s: snapshot is not valid JSON; starting empty", self.name)
            return

        if not isinstance(data, list):
            logger.warning("Store %s: unexpected snapshot shape %s; starting empty", self.name, type(data).__name__)
            return

        skipped = 0
        for item in data:
            try:
                key, raw_rec = item
                created = int(raw_rec["created_at_ms"])
                record = CacheRecord(
                    key=normalize_key(str(key)),
                    payload=self._decode(raw_rec["payload"]),
                    created_at_ms=created,
                    last_used_at_ms=int(raw_rec.get("last_used_at_ms", created)),
                    use_count=max(1, int(raw_rec.get("use_count", 1))),
                )
            except (TypeError, ValueError, KeyError):
                skipped += 1
                continue
            self._records[record.key] = record

        if skipped:
            logger.warning("Store %s: skipped %d malformed entries", self.name, skipped)
        logger.info("Store %s: loaded %d entries", self.name, len(self._records))

    def _dump(self) -> str:
        entries = [
            [
                key,
                {
                    "payload": self._encode(rec.payload),
                    "created_at_ms": rec.created_at_ms,
                    "last_used_at_ms": rec.last_used_at_ms,
                    "use_count": rec.use_count,
                },
            ]
            for key, rec in self._records.items()
        ]
        return json.dumps(entries, ensure_ascii=False, separators=(",", ":"))

    def _persist(self) -> None:
        if not self._durable or self._backend is None:
            return

        try:
            self._backend.write(self.name, self._dump())
            return
        except StorageQuotaExceeded as e:
            logger.warning("Store %s: %s", self.name, e)
        except StorageError:
            logger.exception("Store %s: persist failed", self.name)
            return

        victims = self._victims(list(self._records.values()))
        for key in victims:
            self._records.pop(key, None)
        logger.info("Store %s: dropped %d entries to free space", self.name, len(victims))

        try:
            self._backend.write(self.name, self._dump())
        except StorageError:
            self._durable = False
            logger.error(
                "Store %s: still failing after freeing space; continuing memory-only",
                self.name,
                exc_info=True,
            )

    # ---- helpers ----

    def _expired(self, rec: CacheRecord[T], now: int) -> bool:
        return self._max_age_ms is not None and now - rec.created_at_ms > self._max_age_ms

    def _live(self, key: str) -> CacheRecord[T] | None:
        """Internal lookup that applies the TTL (and persists expiry deletions)."""
        rec = self._records.get(key)
        if rec is None:
            return None
        if self._expired(rec, self._clock()):
            del self._records[key]
            logger.debug("Store %s: expired key=%r", self.name, key)
            self._persist()
            return None
        return rec

    def _prune(self) -> int:
        if self._capacity is None or len(self._records) <= self._capacity:
            return 0

        if self._prune_order == "last_used":
            order = sorted(self._records.values(), key=lambda r: r.last_used_at_ms)
        else:
            order = sorted(self._records.values(), key=lambda r: r.created_at_ms)

        victims = order[: len(self._records) - self._capacity]
        for rec in victims:
            del self._records[rec.key]

        logger.info("Store %s: pruned %d old entries", self.name, len(victims))
        return len(victims)

    # ---- public API ----

    def get(self, key: str) -> CacheRecord[T] | None:
        rec = self._live(normalize_key(key))
        return copy.deepcopy(rec) if rec is not None else None

    def set(self, key: str, payload: T) -> CacheRecord[T]:
        k = normalize_key(key)
        now = self._clock()
        rec = CacheRecord(
            key=k,
            payload=copy.deepcopy(payload),
            created_at_ms=now,
            last_used_at_ms=now,
            use_count=1,
        )
        # Re-insert at the end so an overwrite counts as the newest entry.
        self._records.pop(k, None)
        self._records[k] = rec
        self._prune()
        self._persist()
        return copy.deepcopy(rec)

    def update(self, key: str, payload: T) -> CacheRecord[T] | None:
        """Replace the payload of an existing record, keeping its timestamps and use count."""
        rec = self._live(normalize_key(key))
        if rec is None:
            return None
        rec.payload = copy.deepcopy(payload)
        self._persist()
        return copy.deepcopy(rec)

    def touch(self, key: str) -> CacheRecord[T] | None:
        rec = self._live(normalize_key(key))
        if rec is None:
            return None
        rec.last_used_at_ms = self._clock()
        rec.use_count += 1
        self._persist()
        return copy.deepcopy(rec)

    def delete(self, key: str) -> bool:
        if self._records.pop(normalize_key(key), None) is None:
            return False
        self._persist()
        return True

    def prune(self) -> int:
        evicted = self._prune()
        if evicted:
            self._persist()
        return evicted

    def clear(self) -> None:
        self._records.clear()
        self._persist()

    def stats(self) -> StoreStats:
        """Live (unexpired) entry count and the approximate serialized size."""
        return StoreStats(count=len(self), approx_bytes=len(self._dump().encode("utf-8")))

    def records(self) -> list[CacheRecord[T]]:
        """Independent copies of all live records, in insertion order."""
        now = self._clock()
        return [copy.deepcopy(r) for r in self._records.values() if not self._expired(r, now)]

    def keys(self) -> list[str]:
        return [r.key for r in self.records()]

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for r in self._records.values() if not self._expired(r, now))

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        rec = self._records.get(normalize_key(key))
        return rec is not None and not self._expired(rec, self._clock())

    def __iter__(self) -> Iterator[CacheRecord[T]]:
        return iter(self.records())
