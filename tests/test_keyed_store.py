# tests/test_keyed_store.py

from __future__ import annotations

from pathlib import Path

import pytest

from focusmate.storage.backend import SqliteKVBackend
from focusmate.storage.keyed_store import KeyedStore, drop_oldest, normalize_key

from .fakes import FakeBackend, FakeClock

DAY_MS = 24 * 60 * 60 * 1000


def _store(backend, clock: FakeClock, **kwargs) -> KeyedStore[str]:
    return KeyedStore("test_store", backend=backend, encode=str, decode=str, clock=clock, **kwargs)


def test_normalize_key() -> None:
    assert normalize_key("  Clean   the KITCHEN ") == "clean the kitchen"
    assert normalize_key("") == ""


def test_set_get_with_normalized_keys(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock)
    store.set("Clean  Kitchen ", "payload")

    rec = store.get("clean kitchen")
    assert rec is not None
    assert rec.key == "clean kitchen"
    assert rec.payload == "payload"
    assert rec.use_count == 1
    assert "CLEAN KITCHEN" in store
    assert len(store) == 1


def test_ttl_round_trip(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock, max_age_ms=7 * DAY_MS)
    store.set("k", "v")

    clock.advance(7 * DAY_MS - 1)
    assert store.get("k") is not None

    clock.advance(2)
    assert store.get("k") is None
    assert len(store) == 0


def test_expired_entry_removal_is_persisted(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock, max_age_ms=1000)
    store.set("k", "v")
    clock.advance(1001)
    assert store.get("k") is None

    reloaded = _store(backend, clock, max_age_ms=1000)
    assert len(reloaded) == 0


def test_capacity_evicts_oldest(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock, capacity=100)
    for i in range(105):
        store.set(f"task {i}", f"r{i}")
        clock.advance(1)

    assert len(store) == 100
    for i in range(5):
        assert f"task {i}" not in store
    assert "task 5" in store
    assert "task 104" in store


def test_overwrite_counts_as_newest(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock, capacity=2)
    store.set("a", "1")
    clock.advance(1)
    store.set("b", "2")
    clock.advance(1)
    store.set("a", "3")
    clock.advance(1)
    store.set("c", "4")

    assert store.keys() == ["a", "c"]


def test_strict_lru_prune_order(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock, capacity=2, prune_order="last_used")
    store.set("a", "1")
    clock.advance(1)
    store.set("b", "2")
    clock.advance(1)
    store.touch("a")
    clock.advance(1)
    store.set("c", "3")

    assert sorted(store.keys()) == ["a", "c"]


def test_touch_updates_usage(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock)
    store.set("a", "1")
    clock.advance(500)

    rec = store.touch("a")
    assert rec is not None
    assert rec.use_count == 2
    assert rec.last_used_at_ms == clock.now
    assert rec.created_at_ms == clock.now - 500
    assert store.touch("missing") is None


def test_update_keeps_timestamps(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock)
    created = store.set("a", "1")
    clock.advance(10)

    updated = store.update("a", "2")
    assert updated is not None
    assert updated.payload == "2"
    assert updated.created_at_ms == created.created_at_ms
    assert store.update("missing", "x") is None


def test_delete_and_clear(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock)
    store.set("a", "1")
    store.set("b", "2")

    assert store.delete("A") is True
    assert store.delete("a") is False
    store.clear()
    assert len(store) == 0
    assert _store(backend, clock).keys() == []


def test_returned_records_are_copies(clock: FakeClock) -> None:
    store: KeyedStore[dict] = KeyedStore("s", backend=None, encode=dict, decode=dict, clock=clock)
    store.set("a", {"n": 1})

    rec = store.get("a")
    assert rec is not None
    rec.payload["n"] = 99
    rec.use_count = 50

    again = store.get("a")
    assert again is not None
    assert again.payload == {"n": 1}
    assert again.use_count == 1


def test_quota_failure_drops_victims_and_retries(clock: FakeClock) -> None:
    backend = FakeBackend(quota_bytes=400)
    store = _store(backend, clock, victims=drop_oldest(2, by=lambda r: r.created_at_ms))

    for i in range(5):
        store.set(f"k{i}", "x" * 40)
        clock.advance(1)

    assert store.durable is True
    assert len(store) < 5
    assert "k4" in store
    assert "k0" not in store


def test_quota_failure_after_retry_goes_memory_only(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock, victims=drop_oldest(1, by=lambda r: r.created_at_ms))
    store.set("a", "1")
    clock.advance(1)
    writes_before = backend.writes

    backend.fail_writes = True
    rec = store.set("b", "2")
    assert rec.payload == "2"
    assert store.durable is False

    backend.fail_writes = False
    store.set("c", "3")
    assert backend.writes == writes_before
    assert "c" in store


def test_plain_storage_error_keeps_store_durable(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock)
    backend.broken = True
    store.set("a", "1")
    assert store.durable is True
    assert "a" in store

    backend.broken = False
    store.set("b", "2")
    assert _store(backend, clock).keys() == ["a", "b"]


def test_unavailable_backend_is_memory_only(clock: FakeClock) -> None:
    backend = FakeBackend(available=False)
    store = _store(backend, clock)
    store.set("a", "1")

    assert store.durable is False
    assert store.get("a") is not None
    assert backend.data == {}


def test_corrupt_snapshot_starts_empty(backend: FakeBackend, clock: FakeClock) -> None:
    backend.data["test_store"] = "{not json"
    store = _store(backend, clock)
    assert len(store) == 0

    backend.data["test_store"] = '[["ok", {"payload": "v", "created_at_ms": 1}], ["bad"]]'
    store = _store(backend, clock)
    assert store.keys() == ["ok"]


def test_sqlite_persistence_reload(tmp_path: Path, clock: FakeClock) -> None:
    db = tmp_path / "store.sqlite3"
    store = _store(SqliteKVBackend(db), clock)
    store.set("Clean Kitchen", "steps")
    store.touch("clean kitchen")

    reloaded = _store(SqliteKVBackend(db), clock)
    rec = reloaded.get("clean kitchen")
    assert rec is not None
    assert rec.payload == "steps"
    assert rec.use_count == 2


def test_sqlite_quota(tmp_path: Path, clock: FakeClock) -> None:
    backend = SqliteKVBackend(tmp_path / "store.sqlite3", quota_bytes=300)
    store = _store(backend, clock)

    store.set("small", "x")
    assert store.durable is True

    # The default quota policy drops everything, after which the empty snapshot fits.
    store.set("big", "y" * 1000)
    assert store.durable is True
    assert len(store) == 0


def test_negative_capacity_is_rejected(clock: FakeClock) -> None:
    with pytest.raises(ValueError):
        _store(None, clock, capacity=-1)


def test_stats_and_len_skip_expired_entries(backend: FakeBackend, clock: FakeClock) -> None:
    store = _store(backend, clock, max_age_ms=1000)
    store.set("old", "v")
    clock.advance(600)
    store.set("new", "v")
    clock.advance(600)

    assert len(store) == 1
    assert store.stats().count == 1
    assert [r.key for r in store.records()] == ["new"]
