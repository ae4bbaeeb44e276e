# tests/test_favorite_store.py

from __future__ import annotations

from focusmate.favorites.favorite_store import FavoriteStore

from .fakes import FakeBackend, FakeClock


def test_save_and_list_most_recently_used_first(backend: FakeBackend, clock: FakeClock) -> None:
    favs = FavoriteStore(backend, clock=clock)
    a = favs.save("Clean kitchen", "1. Wipe (5 min)", 5)
    clock.advance(10)
    b = favs.save("Do laundry", "1. Sort (3 min)", 3)

    assert a.id.startswith("fav_")
    assert a.id != b.id
    assert [f.task for f in favs.list_all()] == ["Do laundry", "Clean kitchen"]

    clock.advance(10)
    touched = favs.touch(a.id)
    assert touched is not None
    assert touched.usage_count == 2
    assert touched.last_used_ms == clock.now
    assert [f.task for f in favs.list_all()] == ["Clean kitchen", "Do laundry"]


def test_lookup_by_task_and_search(backend: FakeBackend, clock: FakeClock) -> None:
    favs = FavoriteStore(backend, clock=clock)
    favs.save("Clean Kitchen", "r")
    favs.save("Clean bathroom", "r")
    favs.save("Pay bills", "r")

    assert favs.is_favorite("clean kitchen")
    assert not favs.is_favorite("clean garage")
    found = favs.get_by_task("PAY BILLS")
    assert found is not None and found.task == "Pay bills"
    assert sorted(f.task for f in favs.search("clean")) == ["Clean Kitchen", "Clean bathroom"]


def test_remove_and_clear(backend: FakeBackend, clock: FakeClock) -> None:
    favs = FavoriteStore(backend, clock=clock)
    fav = favs.save("Task", "r")

    assert favs.remove(fav.id) is True
    assert favs.remove(fav.id) is False
    assert favs.get(fav.id) is None

    favs.save("Other", "r")
    favs.clear()
    assert len(favs) == 0


def test_persisted_across_instances(backend: FakeBackend, clock: FakeClock) -> None:
    fav = FavoriteStore(backend, clock=clock).save("Task", "1. Go (5 min)", 5)

    again = FavoriteStore(backend, clock=clock).get(fav.id)
    assert again == fav


def test_stats(backend: FakeBackend, clock: FakeClock) -> None:
    favs = FavoriteStore(backend, clock=clock)
    assert favs.stats().count == 0

    first = favs.save("A", "r")
    clock.advance(100)
    favs.save("B", "r")
    favs.touch(first.id)

    stats = favs.stats()
    assert stats.count == 2
    assert stats.total_usage == 3
    assert stats.oldest_saved_ms == first.saved_at_ms
    assert stats.newest_saved_ms == first.saved_at_ms + 100


def test_quota_drops_least_recently_used(clock: FakeClock) -> None:
    backend = FakeBackend()
    favs = FavoriteStore(backend, clock=clock)
    saved = []
    for i in range(8):
        saved.append(favs.save(f"task {i}", "r"))
        clock.advance(1)
    favs.touch(saved[0].id)

    backend.quota_bytes = len(backend.data["focusmate_favorites"])
    favs.save("task 8", "r")

    remaining = {f.task for f in favs.list_all()}
    assert remaining == {"task 0", "task 6", "task 7", "task 8"}
