import random
import threading

import pytest

from gradebook.caching import ConcurrentCache


def test_size_never_exceeds_capacity():
    rng = random.Random(7)
    for capacity in (1, 2, 3, 10, 25):
        cache = ConcurrentCache(capacity)
        for _ in range(capacity * 6):
            cache.put(f"K{rng.randint(0, capacity * 3)}", rng.random())
            assert cache.size() <= capacity


def test_least_recently_used_entry_is_evicted():
    cache = ConcurrentCache(3)
    cache.put("A", 1)
    cache.put("B", 2)
    cache.put("C", 3)
    assert cache.size() == 3
    assert cache.stats().evictions == 0

    assert cache.get("A") == 1
    cache.put("D", 4)

    assert {key for key, _ in cache.contents()} == {"A", "C", "D"}
    assert "B" not in cache
    assert cache.stats().evictions == 1


def test_overwrite_existing_key_does_not_evict():
    cache = ConcurrentCache(2)
    cache.put("A", 1)
    cache.put("B", 2)
    cache.put("A", 10)

    assert cache.size() == 2
    assert cache.get("A") == 10
    assert cache.stats().evictions == 0
    # A was refreshed by the overwrite, so B goes first
    cache.put("C", 3)
    assert "B" not in cache
    assert "A" in cache


def test_miss_counts_and_leaves_size_unchanged():
    cache = ConcurrentCache(5)
    cache.put("A", 1)
    assert cache.get("missing") is None
    assert cache.get("missing", "fallback") == "fallback"

    stats = cache.stats()
    assert stats.misses == 2
    assert stats.hits == 0
    assert cache.size() == 1


def test_repeated_hits_do_not_change_value():
    cache = ConcurrentCache(5)
    cache.put("A", {"name": "Alice"})
    assert cache.get("A") == {"name": "Alice"}
    assert cache.get("A") == {"name": "Alice"}
    assert cache.stats().hits == 2


def test_invalidate_is_idempotent():
    cache = ConcurrentCache(5)
    cache.put("A", 1)
    cache.put("B", 2)

    assert cache.invalidate("A") is True
    after_first = (cache.contents(), cache.stats())
    assert cache.invalidate("A") is False

    assert [key for key, _ in cache.contents()] == [key for key, _ in after_first[0]]
    assert cache.stats() == after_first[1]
    assert cache.stats().evictions == 1


def test_hit_and_miss_rates():
    cache = ConcurrentCache(5)
    empty = cache.stats()
    assert empty.hit_rate == 0.0
    assert empty.miss_rate == 0.0

    cache.put("A", 1)
    calls = ["A", "A", "B", "A", "C", "D", "A"]
    for key in calls:
        cache.get(key)

    stats = cache.stats()
    assert stats.hits + stats.misses == len(calls)
    assert stats.hits == 4
    assert stats.hit_rate + stats.miss_rate == pytest.approx(100.0)
    assert stats.hit_rate == pytest.approx(400 / 7)


def test_clear_keeps_counters():
    cache = ConcurrentCache(2)
    cache.put("A", 1)
    cache.get("A")
    cache.get("Z")
    cache.put("B", 2)
    cache.put("C", 3)
    cache.clear()

    stats = cache.stats()
    assert stats.entry_count == 0
    assert (stats.hits, stats.misses, stats.evictions) == (1, 1, 1)


def test_contents_is_snapshot_in_recency_order():
    cache = ConcurrentCache(3)
    for key in ("A", "B", "C"):
        cache.put(key, key.lower())
    cache.get("A")

    snapshot = cache.contents()
    assert [key for key, _ in snapshot] == ["B", "C", "A"]
    assert snapshot[-1][1] >= snapshot[0][1]

    cache.invalidate("B")
    assert len(snapshot) == 3


def test_membership_does_not_count_as_lookup():
    cache = ConcurrentCache(2)
    cache.put("A", 1)
    assert "A" in cache
    assert "B" not in cache
    stats = cache.stats()
    assert stats.hits == 0 and stats.misses == 0


def test_get_or_put_calls_factory_once():
    cache = ConcurrentCache(2)
    calls = []

    def factory():
        calls.append(1)
        return "value"

    assert cache.get_or_put("K", factory) == "value"
    assert cache.get_or_put("K", factory) == "value"
    assert len(calls) == 1
    stats = cache.stats()
    assert (stats.hits, stats.misses) == (1, 1)


def test_invalid_capacity_rejected():
    with pytest.raises(ValueError):
        ConcurrentCache(0)


def test_concurrent_access_keeps_bound_and_counters():
    cache = ConcurrentCache(20)
    lookups_per_thread = 500
    workers = 8

    def worker(seed: int):
        rng = random.Random(seed)
        for i in range(lookups_per_thread):
            key = f"STUDENT_{rng.randint(0, 60)}"
            if cache.get(key) is None:
                cache.put(key, i)
            if i % 50 == 0:
                cache.invalidate(key)

    threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stats = cache.stats()
    assert stats.entry_count <= 20
    assert stats.hits + stats.misses == workers * lookups_per_thread
