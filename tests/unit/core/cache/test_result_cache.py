"""
Tests for ResultCache

Covers TTL expiry, bounded size with warm-entry protection, the periodic
sweep, thread safety and the Redis write-through / read-through tier.
"""
import threading
from unittest.mock import Mock

import pytest

from core.cache import ResultCache
from core.config_loader import CacheConfig
from tests.mocks.ranking_mocks import FakeClock


class TestResultCache:
    """Test suite for ResultCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        config = CacheConfig(ttl_seconds=60, max_size=3, warm_entries=2, cleanup_interval_seconds=30)
        return ResultCache(config, clock=clock)

    def test_01_set_and_get(self, cache):
        cache.set("fp1", [{"job_id": "j1", "match_score": 90}])
        assert cache.get("fp1") == [{"job_id": "j1", "match_score": 90}]
        assert "fp1" in cache
        assert len(cache) == 1

    def test_02_miss(self, cache):
        assert cache.get("missing") is None
        assert cache.get_stats()["misses"] == 1

    def test_03_expired_entry_never_returned(self, cache, clock):
        cache.set("fp1", "value")
        clock.advance(60)
        assert cache.get("fp1") is None
        assert "fp1" not in cache
        assert cache.get_stats()["expirations"] == 1

    def test_04_custom_ttl(self, cache, clock):
        cache.set("short", "v", ttl_seconds=5)
        clock.advance(6)
        assert cache.get("short") is None

    def test_05_lru_eviction_when_full(self, cache):
        cache.begin_run()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        cache.get("a")
        cache.set("d", 4)
        assert "b" not in cache
        assert all(k in cache for k in ("a", "c", "d"))
        assert cache.get_stats()["evictions"] == 1

    def test_06_expired_entries_evicted_before_live_ones(self, cache, clock):
        cache.set("old", 1, ttl_seconds=10)
        clock.advance(5)
        cache.set("b", 2)
        cache.set("c", 3)
        clock.advance(6)
        cache.set("d", 4)
        assert "old" not in cache
        assert all(k in cache for k in ("b", "c", "d"))
        assert cache.get_stats()["evictions"] == 0

    def test_07_warm_entries_survive_eviction(self, cache):
        cache.set("previous-run", 0)
        cache.begin_run()
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.warm_keys() == {"a", "b"}
        cache.set("c", 3)
        assert "previous-run" not in cache
        assert {"b", "c"} <= cache.warm_keys()
        assert "b" in cache and "c" in cache

    def test_08_entries_from_older_runs_are_not_warm(self, cache):
        cache.begin_run()
        cache.set("a", 1)
        cache.begin_run()
        assert cache.warm_keys() == set()
        cache.get("a")
        assert cache.warm_keys() == {"a"}

    def test_09_periodic_sweep(self, cache, clock):
        cache.set("a", 1, ttl_seconds=10)
        cache.set("b", 2, ttl_seconds=100)
        clock.advance(31)
        cache.get("b")
        assert len(cache) == 1

    def test_10_purge_expired(self, cache, clock):
        cache.set("a", 1, ttl_seconds=1)
        cache.set("b", 2, ttl_seconds=1)
        clock.advance(2)
        assert cache.purge_expired() == 2
        assert len(cache) == 0

    def test_11_overwrite_is_last_writer_wins(self, cache):
        cache.set("fp", "first")
        cache.set("fp", "second")
        assert cache.get("fp") == "second"
        assert len(cache) == 1

    def test_12_hit_rate(self, cache):
        cache.set("a", 1)
        cache.get("a")
        cache.get("a")
        cache.get("nope")
        stats = cache.get_stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate"] == pytest.approx(2 / 3)
        assert stats["redis_available"] is False

    def test_13_delete_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0

    def test_14_concurrent_access_keeps_bound(self):
        cache = ResultCache(CacheConfig(max_size=50, warm_entries=10))

        def worker(n):
            for i in range(200):
                cache.set(f"{n}-{i}", i)
                cache.get(f"{n}-{i // 2}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) <= 50


class TestResultCacheWithStore:
    """Redis tier behaviour, with the store mocked."""

    @pytest.fixture
    def store(self):
        store = Mock()
        store.is_available = True
        store.get_with_ttl.return_value = None
        store.load_warm_entries.return_value = []
        return store

    def test_01_write_through(self, store):
        cache = ResultCache(CacheConfig(ttl_seconds=120), store=store)
        cache.set("fp", [1, 2])
        store.set.assert_called_once_with("fp", [1, 2], 120)

    def test_02_read_through_populates_memory(self, store):
        store.get_with_ttl.return_value = ([{"job_id": "j1"}], None)
        cache = ResultCache(CacheConfig(), store=store)
        assert cache.get("fp") == [{"job_id": "j1"}]
        assert "fp" in cache
        store.get_with_ttl.reset_mock()
        cache.get("fp")
        store.get_with_ttl.assert_not_called()

    def test_03_warm_load_at_start(self, store):
        store.load_warm_entries.return_value = [
            ("newest", "n", 100),
            ("older", "o", 50),
        ]
        cache = ResultCache(CacheConfig(warm_entries=10, max_size=20), store=store)
        store.load_warm_entries.assert_called_once_with(10)
        assert cache.get("newest") == "n"
        assert cache.get("older") == "o"

    def test_04_store_miss_counts_as_miss(self, store):
        cache = ResultCache(CacheConfig(), store=store)
        assert cache.get("fp") is None
        assert cache.get_stats()["misses"] == 1
        assert cache.get_stats()["redis_available"] is True

    def test_05_delete_and_clear_propagate(self, store):
        cache = ResultCache(CacheConfig(), store=store)
        cache.delete("fp")
        cache.clear()
        store.delete.assert_called_once_with("fp")
        store.clear_all.assert_called_once()

    def test_06_read_through_keeps_remaining_ttl(self, store):
        clock = FakeClock()
        cache = ResultCache(CacheConfig(ttl_seconds=100), store=store, clock=clock)
        store.get_with_ttl.return_value = ([{"job_id": "a"}], 5)

        assert cache.get("fp") == [{"job_id": "a"}]

        store.get_with_ttl.return_value = None
        clock.advance(4)
        assert cache.get("fp") == [{"job_id": "a"}]
        clock.advance(2)
        assert cache.get("fp") is None

    def test_07_read_through_ttl_capped_by_config(self, store):
        clock = FakeClock()
        cache = ResultCache(CacheConfig(ttl_seconds=10), store=store, clock=clock)
        store.get_with_ttl.return_value = ("v", 3600)

        assert cache.get("fp") == "v"

        store.get_with_ttl.return_value = None
        clock.advance(11)
        assert cache.get("fp") is None
