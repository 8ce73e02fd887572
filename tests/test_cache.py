"""
Tests for the TTL source cache.
"""
import threading

import pytest

from atlas_tracker.data.cache import Failed, Fresh, SourceCache, cache_key, is_valid


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return SourceCache(clock=clock)


class TestKeys:
    def test_namespaced_by_source(self):
        assert cache_key("cobs") == "cobs:data"
        assert cache_key("mpc", "elements") == "mpc:elements"
        assert cache_key("cobs") != cache_key("mpc")


class TestValidity:
    def test_valid_strictly_before_ttl(self):
        entry = Fresh(data=1, captured_at=100.0, ttl_s=10.0)
        assert is_valid(entry, 109.999)
        assert not is_valid(entry, 110.0)

    def test_failed_entries_expire_the_same_way(self):
        entry = Failed(reason="boom", captured_at=0.0, ttl_s=5.0)
        assert is_valid(entry, 4.0)
        assert not is_valid(entry, 5.0)


class TestSourceCache:
    def test_get_missing(self, cache):
        assert cache.get("nothing") is None
        assert cache.get_data("nothing") is None

    def test_set_and_get(self, cache, clock):
        cache.set("cobs:data", {"mag": 12.1}, ttl_s=300)
        entry = cache.get("cobs:data")
        assert isinstance(entry, Fresh)
        assert entry.data == {"mag": 12.1}
        assert entry.captured_at == clock.now
        assert cache.get_data("cobs:data") == {"mag": 12.1}

    def test_expiry_evicts(self, cache, clock):
        cache.set("cobs:data", "x", ttl_s=300)
        clock.advance(299.0)
        assert cache.get_data("cobs:data") == "x"
        clock.advance(1.0)
        assert cache.get("cobs:data") is None
        assert len(cache) == 0

    def test_failed_marker(self, cache, clock):
        cache.set_failed("jpl_horizons:data", "timed out after 30s", ttl_s=600)
        entry = cache.get("jpl_horizons:data")
        assert isinstance(entry, Failed)
        assert entry.reason == "timed out after 30s"
        # Failure markers never read as data
        assert cache.get_data("jpl_horizons:data") is None
        clock.advance(600.0)
        assert cache.get("jpl_horizons:data") is None

    def test_fresh_replaces_failed(self, cache):
        cache.set_failed("mpc:data", "down", ttl_s=600)
        cache.set("mpc:data", "elements", ttl_s=60)
        assert cache.get_data("mpc:data") == "elements"

    def test_rejects_non_positive_ttl(self, cache):
        with pytest.raises(ValueError, match="ttl_s must be positive"):
            cache.set("k", 1, ttl_s=0)
        with pytest.raises(ValueError, match="ttl_s must be positive"):
            cache.set_failed("k", "r", ttl_s=-1)

    def test_describe(self, cache, clock):
        assert not cache.describe("cobs:data").cached

        cache.set("cobs:data", 1, ttl_s=300)
        clock.advance(100.0)
        info = cache.describe("cobs:data")
        assert info.cached and not info.failed
        assert info.age_s == pytest.approx(100.0)
        assert info.next_refresh_s == pytest.approx(200.0)

        cache.set_failed("mpc:data", "down", ttl_s=600)
        assert cache.describe("mpc:data").failed

    def test_clear(self, cache):
        cache.set("a:data", 1, ttl_s=10)
        cache.set_failed("b:data", "r", ttl_s=10)
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a:data") is None

    def test_close(self, cache):
        cache.set("a:data", 1, ttl_s=10)
        cache.close()
        with pytest.raises(RuntimeError, match="closed"):
            cache.get("a:data")
        with pytest.raises(RuntimeError, match="closed"):
            cache.set("a:data", 1, ttl_s=10)

    def test_context_manager_closes(self, clock):
        with SourceCache(clock=clock) as c:
            c.set("a:data", 1, ttl_s=10)
        with pytest.raises(RuntimeError):
            c.get("a:data")

    def test_concurrent_writers(self, cache):
        def writer(n):
            for i in range(200):
                cache.set(cache_key(f"src{n}", str(i)), i, ttl_s=60)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 8 * 200
        assert cache.get_data(cache_key("src3", "150")) == 150
