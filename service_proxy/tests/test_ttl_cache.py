"""
Unit tests for the proxy TTL cache and cache keys.
"""

import pytest

from service_proxy.app.caching import TTLCache, feed_key, passthrough_key, search_key, summary_key
from service_proxy.app.caching.ttl_cache import DEFAULT_CATEGORY_TTLS
from shared.metrics import MetricsCollector
from shared.test_helpers import FakeClock


class TestTTLCache:
    """Test cases for TTLCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return TTLCache(clock=clock)

    @pytest.mark.parametrize("category", sorted(DEFAULT_CATEGORY_TTLS))
    def test_get_after_set_returns_value(self, cache, category):
        cache.set("key", {"value": 1}, category)

        assert cache.get("key") == {"value": 1}

    @pytest.mark.parametrize("category", sorted(DEFAULT_CATEGORY_TTLS))
    def test_entry_expires_after_category_ttl(self, cache, clock, category):
        cache.set("key", "value", category)

        clock.advance(DEFAULT_CATEGORY_TTLS[category] - 1)
        assert cache.get("key") == "value"

        clock.advance(1)
        assert cache.get("key") is None
        assert len(cache) == 0

    def test_unknown_category_uses_default_ttl(self, clock):
        cache = TTLCache({"summary": 10}, default_ttl=30, clock=clock)
        cache.set("key", "value", "unknown")

        clock.advance(29)
        assert cache.get("key") == "value"
        clock.advance(1)
        assert cache.get("key") is None

    def test_falsy_values_are_cache_hits(self, cache):
        cache.set("empty-list", [], "search")
        cache.set("empty-string", "", "summary")

        assert cache.get("empty-list") == []
        assert cache.get("empty-string") == ""

    def test_last_write_wins(self, cache, clock):
        cache.set("key", "first", "summary")
        clock.advance(5)
        cache.set("key", "second", "feed")

        assert cache.get("key") == "second"
        # The second write restarts expiry under its own category
        clock.advance(DEFAULT_CATEGORY_TTLS["feed"] - 1)
        assert cache.get("key") == "second"

    def test_expired_entry_is_evicted_on_read(self, cache, clock):
        cache.set("stale", "value", "feed")
        cache.set("fresh", "value", "summary")
        clock.advance(DEFAULT_CATEGORY_TTLS["feed"])

        assert len(cache) == 2
        assert cache.get("stale") is None
        assert len(cache) == 1

    def test_purge_expired(self, cache, clock):
        cache.set("feed", "value", "feed")
        cache.set("search", "value", "search")
        cache.set("summary", "value", "summary")
        clock.advance(DEFAULT_CATEGORY_TTLS["search"])

        removed = cache.purge_expired()

        assert removed == 2
        assert len(cache) == 1
        assert cache.get("summary") == "value"

    def test_hits_and_misses_are_counted_by_category(self, clock):
        metrics = MetricsCollector("proxy")
        cache = TTLCache(clock=clock, metrics=metrics)

        cache.get("wiki:Adele", "summary")
        cache.get("rss:https://example.com/rss", "feed")
        cache.set("wiki:Adele", "value", "summary")
        cache.get("wiki:Adele", "summary")
        cache.get("wiki:Adele", "summary")

        assert metrics.sample_value("cache_hits_total", cache_type="summary") == 2
        assert metrics.sample_value("cache_misses_total", cache_type="summary") == 1
        assert metrics.sample_value("cache_misses_total", cache_type="feed") == 1
        assert metrics.sample_value("cache_misses_total", cache_type="unknown") is None

    def test_expired_miss_uses_stored_category(self, clock):
        metrics = MetricsCollector("proxy")
        cache = TTLCache(clock=clock, metrics=metrics)
        cache.set("ddg:Adele", [], "search")
        clock.advance(DEFAULT_CATEGORY_TTLS["search"])

        assert cache.get("ddg:Adele") is None
        assert metrics.sample_value("cache_misses_total", cache_type="search") == 1

    def test_stats_counts_entries_per_category(self, cache):
        assert cache.stats() == {"entries": 0, "by_category": {}}

        cache.set("wiki:A", "a", "summary")
        cache.set("wiki:B", "b", "summary")
        cache.set("rss:url", [], "feed")

        assert cache.stats() == {"entries": 3, "by_category": {"summary": 2, "feed": 1}}
        assert len(cache) == 3


class TestCacheKeys:
    """Test cases for cache key builders."""

    def test_adapter_prefixes_do_not_collide(self):
        keys = {summary_key("Adele"), feed_key("Adele"), search_key("Adele")}
        assert len(keys) == 3

    def test_passthrough_key_ignores_parameter_order(self):
        first = passthrough_key([("action", "query"), ("titles", "Adele"), ("format", "json")])
        second = passthrough_key([("format", "json"), ("action", "query"), ("titles", "Adele")])

        assert first == second

    def test_passthrough_key_accepts_mapping(self):
        assert passthrough_key({"b": "2", "a": "1"}) == passthrough_key([("a", "1"), ("b", "2")])

    def test_passthrough_key_distinguishes_values(self):
        assert passthrough_key({"titles": "Adele"}) != passthrough_key({"titles": "Adele2"})
        assert passthrough_key({"a": "1,b=2"}) != passthrough_key({"a": "1", "b": "2"})

    def test_passthrough_key_keeps_repeated_parameters(self):
        single = passthrough_key([("titles", "A")])
        repeated = passthrough_key([("titles", "A"), ("titles", "A")])

        assert single != repeated

    def test_passthrough_key_keeps_order_of_repeated_values(self):
        first = passthrough_key([("titles", "A"), ("action", "query"), ("titles", "B")])
        second = passthrough_key([("action", "query"), ("titles", "B"), ("titles", "A")])
        same_as_first = passthrough_key([("action", "query"), ("titles", "A"), ("titles", "B")])

        assert first != second
        assert first == same_as_first
