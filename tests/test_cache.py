"""Validate the response cache: freshness, invalidation and key building."""

from conftest import FakeClock

from clinic_portal.data.cache import ResponseCache, make_key


class TestCacheFreshness:
    """Test TTL handling."""

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = ResponseCache(default_ttl=300, clock=self.clock, name="test")

    def test_get_right_after_set(self):
        self.cache.set("clients_1", {"id": 1}, ttl=60)
        assert self.cache.get("clients_1") == {"id": 1}

    def test_entry_is_fresh_at_exactly_ttl(self):
        self.cache.set("clients_1", "value", ttl=60)
        self.clock.advance(60)
        assert self.cache.get("clients_1") == "value"

    def test_expired_entry_is_a_miss_and_evicted(self):
        self.cache.set("clients_1", "value", ttl=60)
        self.clock.advance(60.5)

        assert self.cache.get("clients_1") is None
        assert "clients_1" not in self.cache.keys()
        assert self.cache.stats.evictions == 1

    def test_default_ttl_applies_without_override(self):
        self.cache.set("clients_1", "value")
        self.clock.advance(299)
        assert self.cache.get("clients_1") == "value"
        self.clock.advance(2)
        assert self.cache.get("clients_1") is None

    def test_disabled_cache_stores_nothing(self):
        cache = ResponseCache(clock=self.clock, enabled=False)
        cache.set("clients_1", "value")
        assert cache.get("clients_1") is None
        assert len(cache) == 0

    def test_stats_track_hits_and_misses(self):
        self.cache.set("a", 1)
        self.cache.get("a")
        self.cache.get("a")
        self.cache.get("b")

        stats = self.cache.stats.to_dict()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert self.cache.stats.hit_rate == 2 / 3


class TestCacheInvalidation:
    """Test pattern-based clearing."""

    def setup_method(self):
        self.cache = ResponseCache(clock=FakeClock())
        for key in ("orders_1", "pending_orders_x", "order_5", "clients_1", "orders"):
            self.cache.set(key, key)

    def test_clear_pattern_removes_matching_keys_only(self):
        removed = self.cache.clear("orders_")

        assert removed == 2
        assert sorted(self.cache.keys()) == ["clients_1", "order_5", "orders"]

    def test_clear_without_pattern_drops_everything(self):
        assert self.cache.clear() == 5
        assert len(self.cache) == 0

    def test_clear_with_unknown_pattern_is_harmless(self):
        assert self.cache.clear("payments_") == 0
        assert len(self.cache) == 5


class TestMakeKey:
    """Test cache key construction."""

    def test_scalar_queries(self):
        assert make_key("client", "abc") == "client_abc"
        assert make_key("appointment", 42) == "appointment_42"
        assert make_key("stats") == "stats"

    def test_mapping_key_is_order_independent(self):
        first = make_key("clients_bodybliss", {"page": 1, "limit": 20})
        second = make_key("clients_bodybliss", {"limit": 20, "page": 1})
        assert first == second
        assert first.startswith("clients_bodybliss_")

    def test_different_filters_never_collide(self):
        keys = {
            make_key("clients", {"page": 1, "limit": 20}),
            make_key("clients", {"page": 2, "limit": 20}),
            make_key("clients", {"page": 1, "limit": 20, "search": "ann"}),
            make_key("clients", {"page": 1, "limit": 20, "search": None}),
        }
        assert len(keys) == 4
