"""Tests for the two-tier cache engine."""

import pytest

from footy_cache.cache.engine import CacheEngine, CacheHealth, CacheMetrics
from footy_cache.cache.entry import CacheSource
from footy_cache.cache.memory import MemoryTier
from footy_cache.cache.remote import RemoteTier
from footy_cache.config import Settings


class TestCacheMetrics:
    """Tests for CacheMetrics."""

    def test_initial_values(self) -> None:
        """Test metrics start at zero."""
        metrics = CacheMetrics()
        assert metrics.hits == 0
        assert metrics.total_requests == 0
        assert metrics.hit_rate == 0.0
        assert metrics.avg_response_time_ms == 0.0

    def test_hit_rate(self) -> None:
        """Test hit rate is a percentage of reads."""
        metrics = CacheMetrics()
        metrics.record_hit(CacheSource.MEMORY)
        metrics.record_hit(CacheSource.REMOTE)
        metrics.record_hit(CacheSource.MEMORY)
        metrics.record_miss()
        assert metrics.total_requests == 4
        assert metrics.hit_rate == 75.0
        assert metrics.memory_hits == 2
        assert metrics.remote_hits == 1

    def test_running_mean(self) -> None:
        """Test average response time is a running mean."""
        metrics = CacheMetrics()
        metrics.record_timing(2.0)
        metrics.record_timing(4.0)
        assert metrics.avg_response_time_ms == 3.0

    def test_reset(self) -> None:
        """Test reset zeroes every counter."""
        metrics = CacheMetrics(hits=3, misses=2, sets=1, deletes=1, errors=4)
        metrics.record_timing(5.0)
        metrics.reset()
        assert metrics.to_dict()["hits"] == 0
        assert metrics.errors == 0
        assert metrics.avg_response_time_ms == 0.0


class TestCacheHealth:
    """Tests for CacheHealth."""

    def test_overall_requires_both(self) -> None:
        """Test overall health is the conjunction of tiers."""
        assert CacheHealth(True, True, False, False).overall is True
        assert CacheHealth(True, False, True, False).overall is False

    def test_to_dict(self) -> None:
        """Test health serializes every flag."""
        data = CacheHealth(True, False, True, False).to_dict()
        assert data == {
            "memory": True,
            "remote": False,
            "overall": False,
            "remote_configured": True,
            "remote_connected": False,
        }


class TestCacheEngineMemoryOnly:
    """Tests for an engine without Redis."""

    @pytest.fixture
    def engine(self) -> CacheEngine:
        """Create a memory-only engine."""
        return CacheEngine(memory=MemoryTier(), remote=None, default_ttl=900)

    @pytest.mark.asyncio
    async def test_get_miss(self, engine: CacheEngine) -> None:
        """Test a miss returns None and is counted."""
        assert await engine.get("footy:matches:live") is None
        assert engine.metrics.misses == 1

    @pytest.mark.asyncio
    async def test_set_then_get(self, engine: CacheEngine) -> None:
        """Test an immediate read deep-equals the written value."""
        value = {"success": True, "data": {"h2hMatches": [], "nested": {"a": [1, 2]}}}
        assert await engine.set("k", value, ttl=60, tags={"matches"}) is True
        assert await engine.get("k") == value
        assert engine.metrics.hits == 1
        assert engine.metrics.memory_hits == 1
        assert engine.metrics.sets == 1

    @pytest.mark.asyncio
    async def test_empty_list_payload(self, engine: CacheEngine) -> None:
        """Test an empty list is a hit, not a miss."""
        await engine.set("k", [])
        assert await engine.get("k") == []
        entry = await engine.get_entry("k")
        assert entry is not None

    @pytest.mark.asyncio
    async def test_set_twice_idempotent(self, engine: CacheEngine) -> None:
        """Test writing the same value twice keeps one entry."""
        await engine.set("k", {"v": 1})
        await engine.set("k", {"v": 1})
        assert await engine.get("k") == {"v": 1}
        assert engine.memory.size == 1

    @pytest.mark.asyncio
    async def test_default_ttl(self, engine: CacheEngine) -> None:
        """Test writes without TTL use the engine default."""
        await engine.set("k", 1)
        assert (await engine.get_entry("k")).ttl_seconds == 900

    @pytest.mark.asyncio
    async def test_compressed_set(self, engine: CacheEngine) -> None:
        """Test compressed writes read back unchanged."""
        value = {"matches": [{"id": i} for i in range(200)]}
        await engine.set("k", value, compress=True)
        assert await engine.get("k") == value

    @pytest.mark.asyncio
    async def test_unencodable_value_not_raised(self, engine: CacheEngine) -> None:
        """Test a serialization failure is logged and counted, not raised."""
        assert await engine.set("k", {(1, 2): "bad"}, compress=True) is False
        assert engine.metrics.errors == 1

    @pytest.mark.asyncio
    async def test_delete(self, engine: CacheEngine) -> None:
        """Test delete removes the key."""
        await engine.set("k", 1)
        assert await engine.delete("k") is True
        assert await engine.get("k") is None
        assert engine.metrics.deletes == 1

    @pytest.mark.asyncio
    async def test_clear_by_tags(self, engine: CacheEngine) -> None:
        """Test entries {A}, {A,B}, {B}: clearing A leaves only {B}."""
        await engine.set("a", 1, tags={"A"})
        await engine.set("ab", 2, tags={"A", "B"})
        await engine.set("b", 3, tags={"B"})
        assert await engine.clear_by_tags(["A"]) == 2
        assert await engine.get("a") is None
        assert await engine.get("ab") is None
        assert await engine.get("b") == 3

    @pytest.mark.asyncio
    async def test_clear_by_no_tags(self, engine: CacheEngine) -> None:
        """Test an empty tag list clears nothing."""
        await engine.set("a", 1, tags={"A"})
        assert await engine.clear_by_tags([]) == 0

    @pytest.mark.asyncio
    async def test_clear(self, engine: CacheEngine) -> None:
        """Test clear drops every entry."""
        await engine.set("a", 1)
        await engine.set("b", 2)
        assert await engine.clear() == 2
        assert await engine.get("a") is None

    @pytest.mark.asyncio
    async def test_health_without_redis(self, engine: CacheEngine) -> None:
        """Test a never-configured Redis counts as healthy."""
        health = await engine.health_check()
        assert health.remote_ok is True
        assert health.remote_configured is False
        assert health.overall is True

    @pytest.mark.asyncio
    async def test_metrics_dict(self, engine: CacheEngine) -> None:
        """Test metrics include tier gauges."""
        await engine.set("k", {"a": 1})
        await engine.get("k")
        metrics = engine.get_metrics()
        assert metrics["hits"] == 1
        assert metrics["sets"] == 1
        assert metrics["memory_entries"] == 1
        assert metrics["memory_usage_bytes"] > 0
        assert metrics["remote_connected"] is False
        assert metrics["avg_response_time_ms"] >= 0

    @pytest.mark.asyncio
    async def test_reset_metrics(self, engine: CacheEngine) -> None:
        """Test reset clears counters but not entries."""
        await engine.set("k", 1)
        await engine.get("k")
        engine.reset_metrics()
        assert engine.metrics.hits == 0
        assert await engine.get("k") == 1


class TestCacheEngineTwoTier:
    """Tests for an engine with memory and Redis."""

    @pytest.fixture
    def engine(self, fake_redis) -> CacheEngine:
        """Create a two-tier engine over the fake Redis."""
        return CacheEngine(memory=MemoryTier(), remote=RemoteTier(client=fake_redis))

    @pytest.mark.asyncio
    async def test_start_connects_and_sweeps(self, engine: CacheEngine, fake_redis) -> None:
        """Test start connects Redis and starts the sweep; shutdown undoes both."""
        await engine.start()
        assert engine.remote_available is True
        assert engine.memory.sweeper_running is True
        await engine.shutdown()
        assert engine.memory.sweeper_running is False
        assert fake_redis.closed is True

    @pytest.mark.asyncio
    async def test_set_writes_both_tiers(self, engine: CacheEngine, fake_redis) -> None:
        """Test a write lands in memory and Redis."""
        await engine.start()
        await engine.set("footy:matches:live", {"matches": []}, ttl=30, tags={"live"})
        assert engine.memory.get("footy:matches:live") is not None
        assert "footy:matches:live" in fake_redis.store
        assert fake_redis.sets["footy:tag:live"] == {"footy:matches:live"}
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_remote_hit_backfills_memory(self, engine: CacheEngine) -> None:
        """Test a Redis hit is copied into memory with its tags."""
        await engine.start()
        await engine.set("k", {"v": 1}, ttl=60, tags={"today"})
        engine.memory.clear()

        assert await engine.get("k") == {"v": 1}
        assert engine.metrics.remote_hits == 1

        backfilled = engine.memory.get("k")
        assert backfilled is not None
        assert backfilled.tags == frozenset({"today"})
        assert 0 < backfilled.ttl_seconds <= 60

        await engine.get("k")
        assert engine.metrics.memory_hits == 1
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_clear_by_tags_both_tiers(self, engine: CacheEngine, fake_redis) -> None:
        """Test tag invalidation reaches Redis too."""
        await engine.start()
        await engine.set("a", 1, tags={"A"})
        await engine.set("b", 2, tags={"B"})
        assert await engine.clear_by_tags(["A"]) == 2
        assert "a" not in fake_redis.store
        assert "b" in fake_redis.store
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_corrupt_remote_value_is_miss(self, engine: CacheEngine, fake_redis) -> None:
        """Test a corrupt Redis value counts as an error and a miss."""
        await engine.start()
        fake_redis.store["k"] = b"garbage"
        assert await engine.get("k") is None
        assert engine.metrics.errors == 1
        assert engine.metrics.misses == 1
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_redis_down_at_start(self, engine: CacheEngine, fake_redis) -> None:
        """Test get/set work from memory when Redis is configured but down."""
        fake_redis.down = True
        await engine.start()

        assert await engine.set("k", {"v": 1}) is True
        assert await engine.get("k") == {"v": 1}

        health = await engine.health_check()
        assert health.remote_ok is False
        assert health.remote_configured is True
        assert health.overall is False
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_redis_fails_mid_flight(self, engine: CacheEngine, fake_redis) -> None:
        """Test a Redis failure during set is counted and memory still written."""
        await engine.start()
        fake_redis.down = True
        assert await engine.set("k", {"v": 1}) is True
        assert engine.metrics.errors == 1
        assert engine.remote_available is False
        assert await engine.get("k") == {"v": 1}
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_health_check_reconnects(self, engine: CacheEngine, fake_redis) -> None:
        """Test a recovered Redis rejoins after a health check."""
        fake_redis.down = True
        await engine.start()
        fake_redis.down = False
        health = await engine.health_check()
        assert health.remote_ok is True
        assert health.remote_connected is True
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_no_tier_accepts(self, fake_redis) -> None:
        """Test set returns False when no tier accepted the write."""
        fake_redis.down = True
        engine = CacheEngine(memory=None, remote=RemoteTier(client=fake_redis))
        await engine.start()
        assert await engine.set("k", 1) is False
        assert engine.metrics.sets == 0
        await engine.shutdown()


class TestCacheEngineFromSettings:
    """Tests for building an engine from settings."""

    def test_memory_only_default(self) -> None:
        """Test default settings build a memory-only engine."""
        engine = CacheEngine.from_settings(Settings())
        assert engine.memory is not None
        assert engine.remote is None

    def test_redis_enabled(self) -> None:
        """Test enabling Redis configures the remote tier."""
        settings = Settings(
            ENABLE_REDIS_CACHE=True,
            ENABLE_MEMORY_CACHE=False,
            CACHE_DEFAULT_TTL=120,
            CACHE_REMOTE_TIMEOUT_SECONDS=0.2,
        )
        engine = CacheEngine.from_settings(settings)
        assert engine.memory is None
        assert engine.remote is not None
        assert engine.remote.timeout_seconds == 0.2
        assert engine.default_ttl == 120
