"""Two-tier cache engine.

Orchestrates reads and writes across the in-process tier and the optional
Redis tier:

- get: memory first, then Redis (backfilling memory on a Redis hit)
- set/delete/clear_by_tags: fanned out to every enabled tier independently
- metrics and health for the administrative surface

The engine is cache-aside: it never fetches from the origin. Tier failures
are logged and counted, never raised; the origin remains the source of truth.
"""

import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import structlog

from footy_cache.cache.entry import CacheEntry, CacheSource, now_ms
from footy_cache.cache.memory import MemoryTier
from footy_cache.cache.remote import RemoteTier
from footy_cache.config import Settings

logger = structlog.get_logger(__name__)


@dataclass
class CacheMetrics:
    """Process-wide cache counters.

    Attributes:
        hits: Reads served from any tier.
        misses: Reads served from no tier.
        sets: Writes accepted by at least one tier.
        deletes: Explicit deletes.
        errors: Tier failures absorbed by the engine.
        memory_hits: Hits served by the in-process tier.
        remote_hits: Hits served by the Redis tier.
        total_response_time_ms: Summed duration of get/set calls.
        timed_operations: Number of get/set calls timed.
    """

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    errors: int = 0
    memory_hits: int = 0
    remote_hits: int = 0
    total_response_time_ms: float = 0.0
    timed_operations: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache reads."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        if self.total_requests == 0:
            return 0.0
        return (self.hits / self.total_requests) * 100

    @property
    def avg_response_time_ms(self) -> float:
        """Mean duration of get/set calls."""
        if self.timed_operations == 0:
            return 0.0
        return self.total_response_time_ms / self.timed_operations

    def record_hit(self, source: CacheSource) -> None:
        """Record a cache hit from a tier."""
        self.hits += 1
        if source == CacheSource.MEMORY:
            self.memory_hits += 1
        elif source == CacheSource.REMOTE:
            self.remote_hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        self.misses += 1

    def record_error(self) -> None:
        """Record an absorbed tier failure."""
        self.errors += 1

    def record_timing(self, latency_ms: float) -> None:
        """Record the duration of a get/set call."""
        self.total_response_time_ms += latency_ms
        self.timed_operations += 1

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "errors": self.errors,
            "memory_hits": self.memory_hits,
            "remote_hits": self.remote_hits,
            "total_requests": self.total_requests,
            "hit_rate": round(self.hit_rate, 2),
            "avg_response_time_ms": round(self.avg_response_time_ms, 2),
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.errors = 0
        self.memory_hits = 0
        self.remote_hits = 0
        self.total_response_time_ms = 0.0
        self.timed_operations = 0


@dataclass(frozen=True)
class CacheHealth:
    """Health of the cache tiers.

    A tier that was never configured counts as healthy. A configured
    Redis tier that does not answer a ping counts as unhealthy.
    """

    memory_ok: bool
    remote_ok: bool
    remote_configured: bool
    remote_connected: bool

    @property
    def overall(self) -> bool:
        """Both tiers healthy."""
        return self.memory_ok and self.remote_ok

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "memory": self.memory_ok,
            "remote": self.remote_ok,
            "overall": self.overall,
            "remote_configured": self.remote_configured,
            "remote_connected": self.remote_connected,
        }


class CacheEngine:
    """Cache-aside engine over an in-process tier and an optional Redis tier.

    Example:
        engine = CacheEngine(memory=MemoryTier(), remote=RemoteTier(redis_url))
        await engine.start()

        await engine.set("footy:matches:live", matches, ttl=30, tags={"live"})
        cached = await engine.get("footy:matches:live")

        await engine.shutdown()
    """

    def __init__(
        self,
        memory: MemoryTier | None = None,
        remote: RemoteTier | None = None,
        default_ttl: int = 900,
    ) -> None:
        """Initialize the cache engine.

        Args:
            memory: In-process tier, None to disable it.
            remote: Redis tier, None when Redis is not configured.
            default_ttl: TTL in seconds for writes that name none.
        """
        self.memory = memory
        self.remote = remote
        self.default_ttl = default_ttl
        self.metrics = CacheMetrics()
        self._logger = logger.bind(component="cache_engine")

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheEngine":
        """Build an engine with the tiers enabled in settings."""
        memory = None
        if settings.ENABLE_MEMORY_CACHE:
            memory = MemoryTier(
                default_ttl=settings.CACHE_DEFAULT_TTL,
                max_memory_bytes=settings.CACHE_MAX_MEMORY_BYTES,
                sweep_interval_seconds=settings.CACHE_SWEEP_INTERVAL_SECONDS,
            )
        remote = None
        if settings.ENABLE_REDIS_CACHE:
            remote = RemoteTier(
                redis_url=settings.REDIS_URL,
                timeout_seconds=settings.CACHE_REMOTE_TIMEOUT_SECONDS,
            )
        return cls(memory=memory, remote=remote, default_ttl=settings.CACHE_DEFAULT_TTL)

    @property
    def remote_configured(self) -> bool:
        """Whether a Redis tier was configured."""
        return self.remote is not None

    @property
    def remote_available(self) -> bool:
        """Whether the Redis tier is configured and connected."""
        return self.remote is not None and self.remote.connected

    async def start(self) -> None:
        """Connect the Redis tier and start the in-process sweep."""
        if self.remote is not None:
            await self.remote.connect()
        if self.memory is not None:
            self.memory.start_sweeper()
        self._logger.info(
            "cache_engine_started",
            memory_enabled=self.memory is not None,
            remote_configured=self.remote_configured,
            remote_connected=self.remote_available,
        )

    async def shutdown(self) -> None:
        """Stop the sweep and release the Redis connection."""
        if self.memory is not None:
            await self.memory.stop_sweeper()
        if self.remote is not None:
            await self.remote.close()
        self._logger.info("cache_engine_shutdown")

    async def get_entry(self, key: str) -> CacheEntry | None:
        """Get an entry with its tier of origin.

        Args:
            key: Cache key.

        Returns:
            The entry, or None on a miss in every tier.
        """
        start = time.monotonic()
        try:
            if self.memory is not None:
                try:
                    entry = self.memory.get(key)
                except Exception as e:
                    self.metrics.record_error()
                    self._logger.error("cache_get_error", tier="memory", key=key, error=str(e))
                    self.memory.delete(key)
                    entry = None
                if entry is not None:
                    self.metrics.record_hit(CacheSource.MEMORY)
                    self._logger.debug("cache_hit", tier="memory", key=key)
                    return entry

            if self.remote is not None and self.remote.connected:
                try:
                    entry = await self.remote.get(key)
                except Exception as e:
                    self.metrics.record_error()
                    self._logger.error("cache_get_error", tier="remote", key=key, error=str(e))
                    entry = None
                if entry is not None:
                    self._backfill_memory(key, entry)
                    self.metrics.record_hit(CacheSource.REMOTE)
                    self._logger.debug("cache_hit", tier="remote", key=key)
                    return entry

            self.metrics.record_miss()
            self._logger.debug("cache_miss", key=key)
            return None
        finally:
            self.metrics.record_timing((time.monotonic() - start) * 1000)

    async def get(self, key: str) -> Any | None:
        """Get a value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found.
        """
        entry = await self.get_entry(key)
        return entry.data if entry is not None else None

    def _backfill_memory(self, key: str, entry: CacheEntry) -> None:
        if self.memory is None:
            return
        remaining = entry.remaining_ttl_seconds()
        if remaining <= 0:
            return
        try:
            self.memory.set(
                key,
                entry.data,
                ttl=remaining,
                tags=entry.tags,
                compress=entry.compressed,
            )
        except Exception as e:
            self.metrics.record_error()
            self._logger.error("cache_backfill_error", key=key, error=str(e))

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Iterable[str] = (),
        compress: bool = False,
    ) -> bool:
        """Set a value in every enabled tier.

        A failing tier is logged and counted; the other tier is still
        written and nothing is raised.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: TTL in seconds, default_ttl when None.
            tags: Tags for bulk invalidation.
            compress: Compress the stored form.

        Returns:
            True if at least one tier accepted the write.
        """
        start = time.monotonic()
        ttl = ttl if ttl is not None else self.default_ttl
        tag_set = frozenset(tags)
        written = False

        if self.memory is not None:
            try:
                self.memory.set(key, value, ttl=ttl, tags=tag_set, compress=compress)
                written = True
            except Exception as e:
                self.metrics.record_error()
                self._logger.error("cache_set_error", tier="memory", key=key, error=str(e))

        if self.remote is not None and self.remote.connected:
            entry = CacheEntry(
                data=value,
                written_at_ms=now_ms(),
                ttl_seconds=ttl,
                source=CacheSource.ORIGIN,
                compressed=compress,
                tags=tag_set,
            )
            try:
                await self.remote.set(key, entry)
                written = True
            except Exception as e:
                self.metrics.record_error()
                self._logger.error("cache_set_error", tier="remote", key=key, error=str(e))

        if written:
            self.metrics.sets += 1
            self._logger.debug("cache_set", key=key, ttl=ttl, compressed=compress)
        self.metrics.record_timing((time.monotonic() - start) * 1000)
        return written

    async def delete(self, key: str) -> bool:
        """Delete a key from every tier.

        Returns:
            True if any tier held the key.
        """
        deleted = False

        if self.memory is not None:
            deleted = self.memory.delete(key)

        if self.remote is not None and self.remote.connected:
            try:
                deleted = await self.remote.delete(key) or deleted
            except Exception as e:
                self.metrics.record_error()
                self._logger.error("cache_delete_error", tier="remote", key=key, error=str(e))

        self.metrics.deletes += 1
        self._logger.debug("cache_delete", key=key, deleted=deleted)
        return deleted

    async def clear_by_tags(self, tags: Iterable[str]) -> int:
        """Delete every entry whose tags intersect the given tags.

        Returns:
            Number of removals summed over both tiers.
        """
        tag_list = sorted(set(tags))
        if not tag_list:
            return 0
        cleared = 0

        if self.memory is not None:
            cleared += self.memory.clear_by_tags(tag_list)

        if self.remote is not None and self.remote.connected:
            try:
                cleared += await self.remote.clear_by_tags(tag_list)
            except Exception as e:
                self.metrics.record_error()
                self._logger.error("cache_clear_by_tags_error", tier="remote", tags=tag_list, error=str(e))

        self._logger.info("cache_cleared_by_tags", tags=tag_list, cleared=cleared)
        return cleared

    async def clear(self) -> int:
        """Delete every entry from every tier.

        Returns:
            Number of removals summed over both tiers.
        """
        cleared = 0
        if self.memory is not None:
            cleared += self.memory.clear()
        if self.remote is not None and self.remote.connected:
            try:
                cleared += await self.remote.clear()
            except Exception as e:
                self.metrics.record_error()
                self._logger.error("cache_clear_error", tier="remote", error=str(e))
        return cleared

    async def health_check(self) -> CacheHealth:
        """Check the health of every tier.

        Pinging a configured Redis also refreshes its connection flag, so
        a recovered Redis rejoins the read/write path here.
        """
        memory_ok = True
        remote_ok = True
        if self.remote is not None:
            remote_ok = await self.remote.ping()

        return CacheHealth(
            memory_ok=memory_ok,
            remote_ok=remote_ok,
            remote_configured=self.remote_configured,
            remote_connected=self.remote_available,
        )

    def get_metrics(self) -> dict[str, Any]:
        """Get cache metrics.

        Returns:
            Dictionary of counters plus tier gauges.
        """
        result = self.metrics.to_dict()
        result["memory_usage_bytes"] = self.memory.memory_usage if self.memory else 0
        result["memory_entries"] = self.memory.size if self.memory else 0
        result["remote_connected"] = self.remote_available
        return result

    def reset_metrics(self) -> None:
        """Reset cache metrics."""
        self.metrics.reset()
