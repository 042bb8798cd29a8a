"""In-process cache tier.

A bounded dictionary with TTL expiry and a tag index. Every operation is
synchronous; the periodic sweep runs as a task on the same event loop, so
the store and the sweep never interleave mid-operation and need no lock.
"""

import asyncio
import contextlib
import copy
import sys
import time
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

import structlog

from footy_cache.cache.entry import (
    CacheEntry,
    CacheSource,
    decode_entry,
    encode_entry,
    serialize,
)

logger = structlog.get_logger(__name__)


class MemoryTier:
    """Per-process key/value store with TTL expiry and tag indexing.

    Compressed entries are kept in their encoded form and decoded on read.
    Uncompressed values are deep-copied on write and on read, so callers
    never share mutable state with the store.
    When the estimated footprint exceeds ``max_memory_bytes`` the oldest
    writes are evicted first.

    Example:
        tier = MemoryTier(default_ttl=900)
        tier.set("footy:matches:today:2025-06-16", matches, ttl=300, tags={"today"})
        entry = tier.get("footy:matches:today:2025-06-16")
    """

    def __init__(
        self,
        default_ttl: int = 900,
        max_memory_bytes: int = 100 * 1024 * 1024,
        sweep_interval_seconds: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-process tier.

        Args:
            default_ttl: TTL in seconds for writes that name none.
            max_memory_bytes: Soft bound on the estimated footprint.
            sweep_interval_seconds: Period of the expired-entry sweep.
            clock: Returns the current time in epoch seconds.
        """
        self.default_ttl = default_ttl
        self.max_memory_bytes = max_memory_bytes
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock

        # Insertion order doubles as write order for eviction
        self._entries: dict[str, CacheEntry] = {}
        self._sizes: dict[str, int] = {}
        self._tag_index: dict[str, set[str]] = {}
        self._memory_usage = 0
        self._sweeper: asyncio.Task[None] | None = None
        self._logger = logger.bind(component="memory_tier")

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def size(self) -> int:
        """Number of stored entries, expired ones included until swept."""
        return len(self._entries)

    @property
    def memory_usage(self) -> int:
        """Estimated footprint of stored entries in bytes."""
        return self._memory_usage

    def get(self, key: str) -> CacheEntry | None:
        """Get a live entry.

        Expired entries are removed on access.

        Args:
            key: Cache key.

        Returns:
            The entry, or None if absent or expired.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._now_ms()):
            self._remove(key)
            self._logger.debug("memory_expired", key=key)
            return None

        if entry.compressed:
            return decode_entry(entry.data, source=CacheSource.MEMORY, key=key)
        return replace(entry, data=copy.deepcopy(entry.data), source=CacheSource.MEMORY)

    def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Iterable[str] = (),
        compress: bool = False,
    ) -> CacheEntry:
        """Store a value, superseding any previous entry for the key.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: TTL in seconds, default_ttl when None.
            tags: Tags for bulk invalidation.
            compress: Keep the value zlib-compressed.

        Returns:
            The entry as written.

        Raises:
            CacheSerializationError: If compression was requested and the
                value cannot be encoded. The previous entry is left intact.
        """
        entry = CacheEntry(
            data=value,
            written_at_ms=self._now_ms(),
            ttl_seconds=ttl if ttl is not None else self.default_ttl,
            source=CacheSource.MEMORY,
            compressed=compress,
            tags=frozenset(tags),
        )

        if compress:
            encoded = encode_entry(entry, key=key)
            stored = CacheEntry(
                data=encoded,
                written_at_ms=entry.written_at_ms,
                ttl_seconds=entry.ttl_seconds,
                source=CacheSource.MEMORY,
                compressed=True,
                tags=entry.tags,
            )
            size = len(encoded)
        else:
            stored = replace(entry, data=copy.deepcopy(value))
            size = self._estimate_size(value)

        self._remove(key)
        self._entries[key] = stored
        self._sizes[key] = size
        self._memory_usage += size
        for tag in stored.tags:
            self._tag_index.setdefault(tag, set()).add(key)

        if self._memory_usage > self.max_memory_bytes:
            self._evict_oldest(keep=key)

        self._logger.debug(
            "memory_set",
            key=key,
            ttl=stored.ttl_seconds,
            compressed=compress,
            size=size,
        )
        return entry

    def delete(self, key: str) -> bool:
        """Delete an entry.

        Returns:
            True if the key was present.
        """
        removed = self._remove(key)
        if removed:
            self._logger.debug("memory_delete", key=key)
        return removed

    def clear_by_tags(self, tags: Iterable[str]) -> int:
        """Delete every entry carrying at least one of the tags.

        Returns:
            Number of entries removed.
        """
        wanted = set(tags)
        keys: set[str] = set()
        for tag in wanted:
            keys.update(self._tag_index.get(tag, ()))

        for key in keys:
            self._remove(key)

        if keys:
            self._logger.info("memory_cleared_by_tags", tags=sorted(wanted), cleared=len(keys))
        return len(keys)

    def clear(self) -> int:
        """Delete every entry.

        Returns:
            Number of entries removed.
        """
        count = len(self._entries)
        self._entries.clear()
        self._sizes.clear()
        self._tag_index.clear()
        self._memory_usage = 0
        self._logger.info("memory_cleared", cleared=count)
        return count

    def sweep(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        current = self._now_ms()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(current)]
        for key in expired:
            self._remove(key)

        if expired:
            self._logger.debug(
                "memory_sweep_completed",
                expired=len(expired),
                remaining=len(self._entries),
            )
        return len(expired)

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
        self._logger.info("memory_sweeper_started", interval_seconds=self.sweep_interval_seconds)

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        self._logger.info("memory_sweeper_stopped")

    @property
    def sweeper_running(self) -> bool:
        """Whether the periodic sweep task is active."""
        return self._sweeper is not None and not self._sweeper.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            self.sweep()

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._memory_usage -= self._sizes.pop(key, 0)
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tag_index[tag]
        return True

    def _evict_oldest(self, keep: str) -> None:
        evicted = 0
        for key in list(self._entries):
            if self._memory_usage <= self.max_memory_bytes:
                break
            if key == keep:
                continue
            self._remove(key)
            evicted += 1
        if evicted:
            self._logger.debug(
                "memory_evicted",
                evicted=evicted,
                memory_usage=self._memory_usage,
                max_memory_bytes=self.max_memory_bytes,
            )

    @staticmethod
    def _estimate_size(value: Any) -> int:
        try:
            return len(serialize(value))
        except (TypeError, ValueError):
            return sys.getsizeof(value)
