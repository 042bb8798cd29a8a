"""Shared remote cache tier backed by Redis.

Every call is bounded by a short timeout so a degraded Redis turns into a
cache miss instead of a blocked request. Connection problems flip the tier
to "not connected"; the engine skips a disconnected tier until a health
check pings it back.

Tags are kept in a secondary index: one Redis set per tag holding the keys
that carry it. The index set lives at least as long as its longest-lived
member, and a rewrite drops the key from index sets it no longer belongs to.
"""

import asyncio
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

import redis.asyncio as redis
import structlog
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from footy_cache.cache.entry import CacheEntry, CacheSource, decode_entry, encode_entry
from footy_cache.cache.keys import CacheKeyBuilder
from footy_cache.errors import CacheSerializationError, RemoteTierError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RemoteTier:
    """Redis-backed cache tier shared by every process instance.

    Example:
        tier = RemoteTier("redis://localhost:6379", timeout_seconds=0.5)
        await tier.connect()
        if tier.connected:
            entry = await tier.get("footy:matches:live")
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        timeout_seconds: float = 0.5,
        client: Any | None = None,  # redis.asyncio.Redis
    ) -> None:
        """Initialize the remote tier.

        Args:
            redis_url: Redis connection URL.
            timeout_seconds: Upper bound for any single Redis call.
            client: Pre-built Redis client, created from redis_url when None.
        """
        self._redis_url = redis_url
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._connected = False
        self._logger = logger.bind(component="remote_tier")

    @property
    def connected(self) -> bool:
        """Whether the last interaction with Redis succeeded."""
        return self._connected

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                socket_timeout=self.timeout_seconds,
                socket_connect_timeout=self.timeout_seconds,
            )
        return self._client

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Run one Redis call under the timeout.

        Raises:
            RemoteTierError: On any Redis error or timeout.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except (TimeoutError, RedisTimeoutError, RedisConnectionError, OSError) as e:
            self._connected = False
            self._logger.warning("remote_disconnected", operation=operation, error=str(e))
            raise RemoteTierError(
                f"Redis {operation} failed: {e or type(e).__name__}",
                operation=operation,
            ) from e
        except RedisError as e:
            raise RemoteTierError(f"Redis {operation} failed: {e}", operation=operation) from e

    async def connect(self) -> bool:
        """Connect and verify Redis is reachable.

        Never raises; an unreachable Redis leaves the tier disconnected.

        Returns:
            True if Redis answered the ping.
        """
        connected = await self.ping()
        if connected:
            self._logger.info("remote_connected")
        else:
            self._logger.warning("remote_connect_failed", redis_url=self._redis_url)
        return connected

    async def ping(self) -> bool:
        """Ping Redis and update the connection flag.

        Returns:
            True if Redis answered.
        """
        try:
            result = await self._call("ping", self._get_client().ping())
        except (RemoteTierError, ValueError):
            self._connected = False
            return False
        self._connected = bool(result)
        return self._connected

    async def get(self, key: str) -> CacheEntry | None:
        """Get an entry.

        Args:
            key: Cache key.

        Returns:
            The entry, or None if absent or expired.

        Raises:
            RemoteTierError: If Redis fails.
            CacheSerializationError: If the stored value is corrupt.
        """
        raw = await self._call("get", self._get_client().get(key))
        if raw is None:
            return None

        entry = decode_entry(raw, source=CacheSource.REMOTE, key=key)
        if entry.is_expired():
            return None
        return entry

    async def _indexed_tags(self, key: str) -> frozenset[str]:
        """Tags of the entry currently stored under key, empty if unreadable."""
        raw = await self._call("get", self._get_client().get(key))
        if raw is None:
            return frozenset()
        try:
            return decode_entry(raw, source=CacheSource.REMOTE, key=key).tags
        except CacheSerializationError:
            return frozenset()

    async def set(self, key: str, entry: CacheEntry) -> None:
        """Store an entry with Redis-native expiry and index its tags.

        Tags the previous entry carried but this one does not are removed
        from their index sets. The writes go out as one pipelined batch.

        Raises:
            RemoteTierError: If Redis fails.
            CacheSerializationError: If the entry cannot be encoded.
        """
        payload = encode_entry(entry, key=key)
        ttl = max(1, entry.ttl_seconds)
        stale_tags = await self._indexed_tags(key) - entry.tags

        pipe = self._get_client().pipeline(transaction=False)
        pipe.set(key, payload, ex=ttl)
        for tag in stale_tags:
            pipe.srem(CacheKeyBuilder.tag_index(tag), key)
        for tag in entry.tags:
            index_key = CacheKeyBuilder.tag_index(tag)
            pipe.sadd(index_key, key)
            # NX covers a fresh index set, GT extends an existing one
            pipe.expire(index_key, ttl, nx=True)
            pipe.expire(index_key, ttl, gt=True)
        await self._call("set", pipe.execute())

        self._logger.debug(
            "remote_set", key=key, ttl=ttl, tags=len(entry.tags), pruned=len(stale_tags)
        )

    async def delete(self, key: str) -> bool:
        """Delete an entry.

        Returns:
            True if the key was present.

        Raises:
            RemoteTierError: If Redis fails.
        """
        deleted = await self._call("delete", self._get_client().delete(key))
        return bool(deleted)

    async def clear_by_tags(self, tags: Iterable[str]) -> int:
        """Delete every entry indexed under at least one of the tags.

        Returns:
            Number of entries removed.

        Raises:
            RemoteTierError: If Redis fails.
        """
        index_keys = [CacheKeyBuilder.tag_index(tag) for tag in set(tags)]
        if not index_keys:
            return 0

        client = self._get_client()
        members = await self._call("sunion", client.sunion(index_keys))
        deleted = 0
        if members:
            deleted = int(await self._call("delete", client.delete(*members)))
        await self._call("delete", client.delete(*index_keys))

        self._logger.info("remote_cleared_by_tags", tags=len(index_keys), cleared=deleted)
        return deleted

    async def clear(self) -> int:
        """Delete every key under the cache prefix, tag indexes included.

        Returns:
            Number of keys removed.

        Raises:
            RemoteTierError: If Redis fails.
        """
        client = self._get_client()
        pattern = f"{CacheKeyBuilder.PREFIX}{CacheKeyBuilder.SEPARATOR}*"

        async def _collect() -> list[Any]:
            return [key async for key in client.scan_iter(match=pattern)]

        keys = await self._call("scan", _collect())
        if not keys:
            return 0
        deleted = int(await self._call("delete", client.delete(*keys)))
        self._logger.info("remote_cleared", cleared=deleted)
        return deleted

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            try:
                await self._client.aclose()
            except (RedisError, OSError) as e:
                self._logger.warning("remote_close_error", error=str(e))
            self._client = None
        self._connected = False
