"""Domain facade over the cache engine.

Adds match- and team-level invalidation helpers on top of the engine's
generic key/tag operations. The engine is injected by the composition
root; there is no module-level instance.
"""

from collections.abc import Iterable
from typing import Any

import structlog

from footy_cache.cache.engine import CacheEngine, CacheHealth

logger = structlog.get_logger(__name__)


class CacheService:
    """Match-data cache operations for the rest of the application."""

    def __init__(self, engine: CacheEngine) -> None:
        self.engine = engine
        self._logger = logger.bind(component="cache_service")

    async def get(self, key: str) -> Any | None:
        """Get a cached value, None on a miss."""
        return await self.engine.get(key)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Iterable[str] = (),
        compress: bool = False,
    ) -> bool:
        """Cache a value in every enabled tier."""
        return await self.engine.set(key, value, ttl=ttl, tags=tags, compress=compress)

    async def delete(self, key: str) -> bool:
        """Delete a cached value."""
        return await self.engine.delete(key)

    async def invalidate_by_tags(self, tags: Iterable[str]) -> int:
        """Invalidate every entry carrying any of the tags.

        Returns:
            Number of removals summed over both tiers.
        """
        return await self.engine.clear_by_tags(tags)

    async def invalidate_match(self, match_id: int | str) -> int:
        """Invalidate every entry about one match."""
        self._logger.info("invalidate_match", match_id=match_id)
        return await self.invalidate_by_tags([f"match-{match_id}"])

    async def invalidate_team(self, team_id: int | str) -> int:
        """Invalidate every entry about one team."""
        self._logger.info("invalidate_team", team_id=team_id)
        return await self.invalidate_by_tags([f"team-{team_id}"])

    def get_metrics(self) -> dict[str, Any]:
        """Get cache metrics."""
        return self.engine.get_metrics()

    async def health_check(self) -> CacheHealth:
        """Check the health of the cache tiers."""
        return await self.engine.health_check()

    async def shutdown(self) -> None:
        """Stop background work and release tier handles."""
        await self.engine.shutdown()
