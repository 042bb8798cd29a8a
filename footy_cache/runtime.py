"""Composition root for the match-data cache.

Builds the engine, facade, cached queries and warmer exactly once and owns
their lifecycle. Nothing in the package keeps a module-level cache
instance; whoever serves requests holds a CacheRuntime.

Example:
    runtime = CacheRuntime.from_settings(settings, source=MyProvider())
    await runtime.start()
    today = await runtime.matches.get_todays_matches()
    await runtime.shutdown()
"""

from typing import Any

import structlog

from footy_cache.cache.engine import CacheEngine, CacheHealth
from footy_cache.cache.service import CacheService
from footy_cache.config import Settings, configure_logging
from footy_cache.matches.cached import CachedMatchService
from footy_cache.matches.source import MatchDataSource
from footy_cache.matches.warming import CacheWarmer, WarmingConfig, WarmingReport

logger = structlog.get_logger(__name__)


class CacheRuntime:
    """Owns every cache component and exposes the administrative operations."""

    def __init__(
        self,
        engine: CacheEngine,
        cache: CacheService,
        matches: CachedMatchService,
        warmer: CacheWarmer,
    ) -> None:
        self.engine = engine
        self.cache = cache
        self.matches = matches
        self.warmer = warmer
        self._started = False
        self._logger = logger.bind(component="cache_runtime")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        source: MatchDataSource,
        *,
        setup_logging: bool = True,
    ) -> "CacheRuntime":
        """Wire every component from settings.

        Args:
            settings: Application settings.
            source: Upstream match-data provider.
            setup_logging: Configure structlog from LOG_LEVEL and LOG_JSON.

        Returns:
            A runtime that has not been started yet.
        """
        if setup_logging:
            configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
        engine = CacheEngine.from_settings(settings)
        cache = CacheService(engine)
        matches = CachedMatchService(source, cache)
        warmer = CacheWarmer(matches, cache, WarmingConfig.from_settings(settings))
        return cls(engine=engine, cache=cache, matches=matches, warmer=warmer)

    @property
    def started(self) -> bool:
        """Whether start() has run without a matching shutdown()."""
        return self._started

    async def start(self) -> None:
        """Connect the tiers, start the sweep and schedule warming."""
        if self._started:
            return
        await self.engine.start()
        await self.warmer.initialize()
        self._started = True
        self._logger.info("cache_runtime_started")

    async def shutdown(self) -> None:
        """Cancel timers and release tier handles."""
        if not self._started:
            return
        await self.warmer.shutdown()
        await self.cache.shutdown()
        self._started = False
        self._logger.info("cache_runtime_shutdown")

    def get_metrics(self) -> dict[str, Any]:
        """Get cache metrics."""
        return self.cache.get_metrics()

    async def health_check(self) -> CacheHealth:
        """Check the health of the cache tiers."""
        return await self.cache.health_check()

    async def force_refresh(self) -> WarmingReport:
        """Invalidate cached match data and warm it again."""
        return await self.warmer.force_refresh()

    async def invalidate_by_pattern(self, pattern: str) -> list[str]:
        """Invalidate the tags a pattern refers to."""
        return await self.warmer.invalidate_by_pattern(pattern)

    async def get_statistics(self) -> dict[str, Any]:
        """Get metrics, health, warming state and configuration."""
        return await self.warmer.get_statistics()
