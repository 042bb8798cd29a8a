"""Cache warming and background refresh.

Handles:
- Delayed warming after startup, in strategy priority order
- Periodic refresh of the most volatile queries
- Administrative refresh and pattern-based invalidation

Warming is not re-entrant: a request that arrives while a run is active
is rejected, never queued.
"""

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

from footy_cache.cache.service import CacheService
from footy_cache.cache.strategy import DataCategory, get_strategy, warming_order
from footy_cache.config import Settings
from footy_cache.matches.cached import CachedMatchService

logger = structlog.get_logger(__name__)

# Number of matches the dashboard shows per list
DASHBOARD_LIMIT = 6
# Large enough to count every upcoming match
UPCOMING_COUNT_LIMIT = 1000

# Warmed on every run even though their strategy does not ask for it
ALWAYS_WARMED = (DataCategory.LIVE_MATCHES,)

# Substring of an invalidation pattern -> tag it clears
PATTERN_TAGS = (
    ("live", "live"),
    ("today", "today"),
    ("upcoming", "upcoming"),
    ("match", "matches"),
)


class WarmingStatus(str, Enum):
    """Outcome of a warming request."""

    COMPLETED = "completed"
    ALREADY_IN_PROGRESS = "already_in_progress"


@dataclass
class WarmingConfig:
    """Configuration for warming and background refresh.

    Attributes:
        enable_warming: Warm the cache shortly after startup.
        enable_background_refresh: Periodically refresh volatile queries.
        warming_delay_seconds: Delay between initialize() and the first run.
        refresh_interval_seconds: Period of the background refresh.
    """

    enable_warming: bool = True
    enable_background_refresh: bool = True
    warming_delay_seconds: float = 5.0
    refresh_interval_seconds: float = 300.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "WarmingConfig":
        """Create warming configuration from application settings."""
        return cls(
            enable_warming=settings.CACHE_ENABLE_WARMING,
            enable_background_refresh=settings.CACHE_ENABLE_BACKGROUND_REFRESH,
            warming_delay_seconds=settings.CACHE_WARMING_DELAY_SECONDS,
            refresh_interval_seconds=settings.CACHE_REFRESH_INTERVAL_SECONDS,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class WarmingState:
    """Progress and history of warming runs.

    Attributes:
        in_progress: A run is active.
        last_run_at: When the last run finished.
        last_duration_ms: Duration of the last run.
        success_count: Queries warmed by the last run.
        error_count: Queries that failed in the last run.
        runs: Completed runs since startup.
        last_error: Most recent warming failure.
    """

    in_progress: bool = False
    last_run_at: datetime | None = None
    last_duration_ms: float | None = None
    success_count: int = 0
    error_count: int = 0
    runs: int = 0
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "in_progress": self.in_progress,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_duration_ms": self.last_duration_ms,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "runs": self.runs,
            "last_error": self.last_error,
        }


@dataclass
class WarmingReport:
    """Result of one warming request."""

    status: WarmingStatus
    duration_ms: float = 0.0
    success_count: int = 0
    error_count: int = 0
    warmed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
            "success_count": self.success_count,
            "error_count": self.error_count,
            "warmed": list(self.warmed),
        }


WarmingTask = tuple[str, Callable[[], Awaitable[dict[str, Any]]]]


class CacheWarmer:
    """Populates the cache before traffic asks for it and keeps it fresh.

    Example:
        warmer = CacheWarmer(matches, cache, WarmingConfig(warming_delay_seconds=5))
        await warmer.initialize()
        ...
        await warmer.shutdown()
    """

    def __init__(
        self,
        matches: CachedMatchService,
        cache: CacheService,
        config: WarmingConfig | None = None,
    ) -> None:
        """Initialize the cache warmer.

        Args:
            matches: Cached match queries used to populate the cache.
            cache: Cache facade for invalidation, metrics and health.
            config: Warming configuration.
        """
        self.matches = matches
        self.cache = cache
        self.config = config or WarmingConfig()
        self.state = WarmingState()
        self._delayed_warm: asyncio.Task[WarmingReport] | None = None
        self._refresh_task: asyncio.Task[None] | None = None
        self._logger = logger.bind(component="cache_warmer")

    @property
    def background_refresh_running(self) -> bool:
        """Whether the background refresh task is active."""
        return self._refresh_task is not None and not self._refresh_task.done()

    async def initialize(self) -> None:
        """Check cache health and schedule warming and refresh."""
        health = await self.cache.health_check()
        self._logger.info("cache_health_checked", **health.to_dict())

        if self.config.enable_warming:
            self._delayed_warm = asyncio.get_running_loop().create_task(self._warm_after_delay())
            self._logger.info(
                "warming_scheduled",
                delay_seconds=self.config.warming_delay_seconds,
            )

        if self.config.enable_background_refresh:
            self.start_background_refresh()

    async def _warm_after_delay(self) -> WarmingReport:
        await asyncio.sleep(self.config.warming_delay_seconds)
        return await self.warm_cache()

    def _queries_for(self, category: DataCategory) -> list[WarmingTask]:
        if category == DataCategory.TODAY_MATCHES:
            return [
                ("todays_matches", lambda: self.matches.get_todays_matches()),
                ("total_match_count", lambda: self.matches.get_total_match_count()),
            ]
        if category == DataCategory.LIVE_MATCHES:
            return [("live_matches", lambda: self.matches.get_live_matches(DASHBOARD_LIMIT))]
        if category == DataCategory.UPCOMING_MATCHES:
            return [
                ("upcoming_matches", lambda: self.matches.get_upcoming_matches(DASHBOARD_LIMIT)),
                (
                    "upcoming_count",
                    lambda: self.matches.get_upcoming_matches(UPCOMING_COUNT_LIMIT),
                ),
            ]
        return []

    def warming_plan(self) -> list[WarmingTask]:
        """Queries a warming run executes, highest priority first.

        Categories with no warming query are skipped.
        """
        categories = sorted(
            [*warming_order(), *ALWAYS_WARMED],
            key=lambda category: get_strategy(category).priority.rank,
        )
        plan: list[WarmingTask] = []
        for category in categories:
            plan.extend(self._queries_for(category))
        return plan

    async def warm_cache(self) -> WarmingReport:
        """Run every warming query once.

        A failing query is logged and counted; the run carries on.

        Returns:
            Report of the run, or an already_in_progress report if a run
            was active.
        """
        if self.state.in_progress:
            self._logger.warning("warming_already_in_progress")
            return WarmingReport(status=WarmingStatus.ALREADY_IN_PROGRESS)

        self.state.in_progress = True
        self._logger.info("warming_started")
        start = time.monotonic()
        report = WarmingReport(status=WarmingStatus.COMPLETED)

        try:
            for name, query in self.warming_plan():
                if await self._warm_one(name, query):
                    report.success_count += 1
                    report.warmed.append(name)
                else:
                    report.error_count += 1
        finally:
            report.duration_ms = (time.monotonic() - start) * 1000
            self.state.in_progress = False
            self.state.last_run_at = datetime.now(UTC)
            self.state.last_duration_ms = report.duration_ms
            self.state.success_count = report.success_count
            self.state.error_count = report.error_count
            self.state.runs += 1

        metrics = self.cache.get_metrics()
        self._logger.info(
            "warming_completed",
            duration_ms=round(report.duration_ms, 2),
            success_count=report.success_count,
            error_count=report.error_count,
            hits=metrics["hits"],
            misses=metrics["misses"],
            sets=metrics["sets"],
            memory_usage_bytes=metrics["memory_usage_bytes"],
            remote_connected=metrics["remote_connected"],
        )
        return report

    async def _warm_one(
        self,
        name: str,
        query: Callable[[], Awaitable[dict[str, Any]]],
    ) -> bool:
        self._logger.debug("warming_query", query=name)
        try:
            payload = await query()
        except Exception as e:
            self.state.last_error = f"{name}: {e}"
            self._logger.warning("warming_query_failed", query=name, error=str(e))
            return False

        if not payload.get("success", True):
            self.state.last_error = f"{name}: {payload.get('message')}"
            self._logger.warning("warming_query_degraded", query=name, message=payload.get("message"))
            return False
        return True

    async def force_refresh(self) -> WarmingReport:
        """Invalidate cached match data and warm it again.

        Returns:
            Report of the warming run, or an already_in_progress report.
        """
        if self.state.in_progress:
            self._logger.warning("force_refresh_rejected", reason="warming_in_progress")
            return WarmingReport(status=WarmingStatus.ALREADY_IN_PROGRESS)

        self._logger.info("force_refresh_started")
        await self.invalidate_by_pattern("matches")
        return await self.warm_cache()

    async def invalidate_by_pattern(self, pattern: str) -> list[str]:
        """Invalidate the tags a pattern refers to.

        ``live``, ``today``, ``upcoming`` and ``match`` anywhere in the
        pattern select the matching tags.

        Returns:
            Tags that were invalidated.
        """
        tags = [tag for needle, tag in PATTERN_TAGS if needle in pattern]
        if tags:
            cleared = await self.cache.invalidate_by_tags(tags)
            self._logger.info("invalidated_by_pattern", pattern=pattern, tags=tags, cleared=cleared)
        return tags

    async def get_statistics(self) -> dict[str, Any]:
        """Get metrics, health, warming state and configuration."""
        health = await self.cache.health_check()
        warming = self.state.to_dict()
        warming["background_refresh_enabled"] = self.background_refresh_running
        return {
            "metrics": self.cache.get_metrics(),
            "health": health.to_dict(),
            "warming": warming,
            "config": self.config.to_dict(),
        }

    def start_background_refresh(self) -> None:
        """Start refreshing live and today's matches on a fixed interval."""
        if self.background_refresh_running:
            return
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_loop())
        self._logger.info(
            "background_refresh_started",
            interval_seconds=self.config.refresh_interval_seconds,
        )

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.refresh_interval_seconds)
            await self.refresh_once()

    async def refresh_once(self) -> None:
        """Fetch live and today's matches from origin and overwrite their entries.

        The cache is bypassed, so entries still within their TTL are
        replaced too.
        """
        self._logger.debug("background_refresh_triggered")
        try:
            live = await self.matches.get_live_matches(DASHBOARD_LIMIT, refresh=True)
            today = await self.matches.get_todays_matches(refresh=True)
        except Exception as e:
            self._logger.warning("background_refresh_failed", error=str(e))
            return
        for name, payload in (("live_matches", live), ("todays_matches", today)):
            if not payload.get("success", True):
                self._logger.warning(
                    "background_refresh_degraded",
                    query=name,
                    message=payload.get("message"),
                )
        self._logger.debug("background_refresh_completed")

    async def shutdown(self) -> None:
        """Cancel the pending warm and the background refresh."""
        for task in (self._delayed_warm, self._refresh_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._delayed_warm = None
        self._refresh_task = None
        self._logger.info("cache_warmer_shutdown")
