"""Cache-aside access to the upstream match-data provider.

Each query computes its cache key and strategy, serves a hit verbatim and,
on a miss, fetches from the origin (one call per key however many callers
miss at once), normalizes the payload and writes it back.

Origin failures are never cached. A failed fetch is retried once without
touching the cache; if that fails too, the caller gets a structurally
valid payload with ``success: false`` instead of an exception.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog
from tenacity import AsyncRetrying, stop_after_attempt

from footy_cache.cache.coalescer import RequestCoalescer
from footy_cache.cache.keys import CacheKeyBuilder
from footy_cache.cache.service import CacheService
from footy_cache.cache.strategy import (
    DataCategory,
    build_tags,
    get_strategy,
    strategy_for_status,
)
from footy_cache.errors import OriginFetchError
from footy_cache.matches.models import (
    MatchAnalysis,
    MatchAnalysisOptions,
    MatchDetails,
    MatchList,
    MatchPayload,
    TodaysMatches,
    TotalMatchCount,
)
from footy_cache.matches.normalize import (
    match_status,
    normalize_match_analysis,
    normalize_match_details,
    normalize_match_list,
    normalize_todays_matches,
    normalize_total_match_count,
)
from footy_cache.matches.source import MatchDataSource

logger = structlog.get_logger(__name__)

# The first attempt goes through the cache, the second bypasses it
ORIGIN_ATTEMPTS = 2


@dataclass(frozen=True)
class Placement:
    """Where and for how long a normalized payload is cached."""

    ttl_seconds: int
    tags: frozenset[str]
    compress: bool


@dataclass(frozen=True)
class CachedQuery:
    """One cacheable origin query.

    Attributes:
        operation: Query name used in logs and errors.
        key: Cache key.
        fetch: Zero-argument coroutine factory calling the origin.
        normalize: Turns the raw origin payload into its canonical form.
        placement: Picks TTL, tags and compression for a normalized payload.
        result_type: Canonical model used to build a failure payload.
    """

    operation: str
    key: str
    fetch: Callable[[], Awaitable[Any]]
    normalize: Callable[[Any], dict[str, Any]]
    placement: Callable[[dict[str, Any]], Placement]
    result_type: type[MatchPayload]


def _category_placement(
    category: DataCategory,
    *,
    compress: bool | None = None,
    **context: Any,
) -> Callable[[dict[str, Any]], Placement]:
    strategy = get_strategy(category)
    placement = Placement(
        ttl_seconds=strategy.ttl_seconds,
        tags=build_tags(category, **context),
        compress=strategy.compress if compress is None else compress,
    )
    return lambda _payload: placement


class CachedMatchService:
    """Match queries with two-tier caching in front of the origin.

    Example:
        matches = CachedMatchService(source, cache)
        today = await matches.get_todays_matches("2025-06-16")
        details = await matches.get_match_by_id(8123)
    """

    def __init__(
        self,
        source: MatchDataSource,
        cache: CacheService,
        coalescer: RequestCoalescer | None = None,
    ) -> None:
        """Initialize the cached match service.

        Args:
            source: Upstream match-data provider.
            cache: Cache facade to read from and write to.
            coalescer: Shares concurrent misses for the same key.
        """
        self.source = source
        self.cache = cache
        self.coalescer = coalescer or RequestCoalescer()
        self._logger = logger.bind(component="cached_match_service")

    async def get_todays_matches(
        self,
        date: str | None = None,
        *,
        refresh: bool = False,
    ) -> dict[str, Any]:
        """Get the matches played on a date.

        Args:
            date: ISO date (YYYY-MM-DD). None means the provider's today.
            refresh: Skip the cache read and overwrite the entry from origin.

        Returns:
            Normalized today's-matches payload.
        """
        return await self._execute(
            CachedQuery(
                operation="todays_matches",
                key=CacheKeyBuilder.todays_matches(date),
                fetch=lambda: self.source.get_basic_match_info(date),
                normalize=normalize_todays_matches,
                placement=_category_placement(DataCategory.TODAY_MATCHES, date=date),
                result_type=TodaysMatches,
            ),
            refresh=refresh,
        )

    async def get_live_matches(
        self,
        limit: int | None = None,
        *,
        refresh: bool = False,
    ) -> dict[str, Any]:
        """Get matches currently in play.

        Args:
            limit: Optional maximum number of matches.
            refresh: Skip the cache read and overwrite the entry from origin.

        Returns:
            Normalized match-list payload.
        """
        return await self._execute(
            CachedQuery(
                operation="live_matches",
                key=CacheKeyBuilder.live_matches(limit),
                fetch=lambda: self.source.get_live_matches(limit),
                normalize=normalize_match_list,
                placement=_category_placement(DataCategory.LIVE_MATCHES),
                result_type=MatchList,
            ),
            refresh=refresh,
        )

    async def get_upcoming_matches(
        self,
        limit: int | None = None,
        hours: int = 48,
    ) -> dict[str, Any]:
        """Get matches kicking off soon.

        Args:
            limit: Optional maximum number of matches.
            hours: Look-ahead window in hours.

        Returns:
            Normalized match-list payload.
        """
        return await self._execute(
            CachedQuery(
                operation="upcoming_matches",
                key=CacheKeyBuilder.upcoming_matches(limit, hours),
                fetch=lambda: self.source.get_upcoming_matches(limit, hours),
                normalize=normalize_match_list,
                placement=_category_placement(
                    DataCategory.UPCOMING_MATCHES, extra=(f"hours-{hours}",)
                ),
                result_type=MatchList,
            )
        )

    async def get_match_by_id(self, match_id: int) -> dict[str, Any]:
        """Get one match's details.

        The TTL follows the match status: live matches expire within a
        minute, completed ones after a day. A payload without a status is
        cached as an upcoming match.

        Args:
            match_id: Match identifier.

        Returns:
            Normalized match-details payload.
        """

        def placement(payload: dict[str, Any]) -> Placement:
            status = match_status(payload)
            category = (
                strategy_for_status(status)
                if status is not None
                else DataCategory.MATCH_DETAILS_UPCOMING
            )
            strategy = get_strategy(category)
            return Placement(
                ttl_seconds=strategy.ttl_seconds,
                tags=build_tags(category, match_id=match_id, status=status),
                compress=strategy.compress,
            )

        return await self._execute(
            CachedQuery(
                operation="match_details",
                key=CacheKeyBuilder.match_details(match_id),
                fetch=lambda: self.source.get_detailed_match_info(match_id),
                normalize=normalize_match_details,
                placement=placement,
                result_type=MatchDetails,
            )
        )

    async def get_match_analysis(
        self,
        match_id: int,
        *,
        include_team_stats: bool = False,
        include_player_stats: bool = False,
        include_referee_stats: bool = False,
        include_h2h: bool = False,
    ) -> dict[str, Any]:
        """Get one match's analysis.

        Args:
            match_id: Match identifier.
            include_team_stats: Include per-team form and statistics.
            include_player_stats: Include player statistics.
            include_referee_stats: Include referee statistics.
            include_h2h: Include head-to-head history.

        Returns:
            Normalized match-analysis payload.
        """
        options = MatchAnalysisOptions(
            match_id=match_id,
            include_team_stats=include_team_stats,
            include_player_stats=include_player_stats,
            include_referee_stats=include_referee_stats,
            include_h2h=include_h2h,
        )
        return await self._execute(
            CachedQuery(
                operation="match_analysis",
                key=CacheKeyBuilder.match_analysis(
                    match_id,
                    include_team_stats=include_team_stats,
                    include_player_stats=include_player_stats,
                    include_referee_stats=include_referee_stats,
                    include_h2h=include_h2h,
                ),
                fetch=lambda: self.source.get_match_analysis(options),
                normalize=normalize_match_analysis,
                placement=_category_placement(DataCategory.MATCH_ANALYSIS, match_id=match_id),
                result_type=MatchAnalysis,
            )
        )

    async def get_total_match_count(self, date: str | None = None) -> dict[str, Any]:
        """Get the number of matches on a date.

        Args:
            date: ISO date (YYYY-MM-DD). None means the provider's today.

        Returns:
            Normalized total-count payload.
        """
        return await self._execute(
            CachedQuery(
                operation="total_match_count",
                key=CacheKeyBuilder.total_match_count(date),
                fetch=lambda: self.source.get_total_match_count(date),
                normalize=normalize_total_match_count,
                placement=_category_placement(
                    DataCategory.TODAY_MATCHES, compress=False, date=date
                ),
                result_type=TotalMatchCount,
            )
        )

    async def invalidate_match(self, match_id: int) -> int:
        """Drop every cached payload about one match."""
        return await self.cache.invalidate_match(match_id)

    async def invalidate_by_tags(self, tags: list[str]) -> int:
        """Drop every cached payload carrying any of the tags."""
        return await self.cache.invalidate_by_tags(tags)

    async def _execute(self, query: CachedQuery, refresh: bool = False) -> dict[str, Any]:
        if refresh:
            self._logger.debug("cache_bypassed", operation=query.operation, key=query.key)
        else:
            cached = await self.cache.get(query.key)
            if cached is not None:
                self._logger.debug("cache_hit", operation=query.operation, key=query.key)
                return cached
            self._logger.debug("cache_miss", operation=query.operation, key=query.key)

        try:
            return await self.coalescer.run(query.key, lambda: self._load(query))
        except OriginFetchError as e:
            self._logger.error("origin_unavailable", **e.to_dict())
            return query.result_type.failed(
                f"Failed to fetch {query.operation.replace('_', ' ')}"
            ).to_payload()

    async def _load(self, query: CachedQuery) -> dict[str, Any]:
        """Fetch from the origin, caching only a first-attempt success.

        Raises:
            OriginFetchError: If every attempt failed.
        """
        attempt = 0
        try:
            async for attempt_context in AsyncRetrying(
                stop=stop_after_attempt(ORIGIN_ATTEMPTS),
                reraise=True,
            ):
                with attempt_context:
                    attempt += 1
                    if attempt > 1:
                        self._logger.info(
                            "origin_retry_uncached",
                            operation=query.operation,
                            attempt=attempt,
                        )
                    payload = query.normalize(await query.fetch())
                    if attempt == 1:
                        await self._store(query, payload)
                    return payload
        except Exception as e:
            self._logger.warning(
                "origin_fetch_failed",
                operation=query.operation,
                key=query.key,
                attempts=attempt,
                error=str(e),
            )
            raise OriginFetchError(
                f"Origin {query.operation} failed: {e}",
                operation=query.operation,
                attempts=attempt,
                details={"key": query.key},
            ) from e

        # This should not be reached due to reraise=True
        raise RuntimeError("Retry loop exited unexpectedly")

    async def _store(self, query: CachedQuery, payload: dict[str, Any]) -> None:
        if not payload.get("success", True):
            self._logger.info("origin_reported_failure", operation=query.operation, key=query.key)
            return
        placement = query.placement(payload)
        stored = await self.cache.set(
            query.key,
            payload,
            ttl=placement.ttl_seconds,
            tags=placement.tags,
            compress=placement.compress,
        )
        if stored:
            self._logger.info(
                "cached_payload",
                operation=query.operation,
                key=query.key,
                ttl=placement.ttl_seconds,
            )
