"""Cache strategy catalog.

Maps every category of upstream data to how long it may be cached, which
tags it carries, whether it is compressed and whether it is warmed at
startup.

Volatility bands:
- LIVE: real-time data (15-60 seconds)
- FREQUENT: often-changing data (5-15 minutes)
- STABLE: rarely-changing data (30 minutes to 24 hours)
- STATIC: reference data (12 hours to 7 days)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class DataCategory(Enum):
    """Categories of upstream data with distinct caching behaviour."""

    # Live
    LIVE_MATCHES = "live_matches"
    LIVE_SCORES = "live_scores"
    # Frequent
    TODAY_MATCHES = "today_matches"
    UPCOMING_MATCHES = "upcoming_matches"
    MATCH_DETAILS_LIVE = "match_details_live"
    MATCH_DETAILS_UPCOMING = "match_details_upcoming"
    # Stable
    MATCH_DETAILS_COMPLETED = "match_details_completed"
    TEAM_DATA = "team_data"
    TEAM_STATS = "team_stats"
    LEAGUE_MATCHES = "league_matches"
    LEAGUE_TABLES = "league_tables"
    PLAYER_STATS = "player_stats"
    # Static
    COUNTRIES = "countries"
    LEAGUES = "leagues"
    LEAGUE_SEASONS = "league_seasons"
    LEAGUE_TEAMS = "league_teams"
    REFEREE_STATS = "referee_stats"
    # Analytics
    BTTS_STATS = "btts_stats"
    OVER25_STATS = "over25_stats"
    MATCH_ANALYSIS = "match_analysis"


class Priority(Enum):
    """Warming priority of a category."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, lower warms first."""
        return {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}[self]


@dataclass(frozen=True)
class CacheStrategyConfig:
    """How one category of data is cached.

    Attributes:
        ttl_seconds: Time to live in seconds.
        tags: Base tags attached to every entry of the category.
        compress: Whether entries are compressed before storage.
        priority: Warming priority.
        warm_on_startup: Whether the category is warmed at startup.
        invalidate_on_update: Whether upstream updates should evict entries.
    """

    ttl_seconds: int
    tags: frozenset[str]
    compress: bool
    priority: Priority
    warm_on_startup: bool
    invalidate_on_update: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ttl_seconds": self.ttl_seconds,
            "tags": sorted(self.tags),
            "compress": self.compress,
            "priority": self.priority.value,
            "warm_on_startup": self.warm_on_startup,
            "invalidate_on_update": self.invalidate_on_update,
        }


def _strategy(
    ttl: int,
    tags: tuple[str, ...],
    *,
    compress: bool = True,
    priority: Priority = Priority.MEDIUM,
    warm: bool = False,
    invalidate: bool = False,
) -> CacheStrategyConfig:
    return CacheStrategyConfig(
        ttl_seconds=ttl,
        tags=frozenset(tags),
        compress=compress,
        priority=priority,
        warm_on_startup=warm,
        invalidate_on_update=invalidate,
    )


# Declaration order breaks priority ties in warming_order()
CACHE_STRATEGIES: dict[DataCategory, CacheStrategyConfig] = {
    # LIVE DATA
    DataCategory.LIVE_MATCHES: _strategy(
        30, ("live", "matches", "real-time"), priority=Priority.HIGH, invalidate=True
    ),
    DataCategory.LIVE_SCORES: _strategy(
        15,
        ("live", "scores", "real-time"),
        compress=False,
        priority=Priority.HIGH,
        invalidate=True,
    ),
    # FREQUENT DATA
    DataCategory.TODAY_MATCHES: _strategy(
        300, ("matches", "today", "frequent"), priority=Priority.HIGH, warm=True
    ),
    DataCategory.UPCOMING_MATCHES: _strategy(
        600, ("matches", "upcoming", "frequent"), warm=True
    ),
    DataCategory.MATCH_DETAILS_LIVE: _strategy(
        60, ("matches", "details", "live"), priority=Priority.HIGH, invalidate=True
    ),
    DataCategory.MATCH_DETAILS_UPCOMING: _strategy(
        900, ("matches", "details", "upcoming")
    ),
    # STABLE DATA
    DataCategory.MATCH_DETAILS_COMPLETED: _strategy(
        86400, ("matches", "details", "completed"), priority=Priority.LOW
    ),
    DataCategory.TEAM_DATA: _strategy(3600, ("teams", "data", "stable"), warm=True),
    DataCategory.TEAM_STATS: _strategy(1800, ("teams", "stats", "stable")),
    DataCategory.LEAGUE_MATCHES: _strategy(1800, ("leagues", "matches", "stable")),
    DataCategory.LEAGUE_TABLES: _strategy(3600, ("leagues", "tables", "stable"), warm=True),
    DataCategory.PLAYER_STATS: _strategy(
        7200, ("players", "stats", "stable"), priority=Priority.LOW
    ),
    # STATIC DATA
    DataCategory.COUNTRIES: _strategy(
        604800,
        ("reference", "countries", "static"),
        compress=False,
        priority=Priority.LOW,
        warm=True,
    ),
    DataCategory.LEAGUES: _strategy(86400, ("reference", "leagues", "static"), warm=True),
    DataCategory.LEAGUE_SEASONS: _strategy(
        43200, ("reference", "seasons", "static"), priority=Priority.LOW
    ),
    DataCategory.LEAGUE_TEAMS: _strategy(
        21600, ("leagues", "teams", "static"), priority=Priority.LOW
    ),
    DataCategory.REFEREE_STATS: _strategy(
        86400, ("referees", "stats", "static"), priority=Priority.LOW
    ),
    # ANALYTICS DATA
    DataCategory.BTTS_STATS: _strategy(1800, ("analytics", "btts", "stats")),
    DataCategory.OVER25_STATS: _strategy(1800, ("analytics", "over25", "stats")),
    DataCategory.MATCH_ANALYSIS: _strategy(900, ("analytics", "match", "analysis")),
}

_missing = set(DataCategory) - set(CACHE_STRATEGIES)
assert not _missing, f"Categories without a cache strategy: {sorted(c.name for c in _missing)}"

LIVE_STATUSES = frozenset({"live", "incomplete", "in_progress"})
UPCOMING_STATUSES = frozenset({"upcoming", "not_started", "scheduled"})


def get_strategy(category: DataCategory) -> CacheStrategyConfig:
    """Get the cache strategy for a data category."""
    return CACHE_STRATEGIES[category]


def strategy_for_status(status: str | None) -> DataCategory:
    """Pick the match-details category for a match status.

    Live and upcoming statuses are matched case-insensitively against
    allow-lists. Anything else, including an unknown or empty status,
    is treated as a completed match.
    """
    normalized = (status or "").strip().lower()
    if normalized in LIVE_STATUSES:
        return DataCategory.MATCH_DETAILS_LIVE
    if normalized in UPCOMING_STATUSES:
        return DataCategory.MATCH_DETAILS_UPCOMING
    return DataCategory.MATCH_DETAILS_COMPLETED


def ttl_for_status(status: str | None) -> int:
    """Get the match-details TTL for a match status."""
    return get_strategy(strategy_for_status(status)).ttl_seconds


def warming_order() -> list[DataCategory]:
    """Warm-on-startup categories, high priority first.

    Ties keep declaration order since sorted() is stable.
    """
    warmable = [
        category
        for category, strategy in CACHE_STRATEGIES.items()
        if strategy.warm_on_startup
    ]
    return sorted(warmable, key=lambda category: CACHE_STRATEGIES[category].priority.rank)


def build_tags(
    category: DataCategory,
    *,
    match_id: int | str | None = None,
    team_id: int | str | None = None,
    league_id: int | str | None = None,
    date: str | None = None,
    status: str | None = None,
    extra: tuple[str, ...] = (),
) -> frozenset[str]:
    """Layer contextual tags on top of a category's base tags.

    Example:
        build_tags(DataCategory.MATCH_ANALYSIS, match_id=42)
        # frozenset({"analytics", "match", "analysis", "match-42"})
    """
    tags = set(get_strategy(category).tags)
    if match_id is not None:
        tags.add(f"match-{match_id}")
    if team_id is not None:
        tags.add(f"team-{team_id}")
    if league_id is not None:
        tags.add(f"league-{league_id}")
    if date:
        tags.add(f"date-{date}")
    if status:
        tags.add(f"status-{status.strip().lower()}")
    tags.update(extra)
    return frozenset(tags)
