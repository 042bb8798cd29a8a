"""Cached access to upstream match data.

This module contains:
- MatchDataSource: Interface of the upstream provider
- CachedMatchService: Cache-aside match queries
- CacheWarmer: Startup warming and background refresh
- Canonical payload models and their normalizers
"""

from footy_cache.matches.cached import CachedMatchService
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
    normalize_match_analysis,
    normalize_match_details,
    normalize_match_list,
    normalize_todays_matches,
    normalize_total_match_count,
)
from footy_cache.matches.source import MatchDataSource
from footy_cache.matches.warming import (
    CacheWarmer,
    WarmingConfig,
    WarmingReport,
    WarmingState,
    WarmingStatus,
)

__all__ = [
    "CacheWarmer",
    "CachedMatchService",
    "MatchAnalysis",
    "MatchAnalysisOptions",
    "MatchDataSource",
    "MatchDetails",
    "MatchList",
    "MatchPayload",
    "TodaysMatches",
    "TotalMatchCount",
    "WarmingConfig",
    "WarmingReport",
    "WarmingState",
    "WarmingStatus",
    "normalize_match_analysis",
    "normalize_match_details",
    "normalize_match_list",
    "normalize_todays_matches",
    "normalize_total_match_count",
]
