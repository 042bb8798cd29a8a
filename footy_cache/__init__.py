"""footy-cache: two-tier caching in front of a rate-limited match-data provider."""

from footy_cache.cache import CacheEngine, CacheService
from footy_cache.config import Settings, configure_logging
from footy_cache.matches import CachedMatchService, CacheWarmer, MatchDataSource
from footy_cache.runtime import CacheRuntime

__version__ = "0.1.0"

__all__ = [
    "CacheEngine",
    "CacheRuntime",
    "CacheService",
    "CacheWarmer",
    "CachedMatchService",
    "MatchDataSource",
    "Settings",
    "configure_logging",
]
