"""Two-tier caching for upstream match data.

This module contains:
- CacheEngine orchestrating the in-process and Redis tiers
- CacheService with match and team invalidation helpers
- Strategy catalog mapping data categories to TTLs and tags
- CacheKeyBuilder for consistent key generation
"""

from footy_cache.cache.coalescer import RequestCoalescer
from footy_cache.cache.engine import CacheEngine, CacheHealth, CacheMetrics
from footy_cache.cache.entry import CacheEntry, CacheSource
from footy_cache.cache.keys import CacheKeyBuilder
from footy_cache.cache.memory import MemoryTier
from footy_cache.cache.remote import RemoteTier
from footy_cache.cache.service import CacheService
from footy_cache.cache.strategy import (
    CacheStrategyConfig,
    DataCategory,
    Priority,
    build_tags,
    get_strategy,
    strategy_for_status,
    ttl_for_status,
    warming_order,
)

__all__ = [
    "CacheEngine",
    "CacheEntry",
    "CacheHealth",
    "CacheKeyBuilder",
    "CacheMetrics",
    "CacheService",
    "CacheSource",
    "CacheStrategyConfig",
    "DataCategory",
    "MemoryTier",
    "Priority",
    "RemoteTier",
    "RequestCoalescer",
    "build_tags",
    "get_strategy",
    "strategy_for_status",
    "ttl_for_status",
    "warming_order",
]
