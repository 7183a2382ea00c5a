"""Tiered cache for the threat-analysis backend.

Provides a single get/set/invalidate contract over three tiers:
- Local tier: bounded in-process LRU with per-entry TTL
- Shared tier: Redis, degrading to a miss when unavailable
- Edge tier: CDN placeholder reserved for future integration

Plus cache-aside with single-flight, batch warm-up and domain presets.
"""

from tiercache.cache.base import RemoteTier
from tiercache.cache.coalescer import RequestCoalescer
from tiercache.cache.decorators import cached
from tiercache.cache.edge import EdgeCache
from tiercache.cache.entry import (
    CacheEntry,
    CacheOptions,
    CacheStats,
    Tier,
    WarmUpEntry,
    WarmUpResult,
)
from tiercache.cache.errors import CacheEntryError, CacheError
from tiercache.cache.keys import CacheKeys
from tiercache.cache.local import LocalCache
from tiercache.cache.manager import CacheManager
from tiercache.cache.presets import (
    RegionalThreatCache,
    ThreatAnalysisCache,
    UserSessionCache,
)
from tiercache.cache.redis import SharedCache, create_redis_client

__all__ = [
    # Core types
    "CacheEntry",
    "CacheOptions",
    "CacheStats",
    "Tier",
    "WarmUpEntry",
    "WarmUpResult",
    "CacheKeys",
    # Errors
    "CacheError",
    "CacheEntryError",
    # Tiers
    "LocalCache",
    "RemoteTier",
    "SharedCache",
    "EdgeCache",
    "create_redis_client",
    # Orchestration
    "RequestCoalescer",
    "CacheManager",
    "cached",
    # Presets
    "ThreatAnalysisCache",
    "UserSessionCache",
    "RegionalThreatCache",
]
