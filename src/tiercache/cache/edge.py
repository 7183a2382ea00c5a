"""Edge/CDN cache tier placeholder.

Edge caching is delegated to the CDN in front of the dashboard API. This
tier keeps the manager's tier list uniform: reads always miss and writes
are accepted and dropped.
"""

from __future__ import annotations

from typing import Any

from tiercache.cache.base import RemoteTier
from tiercache.cache.entry import CacheEntry, Tier


class EdgeCache(RemoteTier):
    """Edge tier that never holds data."""

    tier = Tier.EDGE

    @property
    def is_connected(self) -> bool:
        return False

    async def get(self, key: str) -> CacheEntry | None:
        return None

    async def set(self, key: str, value: Any, ttl: float) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None

    async def keys_matching(self, pattern: str) -> set[str]:
        return set()

    async def flush_all(self) -> None:
        return None

    async def delete_matching(self, pattern: str) -> set[str]:
        return set()
