"""In-memory stand-ins for remote cache tiers."""

from __future__ import annotations

import time
from typing import Any

from tiercache.cache.base import RemoteTier
from tiercache.cache.entry import CacheEntry, Tier


class InMemoryTier(RemoteTier):
    """Dict-backed remote tier that mimics SharedCache's degrade-on-failure contract."""

    def __init__(self, tier: Tier = Tier.SHARED) -> None:
        self.tier = tier
        self.entries: dict[str, CacheEntry] = {}
        self.connected = True
        self.fail_writes = False
        self.set_calls: list[tuple[str, Any, float]] = []
        self.closed = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def get(self, key: str) -> CacheEntry | None:
        if not self.connected:
            return None
        entry = self.entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            del self.entries[key]
            return None
        return entry

    async def set(self, key: str, value: Any, ttl: float) -> None:
        self.set_calls.append((key, value, ttl))
        if self.fail_writes:
            raise RuntimeError("shared tier write failed")
        if not self.connected:
            return
        self.entries[key] = CacheEntry(data=value, created_at=time.time(), ttl=ttl)

    async def delete(self, key: str) -> None:
        if self.connected:
            self.entries.pop(key, None)

    async def keys_matching(self, pattern: str) -> set[str]:
        if not self.connected:
            return set()
        return {k for k in self.entries if pattern in k}

    async def flush_all(self) -> None:
        if self.connected:
            self.entries.clear()

    async def close(self) -> None:
        self.closed = True
        self.connected = False
