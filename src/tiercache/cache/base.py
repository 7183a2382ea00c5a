"""Abstract interface for tiers that live outside the process."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from tiercache.cache.entry import CacheEntry, Tier


class RemoteTier(ABC):
    """A cache tier reached over the network.

    Implementations never raise to their caller: reads degrade to None and
    writes to no-ops, with the failure logged.
    """

    tier: Tier

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the tier is currently usable."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` or None."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` with a TTL in seconds."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    async def keys_matching(self, pattern: str) -> set[str]:
        """Keys containing ``pattern`` as a substring."""

    @abstractmethod
    async def flush_all(self) -> None:
        """Remove every key held by the tier."""

    async def close(self) -> None:
        """Release any connection held by the tier."""

    async def delete_matching(self, pattern: str) -> set[str]:
        """Delete every key containing ``pattern``. Returns the keys removed."""
        keys = await self.keys_matching(pattern)
        for key in keys:
            await self.delete(key)
        return keys
