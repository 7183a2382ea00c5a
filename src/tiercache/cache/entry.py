"""Core cache data structures.

CacheEntry is the envelope stored in every tier. On the shared tier it is
serialized with orjson using the same field layout as the dashboard's
JavaScript backends (millisecond timestamp and TTL), so both runtimes can
read each other's entries.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import orjson

from tiercache.cache.errors import CacheEntryError

# Default TTLs in seconds
DEFAULT_MEMORY_TTL = 300.0  # 5 minutes
DEFAULT_SHARED_TTL = 3600.0  # 1 hour
DEFAULT_EDGE_TTL = 86400.0  # 24 hours

Fetcher = Callable[[], Any | Awaitable[Any]]


class Tier(str, Enum):
    """Cache tiers, fastest first."""

    LOCAL = "local"
    SHARED = "shared"
    EDGE = "edge"


ALL_TIERS: frozenset[Tier] = frozenset(Tier)


@dataclass
class CacheEntry:
    """A cached payload with creation time, TTL and hit counter."""

    data: Any
    created_at: float = field(default_factory=time.time)
    ttl: float = DEFAULT_MEMORY_TTL
    hits: int = 0

    @property
    def age(self) -> float:
        """Seconds since the entry was written."""
        return time.time() - self.created_at

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl

    def is_expired(self, now: float | None = None) -> bool:
        """An entry is valid while ``now - created_at <= ttl``."""
        if now is None:
            now = time.time()
        return now - self.created_at > self.ttl

    def to_bytes(self) -> bytes:
        """Serialize to JSON bytes.

        Raises:
            TypeError: If the payload is not JSON serializable
        """
        return orjson.dumps(
            {
                "data": self.data,
                "timestamp": int(self.created_at * 1000),
                "ttl": int(self.ttl * 1000),
                "hits": self.hits,
            },
            option=orjson.OPT_NON_STR_KEYS,
        )

    @classmethod
    def from_bytes(cls, raw: bytes | str, key: str | None = None) -> "CacheEntry":
        """Deserialize from JSON bytes.

        Raises:
            CacheEntryError: If the payload is not a valid envelope
        """
        try:
            parsed = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CacheEntryError(key, f"invalid JSON ({e})") from e

        if not isinstance(parsed, dict) or "data" not in parsed:
            raise CacheEntryError(key, "missing envelope fields")

        try:
            return cls(
                data=parsed["data"],
                created_at=float(parsed["timestamp"]) / 1000,
                ttl=float(parsed["ttl"]) / 1000,
                hits=int(parsed.get("hits", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CacheEntryError(key, f"bad envelope field ({e})") from e


def payload_size(data: Any) -> int:
    """Length of the JSON form of a payload, for memory estimates."""
    try:
        return len(orjson.dumps(data, default=str, option=orjson.OPT_NON_STR_KEYS))
    except TypeError:
        return len(repr(data))


def parse_tiers(tiers: Iterable[Tier | str]) -> frozenset[Tier]:
    """Convert tier labels to a set of Tier members.

    Raises:
        ValueError: If a label is not a known tier
    """
    return frozenset(Tier(t) for t in tiers)


@dataclass(frozen=True)
class CacheOptions:
    """Per-write TTLs and the tiers a write goes to."""

    memory_ttl: float = DEFAULT_MEMORY_TTL
    shared_ttl: float = DEFAULT_SHARED_TTL
    edge_ttl: float = DEFAULT_EDGE_TTL
    tiers: frozenset[Tier] = ALL_TIERS

    @classmethod
    def build(
        cls,
        base: "CacheOptions | None" = None,
        *,
        memory_ttl: float | None = None,
        shared_ttl: float | None = None,
        edge_ttl: float | None = None,
        tiers: Iterable[Tier | str] | None = None,
    ) -> "CacheOptions":
        """Build options, taking omitted fields from ``base`` (or the defaults)."""
        base = base or cls()
        return cls(
            memory_ttl=base.memory_ttl if memory_ttl is None else memory_ttl,
            shared_ttl=base.shared_ttl if shared_ttl is None else shared_ttl,
            edge_ttl=base.edge_ttl if edge_ttl is None else edge_ttl,
            tiers=base.tiers if tiers is None else parse_tiers(tiers),
        )

    def ttl_for(self, tier: Tier) -> float:
        if tier is Tier.LOCAL:
            return self.memory_ttl
        if tier is Tier.SHARED:
            return self.shared_ttl
        return self.edge_ttl


@dataclass
class CacheStats:
    """Snapshot of cache counters and local tier footprint."""

    total_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    memory_usage: int = 0
    key_count: int = 0

    @property
    def hit_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.cache_hits / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        """Export shape consumed by the dashboard."""
        return {
            "totalRequests": self.total_requests,
            "cacheHits": self.cache_hits,
            "cacheMisses": self.cache_misses,
            "hitRate": self.hit_rate,
            "memoryUsage": self.memory_usage,
            "keyCount": self.key_count,
        }


@dataclass
class WarmUpEntry:
    """One key to pre-populate during warm-up."""

    key: str
    fetcher: Fetcher
    options: CacheOptions | Mapping[str, Any] | None = None


@dataclass
class WarmUpResult:
    """Outcome of a warm-up batch."""

    total: int = 0
    succeeded: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total == 0:
            return 0.0
        return (self.succeeded / self.total) * 100
