"""Domain-specific cache façades.

Each preset fixes a key namespace and the TTLs and tiers for one data
category, and delegates everything else to an injected CacheManager:

    cache = CacheManager.from_settings()
    threats = ThreatAnalysisCache(cache)
    await threats.cache_threat_analysis("evil.example", result)

Shared and edge TTLs are multiples of the memory TTL, so a caller that
shortens the memory TTL shortens the others in proportion.
"""

from __future__ import annotations

from typing import Any

from tiercache.cache.entry import CacheOptions, Fetcher, Tier
from tiercache.cache.keys import CacheKeys
from tiercache.cache.manager import CacheManager

THREAT_ANALYSIS_TTL = 1800.0  # 30 minutes
USER_SESSION_TTL = 86400.0  # 24 hours
REGIONAL_THREATS_TTL = 300.0  # 5 minutes


class DomainCache:
    """Base for namespace-scoped façades over a CacheManager."""

    namespace: str = ""
    default_ttl: float = 300.0
    shared_multiplier: float = 2.0
    edge_multiplier: float | None = None

    def __init__(self, manager: CacheManager) -> None:
        self.manager = manager

    def key(self, identifier: str | int) -> str:
        return f"{self.namespace}{identifier}"

    def options(self, ttl: float | None = None) -> CacheOptions:
        """Write options for this category, scaled from ``ttl``."""
        ttl = self.default_ttl if ttl is None else ttl
        if self.edge_multiplier is None:
            return CacheOptions(
                memory_ttl=ttl,
                shared_ttl=ttl * self.shared_multiplier,
                tiers=frozenset({Tier.LOCAL, Tier.SHARED}),
            )
        return CacheOptions(
            memory_ttl=ttl,
            shared_ttl=ttl * self.shared_multiplier,
            edge_ttl=ttl * self.edge_multiplier,
        )

    async def _store(self, identifier: str | int, value: Any, ttl: float | None) -> None:
        await self.manager.set(self.key(identifier), value, self.options(ttl))

    async def _load(self, identifier: str | int) -> Any | None:
        return await self.manager.get(self.key(identifier))

    async def _load_or_compute(
        self, identifier: str | int, fetcher: Fetcher, ttl: float | None
    ) -> Any:
        return await self.manager.get_or_set(self.key(identifier), fetcher, self.options(ttl))

    async def invalidate_all(self) -> int:
        """Drop every key in this namespace. Returns the number removed."""
        return await self.manager.invalidate(self.namespace)


class ThreatAnalysisCache(DomainCache):
    """Threat-analysis results, cached on every tier."""

    namespace = CacheKeys.THREAT_ANALYSIS
    default_ttl = THREAT_ANALYSIS_TTL
    shared_multiplier = 2.0
    edge_multiplier = 4.0

    async def cache_threat_analysis(
        self, entity: str, analysis: Any, ttl: float | None = None
    ) -> None:
        await self._store(entity, analysis, ttl)

    async def get_threat_analysis(self, entity: str) -> Any | None:
        return await self._load(entity)

    async def get_or_analyze(
        self, entity: str, analyzer: Fetcher, ttl: float | None = None
    ) -> Any:
        """Return the cached analysis for ``entity`` or run ``analyzer``."""
        return await self._load_or_compute(entity, analyzer, ttl)

    async def invalidate_threat_analysis(self, entity: str) -> None:
        await self.manager.delete(self.key(entity))


class UserSessionCache(DomainCache):
    """User sessions. Never written to the edge tier."""

    namespace = CacheKeys.USER_SESSION
    default_ttl = USER_SESSION_TTL
    shared_multiplier = 2.0
    edge_multiplier = None

    async def cache_user_session(
        self, user_id: str | int, session_data: Any, ttl: float | None = None
    ) -> None:
        await self._store(user_id, session_data, ttl)

    async def get_user_session(self, user_id: str | int) -> Any | None:
        return await self._load(user_id)

    async def get_or_load_session(
        self, user_id: str | int, loader: Fetcher, ttl: float | None = None
    ) -> Any:
        """Return the cached session for ``user_id`` or run ``loader``."""
        return await self._load_or_compute(user_id, loader, ttl)

    async def invalidate_user_session(self, user_id: str | int) -> None:
        await self.manager.delete(self.key(user_id))


class RegionalThreatCache(DomainCache):
    """Per-region threat aggregates."""

    namespace = CacheKeys.REGIONAL_THREATS
    default_ttl = REGIONAL_THREATS_TTL
    shared_multiplier = 3.0
    edge_multiplier = 6.0

    async def cache_regional_threats(
        self, region: str, threats: Any, ttl: float | None = None
    ) -> None:
        await self._store(region, threats, ttl)

    async def get_regional_threats(self, region: str) -> Any | None:
        return await self._load(region)

    async def get_or_aggregate(
        self, region: str, aggregator: Fetcher, ttl: float | None = None
    ) -> Any:
        """Return the cached aggregate for ``region`` or run ``aggregator``."""
        return await self._load_or_compute(region, aggregator, ttl)

    async def invalidate_regional_threats(self, region: str) -> None:
        await self.manager.delete(self.key(region))
