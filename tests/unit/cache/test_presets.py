"""Tests for the domain cache presets."""

from __future__ import annotations

import pytest

from tests.fakes import InMemoryTier
from tiercache.cache.entry import Tier
from tiercache.cache.local import LocalCache
from tiercache.cache.manager import CacheManager
from tiercache.cache.presets import (
    RegionalThreatCache,
    ThreatAnalysisCache,
    UserSessionCache,
)


class TestPresetOptions:
    """TTL and tier selection per data category."""

    def test_threat_analysis_defaults(self, manager: CacheManager) -> None:
        """Threat analysis: 30 min local, 60 min shared, 120 min edge."""
        opts = ThreatAnalysisCache(manager).options()

        assert (opts.memory_ttl, opts.shared_ttl, opts.edge_ttl) == (1800, 3600, 7200)
        assert opts.tiers == frozenset(Tier)

    def test_user_session_skips_edge(self, manager: CacheManager) -> None:
        """Sessions stay off the edge tier."""
        opts = UserSessionCache(manager).options()

        assert (opts.memory_ttl, opts.shared_ttl) == (86400, 172800)
        assert opts.tiers == frozenset({Tier.LOCAL, Tier.SHARED})

    def test_regional_defaults(self, manager: CacheManager) -> None:
        """Regional threats: 5 min local, 15 min shared, 30 min edge."""
        opts = RegionalThreatCache(manager).options()

        assert (opts.memory_ttl, opts.shared_ttl, opts.edge_ttl) == (300, 900, 1800)

    def test_custom_ttl_scales_other_tiers(self, manager: CacheManager) -> None:
        opts = RegionalThreatCache(manager).options(ttl=60)

        assert (opts.memory_ttl, opts.shared_ttl, opts.edge_ttl) == (60, 180, 360)


class TestThreatAnalysisCache:
    @pytest.mark.asyncio
    async def test_roundtrip_uses_namespaced_key(
        self, manager: CacheManager, shared: InMemoryTier
    ) -> None:
        threats = ThreatAnalysisCache(manager)
        await threats.cache_threat_analysis("evil.example", {"risk": "high"})

        assert await threats.get_threat_analysis("evil.example") == {"risk": "high"}
        assert shared.entries["threat:analysis:evil.example"].ttl == 3600

    @pytest.mark.asyncio
    async def test_get_or_analyze_runs_once(self, manager: CacheManager) -> None:
        threats = ThreatAnalysisCache(manager)
        calls = 0

        async def analyze() -> dict[str, str]:
            nonlocal calls
            calls += 1
            return {"risk": "low"}

        await threats.get_or_analyze("a.example", analyze)
        result = await threats.get_or_analyze("a.example", analyze)

        assert result == {"risk": "low"}
        assert calls == 1

    @pytest.mark.asyncio
    async def test_invalidate_single_entity(self, manager: CacheManager) -> None:
        threats = ThreatAnalysisCache(manager)
        await threats.cache_threat_analysis("a", 1)
        await threats.cache_threat_analysis("b", 2)

        await threats.invalidate_threat_analysis("a")

        assert await threats.get_threat_analysis("a") is None
        assert await threats.get_threat_analysis("b") == 2


class TestUserSessionCache:
    @pytest.mark.asyncio
    async def test_session_roundtrip(
        self, manager: CacheManager, local: LocalCache, shared: InMemoryTier
    ) -> None:
        sessions = UserSessionCache(manager)
        await sessions.cache_user_session(42, {"role": "analyst"}, ttl=600)

        assert await sessions.get_user_session(42) == {"role": "analyst"}
        entry = local.get_entry("user:session:42")
        assert entry is not None and entry.ttl == 600
        assert shared.entries["user:session:42"].ttl == 1200

    @pytest.mark.asyncio
    async def test_get_or_load_session(self, manager: CacheManager) -> None:
        sessions = UserSessionCache(manager)
        calls = 0

        def load() -> dict[str, str]:
            nonlocal calls
            calls += 1
            return {"role": "viewer"}

        assert await sessions.get_or_load_session(9, load) == {"role": "viewer"}
        assert await sessions.get_or_load_session(9, load) == {"role": "viewer"}
        assert calls == 1

    @pytest.mark.asyncio
    async def test_invalidate_session(self, manager: CacheManager) -> None:
        sessions = UserSessionCache(manager)
        await sessions.cache_user_session("u1", {"role": "admin"})

        await sessions.invalidate_user_session("u1")

        assert await sessions.get_user_session("u1") is None


class TestRegionalThreatCache:
    @pytest.mark.asyncio
    async def test_invalidate_all_leaves_other_namespaces(self, manager: CacheManager) -> None:
        regions = RegionalThreatCache(manager)
        sessions = UserSessionCache(manager)
        await regions.cache_regional_threats("Delhi", [1, 2])
        await regions.cache_regional_threats("Mumbai", [3])
        await sessions.cache_user_session(7, {"u": 7})

        assert await regions.invalidate_all() == 2
        assert await regions.get_regional_threats("Delhi") is None
        assert await sessions.get_user_session(7) == {"u": 7}

    @pytest.mark.asyncio
    async def test_get_or_aggregate(self, manager: CacheManager) -> None:
        regions = RegionalThreatCache(manager)

        result = await regions.get_or_aggregate("Pune", lambda: {"count": 9})

        assert result == {"count": 9}
        assert await regions.get_regional_threats("Pune") == {"count": 9}

    @pytest.mark.asyncio
    async def test_invalidate_region(self, manager: CacheManager) -> None:
        regions = RegionalThreatCache(manager)
        await regions.cache_regional_threats("Delhi", [1])

        await regions.invalidate_regional_threats("Delhi")

        assert await regions.get_regional_threats("Delhi") is None
