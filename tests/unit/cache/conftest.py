"""Fixtures for cache unit tests."""

import pytest

from tests.fakes import InMemoryTier
from tiercache.cache.local import LocalCache
from tiercache.cache.manager import CacheManager


@pytest.fixture
def local() -> LocalCache:
    return LocalCache(max_entries=100)


@pytest.fixture
def shared() -> InMemoryTier:
    return InMemoryTier()


@pytest.fixture
def manager(local: LocalCache, shared: InMemoryTier) -> CacheManager:
    return CacheManager(local=local, shared=shared)
