"""Cache-aside decorator for async route handlers and services.

Example:
    @cached(cache, lambda region: CacheKeys.regional_threats(region), memory_ttl=300)
    async def regional_summary(region: str) -> dict:
        return await aggregate(region)
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

from tiercache.cache.manager import CacheManager

P = ParamSpec("P")
T = TypeVar("T")


def cached(
    manager: CacheManager,
    key: str | Callable[..., str],
    **options: Any,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Serve an async function's result through CacheManager.get_or_set.

    Args:
        manager: Cache to read from and write to
        key: Fixed key, or a callable building the key from the call arguments
        **options: CacheOptions fields (memory_ttl, shared_ttl, edge_ttl, tiers)
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            cache_key = key(*args, **kwargs) if callable(key) else key
            result: T = await manager.get_or_set(
                cache_key,
                lambda: func(*args, **kwargs),
                options or None,
            )
            return result

        return wrapper

    return decorator
