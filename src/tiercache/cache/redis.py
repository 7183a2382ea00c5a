"""Redis-backed shared cache tier.

Provides async Redis operations for CacheEntry envelopes.
Uses the redis-py async client with bounded connect and command timeouts.

Every failure here is non-fatal: reads degrade to a miss and writes to a
no-op. Connectivity is tracked explicitly so that, while Redis is down,
calls return immediately instead of waiting on a timeout each time; a
reconnect is attempted at most once per ``reconnect_interval``.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, cast

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from tiercache.cache.base import RemoteTier
from tiercache.cache.entry import CacheEntry, Tier
from tiercache.cache.errors import CacheEntryError
from tiercache.observability.metrics import record_shared_error

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Errors that mean the server is unreachable rather than that a command failed
CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError, asyncio.TimeoutError)
SHARED_ERRORS = (*CONNECTION_ERRORS, RedisError)

# Characters with special meaning in Redis glob patterns
_GLOB_SPECIAL = "\\*?[]"

SCAN_COUNT = 500


def create_redis_client(
    url: str,
    connect_timeout: float = 5.0,
    operation_timeout: float = 1.0,
) -> Redis:
    """Create a Redis client for the shared tier.

    The client connects lazily; call SharedCache.connect() to establish
    and verify the connection.
    """
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        decode_responses=False,
        socket_connect_timeout=connect_timeout,
        socket_timeout=operation_timeout,
    )


def glob_escape(pattern: str) -> str:
    """Escape a substring so it matches literally inside a SCAN pattern."""
    return "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in pattern)


def _decode_key(key: bytes | str) -> str:
    return key.decode() if isinstance(key, bytes) else key


class SharedCache(RemoteTier):
    """Cache operations against a shared Redis instance."""

    tier = Tier.SHARED

    def __init__(
        self,
        client: Redis,
        connect_timeout: float = 5.0,
        reconnect_interval: float = 30.0,
    ) -> None:
        self.client = client
        self.connect_timeout = connect_timeout
        self.reconnect_interval = reconnect_interval
        self._connected = False
        self._closed = False
        self._last_attempt: float | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        """Verify connectivity with a bounded PING.

        Returns:
            True if Redis answered, False otherwise. Never raises.
        """
        if self._closed:
            return False

        self._last_attempt = time.monotonic()
        try:
            await asyncio.wait_for(
                cast(Awaitable[bool], self.client.ping()),
                timeout=self.connect_timeout,
            )
        except SHARED_ERRORS as e:
            logger.warning(f"Shared cache unavailable, continuing without it: {e}")
            self._connected = False
            record_shared_error("connect")
            return False

        if not self._connected:
            logger.info("Shared cache connected")
        self._connected = True
        return True

    async def _available(self) -> bool:
        """Cheap connectivity gate checked before every operation."""
        if self._connected:
            return True
        if self._closed:
            return False
        if (
            self._last_attempt is not None
            and time.monotonic() - self._last_attempt < self.reconnect_interval
        ):
            return False
        return await self.connect()

    def _failed(self, operation: str, key: str | None, error: Exception) -> None:
        if isinstance(error, CONNECTION_ERRORS):
            self._connected = False
        record_shared_error(operation)
        logger.warning(
            f"Shared cache {operation} failed: {error}",
            extra={"operation": operation, "cache_key": key},
        )

    async def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``.

        Corrupt or expired envelopes are deleted and reported as a miss.
        """
        if not await self._available():
            return None

        try:
            raw = await self.client.get(key)
        except SHARED_ERRORS as e:
            self._failed("get", key, e)
            return None

        if raw is None:
            return None

        try:
            entry = CacheEntry.from_bytes(raw, key=key)
        except CacheEntryError as e:
            logger.warning(
                f"Dropping corrupt shared cache entry: {e.reason}",
                extra={"cache_key": key},
            )
            await self.delete(key)
            return None

        if entry.is_expired():
            await self.delete(key)
            return None

        return entry

    async def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` with SETEX, rounding the TTL up to whole seconds."""
        if not await self._available():
            return

        entry = CacheEntry(data=value, created_at=time.time(), ttl=ttl)
        try:
            payload = entry.to_bytes()
        except TypeError as e:
            logger.warning(
                f"Payload is not serializable, not cached in shared tier: {e}",
                extra={"cache_key": key},
            )
            record_shared_error("serialize")
            return

        try:
            await self.client.setex(key, max(1, math.ceil(ttl)), payload)
        except SHARED_ERRORS as e:
            self._failed("set", key, e)

    async def delete(self, key: str) -> None:
        if not await self._available():
            return

        try:
            await self.client.delete(key)
        except SHARED_ERRORS as e:
            self._failed("delete", key, e)

    async def keys_matching(self, pattern: str) -> set[str]:
        """Keys containing ``pattern``, found with SCAN (never KEYS)."""
        if not await self._available():
            return set()

        match = f"*{glob_escape(pattern)}*"
        keys: set[str] = set()
        try:
            async for key in self.client.scan_iter(match=match, count=SCAN_COUNT):
                keys.add(_decode_key(key))
        except SHARED_ERRORS as e:
            self._failed("scan", None, e)
        return keys

    async def delete_matching(self, pattern: str) -> set[str]:
        """Delete every key containing ``pattern`` in one DEL.

        Returns the keys removed (empty if the DEL failed).
        """
        keys = await self.keys_matching(pattern)
        if not keys:
            return set()

        try:
            await self.client.delete(*keys)
        except SHARED_ERRORS as e:
            self._failed("delete", None, e)
            return set()
        return keys

    async def flush_all(self) -> None:
        """Flush the current Redis database."""
        if not await self._available():
            return

        try:
            await self.client.flushdb()
        except SHARED_ERRORS as e:
            self._failed("flush", None, e)

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        return await self.connect()

    async def close(self) -> None:
        """Close the Redis connection. The tier stays unavailable afterwards."""
        self._closed = True
        self._connected = False
        try:
            await self.client.aclose()
        except SHARED_ERRORS as e:
            logger.warning(f"Error closing shared cache client: {e}")
