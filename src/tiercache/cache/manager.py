"""Tiered cache orchestration.

Lookups cascade local -> shared -> edge and promote a hit into the faster
tiers. Writes fan out to the tiers selected in CacheOptions. get_or_set()
implements cache-aside with single-flight so a cold key is computed once
no matter how many callers miss on it concurrently.

Example:
    cache = CacheManager.from_settings()
    await cache.connect()

    analysis = await cache.get_or_set(
        "threat:analysis:evil.example",
        lambda: analyzer.run("evil.example"),
        CacheOptions(memory_ttl=1800, shared_ttl=3600),
    )

    await cache.disconnect()
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Iterable, Mapping
from typing import Any

from tiercache.cache.base import RemoteTier
from tiercache.cache.coalescer import RequestCoalescer, call_fetcher
from tiercache.cache.edge import EdgeCache
from tiercache.cache.entry import (
    CacheOptions,
    CacheStats,
    Fetcher,
    Tier,
    WarmUpEntry,
    WarmUpResult,
)
from tiercache.cache.local import LocalCache
from tiercache.cache.redis import SharedCache, create_redis_client
from tiercache.config import Settings, settings
from tiercache.observability.metrics import (
    record_hit,
    record_miss,
    record_operation,
    record_request,
    set_local_entries,
)

logger = logging.getLogger(__name__)

OptionsLike = CacheOptions | Mapping[str, Any] | None


class CacheManager:
    """Front for the local, shared and edge cache tiers.

    Construct one instance at startup and pass it to the code that needs
    it. Only get_or_set() raises (the fetcher's own error); every other
    operation degrades to a miss or no-op when a remote tier is down.
    """

    def __init__(
        self,
        local: LocalCache | None = None,
        shared: RemoteTier | None = None,
        edge: RemoteTier | None = None,
        coalescer: RequestCoalescer | None = None,
        default_options: CacheOptions | None = None,
        cleanup_interval: float = 0.0,
    ) -> None:
        """
        Initialize the cache manager.

        Args:
            local: In-process tier (a default LocalCache if omitted)
            shared: Shared tier, usually a SharedCache; None runs local-only
            edge: Edge tier (an EdgeCache placeholder if omitted)
            coalescer: Single-flight registry for get_or_set
            default_options: TTLs and tiers used when a write passes none
            cleanup_interval: Seconds between background sweeps (0 disables)
        """
        self.local = local if local is not None else LocalCache()
        self.shared = shared
        self.edge = edge if edge is not None else EdgeCache()
        self.default_options = default_options if default_options is not None else CacheOptions()
        self.cleanup_interval = cleanup_interval
        self._coalescer = coalescer if coalescer is not None else RequestCoalescer()
        self._cleanup_task: asyncio.Task[None] | None = None

        self._stats_lock = threading.Lock()
        self._total_requests = 0
        self._cache_hits = 0
        self._cache_misses = 0

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "CacheManager":
        """Build a manager and its tiers from configuration."""
        config = config or settings

        shared: SharedCache | None = None
        if config.redis_enabled:
            client = create_redis_client(
                config.redis_url,
                connect_timeout=config.redis_connect_timeout,
                operation_timeout=config.redis_operation_timeout,
            )
            shared = SharedCache(
                client,
                connect_timeout=config.redis_connect_timeout,
                reconnect_interval=config.redis_reconnect_interval,
            )

        return cls(
            local=LocalCache(max_entries=config.local_max_entries),
            shared=shared,
            edge=EdgeCache(),
            coalescer=RequestCoalescer(timeout=config.coalesce_timeout),
            default_options=CacheOptions(
                memory_ttl=config.memory_ttl,
                shared_ttl=config.shared_ttl,
                edge_ttl=config.edge_ttl,
            ),
            cleanup_interval=config.cleanup_interval,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Connect the shared tier and start the cleanup sweep.

        Returns whether the shared tier is usable. Never raises.
        """
        ready = False
        if isinstance(self.shared, SharedCache):
            ready = await self.shared.connect()
        self.start_cleanup()
        return ready

    async def disconnect(self) -> None:
        """Stop the cleanup sweep and close remote tier connections."""
        await self.stop_cleanup()
        if self.shared is not None:
            await self.shared.close()
        await self.edge.close()

    async def __aenter__(self) -> "CacheManager":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    def is_shared_ready(self) -> bool:
        """Whether the shared tier is currently connected."""
        return self.shared is not None and self.shared.is_connected

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    async def get(self, key: str, use_all_tiers: bool = True) -> Any | None:
        """Look ``key`` up across the tiers, fastest first.

        Args:
            key: Cache key
            use_all_tiers: False restricts the lookup to the local tier

        Returns:
            The cached value, or None on a miss
        """
        start = time.perf_counter()
        self._count(requests=1)
        record_request()

        try:
            entry = self.local.get_entry(key)
            if entry is not None:
                self._hit(Tier.LOCAL)
                return entry.data

            if not use_all_tiers:
                self._miss(key)
                return None

            if self.shared is not None:
                entry = await self.shared.get(key)
                if entry is not None:
                    self._hit(Tier.SHARED)
                    self.local.set(key, entry.data, entry.ttl)
                    return entry.data

            entry = await self.edge.get(key)
            if entry is not None:
                self._hit(Tier.EDGE)
                self.local.set(key, entry.data, self.default_options.memory_ttl)
                if self.shared is not None:
                    await self.shared.set(key, entry.data, self.default_options.shared_ttl)
                return entry.data

            self._miss(key)
            return None
        finally:
            record_operation("get", time.perf_counter() - start)

    async def set(
        self,
        key: str,
        value: Any,
        options: OptionsLike = None,
        **overrides: Any,
    ) -> None:
        """Write ``value`` to each selected tier with that tier's TTL.

        Args:
            key: Cache key
            value: Payload; must be JSON serializable to reach the shared tier
            options: CacheOptions or a mapping of its fields
            **overrides: memory_ttl, shared_ttl, edge_ttl or tiers for this call

        A failing tier is logged and does not stop the writes to the others.
        """
        start = time.perf_counter()
        opts = self._options(options, overrides)

        for tier in (Tier.LOCAL, Tier.SHARED, Tier.EDGE):
            if tier not in opts.tiers:
                continue
            try:
                await self._write(tier, key, value, opts.ttl_for(tier))
            except Exception:
                logger.exception(
                    f"Cache write to {tier.value} tier failed",
                    extra={"tier": tier.value, "cache_key": key},
                )

        set_local_entries(len(self.local))
        record_operation("set", time.perf_counter() - start)

    async def delete(self, key: str) -> None:
        """Remove ``key`` from the local and shared tiers."""
        self.local.delete(key)
        if self.shared is not None:
            await self.shared.delete(key)
        await self.edge.delete(key)
        set_local_entries(len(self.local))

    async def invalidate(self, pattern: str) -> int:
        """Remove every key containing ``pattern`` from all tiers.

        Returns:
            Number of distinct keys removed
        """
        removed = self.local.delete_matching(pattern)
        if self.shared is not None:
            removed |= await self.shared.delete_matching(pattern)
        removed |= await self.edge.delete_matching(pattern)

        set_local_entries(len(self.local))
        if removed:
            logger.info(f"Invalidated {len(removed)} entries matching '{pattern}'")
        return len(removed)

    async def clear(self) -> None:
        """Empty the local tier and flush the shared tier."""
        count = self.local.clear()
        if self.shared is not None:
            await self.shared.flush_all()
        set_local_entries(0)
        logger.info(f"Cleared {count} local cache entries")

    # -------------------------------------------------------------------------
    # Cache-aside
    # -------------------------------------------------------------------------

    async def get_or_set(
        self,
        key: str,
        fetcher: Fetcher,
        options: OptionsLike = None,
    ) -> Any:
        """Return the cached value for ``key`` or compute and store it.

        Concurrent callers missing on the same key share one fetcher call.

        Args:
            key: Cache key
            fetcher: Sync or async callable producing the value
            options: Write options used when the value is stored

        Raises:
            Exception: Whatever ``fetcher`` raised; nothing is cached then
        """
        start = time.perf_counter()
        try:
            value = await self.get(key)
            if value is not None:
                return value

            async def fetch_and_store() -> Any:
                # A flight that finished while we were looking up may have stored it
                entry = self.local.get_entry(key)
                if entry is not None:
                    return entry.data

                try:
                    result = await call_fetcher(fetcher)
                except Exception as e:
                    logger.error(f"Error fetching data for key {key}: {e}")
                    raise

                await self.set(key, result, options)
                return result

            return await self._coalescer.run(key, fetch_and_store)
        finally:
            record_operation("get_or_set", time.perf_counter() - start)

    async def warm_up(self, entries: Iterable[WarmUpEntry | Mapping[str, Any]]) -> WarmUpResult:
        """Fetch and store a batch of entries concurrently.

        Each entry is isolated: a failing fetcher is logged and counted,
        and never affects the other entries. This method does not raise.

        Args:
            entries: WarmUpEntry objects or mappings with key, fetcher, options

        Returns:
            WarmUpResult with the keys that failed
        """
        items = list(entries)
        keys = [e.key if isinstance(e, WarmUpEntry) else str(e.get("key")) for e in items]
        result = WarmUpResult(total=len(items))

        async def warm_single(raw: WarmUpEntry | Mapping[str, Any]) -> None:
            # A malformed mapping fails like any other entry
            item = raw if isinstance(raw, WarmUpEntry) else WarmUpEntry(**raw)
            value = await call_fetcher(item.fetcher)
            await self.set(item.key, value, item.options)

        outcomes = await asyncio.gather(
            *(warm_single(item) for item in items), return_exceptions=True
        )

        for key, outcome in zip(keys, outcomes):
            if isinstance(outcome, BaseException):
                result.failed.append(key)
                logger.error(
                    f"Error warming up cache for key {key}: {outcome}",
                    extra={"cache_key": key},
                )
            else:
                result.succeeded += 1

        logger.info(f"Warmed up {result.succeeded}/{result.total} cache entries")
        return result

    # -------------------------------------------------------------------------
    # Introspection and maintenance
    # -------------------------------------------------------------------------

    async def get_keys(self, pattern: str = "") -> set[str]:
        """Keys containing ``pattern`` in the local tier or any remote tier."""
        keys = self.local.keys(pattern)
        if self.shared is not None:
            keys |= await self.shared.keys_matching(pattern)
        keys |= await self.edge.keys_matching(pattern)
        return keys

    def stats(self) -> CacheStats:
        """Snapshot of request counters and local tier footprint."""
        with self._stats_lock:
            return CacheStats(
                total_requests=self._total_requests,
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
                memory_usage=self.local.memory_usage,
                key_count=len(self.local),
            )

    def cleanup(self) -> int:
        """Remove expired entries from the local tier.

        Returns:
            Number of entries removed
        """
        removed = self.local.cleanup()
        set_local_entries(len(self.local))
        if removed:
            logger.info(f"Cleaned up {removed} expired cache entries")
        else:
            logger.debug("Cleanup found no expired cache entries")
        return removed

    def start_cleanup(self, interval: float | None = None) -> None:
        """Run cleanup() every ``interval`` seconds on the running loop."""
        interval = self.cleanup_interval if interval is None else interval
        if interval <= 0 or self._cleanup_task is not None:
            return

        self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval))
        logger.info(f"Started cache cleanup every {interval}s")

    async def stop_cleanup(self) -> None:
        """Cancel the background cleanup sweep if it is running."""
        if self._cleanup_task is None:
            return

        self._cleanup_task.cancel()
        try:
            await self._cleanup_task
        except asyncio.CancelledError:
            pass
        self._cleanup_task = None
        logger.info("Stopped cache cleanup")

    async def _cleanup_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.cleanup()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _options(self, options: OptionsLike, overrides: Mapping[str, Any]) -> CacheOptions:
        if isinstance(options, CacheOptions):
            base = options
        elif options:
            base = CacheOptions.build(self.default_options, **options)
        else:
            base = self.default_options
        if overrides:
            return CacheOptions.build(base, **overrides)
        return base

    async def _write(self, tier: Tier, key: str, value: Any, ttl: float) -> None:
        if tier is Tier.LOCAL:
            self.local.set(key, value, ttl)
        elif tier is Tier.SHARED:
            if self.shared is not None:
                await self.shared.set(key, value, ttl)
        else:
            await self.edge.set(key, value, ttl)

    def _count(self, requests: int = 0, hits: int = 0, misses: int = 0) -> None:
        with self._stats_lock:
            self._total_requests += requests
            self._cache_hits += hits
            self._cache_misses += misses

    def _hit(self, tier: Tier) -> None:
        self._count(hits=1)
        record_hit(tier.value)

    def _miss(self, key: str) -> None:
        self._count(misses=1)
        record_miss()
        logger.debug(f"CACHE MISS: {key}")
