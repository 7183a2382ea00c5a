"""In-process local cache tier.

A lock-protected LRU map of CacheEntry objects. All operations are
synchronous and in-memory; expiry is checked on read and by an explicit
cleanup sweep.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any

from tiercache.cache.entry import DEFAULT_MEMORY_TTL, CacheEntry, payload_size
from tiercache.observability.metrics import record_eviction

logger = logging.getLogger(__name__)

# Rough per-entry bookkeeping overhead in bytes
ENTRY_OVERHEAD = 64

DEFAULT_MAX_ENTRIES = 10_000


def estimate_size(key: str, data: Any) -> int:
    """Approximate footprint of one entry (UTF-16 style char counting)."""
    return len(key) * 2 + payload_size(data) * 2 + ENTRY_OVERHEAD


class LocalCache:
    """Bounded in-process cache with per-entry TTL.

    Recency is updated on every successful read and on write; when
    ``max_entries`` is exceeded the least recently used entry is evicted.
    A ``max_entries`` of 0 disables the bound.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._sizes: dict[str, int] = {}
        self._memory_usage = 0
        self._lock = threading.RLock()
        self.evictions = 0

    def get(self, key: str) -> Any | None:
        """Return the payload for ``key``, or None if absent or expired."""
        entry = self.get_entry(key)
        return None if entry is None else entry.data

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` and count the hit."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if entry.is_expired():
                self._remove(key)
                logger.debug(f"Local entry expired: {key}")
                return None

            entry.hits += 1
            self._entries.move_to_end(key)
            return entry

    def set(self, key: str, value: Any, ttl: float = DEFAULT_MEMORY_TTL) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        entry = CacheEntry(data=value, created_at=time.time(), ttl=ttl)
        size = estimate_size(key, value)

        with self._lock:
            if key in self._entries:
                self._remove(key)

            self._entries[key] = entry
            self._sizes[key] = size
            self._memory_usage += size

            if self.max_entries:
                while len(self._entries) > self.max_entries:
                    evicted_key, _ = self._entries.popitem(last=False)
                    self._memory_usage -= self._sizes.pop(evicted_key, 0)
                    self.evictions += 1
                    record_eviction()
                    logger.debug(f"Local cache evicted LRU key: {evicted_key}")

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it was present."""
        with self._lock:
            if key not in self._entries:
                return False
            self._remove(key)
            return True

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._sizes.clear()
            self._memory_usage = 0
            return count

    def keys(self, pattern: str = "") -> set[str]:
        """Keys of live entries containing ``pattern`` as a substring."""
        now = time.time()
        with self._lock:
            return {
                key
                for key, entry in self._entries.items()
                if pattern in key and not entry.is_expired(now)
            }

    def delete_matching(self, pattern: str) -> set[str]:
        """Remove every entry whose key contains ``pattern``, expired or not."""
        with self._lock:
            matched = {key for key in self._entries if pattern in key}
            for key in matched:
                self._remove(key)
        return matched

    def cleanup(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        now = time.time()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                self._remove(key)
        return len(expired)

    @property
    def memory_usage(self) -> int:
        """Approximate byte footprint of all entries."""
        with self._lock:
            return self._memory_usage

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def _remove(self, key: str) -> None:
        # Caller holds the lock
        del self._entries[key]
        self._memory_usage -= self._sizes.pop(key, 0)
