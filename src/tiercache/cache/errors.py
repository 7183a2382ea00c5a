"""Exceptions raised by the cache layer."""

from __future__ import annotations


class CacheError(Exception):
    """Base class for cache errors."""


class CacheEntryError(CacheError):
    """A stored envelope could not be decoded."""

    def __init__(self, key: str | None, reason: str) -> None:
        self.key = key
        self.reason = reason
        where = f" for key {key!r}" if key else ""
        super().__init__(f"Corrupt cache entry{where}: {reason}")
