"""Request coalescing for cache-aside lookups.

When several coroutines miss on the same key at once, only the first one
runs the fetcher; the others await its result. This prevents a cold key
from being recomputed once per concurrent caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from tiercache.cache.entry import Fetcher

logger = logging.getLogger(__name__)


async def call_fetcher(fetcher: Fetcher) -> Any:
    """Invoke a sync or async fetcher and return its value."""
    result = fetcher()
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass
class InFlightRequest:
    """Tracks an in-progress fetch."""

    future: asyncio.Future[Any]
    started_at: float = field(default_factory=time.monotonic)
    waiter_count: int = 0


class RequestCoalescer:
    """Ensures concurrent requests for the same key share one fetch.

    Pattern:
    - First request for a key initiates the fetch
    - Subsequent requests for the same key await the shared future
    - When the fetch completes, all waiters receive the same result or error

    Usage:
        coalescer = RequestCoalescer()
        result = await coalescer.run("threat:analysis:...", fetch_analysis)
    """

    def __init__(self, timeout: float = 30.0) -> None:
        """
        Initialize the coalescer.

        Args:
            timeout: Max seconds a joining caller waits for an in-flight fetch
        """
        self._in_flight: dict[str, InFlightRequest] = {}
        self._timeout = timeout

    async def run(self, key: str, fetch: Fetcher) -> Any:
        """Either join an existing in-flight fetch or initiate a new one.

        Args:
            key: Unique key for this request
            fetch: Sync or async callable producing the value

        Returns:
            The fetched value (shared among all concurrent callers)

        Raises:
            TimeoutError: If waiting for an in-flight fetch times out
            Exception: Any error from ``fetch`` is propagated to every caller
        """
        in_flight = self._in_flight.get(key)
        if in_flight is not None:
            in_flight.waiter_count += 1
            logger.debug(f"Coalescing request for {key} (waiters: {in_flight.waiter_count})")
            try:
                # shield: a waiter timing out must not cancel the initiator's fetch
                return await asyncio.wait_for(
                    asyncio.shield(in_flight.future), timeout=self._timeout
                )
            except asyncio.TimeoutError:
                logger.error(f"Timeout waiting for coalesced request: {key}")
                raise TimeoutError(
                    f"Request for {key} timed out after {self._timeout}s"
                ) from None

        # The fetch runs as its own task so cancelling the initiator leaves it
        # running for the callers that joined it
        task = asyncio.ensure_future(call_fetcher(fetch))
        self._in_flight[key] = InFlightRequest(future=task)
        task.add_done_callback(lambda done: self._finished(key, done))
        logger.debug(f"Initiating fetch for {key}")

        return await asyncio.shield(task)

    def _finished(self, key: str, task: asyncio.Future[Any]) -> None:
        in_flight = self._in_flight.get(key)
        if in_flight is not None and in_flight.future is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark retrieved so a failure nobody awaited does not warn on GC
            task.exception()

    @property
    def active_requests(self) -> int:
        """Number of currently in-flight fetches."""
        return len(self._in_flight)

    def get_stats(self) -> dict[str, Any]:
        """Get coalescer statistics."""
        return {
            "active_requests": len(self._in_flight),
            "active_keys": list(self._in_flight.keys()),
        }
