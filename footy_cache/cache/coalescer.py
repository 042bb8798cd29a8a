"""Request coalescing to prevent duplicate upstream calls.

When several coroutines miss the cache for the same key at once, only one
upstream call is made and every waiter shares its result (or its error).
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RequestCoalescer:
    """Ensures concurrent requests for the same key share one upstream call.

    Pattern:
    - First request for a key starts the fetch as a task
    - Later requests for the same key await that task
    - The entry is dropped once the task finishes, so the next miss
      triggers a fresh fetch

    Example:
        coalescer = RequestCoalescer()
        result = await coalescer.run("footy:matches:live", lambda: source.get_live_matches())
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Future[Any]] = {}
        self._coalesced = 0
        self._logger = logger.bind(component="request_coalescer")

    async def run(self, key: str, fetch_fn: Callable[[], Awaitable[T]]) -> T:
        """Join an in-flight fetch for the key or start a new one.

        Args:
            key: Cache key identifying the request.
            fetch_fn: Zero-argument coroutine factory performing the fetch.

        Returns:
            The fetched value, shared among concurrent callers.

        Raises:
            Exception: Whatever fetch_fn raised, re-raised in every waiter.
        """
        in_flight = self._in_flight.get(key)
        if in_flight is not None:
            self._coalesced += 1
            self._logger.debug("request_coalesced", key=key)
            return await asyncio.shield(in_flight)

        task = asyncio.ensure_future(fetch_fn())
        self._in_flight[key] = task
        task.add_done_callback(lambda done: self._release(key, done))
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    @property
    def active_requests(self) -> int:
        """Number of fetches currently in flight."""
        return len(self._in_flight)

    def get_stats(self) -> dict[str, Any]:
        """Get coalescer statistics."""
        return {
            "active_requests": len(self._in_flight),
            "coalesced_requests": self._coalesced,
        }
