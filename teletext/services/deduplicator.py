"""
RequestDeduplicator - at most one in-flight operation per key.

Concurrent resolutions of the same category share one task and its result.
A caller that is cancelled stops waiting but does not cancel the shared
task for the other waiters.
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestDeduplicator:
    """
    Single-flight execution keyed by string.

    Usage:
        dedup = RequestDeduplicator()
        envelope = await dedup.dedupe("news:top", lambda: chain._resolve("top"))
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._lock = asyncio.Lock()
        self._debug = debug
        self._stats = DeduplicatorStats()

    async def dedupe(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        """Run request_fn, or join the run already in flight for key."""
        async with self._lock:
            task = self._in_flight.get(key)
            if task is not None:
                self._stats.deduplicated += 1
                self._log(f"JOIN: {key}")
            else:
                self._stats.total += 1
                self._log(f"NEW: {key}")
                task = asyncio.create_task(self._run(key, request_fn))
                self._in_flight[key] = task

        return await asyncio.shield(task)

    async def _run(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await request_fn()
        finally:
            async with self._lock:
                self._in_flight.pop(key, None)
            self._log(f"DONE: {key}")

    async def cancel_all(self) -> int:
        """Cancel all in-flight operations."""
        async with self._lock:
            tasks = list(self._in_flight.values())
            self._in_flight.clear()

        for task in tasks:
            task.cancel()
        if tasks:
            self._log(f"CANCEL_ALL: {len(tasks)} operations cancelled")
        return len(tasks)

    def get_in_flight_keys(self) -> list[str]:
        return list(self._in_flight.keys())

    def get_stats(self) -> "DeduplicatorStats":
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")


class DeduplicatorStats:
    """Statistics for single-flight execution."""

    def __init__(self):
        self.total: int = 0  # operations actually started
        self.deduplicated: int = 0  # callers that joined one in flight
        self.in_flight: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "deduplicated": self.deduplicated,
            "in_flight": self.in_flight,
        }
