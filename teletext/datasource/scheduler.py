"""
Background refresh scheduler.
Uses APScheduler to resolve every registered category on a fixed interval
and push the envelopes to subscribers.
"""

import inspect
from datetime import timedelta
from typing import Any, Awaitable, Callable, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from teletext.datasource.chain import SourceChain
from teletext.datasource.models import DataEnvelope
from teletext.utils import logged_job

Subscriber = Callable[[str, DataEnvelope], Union[None, Awaitable[None]]]

DEFAULT_INTERVAL = timedelta(minutes=5)


class RefreshScheduler:
    """
    Periodic refresh of registered chains with subscriber callbacks.

    The timer is created on the first subscription and torn down when the
    last subscriber leaves. ``start``/``stop`` can also be called directly.

    Usage:
        scheduler = RefreshScheduler()
        scheduler.register(chains["news"])
        unsubscribe = scheduler.subscribe(render_page)
        ...
        unsubscribe()
    """

    JOB_ID = "teletext_refresh"

    def __init__(self, interval: timedelta | None = None):
        self._interval_override = interval
        self._chains: dict[str, tuple[SourceChain, list[str]]] = {}
        # dict keeps insertion order and set semantics
        self._subscribers: dict[Subscriber, None] = {}
        self._scheduler: AsyncIOScheduler | None = None

    def register(self, chain: SourceChain, categories: list[str] | None = None) -> None:
        """Refresh the given categories of chain (all of them by default)."""
        selected = list(categories or chain.categories or [chain.default_category])
        self._chains[chain.section] = (chain, selected)
        logger.debug(f"Registered {chain.section} for refresh: {selected}")

    @property
    def interval(self) -> timedelta:
        """Override, else the freshest section TTL."""
        if self._interval_override is not None:
            return self._interval_override
        ttls = [chain.ttl for chain, _ in self._chains.values() if chain.ttl]
        return min(ttls) if ttls else DEFAULT_INTERVAL

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Add a callback; starts the timer if it is not running."""
        self._subscribers[callback] = None
        if not self.is_running():
            self.start()

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Subscriber) -> None:
        """Remove a callback; stops the timer when none are left."""
        self._subscribers.pop(callback, None)
        if not self._subscribers and self.is_running():
            self.stop()

    def start(self) -> None:
        """Start the refresh timer."""
        if self.is_running():
            logger.warning("Refresh scheduler is already running")
            return

        interval = self.interval
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.refresh_job,
            trigger="interval",
            seconds=interval.total_seconds(),
            id=self.JOB_ID,
            name="Teletext Refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()

        logger.info(
            f"Refresh scheduler started: every {interval.total_seconds():.0f}s "
            f"for {list(self._chains)}"
        )

    def stop(self) -> None:
        """Stop the refresh timer."""
        if not self.is_running():
            logger.warning("Refresh scheduler is not running")
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Refresh scheduler stopped")

    def shutdown(self) -> None:
        """Stop the timer and drop every subscriber."""
        self._subscribers.clear()
        if self.is_running():
            self.stop()

    def is_running(self) -> bool:
        return self._scheduler is not None

    @logged_job
    async def refresh_job(self) -> None:
        await self.refresh_now()

    async def refresh_now(self) -> dict[tuple[str, str], DataEnvelope]:
        """Resolve every registered category once and notify subscribers."""
        results: dict[tuple[str, str], DataEnvelope] = {}

        for section, (chain, categories) in list(self._chains.items()):
            for category in categories:
                try:
                    envelope = await chain.resolve(category, force_refresh=True)
                except Exception:
                    logger.exception(f"Refresh of {section}/{category} failed")
                    continue

                results[(section, category)] = envelope
                await self._notify(category, envelope)

        degraded = sum(1 for e in results.values() if e.is_degraded)
        logger.info(f"Refresh cycle done: {len(results)} categories, {degraded} degraded")
        return results

    async def _notify(self, category: str, envelope: DataEnvelope) -> None:
        for callback in list(self._subscribers):
            try:
                result: Any = callback(category, envelope)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    f"Subscriber {getattr(callback, '__name__', callback)!r} "
                    f"failed for {envelope.section}/{category}"
                )
