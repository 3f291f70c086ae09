from datetime import timedelta
from typing import Any

from teletext.datasource.chain import SourceChain
from teletext.datasource.models import Provenance
from teletext.datasource.scheduler import DEFAULT_INTERVAL, RefreshScheduler
from teletext.datasource.tv import TvDemoProvider, TvSchedule

RAW_SCHEDULE = {"date": "2024-01-15", "country": "US", "shows": []}


class CountingProvider:
    """Minimal provider double counting fetches per category."""

    service_id = "counting"
    payload_model = TvSchedule

    def __init__(self, fail_for: set[str] | None = None):
        self.calls: list[str] = []
        self.fail_for = fail_for or set()

    def is_configured(self) -> bool:
        return True

    async def cache_scope(self, category: str) -> str | None:
        return None

    async def fetch(self, category: str) -> Any:
        self.calls.append(category)
        if category in self.fail_for:
            raise ConnectionError("offline")
        return dict(RAW_SCHEDULE, country=category)

    def parse(self, raw: Any, category: str) -> TvSchedule:
        return TvSchedule.model_validate(raw)


class ExplodingChain:
    section = "broken"
    categories = ["x"]
    default_category = "x"
    ttl = timedelta(seconds=5)

    async def resolve(self, category=None, force_refresh=False):
        raise RuntimeError("chain bug")


def tv_chain(cache, limiter, provider, ttl=timedelta(minutes=15)) -> SourceChain:
    return SourceChain(
        section="tv",
        providers=[provider],
        demo=TvDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=ttl,
        categories=["US", "GB"],
    )


def test_interval_is_smallest_ttl(cache, limiter):
    scheduler = RefreshScheduler()
    assert scheduler.interval == DEFAULT_INTERVAL

    scheduler.register(tv_chain(cache, limiter, CountingProvider()))
    scheduler.register(
        SourceChain(
            section="crypto",
            providers=[],
            demo=TvDemoProvider(),
            cache=cache,
            rate_limiter=limiter,
            ttl=timedelta(minutes=1),
        )
    )
    assert scheduler.interval == timedelta(minutes=1)


def test_interval_override(cache, limiter):
    scheduler = RefreshScheduler(interval=timedelta(seconds=30))
    scheduler.register(tv_chain(cache, limiter, CountingProvider()))
    assert scheduler.interval == timedelta(seconds=30)


async def test_refresh_now_resolves_every_registered_category(cache, limiter):
    provider = CountingProvider()
    scheduler = RefreshScheduler()
    scheduler.register(tv_chain(cache, limiter, provider))

    first = await scheduler.refresh_now()
    second = await scheduler.refresh_now()

    assert set(first) == {("tv", "US"), ("tv", "GB")}
    assert all(e.provenance is Provenance.LIVE for e in second.values())
    # every cycle goes to the providers even though the cache is still fresh
    assert provider.calls == ["US", "GB", "US", "GB"]


async def test_register_subset_of_categories(cache, limiter):
    provider = CountingProvider()
    scheduler = RefreshScheduler()
    scheduler.register(tv_chain(cache, limiter, provider), categories=["GB"])

    results = await scheduler.refresh_now()

    assert list(results) == [("tv", "GB")]


async def test_subscribers_receive_each_envelope(cache, limiter):
    scheduler = RefreshScheduler()
    scheduler.register(tv_chain(cache, limiter, CountingProvider(fail_for={"GB"})))
    seen_sync: list[tuple[str, Provenance]] = []
    seen_async: list[str] = []

    def on_sync(category, envelope):
        seen_sync.append((category, envelope.provenance))

    async def on_async(category, envelope):
        seen_async.append(category)

    scheduler.subscribe(on_sync)
    scheduler.subscribe(on_async)
    try:
        await scheduler.refresh_now()
    finally:
        scheduler.shutdown()

    assert seen_sync == [("US", Provenance.LIVE), ("GB", Provenance.DEMO)]
    assert seen_async == ["US", "GB"]


async def test_failing_subscriber_does_not_stop_others(cache, limiter):
    scheduler = RefreshScheduler()
    scheduler.register(tv_chain(cache, limiter, CountingProvider()))
    received: list[str] = []

    def broken(category, envelope):
        raise ValueError("render failed")

    async def broken_async(category, envelope):
        raise RuntimeError("render failed")

    scheduler.subscribe(broken)
    scheduler.subscribe(broken_async)
    scheduler.subscribe(lambda category, envelope: received.append(category))
    try:
        results = await scheduler.refresh_now()
    finally:
        scheduler.shutdown()

    assert len(results) == 2
    assert received == ["US", "GB"]


async def test_failing_chain_does_not_stop_others(cache, limiter):
    scheduler = RefreshScheduler()
    scheduler.register(ExplodingChain())
    scheduler.register(tv_chain(cache, limiter, CountingProvider()))

    results = await scheduler.refresh_now()

    assert set(results) == {("tv", "US"), ("tv", "GB")}


async def test_timer_follows_subscribers():
    scheduler = RefreshScheduler(interval=timedelta(minutes=5))
    assert not scheduler.is_running()

    unsubscribe_a = scheduler.subscribe(lambda c, e: None)
    assert scheduler.is_running()
    unsubscribe_b = scheduler.subscribe(lambda c, e: None)
    assert scheduler.subscriber_count == 2

    unsubscribe_a()
    assert scheduler.is_running()
    unsubscribe_b()
    assert not scheduler.is_running()

    # unsubscribing twice is harmless
    unsubscribe_b()
    assert scheduler.subscriber_count == 0


async def test_start_and_stop_are_idempotent():
    scheduler = RefreshScheduler(interval=timedelta(minutes=5))
    scheduler.start()
    scheduler.start()
    assert scheduler.is_running()

    scheduler.stop()
    scheduler.stop()
    assert not scheduler.is_running()

    # a fresh timer can be created after teardown
    scheduler.start()
    assert scheduler.is_running()
    scheduler.shutdown()
    assert not scheduler.is_running()


async def test_refresh_job_runs_a_cycle(cache, limiter):
    provider = CountingProvider()
    scheduler = RefreshScheduler()
    scheduler.register(tv_chain(cache, limiter, provider))

    await scheduler.refresh_job()

    assert provider.calls == ["US", "GB"]
