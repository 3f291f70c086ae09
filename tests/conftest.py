from datetime import datetime, timedelta

import pytest

from teletext.datastore.kv import MemoryKeyValueStore
from teletext.services.cache import PersistentCache
from teletext.services.client import ResilientFetcher
from teletext.services.rate_limiter import RateLimiter

START = datetime(2024, 1, 15, 12, 0, 0)


class FakeClock:
    """Frozen wall clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def cache(store, clock) -> PersistentCache:
    return PersistentCache(store, clock=clock)


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
async def fetcher(cache, sleeper):
    fetcher = ResilientFetcher(cache, sleep=sleeper)
    yield fetcher
    await fetcher.close()
