import asyncio
from datetime import datetime, timedelta
from typing import Any

import httpx
import respx
from httpx import Response

from teletext.datasource.base import ProviderAdapter
from teletext.datasource.chain import SourceChain
from teletext.datasource.crypto import (
    CoinGeckoProvider,
    CoinloreProvider,
    CryptoBoard,
    CryptoDemoProvider,
    CryptoQuote,
)
from teletext.datasource.geo import DEFAULT_LOCATION, GeoLocation
from teletext.datasource.models import Provenance
from teletext.datasource.news import (
    NewsDataProvider,
    NewsDemoProvider,
    NewsPage,
    Rss2JsonProvider,
)
from teletext.datasource.tv import TvDemoProvider, TvMazeProvider
from teletext.datasource.weather import OpenMeteoProvider, WeatherDemoProvider
from teletext.services.errors import ErrorKind, FetchError
from teletext.services.rate_limiter import DailyCounterPolicy, SlidingWindowPolicy

TTL = timedelta(minutes=5)

BOARD = CryptoBoard(
    cryptos=[CryptoQuote(id="90", symbol="BTC", name="Bitcoin", price=50000.0)]
)
RAW_BOARD = {"cryptos": [{"id": "1", "symbol": "ETH", "name": "Ethereum", "price": 3000.0}]}


class ScriptedProvider(ProviderAdapter[CryptoBoard]):
    """Provider returning (or raising) a scripted sequence of outcomes."""

    payload_model = CryptoBoard

    def __init__(self, name: str, *outcomes: Any, delay: float = 0.0):
        super().__init__()
        self.name = name
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls = 0

    @property
    def service_id(self) -> str:
        return self.name

    async def fetch(self, category: str) -> Any:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def parse(self, raw: Any, category: str) -> CryptoBoard:
        return CryptoBoard.model_validate(raw)


def crypto_chain(cache, limiter, *providers, **kwargs) -> SourceChain:
    return SourceChain(
        section="crypto",
        providers=list(providers),
        demo=CryptoDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=TTL,
        categories=["prices"],
        **kwargs,
    )


async def seed(cache, key: str, board: CryptoBoard, source: str = "coinlore") -> None:
    await cache.set(key, {"source": source, "data": board.model_dump(mode="json")}, TTL)


@respx.mock
async def test_timeouts_then_parse_error_serve_stale_cache(
    fetcher, cache, limiter, clock, sleeper
):
    coinlore = respx.get(host="api.coinlore.net").mock(side_effect=httpx.ReadTimeout("slow"))
    coingecko = respx.get(host="api.coingecko.com").mock(
        return_value=Response(200, json={"error": "maintenance"})
    )
    start = clock()
    await seed(cache, "crypto_prices", BOARD)
    clock.advance(minutes=10)

    chain = crypto_chain(
        cache,
        limiter,
        CoinloreProvider(fetcher, limiter),
        CoinGeckoProvider(fetcher, limiter),
    )
    envelope = await chain.resolve("prices")

    assert envelope.provenance is Provenance.STALE
    assert envelope.payload == BOARD
    assert envelope.source == "coinlore"
    assert envelope.source_error == "CoinGecko markets response is not a list"
    assert envelope.notice == "USING CACHED DATA"
    assert envelope.fetched_at == start
    assert coinlore.call_count == 3
    assert coingecko.call_count == 1
    assert sleeper.delays == [1.0, 2.0]


@respx.mock
async def test_nothing_reachable_and_no_cache_serves_demo(fetcher, cache, limiter):
    respx.get(host="api.rss2json.com").mock(side_effect=httpx.ConnectError("offline"))

    chain = SourceChain(
        section="news",
        providers=[
            Rss2JsonProvider(fetcher, limiter),
            NewsDataProvider(fetcher, limiter, api_key=""),
        ],
        demo=NewsDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=TTL,
        categories=["top", "world"],
    )
    envelope = await chain.resolve("world")

    assert envelope.provenance is Provenance.DEMO
    assert envelope.notice == "DEMO MODE"
    assert envelope.source == "demo"
    assert isinstance(envelope.payload, NewsPage)
    assert envelope.payload.articles[0].title == "UN SECURITY COUNCIL HOLDS EMERGENCY MEETING"
    assert envelope.source_error == "offline"
    assert chain.is_demo_mode("world")
    # demo data is never written to the cache
    assert await cache.get_stale("news_world") is None


@respx.mock(assert_all_called=False)
async def test_exhausted_daily_budget_serves_cache_without_network(
    fetcher, cache, limiter
):
    route = respx.get(host="api.coinlore.net").mock(return_value=Response(200, json={}))
    limiter.configure("coinlore", DailyCounterPolicy(1))
    limiter.record("coinlore")
    await seed(cache, "crypto_prices", BOARD)

    chain = crypto_chain(cache, limiter, CoinloreProvider(fetcher, limiter))
    envelope = await chain.resolve("prices")

    assert envelope.provenance is Provenance.RATE_LIMITED
    assert envelope.payload == BOARD
    assert envelope.notice == "USING CACHED DATA - REFRESH IN 720M"
    assert not route.called


async def test_rate_limited_without_cache_serves_demo(cache, limiter):
    limiter.configure("primary", SlidingWindowPolicy(timedelta(seconds=30), 1))
    limiter.record("primary")
    primary = ScriptedProvider("primary", RAW_BOARD)

    envelope = await crypto_chain(cache, limiter, primary).resolve("prices")

    assert envelope.provenance is Provenance.DEMO
    assert envelope.notice == "USING CACHED DATA - REFRESH IN 30S"
    assert primary.calls == 0


async def test_live_result_is_cached_and_reused(cache, limiter, clock):
    primary = ScriptedProvider("primary", RAW_BOARD)
    chain = crypto_chain(cache, limiter, primary)

    start = clock()
    first = await chain.resolve("prices")
    clock.advance(minutes=2)
    second = await chain.resolve("prices")

    assert first.provenance is Provenance.LIVE
    assert first.source == "primary"
    assert second.provenance is Provenance.LIVE
    assert second.fetched_at == start
    assert second.payload == first.payload
    assert primary.calls == 1
    assert await chain.has_valid_cache("prices")


async def test_force_refresh_bypasses_fresh_cache(cache, limiter):
    primary = ScriptedProvider("primary", RAW_BOARD)
    chain = crypto_chain(cache, limiter, primary)

    await chain.resolve("prices")
    await chain.resolve("prices", force_refresh=True)

    assert primary.calls == 2


async def test_providers_tried_in_order(cache, limiter):
    first = ScriptedProvider("first", FetchError(ErrorKind.SERVER, "down"))
    second = ScriptedProvider("second", RAW_BOARD)
    third = ScriptedProvider("third", RAW_BOARD)

    envelope = await crypto_chain(cache, limiter, first, second, third).resolve()

    assert envelope.provenance is Provenance.LIVE
    assert envelope.source == "second"
    assert (first.calls, second.calls, third.calls) == (1, 1, 0)


async def test_unconfigured_provider_is_skipped(cache, limiter):
    unconfigured = NewsDataProvider(api_key="")
    assert not unconfigured.is_configured()

    chain = SourceChain(
        section="news",
        providers=[unconfigured],
        demo=NewsDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=TTL,
    )
    envelope = await chain.resolve("top")
    assert envelope.provenance is Provenance.DEMO
    assert envelope.source_error == "No provider available"


async def test_never_raises_for_unexpected_errors(cache, limiter):
    broken = ScriptedProvider("broken", RuntimeError("bug"))
    garbage = ScriptedProvider("garbage", {"cryptos": "not a list"})

    envelope = await crypto_chain(cache, limiter, broken, garbage).resolve("prices")

    assert envelope.provenance is Provenance.DEMO
    assert len(envelope.payload.cryptos) == 7
    assert envelope.source_error.startswith("Failed to parse response")


async def test_last_error_cleared_on_success(cache, limiter):
    flaky = ScriptedProvider("flaky", FetchError(ErrorKind.NOT_FOUND, "gone"), RAW_BOARD)
    chain = crypto_chain(cache, limiter, flaky)

    await chain.resolve("prices", force_refresh=True)
    assert chain.last_error("prices") == "gone"
    assert chain.is_demo_mode("prices")

    envelope = await chain.resolve("prices", force_refresh=True)
    assert envelope.is_live
    assert chain.last_error("prices") is None
    assert not chain.is_demo_mode()


async def test_unreadable_cache_entry_is_a_miss(cache, limiter):
    await cache.set("crypto_prices", {"unexpected": "shape"}, TTL)
    primary = ScriptedProvider("primary", FetchError(ErrorKind.NETWORK, "offline"))

    envelope = await crypto_chain(cache, limiter, primary).resolve("prices")

    assert envelope.provenance is Provenance.DEMO


async def test_unknown_category_uses_default(cache, limiter):
    primary = ScriptedProvider("primary", RAW_BOARD)
    chain = crypto_chain(cache, limiter, primary)

    envelope = await chain.resolve("nonsense")

    assert envelope.category == "prices"
    assert await cache.get_stale("crypto_prices") is not None


async def test_concurrent_resolves_share_one_fetch(cache, limiter):
    slow = ScriptedProvider("slow", RAW_BOARD, delay=0.01)
    chain = crypto_chain(cache, limiter, slow)

    results = await asyncio.gather(*(chain.resolve("prices") for _ in range(5)))

    assert slow.calls == 1
    assert all(r is results[0] for r in results)


async def test_single_flight_can_be_disabled(cache, limiter):
    slow = ScriptedProvider("slow", RAW_BOARD, delay=0.01)
    chain = crypto_chain(cache, limiter, slow, single_flight=False)

    await asyncio.gather(chain.resolve("prices"), chain.resolve("prices"))

    assert slow.calls == 2


async def test_clear_cache(cache, limiter):
    chain = crypto_chain(cache, limiter, ScriptedProvider("p", RAW_BOARD))
    await chain.resolve("prices")

    assert await chain.clear_cache("prices") == 1
    assert not await chain.has_valid_cache("prices")
    await chain.resolve("prices")
    assert await chain.clear_cache() == 1


async def test_clear_cache_drops_every_scope(cache, limiter, clock):
    tvmaze = TvMazeProvider(clock=clock)
    chain = SourceChain(
        section="tv",
        providers=[tvmaze],
        demo=TvDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=TTL,
        categories=["US"],
    )
    await cache.set("tv_US_2024-01-14", {"source": "tvmaze", "data": {}}, TTL)
    await cache.set("tv_US_2024-01-15", {"source": "tvmaze", "data": {}}, TTL)
    await cache.set("tv_USA", {"source": "tvmaze", "data": {}}, TTL)

    assert await chain.has_valid_cache("US")
    assert await chain.clear_cache("US") == 2
    assert await cache.get_stale("tv_USA") is not None


@respx.mock
async def test_dated_listings_refetched_after_midnight(fetcher, cache, limiter, clock):
    route = respx.get("https://api.tvmaze.com/schedule").mock(
        return_value=Response(200, json=[])
    )
    clock.set(datetime(2024, 1, 15, 23, 55))
    chain = SourceChain(
        section="tv",
        providers=[TvMazeProvider(fetcher, limiter, clock=clock)],
        demo=TvDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=timedelta(minutes=15),
        categories=["US"],
    )

    first = await chain.resolve("US")
    clock.advance(minutes=10)
    second = await chain.resolve("US")

    assert first.payload.date == "2024-01-15"
    assert second.provenance is Provenance.LIVE
    assert second.payload.date == "2024-01-16"
    assert route.call_count == 2
    assert route.calls.last.request.url.params["date"] == "2024-01-16"
    assert await cache.get_stale("tv_US_2024-01-15") is not None


@respx.mock
async def test_previous_day_listings_never_served_as_stale(
    fetcher, cache, limiter, clock
):
    respx.get("https://api.tvmaze.com/schedule").mock(
        side_effect=httpx.ConnectError("offline")
    )
    await cache.set(
        "tv_US_2024-01-14",
        {
            "source": "tvmaze",
            "data": {"date": "2024-01-14", "country": "US", "shows": []},
        },
        TTL,
    )
    chain = SourceChain(
        section="tv",
        providers=[TvMazeProvider(fetcher, limiter, clock=clock)],
        demo=TvDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=TTL,
        categories=["US"],
    )

    envelope = await chain.resolve("US")

    assert envelope.provenance is Provenance.DEMO
    assert envelope.source_error == "offline"


async def test_forced_refresh_not_answered_by_concurrent_read(cache, limiter):
    slow = ScriptedProvider("slow", RAW_BOARD, delay=0.01)
    chain = crypto_chain(cache, limiter, slow)

    read, forced = await asyncio.gather(
        chain.resolve("prices"), chain.resolve("prices", force_refresh=True)
    )

    assert slow.calls == 2
    assert read.is_live and forced.is_live
    assert read is not forced


async def test_concurrent_forced_refreshes_share_one_fetch(cache, limiter):
    slow = ScriptedProvider("slow", RAW_BOARD, delay=0.01)
    chain = crypto_chain(cache, limiter, slow)

    await asyncio.gather(
        chain.resolve("prices", force_refresh=True),
        chain.resolve("prices", force_refresh=True),
    )

    assert slow.calls == 1


async def test_demo_state_is_per_category(cache, limiter):
    flaky = ScriptedProvider("flaky", FetchError(ErrorKind.SERVER, "down"), RAW_BOARD)
    chain = SourceChain(
        section="crypto",
        providers=[flaky],
        demo=CryptoDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=TTL,
        categories=["prices", "movers"],
    )

    await chain.resolve("prices")
    await chain.resolve("movers")

    assert chain.is_demo_mode("prices")
    assert chain.last_error("prices") == "down"
    assert not chain.is_demo_mode("movers")
    assert chain.last_error("movers") is None


async def test_stale_and_rate_limited_results_leave_demo_mode(cache, limiter, clock):
    flaky = ScriptedProvider(
        "flaky",
        FetchError(ErrorKind.SERVER, "down"),
        RAW_BOARD,
        FetchError(ErrorKind.SERVER, "down again"),
    )
    chain = crypto_chain(cache, limiter, flaky)

    await chain.resolve("prices")
    assert chain.is_demo_mode("prices")

    await chain.resolve("prices", force_refresh=True)
    clock.advance(minutes=10)
    stale = await chain.resolve("prices")
    assert stale.provenance is Provenance.STALE
    assert not chain.is_demo_mode("prices")
    assert chain.last_error("prices") == "down again"

    limiter.configure("flaky", DailyCounterPolicy(1))
    limiter.record("flaky")
    limited = await chain.resolve("prices")
    assert limited.provenance is Provenance.RATE_LIMITED
    assert not chain.is_demo_mode("prices")
    assert chain.last_error("prices") == "Rate limit reached for 'flaky'"


@respx.mock
async def test_weather_cached_per_location(fetcher, cache, limiter):
    route = respx.get("https://api.open-meteo.com/v1/forecast").mock(
        return_value=Response(200, json={"current": {"temperature_2m": 9.0}})
    )
    locations = {"now": GeoLocation(**DEFAULT_LOCATION)}

    async def locate() -> GeoLocation:
        return locations["now"]

    chain = SourceChain(
        section="weather",
        providers=[OpenMeteoProvider(fetcher, limiter, locate=locate)],
        demo=WeatherDemoProvider(),
        cache=cache,
        rate_limiter=limiter,
        ttl=timedelta(minutes=15),
        categories=["current"],
    )

    london = await chain.resolve("current")
    locations["now"] = GeoLocation(city="Oslo", lat=59.9139, lon=10.7522, country="NO")
    oslo = await chain.resolve("current")
    again = await chain.resolve("current")

    assert route.call_count == 2
    assert (london.payload.location, oslo.payload.location) == ("LONDON, UK", "OSLO, NO")
    assert again.payload == oslo.payload
    assert await cache.get_stale("weather_current_51.51_-0.13") is not None
    assert await cache.get_stale("weather_current_59.91_10.75") is not None
