"""
TVmaze schedule provider.

API Documentation: https://www.tvmaze.com/api
Free, no API key required. Rate limit: 20 calls every 10 seconds.
"""

from datetime import datetime
from typing import Any, Callable

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from teletext.datasource.base import ProviderAdapter
from teletext.services.client import FetchOptions, ResilientFetcher
from teletext.services.rate_limiter import RateLimiter


class TvShow(BaseModel):
    """One scheduled airing."""

    id: int | None = None
    name: str
    channel: str
    airtime: str
    runtime: int = 30
    genres: list[str] = Field(default_factory=list)
    summary: str = ""


class TvSchedule(BaseModel):
    """A day's schedule for one country."""

    date: str
    country: str
    shows: list[TvShow] = Field(default_factory=list)
    total_results: int = 0


def strip_tags(value: str | None) -> str:
    if not value:
        return ""
    return BeautifulSoup(value, "html.parser").get_text().strip()


class TvMazeProvider(ProviderAdapter[TvSchedule]):
    """TV listings by country for today's date."""

    BASE_URL = "https://api.tvmaze.com"
    SERVICE_ID = "tvmaze"
    payload_model = TvSchedule

    def __init__(
        self,
        fetcher: ResilientFetcher | None = None,
        rate_limiter: RateLimiter | None = None,
        options: FetchOptions | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__(fetcher, rate_limiter, options)
        self._clock = clock

    def today(self) -> str:
        return self._clock().date().isoformat()

    async def cache_scope(self, category: str) -> str | None:
        return self.today()

    async def fetch(self, category: str) -> Any:
        return await self._get_json(
            f"{self.BASE_URL}/schedule",
            params={"country": category, "date": self.today()},
        )

    def parse(self, raw: Any, category: str) -> TvSchedule:
        if not isinstance(raw, list):
            raise self._malformed("TVmaze schedule is not a list")

        shows = []
        for item in raw:
            if not isinstance(item, dict):
                raise self._malformed("TVmaze schedule entry is not an object")
            show = item.get("show") or {}
            network = show.get("network") or show.get("webChannel") or {}
            shows.append(
                TvShow(
                    id=item.get("id"),
                    name=show.get("name") or "Unknown",
                    channel=network.get("name") or "N/A",
                    airtime=item.get("airtime") or "00:00",
                    runtime=item.get("runtime") or 30,
                    genres=show.get("genres") or [],
                    summary=strip_tags(show.get("summary")),
                )
            )

        shows.sort(key=lambda s: s.airtime)
        return TvSchedule(
            date=self.today(),
            country=category,
            shows=shows,
            total_results=len(shows),
        )
