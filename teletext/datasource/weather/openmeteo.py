"""
Open-Meteo forecast provider.

API Documentation: https://open-meteo.com/en/docs
Free, no API key required for non-commercial use (10,000 calls/day).
Forecasts depend on the viewer's location, so cached reports are scoped by
rounded coordinates.
"""

from typing import Any, Awaitable, Callable

from teletext.datasource.base import ProviderAdapter
from teletext.datasource.geo import DEFAULT_LOCATION, GeoLocation
from teletext.datasource.weather.models import WeatherReport, build_report
from teletext.services.client import FetchOptions, ResilientFetcher
from teletext.services.rate_limiter import RateLimiter

Locator = Callable[[], Awaitable[GeoLocation]]

CURRENT_FIELDS = "temperature_2m,weather_code,relative_humidity_2m,wind_speed_10m"
DAILY_FIELDS = "temperature_2m_max,temperature_2m_min,weather_code"
FORECAST_DAYS = 5


async def default_location() -> GeoLocation:
    return GeoLocation(**DEFAULT_LOCATION)


class OpenMeteoProvider(ProviderAdapter[WeatherReport]):
    """Current conditions and a five day forecast for the viewer's location."""

    BASE_URL = "https://api.open-meteo.com/v1/forecast"
    SERVICE_ID = "openmeteo"
    payload_model = WeatherReport

    def __init__(
        self,
        fetcher: ResilientFetcher | None = None,
        rate_limiter: RateLimiter | None = None,
        options: FetchOptions | None = None,
        locate: Locator | None = None,
    ):
        super().__init__(fetcher, rate_limiter, options)
        self._locate = locate or default_location

    async def cache_scope(self, category: str) -> str | None:
        location = await self._locate()
        return f"{location.lat:.2f}_{location.lon:.2f}"

    async def fetch(self, category: str) -> Any:
        location = await self._locate()
        raw = await self._get_json(
            self.BASE_URL,
            params={
                "latitude": location.lat,
                "longitude": location.lon,
                "current": CURRENT_FIELDS,
                "daily": DAILY_FIELDS,
                "forecast_days": FORECAST_DAYS,
                "timezone": "auto",
            },
        )
        if isinstance(raw, dict):
            raw = dict(raw, location=location.display_name())
        return raw

    def parse(self, raw: Any, category: str) -> WeatherReport:
        if not isinstance(raw, dict):
            raise self._malformed("Open-Meteo response is not an object")
        if raw.get("error"):
            raise self._invalid(f"Open-Meteo error: {raw.get('reason', 'unknown')}")
        if not isinstance(raw.get("current"), dict):
            raise self._malformed("Open-Meteo response has no current conditions")

        return build_report(raw, raw.get("location") or "")
