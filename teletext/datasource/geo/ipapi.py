"""
IP-API geolocation provider.

API Documentation: https://ip-api.com/docs/api:json
Free tier is HTTP only, 45 requests/minute. Location rarely changes, so the
section caches aggressively (24 hours).
"""

from typing import Any

from pydantic import BaseModel, field_validator

from teletext.datasource.base import ProviderAdapter


class GeoLocation(BaseModel):
    """Approximate location of the viewer."""

    city: str
    lat: float
    lon: float
    country: str = ""
    region: str = ""
    timezone: str | None = None
    isp: str | None = None
    is_default: bool = False

    @field_validator("city")
    @classmethod
    def city_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("city must not be blank")
        return value.upper()

    @field_validator("lat")
    @classmethod
    def lat_in_range(cls, value: float) -> float:
        if not -90 <= value <= 90:
            raise ValueError("latitude out of range")
        return value

    @field_validator("lon")
    @classmethod
    def lon_in_range(cls, value: float) -> float:
        if not -180 <= value <= 180:
            raise ValueError("longitude out of range")
        return value

    def display_name(self) -> str:
        if self.country and self.country != self.city:
            return f"{self.city}, {self.country}"
        return self.city


class IpApiProvider(ProviderAdapter[GeoLocation]):
    """Locate the caller from their IP address."""

    BASE_URL = "http://ip-api.com/json"
    SERVICE_ID = "ipapi"
    payload_model = GeoLocation

    async def fetch(self, category: str) -> Any:
        return await self._get_json(self.BASE_URL)

    def parse(self, raw: Any, category: str) -> GeoLocation:
        if not isinstance(raw, dict):
            raise self._malformed("IP-API response is not an object")
        if raw.get("status") == "fail":
            raise self._invalid(f"IP-API lookup failed: {raw.get('message', 'unknown')}")
        if raw.get("lat") is None or raw.get("lon") is None:
            raise self._invalid("IP-API response has no coordinates")

        try:
            return GeoLocation(
                city=raw.get("city") or "UNKNOWN",
                lat=raw["lat"],
                lon=raw["lon"],
                country=(raw.get("countryCode") or raw.get("country") or "").upper(),
                region=(raw.get("regionName") or raw.get("region") or "").upper(),
                timezone=raw.get("timezone"),
                isp=raw.get("isp"),
            )
        except ValueError as e:
            raise self._invalid(f"Invalid location: {e}") from e
