"""
Default location used when geolocation is unavailable.
"""

from typing import Any

from teletext.datasource.base import DemoProvider
from teletext.datasource.geo.ipapi import GeoLocation

DEFAULT_LOCATION = {
    "city": "LONDON",
    "lat": 51.5074,
    "lon": -0.1278,
    "country": "UK",
    "is_default": True,
}


class GeoDemoProvider(DemoProvider[GeoLocation]):
    payload_model = GeoLocation

    def fixture(self, category: str) -> Any:
        return DEFAULT_LOCATION

    def parse(self, raw: Any, category: str) -> GeoLocation:
        return GeoLocation(**raw)
