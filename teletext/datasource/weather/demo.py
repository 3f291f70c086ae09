"""
Demo London forecast.
"""

from typing import Any

from teletext.datasource.base import DemoProvider
from teletext.datasource.weather.models import WeatherReport, build_report

DEMO_FORECAST = {
    "latitude": 51.5074,
    "longitude": -0.1278,
    "timezone": "Europe/London",
    "current": {
        "temperature_2m": 12.0,
        "weather_code": 3,
        "relative_humidity_2m": 81,
        "wind_speed_10m": 14.0,
    },
    "daily": {
        "time": ["1999-12-31", "2000-01-01", "2000-01-02", "2000-01-03", "2000-01-04"],
        "temperature_2m_max": [13.0, 11.0, 9.0, 10.0, 12.0],
        "temperature_2m_min": [7.0, 5.0, 3.0, 4.0, 6.0],
        "weather_code": [3, 61, 0, 2, 80],
    },
}

DEMO_LOCATION = "LONDON, UK"


class WeatherDemoProvider(DemoProvider[WeatherReport]):
    payload_model = WeatherReport

    def fixture(self, category: str) -> Any:
        return DEMO_FORECAST

    def parse(self, raw: Any, category: str) -> WeatherReport:
        return build_report(raw, DEMO_LOCATION)
