"""
Weather providers: Open-Meteo -> demo forecast.
"""

from teletext.datasource.weather.demo import WeatherDemoProvider
from teletext.datasource.weather.models import (
    CurrentWeather,
    DailyForecast,
    WeatherReport,
    convert_temperature,
    format_temperature,
    weather_condition,
)
from teletext.datasource.weather.openmeteo import OpenMeteoProvider

__all__ = [
    "CurrentWeather",
    "DailyForecast",
    "OpenMeteoProvider",
    "WeatherDemoProvider",
    "WeatherReport",
    "convert_temperature",
    "format_temperature",
    "weather_condition",
]
