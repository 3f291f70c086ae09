"""
Weather payload models and WMO weather code helpers.
"""

from typing import Any

from pydantic import BaseModel, Field

# WMO weather interpretation codes -> (condition, icon)
WEATHER_CODES: dict[int, tuple[str, str]] = {
    0: ("CLEAR SKY", "sunny"),
    1: ("MAINLY CLEAR", "sunny"),
    2: ("PARTLY CLOUDY", "partlyCloudy"),
    3: ("OVERCAST", "cloudy"),
    45: ("FOG", "foggy"),
    48: ("DEPOSITING RIME FOG", "foggy"),
    51: ("LIGHT DRIZZLE", "rainy"),
    53: ("MODERATE DRIZZLE", "rainy"),
    55: ("DENSE DRIZZLE", "rainy"),
    56: ("LIGHT FREEZING DRIZZLE", "rainy"),
    57: ("DENSE FREEZING DRIZZLE", "rainy"),
    61: ("SLIGHT RAIN", "rainy"),
    63: ("MODERATE RAIN", "rainy"),
    65: ("HEAVY RAIN", "rainy"),
    66: ("LIGHT FREEZING RAIN", "rainy"),
    67: ("HEAVY FREEZING RAIN", "rainy"),
    71: ("SLIGHT SNOW", "snowy"),
    73: ("MODERATE SNOW", "snowy"),
    75: ("HEAVY SNOW", "snowy"),
    77: ("SNOW GRAINS", "snowy"),
    80: ("SLIGHT RAIN SHOWERS", "rainy"),
    81: ("MODERATE RAIN SHOWERS", "rainy"),
    82: ("VIOLENT RAIN SHOWERS", "rainy"),
    85: ("SLIGHT SNOW SHOWERS", "snowy"),
    86: ("HEAVY SNOW SHOWERS", "snowy"),
    95: ("THUNDERSTORM", "stormy"),
    96: ("THUNDERSTORM WITH SLIGHT HAIL", "stormy"),
    99: ("THUNDERSTORM WITH HEAVY HAIL", "stormy"),
}

UNKNOWN_WEATHER = ("UNKNOWN", "cloudy")


def weather_condition(code: Any) -> tuple[str, str]:
    """Condition text and icon name for a WMO code."""
    return WEATHER_CODES.get(code, UNKNOWN_WEATHER)


def convert_temperature(celsius: float, unit: str = "celsius") -> int:
    if unit == "fahrenheit":
        return round(celsius * 9 / 5 + 32)
    return round(celsius)


def format_temperature(temp: float, unit: str = "celsius") -> str:
    symbol = "°F" if unit == "fahrenheit" else "°C"
    return f"{round(temp)}{symbol}"


class CurrentWeather(BaseModel):
    """Conditions right now."""

    temperature: float | None = None
    condition: str = UNKNOWN_WEATHER[0]
    icon: str = UNKNOWN_WEATHER[1]
    humidity: float | None = None
    wind_speed: float | None = None
    weather_code: int | None = None


class DailyForecast(BaseModel):
    """One day of the forecast."""

    date: str
    high: float | None = None
    low: float | None = None
    condition: str = UNKNOWN_WEATHER[0]
    icon: str = UNKNOWN_WEATHER[1]
    weather_code: int | None = None


class WeatherReport(BaseModel):
    """Current conditions and the next days for one location."""

    location: str = ""
    lat: float | None = None
    lon: float | None = None
    timezone: str | None = None
    current: CurrentWeather
    forecast: list[DailyForecast] = Field(default_factory=list)


def build_report(raw: dict[str, Any], location: str) -> WeatherReport:
    """Turn an Open-Meteo forecast response into a WeatherReport."""
    current = raw.get("current") or {}
    condition, icon = weather_condition(current.get("weather_code"))

    daily = raw.get("daily") or {}
    codes = daily.get("weather_code") or []
    highs = daily.get("temperature_2m_max") or []
    lows = daily.get("temperature_2m_min") or []

    def at(values: list, index: int) -> Any:
        return values[index] if index < len(values) else None

    forecast = []
    for i, date in enumerate(daily.get("time") or []):
        day_condition, day_icon = weather_condition(at(codes, i))
        forecast.append(
            DailyForecast(
                date=date,
                high=at(highs, i),
                low=at(lows, i),
                condition=day_condition,
                icon=day_icon,
                weather_code=at(codes, i),
            )
        )

    return WeatherReport(
        location=location,
        lat=raw.get("latitude"),
        lon=raw.get("longitude"),
        timezone=raw.get("timezone"),
        current=CurrentWeather(
            temperature=current.get("temperature_2m"),
            condition=condition,
            icon=icon,
            humidity=current.get("relative_humidity_2m"),
            wind_speed=current.get("wind_speed_10m"),
            weather_code=current.get("weather_code"),
        ),
        forecast=forecast,
    )
