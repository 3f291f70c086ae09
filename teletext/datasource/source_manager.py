"""
Source Manager - loads section configuration and builds source chains.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator

from teletext.datasource.base import DemoProvider, ProviderAdapter
from teletext.datasource.chain import SourceChain
from teletext.datasource.crypto import (
    CoinGeckoProvider,
    CoinloreProvider,
    CryptoDemoProvider,
)
from teletext.datasource.geo import (
    DEFAULT_LOCATION,
    GeoDemoProvider,
    GeoLocation,
    IpApiProvider,
)
from teletext.datasource.news import (
    NewsDataProvider,
    NewsDemoProvider,
    Rss2JsonProvider,
)
from teletext.datasource.tv import TvDemoProvider, TvMazeProvider
from teletext.datasource.weather import OpenMeteoProvider, WeatherDemoProvider
from teletext.services.cache import PersistentCache
from teletext.services.client import FetchOptions, ResilientFetcher
from teletext.services.errors import ConfigError
from teletext.services.rate_limiter import (
    DailyCounterPolicy,
    RateLimiter,
    RatePolicy,
    SlidingWindowPolicy,
)
from teletext.settings import Settings

DEFAULT_CONFIG_PATH = Path(__file__).with_name("sources.yaml")


def seconds(value: float | None) -> timedelta | None:
    return timedelta(seconds=value) if value is not None else None


PROVIDERS: dict[str, type[ProviderAdapter]] = {
    Rss2JsonProvider.SERVICE_ID: Rss2JsonProvider,
    NewsDataProvider.SERVICE_ID: NewsDataProvider,
    TvMazeProvider.SERVICE_ID: TvMazeProvider,
    CoinloreProvider.SERVICE_ID: CoinloreProvider,
    CoinGeckoProvider.SERVICE_ID: CoinGeckoProvider,
    IpApiProvider.SERVICE_ID: IpApiProvider,
    OpenMeteoProvider.SERVICE_ID: OpenMeteoProvider,
}

DEMO_PROVIDERS: dict[str, type[DemoProvider]] = {
    "news": NewsDemoProvider,
    "tv": TvDemoProvider,
    "crypto": CryptoDemoProvider,
    "geo": GeoDemoProvider,
    "weather": WeatherDemoProvider,
}


class RateLimitConfig(BaseModel):
    """Either a sliding window or a daily budget."""

    window_seconds: float | None = Field(default=None, gt=0)
    max_per_window: int | None = Field(default=None, ge=1)
    max_per_day: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def one_policy(self) -> "RateLimitConfig":
        sliding = self.window_seconds is not None or self.max_per_window is not None
        daily = self.max_per_day is not None
        if sliding == daily:
            raise ValueError(
                "rate limit needs either window_seconds+max_per_window or max_per_day"
            )
        if sliding and (self.window_seconds is None or self.max_per_window is None):
            raise ValueError("sliding window needs window_seconds and max_per_window")
        return self

    def to_policy(self) -> RatePolicy:
        if self.max_per_day is not None:
            return DailyCounterPolicy(self.max_per_day)
        return SlidingWindowPolicy(
            timedelta(seconds=self.window_seconds), self.max_per_window
        )


class SectionConfig(BaseModel):
    """Configuration for one content section."""

    providers: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    default_category: str | None = None
    enabled: bool = True
    ttl_seconds: float | None = Field(default=300, gt=0)
    max_retries: int = Field(default=3, ge=1)
    timeout_seconds: float = Field(default=10, gt=0)
    base_delay_seconds: float = Field(default=1, ge=0)
    rate_limits: dict[str, RateLimitConfig] = Field(default_factory=dict)

    @property
    def ttl(self) -> timedelta | None:
        return seconds(self.ttl_seconds)

    def fetch_options(self) -> FetchOptions:
        return FetchOptions(
            max_retries=self.max_retries,
            timeout=timedelta(seconds=self.timeout_seconds),
            base_delay=timedelta(seconds=self.base_delay_seconds),
        )


class SourcesConfig(BaseModel):
    """Overall source configuration."""

    version: str = "1.0"
    sections: dict[str, SectionConfig] = Field(default_factory=dict)


class SourceManager:
    """
    Loads sources.yaml and wires providers, rate policies and chains.

    Usage:
        manager = SourceManager(settings=global_settings)
        chains = manager.build_chains(fetcher, cache, rate_limiter)
        envelope = await chains["news"].resolve("world")
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        settings: Settings | None = None,
        config: SourcesConfig | None = None,
    ):
        self.settings = settings or Settings()
        path = config_path or self.settings.sources_config_path or DEFAULT_CONFIG_PATH
        self.config_path = Path(path)
        self.config = config or self._load_config()

    def _load_config(self) -> SourcesConfig:
        """Load YAML config; a missing file yields the bundled defaults."""
        path = self.config_path
        if not path.exists():
            logger.warning(f"Source config not found: {path}, using bundled defaults")
            path = DEFAULT_CONFIG_PATH

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            config = SourcesConfig(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigError(f"Invalid source config {path}: {e}") from e

        for name, section in config.sections.items():
            if name not in DEMO_PROVIDERS:
                raise ConfigError(f"Unknown section '{name}' in {path}")
            unknown = [p for p in section.providers if p not in PROVIDERS]
            if unknown:
                raise ConfigError(f"Unknown providers for '{name}': {unknown}")
            if len(set(section.providers)) != len(section.providers):
                raise ConfigError(f"Duplicate providers for '{name}': {section.providers}")

        logger.info(f"Loaded source config from {path}")
        return config

    def reload(self) -> None:
        logger.info("Reloading source configuration...")
        self.config = self._load_config()

    def enabled_sections(self) -> dict[str, SectionConfig]:
        return {
            name: section
            for name, section in self.config.sections.items()
            if section.enabled
        }

    def _make_provider(
        self,
        provider_id: str,
        fetcher: ResilientFetcher,
        rate_limiter: RateLimiter,
        options: FetchOptions,
        clock: Callable[[], datetime],
        chains: dict[str, SourceChain],
    ) -> ProviderAdapter:
        cls = PROVIDERS[provider_id]
        kwargs: dict[str, Any] = {
            "fetcher": fetcher,
            "rate_limiter": rate_limiter,
            "options": options,
        }
        if cls is NewsDataProvider:
            kwargs["api_key"] = self.settings.newsdata_api_key
        elif cls is CoinGeckoProvider:
            kwargs["api_key"] = self.settings.coingecko_api_key
        elif cls is TvMazeProvider:
            kwargs["clock"] = clock
        elif cls is OpenMeteoProvider:
            kwargs["locate"] = self._locator(chains)
        return cls(**kwargs)

    @staticmethod
    def _locator(chains: dict[str, SourceChain]):
        """Viewer location from the geo chain, London when geo is disabled."""

        async def locate() -> GeoLocation:
            geo = chains.get("geo")
            if geo is None:
                return GeoLocation(**DEFAULT_LOCATION)
            envelope = await geo.resolve()
            return envelope.payload

        return locate

    def build_chains(
        self,
        fetcher: ResilientFetcher,
        cache: PersistentCache,
        rate_limiter: RateLimiter,
    ) -> dict[str, SourceChain]:
        """Create one SourceChain per enabled section."""
        chains: dict[str, SourceChain] = {}

        for name, section in self.enabled_sections().items():
            for provider_id, limit in section.rate_limits.items():
                rate_limiter.configure(provider_id, limit.to_policy())

            options = section.fetch_options()
            providers = [
                self._make_provider(
                    pid, fetcher, rate_limiter, options, cache.now, chains
                )
                for pid in section.providers
            ]

            categories = list(section.categories)
            default_category = section.default_category
            if name == "tv" and self.settings.tv_country:
                country = self.settings.tv_country.upper()
                if country not in categories:
                    categories.append(country)
                default_category = country

            chains[name] = SourceChain(
                section=name,
                providers=providers,
                demo=DEMO_PROVIDERS[name](),
                cache=cache,
                rate_limiter=rate_limiter,
                ttl=section.ttl,
                categories=categories,
                default_category=default_category,
            )
            logger.debug(
                f"Built chain '{name}': {' -> '.join(section.providers + ['demo'])}"
            )

        return chains

    def get_status(self) -> dict[str, Any]:
        return {
            "config_path": str(self.config_path),
            "config_version": self.config.version,
            "sections": {
                name: {
                    "enabled": section.enabled,
                    "providers": section.providers,
                    "categories": section.categories,
                    "ttl_seconds": section.ttl_seconds,
                }
                for name, section in self.config.sections.items()
            },
        }
