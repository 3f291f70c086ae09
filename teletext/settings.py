import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Provider credentials
    newsdata_api_key: str = Field(default="", alias="NEWSDATA_API_KEY")
    coingecko_api_key: str = Field(default="", alias="COINGECKO_API_KEY")

    # Source configuration
    sources_config_path: str | None = Field(default=None, alias="SOURCES_CONFIG_PATH")
    tv_country: str = Field(default="US", alias="TV_COUNTRY")

    # Fetch defaults (overridden per section by the sources config)
    default_timeout_seconds: float = Field(default=10.0, alias="DEFAULT_TIMEOUT_SECONDS")
    default_max_retries: int = Field(default=3, alias="DEFAULT_MAX_RETRIES")
    retry_base_delay_seconds: float = Field(
        default=1.0, alias="RETRY_BASE_DELAY_SECONDS"
    )
    http_debug: bool = Field(default=False, alias="HTTP_DEBUG")

    # Refresh scheduling; None uses the freshest section TTL
    refresh_interval_seconds: float | None = Field(
        default=None, alias="REFRESH_INTERVAL_SECONDS"
    )

    # Cache storage
    cache_database_url: str = Field(
        default="sqlite+aiosqlite:///./teletext_cache.db", alias="CACHE_DATABASE_URL"
    )
    cache_key_prefix: str = Field(default="teletext_cache_", alias="CACHE_KEY_PREFIX")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")


def load_settings() -> Settings:
    """Build settings from the process environment."""
    return Settings.model_validate(dict(os.environ))


global_settings = load_settings()
