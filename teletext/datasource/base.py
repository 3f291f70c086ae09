"""
Provider adapter interface.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from teletext.services.client import FetchOptions, ResilientFetcher
from teletext.services.errors import ErrorKind, FetchError
from teletext.services.rate_limiter import RateLimiter

T = TypeVar("T", bound=BaseModel)


class ProviderAdapter(ABC, Generic[T]):
    """
    Abstract base class for all content providers.

    All providers should:
    - Use ResilientFetcher for HTTP requests (retries, timeouts)
    - Raise FetchError from ``fetch`` on failure
    - Turn the raw JSON into the section's pydantic payload in ``parse``
    """

    SERVICE_ID: ClassVar[str]
    payload_model: ClassVar[type[BaseModel]]

    def __init__(
        self,
        fetcher: ResilientFetcher | None = None,
        rate_limiter: RateLimiter | None = None,
        options: FetchOptions | None = None,
    ):
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.options = options

    @property
    def service_id(self) -> str:
        """Unique identifier for this provider."""
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        """Check if the provider has what it needs (e.g. an API key)."""
        return True

    async def cache_scope(self, category: str) -> str | None:
        """
        Extra cache key part for data that depends on more than the category.

        Dated or location-bound payloads return their date or coordinates so
        each scope gets its own record. None keeps one record per category.
        """
        return None

    @abstractmethod
    async def fetch(self, category: str) -> Any:
        """Fetch the raw payload for a category."""
        ...

    @abstractmethod
    def parse(self, raw: Any, category: str) -> T:
        """Turn a raw payload into the section's model."""
        ...

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        if self.fetcher is None:
            raise FetchError(
                ErrorKind.UNKNOWN,
                f"No fetcher configured for '{self.service_id}'",
                retryable=False,
                service_id=self.service_id,
            )

        options = self.options or self.fetcher.options
        result = await self.fetcher.fetch(
            url,
            service_id=self.service_id,
            params=params,
            headers=headers,
            max_retries=options.max_retries,
            timeout=options.timeout,
            base_delay=options.base_delay,
            rate_limiter=self.rate_limiter,
        )
        return result.data

    def _invalid(self, message: str) -> FetchError:
        return FetchError(
            ErrorKind.VALIDATION, message, retryable=False, service_id=self.service_id
        )

    def _malformed(self, message: str) -> FetchError:
        return FetchError(
            ErrorKind.PARSE, message, retryable=False, service_id=self.service_id
        )


class DemoProvider(ProviderAdapter[T]):
    """
    Null provider serving deterministic fixtures.

    Satisfies the provider interface so the chain treats demo data like any
    other source. Implementations must not touch the network or the clock.
    """

    SERVICE_ID = "demo"

    async def fetch(self, category: str) -> Any:
        return self.fixture(category)

    @abstractmethod
    def fixture(self, category: str) -> Any:
        """Static raw data for a category."""
        ...
