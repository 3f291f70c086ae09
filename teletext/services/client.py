"""
ResilientFetcher - async HTTP GET with retries, timeouts and cache fallback.

One logical fetch:
1. Fresh cache hit returns immediately (no network, no rate limit check)
2. Each attempt is admitted by the source's rate limiter, bounded by a
   timeout, and classified on failure
3. Retryable failures back off linearly (base_delay * attempt)
4. On success the raw JSON is cached; when attempts are exhausted a stale
   entry is returned instead of raising
"""

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from teletext.services.cache import PersistentCache
from teletext.services.errors import ErrorKind, FetchError, classify
from teletext.services.rate_limiter import RateLimiter

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_HEADERS = {"Accept": "application/json"}


@dataclass(frozen=True)
class FetchOptions:
    """Retry and timeout settings for one logical fetch."""

    max_retries: int = 3
    timeout: timedelta = timedelta(seconds=10)
    base_delay: timedelta = timedelta(seconds=1)


@dataclass
class FetchResult:
    """Result from a resilient fetch."""

    data: Any
    from_cache: str | None = None  # 'fresh' | 'stale' | None
    is_stale: bool = False
    error: FetchError | None = None
    attempts: int = 0
    service_id: str | None = None


class ResilientFetcher:
    """
    HTTP fetcher combining cache-first reads, rate limiting, retries and
    stale fallback.

    Usage:
        fetcher = ResilientFetcher(cache)

        result = await fetcher.fetch(
            "https://api.coinlore.net/api/tickers/",
            service_id="coinlore",
            params={"start": 0, "limit": 7},
            cache_key="crypto_prices",
            ttl=timedelta(minutes=1),
        )
        if result.is_stale:
            ...
    """

    def __init__(
        self,
        cache: PersistentCache,
        options: FetchOptions | None = None,
        sleep: Sleep = asyncio.sleep,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._cache = cache
        self._options = options or FetchOptions()
        self._sleep = sleep
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def cache(self) -> PersistentCache:
        return self._cache

    @property
    def options(self) -> FetchOptions:
        return self._options

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._options.timeout.total_seconds()),
                follow_redirects=True,
            )
        return self._http_client

    async def fetch(
        self,
        url: str,
        *,
        service_id: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        cache_key: str | None = None,
        ttl: timedelta | None = None,
        max_retries: int | None = None,
        timeout: timedelta | None = None,
        base_delay: timedelta | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> FetchResult:
        """
        Fetch JSON from url.

        Args:
            url: Full URL to request
            service_id: Source identifier (rate limiting and logging)
            params: Query parameters
            headers: Additional headers
            cache_key: Cache key for the raw response; enables cache-first
                reads and stale fallback
            ttl: Freshness window; the response is cached only when both
                cache_key and ttl are given
            max_retries: Total attempts
            timeout: Per-attempt timeout
            base_delay: Backoff unit; attempt n waits base_delay * n
            rate_limiter: Limiter consulted before every attempt

        Returns:
            FetchResult with the decoded JSON body

        Raises:
            FetchError: If every attempt failed and nothing is cached
        """
        retries = max_retries if max_retries is not None else self._options.max_retries
        req_timeout = timeout or self._options.timeout
        delay = base_delay if base_delay is not None else self._options.base_delay

        # Check cache first
        if cache_key:
            cached = await self._cache.get_fresh(cache_key, ttl)
            if cached is not None:
                return FetchResult(
                    data=cached,
                    from_cache="fresh",
                    service_id=service_id,
                )

        req_headers = dict(DEFAULT_HEADERS)
        if headers:
            req_headers.update(headers)

        last_error: FetchError | None = None
        attempts = 0

        for attempt in range(1, max(1, retries) + 1):
            if rate_limiter and not rate_limiter.try_acquire(service_id):
                last_error = FetchError(
                    ErrorKind.RATE_LIMIT,
                    f"Rate limit reached for '{service_id}'",
                    retryable=False,
                    service_id=service_id,
                )
                break

            attempts = attempt
            try:
                data = await self._execute_request(
                    url=url,
                    params=params,
                    headers=req_headers,
                    timeout=req_timeout,
                    service_id=service_id,
                )
            except FetchError as e:
                last_error = e
            else:
                if cache_key and ttl:
                    await self._cache.set(cache_key, data, ttl)
                return FetchResult(data=data, attempts=attempt, service_id=service_id)

            logger.warning(
                f"{service_id} attempt {attempt}/{retries} failed: "
                f"[{last_error.kind.value}] {last_error.message}"
            )

            if not last_error.retryable or attempt >= retries:
                break

            await self._sleep((delay * attempt).total_seconds())

        # All attempts failed - try stale cache
        if cache_key:
            stale = await self._cache.get_stale(cache_key)
            if stale is not None:
                logger.warning(f"Request to {service_id} failed, returning stale data")
                return FetchResult(
                    data=stale,
                    from_cache="stale",
                    is_stale=True,
                    error=last_error,
                    attempts=attempts,
                    service_id=service_id,
                )

        raise last_error or FetchError(
            ErrorKind.UNKNOWN, "Request failed", service_id=service_id
        )

    async def _execute_request(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str],
        timeout: timedelta,
        service_id: str,
    ) -> Any:
        """Execute one timeout-bounded attempt."""
        client = await self._get_http_client()
        seconds = timeout.total_seconds()

        try:
            # The response body is read and the connection released inside
            # the timeout scope, also when the scope cancels the request.
            async with asyncio.timeout(seconds):
                response = await client.get(
                    url, params=params, headers=headers, timeout=seconds
                )
        except (httpx.HTTPError, TimeoutError, OSError) as e:
            raise classify(e, service_id=service_id) from e

        if response.is_error:
            raise classify(response, service_id=service_id)

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                ErrorKind.PARSE,
                "Failed to parse response as JSON",
                http_status=response.status_code,
                service_id=service_id,
            ) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None
        logger.debug("ResilientFetcher closed")

    async def __aenter__(self) -> "ResilientFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
