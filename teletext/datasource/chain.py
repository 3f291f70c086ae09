"""
SourceChain - multi-provider fallback for one content section.

Resolution order for a category:
1. First provider's rate limit spent -> cached data (RATE_LIMITED) or demo
2. Fresh section cache -> LIVE (skipped by force_refresh)
3. Providers strictly in configured order -> LIVE
4. Stale section cache -> STALE
5. Demo fixtures -> DEMO

``resolve`` never raises for provider, cache or parse failures.

Cache records are keyed by section and category plus the primary
provider's cache scope (a date for TV listings, coordinates for weather).
"""

from datetime import datetime, timedelta

from loguru import logger
from pydantic import BaseModel, ValidationError

from teletext.datasource.base import DemoProvider, ProviderAdapter
from teletext.datasource.models import DataEnvelope, Provenance
from teletext.services.cache import PersistentCache
from teletext.services.deduplicator import RequestDeduplicator
from teletext.services.errors import (
    ErrorKind,
    FetchError,
    classify,
    rate_limit_notice,
)
from teletext.services.rate_limiter import RateLimiter


class SourceChain:
    """
    Ordered providers plus stale cache and demo fallback for a section.

    Usage:
        chain = SourceChain(
            section="news",
            providers=[Rss2JsonProvider(fetcher), NewsDataProvider(fetcher, key)],
            demo=NewsDemoProvider(),
            cache=cache,
            rate_limiter=limiter,
            ttl=timedelta(minutes=5),
            categories=["top", "world"],
        )
        envelope = await chain.resolve("world")
    """

    def __init__(
        self,
        section: str,
        providers: list[ProviderAdapter],
        demo: DemoProvider,
        cache: PersistentCache,
        rate_limiter: RateLimiter,
        ttl: timedelta | None,
        categories: list[str] | None = None,
        default_category: str | None = None,
        single_flight: bool = True,
    ):
        self.section = section
        self.providers = list(providers)
        self.demo = demo
        self.ttl = ttl
        self.categories = list(categories or [])
        self.default_category = default_category or (
            self.categories[0] if self.categories else "default"
        )
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._payload_model: type[BaseModel] = demo.payload_model
        self._deduplicator = RequestDeduplicator() if single_flight else None

        # per category: served demo data, last provider failure
        self._demo_mode: dict[str, bool] = {}
        self._errors: dict[str, str | None] = {}

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def is_demo_mode(self, category: str | None = None) -> bool:
        """True when the last resolution of category fell back to demo data."""
        return self._demo_mode.get(self.normalize(category), False)

    def last_error(self, category: str | None = None) -> str | None:
        """Last failure message for category, cleared by a live result."""
        return self._errors.get(self.normalize(category))

    def normalize(self, category: str | None) -> str:
        """Unknown categories resolve as the default category."""
        if category and (not self.categories or category in self.categories):
            return category
        return self.default_category

    def cache_key(self, category: str, scope: str | None = None) -> str:
        key = f"{self.section}_{category}"
        return f"{key}_{scope}" if scope else key

    async def scoped_cache_key(self, category: str) -> str:
        """Cache key including the primary provider's scope."""
        scope = await self.providers[0].cache_scope(category) if self.providers else None
        return self.cache_key(category, scope)

    def can_proceed(self) -> bool:
        """Whether the primary provider currently admits requests."""
        if not self.providers:
            return True
        return self._rate_limiter.can_proceed(self.providers[0].service_id)

    async def resolve(
        self, category: str | None = None, force_refresh: bool = False
    ) -> DataEnvelope:
        """
        Resolve a category to an envelope. Never raises.

        Args:
            category: Category within the section; unknown values fall back
                to the default category
            force_refresh: Skip the fresh-cache shortcut and ask providers
        """
        category = self.normalize(category)
        if self._deduplicator is None:
            return await self._resolve(category, force_refresh)

        return await self._deduplicator.dedupe(
            f"{self.section}:{category}:{'refresh' if force_refresh else 'read'}",
            lambda: self._resolve(category, force_refresh),
        )

    async def _resolve(self, category: str, force_refresh: bool) -> DataEnvelope:
        try:
            envelope = await self._resolve_chain(category, force_refresh)
        except Exception as e:
            logger.exception(f"{self.section}/{category}: resolution failed")
            envelope = await self._demo(category, source_error=str(e) or type(e).__name__)

        self._demo_mode[category] = envelope.provenance is Provenance.DEMO
        self._errors[category] = envelope.source_error
        return envelope

    async def _resolve_chain(self, category: str, force_refresh: bool) -> DataEnvelope:
        key = await self.scoped_cache_key(category)

        # Rate limit short-circuit skips the network entirely
        if self.providers and not self.can_proceed():
            return await self._rate_limited(category, key)

        if not force_refresh:
            fresh = await self._load_cached(key, fresh_only=True)
            if fresh is not None:
                payload, source, stored_at = fresh
                return self._envelope(
                    category,
                    payload,
                    Provenance.LIVE,
                    source=source,
                    fetched_at=stored_at,
                )

        last_error: FetchError | None = None
        for provider in self.providers:
            if not provider.is_configured():
                logger.debug(f"{provider.service_id} not configured, skipping")
                continue

            try:
                raw = await provider.fetch(category)
                payload = provider.parse(raw, category)
            except FetchError as e:
                last_error = e
            except ValidationError as e:
                last_error = classify(e, service_id=provider.service_id)
            except Exception as e:
                logger.exception(f"Unexpected error from {provider.service_id}")
                last_error = classify(e, service_id=provider.service_id)
            else:
                await self._store(key, provider.service_id, payload)
                logger.info(f"{self.section}/{category}: live from {provider.service_id}")
                return self._envelope(
                    category, payload, Provenance.LIVE, source=provider.service_id
                )

            logger.warning(
                f"{self.section}/{category}: {provider.service_id} failed: "
                f"[{last_error.kind.value}] {last_error.message}"
            )

        error_text = last_error.message if last_error else "No provider available"

        stale = await self._load_cached(key, fresh_only=False)
        if stale is not None:
            payload, source, stored_at = stale
            logger.warning(f"{self.section}/{category}: serving stale cache")
            return self._envelope(
                category,
                payload,
                Provenance.STALE,
                source=source,
                source_error=error_text,
                notice="USING CACHED DATA",
                fetched_at=stored_at,
            )

        return await self._demo(category, source_error=error_text)

    async def _rate_limited(self, category: str, key: str) -> DataEnvelope:
        primary = self.providers[0].service_id
        reset_in = self._rate_limiter.time_until_reset(primary)
        notice = rate_limit_notice(reset_in.total_seconds())
        error = FetchError(
            ErrorKind.RATE_LIMIT,
            f"Rate limit reached for '{primary}'",
            service_id=primary,
        )
        cached = await self._load_cached(key, fresh_only=False)
        if cached is not None:
            payload, source, stored_at = cached
            logger.warning(f"{self.section}/{category}: rate limited, serving cache")
            return self._envelope(
                category,
                payload,
                Provenance.RATE_LIMITED,
                source=source,
                source_error=error.message,
                notice=notice,
                fetched_at=stored_at,
            )

        return await self._demo(category, source_error=error.message, notice=notice)

    async def _demo(
        self, category: str, source_error: str | None, notice: str | None = None
    ) -> DataEnvelope:
        logger.warning(f"{self.section}/{category}: using DEMO MODE")
        payload = self.demo.parse(self.demo.fixture(category), category)
        return self._envelope(
            category,
            payload,
            Provenance.DEMO,
            source=self.demo.service_id,
            source_error=source_error,
            notice=notice or "DEMO MODE",
        )

    async def _store(self, key: str, source: str, payload: BaseModel) -> None:
        await self._cache.set(
            key,
            {"source": source, "data": payload.model_dump(mode="json")},
            self.ttl,
        )

    async def _load_cached(
        self, key: str, fresh_only: bool
    ) -> tuple[BaseModel, str | None, datetime] | None:
        entry = await self._cache.get_entry(key)
        if entry is None:
            return None
        if fresh_only and not entry.is_fresh(self._cache.now(), self.ttl):
            return None

        try:
            record = entry.payload
            payload = self._payload_model.model_validate(record["data"])
        except (ValidationError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cache entry '{key}': {e}")
            return None

        return payload, record.get("source"), entry.stored_at

    def _envelope(
        self,
        category: str,
        payload: BaseModel,
        provenance: Provenance,
        source: str | None = None,
        source_error: str | None = None,
        notice: str | None = None,
        fetched_at: datetime | None = None,
    ) -> DataEnvelope:
        return DataEnvelope(
            section=self.section,
            category=category,
            payload=payload,
            fetched_at=fetched_at or self._cache.now(),
            provenance=provenance,
            source=source,
            source_error=source_error,
            notice=notice,
        )

    async def has_valid_cache(self, category: str) -> bool:
        """True when the category has a fresh cache entry for the current scope."""
        key = await self.scoped_cache_key(self.normalize(category))
        return await self._cache.is_fresh(key, self.ttl)

    async def clear_cache(self, category: str | None = None) -> int:
        """Drop cached data (every scope) for one category or the whole section."""
        if category:
            key = self.cache_key(self.normalize(category))
            deleted = int(await self._cache.delete(key))
            return deleted + await self._cache.clear(f"{key}_")
        return await self._cache.clear(f"{self.section}_")
