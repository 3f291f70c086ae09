"""
Application wiring: one place that owns every long-lived collaborator.
"""

from dataclasses import dataclass, field
from datetime import timedelta

from loguru import logger

from teletext.datasource.chain import SourceChain
from teletext.datasource.models import DataEnvelope
from teletext.datasource.scheduler import RefreshScheduler
from teletext.datasource.source_manager import SourceManager
from teletext.datastore.kv import KeyValueStore, SqlKeyValueStore
from teletext.services.cache import PersistentCache
from teletext.services.client import FetchOptions, ResilientFetcher
from teletext.services.rate_limiter import RateLimiter
from teletext.settings import Settings, load_settings


@dataclass
class AppContext:
    settings: Settings
    store: KeyValueStore
    cache: PersistentCache
    rate_limiter: RateLimiter
    fetcher: ResilientFetcher
    sources: SourceManager
    scheduler: RefreshScheduler
    chains: dict[str, SourceChain] = field(default_factory=dict)

    async def resolve(
        self, section: str, category: str | None = None, force_refresh: bool = False
    ) -> DataEnvelope:
        chain = self.chains.get(section)
        if chain is None:
            raise KeyError(f"Unknown section '{section}'")
        return await chain.resolve(category, force_refresh=force_refresh)

    async def close(self) -> None:
        """Stop refreshing and release network and storage resources."""
        self.scheduler.shutdown()
        await self.fetcher.close()
        await self.store.close()
        logger.info("Application context closed")


async def build_context(
    settings: Settings | None = None, store: KeyValueStore | None = None
) -> AppContext:
    """
    Wire cache, limiter, fetcher, chains and scheduler from settings.

    Args:
        settings: Runtime settings (environment by default)
        store: Cache storage; a SQL store on settings.cache_database_url
            when omitted
    """
    settings = settings or load_settings()
    if store is None:
        store = await SqlKeyValueStore.open(
            settings.cache_database_url, echo=settings.database_echo
        )

    cache = PersistentCache(
        store, prefix=settings.cache_key_prefix, debug=settings.http_debug
    )
    rate_limiter = RateLimiter()
    fetcher = ResilientFetcher(
        cache,
        options=FetchOptions(
            max_retries=settings.default_max_retries,
            timeout=timedelta(seconds=settings.default_timeout_seconds),
            base_delay=timedelta(seconds=settings.retry_base_delay_seconds),
        ),
    )

    sources = SourceManager(settings=settings)
    chains = sources.build_chains(fetcher, cache, rate_limiter)

    interval = settings.refresh_interval_seconds
    scheduler = RefreshScheduler(
        interval=timedelta(seconds=interval) if interval else None
    )
    for chain in chains.values():
        scheduler.register(chain)

    logger.info(f"Application context ready: sections={list(chains)}")
    return AppContext(
        settings=settings,
        store=store,
        cache=cache,
        rate_limiter=rate_limiter,
        fetcher=fetcher,
        sources=sources,
        scheduler=scheduler,
        chains=chains,
    )
