"""
Service layer infrastructure - resilience patterns for external API calls.

Provides:
- FetchError / classify: closed error taxonomy for fetch failures
- PersistentCache: TTL cache with stale retention over a KeyValueStore
- RateLimiter: per-source sliding window and daily budgets
- RequestDeduplicator: single-flight per key
- ResilientFetcher: retries, timeouts and stale fallback around httpx
"""

from teletext.services.errors import (
    ConfigError,
    ErrorKind,
    FetchError,
    ServiceError,
    classify,
)
from teletext.services.cache import CacheEntry, PersistentCache
from teletext.services.rate_limiter import (
    DailyCounterPolicy,
    RateLimiter,
    SlidingWindowPolicy,
)
from teletext.services.deduplicator import RequestDeduplicator
from teletext.services.client import FetchOptions, FetchResult, ResilientFetcher

__all__ = [
    # Errors
    "ServiceError",
    "ConfigError",
    "ErrorKind",
    "FetchError",
    "classify",
    # Cache
    "CacheEntry",
    "PersistentCache",
    # Rate limiting
    "RateLimiter",
    "SlidingWindowPolicy",
    "DailyCounterPolicy",
    # Deduplicator
    "RequestDeduplicator",
    # Fetcher
    "FetchOptions",
    "FetchResult",
    "ResilientFetcher",
]
