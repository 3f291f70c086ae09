"""
PersistentCache - TTL cache over a durable KeyValueStore with stale fallback.

Features:
- Fresh-only reads (respect TTL) and stale-allowed reads (ignore TTL)
- Expired entries are kept, never evicted, so they can serve as the
  fallback of last resort
- Per-key async locks; different keys never block each other
- Storage failures and corrupt records read as a miss and are never raised
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from loguru import logger

from teletext.datastore.kv import KeyValueStore

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class CacheEntry:
    """A single cache entry with metadata."""

    key: str
    payload: Any
    stored_at: datetime
    ttl: timedelta | None  # None never expires

    def age(self, now: datetime) -> timedelta:
        return now - self.stored_at

    def is_fresh(self, now: datetime, ttl: timedelta | None = None) -> bool:
        """Fresh while age <= ttl (the entry's own TTL unless overridden)."""
        limit = ttl if ttl is not None else self.ttl
        if limit is None:
            return True
        return self.age(now) <= limit

    def to_bytes(self) -> bytes:
        return json.dumps(
            {
                "payload": self.payload,
                "stored_at": self.stored_at.isoformat(),
                "ttl": self.ttl.total_seconds() if self.ttl is not None else None,
            },
            separators=(",", ":"),
        ).encode("utf-8")

    @classmethod
    def from_bytes(cls, key: str, raw: bytes) -> "CacheEntry":
        data = json.loads(raw.decode("utf-8"))
        ttl = data.get("ttl")
        return cls(
            key=key,
            payload=data["payload"],
            stored_at=datetime.fromisoformat(data["stored_at"]),
            ttl=timedelta(seconds=ttl) if ttl is not None else None,
        )


class PersistentCache:
    """
    Cache with TTL and stale retention backed by a KeyValueStore.

    Usage:
        cache = PersistentCache(MemoryKeyValueStore())

        await cache.set("crypto_prices", data, timedelta(minutes=1))

        fresh = await cache.get_fresh("crypto_prices")
        if fresh is None:
            stale = await cache.get_stale("crypto_prices")
    """

    def __init__(
        self,
        store: KeyValueStore,
        prefix: str = "teletext_cache_",
        clock: Clock = datetime.now,
        debug: bool = False,
    ):
        self._store = store
        self._prefix = prefix
        self._clock = clock
        self._debug = debug
        self._locks: dict[str, asyncio.Lock] = {}
        self._stats = CacheStats()

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def now(self) -> datetime:
        return self._clock()

    def _storage_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def get_entry(self, key: str) -> CacheEntry | None:
        """Read the full entry regardless of age."""
        async with self._lock_for(key):
            return await self._read(key)

    async def _read(self, key: str) -> CacheEntry | None:
        try:
            raw = await self._store.get(self._storage_key(key))
        except Exception as e:
            self._stats.errors += 1
            logger.warning(f"Cache read failed for '{key}': {e}")
            return None

        if raw is None:
            return None

        try:
            return CacheEntry.from_bytes(key, raw)
        except (ValueError, KeyError, TypeError, UnicodeDecodeError) as e:
            self._stats.errors += 1
            logger.warning(f"Ignoring corrupt cache entry '{key}': {e}")
            return None

    async def get(self, key: str) -> Any | None:
        """Payload if present and fresh by its own TTL."""
        return await self.get_fresh(key)

    async def get_fresh(self, key: str, ttl: timedelta | None = None) -> Any | None:
        """
        Payload only if age <= ttl.

        The entry's stored TTL applies when ``ttl`` is omitted. An expired
        entry is left in place.
        """
        entry = await self.get_entry(key)
        if entry is None:
            self._stats.misses += 1
            self._log(f"MISS: {key}")
            return None

        if not entry.is_fresh(self.now(), ttl):
            self._stats.misses += 1
            self._log(f"EXPIRED: {key}")
            return None

        self._stats.hits += 1
        self._log(f"HIT: {key}")
        return entry.payload

    async def get_stale(self, key: str) -> Any | None:
        """Payload regardless of age."""
        entry = await self.get_entry(key)
        if entry is None:
            return None

        self._stats.stale_hits += 1
        self._log(f"STALE HIT: {key}")
        return entry.payload

    async def set(self, key: str, payload: Any, ttl: timedelta | None) -> None:
        """
        Store payload under key, overwriting any previous entry.

        Args:
            key: Cache key (without prefix)
            payload: JSON-serialisable data
            ttl: Time to live; None means never fresh-expires
        """
        if ttl is not None and ttl <= timedelta(0):
            raise ValueError(f"TTL must be positive, got {ttl}")

        entry = CacheEntry(key=key, payload=payload, stored_at=self.now(), ttl=ttl)
        try:
            raw = entry.to_bytes()
        except (TypeError, ValueError) as e:
            self._stats.errors += 1
            logger.warning(f"Cache payload for '{key}' is not serialisable: {e}")
            return

        async with self._lock_for(key):
            try:
                await self._store.set(self._storage_key(key), raw)
            except Exception as e:
                self._stats.errors += 1
                logger.warning(f"Cache write failed for '{key}': {e}")
                return

        ttl_text = f"{ttl.total_seconds()}s" if ttl is not None else "none"
        self._log(f"SET: {key} (TTL: {ttl_text})")

    async def age(self, key: str) -> timedelta | None:
        entry = await self.get_entry(key)
        return entry.age(self.now()) if entry else None

    async def is_fresh(self, key: str, ttl: timedelta | None = None) -> bool:
        entry = await self.get_entry(key)
        return entry is not None and entry.is_fresh(self.now(), ttl)

    async def delete(self, key: str) -> bool:
        """Delete a specific key. Only called on explicit user request."""
        async with self._lock_for(key):
            try:
                deleted = await self._store.delete(self._storage_key(key))
            except Exception as e:
                self._stats.errors += 1
                logger.warning(f"Cache delete failed for '{key}': {e}")
                return False

        if deleted:
            self._log(f"DELETE: {key}")
        return deleted

    async def clear(self, prefix: str = "") -> int:
        """Delete every entry whose key starts with prefix."""
        try:
            keys = await self._store.keys(self._storage_key(prefix))
        except Exception as e:
            self._stats.errors += 1
            logger.warning(f"Cache clear failed: {e}")
            return 0

        count = 0
        for storage_key in keys:
            if await self.delete(storage_key[len(self._prefix) :]):
                count += 1

        self._log(f"CLEAR: {count} entries removed")
        return count

    def get_stats(self) -> "CacheStats":
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[PersistentCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    stale_hits: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stale_hits": self.stale_hits,
            "errors": self.errors,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
