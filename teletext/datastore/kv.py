"""
KeyValueStore - the storage contract behind PersistentCache.

The cache only needs get/set/delete over opaque bytes. Any durable medium
can implement it; an in-memory map is provided for tests and ephemeral use.
"""

from abc import ABC, abstractmethod

from teletext.datastore.engine import CacheDatabase
from teletext.datastore.repositories import CacheRecordRepository


class KeyValueStore(ABC):
    """Async byte-oriented key/value store."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None: ...

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> bool: ...

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]: ...

    async def close(self) -> None:
        """Release any underlying resources."""
        return None


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store backed by a dict."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def __len__(self) -> int:
        return len(self._data)


class SqlKeyValueStore(KeyValueStore):
    """
    Durable store persisted through SQLAlchemy.

    Every operation runs in its own session, so each write is committed
    before the call returns and survives process restarts.
    """

    def __init__(self, database: CacheDatabase):
        self._database = database

    @classmethod
    async def open(cls, database_url: str, echo: bool = False) -> "SqlKeyValueStore":
        database = CacheDatabase(database_url, echo=echo)
        await database.init()
        return cls(database)

    async def get(self, key: str) -> bytes | None:
        async with self._database.session() as session:
            return await CacheRecordRepository(session).get(key)

    async def set(self, key: str, value: bytes) -> None:
        async with self._database.session() as session:
            await CacheRecordRepository(session).upsert(key, value)

    async def delete(self, key: str) -> bool:
        async with self._database.session() as session:
            return await CacheRecordRepository(session).delete(key)

    async def keys(self, prefix: str = "") -> list[str]:
        async with self._database.session() as session:
            return await CacheRecordRepository(session).keys(prefix)

    async def close(self) -> None:
        await self._database.close()
