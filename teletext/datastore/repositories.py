"""
Repository layer - encapsulates cache record data access.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from teletext.datastore.models import CacheRecordDB


class CacheRecordRepository:
    """Cache record repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, key: str) -> bytes | None:
        record = await self.session.get(CacheRecordDB, key)
        return record.value if record else None

    async def upsert(self, key: str, value: bytes) -> None:
        """Insert or overwrite the record for a key."""
        record = await self.session.get(CacheRecordDB, key)
        if record:
            record.value = value
            record.updated_at = datetime.now()
        else:
            self.session.add(CacheRecordDB(key=key, value=value))
        await self.session.flush()

    async def delete(self, key: str) -> bool:
        result = await self.session.execute(
            delete(CacheRecordDB).where(CacheRecordDB.key == key)
        )
        return (result.rowcount or 0) > 0

    async def keys(self, prefix: str = "") -> list[str]:
        stmt = select(CacheRecordDB.key)
        if prefix:
            stmt = stmt.where(CacheRecordDB.key.startswith(prefix, autoescape=True))
        result = await self.session.execute(stmt.order_by(CacheRecordDB.key))
        return list(result.scalars().all())
