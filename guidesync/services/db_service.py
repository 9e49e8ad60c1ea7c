"""
Key-value stores backing the fixture cache

Stores are string-keyed and string-valued. The SQLite store persists across
restarts; the memory store serves tests and store-less setups.
"""
import logging
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert

from guidesync.database import session_scope
from guidesync.models import CacheRecord


logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Durable string store the fixture cache is written to."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def keys(self) -> list[str]: ...


class SqliteKeyValueStore:
    """Store backed by the cache_entries table (requires init_db)."""

    async def get(self, key: str) -> str | None:
        async with session_scope() as session:
            result = await session.execute(
                select(CacheRecord.value).where(CacheRecord.key == key)
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        stmt = insert(CacheRecord).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CacheRecord.key],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        async with session_scope() as session:
            await session.execute(stmt)
        logger.debug("Stored cache key %s (%s bytes)", key, len(value))

    async def delete(self, key: str) -> None:
        async with session_scope() as session:
            await session.execute(delete(CacheRecord).where(CacheRecord.key == key))
        logger.debug("Deleted cache key %s", key)

    async def keys(self) -> list[str]:
        async with session_scope() as session:
            result = await session.execute(select(CacheRecord.key))
            return list(result.scalars().all())


class MemoryKeyValueStore:
    """Process-local store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data)
