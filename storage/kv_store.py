"""Key/value persistence for serialized collections.

The resolution engine keeps every collection as one serialized document per
key, so all writers replace whole documents. ``set_many`` writes several
keys atomically (used for the project records and their backup copy).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
-- One serialized document per key
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class KeyValueStore(ABC):
    """Async string-to-string store with whole-document writes."""

    async def init(self) -> None:
        """Prepare the backing storage. Safe to call more than once."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored document or None when the key is absent."""

    @abstractmethod
    async def set_many(self, items: Mapping[str, str]) -> None:
        """Replace several documents in one atomic write."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a document; absent keys are ignored."""

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store, useful for tests and embedded use."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.writes: int = 0

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set_many(self, items: Mapping[str, str]) -> None:
        self._data.update(items)
        self.writes += 1

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class SQLiteKeyValueStore(KeyValueStore):
    """aiosqlite-backed store; one row per key."""

    def __init__(self, db_path: str = "data/worlds.db") -> None:
        self.db_path = db_path
        self._initialized = False

    async def init(self) -> None:
        """Create the table if it doesn't exist."""
        if self._initialized:
            return
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.executescript(SCHEMA_SQL)
            await db.commit()
        self._initialized = True
        logger.info("Database initialized at %s", self.db_path)

    @asynccontextmanager
    async def _connect(self):
        await self.init()
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        try:
            yield db
        finally:
            await db.close()

    async def get(self, key: str) -> str | None:
        async with self._connect() as db:
            cursor = await db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
        return row["value"] if row is not None else None

    async def set_many(self, items: Mapping[str, str]) -> None:
        if not items:
            return
        now = datetime.now(timezone.utc).isoformat()
        async with self._connect() as db:
            await db.executemany(
                """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                  updated_at = excluded.updated_at""",
                [(key, value, now) for key, value in items.items()],
            )
            await db.commit()
        logger.debug("Stored %d key(s): %s", len(items), ", ".join(items))

    async def delete(self, key: str) -> None:
        async with self._connect() as db:
            await db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await db.commit()
