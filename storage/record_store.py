"""RecordStore — persisted, admin-editable collection of project records.

The whole collection is serialized under a primary key and the same bytes are
written under a backup key. A missing or unreadable primary copy is recovered
from the backup; if both are unusable the store starts empty.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable, Sequence

from pydantic import ValidationError

from core.errors import DuplicateIdentityError, NotFoundError, StoreCorruptionError
from core.project import ProjectRecord
from storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class RecordStore:
    """Holds project records in memory and writes them through to storage."""

    def __init__(
        self,
        kv: KeyValueStore,
        primary_key: str = "portfolio_projects",
        backup_key: str = "portfolio_projects_backup",
    ):
        self.kv = kv
        self.primary_key = primary_key
        self.backup_key = backup_key
        self._records: list[ProjectRecord] = []
        self._write_lock = asyncio.Lock()
        self.loaded = False

    async def load(self) -> list[ProjectRecord]:
        """Read the persisted collection, falling back to the backup copy."""
        records: list[ProjectRecord] | None = None
        try:
            records = self._decode(await self.kv.get(self.primary_key), self.primary_key)
        except StoreCorruptionError as exc:
            logger.warning("%s; attempting recovery from backup", exc)

        if records is None:
            try:
                records = self._decode(await self.kv.get(self.backup_key), self.backup_key)
            except StoreCorruptionError as exc:
                logger.error("%s; starting with an empty record store", exc)
            if records is not None:
                logger.info("Recovered %d project records from backup", len(records))
                # Restore the primary copy from the backup
                await self._write(records)

        self._records = _dedupe(records or [])
        self.loaded = True
        logger.info("RecordStore loaded %d project records", len(self._records))
        return self.all()

    def all(self) -> list[ProjectRecord]:
        """Copies of every record, in stored order."""
        return [record.model_copy(deep=True) for record in self._records]

    def get(self, project_id: int) -> ProjectRecord | None:
        for record in self._records:
            if record.id == project_id:
                return record.model_copy(deep=True)
        return None

    async def replace_all(self, records: Sequence[ProjectRecord]) -> list[ProjectRecord]:
        """Replace the entire collection (full-document write)."""
        ensure_unique(records)
        new_records = [record.model_copy(deep=True) for record in records]
        async with self._write_lock:
            await self._write(new_records)
            self._records = new_records
        logger.info("RecordStore replaced with %d project records", len(new_records))
        return self.all()

    async def save(self, record: ProjectRecord) -> ProjectRecord:
        """Insert or replace one record (admin edit). Ids <= 0 get the next free id."""
        async with self._write_lock:
            await self._ensure_loaded()
            record = record.model_copy(deep=True)
            if record.id <= 0:
                record.id = max((r.id for r in self._records), default=0) + 1
            others = [r for r in self._records if r.id != record.id]
            clash = next((r for r in others if r.name == record.name), None)
            if clash is not None:
                raise DuplicateIdentityError(
                    f"Project name {record.name!r} already used by project {clash.id}"
                )
            new_records = sorted([*others, record], key=lambda r: r.id)
            await self._write(new_records)
            self._records = new_records
        logger.info("Project %d (%s) saved", record.id, record.name)
        return record.model_copy(deep=True)

    async def update(self, project_id: int, changes: dict[str, Any]) -> ProjectRecord:
        """Merge ``changes`` into an existing record and save it."""
        await self._ensure_loaded()
        current = self.get(project_id)
        if current is None:
            raise NotFoundError(f"Project {project_id} not found")
        merged = {**current.model_dump(), **changes, "id": project_id}
        return await self.save(ProjectRecord.model_validate(merged))

    async def delete(self, project_id: int) -> bool:
        async with self._write_lock:
            await self._ensure_loaded()
            remaining = [r for r in self._records if r.id != project_id]
            if len(remaining) == len(self._records):
                logger.warning("Cannot delete project %d: not found", project_id)
                return False
            await self._write(remaining)
            self._records = remaining
        logger.info("Project %d deleted", project_id)
        return True

    async def _ensure_loaded(self) -> None:
        # Single-record writes rewrite the whole persisted collection
        if not self.loaded:
            await self.load()

    async def _write(self, records: Iterable[ProjectRecord]) -> None:
        payload = json.dumps([r.to_wire() for r in records], ensure_ascii=False)
        await self.kv.set_many({self.primary_key: payload, self.backup_key: payload})

    @staticmethod
    def _decode(raw: str | None, key: str) -> list[ProjectRecord] | None:
        """Parse a stored collection. None means the key is absent."""
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreCorruptionError(f"Stored collection {key!r} is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise StoreCorruptionError(f"Stored collection {key!r} is not a list")

        records = []
        for index, item in enumerate(data):
            try:
                records.append(ProjectRecord.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed record #%d in %s: %d validation error(s)",
                    index, key, exc.error_count(),
                )
        return records


def ensure_unique(records: Sequence[ProjectRecord]) -> None:
    """Raise DuplicateIdentityError if any id or name repeats."""
    seen_ids: set[int] = set()
    seen_names: set[str] = set()
    for record in records:
        if record.id in seen_ids:
            raise DuplicateIdentityError(f"Duplicate project id {record.id}")
        if record.name in seen_names:
            raise DuplicateIdentityError(f"Duplicate project name {record.name!r}")
        seen_ids.add(record.id)
        seen_names.add(record.name)


def _dedupe(records: list[ProjectRecord]) -> list[ProjectRecord]:
    """Drop repeated ids/names from a persisted collection (first wins)."""
    seen_ids: set[int] = set()
    seen_names: set[str] = set()
    kept = []
    for record in records:
        if record.id in seen_ids or record.name in seen_names:
            logger.warning("Dropping duplicate stored record %d (%s)", record.id, record.name)
            continue
        seen_ids.add(record.id)
        seen_names.add(record.name)
        kept.append(record)
    return kept
