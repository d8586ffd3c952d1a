"""WorldService — in-memory + persisted cache of materialized worlds.

The whole collection lives under one key. Every write serializes the complete
collection and swaps the in-memory copy only after the write succeeded, so a
reader never sees a half-applied change.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Iterable

from pydantic import ValidationError

from core.errors import StoreCorruptionError
from core.world import World, normalize_world_id
from storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class WorldService:
    """Cache of worlds keyed by world id."""

    def __init__(self, kv: KeyValueStore, key: str = "portfolio_worlds"):
        self.kv = kv
        self.key = key
        self._worlds: dict[str, World] = {}
        self._stale: set[str] = set()
        self._write_lock = asyncio.Lock()
        self.loaded = False

    async def load(self) -> list[World]:
        return await self.reload_from_store()

    async def reload_from_store(self) -> list[World]:
        """Discard the in-memory state and repopulate from the persisted copy."""
        try:
            worlds = self._decode(await self.kv.get(self.key))
        except StoreCorruptionError as exc:
            logger.error("%s; starting with an empty world cache", exc)
            worlds = {}
        self._worlds = worlds
        self._stale.clear()
        self.loaded = True
        logger.info("World cache loaded with %d worlds", len(worlds))
        return self.list()

    def get(self, world_id: str) -> World | None:
        world = self._worlds.get(normalize_world_id(world_id))
        return world.model_copy(deep=True) if world is not None else None

    def has(self, world_id: str) -> bool:
        return normalize_world_id(world_id) in self._worlds

    def list(self) -> list[World]:
        return [world.model_copy(deep=True) for world in self._worlds.values()]

    def ids(self) -> list[str]:
        return list(self._worlds)

    async def upsert(self, world: World) -> World:
        """Insert or replace one world; last write wins and is persisted immediately."""
        world = world.model_copy(deep=True)
        async with self._write_lock:
            await self._ensure_loaded()
            updated = {**self._worlds, world.id: world}
            await self._write(updated)
            self._worlds = updated
            self._stale.discard(world.id)
        logger.debug("World %s stored (%d objects)", world.id, len(world.objects))
        return world.model_copy(deep=True)

    async def remove(self, world_id: str) -> bool:
        world_id = normalize_world_id(world_id)
        async with self._write_lock:
            await self._ensure_loaded()
            if world_id not in self._worlds:
                return False
            updated = {wid: w for wid, w in self._worlds.items() if wid != world_id}
            await self._write(updated)
            self._worlds = updated
            self._stale.discard(world_id)
        logger.info("World %s removed", world_id)
        return True

    async def clear(self) -> None:
        """Empty both the in-memory and the persisted cache."""
        async with self._write_lock:
            await self._write({})
            self._worlds = {}
            self._stale.clear()
        logger.info("World cache cleared")

    async def replace_all(self, worlds: Iterable[World]) -> list[World]:
        """Swap in a complete new collection with a single write."""
        updated: dict[str, World] = {}
        for world in worlds:
            updated[world.id] = world.model_copy(deep=True)
        async with self._write_lock:
            await self._write(updated)
            self._worlds = updated
            self._stale.clear()
        logger.info("World cache replaced with %d worlds", len(updated))
        return self.list()

    def mark_stale(self, world_ids: Iterable[str] | None = None) -> None:
        """Flag cached worlds for regeneration; None flags every cached world."""
        ids = self._worlds.keys() if world_ids is None else (normalize_world_id(w) for w in world_ids)
        self._stale.update(ids)

    def is_stale(self, world_id: str) -> bool:
        return normalize_world_id(world_id) in self._stale

    async def _ensure_loaded(self) -> None:
        if not self.loaded:
            await self.reload_from_store()

    async def _write(self, worlds: dict[str, World]) -> None:
        payload = json.dumps([w.to_wire() for w in worlds.values()], ensure_ascii=False)
        await self.kv.set(self.key, payload)

    def _decode(self, raw: str | None) -> dict[str, World]:
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreCorruptionError(f"Stored worlds {self.key!r} are not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise StoreCorruptionError(f"Stored worlds {self.key!r} are not a list")

        worlds: dict[str, World] = {}
        for index, item in enumerate(data):
            try:
                world = World.model_validate(item)
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed world #%d: %d validation error(s)", index, exc.error_count(),
                )
                continue
            if world.id in worlds:
                logger.warning("Skipping duplicate stored world %s", world.id)
                continue
            worlds[world.id] = world
        return worlds
