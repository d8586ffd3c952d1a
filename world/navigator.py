"""Navigator — current-world state and transitions.

Every transition ends on a world that exists, or on the hub. When the hub
itself has not been materialized yet the navigator parks on ``mainWorld`` in
a loading state instead of inventing an empty one.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from core.world import MAIN_WORLD_ID, Vec3, World, normalize_world_id, parse_project_world_id
from storage.kv_store import KeyValueStore
from world.service import WorldService

logger = logging.getLogger(__name__)

ORIGIN: Vec3 = (0.0, 0.0, 0.0)

SubworldResolver = Callable[[int], Awaitable[Optional[World]]]


class Navigator:
    """Holds the current world id and moves it between worlds."""

    def __init__(
        self,
        worlds: WorldService,
        resolve_subworld: SubworldResolver,
        kv: KeyValueStore,
        deep_link_key: str = "target_world_id",
        deep_link_project_key: str = "target_project_id",
        initial_world_id: str = MAIN_WORLD_ID,
    ):
        self.worlds = worlds
        self.resolve_subworld = resolve_subworld
        self.kv = kv
        self.deep_link_key = deep_link_key
        self.deep_link_project_key = deep_link_project_key
        self.initial_world_id = normalize_world_id(initial_world_id) or MAIN_WORLD_ID

        self._current = MAIN_WORLD_ID
        self._loading = True
        self._initial_resolved = False
        self._on_change: list[Callable[[str], None]] = []

    @property
    def current_world_id(self) -> str:
        return self._current

    @property
    def is_loading(self) -> bool:
        return self._loading

    def current_world(self) -> World | None:
        if self._loading:
            return None
        return self.worlds.get(self._current)

    def camera_target(self) -> Vec3:
        """Focal point of the current world, or the origin when it has none."""
        world = self.current_world()
        if world is None or world.camera_target is None:
            return ORIGIN
        return world.camera_target

    def on_change(self, callback: Callable[[str], None]) -> None:
        """Register a callback for world changes: callback(world_id)."""
        self._on_change.append(callback)

    async def resolve_initial(self) -> str:
        """First resolution of the session; a pending deep link is used and cleared."""
        if self._initial_resolved:
            return self._current
        self._initial_resolved = True

        target = await self.kv.get(self.deep_link_key)
        if target:
            await self.kv.delete(self.deep_link_key)
            await self.kv.delete(self.deep_link_project_key)
            logger.info("Consumed deep link to %s", target)
        return await self.transition(target or self.initial_world_id)

    async def transition(self, target_id: str | None) -> str:
        """Move to ``target_id``; unresolvable targets land on the hub."""
        target = normalize_world_id(target_id or "") or MAIN_WORLD_ID
        if target == self._current and not self._loading and self.worlds.has(target):
            return self._current

        project_id = parse_project_world_id(target)
        if project_id is not None:
            try:
                world = await self.resolve_subworld(project_id)
            except Exception:
                logger.warning("Could not resolve %s; falling back to hub", target, exc_info=True)
                world = None
            if world is not None:
                self._commit(world.id)
                return self._current
            logger.warning("World %s does not exist; falling back to hub", target)
        elif target != MAIN_WORLD_ID:
            logger.warning("Unknown world id %s; falling back to hub", target)

        return self._enter_hub()

    def sync(self) -> str:
        """Re-check the current world after the cache changed."""
        if self._loading:
            if self._current == MAIN_WORLD_ID and self.worlds.has(MAIN_WORLD_ID):
                self._commit(MAIN_WORLD_ID)
        elif not self.worlds.has(self._current):
            logger.info("Current world %s disappeared; returning to hub", self._current)
            self._enter_hub()
        return self._current

    def _enter_hub(self) -> str:
        if self.worlds.has(MAIN_WORLD_ID):
            self._commit(MAIN_WORLD_ID)
        else:
            logger.debug("Hub not materialized yet; waiting")
            self._current = MAIN_WORLD_ID
            self._loading = True
        return self._current

    def _commit(self, world_id: str) -> None:
        changed = world_id != self._current or self._loading
        self._current = world_id
        self._loading = False
        if not changed:
            return
        logger.info("Current world: %s", world_id)
        for cb in self._on_change:
            try:
                cb(world_id)
            except Exception:
                logger.debug("World change callback error", exc_info=True)
