"""Orchestrator — composition root and consumer API of the resolution engine.

Wires the definition loader, record store, reconciler, world cache and
navigator together, and owns the one-shot initialization state machine.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable

from catalog.loader import DefinitionLoader, DefinitionSource, DirectoryDefinitionSource, HttpDefinitionSource
from catalog.lookup import find_project
from catalog.reconciler import Reconciler
from config.settings import Settings
from core.project import ProjectRecord
from core.world import MAIN_WORLD_ID, Vec3, World, parse_project_world_id, project_world_id
from storage.kv_store import KeyValueStore, SQLiteKeyValueStore
from storage.record_store import RecordStore
from world.materializer import build_hub_world, build_subworld, content_object_count
from world.navigator import Navigator
from world.service import WorldService

logger = logging.getLogger(__name__)


class InitState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class Orchestrator:
    """Top-level coordinator: project records in, navigable worlds out."""

    def __init__(
        self,
        settings: Settings | None = None,
        kv: KeyValueStore | None = None,
        source: DefinitionSource | None = None,
        clock: Callable[[], float] = time.time,
        is_touch_variant: bool | None = None,
    ):
        self.settings = settings or Settings()
        self.kv = kv or SQLiteKeyValueStore(self.settings.DB_PATH)
        self.clock = clock
        self.is_touch_variant = (
            self.settings.TOUCH_VARIANT if is_touch_variant is None else is_touch_variant
        )

        self.loader = DefinitionLoader(
            source or self._default_source(),
            catalog=self.settings.PROJECT_CATALOG,
            max_concurrency=self.settings.MAX_CONCURRENT_FETCHES,
        )
        self.record_store = RecordStore(
            self.kv,
            primary_key=self.settings.PROJECTS_KEY,
            backup_key=self.settings.PROJECTS_BACKUP_KEY,
        )
        self.reconciler = Reconciler(self.record_store)
        self.worlds = WorldService(self.kv, key=self.settings.WORLDS_KEY)
        self.navigator = Navigator(
            self.worlds,
            self._ensure_subworld,
            self.kv,
            deep_link_key=self.settings.DEEP_LINK_KEY,
            deep_link_project_key=self.settings.DEEP_LINK_PROJECT_KEY,
            initial_world_id=self.settings.INITIAL_WORLD_ID,
        )
        self.reconciler.on_commit(self._on_records_committed)

        self.state = InitState.UNINITIALIZED
        self._task: asyncio.Task | None = None
        self._bootstrapped = False
        self._bootstrap_lock = asyncio.Lock()
        self._reconciled_this_session = False
        # Serializes every full-collection writer
        self._sync_lock = asyncio.Lock()

    def _default_source(self) -> DefinitionSource:
        if self.settings.DEFINITIONS_DIR:
            return DirectoryDefinitionSource(self.settings.DEFINITIONS_DIR)
        return HttpDefinitionSource(self.settings.DEFINITIONS_BASE_URL, timeout=self.settings.HTTP_TIMEOUT)

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Bring the engine to READY. Concurrent callers share one run."""
        if self.state is InitState.READY:
            return
        if self._task is None:
            self.state = InitState.INITIALIZING
            self._task = asyncio.create_task(self._initialize())
        await self._join(self._task)

    async def refresh(self) -> None:
        """Re-entry path: staleness-gated synchronization."""
        await self.initialize()
        await self._synchronize(force=False)

    async def force_reload(self) -> None:
        """Reconcile from the definition source now, regardless of staleness."""
        if self._task is not None and not self._task.done():
            await asyncio.gather(self._task, return_exceptions=True)
        self.state = InitState.INITIALIZING
        self._task = asyncio.create_task(self._reload())
        await self._join(self._task)

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            await asyncio.gather(self._task, return_exceptions=True)
        await self.loader.close()

    async def _join(self, task: asyncio.Task) -> None:
        try:
            await asyncio.shield(task)
        except Exception:
            if self._task is task:
                self._task = None
                self.state = InitState.UNINITIALIZED
            raise

    async def _initialize(self) -> None:
        await self._bootstrap()
        await self._synchronize(force=False)
        await self.navigator.resolve_initial()
        self.state = InitState.READY
        logger.info(
            "Engine ready (%d projects, %d worlds, current=%s)",
            len(self.record_store.all()), len(self.worlds.ids()), self.navigator.current_world_id,
        )

    async def _reload(self) -> None:
        await self._bootstrap()
        await self._synchronize(force=True)
        await self.navigator.resolve_initial()
        self.state = InitState.READY
        logger.info("Force reload complete (%d projects)", len(self.record_store.all()))

    async def _bootstrap(self) -> None:
        """Load the persisted records and worlds once; every writer starts from them."""
        async with self._bootstrap_lock:
            if self._bootstrapped:
                return
            await self.kv.init()
            await self.record_store.load()
            await self.worlds.load()
            self._bootstrapped = True

    # --- Synchronization ---

    async def _should_reconcile(self, force: bool) -> bool:
        if force:
            return True
        if self._reconciled_this_session:
            return False
        raw = await self.kv.get(self.settings.LAST_RECONCILED_KEY)
        if raw is None:
            return True
        try:
            last = float(raw)
        except ValueError:
            logger.warning("Ignoring unreadable reconciliation timestamp %r", raw)
            return True
        elapsed = self.clock() - last
        if elapsed > self.settings.RELOAD_THRESHOLD_SECONDS:
            return True
        logger.info("Last reconciliation %.1fs ago; using stored records", elapsed)
        return False

    async def _synchronize(self, force: bool) -> None:
        async with self._sync_lock:
            if await self._should_reconcile(force):
                definitions = await self.loader.load_all()
                if definitions or self.settings.COMMIT_EMPTY_CATALOG:
                    await self.reconciler.commit(definitions)
                else:
                    logger.warning(
                        "No project definitions loaded; keeping %d stored records",
                        len(self.record_store.all()),
                    )
                self._reconciled_this_session = True
                await self.kv.set(self.settings.LAST_RECONCILED_KEY, repr(self.clock()))
            await self._rebuild_worlds(regenerate_all=force)
        self.navigator.sync()

    def _on_records_committed(self, records: list[ProjectRecord]) -> None:
        self.worlds.mark_stale([MAIN_WORLD_ID, *(project_world_id(r.id) for r in records)])

    async def _rebuild_worlds(self, regenerate_all: bool = False) -> None:
        """Compute the complete world collection and swap it in with one write."""
        records = self.record_store.all()
        cached = {world.id: world for world in self.worlds.list()}

        hub = build_hub_world(records, None if regenerate_all else cached.get(MAIN_WORLD_ID))
        rebuilt: list[World] = [hub]
        regenerated = 0
        for record in records:
            world_id = project_world_id(record.id)
            existing = cached.get(world_id)
            if regenerate_all or self._needs_rebuild(record, existing):
                rebuilt.append(build_subworld(record, self.is_touch_variant))
                regenerated += 1
            else:
                rebuilt.append(existing)

        kept_ids = {world.id for world in rebuilt}
        dropped = [
            wid for wid in cached
            if wid not in kept_ids and parse_project_world_id(wid) is not None
        ]
        # Worlds that are neither the hub nor a subworld are left alone
        rebuilt.extend(
            world for wid, world in cached.items()
            if wid not in kept_ids and wid not in dropped
        )
        if dropped:
            logger.info("Dropping subworlds of removed projects: %s", ", ".join(dropped))

        await self.worlds.replace_all(rebuilt)
        logger.info(
            "Worlds rebuilt: hub with %d cards, %d of %d subworlds regenerated",
            len(hub.project_cards()), regenerated, len(records),
        )

    def _needs_rebuild(self, record: ProjectRecord, existing: World | None) -> bool:
        if existing is None:
            return True
        if not self.worlds.is_stale(existing.id):
            return False
        # Same content count as the record: keep the cached layout
        return content_object_count(existing) != record.expected_object_count

    async def _ensure_subworld(self, project_id: int) -> World | None:
        """Cached subworld for a project, materialized on a cache miss."""
        world_id = project_world_id(project_id)
        async with self._sync_lock:
            cached = self.worlds.get(world_id)
            if cached is not None and not self.worlds.is_stale(world_id):
                return cached
            record = self.record_store.get(project_id)
            if record is None:
                return None
            return await self.worlds.upsert(build_subworld(record, self.is_touch_variant))

    # --- Projects ---

    def get_all_projects(self) -> list[ProjectRecord]:
        return self.record_store.all()

    def get_project_by_id(self, project_id: int) -> ProjectRecord | None:
        return self.record_store.get(project_id)

    def get_project_by_name(self, name_or_link: str) -> ProjectRecord | None:
        """Resolve a name, custom link or URL slug to a project."""
        return find_project(self.record_store.all(), name_or_link)

    async def save_project(self, record: ProjectRecord) -> ProjectRecord:
        """Admin edit: save the record, rebuild its subworld and the hub."""
        await self._bootstrap()
        async with self._sync_lock:
            saved = await self.record_store.save(record)
            await self.worlds.upsert(build_subworld(saved, self.is_touch_variant))
            await self._rebuild_hub()
        return saved

    async def update_project(self, project_id: int, changes: dict[str, Any]) -> ProjectRecord:
        await self._bootstrap()
        async with self._sync_lock:
            saved = await self.record_store.update(project_id, changes)
            await self.worlds.upsert(build_subworld(saved, self.is_touch_variant))
            await self._rebuild_hub()
        return saved

    async def delete_project(self, project_id: int) -> bool:
        await self._bootstrap()
        async with self._sync_lock:
            deleted = await self.record_store.delete(project_id)
            if deleted:
                await self.worlds.remove(project_world_id(project_id))
                await self._rebuild_hub()
        if deleted:
            self.navigator.sync()
        return deleted

    async def _rebuild_hub(self) -> None:
        hub = build_hub_world(self.record_store.all(), self.worlds.get(MAIN_WORLD_ID))
        await self.worlds.upsert(hub)

    # --- Worlds ---

    def get_world(self, world_id: str) -> World | None:
        return self.worlds.get(world_id)

    def get_all_worlds(self) -> list[World]:
        return self.worlds.list()

    async def update_world(self, world: World) -> World:
        await self._bootstrap()
        async with self._sync_lock:
            return await self.worlds.upsert(world)

    async def remove_world(self, world_id: str) -> bool:
        await self._bootstrap()
        async with self._sync_lock:
            removed = await self.worlds.remove(world_id)
        self.navigator.sync()
        return removed

    async def clear_all_worlds(self) -> None:
        await self._bootstrap()
        async with self._sync_lock:
            await self.worlds.clear()
        self.navigator.sync()

    async def reload_worlds(self) -> list[World]:
        await self._bootstrap()
        async with self._sync_lock:
            worlds = await self.worlds.reload_from_store()
        self.navigator.sync()
        return worlds

    # --- Navigation ---

    async def set_current_world_id(self, world_id: str) -> str:
        return await self.navigator.transition(world_id)

    def get_camera_target(self) -> Vec3:
        return self.navigator.camera_target()

    async def set_deep_link(self, world_id: str, project_id: int | None = None) -> None:
        """Store a one-shot target consumed by the next initialization."""
        items = {self.settings.DEEP_LINK_KEY: world_id}
        if project_id is not None:
            items[self.settings.DEEP_LINK_PROJECT_KEY] = str(project_id)
        await self.kv.set_many(items)

    @property
    def current_world_id(self) -> str:
        return self.navigator.current_world_id

    def current_world(self) -> World | None:
        return self.navigator.current_world()

    @property
    def is_loading(self) -> bool:
        return self.state is not InitState.READY or self.navigator.is_loading

    def on_world_change(self, callback: Callable[[str], None]) -> None:
        """Register a callback for navigation: callback(world_id)."""
        self.navigator.on_change(callback)
