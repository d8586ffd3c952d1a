import asyncio
import json

from conftest import make_assets, make_definition
from core.project import ProjectRecord
from core.world import World
from storage.kv_store import InMemoryKeyValueStore
from world.materializer import build_hub_world, build_subworld
from world.service import WorldService

KEY = "portfolio_worlds"


def _subworld(project_id=1, name="Alpha", assets=3) -> World:
    record = ProjectRecord.model_validate(
        make_definition(project_id, name, assetGallery=make_assets(assets)),
    )
    return build_subworld(record)


def test_upsert_then_get_round_trips_before_and_after_reload():
    kv = InMemoryKeyValueStore()
    service = WorldService(kv, KEY)
    world = _subworld()
    world.camera_target = (1.5, 0.0, -2.0)

    async def run():
        await service.load()
        await service.upsert(world)
        before = service.get(world.id)
        await service.reload_from_store()
        after = service.get(world.id)
        fresh = WorldService(kv, KEY)
        await fresh.load()
        return before, after, fresh.get(world.id)

    for copy in asyncio.run(run()):
        assert copy == world
        assert copy.to_wire() == world.to_wire()


def test_get_returns_independent_copies():
    service = WorldService(InMemoryKeyValueStore(), KEY)
    asyncio.run(service.upsert(_subworld()))

    copy = service.get("project-world-1")
    copy.objects.clear()
    assert len(service.get("project-world-1").objects) == 5


def test_legacy_world_ids_are_normalized():
    service = WorldService(InMemoryKeyValueStore(), KEY)
    legacy = World(id="world_7", name="Legacy")
    assert legacy.id == "project-world-7"

    asyncio.run(service.upsert(legacy))
    assert service.get("world_7") is not None
    assert service.has("project-world-7")


def test_last_write_wins():
    service = WorldService(InMemoryKeyValueStore(), KEY)
    first = World(id="project-world-1", name="First")
    second = World(id="project-world-1", name="Second")

    async def run():
        await service.upsert(first)
        await service.upsert(second)

    asyncio.run(run())
    assert [w.name for w in service.list()] == ["Second"]


def test_remove_and_clear_are_persisted():
    kv = InMemoryKeyValueStore()
    service = WorldService(kv, KEY)

    async def run():
        await service.replace_all([build_hub_world([]), _subworld(1), _subworld(2, "Beta")])
        removed = await service.remove("project-world-1")
        missing = await service.remove("project-world-1")
        ids_after_remove = [w["id"] for w in json.loads(kv.snapshot()[KEY])]
        await service.clear()
        return removed, missing, ids_after_remove

    removed, missing, ids_after_remove = asyncio.run(run())
    assert (removed, missing) == (True, False)
    assert ids_after_remove == ["mainWorld", "project-world-2"]
    assert service.list() == []
    assert kv.snapshot()[KEY] == "[]"


def test_corrupt_store_loads_as_empty_cache():
    kv = InMemoryKeyValueStore({KEY: "{{{"})
    service = WorldService(kv, KEY)
    assert asyncio.run(service.load()) == []
    assert service.loaded


def test_malformed_stored_worlds_are_skipped():
    good = _subworld().to_wire()
    bad = {"id": "project-world-2", "name": "Bad", "objects": [{"id": "x", "type": "hologram"}]}
    kv = InMemoryKeyValueStore({KEY: json.dumps([good, bad, good])})
    service = WorldService(kv, KEY)
    assert [w.id for w in asyncio.run(service.load())] == ["project-world-1"]


def test_stale_flags_clear_on_write():
    service = WorldService(InMemoryKeyValueStore(), KEY)
    world = _subworld()

    async def run():
        await service.upsert(world)
        service.mark_stale(["project-world-1", "world_9"])
        flags = service.is_stale("project-world-1"), service.is_stale("project-world-9")
        await service.upsert(world)
        return flags

    assert asyncio.run(run()) == (True, True)
    assert not service.is_stale("project-world-1")
    service.mark_stale()
    assert service.is_stale("project-world-1")


def test_upsert_and_remove_before_load_keep_persisted_worlds():
    kv = InMemoryKeyValueStore()
    asyncio.run(WorldService(kv, KEY).replace_all([build_hub_world([]), _subworld(1), _subworld(2, "Beta")]))

    asyncio.run(WorldService(kv, KEY).upsert(_subworld(3, "Gamma")))
    asyncio.run(WorldService(kv, KEY).remove("project-world-1"))

    stored = [item["id"] for item in json.loads(kv.snapshot()[KEY])]
    assert stored == ["mainWorld", "project-world-2", "project-world-3"]
