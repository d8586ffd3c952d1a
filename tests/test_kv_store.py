import asyncio

from storage.kv_store import InMemoryKeyValueStore, SQLiteKeyValueStore


def test_sqlite_store_round_trip(tmp_path):
    db_path = tmp_path / "nested" / "worlds.db"
    store = SQLiteKeyValueStore(str(db_path))

    async def run():
        await store.init()
        await store.set("a", "1")
        await store.set_many({"b": "2", "c": "3"})
        await store.set("a", "one")
        await store.delete("c")
        await store.delete("missing")
        return [await store.get(key) for key in ("a", "b", "c", "missing")]

    assert asyncio.run(run()) == ["one", "2", None, None]
    assert db_path.exists()


def test_sqlite_store_persists_across_instances(tmp_path):
    db_path = str(tmp_path / "worlds.db")

    async def write():
        await SQLiteKeyValueStore(db_path).set("portfolio_worlds", "[]")

    async def read():
        return await SQLiteKeyValueStore(db_path).get("portfolio_worlds")

    asyncio.run(write())
    assert asyncio.run(read()) == "[]"


def test_in_memory_store_counts_writes():
    store = InMemoryKeyValueStore({"x": "1"})

    async def run():
        await store.set_many({"y": "2", "z": "3"})
        await store.set("x", "10")
        await store.delete("y")

    asyncio.run(run())
    assert store.writes == 2
    assert store.snapshot() == {"x": "10", "z": "3"}
