import asyncio
import json
import logging

from conftest import make_definition
from catalog.reconciler import Reconciler
from core.project import ProjectDefinition, ProjectRecord
from storage.kv_store import InMemoryKeyValueStore
from storage.record_store import RecordStore


def _reconciler(kv=None) -> Reconciler:
    return Reconciler(RecordStore(kv or InMemoryKeyValueStore()))


def test_first_definition_with_an_id_wins(caplog):
    caplog.set_level(logging.WARNING, logger="catalog.reconciler")
    result = _reconciler().reconcile([
        make_definition(1, "Alpha"),
        make_definition(1, "Beta"),
    ])

    assert [record.name for record in result.accepted] == ["Alpha"]
    assert result.discarded == [("Beta", "duplicate id 1")]
    assert "Skipping duplicate project ID 1 for Beta" in caplog.text


def test_name_collision_discards_later_definition():
    result = _reconciler().reconcile([
        make_definition(1, "Alpha"),
        make_definition(2, "Alpha"),
        make_definition(3, "Gamma"),
    ])
    assert [(r.id, r.name) for r in result.accepted] == [(1, "Alpha"), (3, "Gamma")]
    assert result.discarded == [("Alpha", "duplicate name")]


def test_id_pass_runs_before_name_pass():
    # The second id-1 definition is dropped before names are compared
    result = _reconciler().reconcile([
        make_definition(1, "Alpha"),
        make_definition(1, "Beta"),
        make_definition(3, "Beta"),
    ])
    assert [(r.id, r.name) for r in result.accepted] == [(1, "Alpha"), (3, "Beta")]


def test_malformed_mappings_are_discarded_without_failing_the_batch():
    bad_object = make_definition(2, "Beta", mediaObjects=[{"id": "h", "type": "hologram"}])
    missing_name = {"id": 3}
    result = _reconciler().reconcile([make_definition(1, "Alpha"), bad_object, missing_name])

    assert [r.id for r in result.accepted] == [1]
    assert [reason for _, reason in result.discarded] == ["malformed", "malformed"]


def test_accepts_parsed_definitions():
    definition = ProjectDefinition.model_validate(make_definition(7, "Seven"))
    result = _reconciler().reconcile([definition])
    assert result.accepted[0].id == 7
    assert result.accepted[0] is not definition


def test_commit_replaces_store_and_notifies():
    kv = InMemoryKeyValueStore()
    store = RecordStore(kv)
    reconciler = Reconciler(store)
    committed = []
    reconciler.on_commit(committed.append)

    async def run():
        await store.load()
        await store.save(ProjectRecord.model_validate(make_definition(5, "Old")))
        await reconciler.commit([make_definition(1, "Alpha"), make_definition(2, "Beta")])

    asyncio.run(run())

    assert [r.name for r in store.all()] == ["Alpha", "Beta"]
    assert [[r.id for r in records] for records in committed] == [[1, 2]]
    snapshot = kv.snapshot()
    assert snapshot["portfolio_projects"] == snapshot["portfolio_projects_backup"]
    assert [item["name"] for item in json.loads(snapshot["portfolio_projects"])] == ["Alpha", "Beta"]
