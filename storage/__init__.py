"""Persistence: key/value stores and the project record store."""

from storage.kv_store import InMemoryKeyValueStore, KeyValueStore, SQLiteKeyValueStore
from storage.record_store import RecordStore

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RecordStore",
    "SQLiteKeyValueStore",
]
