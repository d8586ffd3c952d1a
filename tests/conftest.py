"""Test configuration for the project/world resolution engine."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import asyncio
import json
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from catalog.loader import DefinitionSource
from config.settings import Settings
from core.errors import NotFoundError
from storage.kv_store import InMemoryKeyValueStore
from world.orchestrator import Orchestrator


class FakeDefinitionSource(DefinitionSource):
    """In-memory definition source that counts probes and fetches."""

    def __init__(
        self,
        documents: Mapping[str, Any] | None = None,
        *,
        delay: float = 0.0,
    ) -> None:
        self.documents: dict[str, Any] = dict(documents or {})
        self.delay = delay
        self.exists_calls: list[str] = []
        self.fetch_calls: list[str] = []
        self.closed = False

    async def exists(self, slug: str) -> bool:
        self.exists_calls.append(slug)
        if self.delay:
            await asyncio.sleep(self.delay)
        return slug in self.documents

    async def fetch(self, slug: str) -> str:
        self.fetch_calls.append(slug)
        if slug not in self.documents:
            raise NotFoundError(slug)
        document = self.documents[slug]
        return document if isinstance(document, str) else json.dumps(document)

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Settable replacement for ``time.time``."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_definition(project_id: int, name: str, **extra: Any) -> dict[str, Any]:
    """A camelCase definition document as served over the wire."""

    document: dict[str, Any] = {
        "id": project_id,
        "name": name,
        "description": f"{name} description",
        "link": f"https://example.com/{project_id}",
        "thumbnail": f"/thumbs/{project_id}.png",
        "status": "completed",
        "type": "standard",
        "mediaObjects": [],
        "assetGallery": [],
    }
    document.update(extra)
    return document


def make_assets(count: int) -> list[dict[str, str]]:
    """Untitled gallery assets with image URLs."""

    return [
        {"name": "", "type": "", "category": "gallery", "url": f"/media/shot_{i}.png"}
        for i in range(count)
    ]


@pytest.fixture()
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_orchestrator(kv: InMemoryKeyValueStore, clock: FakeClock) -> Any:
    """Factory fixture: an orchestrator over in-memory storage and a fake source."""

    def _factory(
        documents: Mapping[str, Any] | None = None,
        *,
        source: FakeDefinitionSource | None = None,
        catalog: Sequence[str] | None = None,
        store: InMemoryKeyValueStore | None = None,
        is_touch_variant: bool = False,
        **settings_overrides: Any,
    ) -> Orchestrator:
        source = source or FakeDefinitionSource(documents)
        settings = Settings(
            PROJECT_CATALOG=list(catalog if catalog is not None else source.documents),
            **settings_overrides,
        )
        return Orchestrator(
            settings=settings,
            kv=store if store is not None else kv,
            source=source,
            clock=clock,
            is_touch_variant=is_touch_variant,
        )

    return _factory


__all__ = ["FakeClock", "FakeDefinitionSource", "make_assets", "make_definition"]
