"""Definition loader — fetches per-project definition documents.

Every slug in the catalog gets its own probe-then-fetch coroutine; all of them
run concurrently and a missing or malformed document is logged and skipped
without affecting its siblings.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from core.errors import MalformedDataError, NotFoundError
from core.project import ProjectDefinition

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "project.json"


class DefinitionSource(ABC):
    """Where definition documents come from."""

    @abstractmethod
    async def exists(self, slug: str) -> bool:
        """Cheap existence probe."""

    @abstractmethod
    async def fetch(self, slug: str) -> str | bytes:
        """Return the raw document. Raises NotFoundError when absent."""

    async def close(self) -> None:
        """Release any held resources."""


class HttpDefinitionSource(DefinitionSource):
    """Reads ``<base_url>/projects/<slug>/project.json`` over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )

    def document_url(self, slug: str) -> str:
        return f"{self.base_url}projects/{quote(slug, safe='')}/{DOCUMENT_NAME}"

    async def exists(self, slug: str) -> bool:
        response = await self._client.head(self.document_url(slug))
        if response.is_success:
            return True
        logger.warning("Project not found: %s (%d)", slug, response.status_code)
        return False

    async def fetch(self, slug: str) -> str:
        response = await self._client.get(self.document_url(slug))
        if response.status_code == 404:
            raise NotFoundError(f"No definition document for {slug!r}")
        response.raise_for_status()
        return response.text

    async def close(self) -> None:
        await self._client.aclose()


class DirectoryDefinitionSource(DefinitionSource):
    """Reads ``<root>/<slug>/project.json`` from the local filesystem."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def document_path(self, slug: str) -> Path:
        return self.root / slug / DOCUMENT_NAME

    async def exists(self, slug: str) -> bool:
        return self.document_path(slug).is_file()

    async def fetch(self, slug: str) -> bytes:
        path = self.document_path(slug)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise NotFoundError(f"No definition document at {path}") from exc


def parse_definition(raw: str | bytes, slug: str = "") -> ProjectDefinition:
    """Parse one document. Unknown extra fields are ignored."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedDataError(f"Definition {slug!r} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedDataError(f"Definition {slug!r} is not a JSON object")
    try:
        return ProjectDefinition.model_validate(data)
    except ValidationError as exc:
        raise MalformedDataError(
            f"Definition {slug!r} failed validation ({exc.error_count()} error(s))"
        ) from exc


class DefinitionLoader:
    """Loads every reachable definition from a catalog of slugs."""

    def __init__(
        self,
        source: DefinitionSource,
        catalog: Sequence[str] = (),
        max_concurrency: int = 16,
    ):
        self.source = source
        self.catalog = list(catalog)
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def load_all(self, catalog: Sequence[str] | None = None) -> list[ProjectDefinition]:
        """Fan out over the catalog and return parsed definitions in catalog order."""
        slugs = list(self.catalog if catalog is None else catalog)
        logger.info("Loading %d project definitions concurrently", len(slugs))
        results = await asyncio.gather(*(self.load_one(slug) for slug in slugs))
        definitions = [d for d in results if d is not None]
        logger.info("Loaded %d of %d project definitions", len(definitions), len(slugs))
        return definitions

    async def load_one(self, slug: str) -> ProjectDefinition | None:
        """Probe and fetch a single definition; None if missing or malformed."""
        try:
            async with self._semaphore:
                if not await self.source.exists(slug):
                    return None
                raw = await self.source.fetch(slug)
            definition = parse_definition(raw, slug)
        except NotFoundError as exc:
            logger.warning("Skipping %s: %s", slug, exc)
            return None
        except MalformedDataError as exc:
            logger.warning("Skipping %s: %s", slug, exc)
            return None
        except (httpx.HTTPError, OSError, UnicodeError) as exc:
            logger.warning("Skipping %s: %s", slug, exc)
            return None

        logger.debug(
            "Loaded definition %s (id=%d, %d media objects, %d gallery assets)",
            slug, definition.id, len(definition.media_objects), len(definition.asset_gallery),
        )
        return definition

    async def close(self) -> None:
        await self.source.close()
