"""Reconciler — merges freshly loaded definitions into the record store.

Identity rules, applied in encountered order:
1. the first definition with a given id wins, later ones are discarded;
2. among the survivors, a definition whose name is already taken is discarded;
3. the accepted set is checked once more for repeated ids before commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Union

from pydantic import ValidationError

from core.errors import DuplicateIdentityError
from core.project import ProjectDefinition, ProjectRecord
from storage.record_store import RecordStore

logger = logging.getLogger(__name__)

DefinitionInput = Union[ProjectDefinition, Mapping[str, Any]]


@dataclass
class ReconciliationResult:
    accepted: list[ProjectRecord] = field(default_factory=list)
    discarded: list[tuple[str, str]] = field(default_factory=list)  # (label, reason)


class Reconciler:
    """Applies the identity rules and commits the accepted set."""

    def __init__(self, record_store: RecordStore):
        self.record_store = record_store
        # Called after every commit; the world cache uses it to mark worlds stale
        self._on_commit: list[Callable[[list[ProjectRecord]], None]] = []

    def on_commit(self, callback: Callable[[list[ProjectRecord]], None]) -> None:
        self._on_commit.append(callback)

    def reconcile(self, definitions: Iterable[DefinitionInput]) -> ReconciliationResult:
        """Pure step: decide which definitions survive. Does not touch storage."""
        result = ReconciliationResult()

        valid: list[ProjectDefinition] = []
        total = 0
        for index, item in enumerate(definitions):
            total += 1
            if isinstance(item, ProjectDefinition):
                valid.append(item)
                continue
            try:
                valid.append(ProjectDefinition.model_validate(item))
            except ValidationError as exc:
                label = f"#{index}"
                logger.warning(
                    "Discarding malformed definition %s (%d validation error(s))",
                    label, exc.error_count(),
                )
                result.discarded.append((label, "malformed"))

        by_id: list[ProjectDefinition] = []
        used_ids: set[int] = set()
        for definition in valid:
            if definition.id in used_ids:
                logger.warning(
                    "Skipping duplicate project ID %d for %s", definition.id, definition.name,
                )
                result.discarded.append((definition.name, f"duplicate id {definition.id}"))
                continue
            used_ids.add(definition.id)
            by_id.append(definition)

        used_names: set[str] = set()
        for definition in by_id:
            if definition.name in used_names:
                logger.warning(
                    "Skipping duplicate project name %s (id %d)", definition.name, definition.id,
                )
                result.discarded.append((definition.name, "duplicate name"))
                continue
            used_names.add(definition.name)
            result.accepted.append(ProjectRecord.from_definition(definition))

        final_ids = [record.id for record in result.accepted]
        if len(final_ids) != len(set(final_ids)):
            raise DuplicateIdentityError(f"Duplicate ids survived reconciliation: {final_ids}")

        logger.info(
            "Reconciled %d definitions: %d accepted, %d discarded",
            total,
            len(result.accepted),
            len(result.discarded),
        )
        return result

    async def commit(self, definitions: Iterable[DefinitionInput]) -> ReconciliationResult:
        """Reconcile and replace the record store's whole collection."""
        result = self.reconcile(definitions)
        records = await self.record_store.replace_all(result.accepted)
        for callback in self._on_commit:
            callback(records)
        return result
