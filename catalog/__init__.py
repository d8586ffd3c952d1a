"""Project catalog: definition loading, reconciliation and lookup."""

from catalog.loader import DefinitionLoader, DirectoryDefinitionSource, HttpDefinitionSource
from catalog.lookup import find_project, slugify
from catalog.reconciler import Reconciler, ReconciliationResult

__all__ = [
    "DefinitionLoader",
    "DirectoryDefinitionSource",
    "HttpDefinitionSource",
    "Reconciler",
    "ReconciliationResult",
    "find_project",
    "slugify",
]
