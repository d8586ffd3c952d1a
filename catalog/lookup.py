"""Project lookup by name, custom link or URL slug."""

from __future__ import annotations

import re
from typing import Callable, Iterable, TypeVar

from core.project import ProjectDefinition

P = TypeVar("P", bound=ProjectDefinition)

_SEPARATORS = re.compile(r"[\s.]+")
_QUOTES = re.compile(r"['\"]")
_NON_SLUG = re.compile(r"[^a-z0-9-]")
_DASH_RUNS = re.compile(r"-+")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def slugify(name: str) -> str:
    """``"Jerry's Eaxy.AI"`` -> ``"jerrys-eaxy-ai"``."""
    slug = _SEPARATORS.sub("-", name.lower().strip())
    slug = _QUOTES.sub("", slug)
    slug = _NON_SLUG.sub("", slug)
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")


def _alnum(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())


def find_project(projects: Iterable[P], query: str) -> P | None:
    """Resolve a name, custom link or slug to a project; strictest match first."""
    query = query.strip()
    if not query:
        return None
    candidates = list(projects)
    lowered = query.lower()

    strategies: list[Callable[[P], bool]] = [
        lambda p: p.name == query,
        lambda p: p.name.lower() == lowered,
        lambda p: bool(p.custom_link) and p.custom_link.lower() == lowered,
        lambda p: slugify(p.name) == lowered,
        lambda p: _alnum(p.name) != "" and _alnum(p.name) == _alnum(query),
    ]
    for matches in strategies:
        for project in candidates:
            if matches(project):
                return project
    return None
