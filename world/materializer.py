"""World materializer — turns project records into hub and subworld graphs.

Both builders are pure: they never mutate their inputs, never touch storage
and return the same World for the same input. Persisting a result is the
caller's decision (see WorldService).
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from core.project import AssetGalleryEntry, ProjectDefinition, WorldSettings
from core.world import (
    MAIN_WORLD_ID,
    MEDIA_OBJECT_CLASSES,
    MEDIA_TYPES,
    LEGACY_OBJECT_TYPES,
    ButtonObject,
    ProjectCardObject,
    World,
    WorldObjectBase,
    project_world_id,
)
from world.layout import gallery_placements, hub_position

logger = logging.getLogger(__name__)

HUB_NAME = "Portfolio Main World"
HUB_DESCRIPTION = "Explore my portfolio projects in 3D space"
HUB_CAMERA_POSITION = (0.0, 5.0, 30.0)
SUBWORLD_CAMERA_POSITION = (0.0, 3.0, 15.0)
SUMMARY_CARD_POSITION = (0.0, 3.0, -5.0)
# The desktop back button is navigated by keyboard; it sits out of sight
BACK_BUTTON_POSITION = (0.0, -100.0, 0.0)
BACK_BUTTON_SCALE = (0.001, 0.001, 0.001)

_VIDEO_HINTS = ("youtube", "youtu.be", "vimeo")
_VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".avi")
_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")
_SEPARATORS = re.compile(r"[_-]+")


def summary_card_id(project_id: int) -> str:
    return f"summary-{project_id}"


def back_button_id(project_id: int) -> str:
    return f"back-to-main-{project_id}"


def hub_card_id(project_id: int) -> str:
    return f"project-{project_id}"


def resolve_media_type(url: str, declared: str = "") -> str:
    """Pick the media object kind for a gallery asset."""
    kind = (declared or "").strip().lower()
    kind = LEGACY_OBJECT_TYPES.get(kind, kind)
    if kind in MEDIA_TYPES:
        return kind

    lowered = (url or "").lower().split("?", 1)[0]
    if any(hint in lowered for hint in _VIDEO_HINTS) or lowered.endswith(_VIDEO_EXTENSIONS):
        return "video"
    if lowered.endswith(".pdf"):
        return "pdf"
    if lowered.startswith("http") and not lowered.endswith(_IMAGE_EXTENSIONS):
        return "link"
    return "image"


def title_from_url(url: str) -> str:
    """``/media/hero_shot-2.png`` -> ``Hero Shot 2``."""
    if not url:
        return "Untitled"
    filename = url.rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0]
    stem = filename.rsplit(".", 1)[0] if "." in filename else filename
    words = _SEPARATORS.sub(" ", stem).split()
    if not words:
        return "Untitled"
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _project_card(project: ProjectDefinition, card_id: str, position) -> ProjectCardObject:
    return ProjectCardObject(
        id=card_id,
        title=project.name,
        description=project.description,
        thumbnail=project.thumbnail or None,
        position=position,
        project_id=project.id,
        sub_world_id=project_world_id(project.id),
        status=project.status,
        project_type=project.type,
        link=project.link or None,
        video_url=project.video_url,
        custom_link=project.custom_link,
    )


def build_hub_world(
    projects: Sequence[ProjectDefinition],
    existing: Optional[World] = None,
) -> World:
    """Build the hub: one project card per project, ordered by project id.

    Cards already present in ``existing`` keep their position; every other
    object of ``existing`` (fixed scenery) is carried over unchanged.
    """
    previous_positions: dict[int, tuple[float, float, float]] = {}
    scenery: list[WorldObjectBase] = []
    if existing is not None:
        for obj in existing.objects:
            if isinstance(obj, ProjectCardObject):
                previous_positions.setdefault(obj.project_id, obj.position)
            else:
                scenery.append(obj.model_copy(deep=True))

    cards = []
    for project in sorted(projects, key=lambda p: p.id):
        position = previous_positions.get(project.id) or hub_position(project.id)
        cards.append(_project_card(project, hub_card_id(project.id), position))

    logger.debug(
        "Hub built: %d project cards (%d reused positions), %d scenery objects",
        len(cards), sum(1 for p in projects if p.id in previous_positions), len(scenery),
    )
    return World(
        id=MAIN_WORLD_ID,
        name=HUB_NAME,
        description=HUB_DESCRIPTION,
        background_color="#ffffff",
        floor_color="#ffffff",
        sky_color="#ffffff",
        ambient_light_color="#ffffff",
        ambient_light_intensity=0.8,
        directional_light_color="#ffffff",
        directional_light_intensity=1.2,
        camera_position=existing.camera_position if existing and existing.camera_position else HUB_CAMERA_POSITION,
        camera_target=existing.camera_target if existing else None,
        objects=[*scenery, *cards],
    )


def _gallery_object(
    project: ProjectDefinition,
    asset: AssetGalleryEntry,
    index: int,
    placement,
) -> WorldObjectBase:
    kind = resolve_media_type(asset.url, asset.type)
    cls = MEDIA_OBJECT_CLASSES[kind]
    return cls(
        id=f"asset-{index}",
        title=asset.name or title_from_url(asset.url),
        description=f"Asset from {project.name}",
        url=asset.url or None,
        thumbnail=asset.url or None,
        position=placement.position,
        rotation=placement.rotation,
        scale=placement.scale,
    )


def build_subworld(project: ProjectDefinition, is_touch_variant: bool = False) -> World:
    """Build ``project-world-<id>`` for one project.

    Object order: summary card, authored media objects, procedurally placed
    gallery assets, then (desktop only) the back-to-hub button.
    """
    objects: list[WorldObjectBase] = [
        _project_card(project, summary_card_id(project.id), SUMMARY_CARD_POSITION),
    ]
    objects.extend(obj.model_copy(deep=True) for obj in project.media_objects)

    placements = gallery_placements(len(project.asset_gallery))
    objects.extend(
        _gallery_object(project, asset, index, placement)
        for index, (asset, placement) in enumerate(zip(project.asset_gallery, placements))
    )

    if not is_touch_variant:
        objects.append(ButtonObject(
            id=back_button_id(project.id),
            title="Back to Main World",
            description="Return to the main portfolio overview",
            action="navigate",
            destination=MAIN_WORLD_ID,
            position=BACK_BUTTON_POSITION,
            scale=BACK_BUTTON_SCALE,
        ))

    settings = project.world_settings or WorldSettings()
    world = World(
        id=project_world_id(project.id),
        name=project.name or "Project World",
        description=project.description or "Details for this project",
        background_color=settings.background_color,
        floor_color=settings.floor_color,
        sky_color=settings.sky_color,
        floor_texture=settings.floor_texture,
        sky_texture=settings.sky_texture,
        ambient_light_color=settings.ambient_light_color,
        ambient_light_intensity=settings.ambient_light_intensity,
        directional_light_color=settings.directional_light_color,
        directional_light_intensity=settings.directional_light_intensity,
        camera_position=SUBWORLD_CAMERA_POSITION,
        objects=objects,
    )
    logger.debug(
        "Subworld %s built: %d media objects, %d gallery assets, touch=%s",
        world.id, len(project.media_objects), len(project.asset_gallery), is_touch_variant,
    )
    return world


def content_object_count(world: World) -> int:
    """Objects in a subworld other than its summary card and back button."""
    project_id = None
    for obj in world.objects:
        if isinstance(obj, ProjectCardObject) and obj.id.startswith("summary-"):
            project_id = obj.project_id
            break
    fixed = {summary_card_id(project_id), back_button_id(project_id)} if project_id is not None else set()
    return sum(1 for obj in world.objects if obj.id not in fixed)
