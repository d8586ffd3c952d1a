"""World and WorldObject models.

WorldObject is a closed tagged union on ``type``. Documents written by older
versions used ``project`` for project cards and ``html`` for web links; those
discriminants are rewritten before validation, anything else unknown is
rejected.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, field_validator
from pydantic.alias_generators import to_camel

MAIN_WORLD_ID = "mainWorld"
PROJECT_WORLD_PREFIX = "project-world-"

OBJECT_TYPES = frozenset({"button", "project-card", "image", "video", "pdf", "link"})
MEDIA_TYPES = frozenset({"image", "video", "pdf", "link"})

# Discriminants used by older documents
LEGACY_OBJECT_TYPES = {
    "project": "project-card",
    "html": "link",
}

_LEGACY_WORLD_ID = re.compile(r"^world_(\d+)$")

Vec3 = tuple[FiniteFloat, FiniteFloat, FiniteFloat]


class WireModel(BaseModel):
    """Base for models persisted or fetched as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WorldObjectBase(WireModel):
    """Fields shared by every object placed in a world."""

    id: str
    title: str = ""
    description: Optional[str] = None
    url: Optional[str] = None
    thumbnail: Optional[str] = None
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)
    scale: Vec3 = (1.0, 1.0, 1.0)


class ButtonObject(WorldObjectBase):
    type: Literal["button"] = "button"
    action: Literal["navigate", "link"] = "navigate"
    destination: Optional[str] = None


class ProjectCardObject(WorldObjectBase):
    type: Literal["project-card"] = "project-card"
    project_id: int
    sub_world_id: Optional[str] = None
    status: Optional[str] = None
    project_type: Optional[str] = None
    link: Optional[str] = None
    video_url: Optional[str] = None
    custom_link: Optional[str] = None


class ImageObject(WorldObjectBase):
    type: Literal["image"] = "image"


class VideoObject(WorldObjectBase):
    type: Literal["video"] = "video"


class PdfObject(WorldObjectBase):
    type: Literal["pdf"] = "pdf"


class LinkObject(WorldObjectBase):
    type: Literal["link"] = "link"


WorldObject = Annotated[
    Union[ButtonObject, ProjectCardObject, ImageObject, VideoObject, PdfObject, LinkObject],
    Field(discriminator="type"),
]

MEDIA_OBJECT_CLASSES: dict[str, type[WorldObjectBase]] = {
    "image": ImageObject,
    "video": VideoObject,
    "pdf": PdfObject,
    "link": LinkObject,
}


def normalize_object_type(value: Any) -> Any:
    """Rewrite a legacy ``type`` discriminant on a raw object mapping."""
    if isinstance(value, dict):
        kind = value.get("type")
        if isinstance(kind, str):
            kind = kind.strip().lower()
            kind = LEGACY_OBJECT_TYPES.get(kind, kind)
            if kind != value["type"]:
                value = {**value, "type": kind}
    return value


def normalize_object_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [normalize_object_type(item) for item in value]
    return value


class World(WireModel):
    """A navigable world: the hub or one project's subworld."""

    id: str
    name: str
    description: Optional[str] = None
    background_color: str = "#ffffff"
    floor_color: str = "#ffffff"
    sky_color: str = "#ffffff"
    floor_texture: Optional[str] = None
    sky_texture: Optional[str] = None
    ambient_light_color: str = "#ffffff"
    ambient_light_intensity: FiniteFloat = 0.8
    directional_light_color: str = "#ffffff"
    directional_light_intensity: FiniteFloat = 1.2
    camera_position: Optional[Vec3] = None
    camera_target: Optional[Vec3] = None
    objects: list[WorldObject] = Field(default_factory=list)

    @field_validator("objects", mode="before")
    @classmethod
    def _normalize_objects(cls, value: Any) -> Any:
        return normalize_object_list(value)

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        return normalize_world_id(value)

    def project_cards(self) -> list[ProjectCardObject]:
        return [obj for obj in self.objects if isinstance(obj, ProjectCardObject)]


def project_world_id(project_id: int) -> str:
    return f"{PROJECT_WORLD_PREFIX}{project_id}"


def normalize_world_id(world_id: str) -> str:
    """Map legacy ``world_<n>`` ids onto ``project-world-<n>``."""
    if not world_id:
        return ""
    match = _LEGACY_WORLD_ID.match(world_id)
    if match:
        return project_world_id(int(match.group(1)))
    return world_id


def parse_project_world_id(world_id: str) -> int | None:
    """Return the project id named by a subworld id, or None."""
    world_id = normalize_world_id(world_id)
    if not world_id.startswith(PROJECT_WORLD_PREFIX):
        return None
    suffix = world_id[len(PROJECT_WORLD_PREFIX):]
    if not suffix.isdigit():
        return None
    return int(suffix)
