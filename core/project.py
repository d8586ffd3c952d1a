"""Project definitions (fetched) and project records (persisted, editable)."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import Field, FiniteFloat, field_validator

from core.world import WireModel, WorldObject, normalize_object_list


class WorldSettings(WireModel):
    """Environment of a project's subworld."""

    background_color: str = "#111111"
    floor_color: str = "#222222"
    sky_color: str = "#000000"
    floor_texture: Optional[str] = None
    sky_texture: Optional[str] = None
    ambient_light_color: str = "#aaaaaa"
    ambient_light_intensity: FiniteFloat = 0.7
    directional_light_color: str = "#ffffff"
    directional_light_intensity: FiniteFloat = 1.0


class AssetGalleryEntry(WireModel):
    """An unpositioned asset; placed procedurally when a subworld is built."""

    name: str = ""
    type: str = ""
    category: str = ""
    url: str = ""


class ProjectDefinition(WireModel):
    """Externally authored description of a project."""

    id: int
    name: str = Field(min_length=1)
    description: str = ""
    link: str = ""
    thumbnail: str = ""
    status: Literal["completed", "in-progress"] = "in-progress"
    type: Literal["standard", "video"] = "standard"
    video_url: Optional[str] = None
    custom_link: Optional[str] = None
    world_settings: Optional[WorldSettings] = None
    media_objects: list[WorldObject] = Field(default_factory=list)
    asset_gallery: list[AssetGalleryEntry] = Field(default_factory=list)

    @field_validator("media_objects", mode="before")
    @classmethod
    def _normalize_media(cls, value: Any) -> Any:
        return normalize_object_list(value)

    @field_validator("asset_gallery", mode="before")
    @classmethod
    def _default_gallery(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def expected_object_count(self) -> int:
        """Number of content objects a subworld built from this project holds."""
        return len(self.media_objects) + len(self.asset_gallery)


class ProjectRecord(ProjectDefinition):
    """Persisted, admin-editable counterpart of a ProjectDefinition."""

    @classmethod
    def from_definition(cls, definition: ProjectDefinition) -> ProjectRecord:
        return cls.model_validate(definition.model_dump())
