from core.errors import (
    DuplicateIdentityError,
    MalformedDataError,
    NotFoundError,
    ResolutionError,
    StoreCorruptionError,
)
from core.project import AssetGalleryEntry, ProjectDefinition, ProjectRecord, WorldSettings
from core.world import (
    MAIN_WORLD_ID,
    ButtonObject,
    ImageObject,
    LinkObject,
    PdfObject,
    ProjectCardObject,
    VideoObject,
    World,
    WorldObject,
    normalize_world_id,
    parse_project_world_id,
    project_world_id,
)

__all__ = [
    "MAIN_WORLD_ID",
    "AssetGalleryEntry",
    "ButtonObject",
    "DuplicateIdentityError",
    "ImageObject",
    "LinkObject",
    "MalformedDataError",
    "NotFoundError",
    "PdfObject",
    "ProjectCardObject",
    "ProjectDefinition",
    "ProjectRecord",
    "ResolutionError",
    "StoreCorruptionError",
    "VideoObject",
    "World",
    "WorldObject",
    "WorldSettings",
    "normalize_world_id",
    "parse_project_world_id",
    "project_world_id",
]
