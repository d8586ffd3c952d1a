"""World system: layout, materializer, world cache, navigator, orchestrator."""

from world.materializer import build_hub_world, build_subworld
from world.navigator import Navigator
from world.orchestrator import InitState, Orchestrator
from world.service import WorldService

__all__ = [
    "InitState",
    "Navigator",
    "Orchestrator",
    "WorldService",
    "build_hub_world",
    "build_subworld",
]
