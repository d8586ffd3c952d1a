"""Deterministic procedural layout.

Nothing here reads a clock or an entropy source: every value is derived from
integer seeds, so identical input always produces identical placement on any
machine.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass

# Gallery clustering
MIN_CLUSTERS = 4
ITEMS_PER_CLUSTER = 6
BASE_RADIUS = 40.0
RADIUS_GROWTH = 8.0
SPIRAL_BASE = 8.0
SPIRAL_GROWTH = 3.0
GOLDEN_ANGLE = 2.3

# Per-asset variance
JITTER = 20.0
JITTER_WEIGHT = 0.5
HEIGHT_RANGE = (2.2, 3.6)
ROTATION_RANGE = (-0.3, 0.3)
SCALE_RANGE = (0.8, 1.3)
CARD_SCALE = (1.2, 0.9, 0.1)

# Hub formations
HUB_CIRCLE_RADIUS = 45.0
HUB_SPIRAL_RADIUS = 30.0
HUB_GRID_SPACING = 12.0
HUB_GRID_COLUMNS = 4


@dataclass(frozen=True)
class Placement:
    position: tuple[float, float, float]
    rotation: tuple[float, float, float]
    scale: tuple[float, float, float]


def seeded_unit(seed: int) -> float:
    """Map an integer seed to a float in [0, 1).

    The same seed always yields the same value (Mersenne Twister seeded from
    the integer, which is stable across platforms and Python releases).
    """
    return random.Random(seed).random()


def seeded_range(seed: int, low: float, high: float) -> float:
    """Map an integer seed into [low, high)."""
    return low + (high - low) * seeded_unit(seed)


def cluster_count(total: int) -> int:
    if total <= 0:
        return 0
    return max(MIN_CLUSTERS, math.ceil(total / ITEMS_PER_CLUSTER))


def gallery_placement(index: int, total: int) -> Placement:
    """Place asset ``index`` of ``total`` on the clustered spiral layout."""
    clusters = cluster_count(total)
    cluster = index % clusters
    slot = index // clusters

    cluster_angle = 2 * math.pi * cluster / clusters
    cluster_radius = BASE_RADIUS + clusters * RADIUS_GROWTH
    spiral_radius = SPIRAL_BASE + slot * SPIRAL_GROWTH
    spiral_angle = slot * GOLDEN_ANGLE

    jitter_x = seeded_range(index * 7 + 123, -JITTER, JITTER)
    jitter_z = seeded_range(index * 11 + 456, -JITTER, JITTER)
    height = seeded_range(index * 13 + 789, *HEIGHT_RANGE)
    rotation_y = seeded_range(index * 17 + 234, *ROTATION_RANGE)
    scale = seeded_range(index * 23 + 890, *SCALE_RANGE)

    x = (
        math.cos(cluster_angle) * cluster_radius
        + math.cos(spiral_angle) * spiral_radius
        + jitter_x * JITTER_WEIGHT
    )
    z = (
        math.sin(cluster_angle) * cluster_radius
        + math.sin(spiral_angle) * spiral_radius
        + jitter_z * JITTER_WEIGHT
    )
    return Placement(
        position=(x, height, z),
        rotation=(0.0, rotation_y, 0.0),
        scale=(CARD_SCALE[0] * scale, CARD_SCALE[1] * scale, CARD_SCALE[2]),
    )


def gallery_placements(total: int) -> list[Placement]:
    """Placements for ``total`` unpositioned assets; empty when there are none."""
    return [gallery_placement(i, total) for i in range(max(total, 0))]


def hub_position(project_id: int) -> tuple[float, float, float]:
    """Default hub position for a project card, derived from the project id alone."""
    factor = project_id * 2

    if project_id % 3 == 0:
        # Circle
        angle = (factor * 0.5) % (2 * math.pi)
        radius = HUB_CIRCLE_RADIUS + (project_id % 5) * 4
        y = 2.0 + (factor * 0.15) % 1.5
        return (math.cos(angle) * radius, y, math.sin(angle) * radius)

    if project_id % 3 == 1:
        # Spiral
        progress = (factor * 0.07) % 1
        angle = progress * math.pi * 8
        radius = HUB_SPIRAL_RADIUS * (1 - progress * 0.3) + (project_id % 4)
        y = 2.5 + progress * 7 + (factor * 0.1) % 1.0
        return (math.cos(angle) * radius, y, math.sin(angle) * radius)

    # Staggered grid
    grid_index = factor // 3
    col = grid_index % HUB_GRID_COLUMNS
    row = grid_index // HUB_GRID_COLUMNS
    stagger = HUB_GRID_SPACING / 3 if project_id % 2 == 0 else -HUB_GRID_SPACING / 3
    x = (col - HUB_GRID_COLUMNS // 2) * HUB_GRID_SPACING + stagger
    z = -10 - row * HUB_GRID_SPACING + stagger
    y = 2.2 + (factor * 0.2) % 2.0
    return (float(x), y, float(z))
