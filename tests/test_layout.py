import math
from collections import Counter

import pytest

from world.layout import (
    HEIGHT_RANGE,
    ROTATION_RANGE,
    cluster_count,
    gallery_placement,
    gallery_placements,
    hub_position,
    seeded_range,
    seeded_unit,
)


def test_seeded_unit_is_stable_and_bounded():
    values = [seeded_unit(seed) for seed in range(200)]
    assert values == [seeded_unit(seed) for seed in range(200)]
    assert all(0.0 <= v < 1.0 for v in values)
    # Different seeds spread out
    assert len(set(values)) == len(values)


def test_seeded_range_maps_into_bounds():
    for seed in range(50):
        assert -20.0 <= seeded_range(seed, -20.0, 20.0) < 20.0


@pytest.mark.parametrize(
    ("total", "expected"),
    [(0, 0), (1, 4), (6, 4), (12, 4), (24, 4), (25, 5), (30, 5), (31, 6)],
)
def test_cluster_count(total, expected):
    assert cluster_count(total) == expected


def test_zero_assets_yield_no_placements():
    assert gallery_placements(0) == []
    assert gallery_placements(-3) == []


def test_twelve_assets_form_four_clusters_of_three():
    clusters = cluster_count(12)
    sizes = Counter(index % clusters for index in range(12))
    assert clusters == 4
    assert sorted(sizes.values()) == [3, 3, 3, 3]


def test_gallery_placements_are_reproducible():
    first = gallery_placements(12)
    second = gallery_placements(12)
    assert first == second
    assert len({p.position for p in first}) == 12


def test_gallery_placement_depends_only_on_index_and_total():
    assert gallery_placement(5, 12) == gallery_placements(12)[5]
    assert gallery_placement(5, 12) != gallery_placement(5, 40)


def test_gallery_placement_variance_stays_in_range():
    for placement in gallery_placements(40):
        x, y, z = placement.position
        assert all(math.isfinite(v) for v in (x, y, z))
        assert HEIGHT_RANGE[0] <= y < HEIGHT_RANGE[1]
        assert ROTATION_RANGE[0] <= placement.rotation[1] < ROTATION_RANGE[1]
        assert placement.rotation[0] == 0.0 and placement.rotation[2] == 0.0
        sx, sy, sz = placement.scale
        assert 1.2 * 0.8 <= sx < 1.2 * 1.3
        assert sy == pytest.approx(sx * 0.75)
        assert sz == 0.1


def test_hub_position_is_deterministic_and_finite():
    for project_id in range(-3, 60):
        position = hub_position(project_id)
        assert position == hub_position(project_id)
        assert all(math.isfinite(v) for v in position)


def test_hub_positions_differ_between_projects():
    positions = {hub_position(project_id) for project_id in range(1, 32)}
    assert len(positions) == 31
