"""
Tests for scatter placement.

Covers:
- Instance counts per size class and prototype band
- Underwater reclassification and the aquatic flag
- Detail scatter around primary instances
- Layer splat and detail density stamping
- Fail-fast configuration errors
"""

import pytest
from unittest.mock import patch
import numpy as np
from bonsai_terrain.core.progress import ProgressTracker
from bonsai_terrain.core.noise import noise_field
from bonsai_terrain.core.scatter_placer import ScatterPlacer, ScatterOptions
from bonsai_terrain.core.terrain_resource import (
    DEFAULT_TREE_PROTOTYPES, TerrainResource, TerrainConfigurationError,
)
from bonsai_terrain.utils.random import TerrainRandom

CENTRE = (0.5, 0.0, 0.5)


class FixedRandom:
    """Random source returning the same draw every time."""

    def __init__(self, draw=0.0):
        self.draw = draw

    def value(self):
        return self.draw

    def values(self, shape):
        return np.full(shape, self.draw)

    def range_float(self, min_val, max_val):
        return min_val + (max_val - min_val) * self.draw

    def range_int(self, min_val, max_val):
        return min_val

    def inside_unit_circle(self):
        return 0.0, 0.0


def make_world(level):
    """World-scale terrain with a flat normalized height."""
    resource = TerrainResource(
        heightmap_resolution=17,
        alphamap_resolution=16,
        detail_resolution=16,
        size=(60.0, 20.0, 60.0),
    )
    resource.set_heights(np.full((17, 17), level))
    return resource


class TestScatterPlacer:
    """Test scatter placement."""

    @pytest.fixture
    def tracker(self):
        return ProgressTracker()

    @pytest.fixture
    def fixed_placer(self, tracker):
        return ScatterPlacer(ScatterOptions(), prng=FixedRandom(0.0), tracker=tracker)

    def test_count_ranges(self, fixed_placer):
        assert fixed_placer.count_range(1, 0) == (3, 5)
        assert fixed_placer.count_range(2, 0) == (2, 3)
        assert fixed_placer.count_range(3, 0) == (1, 1)
        # Inorganic deposits of small and medium size scatter twice as many
        assert fixed_placer.count_range(1, 4) == (6, 10)
        assert fixed_placer.count_range(2, 4) == (4, 6)
        assert fixed_placer.count_range(3, 4) == (1, 1)

    def test_instance_scale(self, fixed_placer):
        assert fixed_placer.instance_scale(1, 0) == pytest.approx(0.2)
        assert fixed_placer.instance_scale(3, 0) == pytest.approx(0.6)
        assert fixed_placer.instance_scale(3, 4) == pytest.approx(1.2)

    def test_monument_radius(self, fixed_placer):
        assert fixed_placer.placement_radius(1) == pytest.approx(0.2)
        assert fixed_placer.placement_radius(3) == 0.0

    def test_above_waterline_keeps_prototype(self, fixed_placer, tracker):
        world = make_world(1.0)

        aquatic = fixed_placer.place(world, CENTRE, 1, 0, 0.2, True)

        assert aquatic is False
        assert world.instance_count == 3
        assert all(i.prototype_index == 0 for i in world.tree_instances)
        assert world.tree_instances[0].position[1] == pytest.approx(20.0)
        assert tracker.aquatic == 0

    def test_deep_water_selects_deep_variant(self, fixed_placer, tracker):
        world = make_world(0.0)

        aquatic = fixed_placer.place(world, CENTRE, 1, 0, 0.2, True)

        assert aquatic is True
        assert all(i.prototype_index == 13 for i in world.tree_instances)
        assert tracker.aquatic == 3

    def test_deep_water_can_keep_shallow_variant(self, tracker):
        placer = ScatterPlacer(prng=FixedRandom(0.75), tracker=tracker)
        world = make_world(0.0)

        placer.place(world, CENTRE, 3, 0, 0.0, True)

        assert world.tree_instances[0].prototype_index == 12

    def test_shallow_water_selects_shallow_variant(self, fixed_placer):
        # 0.125 * 20 = 2.5, between the deep band and the waterline
        world = make_world(0.125)

        aquatic = fixed_placer.place(world, CENTRE, 3, 0, 0.0, True)

        assert aquatic is True
        assert world.instance_count == 1
        assert world.tree_instances[0].prototype_index == 12

    def test_detail_pass_never_flags_aquatic(self, fixed_placer, tracker):
        world = make_world(0.0)

        aquatic = fixed_placer.place(world, CENTRE, 3, 6, 0.15, False)

        assert aquatic is False
        assert tracker.aquatic == 0

    def test_detail_scatter_organic(self):
        placer = ScatterPlacer(prng=TerrainRandom(7))
        world = make_world(1.0)

        placer.place(world, CENTRE, 3, 0, 0.0, True)

        indices = [i.prototype_index for i in world.tree_instances]
        assert indices[0] == 0
        # Each of the three detail clusters holds 2 or 3 instances
        assert 7 <= len(indices) <= 10
        assert {6, 7, 8} <= set(indices[1:])

    def test_detail_scatter_inorganic(self):
        placer = ScatterPlacer(prng=TerrainRandom(7))
        world = make_world(1.0)

        placer.place(world, CENTRE, 3, 4, 0.0, True)

        indices = [i.prototype_index for i in world.tree_instances]
        assert indices[0] == 4
        assert {9, 10, 11} <= set(indices[1:])

    def test_instances_stay_near_anchor(self):
        placer = ScatterPlacer(prng=TerrainRandom(11))
        world = make_world(1.0)

        placer.place(world, CENTRE, 2, 0, 0.2, False)

        for instance in world.tree_instances:
            dx = instance.position[0] - CENTRE[0]
            dz = instance.position[2] - CENTRE[2]
            assert np.hypot(dx, dz) <= 0.1 + 1e-9

    def test_instance_list_is_append_only(self):
        placer = ScatterPlacer(prng=TerrainRandom(3))
        world = make_world(0.6)
        previous = world.instance_count
        first = None

        for n in range(6):
            size_class = n % 3 + 1
            placer.scatter(world, (0.3 + 0.05 * n, 0.0, 0.6), size_class, n % 6)
            assert world.instance_count > previous
            previous = world.instance_count
            if first is None:
                first = world.tree_instances[0]

        assert world.tree_instances[0] is first

    def test_invalid_size_class(self, fixed_placer):
        world = make_world(1.0)
        for size_class in (0, 4, -1):
            with pytest.raises(TerrainConfigurationError):
                fixed_placer.place(world, CENTRE, size_class, 0, 0.2, True)
        assert world.instance_count == 0

    def test_missing_prototype(self, fixed_placer):
        with pytest.raises(TerrainConfigurationError):
            fixed_placer.place(make_world(1.0), CENTRE, 1, 99, 0.2, True)

    def test_splat_paints_target_layer(self, fixed_placer):
        world = make_world(1.0)

        fixed_placer.stamp_layer_splat(world, 2, CENTRE, 1.0)

        centre = world.alphamaps[8, 8]
        assert centre[2] >= 0.35 * 0.7 - 1e-6
        assert centre[0] < 1.0
        # Far corner is outside the stamp
        np.testing.assert_allclose(world.alphamaps[0, 0], [1.0, 0.0, 0.0, 0.0])
        assert np.all(world.alphamaps >= 0.0)

    def test_splat_invalid_layer(self, fixed_placer):
        with pytest.raises(TerrainConfigurationError):
            fixed_placer.stamp_layer_splat(make_world(1.0), 4, CENTRE, 1.0)

    def test_detail_stamp_increments(self, fixed_placer):
        world = make_world(1.0)

        fixed_placer.stamp_details(world, 1, CENTRE, 1.5, 0.1)
        once = world.get_detail_layer(1).copy()
        fixed_placer.stamp_details(world, 1, CENTRE, 1.5, 0.1)
        twice = world.get_detail_layer(1)

        assert once[8, 8] == 1
        assert once[0, 0] == 0
        assert twice[8, 8] == 2
        assert np.all(twice >= once)
        assert np.all(world.get_detail_layer(0) == 0)

    def test_primary_placement_stamps_grids(self, fixed_placer):
        world = make_world(1.0)

        fixed_placer.place(world, CENTRE, 3, 0, 0.0, True)

        assert world.get_detail_layer(0)[8, 8] == 1
        assert world.alphamaps[8, 8, 1] > 0.0

    def test_aquatic_placement_stamps_seabed(self, fixed_placer):
        world = make_world(0.0)

        fixed_placer.place(world, CENTRE, 3, 4, 0.0, True)

        assert world.get_detail_layer(2)[8, 8] == 1
        assert world.get_detail_layer(1)[8, 8] == 0
        assert world.alphamaps[8, 8, 3] > 0.0

    def test_edge_noise_computed_once_per_grid_size(self, fixed_placer):
        world = make_world(1.0)

        with patch(
            "bonsai_terrain.core.scatter_placer.noise_field", wraps=noise_field
        ) as field:
            fixed_placer.place(world, CENTRE, 1, 0, 0.2, True)
            fixed_placer.place(world, (0.3, 0.0, 0.7), 2, 4, 0.2, True)

        # Alphamap and detail grids are both 16 x 16
        assert field.call_count == 1
        np.testing.assert_array_equal(
            fixed_placer.edge_noise(16), 0.7 * noise_field(fixed_placer.noise, 16, 10.0)
        )

    def test_short_prototype_catalog_fails_before_placing(self, tracker):
        placer = ScatterPlacer(prng=TerrainRandom(1), tracker=tracker)
        world = TerrainResource(
            heightmap_resolution=17,
            alphamap_resolution=16,
            detail_resolution=16,
            size=(60.0, 20.0, 60.0),
            tree_prototypes=DEFAULT_TREE_PROTOTYPES[:6],
        )
        alphamaps = world.alphamaps.copy()

        with pytest.raises(TerrainConfigurationError):
            placer.scatter(world, CENTRE, 1, 4)

        assert world.instance_count == 0
        assert tracker.aquatic == 0
        np.testing.assert_array_equal(world.alphamaps, alphamaps)

    def test_layer_and_channel_options_checked(self, tracker):
        world = make_world(0.0)
        for options in (ScatterOptions(aquatic_ground_layer=4), ScatterOptions(aquatic_detail_channel=3)):
            placer = ScatterPlacer(options, prng=FixedRandom(0.0), tracker=tracker)
            with pytest.raises(TerrainConfigurationError):
                placer.scatter(world, CENTRE, 1, 0)

        assert world.instance_count == 0
        assert tracker.aquatic == 0
