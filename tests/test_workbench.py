"""
Tests for the terrain workbench pipeline.

Covers:
- Working/world generation and two-tier republishing
- Deposits and progress counters
- Seed selection
"""

import pytest
import numpy as np
from bonsai_terrain.config import Settings
from bonsai_terrain.core.height_synthesizer import SEED_RANGE
from bonsai_terrain.core.terrain_resource import TerrainResource, TerrainConfigurationError
from bonsai_terrain.core.workbench import PlacementRequest, TerrainWorkbench


@pytest.fixture
def config():
    return Settings(
        heightmap_resolution=33,
        alphamap_resolution=32,
        detail_resolution=32,
        placement_seed=42,
    )


@pytest.fixture
def workbench(config):
    return TerrainWorkbench(config=config).initialize()


class TestTerrainWorkbench:
    """Test the generation pipeline."""

    def test_initialize_sets_sizes(self, workbench):
        assert workbench.initialized
        assert workbench.working.size == (3.0, 1.0, 3.0)
        assert workbench.world.size == (60.0, 20.0, 60.0)
        assert workbench.template.size == (300.0, 300.0, 300.0)

    def test_world_mirrors_working(self, workbench):
        assert workbench.world is not workbench.working
        assert workbench.world.heights is not workbench.working.heights
        np.testing.assert_array_equal(workbench.world.heights, workbench.working.heights)
        np.testing.assert_array_equal(workbench.world.alphamaps, workbench.working.alphamaps)

    def test_template_left_untouched(self, workbench):
        assert np.all(workbench.template.heights == 0.0)
        assert workbench.template.instance_count == 0

    def test_world_elevation_scales_working(self, workbench):
        for x, z in [(0.5, 0.5), (0.4, 0.55)]:
            assert workbench.sample_elevation(x, z) == pytest.approx(
                20.0 * workbench.working.sample_elevation(x, z), rel=1e-6, abs=1e-9
            )

    def test_republish_into_existing_resources(self, config):
        working = TerrainResource(heightmap_resolution=9, alphamap_resolution=8, detail_resolution=8)
        world = TerrainResource(heightmap_resolution=9, alphamap_resolution=8, detail_resolution=8)

        workbench = TerrainWorkbench(config=config, working=working, world=world).initialize()

        assert workbench.working is working
        assert workbench.world is world
        assert world.heights.shape == (33, 33)
        assert world.size == (60.0, 20.0, 60.0)

    def test_to_normalized(self, workbench):
        assert workbench.to_normalized((1.5, 0.4, 0.75)) == (0.5, 0.0, 0.25)

    def test_deposit_updates_counters(self, workbench):
        result = workbench.deposit(PlacementRequest((1.5, 0.0, 1.5), 0, 1, True))

        tracker = workbench.tracker
        assert tracker.terraform_index == 1
        assert tracker.organic == 1
        assert tracker.inorganic == 0
        assert tracker.sizes == [1, 0, 0]
        assert tracker.organic_sizes == [1, 0, 0]
        assert result.instances_added >= 3
        assert result.instance_count == workbench.world.instance_count
        assert workbench.working.instance_count == 0

    def test_inorganic_deposit(self, workbench):
        workbench.deposit(PlacementRequest((1.5, 0.0, 1.5), 4, 3, False))

        assert workbench.tracker.inorganic == 1
        assert workbench.tracker.inorganic_sizes == [0, 0, 1]
        assert workbench.instances[0].prototype_index in (4, 12, 13)

    def test_aquatic_deposit(self, workbench):
        workbench.world.set_heights(np.zeros((33, 33)))

        result = workbench.deposit(PlacementRequest((1.5, 0.0, 1.5), 0, 2, True))

        assert result.aquatic_placed is True
        assert workbench.tracker.aquatic_sizes == [0, 1, 0]
        assert workbench.tracker.aquatic >= 2
        assert workbench.instances[0].prototype_index in (12, 13)

    def test_invalid_size_class_leaves_state(self, workbench):
        before = workbench.tracker.snapshot()

        with pytest.raises(TerrainConfigurationError):
            workbench.deposit(PlacementRequest((1.5, 0.0, 1.5), 0, 4, True))

        assert workbench.tracker == before
        assert workbench.world.instance_count == 0

    def test_invalid_prototype_leaves_state(self, workbench):
        with pytest.raises(TerrainConfigurationError):
            workbench.deposit(PlacementRequest((1.5, 0.0, 1.5), 99, 1, True))

        assert workbench.tracker.terraform_index == 0

    def test_deterministic(self, config):
        requests = [
            PlacementRequest((1.5, 0.0, 1.5), 0, 1, True),
            PlacementRequest((0.9, 0.0, 2.1), 4, 2, False),
            PlacementRequest((2.0, 0.0, 1.0), 2, 3, True),
        ]
        first = TerrainWorkbench(config=config).initialize()
        second = TerrainWorkbench(config=config).initialize()

        for request in requests:
            first.deposit(request)
            second.deposit(request)

        assert first.world.heights.tobytes() == second.world.heights.tobytes()
        assert first.world.alphamaps.tobytes() == second.world.alphamaps.tobytes()
        assert first.instances == second.instances

    def test_seed_from_settings(self, config):
        assert TerrainWorkbench(config=config).seed == (100, 100)

    def test_explicit_seed_wins(self):
        config = Settings(randomize_terrain_seed=True)

        assert TerrainWorkbench(config=config, seed=(7, 8)).seed == (7, 8)

    def test_randomized_seed(self):
        config = Settings(randomize_terrain_seed=True, placement_seed=5)
        seed = TerrainWorkbench(config=config).seed

        assert 0 <= seed[0] < SEED_RANGE
        assert 0 <= seed[1] < SEED_RANGE

    def test_uninitialized_workbench(self, config):
        workbench = TerrainWorkbench(config=config)

        assert not workbench.initialized
        with pytest.raises(TerrainConfigurationError):
            workbench.deposit(PlacementRequest((1.5, 0.0, 1.5), 0, 1, True))
        with pytest.raises(TerrainConfigurationError):
            workbench.sample_elevation(0.5, 0.5)

    def test_short_catalog_leaves_counters(self, workbench):
        workbench.world.tree_prototypes = workbench.world.tree_prototypes[:6]
        workbench.world.set_heights(np.zeros((33, 33)))
        before = workbench.tracker.snapshot()

        with pytest.raises(TerrainConfigurationError):
            workbench.deposit(PlacementRequest((1.5, 0.0, 1.5), 4, 1, False))

        assert workbench.tracker == before
        assert workbench.world.instance_count == 0

    def test_settings_have_no_unused_cutoff(self):
        assert "layer_cutoff_1" not in Settings.model_fields
