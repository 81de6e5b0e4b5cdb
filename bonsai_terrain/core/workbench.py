"""
Terrain workbench: the generation pipeline and deposit handling.

The workbench owns three resources. The template holds the catalogs and
resolutions. The working terrain is cloned from it, then gets synthesized
heights and blended layers. The world terrain is cloned from the working
terrain. Both then get their own physical size, so the same relative
content renders as a small working copy and a large world copy. Deposits
are placed on the world terrain.
"""

import structlog
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..config import Settings, settings as default_settings
from .creature_spawns import CreatureOptions, CreatureSpawn, CreatureSpawnPlanner
from .height_synthesizer import HeightConfig, HeightSynthesizer
from .layer_blender import BlendConfig, LayerBlender
from .progress import ProgressTracker
from .resource_cloner import clone
from .scatter_placer import ScatterOptions, ScatterPlacer
from .terrain_resource import ObjectInstance, TerrainConfigurationError, TerrainResource
from ..utils.random import TerrainRandom

logger = structlog.get_logger()


@dataclass
class PlacementRequest:
    """One deposit event. The anchor is in working-terrain local space."""

    anchor_position: Tuple[float, float, float]
    prototype_index: int
    size_class: int
    is_organic: bool


@dataclass
class DepositResult:
    """Outcome of a deposit."""

    aquatic_placed: bool
    instances_added: int
    instance_count: int
    creature_spawns: List[CreatureSpawn] = field(default_factory=list)


def template_from_settings(config: Settings) -> TerrainResource:
    return TerrainResource(
        heightmap_resolution=config.heightmap_resolution,
        alphamap_resolution=config.alphamap_resolution,
        detail_resolution=config.detail_resolution,
        size=config.template_size,
        detail_resolution_per_patch=config.detail_resolution_per_patch,
        base_map_resolution=config.base_map_resolution,
    )


class TerrainWorkbench:
    """Generates the working/world terrain pair and places deposits on it."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        template: Optional[TerrainResource] = None,
        working: Optional[TerrainResource] = None,
        world: Optional[TerrainResource] = None,
        seed: Optional[Sequence[int]] = None,
        tracker: Optional[ProgressTracker] = None,
        prng: Optional[TerrainRandom] = None,
        scatter_options: Optional[ScatterOptions] = None,
        creature_options: Optional[CreatureOptions] = None,
    ):
        """
        Args:
            config: Generation settings, defaults to the application settings
            template: Template resource, built from settings when None
            working: Existing working resource to republish into
            world: Existing world resource to republish into
            seed: Noise seed pair, overrides settings and the randomize flag
            tracker: Progress counters the deposits report to
            prng: Random source for seeding, placement and spawns
            scatter_options: Placement tuning
            creature_options: Creature spawn tuning
        """
        self.config = config or default_settings
        self.prng = prng or TerrainRandom(self.config.placement_seed)

        if seed is not None:
            self.seed = (int(seed[0]), int(seed[1]))
        elif self.config.randomize_terrain_seed:
            self.seed = HeightSynthesizer.randomize_seed(self.prng)
        else:
            self.seed = (self.config.terrain_seed_x, self.config.terrain_seed_y)

        self.template = template or template_from_settings(self.config)
        self.working = working
        self.world = world
        self.tracker = tracker or ProgressTracker()
        self.placer = ScatterPlacer(
            scatter_options
            or ScatterOptions(
                waterline_elevation=self.config.waterline_elevation,
                deep_water_elevation=self.config.deep_water_elevation,
            ),
            prng=self.prng,
            tracker=self.tracker,
        )
        self._creature_options = creature_options or CreatureOptions(
            max_placement_attempts=self.config.max_placement_attempts
        )
        self.spawner: Optional[CreatureSpawnPlanner] = None

    @property
    def initialized(self) -> bool:
        return self.spawner is not None

    def initialize(self) -> "TerrainWorkbench":
        """Synthesize the working terrain and republish it as the world terrain."""
        cfg = self.config
        logger.info("Initializing terrain workbench", seed=self.seed)

        self.working = clone(self.template, self.working)
        HeightSynthesizer(
            HeightConfig(
                tile_scale=cfg.tile_scale,
                max_height=cfg.max_hill_height,
                min_height=cfg.min_hill_height,
                margin_x=cfg.margin_x,
                margin_y=cfg.margin_y,
            ),
            seed=self.seed,
        ).synthesize(self.working)
        LayerBlender(
            BlendConfig(
                max_height=cfg.max_hill_height,
                cutoff2=cfg.layer_cutoff_2,
                cutoff3=cfg.layer_cutoff_3,
                cutoff4=cfg.waterline,
            )
        ).blend(self.working)

        self.world = clone(self.working, self.world)
        self.working.size = cfg.working_size
        self.world.size = cfg.world_size

        self.spawner = CreatureSpawnPlanner(
            self.world, cfg.world_origin, self._creature_options, prng=self.prng
        )
        logger.info(
            "Terrain workbench ready",
            working_size=self.working.size,
            world_size=self.world.size,
        )
        return self

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise TerrainConfigurationError("workbench is not initialized")

    def to_normalized(self, anchor: Sequence[float]) -> Tuple[float, float, float]:
        """Convert a working-terrain local position to normalized planar coordinates."""
        size = self.working.size
        return (anchor[0] / size[0], 0.0, anchor[2] / size[2])

    def deposit(self, request: PlacementRequest) -> DepositResult:
        """
        Place a deposit on the world terrain and report it to the tracker.

        Raises:
            TerrainConfigurationError: For an invalid size class or prototype
        """
        self._require_initialized()
        ScatterPlacer.check_size_class(request.size_class)
        self.world.prototype(request.prototype_index)
        self.placer.check_catalogs(self.world)

        previous = self.tracker.snapshot()
        before = self.world.instance_count
        aquatic = self.placer.scatter(
            self.world,
            self.to_normalized(request.anchor_position),
            request.size_class,
            request.prototype_index,
        )

        # Counted only once the placement went through
        self.tracker.record_deposit(request.size_class, request.is_organic)
        if aquatic:
            self.tracker.record_aquatic_deposit(request.size_class)

        spawns = self.spawner.update(previous, self.tracker)
        result = DepositResult(
            aquatic_placed=aquatic,
            instances_added=self.world.instance_count - before,
            instance_count=self.world.instance_count,
            creature_spawns=spawns,
        )
        logger.info(
            "Deposit placed",
            prototype_index=request.prototype_index,
            size_class=request.size_class,
            aquatic=aquatic,
            instances_added=result.instances_added,
        )
        return result

    def sample_elevation(self, x: float, z: float) -> float:
        """World terrain ground height at a normalized planar position."""
        self._require_initialized()
        return self.world.sample_elevation(x, z)

    @property
    def instances(self) -> List[ObjectInstance]:
        self._require_initialized()
        return self.world.tree_instances

    def restore_instances(self, instances: Sequence[ObjectInstance]) -> None:
        """Reinstate a saved instance list on the world terrain."""
        self._require_initialized()
        for instance in instances:
            self.world.add_tree_instance(instance)
