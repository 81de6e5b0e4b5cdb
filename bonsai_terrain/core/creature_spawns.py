"""
Creature spawn points for the world terrain.

Deposits raise per-size tallies on the progress tracker. When a tally
becomes a non-zero multiple of its modulus, a creature group is planned
around the centre of the world terrain: flocks for organic deposits,
ground creatures for inorganic ones and shoals for aquatic ones. Shoals
must clear the sea floor, so their placement is retried a bounded number
of times and skipped if no proposal clears it.

Positions here are world-space (x, y, z), unlike the normalized planar
positions used by the scatter placer.
"""

import structlog
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .progress import ProgressTracker
from .terrain_resource import TerrainResource
from ..utils.random import TerrainRandom, get_prng

logger = structlog.get_logger()

Vector3 = Tuple[float, float, float]


@dataclass
class CreatureGroupSettings:
    """Spawn tuning for one creature kind, indexed by size (small, medium, large)."""

    count_mods: Tuple[int, int, int]
    radii: Tuple[float, float, float]
    altitudes: Tuple[float, float, float]
    clearances: Tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass
class CreatureOptions:
    organic: CreatureGroupSettings = field(
        default_factory=lambda: CreatureGroupSettings((3, 2, 1), (20.0, 15.0, 10.0), (12.0, 14.0, 16.0))
    )
    inorganic: CreatureGroupSettings = field(
        default_factory=lambda: CreatureGroupSettings((3, 2, 1), (15.0, 12.0, 10.0), (0.0, 0.0, 0.0))
    )
    aquatic: CreatureGroupSettings = field(
        default_factory=lambda: CreatureGroupSettings(
            (2, 1, 1), (20.0, 16.0, 12.0), (-5.0, -5.5, -6.0), (0.5, 0.75, 1.0)
        )
    )
    max_placement_attempts: int = 250


@dataclass
class CreatureSpawn:
    """A planned creature group: kind, size index and the points to spawn at."""

    kind: str
    size_index: int
    positions: List[Vector3]


class CreatureSpawnPlanner:
    """Plans creature groups on the world terrain as deposit tallies grow."""

    def __init__(
        self,
        world: TerrainResource,
        origin: Vector3,
        options: Optional[CreatureOptions] = None,
        prng: Optional[TerrainRandom] = None,
    ):
        """
        Args:
            world: The world terrain creatures are placed on
            origin: World-space position of the terrain's corner
            options: Spawn tuning
            prng: Random source, defaults to the shared generator
        """
        self.world = world
        self.origin = tuple(origin)
        self.options = options or CreatureOptions()
        self.prng = prng or get_prng()
        self.spawns: List[CreatureSpawn] = []

    @property
    def centre(self) -> Vector3:
        size = self.world.size
        return (
            self.origin[0] + size[0] / 2.0,
            self.origin[1],
            self.origin[2] + size[2] / 2.0,
        )

    def _propose(self, radius: float, altitude: float) -> Vector3:
        dx, dz = self.prng.inside_unit_circle()
        centre = self.centre
        return (centre[0] + dx * radius, altitude, centre[2] + dz * radius)

    def _normalized(self, position: Vector3) -> Optional[Tuple[float, float]]:
        """Normalized planar position, or None outside the terrain footprint."""
        size = self.world.size
        u = (position[0] - self.origin[0]) / size[0]
        v = (position[2] - self.origin[2]) / size[2]
        if 0.0 <= u <= 1.0 and 0.0 <= v <= 1.0:
            return u, v
        return None

    def ground_height(self, position: Vector3) -> Optional[float]:
        """World-space ground height below a position, None off the terrain."""
        normalized = self._normalized(position)
        if normalized is None:
            return None
        return self.world.sample_elevation(*normalized) + self.origin[1]

    def is_clear_of_ground(self, position: Vector3, clearance: float) -> bool:
        ground = self.ground_height(position)
        if ground is None:
            return True
        return position[1] - clearance >= ground

    def find_clear_position(
        self, radius: float, altitude: float, clearance: float
    ) -> Optional[Vector3]:
        """
        Propose positions until one clears the ground by ``clearance``.

        Returns:
            The first clear position, or None once the attempt budget is spent
        """
        attempts = self.options.max_placement_attempts
        for attempt in range(attempts):
            position = self._propose(radius, altitude)
            if self.is_clear_of_ground(position, clearance):
                return position
            logger.debug("Rejected underground placement", attempt=attempt)
        logger.warning(
            "No clear placement found", attempts=attempts, radius=radius, altitude=altitude
        )
        return None

    @staticmethod
    def _triggered(previous: Sequence[int], current: Sequence[int], index: int, mod: int) -> bool:
        value = current[index]
        return previous[index] != value and value != 0 and value % mod == 0

    def update(self, previous: ProgressTracker, tracker: ProgressTracker) -> List[CreatureSpawn]:
        """
        Plan creature groups for tallies that changed since ``previous``.

        Args:
            previous: Tracker snapshot from before the deposit
            tracker: Live tracker; its creature counter is incremented per group

        Returns:
            The groups planned by this update
        """
        planned: List[CreatureSpawn] = []
        opts = self.options

        for i in range(3):
            if self._triggered(previous.organic_sizes, tracker.organic_sizes, i, opts.organic.count_mods[i]):
                position = self._propose(opts.organic.radii[i], opts.organic.altitudes[i])
                planned.append(CreatureSpawn("organic", i, [position]))
                tracker.record_creature_group()

        for i in range(3):
            if self._triggered(previous.inorganic_sizes, tracker.inorganic_sizes, i, opts.inorganic.count_mods[i]):
                tracker.record_creature_group()
                positions = []
                # Smaller creatures come in larger groups
                for _ in range(3 - i):
                    x, _, z = self._propose(opts.inorganic.radii[i], opts.inorganic.altitudes[i])
                    ground = self.ground_height((x, 0.0, z))
                    positions.append((x, ground if ground is not None else opts.inorganic.altitudes[i], z))
                planned.append(CreatureSpawn("inorganic", i, positions))

        for i in range(3):
            if self._triggered(previous.aquatic_sizes, tracker.aquatic_sizes, i, opts.aquatic.count_mods[i]):
                position = self.find_clear_position(
                    opts.aquatic.radii[i], opts.aquatic.altitudes[i], opts.aquatic.clearances[i]
                )
                if position is None:
                    continue
                planned.append(CreatureSpawn("aquatic", i, [position]))
                tracker.record_creature_group()

        if planned:
            logger.info("Planned creature groups", groups=[(s.kind, s.size_index) for s in planned])
        self.spawns.extend(planned)
        return planned
