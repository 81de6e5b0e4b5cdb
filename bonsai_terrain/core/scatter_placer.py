"""
Scatter placement of object instances around deposit points.

A deposit places a cluster of primary instances around an anchor. Each
primary instance gets three small clusters of detail instances around it
and stamps its ground layer and detail density into the grids nearby.
Instances that land below the waterline are swapped for aquatic
prototypes.

Positions handled here are normalized planar coordinates (x, z in [0, 1]).
"""

import math
import numpy as np
import structlog
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .noise import NoiseSource, noise_field
from .progress import ProgressTracker, SIZE_CLASSES
from .terrain_resource import ObjectInstance, TerrainResource, TerrainConfigurationError
from ..utils.random import TerrainRandom, get_prng

logger = structlog.get_logger()

Position = Tuple[float, float, float]


@dataclass
class ScatterOptions:
    """Prototype banding, layer/channel indices and placement tuning."""

    # World elevations (terrain units, not normalized)
    waterline_elevation: float = 3.3
    deep_water_elevation: float = 2.0
    deep_variant_probability: float = 0.5

    # Prototype catalog banding
    inorganic_band_start: int = 3
    organic_detail_prototypes: Tuple[int, int, int] = (6, 7, 8)
    inorganic_detail_prototypes: Tuple[int, int, int] = (9, 10, 11)
    shallow_aquatic_prototype: int = 12
    deep_aquatic_prototype: int = 13

    # Terrain layers painted under primary instances
    organic_ground_layer: int = 1
    inorganic_ground_layer: int = 2
    aquatic_ground_layer: int = 3

    # Detail density channels
    organic_detail_channel: int = 0
    inorganic_detail_channel: int = 1
    aquatic_detail_channel: int = 2

    primary_radius: float = 0.2
    detail_scale: float = 0.05
    detail_radius_per_size: float = 0.05
    scale_jitter: float = 0.1
    detail_density_probability: float = 0.1


class ScatterPlacer:
    """Places instance clusters and stamps the grids around them."""

    def __init__(
        self,
        options: Optional[ScatterOptions] = None,
        prng: Optional[TerrainRandom] = None,
        tracker: Optional[ProgressTracker] = None,
        noise: Optional[NoiseSource] = None,
    ):
        """
        Initialize the placer.

        Args:
            options: Banding and tuning options
            prng: Random source, defaults to the shared generator
            tracker: Receives the aquatic counter from primary placements
            noise: Noise source for stamp edges
        """
        self.options = options or ScatterOptions()
        self.prng = prng or get_prng()
        self.tracker = tracker
        self.noise = noise or NoiseSource()
        # Stamp edge noise per grid size; it does not depend on the position
        self._edge_noise: Dict[int, np.ndarray] = {}

    @staticmethod
    def check_size_class(size_class: int) -> None:
        if size_class not in SIZE_CLASSES:
            raise TerrainConfigurationError(
                f"size class must be one of {SIZE_CLASSES}, got {size_class!r}"
            )

    def check_catalogs(self, resource: TerrainResource) -> None:
        """
        Verify every prototype, layer and detail channel the options refer to.

        Raises:
            TerrainConfigurationError: If the resource's catalogs are too short
        """
        opts = self.options
        for index in (
            *opts.organic_detail_prototypes,
            *opts.inorganic_detail_prototypes,
            opts.shallow_aquatic_prototype,
            opts.deep_aquatic_prototype,
        ):
            resource.prototype(index)
        for layer in (opts.organic_ground_layer, opts.inorganic_ground_layer, opts.aquatic_ground_layer):
            if not 0 <= layer < resource.layer_count:
                raise TerrainConfigurationError(
                    f"terrain layer {layer} not in catalog of {resource.layer_count}"
                )
        for channel in (opts.organic_detail_channel, opts.inorganic_detail_channel, opts.aquatic_detail_channel):
            resource.get_detail_layer(channel)

    def is_inorganic(self, prototype_index: int) -> bool:
        return prototype_index >= self.options.inorganic_band_start

    def count_range(self, size_class: int, prototype_index: int) -> Tuple[int, int]:
        """Primary instance count bounds; smaller classes scatter more instances."""
        count_min = 4 - size_class
        count_max = 7 - 2 * size_class
        if self.is_inorganic(prototype_index) and size_class < 3:
            count_min *= 2
            count_max *= 2
        return count_min, count_max

    def instance_scale(self, size_class: int, prototype_index: int) -> float:
        size = 0.2 * size_class
        if self.is_inorganic(prototype_index) and size_class == 3:
            size *= 2.0
        return size

    def placement_radius(self, size_class: int) -> float:
        """Jitter diameter for primary instances; a size 3 deposit is a single monument."""
        return 0.0 if size_class == 3 else self.options.primary_radius

    def scatter(
        self,
        resource: TerrainResource,
        anchor: Position,
        size_class: int,
        prototype_index: int,
    ) -> bool:
        """Primary placement for a deposit, with the radius its size class implies."""
        self.check_size_class(size_class)
        return self.place(
            resource,
            anchor,
            size_class,
            prototype_index,
            self.placement_radius(size_class),
            True,
        )

    def place(
        self,
        resource: TerrainResource,
        anchor: Position,
        size_class: int,
        prototype_index: int,
        placement_radius: float,
        is_stamping_pass: bool,
    ) -> bool:
        """
        Place a cluster of instances around an anchor.

        A stamping pass is the primary placement: it scatters detail clusters
        around every instance and paints the ground under it. Detail passes
        place instances only.

        Args:
            resource: Terrain receiving the instances
            anchor: Normalized anchor position
            size_class: Deposit magnitude, 1 (small) to 3 (large)
            prototype_index: Prototype for the placed instances
            placement_radius: Jitter diameter around the anchor
            is_stamping_pass: True for the primary placement

        Returns:
            Whether a primary instance landed underwater
        """
        self.check_size_class(size_class)
        resource.prototype(prototype_index)
        self.check_catalogs(resource)
        opts = self.options

        if is_stamping_pass:
            count_min, count_max = self.count_range(size_class, prototype_index)
            size = self.instance_scale(size_class, prototype_index)
        else:
            count_min, count_max = size_class - 1, size_class + 1
            size = opts.detail_scale
        num = self.prng.range_int(count_min, count_max)

        inorganic = self.is_inorganic(prototype_index)
        aquatic_placed = False

        for _ in range(num):
            ground_layer = opts.inorganic_ground_layer if inorganic else opts.organic_ground_layer
            detail_channel = opts.organic_detail_channel
            instance = self._make_instance(anchor, prototype_index, size, placement_radius)

            elevation = resource.sample_elevation(instance.position[0], instance.position[2])
            instance.position = (instance.position[0], elevation, instance.position[2])

            aquatic = elevation < opts.waterline_elevation
            if aquatic:
                detail_channel = opts.aquatic_detail_channel
                instance.prototype_index = opts.shallow_aquatic_prototype
                if elevation < opts.deep_water_elevation:
                    if self.prng.value() < opts.deep_variant_probability:
                        instance.prototype_index = opts.deep_aquatic_prototype
                ground_layer = opts.aquatic_ground_layer

            resource.add_tree_instance(instance)
            if aquatic and is_stamping_pass:
                aquatic_placed = True
                if self.tracker is not None:
                    self.tracker.record_aquatic_instance()

            if is_stamping_pass:
                if inorganic:
                    detail_prototypes = opts.inorganic_detail_prototypes
                    if not aquatic:
                        detail_channel = opts.inorganic_detail_channel
                else:
                    detail_prototypes = opts.organic_detail_prototypes

                for detail_index in detail_prototypes:
                    self.place(
                        resource,
                        instance.position,
                        size_class,
                        detail_index,
                        opts.detail_radius_per_size * size_class,
                        False,
                    )

                self.stamp_layer_splat(resource, ground_layer, instance.position, float(size_class))
                self.stamp_details(
                    resource,
                    detail_channel,
                    instance.position,
                    size_class * 1.5,
                    opts.detail_density_probability,
                )

        if is_stamping_pass:
            logger.debug(
                "Placed deposit cluster",
                prototype_index=prototype_index,
                size_class=size_class,
                count=num,
                aquatic=aquatic_placed,
                total_instances=resource.instance_count,
            )
        return aquatic_placed

    def _make_instance(
        self, anchor: Position, prototype_index: int, size: float, placement_radius: float
    ) -> ObjectInstance:
        jitter = self.options.scale_jitter
        height_scale = size + self.prng.value() * jitter
        width_scale = size + self.prng.value() * jitter
        dx, dz = self.prng.inside_unit_circle()
        half = placement_radius / 2.0
        return ObjectInstance(
            prototype_index=prototype_index,
            position=(anchor[0] + dx * half, 0.0, anchor[2] + dz * half),
            rotation=self.prng.range_float(0.0, 2.0 * math.pi),
            height_scale=height_scale,
            width_scale=width_scale,
        )

    def _stamp_magnitude(self, size: int, position: Position, radius: float) -> np.ndarray:
        """Stamp strength per cell; cells with a negative value are untouched."""
        rows, cols = np.indices((size, size), dtype=np.float64)
        centre_col = int(position[0] * size)
        centre_row = int(position[2] * size)
        distance = np.hypot(cols - centre_col, rows - centre_row)
        return 0.35 - distance ** (2.5 - radius * 0.25) / size + self.edge_noise(size)

    def edge_noise(self, size: int) -> np.ndarray:
        """Noise term of the stamp strength for a grid size, computed once per size."""
        field = self._edge_noise.get(size)
        if field is None:
            field = 0.7 * noise_field(self.noise, size, 10.0)
            self._edge_noise[size] = field
        return field

    def stamp_layer_splat(
        self, resource: TerrainResource, layer: int, position: Position, radius: float
    ) -> None:
        """
        Paint one terrain layer around a position.

        The target layer gains the stamp strength and every other layer loses
        it, so the painted layer dominates near the position.
        """
        if not 0 <= layer < resource.layer_count:
            raise TerrainConfigurationError(
                f"terrain layer {layer} not in catalog of {resource.layer_count}"
            )
        magnitude = self._stamp_magnitude(resource.alphamap_resolution, position, radius)
        delta = np.where(magnitude >= 0.0, magnitude * (0.6 + radius * 0.1), 0.0)

        signs = -np.ones(resource.layer_count)
        signs[layer] = 1.0
        alphamaps = resource.alphamaps.astype(np.float64) + delta[:, :, None] * signs
        resource.set_alphamaps(alphamaps)

    def stamp_details(
        self,
        resource: TerrainResource,
        channel: int,
        position: Position,
        radius: float,
        density_probability: float,
    ) -> None:
        """Randomly add decorations to a detail channel around a position."""
        density = resource.get_detail_layer(channel)
        size = resource.detail_resolution
        magnitude = self._stamp_magnitude(size, position, radius)
        hits = (magnitude >= 0.0) & (self.prng.values((size, size)) < density_probability)
        resource.set_detail_layer(channel, density + hits.astype(np.int32))
