"""
Terrain resource: grids, catalogs and object instances for one terrain.

A resource owns its height, alphamap and detail density grids. Generation
code writes grids through the ``set_*`` accessors and reads elevation
through ``interpolated_height``/``sample_elevation`` so ownership of the
arrays stays with the resource.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.ndimage import map_coordinates


class TerrainConfigurationError(ValueError):
    """Raised when a terrain or placement is configured inconsistently."""


@dataclass(frozen=True)
class TreePrototype:
    """Mesh prototype for discrete object instances."""

    name: str
    bend_factor: float = 0.0


@dataclass(frozen=True)
class DetailPrototype:
    """Prototype for density-grid decorations (grass, pebbles, sea grass)."""

    name: str
    min_width: float = 1.0
    max_width: float = 2.0
    min_height: float = 1.0
    max_height: float = 2.0
    noise_spread: float = 0.1
    healthy_color: Tuple[float, float, float, float] = (0.26, 0.98, 0.16, 1.0)
    dry_color: Tuple[float, float, float, float] = (0.8, 0.74, 0.1, 1.0)
    render_mode: str = "grass"
    use_prototype_mesh: bool = False


@dataclass(frozen=True)
class TerrainLayer:
    """Ground-cover material selected by the alphamap weights."""

    name: str
    tile_size: Tuple[float, float] = (15.0, 15.0)


@dataclass
class ObjectInstance:
    """A discrete placed object.

    ``position`` holds normalized planar x/z and the absolute elevation in y.
    """

    prototype_index: int
    position: Tuple[float, float, float]
    rotation: float = 0.0
    height_scale: float = 1.0
    width_scale: float = 1.0


DEFAULT_TREE_PROTOTYPES = (
    TreePrototype("palm"),
    TreePrototype("broadleaf"),
    TreePrototype("great_tree"),
    TreePrototype("boulder_small"),
    TreePrototype("boulder"),
    TreePrototype("monolith"),
    TreePrototype("fern"),
    TreePrototype("shrub"),
    TreePrototype("flower"),
    TreePrototype("pebble"),
    TreePrototype("stone"),
    TreePrototype("crystal"),
    TreePrototype("kelp"),
    TreePrototype("coral"),
)

DEFAULT_DETAIL_PROTOTYPES = (
    DetailPrototype("grass"),
    DetailPrototype("gravel", render_mode="vertex_lit", use_prototype_mesh=True),
    DetailPrototype("sea_grass", healthy_color=(0.1, 0.6, 0.5, 1.0)),
)

DEFAULT_TERRAIN_LAYERS = (
    TerrainLayer("grass"),
    TerrainLayer("moss"),
    TerrainLayer("rock"),
    TerrainLayer("seabed"),
)


def _require_resolution(name: str, value: int, minimum: int = 1) -> int:
    if int(value) != value or value < minimum:
        raise TerrainConfigurationError(f"{name} must be an integer >= {minimum}, got {value!r}")
    return int(value)


class TerrainResource:
    """Heights, ground-cover weights, detail densities and instances of a terrain."""

    def __init__(
        self,
        heightmap_resolution: int = 257,
        alphamap_resolution: int = 256,
        detail_resolution: int = 256,
        size: Sequence[float] = (300.0, 300.0, 300.0),
        tree_prototypes: Sequence[TreePrototype] = DEFAULT_TREE_PROTOTYPES,
        detail_prototypes: Sequence[DetailPrototype] = DEFAULT_DETAIL_PROTOTYPES,
        terrain_layers: Sequence[TerrainLayer] = DEFAULT_TERRAIN_LAYERS,
        detail_resolution_per_patch: int = 16,
        base_map_resolution: int = 512,
    ):
        self.heightmap_resolution = _require_resolution("heightmap_resolution", heightmap_resolution, 2)
        self.alphamap_resolution = _require_resolution("alphamap_resolution", alphamap_resolution, 2)
        self.detail_resolution = _require_resolution("detail_resolution", detail_resolution)
        self.detail_resolution_per_patch = _require_resolution(
            "detail_resolution_per_patch", detail_resolution_per_patch
        )
        self.base_map_resolution = _require_resolution("base_map_resolution", base_map_resolution)
        self.size = size

        self.tree_prototypes = tuple(tree_prototypes)
        self.detail_prototypes = tuple(detail_prototypes)
        self.terrain_layers = tuple(terrain_layers)
        if not self.terrain_layers:
            raise TerrainConfigurationError("terrain needs at least one terrain layer")

        self.waving_grass_amount = 0.5
        self.waving_grass_speed = 0.5
        self.waving_grass_strength = 0.5
        self.waving_grass_tint = (0.7, 0.6, 0.5, 1.0)

        self.heights = np.zeros((self.heightmap_resolution,) * 2, dtype=np.float32)
        self.alphamaps = np.zeros(
            (self.alphamap_resolution, self.alphamap_resolution, self.layer_count),
            dtype=np.float32,
        )
        # A fresh terrain is painted entirely with its first layer
        self.alphamaps[:, :, 0] = 1.0
        self.detail_layers = [
            np.zeros((self.detail_resolution,) * 2, dtype=np.int32)
            for _ in self.detail_prototypes
        ]
        self.tree_instances: List[ObjectInstance] = []

    @property
    def size(self) -> Tuple[float, float, float]:
        return self._size

    @size.setter
    def size(self, value: Sequence[float]) -> None:
        if len(value) != 3:
            raise TerrainConfigurationError(f"size needs 3 extents, got {value!r}")
        if any(v <= 0 for v in value):
            raise TerrainConfigurationError(f"size extents must be positive, got {value!r}")
        self._size = tuple(float(v) for v in value)

    @property
    def layer_count(self) -> int:
        return len(self.terrain_layers)

    @property
    def instance_count(self) -> int:
        return len(self.tree_instances)

    def prototype(self, index: int) -> TreePrototype:
        """Catalog entry for a prototype index; fails fast when missing."""
        if not 0 <= index < len(self.tree_prototypes):
            raise TerrainConfigurationError(
                f"prototype index {index} not in catalog of {len(self.tree_prototypes)}"
            )
        return self.tree_prototypes[index]

    def set_heights(self, heights: np.ndarray) -> None:
        """Replace the height grid. Values are clamped to [0, 1]."""
        heights = np.asarray(heights)
        expected = (self.heightmap_resolution, self.heightmap_resolution)
        if heights.shape != expected:
            raise TerrainConfigurationError(
                f"height grid must be {expected}, got {heights.shape}"
            )
        self.heights = np.clip(heights, 0.0, 1.0).astype(np.float32)

    def set_alphamaps(self, alphamaps: np.ndarray) -> None:
        """Replace the layer weight grid. Negative weights are floored at 0."""
        alphamaps = np.asarray(alphamaps)
        expected = (self.alphamap_resolution, self.alphamap_resolution, self.layer_count)
        if alphamaps.shape != expected:
            raise TerrainConfigurationError(
                f"alphamap grid must be {expected}, got {alphamaps.shape}"
            )
        self.alphamaps = np.maximum(alphamaps, 0.0).astype(np.float32)

    def get_detail_layer(self, layer: int) -> np.ndarray:
        if not 0 <= layer < len(self.detail_layers):
            raise TerrainConfigurationError(
                f"detail layer {layer} not in catalog of {len(self.detail_layers)}"
            )
        return self.detail_layers[layer]

    def set_detail_layer(self, layer: int, density: np.ndarray) -> None:
        current = self.get_detail_layer(layer)
        density = np.asarray(density)
        if density.shape != current.shape:
            raise TerrainConfigurationError(
                f"detail layer must be {current.shape}, got {density.shape}"
            )
        self.detail_layers[layer] = density.astype(np.int32)

    def add_tree_instance(self, instance: ObjectInstance) -> None:
        self.prototype(instance.prototype_index)
        self.tree_instances.append(instance)

    def interpolated_heights(self, u: np.ndarray, v: np.ndarray) -> np.ndarray:
        """
        Bilinear world-space heights at normalized positions.

        Args:
            u: Normalized position along x (height grid columns)
            v: Normalized position along z (height grid rows)

        Returns:
            Heights in world units (normalized height times size.y)
        """
        scale = self.heightmap_resolution - 1
        rows = np.asarray(v, dtype=np.float64) * scale
        cols = np.asarray(u, dtype=np.float64) * scale
        sampled = map_coordinates(
            self.heights.astype(np.float64), [rows.ravel(), cols.ravel()], order=1, mode="nearest"
        )
        return sampled.reshape(rows.shape) * self.size[1]

    def interpolated_height(self, u: float, v: float) -> float:
        return float(self.interpolated_heights(np.array([u]), np.array([v]))[0])

    def sample_elevation(self, x: float, z: float) -> float:
        """Ground height in world units at a normalized planar position."""
        return self.interpolated_height(x, z)

    def __repr__(self) -> str:
        return (
            f"TerrainResource(R={self.heightmap_resolution}, A={self.alphamap_resolution}, "
            f"D={self.detail_resolution}, size={self.size}, instances={self.instance_count})"
        )
