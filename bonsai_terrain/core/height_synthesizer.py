"""
Height synthesis for bonsai terrains.

Builds a square elevation grid from coherent noise scaled by a radial
falloff, so the terrain rises toward the centre and settles toward the
base elevation at the perimeter.
"""

import numpy as np
import structlog
from dataclasses import dataclass
from typing import Optional, Tuple

from .noise import NoiseSource
from .terrain_resource import TerrainResource, TerrainConfigurationError
from ..utils.random import get_prng

logger = structlog.get_logger()

# Seeds drawn by randomize_seed fall in [0, SEED_RANGE)
SEED_RANGE = 1000


@dataclass
class HeightConfig:
    """Configuration for height synthesis."""

    tile_scale: float = 4.0
    max_height: float = 300.0
    min_height: float = 0.0
    margin_x: int = 0
    margin_y: int = 0


class HeightSynthesizer:
    """
    Generates radial-falloff noise heightmaps.

    The seed pair is applied as an offset on the noise coordinates, so two
    synthesizers with the same pair produce identical grids.
    """

    def __init__(
        self,
        config: Optional[HeightConfig] = None,
        seed: Tuple[int, int] = (100, 100),
        noise: Optional[NoiseSource] = None,
    ):
        """
        Initialize the height synthesizer.

        Args:
            config: Height synthesis parameters
            seed: Noise seed pair (row offset, column offset)
            noise: Noise source, defaults to NoiseSource()
        """
        self.config = config or HeightConfig()
        self.seed = tuple(seed)
        self.noise = noise or NoiseSource()

    @staticmethod
    def randomize_seed(prng=None) -> Tuple[int, int]:
        """Draw a fresh seed pair."""
        prng = prng or get_prng()
        return (prng.range_int(0, SEED_RANGE), prng.range_int(0, SEED_RANGE))

    def generate_heights(self, resolution: int) -> np.ndarray:
        """
        Compute the raw height grid.

        Cells inside the margins stay at zero. Outside the margins the radial
        factor is not clamped, so cells past the inscribed circle come out
        negative; the resource clamps them to zero when the grid is stored.

        Args:
            resolution: Grid resolution R

        Returns:
            float32 array of shape (R, R)
        """
        cfg = self.config
        if resolution < 2:
            raise TerrainConfigurationError(f"resolution must be >= 2, got {resolution}")
        if cfg.margin_x < 0 or cfg.margin_y < 0:
            raise TerrainConfigurationError("margins must be non-negative")

        half = resolution / 2.0
        height_range = (cfg.max_height - cfg.min_height) / half
        base_height = cfg.min_height / half

        heights = np.zeros((resolution, resolution), dtype=np.float32)
        rows = np.arange(cfg.margin_x, resolution - cfg.margin_x)
        cols = np.arange(cfg.margin_y, resolution - cfg.margin_y)
        if rows.size == 0 or cols.size == 0:
            return heights

        # sample_grid is indexed [y, x]; transpose to [row, col]
        noise = self.noise.sample_grid(
            (rows + self.seed[0]) / resolution * cfg.tile_scale,
            (cols + self.seed[1]) / resolution * cfg.tile_scale,
        ).T

        distance = np.hypot(half - rows[:, None], half - cols[None, :])
        radial = 1.0 - distance / (0.5 * resolution)

        heights[np.ix_(rows, cols)] = base_height + radial * noise * height_range
        return heights

    def synthesize(self, resource: TerrainResource) -> np.ndarray:
        """
        Generate heights and store them on the resource.

        Returns:
            The stored (clamped) height grid
        """
        logger.info(
            "Synthesizing heights",
            resolution=resource.heightmap_resolution,
            seed=self.seed,
            tile_scale=self.config.tile_scale,
        )
        resource.set_heights(self.generate_heights(resource.heightmap_resolution))
        return resource.heights
