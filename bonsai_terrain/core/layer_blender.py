"""
Ground-cover layer blending.

Derives four layer weights per alphamap cell from the terrain height:

- layer 1: mid-height cover, flattened below the shore band
- layer 2: shore band between the waterline and cutoff 2
- layer 3: high ground above cutoff 3, weighted by height cubed
- layer 4: seabed below the waterline

Every threshold is jittered by noise so band edges do not line up with
height contours. The rules are applied as an ordered overwrite chain: a
later rule replaces the value an earlier rule wrote for the same cell.
"""

import numpy as np
import structlog
from dataclasses import dataclass
from typing import Optional

from .noise import NoiseSource, noise_field
from .terrain_resource import TerrainResource, TerrainConfigurationError

logger = structlog.get_logger()

BLEND_LAYER_COUNT = 4


@dataclass
class BlendConfig:
    """Cutoffs for layer blending, as fractions of max_height."""

    max_height: float = 300.0
    cutoff2: float = 0.45
    cutoff3: float = 1.15
    cutoff4: float = 0.35


class LayerBlender:
    """Computes raw (unnormalized) layer weights from heights."""

    def __init__(self, config: Optional[BlendConfig] = None, noise: Optional[NoiseSource] = None):
        self.config = config or BlendConfig()
        self.noise = noise or NoiseSource()

    def scaled_heights(self, resource: TerrainResource) -> np.ndarray:
        """Height at each alphamap cell divided by max_height, unclamped."""
        size = resource.alphamap_resolution
        norm = np.arange(size, dtype=np.float64) / (size - 1)
        v, u = np.meshgrid(norm, norm, indexing="ij")
        return resource.interpolated_heights(u, v) / self.config.max_height

    def compute_weights(self, scaled: np.ndarray) -> np.ndarray:
        """
        Apply the blend rules to a square grid of scaled heights.

        Args:
            scaled: Array (A, A) of height / max_height

        Returns:
            float32 array (A, A, 4) of layer weights
        """
        cfg = self.config
        size = scaled.shape[0]

        def n(divisor: float, offset: float = 0.0) -> np.ndarray:
            return noise_field(self.noise, size, divisor, offset)

        layer1 = 1.0 - np.abs(scaled - 0.5)
        layer2 = np.zeros_like(scaled)
        layer3 = np.zeros_like(scaled)
        layer4 = np.zeros_like(scaled)

        low = scaled < cfg.cutoff2 - 0.1 * n(12)
        layer1[low] = 0.5

        shore = (scaled < cfg.cutoff2 + 0.2 * n(20)) & (
            scaled > cfg.cutoff4 - 0.05 + 0.05 * n(15)
        )
        layer2[shore] = (1.0 - n(8))[shore]

        high = scaled > cfg.cutoff3 - 0.3 * n(10)
        layer3[high] = ((1.0 - n(1, 100.0)) * scaled ** 3)[high]

        wet = scaled < cfg.cutoff4 + 0.2 * n(7)
        layer4[wet] = (1.0 - n(1, 50.0))[wet]

        # Deep water overrides everything above
        deep = scaled < cfg.cutoff4 - 0.1 - 0.15 * n(5)
        submerged = scaled - 0.05
        layer1[deep] = submerged[deep]
        layer2[deep] = submerged[deep]
        layer3[deep] = submerged[deep]
        layer4[deep] = 1.0

        return np.stack([layer1, layer2, layer3, layer4], axis=-1).astype(np.float32)

    def blend(self, resource: TerrainResource) -> np.ndarray:
        """
        Compute layer weights from the resource heights and store them.

        Returns:
            The stored alphamap grid
        """
        if resource.layer_count != BLEND_LAYER_COUNT:
            raise TerrainConfigurationError(
                f"layer blending needs {BLEND_LAYER_COUNT} terrain layers, "
                f"resource has {resource.layer_count}"
            )
        logger.info(
            "Blending terrain layers",
            resolution=resource.alphamap_resolution,
            cutoffs=(self.config.cutoff2, self.config.cutoff3, self.config.cutoff4),
        )
        weights = self.compute_weights(self.scaled_heights(resource))
        resource.set_alphamaps(weights)
        return resource.alphamaps
