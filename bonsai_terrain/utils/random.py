"""
Random number generation utilities.

Placement jitter, scatter counts and detail stamping all draw from one
seeded generator so that a session replays identically for a given seed.
Components accept an explicit ``TerrainRandom`` and fall back to the
module-level instance.
"""

import math
from typing import Optional, Tuple

import numpy as np


class TerrainRandom:
    """Seeded random source with the draws the terrain code needs."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def value(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self._rng.random())

    def values(self, shape) -> np.ndarray:
        """Array of uniform floats in [0, 1)."""
        return self._rng.random(shape)

    def range_float(self, min_val: float, max_val: float) -> float:
        """Uniform float in [min_val, max_val)."""
        return min_val + (max_val - min_val) * self.value()

    def range_int(self, min_val: int, max_val: int) -> int:
        """
        Integer in [min_val, max_val).

        Returns min_val when the range is empty, so callers can pass
        degenerate bounds without special casing.
        """
        if max_val <= min_val:
            return min_val
        return int(self._rng.integers(min_val, max_val))

    def inside_unit_circle(self) -> Tuple[float, float]:
        """Uniform point inside the unit disc."""
        angle = self.range_float(0.0, 2.0 * math.pi)
        radius = math.sqrt(self.value())
        return radius * math.cos(angle), radius * math.sin(angle)


# Global PRNG instance
_prng = None


def set_random_seed(seed: Optional[int]) -> None:
    """
    Set the seed of the shared terrain generator.

    Args:
        seed: Integer seed, or None for OS entropy
    """
    global _prng
    _prng = TerrainRandom(seed)


def get_prng() -> TerrainRandom:
    """
    Get the shared terrain generator.

    Returns:
        TerrainRandom instance
    """
    global _prng
    if _prng is None:
        _prng = TerrainRandom(0)
    return _prng
