"""
Coherent 2D noise used by height synthesis, layer blending and stamping.

Values are remapped from OpenSimplex's [-1, 1] to [0, 1]. Seeds are applied
by callers as coordinate offsets, so a given NoiseSource is a pure function
of its inputs.
"""

import numpy as np
from opensimplex import OpenSimplex


class NoiseSource:
    """Deterministic 2D noise in [0, 1]."""

    def __init__(self, seed: int = 0):
        self.seed = seed
        self._simplex = OpenSimplex(seed)

    def sample(self, x: float, y: float) -> float:
        """Noise at a single coordinate."""
        return (self._simplex.noise2(x, y) + 1.0) / 2.0

    def sample_grid(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """
        Noise over the outer product of two coordinate axes.

        Args:
            xs: X coordinates, one per output column
            ys: Y coordinates, one per output row

        Returns:
            Array of shape (len(ys), len(xs)) where [j, i] = sample(xs[i], ys[j])
        """
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        return (self._simplex.noise2array(xs, ys) + 1.0) / 2.0


def noise_field(
    noise: NoiseSource, size: int, divisor: float = 1.0, offset: float = 0.0
) -> np.ndarray:
    """
    Per-cell noise for a square grid.

    Cell [row, col] holds sample(col / divisor + offset, row / divisor + offset).
    """
    axis = np.arange(size, dtype=np.float64) / divisor + offset
    return noise.sample_grid(axis, axis)
