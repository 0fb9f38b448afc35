"""
Standard-normal grid generation via the Box-Muller transform.
"""

import numpy as np
from typing import Optional

from .grid import Grid


class RandomField:
    """
    Generator of standard-normal grids.

    All randomness flows through one explicit numpy Generator, so a
    seeded field reproduces the same grids for the same call sequence.
    An unseeded field draws its state from OS entropy.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[np.random.Generator] = None):
        """
        Args:
            seed: Seed for a reproducible field (None for an unseeded one)
            rng: Existing generator handle to draw from instead of a new one
        """
        if rng is not None and seed is not None:
            raise ValueError("Pass either seed or rng, not both")

        self.seed = seed
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def standard_normal(
        self,
        batch: int,
        height: int,
        width: int,
        channels: int = 1
    ) -> Grid:
        """
        Draw a grid of independent N(0, 1) samples.

        Each sample consumes one pair of uniform draws u1, u2 in (0, 1]
        and is sqrt(-2 ln u1) * sin(2 pi u2).
        """

        count = batch * height * width * channels
        u1 = 1.0 - self.rng.random(count)
        u2 = 1.0 - self.rng.random(count)
        samples = np.sqrt(-2.0 * np.log(u1)) * np.sin(2.0 * np.pi * u2)
        return Grid(batch, height, width, channels, data=samples)


def seeded_normal(seed: int, batch: int, height: int, width: int, channels: int = 1) -> Grid:
    """Reproducible standard-normal grid for a single seed."""
    return RandomField(seed).standard_normal(batch, height, width, channels)


def unseeded_normal(batch: int, height: int, width: int, channels: int = 1) -> Grid:
    """Standard-normal grid from fresh OS entropy."""
    return RandomField().standard_normal(batch, height, width, channels)
