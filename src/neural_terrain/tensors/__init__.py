"""
Grid substrate for terrain synthesis.

- grid: owned (batch, height, width, channels) buffers
- ops: elementwise, per-batch and vector arithmetic on grids
- random_field: Box-Muller standard-normal sampling
"""

from .grid import Grid, ShapeMismatch
from .random_field import RandomField, seeded_normal, unseeded_normal
from . import ops

__all__ = [
    "Grid",
    "ShapeMismatch",
    "RandomField",
    "seeded_normal",
    "unseeded_normal",
    "ops"
]
