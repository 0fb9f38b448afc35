"""
Grid arithmetic for the diffusion and blending stages.

Every operation returns a new Grid. Binary operations treat their
operands as flat vectors and raise ShapeMismatch on a length mismatch
rather than truncating or broadcasting.
"""

import math
import numpy as np
from typing import Sequence, Union

from .grid import Grid, ShapeMismatch, DTYPE


SLERP_LERP_THRESHOLD = 0.9999


def _check_lengths(left: Grid, right: Grid):
    if left.length != right.length:
        raise ShapeMismatch(
            f"Grids must be the same size, got {left.length} and {right.length}"
        )


def _wrap(values: np.ndarray, like: Grid) -> Grid:
    return Grid(*like.shape, data=values)


def add(left: Grid, right: Grid) -> Grid:
    _check_lengths(left, right)
    return _wrap(left._view().reshape(-1) + right._view().reshape(-1), left)


def sub(left: Grid, right: Grid) -> Grid:
    _check_lengths(left, right)
    return _wrap(left._view().reshape(-1) - right._view().reshape(-1), left)


def mul(left: Grid, right: Grid) -> Grid:
    _check_lengths(left, right)
    return _wrap(left._view().reshape(-1) * right._view().reshape(-1), left)


def scale(grid: Grid, scalar: float) -> Grid:
    return _wrap(grid._view() * DTYPE(scalar), grid)


def scale_batches(
    grid: Grid,
    scalars: Union[Grid, Sequence[float], np.ndarray],
    inverse: bool = False
) -> Grid:
    """
    Multiply every sample of batch b by scalars[b].

    Args:
        grid: Input grid
        scalars: One scalar per batch element (a Grid is read flat)
        inverse: Divide by the scalars instead of multiplying

    Returns:
        Scaled grid
    """

    if isinstance(scalars, Grid):
        factors = scalars.to_flat()
    else:
        factors = np.asarray(scalars, dtype=DTYPE).reshape(-1)

    if factors.size != grid.batch:
        raise ShapeMismatch(
            f"Batch size {grid.batch} does not match {factors.size} scalars"
        )

    factors = factors.astype(DTYPE)
    if inverse:
        factors = DTYPE(1.0) / factors

    return _wrap(grid._view() * factors.reshape(-1, 1, 1, 1), grid)


def pow(grid: Grid, power: int) -> Grid:
    """Elementwise integer power."""
    return _wrap(np.power(grid._view(), int(power)), grid)


def lerp(left: Grid, right: Grid, t: float) -> Grid:
    """Elementwise linear interpolation ``left + t * (right - left)``."""
    _check_lengths(left, right)
    a = left._view().reshape(-1)
    b = right._view().reshape(-1)
    return _wrap(a + DTYPE(t) * (b - a), left)


def norm(grid: Grid) -> float:
    """Euclidean norm of the whole buffer."""
    flat = grid._view().reshape(-1).astype(np.float64)
    return float(np.sqrt(np.dot(flat, flat)))


def normalize(grid: Grid) -> Grid:
    """Divide every sample by the L2 norm of the flat buffer."""
    return _wrap(grid._view() / DTYPE(norm(grid)), grid)


def dot(left: Grid, right: Grid) -> float:
    """Dot product of two grids treated as flat vectors."""
    _check_lengths(left, right)
    a = left._view().reshape(-1).astype(np.float64)
    b = right._view().reshape(-1).astype(np.float64)
    return float(np.dot(a, b))


def slerp(left: Grid, right: Grid, t: float) -> Grid:
    """
    Spherical interpolation between two grids treated as flat vectors.

    The cosine is taken from the raw (un-normalized) inputs. On a negative
    cosine the second vector is negated so the acute angle is used, and
    above SLERP_LERP_THRESHOLD the result falls back to linear
    interpolation.

    Args:
        left: Start vector
        right: End vector
        t: Interpolation parameter in [0, 1]

    Returns:
        Interpolated grid
    """

    cos_omega = dot(left, right)
    if cos_omega < 0.0:
        right = scale(right, -1.0)
        cos_omega = -cos_omega

    if cos_omega > SLERP_LERP_THRESHOLD:
        return add(left, scale(sub(right, left), t))

    sin_omega = math.sqrt(1.0 - cos_omega * cos_omega)
    omega = math.acos(cos_omega)
    left_scale = math.sin((1.0 - t) * omega) / sin_omega
    right_scale = math.sin(t * omega) / sin_omega

    return add(scale(left, left_scale), scale(right, right_scale))


def mirror(grid: Grid, mirror_x: bool, mirror_y: bool) -> Grid:
    """Reflect sample order along width (x), height (y) or both."""

    values = grid._view()
    if mirror_x:
        values = values[:, :, ::-1, :]
    if mirror_y:
        values = values[:, ::-1, :, :]
    return _wrap(values, grid)


def concat(left: Grid, right: Grid) -> Grid:
    """Join two grids along the width axis."""

    if (left.batch, left.height, left.channels) != (right.batch, right.height, right.channels):
        raise ShapeMismatch("Grids must have the same batch, height and channels")

    values = np.concatenate([left._view(), right._view()], axis=2)
    return Grid.from_numpy(values)


def split(grid: Grid) -> Grid:
    """Left half of a grid along the width axis."""

    if grid.width % 2 != 0:
        raise ShapeMismatch(f"Grid width must be even, got {grid.width}")
    return Grid.from_numpy(grid._view()[:, :, : grid.width // 2, :])


def gradient(
    left_value: float,
    right_value: float,
    top_value: float,
    bottom_value: float,
    width: int,
    height: int
) -> Grid:
    """
    Single-channel ramp: a left-to-right ramp plus a bottom-to-top ramp.

    Row 0 is the bottom edge. A single column or row takes the left or
    bottom value.
    """

    xs = np.linspace(left_value, right_value, width)
    ys = np.linspace(bottom_value, top_value, height)
    return Grid.from_array(ys[:, None] + xs[None, :])


def downsample(grid: Grid, factor: int) -> Grid:
    """Keep every ``factor``-th sample along height and width."""

    if factor < 1:
        raise ValueError(f"Downsample factor must be >= 1, got {factor}")

    height = grid.height // factor
    width = grid.width // factor
    values = grid._view()[:, : height * factor : factor, : width * factor : factor, :]
    return Grid.from_numpy(values)
