"""
Upsampling of diffused height fields to terrain resolution.

Provides three interchangeable upsamplers:
- BicubicResampler: separable cubic fit through four neighbouring samples
- BilinearUpSampler: linear interpolation via scipy.ndimage
- NearestUpSampler: sample repetition
"""

from abc import ABC, abstractmethod

import numpy as np
from typing import Dict, Type
from scipy import ndimage

from ..tensors import Grid
from ..tensors.grid import DTYPE


class UpSampler(ABC):
    """Base class for integer-factor upsamplers."""

    def __init__(self, factor: int = 2):
        if factor < 1:
            raise ValueError(f"Upsample factor must be >= 1, got {factor}")
        self.factor = int(factor)

    @abstractmethod
    def upsample(self, grid: Grid) -> Grid:
        """Upsample height and width by ``factor``."""
        pass

    def __call__(self, grid: Grid) -> Grid:
        return self.upsample(grid)


class BicubicResampler(UpSampler):
    """
    Separable bicubic upsampling, width pass then height pass.

    For every run of four samples (p0, p1, p2, p3) along an axis, the cubic
    f(x) = a x^3 + b x^2 + c x + d with f(0) = p1, f(1) = p2 and tangents
    f'(0) = p0 - p1, f'(1) = p2 - p3 fills the gap after p1. Input
    samples land unchanged on multiples of the factor. Taps past the grid
    border repeat the nearest edge sample.
    """

    @staticmethod
    def cubic_coefficients(p0, p1, p2, p3):
        """Closed-form (a, b, c, d) for the cubic through p1 and p2."""

        tangent_start = p0 - p1
        tangent_end = p2 - p3

        a = (tangent_end - tangent_start) - 2 * (p2 - p1 - tangent_start)
        b = p2 - p1 - tangent_start - a
        c = tangent_start
        d = p1
        return a, b, c, d

    def sample_cubic(self, p0: float, p1: float, p2: float, p3: float) -> np.ndarray:
        """Values of the fitted cubic at x = i / factor for i in [0, factor)."""

        a, b, c, d = self.cubic_coefficients(p0, p1, p2, p3)
        x = np.arange(self.factor) / self.factor
        return ((a * x + b) * x + c) * x + d

    def _upsample_axis(self, values: np.ndarray, axis: int) -> np.ndarray:
        size = values.shape[axis]
        index = np.arange(size)

        p0 = np.take(values, np.clip(index - 1, 0, size - 1), axis=axis).astype(np.float64)
        p1 = values.astype(np.float64)
        p2 = np.take(values, np.clip(index + 1, 0, size - 1), axis=axis).astype(np.float64)
        p3 = np.take(values, np.clip(index + 2, 0, size - 1), axis=axis).astype(np.float64)
        a, b, c, d = self.cubic_coefficients(p0, p1, p2, p3)

        out_shape = list(values.shape)
        out_shape[axis] = size * self.factor
        out = np.empty(out_shape, dtype=DTYPE)

        def positions(offset):
            slicer = [slice(None)] * values.ndim
            slicer[axis] = slice(offset, None, self.factor)
            return tuple(slicer)

        # Input samples are copied, not evaluated
        out[positions(0)] = values
        for offset in range(1, self.factor):
            x = offset / self.factor
            out[positions(offset)] = ((a * x + b) * x + c) * x + d

        return out

    def upsample(self, grid: Grid) -> Grid:
        values = grid.numpy()
        if self.factor == 1:
            return Grid.from_numpy(values)

        upsampled_x = self._upsample_axis(values, axis=2)
        upsampled = self._upsample_axis(upsampled_x, axis=1)
        return Grid.from_numpy(upsampled)


class BilinearUpSampler(UpSampler):
    """Linear interpolation upsampling over the spatial axes."""

    def upsample(self, grid: Grid) -> Grid:
        values = grid.numpy()
        if self.factor == 1:
            return Grid.from_numpy(values)

        upsampled = ndimage.zoom(
            values,
            (1, self.factor, self.factor, 1),
            order=1,
            mode="nearest",
            grid_mode=True
        )
        return Grid.from_numpy(upsampled)


class NearestUpSampler(UpSampler):
    """Repeats every sample ``factor`` times along height and width."""

    def upsample(self, grid: Grid) -> Grid:
        values = grid.numpy()
        upsampled = np.repeat(np.repeat(values, self.factor, axis=1), self.factor, axis=2)
        return Grid.from_numpy(upsampled)


UPSAMPLERS: Dict[str, Type[UpSampler]] = {
    "bicubic": BicubicResampler,
    "bilinear": BilinearUpSampler,
    "nearest": NearestUpSampler
}


def create_upsampler(method: str, factor: int) -> UpSampler:
    """Instantiate the upsampler registered under ``method``."""

    if method not in UPSAMPLERS:
        raise ValueError(f"Unsupported upsampler: {method}")
    return UPSAMPLERS[method](factor)
