"""
Dense grid buffer used throughout terrain synthesis.

A Grid owns one contiguous float32 buffer laid out as
(batch, height, width, channels), x fastest within a row.
"""

import numpy as np
from typing import Tuple, Optional


DTYPE = np.float32


class ShapeMismatch(ValueError):
    """Raised when grid operands disagree in length or batch count."""
    pass


class Grid:
    """
    Value-like (batch, height, width, channels) buffer.

    Every constructor copies its input, so no two Grids ever share
    storage. Use the explicit accessors (get, set, flat_index) for
    element access.
    """

    def __init__(
        self,
        batch: int,
        height: int,
        width: int,
        channels: int = 1,
        data: Optional[np.ndarray] = None
    ):
        if min(batch, height, width, channels) < 1:
            raise ValueError(
                f"Grid dimensions must be positive, got {(batch, height, width, channels)}"
            )

        shape = (batch, height, width, channels)
        if data is None:
            self._buffer = np.zeros(shape, dtype=DTYPE)
        else:
            values = np.array(data, dtype=DTYPE, copy=True)
            if values.size != batch * height * width * channels:
                raise ShapeMismatch(
                    f"Buffer of length {values.size} does not fit shape {shape}"
                )
            self._buffer = np.ascontiguousarray(values.reshape(shape))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Grid":
        """Build a single-channel grid from a 2D (rows=y, cols=x) array."""

        array = np.asarray(array)
        if array.ndim != 2:
            raise ValueError(f"Expected a 2D array, got shape {array.shape}")

        height, width = array.shape
        return cls(1, height, width, 1, data=array)

    @classmethod
    def from_numpy(cls, array: np.ndarray) -> "Grid":
        """Build a grid from a 4D (batch, height, width, channels) array."""

        array = np.asarray(array)
        if array.ndim != 4:
            raise ValueError(f"Expected a 4D array, got shape {array.shape}")
        return cls(*array.shape, data=array)

    @classmethod
    def populated(cls, value: float, width: int, height: int) -> "Grid":
        """Single-channel grid with every sample set to ``value``."""

        grid = cls(1, height, width, 1)
        grid._buffer.fill(value)
        return grid

    @property
    def shape(self) -> Tuple[int, int, int, int]:
        return self._buffer.shape

    @property
    def batch(self) -> int:
        return self._buffer.shape[0]

    @property
    def height(self) -> int:
        return self._buffer.shape[1]

    @property
    def width(self) -> int:
        return self._buffer.shape[2]

    @property
    def channels(self) -> int:
        return self._buffer.shape[3]

    @property
    def length(self) -> int:
        return self._buffer.size

    def __len__(self) -> int:
        return self._buffer.size

    def flat_index(self, b: int, y: int, x: int, c: int = 0) -> int:
        """Offset of (b, y, x, c) in the flat buffer."""

        batch, height, width, channels = self.shape
        if not (0 <= b < batch and 0 <= y < height and 0 <= x < width and 0 <= c < channels):
            raise IndexError(f"Index {(b, y, x, c)} out of range for shape {self.shape}")
        return ((b * height + y) * width + x) * channels + c

    def get(self, b: int, y: int, x: int, c: int = 0) -> float:
        return float(self._buffer.reshape(-1)[self.flat_index(b, y, x, c)])

    def set(self, b: int, y: int, x: int, value: float, c: int = 0):
        self._buffer.reshape(-1)[self.flat_index(b, y, x, c)] = value

    def numpy(self) -> np.ndarray:
        """Copy of the buffer as a 4D array."""
        return self._buffer.copy()

    def to_flat(self) -> np.ndarray:
        """Copy of the buffer as a flat row-major array."""
        return self._buffer.reshape(-1).copy()

    def to_array(self, b: int = 0, c: int = 0) -> np.ndarray:
        """Copy of one batch/channel slice as a 2D (rows=y, cols=x) array."""
        return self._buffer[b, :, :, c].copy()

    def copy(self) -> "Grid":
        return Grid(*self.shape, data=self._buffer)

    def allclose(self, other: "Grid", atol: float = 1e-6) -> bool:
        return self.shape == other.shape and bool(
            np.allclose(self._buffer, other._buffer, atol=atol, rtol=0.0)
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._buffer, other._buffer))

    __hash__ = None

    def __repr__(self) -> str:
        return f"Grid(batch={self.batch}, height={self.height}, width={self.width}, channels={self.channels})"

    def _view(self) -> np.ndarray:
        # Read-only access for the ops module; callers must not mutate it.
        return self._buffer
