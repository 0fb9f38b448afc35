"""
Terrain tiles and the lattice that connects them.

A tile stores (height + 1) x (width + 1) samples with the last row and
column duplicated from the previous ones, so adjacent tiles can share an
edge without boundary falloff. Row 0 is the bottom edge; a tile's top
neighbour sits at larger y.
"""

import numpy as np
from typing import Dict, Iterator, List, Optional, Tuple


def to_terrain_heights(
    heightmap: np.ndarray,
    width: int,
    height: int,
    height_multiplier: float = 1.0,
    scale: bool = True
) -> np.ndarray:
    """
    Convert a flat row-major height field to tile samples.

    Args:
        heightmap: Flat array of length width * height (x fastest)
        width: Field width
        height: Field height
        height_multiplier: Height scale applied after normalization
        scale: Normalize by the maximum height before scaling

    Returns:
        Array of shape (height + 1, width + 1)
    """

    values = np.asarray(heightmap, dtype=np.float32).reshape(-1)
    if values.size != width * height:
        raise ValueError(
            f"Heightmap of length {values.size} does not match {width}x{height}"
        )

    coefficient = 1.0
    if scale:
        max_value = float(values.max())
        # Flat or negative fields are scaled but not normalized
        coefficient = height_multiplier / max_value if max_value > 0 else height_multiplier

    heights = np.empty((height + 1, width + 1), dtype=np.float32)
    heights[:height, :width] = values.reshape(height, width) * coefficient

    # Duplicate the last row and column to avoid edge artifacts
    heights[height, :width] = heights[height - 1, :width]
    heights[:, width] = heights[:, width - 1]

    return heights


class Tile:
    """
    One rectangular unit of terrain with up to eight lattice neighbours.

    Only the orthogonal neighbours are stored; diagonals are found by
    walking two orthogonal hops.
    """

    def __init__(self, width: int, height: int, heights: Optional[np.ndarray] = None):
        self.width = width
        self.height = height
        self.heights = np.zeros((height + 1, width + 1), dtype=np.float32)

        self.left: Optional["Tile"] = None
        self.right: Optional["Tile"] = None
        self.top: Optional["Tile"] = None
        self.bottom: Optional["Tile"] = None

        if heights is not None:
            self.set_heights(heights)

    def get_heights(self) -> np.ndarray:
        """Copy of the (height, width) field without the duplicated edge."""
        return self.heights[: self.height, : self.width].copy()

    def set_heights(self, heights: np.ndarray):
        """Overwrite the field from a (height, width) array."""

        heights = np.asarray(heights, dtype=np.float32)
        if heights.shape != (self.height, self.width):
            raise ValueError(
                f"Expected heights of shape {(self.height, self.width)}, got {heights.shape}"
            )
        self.heights = to_terrain_heights(heights, self.width, self.height, scale=False)

    def set_terrain_heights(
        self,
        heightmap: np.ndarray,
        height_multiplier: float = 1.0,
        scale: bool = True
    ):
        """Overwrite the field from a flat generated heightmap."""
        self.heights = to_terrain_heights(
            heightmap, self.width, self.height, height_multiplier, scale
        )

    @property
    def top_left(self) -> Optional["Tile"]:
        return _diagonal(self.left, "top", self.top, "left")

    @property
    def bottom_left(self) -> Optional["Tile"]:
        return _diagonal(self.left, "bottom", self.bottom, "left")

    @property
    def top_right(self) -> Optional["Tile"]:
        return _diagonal(self.right, "top", self.top, "right")

    @property
    def bottom_right(self) -> Optional["Tile"]:
        return _diagonal(self.right, "bottom", self.bottom, "right")

    def neighbors(self) -> Dict[str, Optional["Tile"]]:
        return {
            "left": self.left,
            "right": self.right,
            "top": self.top,
            "bottom": self.bottom,
            "top_left": self.top_left,
            "bottom_left": self.bottom_left,
            "top_right": self.top_right,
            "bottom_right": self.bottom_right
        }

    def __repr__(self) -> str:
        return f"Tile(width={self.width}, height={self.height})"


def _diagonal(
    first: Optional[Tile], first_hop: str,
    second: Optional[Tile], second_hop: str
) -> Optional[Tile]:
    # Horizontal hop first, vertical-first path as fallback
    if first is not None:
        return getattr(first, first_hop)
    if second is not None:
        return getattr(second, second_hop)
    return None


class TileLattice:
    """
    Tiles keyed by integer lattice coordinates (u, v).

    u grows to the right and v grows toward the top; adding a tile wires
    it to any tiles already present at the four orthogonal positions.
    """

    def __init__(self, tile_width: int, tile_height: int):
        self.tile_width = tile_width
        self.tile_height = tile_height
        self.tiles: Dict[Tuple[int, int], Tile] = {}

    @classmethod
    def square(cls, grid_size: int, tile_width: int, tile_height: int) -> "TileLattice":
        """grid_size x grid_size lattice centred on (0, 0)."""

        lattice = cls(tile_width, tile_height)
        half_grid = grid_size // 2
        for v in range(-half_grid, grid_size - half_grid):
            for u in range(-half_grid, grid_size - half_grid):
                lattice.add(u, v)
        return lattice

    def add(self, u: int, v: int, tile: Optional[Tile] = None) -> Tile:
        if tile is None:
            tile = Tile(self.tile_width, self.tile_height)
        elif (tile.width, tile.height) != (self.tile_width, self.tile_height):
            raise ValueError(
                f"Tile of size {tile.width}x{tile.height} does not fit a "
                f"{self.tile_width}x{self.tile_height} lattice"
            )

        self.tiles[(u, v)] = tile

        left = self.tiles.get((u - 1, v))
        right = self.tiles.get((u + 1, v))
        top = self.tiles.get((u, v + 1))
        bottom = self.tiles.get((u, v - 1))

        tile.left, tile.right, tile.top, tile.bottom = left, right, top, bottom
        if left is not None:
            left.right = tile
        if right is not None:
            right.left = tile
        if top is not None:
            top.bottom = tile
        if bottom is not None:
            bottom.top = tile

        return tile

    def get(self, u: int, v: int) -> Optional[Tile]:
        return self.tiles.get((u, v))

    def keys(self) -> List[Tuple[int, int]]:
        return sorted(self.tiles, key=lambda key: (key[1], key[0]))

    def center(self) -> Tuple[int, int]:
        """Key of the tile closest to the lattice's mean coordinate."""

        if not self.tiles:
            raise ValueError("Lattice is empty")

        keys = self.keys()
        mean_u = sum(u for u, _ in keys) / len(keys)
        mean_v = sum(v for _, v in keys) / len(keys)
        return min(keys, key=lambda key: (key[0] - mean_u) ** 2 + (key[1] - mean_v) ** 2)

    def __iter__(self) -> Iterator[Tuple[Tuple[int, int], Tile]]:
        for key in self.keys():
            yield key, self.tiles[key]

    def __len__(self) -> int:
        return len(self.tiles)
