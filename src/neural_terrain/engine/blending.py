"""
Seam blending between a tile and its eight lattice neighbours.

The centre tile's height field is mirrored into each neighbour, weighted
by a radial falloff mask laid over the 3x3 block of tiles around it, so
every neighbour starts from a continuation of the centre's edge.
Diagonal neighbours are blended last and then clamped to the already
blended orthogonal neighbours, which makes the four-tile junctions
match exactly.
"""

import numpy as np
from typing import Dict, List, Optional, Tuple

from ..tensors import Grid, ops
from .tiles import Tile


def gradient_mask(
    width: int,
    height: int,
    radius1: float,
    radius2: float,
    b_value: float
) -> Grid:
    """
    Radial falloff mask covering a 3x3 block of tiles.

    Samples within radius1 of the centre (radius1 + radius2, radius1 + radius2)
    are 1.0; further out the value is -distance / radius1 + b_value,
    capped at 1.0 but not floored, so distant samples go negative.

    Returns:
        Single-channel grid of shape (1, 3 * height, 3 * width, 1)
    """

    center = radius1 + radius2
    ys, xs = np.mgrid[0 : 3 * height, 0 : 3 * width]
    distance = np.sqrt((xs - center) ** 2 + (ys - center) ** 2)

    falloff = np.minimum((-1.0 / radius1) * distance + b_value, 1.0)
    mask = np.where(distance < radius1, 1.0, falloff)
    return Grid.from_array(mask)


# Window origin (x, y) in units of tile size, and (mirror_x, mirror_y)
NEIGHBOR_LAYOUT: Dict[str, Tuple[Tuple[int, int], Tuple[bool, bool]]] = {
    "left": ((0, 1), (True, False)),
    "right": ((2, 1), (True, False)),
    "top": ((1, 2), (False, True)),
    "bottom": ((1, 0), (False, True)),
    "top_left": ((0, 2), (True, True)),
    "bottom_left": ((0, 0), (True, True)),
    "top_right": ((2, 2), (True, True)),
    "bottom_right": ((2, 0), (True, True))
}

ORTHOGONAL = ["left", "right", "top", "bottom"]
DIAGONAL = ["top_left", "bottom_left", "top_right", "bottom_right"]


class SeamBlender:
    """
    Blends a centre tile into its neighbours.

    Radii default to half the tile width and the full tile width, which
    centres the mask on the middle tile of the 3x3 block.
    """

    def __init__(
        self,
        radius1: Optional[float] = None,
        radius2: Optional[float] = None,
        b_value: float = 2.5,
        keep_neighbor_heights: bool = False,
        verbose: bool = False
    ):
        """
        Args:
            radius1: Radius of the fully weighted disc
            radius2: Offset added to radius1 to place the mask centre
            b_value: Falloff start value
            keep_neighbor_heights: Mix existing neighbour heights back in
                with weight (1 - mask) instead of replacing them
            verbose: Print which neighbours were blended
        """
        self.radius1 = radius1
        self.radius2 = radius2
        self.b_value = b_value
        self.keep_neighbor_heights = keep_neighbor_heights
        self.verbose = verbose

    def radii(self, width: int) -> Tuple[float, float]:
        radius1 = self.radius1 if self.radius1 is not None else width / 2
        radius2 = self.radius2 if self.radius2 is not None else float(width)
        return radius1, radius2

    def blend_single_neighbor(
        self,
        neighbor: Tile,
        mirror: Grid,
        mask: Grid,
        x_offset: int,
        y_offset: int
    ):
        """Write the mask-weighted mirror into one neighbour."""

        width, height = neighbor.width, neighbor.height
        window = mask.to_array()[y_offset : y_offset + height, x_offset : x_offset + width]
        local_mask = Grid.from_array(window)
        scaled_mirror = ops.mul(local_mask, mirror)

        if self.keep_neighbor_heights:
            neighbor_heights = Grid.from_array(neighbor.get_heights())
            inverse_mask = ops.sub(Grid.populated(1.0, width, height), local_mask)
            blended = ops.add(scaled_mirror, ops.mul(inverse_mask, neighbor_heights))
            neighbor.set_heights(blended.to_array())
        else:
            neighbor.set_heights(scaled_mirror.to_array())

    def clamp_to_neighbors(
        self,
        tile: Tile,
        left: Optional[Tile] = None,
        right: Optional[Tile] = None,
        top: Optional[Tile] = None,
        bottom: Optional[Tile] = None
    ):
        """
        Copy each given neighbour's shared edge into ``tile``.

        Applied in the order left, right, top, bottom; a later edge wins
        at a shared corner sample.
        """

        heights = tile.get_heights()

        if left is not None:
            heights[:, 0] = left.get_heights()[:, -1]
        if right is not None:
            heights[:, -1] = right.get_heights()[:, 0]
        if top is not None:
            heights[-1, :] = top.get_heights()[0, :]
        if bottom is not None:
            heights[0, :] = bottom.get_heights()[-1, :]

        tile.set_heights(heights)

    def blend_all_neighbors(self, tile: Tile) -> List[str]:
        """
        Blend ``tile`` into every neighbour it has.

        Orthogonal neighbours are blended first; each diagonal is then
        blended and clamped to the two orthogonal neighbours it touches.

        Returns:
            Names of the neighbours that were written
        """

        width, height = tile.width, tile.height
        radius1, radius2 = self.radii(width)

        heights = Grid.from_array(tile.get_heights())
        mirrors = {
            (True, False): ops.mirror(heights, True, False),
            (False, True): ops.mirror(heights, False, True),
            (True, True): ops.mirror(heights, True, True)
        }
        mask = gradient_mask(width, height, radius1, radius2, self.b_value)

        # Resolve every neighbour before any heights change
        neighbors = tile.neighbors()
        blended = []

        for name in ORTHOGONAL + DIAGONAL:
            neighbor = neighbors[name]
            if neighbor is None:
                continue

            (tile_x, tile_y), axes = NEIGHBOR_LAYOUT[name]
            self.blend_single_neighbor(
                neighbor, mirrors[axes], mask, tile_x * width, tile_y * height
            )
            if name in DIAGONAL:
                self._clamp_diagonal(name, neighbor, neighbors)
            blended.append(name)

        if self.verbose:
            print(f"Blended {len(blended)} neighbours: {', '.join(blended)}")

        return blended

    def _clamp_diagonal(
        self,
        name: str,
        diagonal: Tile,
        neighbors: Dict[str, Optional[Tile]]
    ):
        left, right, top, bottom = (
            neighbors["left"], neighbors["right"], neighbors["top"], neighbors["bottom"]
        )

        if name == "top_left":
            self.clamp_to_neighbors(diagonal, right=top, bottom=left)
        elif name == "bottom_left":
            self.clamp_to_neighbors(diagonal, right=bottom, top=left)
        elif name == "top_right":
            self.clamp_to_neighbors(diagonal, left=top, bottom=right)
        elif name == "bottom_right":
            self.clamp_to_neighbors(diagonal, left=bottom, top=right)
