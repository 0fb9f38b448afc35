"""
Terrain engine: resampling, smoothing, tiles, seam blending and the
generation pipeline that ties them to the diffusion sampler.
"""

from .upsampling import (
    UpSampler,
    BicubicResampler,
    BilinearUpSampler,
    NearestUpSampler,
    create_upsampler
)
from .smoothing import GaussianSmoother
from .tiles import Tile, TileLattice, to_terrain_heights
from .blending import SeamBlender, gradient_mask
from .pipeline import HeightmapPipeline

__all__ = [
    "UpSampler",
    "BicubicResampler",
    "BilinearUpSampler",
    "NearestUpSampler",
    "create_upsampler",
    "GaussianSmoother",
    "Tile",
    "TileLattice",
    "to_terrain_heights",
    "SeamBlender",
    "gradient_mask",
    "HeightmapPipeline"
]
