"""
neural-terrain: diffusion-based heightmap synthesis with seamless tiling.
"""

from .config import (
    PipelineConfig,
    DiffusionConfig,
    UpsampleConfig,
    SmoothingConfig,
    BlendConfig
)
from .tensors import Grid, ShapeMismatch, RandomField
from .diffusion import Denoiser, FunctionDenoiser, DiffusionSchedule, ReverseDiffusionSampler
from .engine import HeightmapPipeline, SeamBlender, Tile, TileLattice

__version__ = "0.1.0"

__all__ = [
    "PipelineConfig",
    "DiffusionConfig",
    "UpsampleConfig",
    "SmoothingConfig",
    "BlendConfig",
    "Grid",
    "ShapeMismatch",
    "RandomField",
    "Denoiser",
    "FunctionDenoiser",
    "DiffusionSchedule",
    "ReverseDiffusionSampler",
    "HeightmapPipeline",
    "SeamBlender",
    "Tile",
    "TileLattice"
]
