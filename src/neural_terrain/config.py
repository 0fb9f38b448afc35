"""
Configuration for heightmap generation and seam blending.

Every setting is passed explicitly as a validated struct instead of
being read from per-call UI state.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DiffusionConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_width: int = Field(256, ge=1, description="Denoiser output width")
    model_height: int = Field(256, ge=1, description="Denoiser output height")
    diffusion_steps: int = Field(10, ge=1, description="Total reverse diffusion steps")
    starting_step: int = Field(0, ge=0, description="First step to execute")
    min_signal_rate: float = Field(0.02, gt=0.0, lt=1.0, description="Signal rate at time 1")
    max_signal_rate: float = Field(0.9, gt=0.0, le=1.0, description="Signal rate at time 0")

    @model_validator(mode="after")
    def check_ranges(self) -> "DiffusionConfig":
        if self.starting_step >= self.diffusion_steps:
            raise ValueError("starting_step must be smaller than diffusion_steps")
        if self.min_signal_rate >= self.max_signal_rate:
            raise ValueError("min_signal_rate must be smaller than max_signal_rate")
        return self


class UpsampleConfig(BaseModel):
    factor: int = Field(2, ge=1, description="Integer upsample factor")
    method: Literal["bicubic", "bilinear", "nearest"] = Field(
        "bicubic", description="Upsampling method"
    )


class SmoothingConfig(BaseModel):
    enabled: bool = Field(True, description="Smooth the upsampled field")
    kernel_size: int = Field(12, ge=1, description="Gaussian kernel size in samples")
    sigma: float = Field(6.0, gt=0.0, description="Gaussian standard deviation")


class BlendConfig(BaseModel):
    radius1: Optional[float] = Field(None, gt=0.0, description="Fully weighted radius")
    radius2: Optional[float] = Field(None, ge=0.0, description="Mask centre offset")
    b_value: float = Field(2.5, description="Blend falloff start value")
    keep_neighbor_heights: bool = Field(False, description="Mix existing neighbour heights")


class PipelineConfig(BaseModel):
    diffusion: DiffusionConfig = Field(default_factory=DiffusionConfig)
    upsample: UpsampleConfig = Field(default_factory=UpsampleConfig)
    smoothing: SmoothingConfig = Field(default_factory=SmoothingConfig)
    blend: BlendConfig = Field(default_factory=BlendConfig)
    height_multiplier: float = Field(0.5, ge=0.0, description="Tile height scale")

    @property
    def output_width(self) -> int:
        return self.diffusion.model_width * self.upsample.factor

    @property
    def output_height(self) -> int:
        return self.diffusion.model_height * self.upsample.factor
