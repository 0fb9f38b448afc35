#!/usr/bin/env python3
"""
Tests for the heightmap pipeline and its configuration.
"""

import sys
from pathlib import Path

import numpy as np
import pytest
from pydantic import ValidationError

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from neural_terrain import (
    BlendConfig,
    DiffusionConfig,
    FunctionDenoiser,
    HeightmapPipeline,
    PipelineConfig,
    SmoothingConfig,
    Tile,
    TileLattice,
    UpsampleConfig
)
from neural_terrain.tensors import ops


MODEL_SIZE = 8
OUTPUT_SIZE = 16


class SessionCounter(FunctionDenoiser):
    """Halves its input and counts sessions and calls."""

    def __init__(self):
        super().__init__(lambda noisy, rates: ops.scale(noisy, 0.5))
        self.sessions = 0
        self.calls = 0

    def open(self):
        self.sessions += 1

    def predict(self, noisy, noise_rates_squared):
        self.calls += 1
        return super().predict(noisy, noise_rates_squared)


def small_config(**overrides) -> PipelineConfig:
    settings = dict(
        diffusion=DiffusionConfig(
            model_width=MODEL_SIZE, model_height=MODEL_SIZE, diffusion_steps=4, starting_step=2
        ),
        upsample=UpsampleConfig(factor=2),
        smoothing=SmoothingConfig(kernel_size=3, sigma=1.0)
    )
    settings.update(overrides)
    return PipelineConfig(**settings)


def unsmoothed_config() -> PipelineConfig:
    return small_config(
        upsample=UpsampleConfig(factor=2, method="nearest"),
        smoothing=SmoothingConfig(enabled=False)
    )


def test_config_defaults():
    config = PipelineConfig()
    assert config.diffusion.model_width == 256
    assert config.diffusion.diffusion_steps == 10
    assert config.output_width == 512
    assert config.output_height == 512
    assert config.blend.b_value == 2.5
    assert config.height_multiplier == 0.5


def test_config_validation():
    with pytest.raises(ValidationError):
        DiffusionConfig(diffusion_steps=10, starting_step=10)
    with pytest.raises(ValidationError):
        DiffusionConfig(min_signal_rate=0.9, max_signal_rate=0.5)
    with pytest.raises(ValidationError):
        DiffusionConfig(diffusion_steps=0)
    with pytest.raises(ValidationError):
        UpsampleConfig(method="lanczos")
    with pytest.raises(ValidationError):
        BlendConfig(radius1=-1.0)


def test_generate_from_scratch():
    denoiser = SessionCounter()
    pipeline = HeightmapPipeline(denoiser, small_config())

    heightmap = pipeline.generate_from_scratch(seed=42)

    assert heightmap.shape == (OUTPUT_SIZE * OUTPUT_SIZE,)
    assert heightmap.dtype == np.float32
    assert np.all(np.isfinite(heightmap))
    # From scratch always runs every step
    assert denoiser.calls == 4
    assert denoiser.sessions == 1
    assert not denoiser.is_open


def test_generate_from_scratch_is_deterministic():
    pipeline = HeightmapPipeline(SessionCounter(), small_config())

    first = pipeline.generate_from_scratch(seed=1)
    second = pipeline.generate_from_scratch(seed=1)
    other = pipeline.generate_from_scratch(seed=2)

    assert np.array_equal(first, second)
    assert not np.array_equal(first, other)


def test_generate_from_existing():
    denoiser = SessionCounter()
    pipeline = HeightmapPipeline(denoiser, unsmoothed_config())
    existing = np.linspace(0.0, 3.0, OUTPUT_SIZE * OUTPUT_SIZE).reshape(OUTPUT_SIZE, OUTPUT_SIZE)

    heightmap = pipeline.generate_from_existing(existing, existing_weight=0.7, seed=3)

    assert heightmap.shape == (OUTPUT_SIZE * OUTPUT_SIZE,)
    assert heightmap.min() == 0.0
    # Runs from the configured starting step
    assert denoiser.calls == 2

    # Model-resolution input is accepted as is
    model_input = existing[::2, ::2]
    assert np.array_equal(
        pipeline.generate_from_existing(model_input, existing_weight=0.7, seed=3), heightmap
    )


def test_generate_from_existing_flat_input():
    pipeline = HeightmapPipeline(SessionCounter(), unsmoothed_config())
    heightmap = pipeline.generate_from_existing(
        np.zeros((OUTPUT_SIZE, OUTPUT_SIZE)), existing_weight=0.5, seed=0
    )
    assert np.all(np.isfinite(heightmap))


def test_generate_from_existing_negative_input_matches_flat():
    pipeline = HeightmapPipeline(SessionCounter(), unsmoothed_config())

    negative = pipeline.generate_from_existing(
        np.full((OUTPUT_SIZE, OUTPUT_SIZE), -2.5), existing_weight=0.6, seed=8
    )
    flat = pipeline.generate_from_existing(
        np.zeros((OUTPUT_SIZE, OUTPUT_SIZE)), existing_weight=0.6, seed=8
    )

    assert np.all(np.isfinite(negative))
    assert np.array_equal(negative, flat)


def test_generate_from_existing_validation():
    pipeline = HeightmapPipeline(SessionCounter(), small_config())

    with pytest.raises(ValueError):
        pipeline.generate_from_existing(np.ones((5, 5)), 0.5)
    with pytest.raises(ValueError):
        pipeline.generate_from_existing(np.ones((OUTPUT_SIZE, OUTPUT_SIZE)), 1.5)


def test_generate_brush_heightmap():
    pipeline = HeightmapPipeline(SessionCounter(), small_config())

    flat_brush = pipeline.generate_brush_heightmap(
        np.zeros((MODEL_SIZE, MODEL_SIZE)), height_offset=0.1, seed=0
    )
    assert flat_brush.shape == (OUTPUT_SIZE, OUTPUT_SIZE)
    assert np.allclose(flat_brush, -0.1)

    brush = pipeline.generate_brush_heightmap(
        np.ones((MODEL_SIZE, MODEL_SIZE)), height_offset=0.0, seed=0
    )
    scratch = pipeline.generate_from_scratch(seed=0).reshape(OUTPUT_SIZE, OUTPUT_SIZE)
    assert np.allclose(brush, 4.0 * scratch, atol=1e-4)


def test_interpolate_seeds_endpoint():
    pipeline = HeightmapPipeline(SessionCounter(), small_config())

    start = pipeline.interpolate_seeds(5, 6, 0.0)
    assert np.allclose(start, pipeline.generate_from_scratch(seed=5), atol=1e-3)

    middle = pipeline.interpolate_seeds(5, 6, 0.5)
    assert middle.shape == (OUTPUT_SIZE * OUTPUT_SIZE,)
    assert np.all(np.isfinite(middle))


def test_generate_tile():
    config = small_config()
    pipeline = HeightmapPipeline(SessionCounter(), config)
    tile = Tile(OUTPUT_SIZE, OUTPUT_SIZE)

    heightmap = pipeline.generate_tile(tile, seed=9)

    assert heightmap.shape == (OUTPUT_SIZE * OUTPUT_SIZE,)
    assert tile.heights.shape == (OUTPUT_SIZE + 1, OUTPUT_SIZE + 1)
    assert tile.heights.max() == pytest.approx(config.height_multiplier)

    with pytest.raises(ValueError):
        pipeline.generate_tile(Tile(MODEL_SIZE, MODEL_SIZE))


def test_regenerate_tile():
    pipeline = HeightmapPipeline(SessionCounter(), unsmoothed_config())
    tile = Tile(OUTPUT_SIZE, OUTPUT_SIZE)
    pipeline.generate_tile(tile, seed=1)

    heightmap = pipeline.regenerate_tile(tile, existing_weight=0.8, seed=2)
    assert heightmap.min() == 0.0
    assert tile.get_heights().min() == 0.0


def test_generate_lattice_single_session():
    denoiser = SessionCounter()
    pipeline = HeightmapPipeline(denoiser, small_config())
    lattice = TileLattice.square(3, OUTPUT_SIZE, OUTPUT_SIZE)

    seeds = pipeline.generate_lattice(lattice, seeds=100)

    assert denoiser.sessions == 1
    assert denoiser.calls == 9 * 4
    assert sorted(seeds.values()) == list(range(100, 109))
    assert all(np.any(tile.get_heights() != 0.0) for _, tile in lattice)


def test_generate_lattice_seed_mapping():
    pipeline = HeightmapPipeline(SessionCounter(), small_config())
    lattice = TileLattice(OUTPUT_SIZE, OUTPUT_SIZE)
    lattice.add(0, 0)
    lattice.add(1, 0)

    seeds = pipeline.generate_lattice(lattice, seeds={(0, 0): 4, (1, 0): 4})

    assert seeds == {(0, 0): 4, (1, 0): 4}
    assert np.array_equal(lattice.get(0, 0).heights, lattice.get(1, 0).heights)


def test_blend_lattice():
    pipeline = HeightmapPipeline(SessionCounter(), small_config())
    lattice = TileLattice.square(3, OUTPUT_SIZE, OUTPUT_SIZE)
    pipeline.generate_lattice(lattice, seeds=0)

    centre = lattice.get(0, 0).get_heights()
    results = pipeline.blend_lattice(lattice)

    assert list(results) == [(0, 0)]
    assert len(results[(0, 0)]) == 8
    assert np.array_equal(lattice.get(0, 0).get_heights(), centre)

    # Mid-edge rows of the left neighbour lie inside the full-weight region
    left = lattice.get(-1, 0).get_heights()
    assert np.array_equal(left[4:12, -1], centre[4:12, 0])

    with pytest.raises(KeyError):
        pipeline.blend_lattice(lattice, centers=[(7, 7)])


def test_pipeline_verbose(capsys):
    HeightmapPipeline(SessionCounter(), small_config(), verbose=True)
    output = capsys.readouterr().out
    assert "HeightmapPipeline initialized" in output
    assert "Output size: 16x16" in output


def test_custom_smoother_is_used():
    calls = []

    def smoother(grid):
        calls.append(grid.shape)
        return grid

    pipeline = HeightmapPipeline(SessionCounter(), small_config(), smoother=smoother)
    pipeline.generate_from_scratch(seed=0)
    assert calls == [(1, OUTPUT_SIZE, OUTPUT_SIZE, 1)]


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
