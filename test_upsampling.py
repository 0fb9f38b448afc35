#!/usr/bin/env python3
"""
Tests for upsampling and smoothing of height fields.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from neural_terrain.tensors import Grid, seeded_normal
from neural_terrain.engine import (
    BicubicResampler,
    BilinearUpSampler,
    NearestUpSampler,
    UpSampler,
    GaussianSmoother,
    create_upsampler
)


def test_cubic_passes_through_inner_samples():
    resampler = BicubicResampler(4)
    a, b, c, d = resampler.cubic_coefficients(0.3, 1.2, -0.7, 2.0)

    assert d == pytest.approx(1.2)
    assert a + b + c + d == pytest.approx(-0.7)

    values = resampler.sample_cubic(0.3, 1.2, -0.7, 2.0)
    assert len(values) == 4
    assert values[0] == pytest.approx(1.2)


def test_factor_one_is_identity():
    noise = seeded_normal(0, 1, 6, 5)
    for method in ("bicubic", "bilinear", "nearest"):
        assert create_upsampler(method, 1)(noise) == noise


def test_bicubic_keeps_input_samples():
    field = Grid.from_array(np.arange(16, dtype=np.float32).reshape(4, 4) ** 1.5)
    upsampled = BicubicResampler(2)(field)

    assert upsampled.shape == (1, 8, 8, 1)
    assert np.array_equal(upsampled.to_array()[::2, ::2], field.to_array())


def test_bicubic_linear_ramp_midpoints():
    ramp = Grid.from_array(np.array([[0.0, 1.0, 2.0, 3.0, 4.0, 5.0]]))
    upsampled = BicubicResampler(2)(ramp).to_array()[0]

    assert upsampled.shape == (12,)
    # Interior midpoints have full four-sample support
    for i in (1, 2, 3):
        assert upsampled[2 * i + 1] == pytest.approx(i + 0.5)


def test_bicubic_edge_replication():
    constant = Grid.populated(3.5, 5, 4)
    upsampled = BicubicResampler(3)(constant)

    assert upsampled.shape == (1, 12, 15, 1)
    assert np.allclose(upsampled.to_flat(), 3.5)


def test_bicubic_batches_are_independent():
    noise = seeded_normal(2, 2, 4, 4)
    upsampled = BicubicResampler(2)(noise)

    single = BicubicResampler(2)(Grid.from_array(noise.to_array(b=1)))
    assert np.allclose(upsampled.to_array(b=1), single.to_array())


def test_bilinear_and_nearest():
    field = Grid.from_array(np.array([[1.0, 2.0], [3.0, 4.0]]))

    nearest = NearestUpSampler(2)(field).to_array()
    assert np.array_equal(nearest[:2, :2], np.ones((2, 2)))
    assert np.array_equal(nearest[2:, 2:], np.full((2, 2), 4.0))

    bilinear = BilinearUpSampler(2)(field)
    assert bilinear.shape == (1, 4, 4, 1)
    assert bilinear.to_flat().min() >= 1.0 - 1e-6
    assert bilinear.to_flat().max() <= 4.0 + 1e-6


def test_upsampler_validation():
    with pytest.raises(TypeError):
        UpSampler(2)
    with pytest.raises(ValueError):
        BicubicResampler(0)
    with pytest.raises(ValueError):
        create_upsampler("lanczos", 2)


def test_smoother_preserves_constant_fields():
    constant = Grid.populated(2.0, 16, 16)
    smoothed = GaussianSmoother(12, 6.0)(constant)
    assert np.allclose(smoothed.to_flat(), 2.0, atol=1e-5)


def test_smoother_reduces_variance():
    noise = seeded_normal(4, 1, 32, 32)
    smoothed = GaussianSmoother(5, 2.0)(noise)

    assert smoothed.shape == noise.shape
    assert smoothed.to_flat().std() < noise.to_flat().std()


def test_smoother_validation():
    with pytest.raises(ValueError):
        GaussianSmoother(0, 1.0)
    with pytest.raises(ValueError):
        GaussianSmoother(5, 0.0)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
