"""
Reverse diffusion components.

- schedule: cosine noise/signal rate schedule
- denoiser: black-box denoiser contract and session scoping
- sampler: the reverse diffusion loop

The torch-backed denoiser lives in ``diffusion.torch_denoiser``.
"""

from .schedule import DiffusionSchedule
from .denoiser import Denoiser, FunctionDenoiser, package_inputs, NOISY_INPUT, NOISE_RATE_INPUT
from .sampler import ReverseDiffusionSampler, DiffusionState

__all__ = [
    "DiffusionSchedule",
    "Denoiser",
    "FunctionDenoiser",
    "package_inputs",
    "NOISY_INPUT",
    "NOISE_RATE_INPUT",
    "ReverseDiffusionSampler",
    "DiffusionState"
]
