"""
Reverse diffusion sampler.

Turns a noisy height field into a clean one by repeatedly asking a
denoiser for the noise component, reconstructing the clean estimate and
re-noising it toward the next, less noisy, diffusion time.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
from tqdm import tqdm

from ..tensors import Grid, ShapeMismatch, ops
from .denoiser import Denoiser
from .schedule import DiffusionSchedule


@dataclass
class DiffusionState:
    """Sampler state at the start of one diffusion step, with the rates
    of this step and of the step it re-noises toward."""

    step: int
    total_steps: int
    noisy: Grid
    noise_rates: np.ndarray
    signal_rates: np.ndarray
    next_noise_rates: np.ndarray
    next_signal_rates: np.ndarray

    @property
    def diffusion_time(self) -> float:
        return 1.0 - self.step / self.total_steps

    @property
    def done(self) -> bool:
        return self.step >= self.total_steps


class ReverseDiffusionSampler:
    """
    Deterministic reverse diffusion loop.

    Runs steps ``starting_step .. diffusion_steps - 1``, calling the
    denoiser exactly once per step. Starting past step 0 completes a
    partially noised input, e.g. existing terrain mixed with noise.
    """

    def __init__(
        self,
        denoiser: Denoiser,
        schedule: Optional[DiffusionSchedule] = None,
        diffusion_steps: int = 10,
        starting_step: int = 0,
        progress: bool = False
    ):
        """
        Args:
            denoiser: Noise predictor, called inside its session
            schedule: Noise/signal rate schedule
            diffusion_steps: Total number of steps from pure noise
            starting_step: First step to execute
            progress: Show a tqdm progress bar over the steps
        """
        if diffusion_steps < 1:
            raise ValueError(f"diffusion_steps must be >= 1, got {diffusion_steps}")
        if not 0 <= starting_step < diffusion_steps:
            raise ValueError(
                f"starting_step must be in [0, {diffusion_steps}), got {starting_step}"
            )

        self.denoiser = denoiser
        self.schedule = schedule or DiffusionSchedule()
        self.diffusion_steps = diffusion_steps
        self.starting_step = starting_step
        self.step_size = 1.0 / diffusion_steps
        self.progress = progress

    def _state(self, step: int, noisy: Grid) -> DiffusionState:
        times = np.full(noisy.batch, 1.0 - step * self.step_size)
        noise_rates, signal_rates = self.schedule.rates(times)
        next_noise_rates, next_signal_rates = self.schedule.rates(times - self.step_size)
        return DiffusionState(
            step=step,
            total_steps=self.diffusion_steps,
            noisy=noisy,
            noise_rates=noise_rates,
            signal_rates=signal_rates,
            next_noise_rates=next_noise_rates,
            next_signal_rates=next_signal_rates
        )

    def initial_state(self, initial_noise: Grid) -> DiffusionState:
        return self._state(self.starting_step, initial_noise)

    def step(self, state: DiffusionState) -> Tuple[DiffusionState, Grid]:
        """
        Advance one step.

        Returns:
            Tuple of (next_state, predicted_clean)
        """

        noise_rates_squared = Grid(
            state.noisy.batch, 1, 1, 1, data=state.noise_rates ** 2
        )
        predicted_noise = self.denoiser(state.noisy, noise_rates_squared)
        if predicted_noise.length != state.noisy.length:
            raise ShapeMismatch(
                f"Denoiser returned {predicted_noise.length} samples for "
                f"an input of {state.noisy.length}"
            )

        # (noisy - noise_rate * predicted_noise) / signal_rate
        predicted_clean = ops.scale_batches(
            ops.sub(state.noisy, ops.scale_batches(predicted_noise, state.noise_rates)),
            state.signal_rates,
            inverse=True
        )

        # Re-noise toward the next diffusion time
        next_noisy = ops.add(
            ops.scale_batches(predicted_clean, state.next_signal_rates),
            ops.scale_batches(predicted_noise, state.next_noise_rates)
        )

        return self._state(state.step + 1, next_noisy), predicted_clean

    def iterate(self, initial_noise: Grid) -> Iterator[Tuple[DiffusionState, Grid]]:
        """Yield (state_after_step, predicted_clean) for every executed step."""

        state = self.initial_state(initial_noise)
        steps = range(self.starting_step, self.diffusion_steps)

        with self.denoiser:
            for _ in tqdm(steps, desc="Diffusion", disable=not self.progress):
                state, predicted_clean = self.step(state)
                yield state, predicted_clean

    def run(self, initial_noise: Grid) -> Grid:
        """Run every remaining step and return the final clean estimate."""

        predicted_clean = None
        for _, predicted_clean in self.iterate(initial_noise):
            pass
        return predicted_clean
