"""
Cosine diffusion schedule.
"""

import math
import numpy as np
from typing import Sequence, Tuple


class DiffusionSchedule:
    """
    Maps a normalized diffusion time to (noise_rate, signal_rate).

    The rates are the sine and cosine of an angle interpolated between
    acos(max_signal_rate) at time 0 and acos(min_signal_rate) at time 1,
    so noise_rate**2 + signal_rate**2 == 1.
    """

    def __init__(self, min_signal_rate: float = 0.02, max_signal_rate: float = 0.9):
        if not 0.0 < min_signal_rate < max_signal_rate <= 1.0:
            raise ValueError(
                "Signal rates must satisfy 0 < min_signal_rate < max_signal_rate <= 1, "
                f"got min={min_signal_rate}, max={max_signal_rate}"
            )

        self.min_signal_rate = min_signal_rate
        self.max_signal_rate = max_signal_rate
        self.start_angle = math.acos(max_signal_rate)
        self.end_angle = math.acos(min_signal_rate)

    def angle(self, time: float) -> float:
        return self.start_angle + time * (self.end_angle - self.start_angle)

    def __call__(self, time: float) -> Tuple[float, float]:
        angle = self.angle(time)
        return math.sin(angle), math.cos(angle)

    def rates(self, times: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        """Noise and signal rates for one diffusion time per batch element."""

        angles = self.start_angle + np.asarray(times, dtype=np.float64) * (
            self.end_angle - self.start_angle
        )
        return np.sin(angles), np.cos(angles)

    def __repr__(self) -> str:
        return (
            f"DiffusionSchedule(min_signal_rate={self.min_signal_rate}, "
            f"max_signal_rate={self.max_signal_rate})"
        )
