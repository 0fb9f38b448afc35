"""
Denoiser contract consumed by the reverse diffusion sampler.

The network behind a denoiser is opaque: it takes a noisy height field
and the squared noise rate of each batch element and predicts the noise
that was mixed in.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict

from ..tensors import Grid


NOISY_INPUT = "input_1"
NOISE_RATE_INPUT = "input_2"


def package_inputs(noisy: Grid, noise_rates_squared: Grid) -> Dict[str, Grid]:
    """Name the two denoiser inputs the way the exported model expects."""
    return {NOISY_INPUT: noisy, NOISE_RATE_INPUT: noise_rates_squared}


class Denoiser(ABC):
    """
    Base class for noise predictors.

    A denoiser is also a re-entrant context manager that scopes its
    session: the outermost ``with`` acquires it through open() and
    releases it through close() on every exit path. predict() is only
    valid inside a session.
    """

    def __init__(self):
        self._depth = 0

    @property
    def is_open(self) -> bool:
        return self._depth > 0

    def open(self):
        """Acquire session resources."""
        pass

    def close(self):
        """Release session resources."""
        pass

    def __enter__(self) -> "Denoiser":
        if self._depth == 0:
            self.open()
        self._depth += 1
        return self

    def __exit__(self, exc_type, exc, tb):
        self._depth -= 1
        if self._depth == 0:
            self.close()
        return False

    @abstractmethod
    def predict(self, noisy: Grid, noise_rates_squared: Grid) -> Grid:
        """
        Predict the noise component of ``noisy``.

        Args:
            noisy: Noisy height fields of shape (batch, H, W, 1)
            noise_rates_squared: Squared noise rates of shape (batch, 1, 1, 1)

        Returns:
            Predicted noise of shape (batch, H, W, 1)
        """
        pass

    def __call__(self, noisy: Grid, noise_rates_squared: Grid) -> Grid:
        if not self.is_open:
            raise RuntimeError(
                f"{type(self).__name__} used outside its session; wrap calls in 'with denoiser:'"
            )
        return self.predict(noisy, noise_rates_squared)

    def execute(self, inputs: Dict[str, Grid]) -> Grid:
        """Run on named inputs (see package_inputs)."""
        return self(inputs[NOISY_INPUT], inputs[NOISE_RATE_INPUT])


class FunctionDenoiser(Denoiser):
    """Adapts a plain ``f(noisy, noise_rates_squared) -> Grid`` callable."""

    def __init__(self, function: Callable[[Grid, Grid], Grid]):
        super().__init__()
        self.function = function

    def predict(self, noisy: Grid, noise_rates_squared: Grid) -> Grid:
        return self.function(noisy, noise_rates_squared)
