"""
Denoiser backed by a torch module.

The module is called as ``module(noisy, noise_rates_squared)`` with
NHWC float tensors and must return a tensor shaped like ``noisy``.
"""

import numpy as np
import torch
import torch.nn as nn

from ..tensors import Grid
from .denoiser import Denoiser


class TorchDenoiser(Denoiser):
    """
    Runs an already constructed ``nn.Module`` as the diffusion denoiser.

    Opening the session moves the module to its device and switches it
    to eval mode; closing returns it to the CPU.
    """

    def __init__(self, module: nn.Module, device: str = "auto", verbose: bool = False):
        """
        Args:
            module: Noise prediction network
            device: Device for inference ("auto", "cpu", "cuda")
            verbose: Print session status
        """
        super().__init__()
        self.module = module
        self.verbose = verbose

        # Setup device
        if device == "auto":
            self.device = "cuda" if torch.cuda.is_available() else "cpu"
        else:
            self.device = device

    def open(self):
        self.module = self.module.to(self.device)
        self.module.eval()
        if self.verbose:
            print(f"Denoiser session opened on {self.device}")

    def close(self):
        self.module = self.module.to("cpu")
        if self.device.startswith("cuda"):
            torch.cuda.empty_cache()
        if self.verbose:
            print("Denoiser session closed")

    def predict(self, noisy: Grid, noise_rates_squared: Grid) -> Grid:
        noisy_tensor = torch.from_numpy(noisy.numpy()).to(self.device)
        rates_tensor = torch.from_numpy(noise_rates_squared.numpy()).to(self.device)

        with torch.no_grad():
            predicted = self.module(noisy_tensor, rates_tensor)

        values = predicted.detach().to("cpu").numpy().astype(np.float32)
        return Grid(*noisy.shape, data=values)
