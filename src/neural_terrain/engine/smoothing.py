"""
Gaussian smoothing of upsampled height fields.
"""

from scipy import ndimage

from ..tensors import Grid


class GaussianSmoother:
    """
    Smooths the spatial axes of a grid with a Gaussian kernel.

    The kernel spans ``kernel_size`` samples; edge samples are
    replicated past the border so tiles do not fall off at their edges.
    """

    def __init__(self, kernel_size: int = 12, sigma: float = 6.0):
        if kernel_size < 1:
            raise ValueError(f"kernel_size must be >= 1, got {kernel_size}")
        if sigma <= 0:
            raise ValueError(f"sigma must be positive, got {sigma}")

        self.kernel_size = kernel_size
        self.sigma = sigma

    @property
    def truncate(self) -> float:
        """Kernel radius in units of sigma."""
        return max(kernel_radius(self.kernel_size), 1) / self.sigma

    def smooth(self, grid: Grid) -> Grid:
        smoothed = ndimage.gaussian_filter(
            grid.numpy(),
            sigma=(0, self.sigma, self.sigma, 0),
            mode="nearest",
            truncate=self.truncate
        )
        return Grid.from_numpy(smoothed)

    def __call__(self, grid: Grid) -> Grid:
        return self.smooth(grid)


def kernel_radius(kernel_size: int) -> int:
    return (kernel_size - 1) // 2
