"""
Heightmap generation pipeline.

Chains noise sampling, reverse diffusion, upsampling and optional
smoothing into a flat height field, writes fields into terrain tiles and
blends tiles into their lattice neighbours.
"""

import numpy as np
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union
from tqdm import tqdm

from ..config import PipelineConfig
from ..diffusion import Denoiser, DiffusionSchedule, ReverseDiffusionSampler
from ..tensors import Grid, RandomField, ops
from .blending import SeamBlender
from .smoothing import GaussianSmoother
from .tiles import Tile, TileLattice
from .upsampling import create_upsampler


BRUSH_HEIGHT_GAIN = 4.0


class HeightmapPipeline:
    """
    Complete noise-to-terrain generation pipeline.

    The denoiser session is opened once per generate call (or once per
    lattice) and closed on every exit path.
    """

    def __init__(
        self,
        denoiser: Denoiser,
        config: Optional[PipelineConfig] = None,
        smoother: Optional[Callable[[Grid], Grid]] = None,
        verbose: bool = False,
        progress: bool = False
    ):
        """
        Initialize pipeline.

        Args:
            denoiser: Noise predictor driven by the sampler
            config: Generation and blending configuration
            smoother: Smoothing stage overriding the configured Gaussian one
            verbose: Print status messages
            progress: Show tqdm progress bars
        """

        self.config = config or PipelineConfig()
        self.denoiser = denoiser
        self.verbose = verbose
        self.progress = progress

        diffusion = self.config.diffusion
        self.schedule = DiffusionSchedule(diffusion.min_signal_rate, diffusion.max_signal_rate)
        self.upsampler = create_upsampler(self.config.upsample.method, self.config.upsample.factor)

        if smoother is None and self.config.smoothing.enabled:
            smoother = GaussianSmoother(
                self.config.smoothing.kernel_size, self.config.smoothing.sigma
            )
        self.smoother = smoother

        blend = self.config.blend
        self.blender = SeamBlender(
            radius1=blend.radius1,
            radius2=blend.radius2,
            b_value=blend.b_value,
            keep_neighbor_heights=blend.keep_neighbor_heights,
            verbose=verbose
        )

        if verbose:
            print("HeightmapPipeline initialized:")
            print(f"  Model size: {diffusion.model_width}x{diffusion.model_height}")
            print(f"  Output size: {self.config.output_width}x{self.config.output_height}")
            print(f"  Diffusion steps: {diffusion.diffusion_steps}")
            print(f"  Upsampler: {self.config.upsample.method} x{self.config.upsample.factor}")

    @property
    def output_shape(self) -> Tuple[int, int]:
        return self.config.output_height, self.config.output_width

    def sampler(self, starting_step: Optional[int] = None) -> ReverseDiffusionSampler:
        diffusion = self.config.diffusion
        if starting_step is None:
            starting_step = diffusion.starting_step

        return ReverseDiffusionSampler(
            self.denoiser,
            self.schedule,
            diffusion_steps=diffusion.diffusion_steps,
            starting_step=starting_step,
            progress=self.progress
        )

    def initial_noise(self, seed: Optional[int] = None) -> Grid:
        diffusion = self.config.diffusion
        return RandomField(seed).standard_normal(
            1, diffusion.model_height, diffusion.model_width, 1
        )

    def generate_base(self, noise: Grid, starting_step: Optional[int] = None) -> Grid:
        """Run reverse diffusion on ``noise`` at model resolution."""
        return self.sampler(starting_step).run(noise)

    def finish(self, base: Grid) -> Grid:
        """Upsample and, if configured, smooth a model-resolution field."""

        upsampled = self.upsampler(base)
        if self.smoother is None:
            return upsampled
        return self.smoother(upsampled)

    def generate_from_scratch(self, seed: Optional[int] = None) -> np.ndarray:
        """
        Generate a height field from pure noise.

        Args:
            seed: Noise seed (None for an unseeded draw)

        Returns:
            Flat row-major array of length output_width * output_height
        """

        noise = self.initial_noise(seed)
        base = self.generate_base(noise, starting_step=0)
        return self.finish(base).to_flat()

    def generate_from_existing(
        self,
        heights: np.ndarray,
        existing_weight: float = 0.5,
        seed: Optional[int] = None
    ) -> np.ndarray:
        """
        Regenerate terrain that keeps the shape of an existing field.

        The existing field is brought to model resolution, normalized by
        its maximum, mixed with noise and diffused from the configured
        starting step. The result is shifted so its minimum is 0.

        Args:
            heights: Existing 2D field at model or output resolution
            existing_weight: Weight of the existing field against the noise
            seed: Noise seed

        Returns:
            Flat row-major array of length output_width * output_height
        """

        if not 0.0 <= existing_weight <= 1.0:
            raise ValueError(f"existing_weight must be in [0, 1], got {existing_weight}")

        existing = self._existing_at_model_resolution(heights)

        max_height = float(existing.to_flat().max())
        if max_height > 0:
            existing = ops.scale(existing, 1.0 / max_height)
        else:
            # Flat or negative terrain carries no shape
            existing = Grid(*existing.shape)

        noise = self.initial_noise(seed)
        mixed = ops.add(
            ops.scale(existing, existing_weight),
            ops.scale(noise, 1.0 - existing_weight)
        )

        base = self.generate_base(mixed)
        base = ops.sub(base, Grid.populated(float(base.to_flat().min()), base.width, base.height))
        return self.finish(base).to_flat()

    def _existing_at_model_resolution(self, heights: np.ndarray) -> Grid:
        diffusion = self.config.diffusion
        existing = Grid.from_array(np.asarray(heights, dtype=np.float32))

        if (existing.height, existing.width) == self.output_shape:
            existing = ops.downsample(existing, self.config.upsample.factor)

        if (existing.height, existing.width) != (diffusion.model_height, diffusion.model_width):
            raise ValueError(
                f"Existing heights of shape {np.shape(heights)} match neither the model "
                f"size nor the output size"
            )
        return existing

    def generate_brush_heightmap(
        self,
        brush_mask: np.ndarray,
        height_offset: float = 0.1,
        seed: Optional[int] = None
    ) -> np.ndarray:
        """
        Generate a stamp heightmap shaped by a model-resolution brush mask.

        Returns:
            2D array of shape (output_height, output_width)
        """

        base = self.generate_base(self.initial_noise(seed), starting_step=0)
        masked = ops.mul(base, Grid.from_array(np.asarray(brush_mask, dtype=np.float32)))
        finished = self.finish(masked)

        # Gain keeps brush values from compressing into a few levels
        return finished.to_array() * BRUSH_HEIGHT_GAIN - height_offset

    def interpolate_seeds(self, seed_a: int, seed_b: int, t: float) -> np.ndarray:
        """Generate from the spherical interpolation of two seeded noise fields."""

        noise = ops.slerp(self.initial_noise(seed_a), self.initial_noise(seed_b), t)
        base = self.generate_base(noise, starting_step=0)
        return self.finish(base).to_flat()

    def _check_tile(self, tile: Tile):
        if (tile.height, tile.width) != self.output_shape:
            raise ValueError(
                f"Tile of size {tile.width}x{tile.height} does not match the "
                f"{self.config.output_width}x{self.config.output_height} output"
            )

    def generate_tile(self, tile: Tile, seed: Optional[int] = None) -> np.ndarray:
        """Generate a field from scratch and write it into ``tile``."""

        self._check_tile(tile)
        heightmap = self.generate_from_scratch(seed)
        tile.set_terrain_heights(heightmap, self.config.height_multiplier)
        return heightmap

    def regenerate_tile(
        self,
        tile: Tile,
        existing_weight: float = 0.5,
        seed: Optional[int] = None
    ) -> np.ndarray:
        """Regenerate ``tile`` from its current heights."""

        self._check_tile(tile)
        heightmap = self.generate_from_existing(tile.get_heights(), existing_weight, seed)
        tile.set_terrain_heights(heightmap, self.config.height_multiplier)
        return heightmap

    def generate_lattice(
        self,
        lattice: TileLattice,
        seeds: Optional[Union[int, Dict[Tuple[int, int], Optional[int]]]] = None
    ) -> Dict[Tuple[int, int], Optional[int]]:
        """
        Fill every tile of ``lattice`` under a single denoiser session.

        Args:
            lattice: Tiles to generate
            seeds: Seed per lattice key, or a base seed giving tile i the
                seed seeds + i (unseeded where missing)

        Returns:
            Dictionary mapping lattice keys to the seed each tile used
        """

        used = {}
        with self.denoiser:
            entries = list(lattice)
            for i, (key, tile) in enumerate(
                tqdm(entries, desc="Tiles", disable=not self.progress)
            ):
                if isinstance(seeds, dict):
                    seed = seeds.get(key)
                else:
                    seed = None if seeds is None else seeds + i
                self.generate_tile(tile, seed)
                used[key] = seed

        if self.verbose:
            print(f"Generated {len(used)} tiles")

        return used

    def blend(self, tile: Tile) -> List[str]:
        """Blend ``tile`` into its neighbours."""
        return self.blender.blend_all_neighbors(tile)

    def blend_lattice(
        self,
        lattice: TileLattice,
        centers: Optional[Iterable[Tuple[int, int]]] = None
    ) -> Dict[Tuple[int, int], List[str]]:
        """
        Blend around each centre tile in turn.

        Args:
            lattice: Lattice holding the tiles
            centers: Keys of the tiles to blend around (default: lattice centre)

        Returns:
            Dictionary mapping each centre key to the neighbours it wrote
        """

        if centers is None:
            centers = [lattice.center()]

        results = {}
        for key in centers:
            tile = lattice.get(*key)
            if tile is None:
                raise KeyError(f"No tile at lattice position {key}")
            results[key] = self.blend(tile)

        return results
