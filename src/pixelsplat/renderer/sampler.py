"""Per-pixel sample placement.

A sampler maps a pixel and a sample count to a SampleSet: a float64 array of
shape (count, 2) holding absolute image-plane positions (x, y) inside the
pixel's unit cell ``[x, x+1) x [y, y+1)``.

Samplers:
    - StratifiedSampler: n×n strata per pixel, one jittered sample per stratum
    - IndependentSampler: uniform random positions (no stratification)

Randomness:
    Each pixel draws from its own numpy Generator seeded with
    hashing.derive_seed(seed, x, y). Draw i of that stream belongs to sample i,
    so a pixel's samples depend only on (seed, pixel, count), never on which
    thread or tile generates them. No random state is shared between threads.

Non-square counts (StratifiedSampler):
    With n = ceil(sqrt(count)) there are n*n >= count strata. A perfect square
    fills every stratum in row-major order. Otherwise ``count`` distinct strata
    are drawn uniformly without replacement from the pixel's own stream, so no
    two samples ever share a stratum; coverage of the cell is uneven by at
    most the n*n - count empty strata.
"""

import math
from abc import ABC, abstractmethod
from numbers import Integral
from typing import Tuple

import numpy as np

from ..utils import hashing
from .rectangle import Rectangle
from .registry import register


def _check_count(count) -> int:
    if isinstance(count, bool) or not isinstance(count, Integral):
        raise ValueError(f"Sample count must be an integer, got {count!r}")
    if count < 0:
        raise ValueError(f"Sample count must be non-negative, got {count}")
    return int(count)


class Sampler(ABC):
    """Produces sample positions for one pixel at a time.

    Implementations must be deterministic for a given seed and safe to call
    concurrently from several threads.
    """

    def __init__(self, seed: int = 0):
        self.seed = int(seed)

    def pixel_rng(self, pixel: Tuple[int, int]) -> np.random.Generator:
        """Random stream owned by one pixel."""
        x, y = pixel
        return np.random.default_rng(hashing.derive_seed(self.seed, x, y))

    @abstractmethod
    def offsets(self, rng: np.random.Generator, count: int) -> np.ndarray:
        """Sample offsets within the unit cell, shape (count, 2), in [0, 1)."""

    def generate(self, pixel: Tuple[int, int], count: int) -> np.ndarray:
        """Generate the SampleSet for one pixel.

        Parameters
        ----------
        pixel : tuple of int
            Pixel coordinates (x, y)
        count : int
            Number of samples (>= 0)

        Returns
        -------
        np.ndarray
            Absolute positions, shape (count, 2), float64

        Raises
        ------
        ValueError
            If count is negative or not an integer
        """
        count = _check_count(count)
        if count == 0:
            return np.empty((0, 2), dtype=np.float64)

        x, y = int(pixel[0]), int(pixel[1])
        samples = self.offsets(self.pixel_rng((x, y)), count)
        samples[:, 0] += x
        samples[:, 1] += y
        return samples

    def generate_tile(self, rect: Rectangle, count: int) -> Tuple[np.ndarray, np.ndarray]:
        """Generate samples for every pixel of a tile, row-major.

        Returns
        -------
        pixels : np.ndarray
            Pixel coordinates (x, y) per sample, shape (rect.size * count, 2), int64
        samples : np.ndarray
            Sample positions, shape (rect.size * count, 2), float64
        """
        count = _check_count(count)
        total = rect.size * count
        pixels = np.empty((total, 2), dtype=np.int64)
        samples = np.empty((total, 2), dtype=np.float64)
        if total == 0:
            return pixels, samples

        i = 0
        for x, y in rect.index_iter():
            samples[i:i + count] = self.generate((x, y), count)
            pixels[i:i + count] = (x, y)
            i += count
        return pixels, samples

    def __repr__(self) -> str:
        return f"{type(self).__name__}(seed={self.seed})"


@register("sampler", "stratified")
class StratifiedSampler(Sampler):
    """Stratified sampling with optional jitter.

    Parameters
    ----------
    seed : int
        Render-wide base seed
    jitter : bool
        If True (default), each sample is placed uniformly inside its stratum;
        if False, at the stratum center
    """

    def __init__(self, seed: int = 0, jitter: bool = True):
        super().__init__(seed)
        self.jitter = bool(jitter)

    @staticmethod
    def strata_per_axis(count: int) -> int:
        """n such that the pixel is divided into n×n strata for ``count`` samples."""
        count = _check_count(count)
        return math.isqrt(count - 1) + 1 if count > 0 else 0

    def offsets(self, rng: np.random.Generator, count: int) -> np.ndarray:
        n = self.strata_per_axis(count)
        n_strata = n * n

        if count == n_strata:
            strata = np.arange(n_strata)
        else:
            strata = np.sort(rng.choice(n_strata, size=count, replace=False))

        sx = (strata % n).astype(np.float64)
        sy = (strata // n).astype(np.float64)

        if self.jitter:
            jitter = rng.random((count, 2))
        else:
            jitter = np.full((count, 2), 0.5)

        offsets = np.empty((count, 2), dtype=np.float64)
        offsets[:, 0] = (sx + jitter[:, 0]) / n
        offsets[:, 1] = (sy + jitter[:, 1]) / n
        return offsets

    def __repr__(self) -> str:
        return f"StratifiedSampler(seed={self.seed}, jitter={self.jitter})"


@register("sampler", "independent")
class IndependentSampler(Sampler):
    """Uniform random positions in the pixel cell, no stratification."""

    def offsets(self, rng: np.random.Generator, count: int) -> np.ndarray:
        return rng.random((count, 2))
