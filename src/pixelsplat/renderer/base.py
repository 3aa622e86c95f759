"""Renderer interface and the per-tile sample → evaluate → splat pipeline.

Pipeline for one tile:
    1. Sampler generates samples for every pixel of the tile (row-major)
    2. The render function is evaluated once per sample
    3. Each sample is splatted into every pixel whose center lies inside the
       filter support around the sample, weighted by the filter
    4. Contributions land in a tile-private Raster covering the tile plus a
       halo of the filter radius, clipped to the image; pixels outside the
       image are discarded (no wraparound, no position clamping)

The tile Raster is owned by exactly one task, so the hot path takes no shared
locks. Renderers fold tile rasters into the image raster afterwards.
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from numbers import Integral
from typing import Optional, Sequence, Tuple

import numpy as np

from .filters import Filter
from .raster import Raster
from .rectangle import Rectangle
from .render_function import RenderFunction, as_render_function
from .sampler import Sampler

logger = logging.getLogger(__name__)


class RenderError(RuntimeError):
    """A render was aborted because evaluating or splatting a tile failed."""

    def __init__(self, message: str, tile: Optional[Rectangle] = None):
        super().__init__(message)
        self.tile = tile


@dataclass
class TileResult:
    """Output of one tile task."""
    index: int
    tile: Rectangle
    raster: Raster
    sample_count: int
    elapsed: float


def check_positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def halo_margin(radius: float) -> int:
    """Pixels a sample can reach beyond its own pixel for a filter radius.

    A sample inside pixel p reaches pixel centers within ``radius`` of it, i.e.
    at most ``floor(radius + 0.5)`` pixels away; ceil() keeps a safe superset.
    """
    return int(math.ceil(radius + 0.5))


def footprint_size(radius: float) -> int:
    """Upper bound on pixel centers per axis inside ``[s - r, s + r]``."""
    return int(math.floor(2.0 * radius)) + 1


def evaluate_samples(
    render_fn: RenderFunction,
    samples: np.ndarray,
    value_shape: Optional[Tuple[int, ...]] = None
) -> np.ndarray:
    """Evaluate the render function at each sample; shape (N,) + value_shape.

    The result dtype is float64 for real values and complex128 for complex
    ones (``np.result_type(values, float64)``).

    Raises
    ------
    TypeError
        If the returned values aren't numeric or don't share one shape
    """
    values = [render_fn.evaluate(x, y) for x, y in samples.tolist()]
    try:
        arr = np.asarray(values)
    except (TypeError, ValueError) as e:
        raise TypeError(
            "Render function must return numeric values of one fixed shape"
        ) from e
    if arr.dtype.kind not in "biufc":
        raise TypeError(
            f"Render function must return numeric values of one fixed shape, got dtype {arr.dtype}"
        )
    arr = arr.astype(np.result_type(arr.dtype, np.float64), copy=False)

    if value_shape is not None:
        expected = (len(values),) + tuple(value_shape)
        if arr.shape != expected:
            raise TypeError(f"Render function values have shape {arr.shape[1:]}, expected {tuple(value_shape)}")
    return arr


# Footprint cells (samples x ky x kx) built per splat chunk
SPLAT_CHUNK_CELLS = 1 << 18


def splat(
    raster: Raster,
    image: Rectangle,
    pixel_filter: Filter,
    samples: np.ndarray,
    values: np.ndarray,
    max_cells: int = SPLAT_CHUNK_CELLS
) -> None:
    """Splat weighted sample values into every pixel inside the filter support.

    Samples are processed in chunks of at most ``max_cells // footprint``
    samples (at least one), so memory stays flat for wide filters and high
    sample counts. Chunks run in sample order, so the result does not depend
    on ``max_cells``.

    Parameters
    ----------
    raster : Raster
        Destination; must cover every in-image pixel the samples can reach
    image : Rectangle
        Image bounds; contributions outside are discarded
    pixel_filter : Filter
        Reconstruction kernel
    samples : np.ndarray
        Sample positions, shape (N, 2)
    values : np.ndarray
        Values per sample, shape (N,) + raster.value_shape
    max_cells : int
        Footprint cells allocated per chunk
    """
    n = samples.shape[0]
    if n == 0:
        return

    rx, ry = pixel_filter.radius
    kx, ky = footprint_size(rx), footprint_size(ry)
    chunk = max(1, max_cells // (kx * ky))

    for start in range(0, n, chunk):
        stop = min(start + chunk, n)
        _splat_chunk(raster, image, pixel_filter, samples[start:stop], values[start:stop], kx, ky)


def _splat_chunk(
    raster: Raster,
    image: Rectangle,
    pixel_filter: Filter,
    samples: np.ndarray,
    values: np.ndarray,
    kx: int,
    ky: int
) -> None:
    rx, ry = pixel_filter.radius
    sx = samples[:, 0]
    sy = samples[:, 1]

    # First candidate pixel whose center can be within reach, per axis
    x0 = np.ceil(sx - 0.5 - rx).astype(np.int64)
    y0 = np.ceil(sy - 0.5 - ry).astype(np.int64)

    # (N, ky, kx) footprint grids
    px = x0[:, None, None] + np.arange(kx)[None, None, :]
    py = y0[:, None, None] + np.arange(ky)[None, :, None]
    px, py = np.broadcast_arrays(px, py)

    dx = px + 0.5 - sx[:, None, None]
    dy = py + 0.5 - sy[:, None, None]
    weights = pixel_filter.evaluate(dx, dy)

    keep = (
        (weights != 0.0)
        & (px >= image.left) & (px < image.right)
        & (py >= image.top) & (py < image.bottom)
    )
    sample_index = np.broadcast_to(np.arange(samples.shape[0])[:, None, None], keep.shape)[keep]

    raster.accumulate_many(px[keep], py[keep], values[sample_index], weights[keep])


def render_tile(
    index: int,
    tile: Rectangle,
    image: Rectangle,
    sampler: Sampler,
    pixel_filter: Filter,
    render_fn: RenderFunction,
    samples_per_pixel: int,
    value_shape: Optional[Tuple[int, ...]] = None
) -> TileResult:
    """Run the full pipeline for one tile into a private halo raster."""
    start = time.perf_counter()

    rx, ry = pixel_filter.radius
    halo = tile.expand(halo_margin(rx), halo_margin(ry)).clip(image)

    _, samples = sampler.generate_tile(tile, samples_per_pixel)
    values = evaluate_samples(render_fn, samples, value_shape)

    raster = Raster(halo, values.shape[1:], values.dtype)
    splat(raster, image, pixel_filter, samples, values)

    elapsed = time.perf_counter() - start
    logger.debug(
        f"Tile {index} {tile.width}x{tile.height}@({tile.left},{tile.top}) done: "
        f"{samples.shape[0]} samples, {elapsed * 1000:.1f} ms"
    )
    return TileResult(index, tile, raster, samples.shape[0], elapsed)


class Renderer(ABC):
    """Turns sampler + filter + render function into an accumulated Raster."""

    def render(
        self,
        width: int,
        height: int,
        sampler: Sampler,
        pixel_filter: Filter,
        render_fn: RenderFunction,
        samples_per_pixel: int,
        value_shape: Optional[Sequence[int]] = None
    ) -> Raster:
        """Render a ``width × height`` raster.

        Parameters
        ----------
        width, height : int
            Raster dimensions (> 0)
        sampler : Sampler
            Sample placement
        pixel_filter : Filter
            Reconstruction kernel
        render_fn : RenderFunction
            Client evaluation (object with evaluate(x, y) or a callable)
        samples_per_pixel : int
            Samples per pixel (> 0)
        value_shape : sequence of int, optional
            Expected value shape; inferred from the render function if None

        Returns
        -------
        Raster
            Fully accumulated raster; call finalize() for normalized values

        Raises
        ------
        ValueError
            On invalid arguments, before any evaluation starts
        RenderError
            If any evaluation fails; no partial raster is returned
        """
        width = check_positive_int("width", width)
        height = check_positive_int("height", height)
        samples_per_pixel = check_positive_int("samples_per_pixel", samples_per_pixel)
        if not isinstance(sampler, Sampler):
            raise ValueError(f"sampler must be a Sampler, got {type(sampler).__name__}")
        if not isinstance(pixel_filter, Filter):
            raise ValueError(f"pixel_filter must be a Filter, got {type(pixel_filter).__name__}")
        if value_shape is not None:
            value_shape = tuple(int(s) for s in value_shape)
            if any(s <= 0 for s in value_shape):
                raise ValueError(f"value_shape entries must be positive, got {value_shape}")
        render_fn = as_render_function(render_fn)

        return self._render(
            Rectangle.from_size(width, height), sampler, pixel_filter, render_fn,
            samples_per_pixel, value_shape
        )

    @abstractmethod
    def _render(
        self,
        image: Rectangle,
        sampler: Sampler,
        pixel_filter: Filter,
        render_fn: RenderFunction,
        samples_per_pixel: int,
        value_shape: Optional[Tuple[int, ...]]
    ) -> Raster:
        """Render with validated arguments."""


def merge_tiles(image: Rectangle, results: Sequence[TileResult]) -> Raster:
    """Fold tile rasters into one image raster, in tile order.

    The image raster takes the widest tile dtype, so a render function that
    returns complex values for some tiles and real values for others still
    merges. Tiles disagreeing on value_shape abort the render.

    Raises
    ------
    RenderError
        If a tile's value_shape differs from the first tile's
    """
    ordered = sorted(results, key=lambda r: r.index)
    dtype = np.result_type(*[r.raster.dtype for r in ordered])
    raster = Raster(image, ordered[0].raster.value_shape, dtype)
    for result in ordered:
        if result.raster.value_shape != raster.value_shape:
            logger.error(
                f"Tile {result.index} produced values of shape {result.raster.value_shape}, "
                f"tile {ordered[0].index} {raster.value_shape}"
            )
            raise RenderError(
                f"Render function returned values of shape {result.raster.value_shape} in tile "
                f"{result.index} {result.tile}, but {raster.value_shape} in tile {ordered[0].index}",
                tile=result.tile
            )
        raster.merge(result.raster)
    return raster
