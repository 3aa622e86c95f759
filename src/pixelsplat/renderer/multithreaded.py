"""Multi-threaded tile renderer.

Architecture:
    - Partition the image into tiles (Rectangle.tile_iter)
    - Submit one task per tile to a ThreadPoolExecutor of ``workers`` threads
    - Each task renders its tile into a private Raster (tile + filter halo)
    - After every task has finished, fold tile rasters into the image raster
      on the calling thread, in tile order

Invariants:
    - No task writes shared state; the merge is single-threaded
    - Merge order is tile order, never completion order, so repeated renders
      are bit-identical
    - With a fixed tile_size the tiling does not depend on ``workers``, so
      1 worker and N workers produce bit-identical rasters
    - The first failing tile cancels pending tiles and raises RenderError;
      no partial raster is returned

numpy releases the GIL inside its kernels (sampling, filter evaluation,
np.add.at), so tiles overlap usefully even though the render function itself
runs under the GIL.
"""

import logging
import math
import os
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import List, Optional, Tuple

from ..utils.logging_config import log_context
from ..utils.profiler import TimerAccumulator, timer
from .base import RenderError, Renderer, TileResult, check_positive_int, merge_tiles, render_tile
from .filters import Filter
from .raster import Raster
from .rectangle import Rectangle
from .render_function import RenderFunction
from .sampler import Sampler

logger = logging.getLogger(__name__)


class MultiThreadedRenderer(Renderer):
    """Renders tiles in parallel on a fixed-size thread pool.

    Parameters
    ----------
    workers : int, optional
        Worker threads; defaults to os.cpu_count()
    tile_size : int, optional
        Target tile edge in pixels (default 32). None switches to
        ``workers * tiles_per_worker`` tiles in a square-ish grid.
    tiles_per_worker : int
        Tiles per worker when tile_size is None (default 24)
    """

    DEFAULT_TILE_SIZE = 32
    DEFAULT_TILES_PER_WORKER = 24

    def __init__(
        self,
        workers: Optional[int] = None,
        tile_size: Optional[int] = DEFAULT_TILE_SIZE,
        tiles_per_worker: int = DEFAULT_TILES_PER_WORKER
    ):
        if workers is None:
            workers = os.cpu_count() or 1
        self.workers = check_positive_int("workers", workers)
        self.tile_size = None if tile_size is None else check_positive_int("tile_size", tile_size)
        self.tiles_per_worker = check_positive_int("tiles_per_worker", tiles_per_worker)

    @classmethod
    def with_defaults(cls) -> 'MultiThreadedRenderer':
        return cls()

    def tile_grid(self, image: Rectangle) -> Tuple[int, int]:
        """Tile counts (x, y) used for an image."""
        if self.tile_size is not None:
            return (
                math.ceil(image.width / self.tile_size),
                math.ceil(image.height / self.tile_size),
            )
        dim = max(1, round(math.sqrt(self.workers * self.tiles_per_worker)))
        return (dim, dim)

    def tiles(self, image: Rectangle) -> List[Rectangle]:
        """Tiles partitioning the image, row-major."""
        count_x, count_y = self.tile_grid(image)
        return list(image.tile_iter(count_x, count_y))

    def _run_tile(
        self,
        index: int,
        tile: Rectangle,
        image: Rectangle,
        sampler: Sampler,
        pixel_filter: Filter,
        render_fn: RenderFunction,
        samples_per_pixel: int,
        value_shape: Optional[Tuple[int, ...]]
    ) -> TileResult:
        with log_context(tile=index):
            return render_tile(
                index, tile, image, sampler, pixel_filter, render_fn,
                samples_per_pixel, value_shape
            )

    def _render(
        self,
        image: Rectangle,
        sampler: Sampler,
        pixel_filter: Filter,
        render_fn: RenderFunction,
        samples_per_pixel: int,
        value_shape: Optional[Tuple[int, ...]]
    ) -> Raster:
        tiles = self.tiles(image)
        logger.info(
            f"Start rendering {image.width}x{image.height}, {samples_per_pixel} spp, "
            f"{len(tiles)} tiles on {self.workers} workers, {sampler!r}, {pixel_filter!r}"
        )

        def _log_time(name: str, elapsed: float) -> None:
            logger.info(f"Render wall time: {elapsed * 1000:.0f} ms")

        with timer("render", sink=_log_time):
            results = self._render_tiles(
                tiles, image, sampler, pixel_filter, render_fn, samples_per_pixel, value_shape
            )

            logger.info("Merging tile rasters")
            tile_times = TimerAccumulator("tile")
            for result in results:
                tile_times.add(result.elapsed)
            raster = merge_tiles(image, results)

        logger.info(
            f"Rendered {sum(r.sample_count for r in results)} samples; "
            f"tile time mean {tile_times.mean() * 1000:.1f} ms, max {tile_times.max_time * 1000:.1f} ms"
        )
        return raster

    def _render_tiles(
        self,
        tiles: List[Rectangle],
        image: Rectangle,
        sampler: Sampler,
        pixel_filter: Filter,
        render_fn: RenderFunction,
        samples_per_pixel: int,
        value_shape: Optional[Tuple[int, ...]]
    ) -> List[TileResult]:
        workers = min(self.workers, len(tiles))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pixelsplat") as pool:
            futures = [
                pool.submit(
                    self._run_tile, index, tile, image, sampler, pixel_filter,
                    render_fn, samples_per_pixel, value_shape
                )
                for index, tile in enumerate(tiles)
            ]
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()

            for index, future in enumerate(futures):
                if future.cancelled() or not future.done():
                    continue
                exc = future.exception()
                if exc is not None:
                    tile = tiles[index]
                    logger.error(f"Tile {index} {tile} failed: {exc}", exc_info=exc)
                    raise RenderError(f"Render failed in tile {index} {tile}: {exc}", tile=tile) from exc

            return [future.result() for future in futures]

    def __repr__(self) -> str:
        return (
            f"MultiThreadedRenderer(workers={self.workers}, tile_size={self.tile_size}, "
            f"tiles_per_worker={self.tiles_per_worker})"
        )
