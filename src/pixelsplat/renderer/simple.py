"""Single-threaded renderer: the whole image as one tile on the calling thread."""

import logging
from typing import Optional, Tuple

from ..utils.profiler import timer
from .base import RenderError, Renderer, merge_tiles, render_tile
from .filters import Filter
from .raster import Raster
from .rectangle import Rectangle
from .render_function import RenderFunction
from .sampler import Sampler

logger = logging.getLogger(__name__)


class SimpleRenderer(Renderer):
    """Reference renderer without threads.

    Produces the same raster as MultiThreadedRenderer up to floating-point
    summation order; useful for debugging render functions.
    """

    def _render(
        self,
        image: Rectangle,
        sampler: Sampler,
        pixel_filter: Filter,
        render_fn: RenderFunction,
        samples_per_pixel: int,
        value_shape: Optional[Tuple[int, ...]]
    ) -> Raster:
        logger.info(
            f"Start rendering {image.width}x{image.height}, {samples_per_pixel} spp, "
            f"{sampler!r}, {pixel_filter!r}"
        )

        def _log_time(name: str, elapsed: float) -> None:
            logger.info(f"Render wall time: {elapsed * 1000:.0f} ms")

        with timer("render", sink=_log_time):
            try:
                result = render_tile(
                    0, image, image, sampler, pixel_filter, render_fn,
                    samples_per_pixel, value_shape
                )
            except Exception as e:
                logger.error(f"Render failed: {e}", exc_info=True)
                raise RenderError(f"Render failed in tile {image}: {e}", tile=image) from e

            raster = merge_tiles(image, [result])

        return raster

    def __repr__(self) -> str:
        return "SimpleRenderer()"
