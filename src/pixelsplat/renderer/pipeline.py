"""High-level entry points: build components and render in one call.

Usage:
    from pixelsplat.renderer import pipeline

    raster = pipeline.render(64, 64, StratifiedSampler(seed=7), GaussianFilter(), fn, 16)
    image = raster.finalize()

    settings = validators.load_render_config("render.yaml")
    raster = pipeline.render_from_config(settings, fn)
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from ..utils import hashing, validators
from ..utils.logging_config import setup_logging
from .filters import Filter
from .multithreaded import MultiThreadedRenderer
from .raster import Raster
from .registry import build
from .render_function import RenderFunction
from .sampler import Sampler
from .simple import SimpleRenderer

logger = logging.getLogger(__name__)


def build_filter(cfg: validators.FilterConfig) -> Filter:
    """Construct the filter named by a FilterConfig.

    Raises
    ------
    ValueError
        If the kernel rejects the parameters (e.g. radius <= 0)
    """
    return build("filter", cfg.kind, **cfg.kwargs())


def build_sampler(cfg: validators.SamplerConfig) -> Sampler:
    """Construct the sampler named by a SamplerConfig."""
    return build("sampler", cfg.kind, **cfg.kwargs())


def build_renderer(settings: validators.RenderSettingsV1):
    """Renderer selected by the settings, SimpleRenderer or MultiThreadedRenderer."""
    if settings.renderer == "simple":
        return SimpleRenderer()
    return MultiThreadedRenderer(
        workers=settings.workers,
        tile_size=settings.tile_size,
        tiles_per_worker=settings.tiles_per_worker,
    )


def render(
    width: int,
    height: int,
    sampler: Sampler,
    pixel_filter: Filter,
    render_fn: RenderFunction,
    samples_per_pixel: int,
    workers: Optional[int] = None,
    tile_size: Optional[int] = MultiThreadedRenderer.DEFAULT_TILE_SIZE,
    value_shape: Optional[Sequence[int]] = None
) -> Raster:
    """Render with a MultiThreadedRenderer.

    Parameters
    ----------
    width, height : int
        Raster dimensions (> 0)
    sampler : Sampler
        Sample placement
    pixel_filter : Filter
        Reconstruction kernel
    render_fn : RenderFunction
        Object with evaluate(x, y) or a callable
    samples_per_pixel : int
        Samples per pixel (> 0)
    workers : int, optional
        Worker threads; defaults to os.cpu_count()
    tile_size : int, optional
        Tile edge in pixels (default 32)
    value_shape : sequence of int, optional
        Expected value shape

    Returns
    -------
    Raster
        Accumulated raster

    Raises
    ------
    ValueError
        On invalid arguments
    RenderError
        If the render function fails
    """
    renderer = MultiThreadedRenderer(workers=workers, tile_size=tile_size)
    return renderer.render(
        width, height, sampler, pixel_filter, render_fn, samples_per_pixel, value_shape
    )


def render_from_config(
    settings: Union[validators.RenderSettingsV1, str, Path],
    render_fn: RenderFunction,
    configure_logging: bool = False
) -> Raster:
    """Build sampler, filter and renderer from validated settings and render.

    Parameters
    ----------
    settings : RenderSettingsV1 or path
        Validated settings, or a render.v1 YAML path to load
    render_fn : RenderFunction
        Object with evaluate(x, y) or a callable
    configure_logging : bool
        Apply the settings' logging section via setup_logging first, default
        False (leave the host application's logging alone)

    Returns
    -------
    Raster
        Accumulated raster
    """
    if not isinstance(settings, validators.RenderSettingsV1):
        settings = validators.load_render_config(settings)

    if configure_logging:
        log_cfg = settings.logging
        setup_logging(
            log_cfg.level, log_cfg.file, json=log_cfg.json_format, color=log_cfg.color
        )

    logger.debug(f"Render settings: {validators.flatten_config(settings)}")

    renderer = build_renderer(settings)
    raster = renderer.render(
        settings.width,
        settings.height,
        build_sampler(settings.sampler),
        build_filter(settings.filter),
        render_fn,
        settings.samples_per_pixel,
        settings.value_shape,
    )
    logger.debug(f"Raster digest: {hashing.raster_digest(raster)[:16]}")
    return raster
