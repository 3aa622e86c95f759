"""pixelsplat: tile-parallel image sampling and filtered reconstruction.

Evaluates a client render function at stratified sample positions, weighs
every sample into the surrounding pixels through a reconstruction filter, and
accumulates weighted sums into a Raster that normalizes on finalize().

Architecture layers (strict one-way dependency):
    pixelsplat/renderer/ → pixelsplat/utils/

Key invariants:
    - Image plane in pixels; pixel (x, y) covers [x, x+1) × [y, y+1)
    - A pixel's samples depend only on (seed, pixel, samples_per_pixel)
    - Tile rasters merge in tile order, so renders are bit-identical across
      runs and, for a fixed tile size, across worker counts
    - Contributions outside the image are discarded
"""

__version__ = "0.1.0"

from .renderer import (
    BoxFilter,
    GaussianFilter,
    IndependentSampler,
    LanczosSincFilter,
    MitchellFilter,
    MultiThreadedRenderer,
    Raster,
    Rectangle,
    RenderError,
    SimpleRenderer,
    StratifiedSampler,
    TriangleFilter,
    render,
    render_from_config,
)
