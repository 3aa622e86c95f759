"""Tile-parallel sampling and reconstruction.

Data flow per tile:
    Sampler → sample positions → RenderFunction.evaluate → Filter-weighted
    splat into a tile-private Raster → merged into the image Raster

Public surface:
    - Rectangle: integer pixel regions and tiling
    - StratifiedSampler, IndependentSampler
    - BoxFilter, TriangleFilter, GaussianFilter, MitchellFilter, LanczosSincFilter
    - Raster: weighted-sum accumulation and finalize()
    - SimpleRenderer, MultiThreadedRenderer
    - render(), render_from_config()
"""

from .base import RenderError, Renderer
from .filters import BoxFilter, Filter, GaussianFilter, LanczosSincFilter, MitchellFilter, TriangleFilter
from .multithreaded import MultiThreadedRenderer
from .pipeline import build_filter, build_renderer, build_sampler, render, render_from_config
from .raster import Raster
from .rectangle import Rectangle
from .render_function import CallableRenderFunction, RenderFunction, as_render_function
from .sampler import IndependentSampler, Sampler, StratifiedSampler
from .simple import SimpleRenderer

__all__ = [
    'BoxFilter',
    'CallableRenderFunction',
    'Filter',
    'GaussianFilter',
    'IndependentSampler',
    'LanczosSincFilter',
    'MitchellFilter',
    'MultiThreadedRenderer',
    'Raster',
    'Rectangle',
    'RenderError',
    'RenderFunction',
    'Renderer',
    'Sampler',
    'SimpleRenderer',
    'StratifiedSampler',
    'TriangleFilter',
    'as_render_function',
    'build_filter',
    'build_renderer',
    'build_sampler',
    'render',
    'render_from_config',
]
