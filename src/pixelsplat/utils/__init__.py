"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - YAML and directory helpers (fs)
    - Seed derivation and raster provenance (hashing)
    - Wall-clock timing (profiler)
    - Unified logging (logging_config)

No module in utils/ may import from pixelsplat.renderer.

Convenience imports:
    from pixelsplat.utils import fs, hashing, validators
    from pixelsplat.utils.logging_config import setup_logging, get_logger
"""

from . import fs
from . import hashing
from . import logging_config
from . import profiler
from . import validators

__all__ = [
    'fs',
    'hashing',
    'logging_config',
    'profiler',
    'validators',
]
