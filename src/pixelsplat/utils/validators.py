"""Render config schema validation and loading.

Provides centralized validation for render configuration using pydantic:
    - Filter section: kernel name, support radii, shape parameters
    - Sampler section: sampler name, base seed, jitter
    - Logging section: level, optional log file, output format
    - Render schema (render.v1.yaml): image size, samples per pixel, workers,
      tiling, expected value shape, plus the sections above

Configs are validated on load for fail-fast error detection with actionable
messages (offending keys, expected ranges, file path).

Units:
    - Image size, radii, tile size: pixels
    - Filter offsets are raw pixel distances (no normalization by radius)

Usage:
    from pixelsplat.utils import validators

    settings = validators.load_render_config("render.yaml")
    settings.filter.kwargs()  # constructor arguments for the filter
"""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Shape parameters each filter kind accepts besides its radii
_FILTER_PARAMS = {
    "box": (),
    "triangle": (),
    "gaussian": ("alpha",),
    "mitchell": ("b", "c"),
    "lanczos_sinc": ("tau",),
}


# ============================================================================
# COMPONENT SECTIONS
# ============================================================================

class FilterConfig(BaseModel):
    """Reconstruction filter selection.

    Radii left unset fall back to the kernel's own defaults (box 0.5,
    triangle/gaussian/mitchell 2, lanczos_sinc 4).
    """
    model_config = ConfigDict(extra="forbid")

    kind: Literal["box", "triangle", "gaussian", "mitchell", "lanczos_sinc"] = Field(
        "gaussian", description="Filter kernel name"
    )
    radius_x: Optional[float] = Field(None, gt=0.0, le=64.0, description="Support half-width (px)")
    radius_y: Optional[float] = Field(None, gt=0.0, le=64.0, description="Support half-height (px)")
    alpha: Optional[float] = Field(None, gt=0.0, description="Gaussian falloff")
    b: Optional[float] = Field(None, description="Mitchell B")
    c: Optional[float] = Field(None, description="Mitchell C")
    tau: Optional[float] = Field(None, gt=0.0, description="Lanczos window lobes")

    @model_validator(mode='after')
    def validate_params_for_kind(self) -> 'FilterConfig':
        """Reject shape parameters the selected kernel doesn't take."""
        allowed = _FILTER_PARAMS[self.kind]
        for name in ("alpha", "b", "c", "tau"):
            if getattr(self, name) is not None and name not in allowed:
                raise ValueError(f"Parameter '{name}' is not valid for filter '{self.kind}'")
        return self

    def kwargs(self) -> Dict[str, float]:
        """Constructor keyword arguments, omitting unset fields."""
        fields = ("radius_x", "radius_y") + _FILTER_PARAMS[self.kind]
        return {name: getattr(self, name) for name in fields if getattr(self, name) is not None}


class SamplerConfig(BaseModel):
    """Sample placement strategy."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["stratified", "independent"] = Field("stratified", description="Sampler name")
    seed: int = Field(0, description="Base seed; per-pixel streams are derived from it")
    jitter: bool = Field(True, description="Jitter inside strata (stratified only)")

    def kwargs(self) -> Dict[str, Any]:
        if self.kind == "stratified":
            return {"seed": self.seed, "jitter": self.jitter}
        return {"seed": self.seed}


class LoggingConfig(BaseModel):
    """Logging setup applied by render_from_config."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    level: str = Field("INFO", description="Root log level")
    file: Optional[str] = Field(None, description="Optional log file path")
    json_format: bool = Field(False, alias="json", description="JSON lines instead of text")
    color: bool = Field(True, description="ANSI colors on console")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{v}'")
        return v


# ============================================================================
# RENDER SCHEMA V1
# ============================================================================

class RenderSettingsV1(BaseModel):
    """Render schema v1 (complete render job minus the render function)."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    schema_version: str = Field("render.v1", alias="schema", description="Schema version")
    width: int = Field(..., ge=1, description="Raster width (px)")
    height: int = Field(..., ge=1, description="Raster height (px)")
    samples_per_pixel: int = Field(..., ge=1, description="Samples per pixel")
    renderer: Literal["multithreaded", "simple"] = Field("multithreaded")
    workers: Optional[int] = Field(None, ge=1, description="Worker threads (default: CPU count)")
    tile_size: Optional[int] = Field(32, ge=1, description="Tile edge (px); null for per-worker tiling")
    tiles_per_worker: int = Field(24, ge=1, description="Tiles per worker when tile_size is null")
    value_shape: Optional[List[int]] = Field(None, description="Expected value shape, e.g. [3] for RGB")
    filter: FilterConfig = Field(default_factory=FilterConfig)
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "render.v1":
            raise ValueError(f"Expected schema 'render.v1', got '{v}'")
        return v

    @field_validator('value_shape')
    @classmethod
    def validate_value_shape(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is not None and any(s <= 0 for s in v):
            raise ValueError(f"value_shape entries must be positive, got {v}")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def load_render_config(path: Union[str, Path]) -> RenderSettingsV1:
    """Load and validate render config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to render.v1.yaml file

    Returns
    -------
    RenderSettingsV1
        Validated render configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Render config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return RenderSettingsV1(**data)
    except Exception as e:
        raise ValueError(f"Render config validation failed at {path}: {e}") from e


def flatten_config(cfg: Union[Dict, BaseModel]) -> Dict[str, Any]:
    """Flatten nested config into dot-separated keys for one-line logging.

    Parameters
    ----------
    cfg : Union[Dict, BaseModel]
        Nested config dict or pydantic model

    Returns
    -------
    Dict[str, Any]
        Flat dict, e.g. {'filter.kind': 'gaussian', 'sampler.seed': 0}
    """
    if isinstance(cfg, BaseModel):
        cfg = cfg.model_dump()

    def _flatten(d: Dict, parent_key: str = '') -> Dict:
        items = []
        for k, v in d.items():
            new_key = f"{parent_key}.{k}" if parent_key else k
            if isinstance(v, dict):
                items.extend(_flatten(v, new_key).items())
            else:
                items.append((new_key, v))
        return dict(items)

    return _flatten(cfg)
