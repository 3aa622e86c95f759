"""Test render config schema validation and config-driven rendering.

Tests for pixelsplat.utils.validators and pixelsplat.renderer.pipeline:
    - Load a valid render.v1 YAML with defaults filled in
    - Reject invalid configs with the file path in the message
    - Reject shape parameters that don't belong to the selected filter
    - Build filters/samplers/renderers from config sections
    - Render end-to-end from a YAML path

Run:
    pytest tests/test_schemas.py -v
"""

import numpy as np
import pytest
import yaml

from pixelsplat.renderer import pipeline
from pixelsplat.renderer.filters import GaussianFilter, LanczosSincFilter, MitchellFilter
from pixelsplat.renderer.multithreaded import MultiThreadedRenderer
from pixelsplat.renderer.sampler import IndependentSampler, StratifiedSampler
from pixelsplat.renderer.simple import SimpleRenderer
from pixelsplat.utils import validators


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def render_cfg():
    return {
        'schema': 'render.v1',
        'width': 12,
        'height': 8,
        'samples_per_pixel': 4,
        'workers': 2,
        'tile_size': 4,
        'filter': {'kind': 'mitchell', 'radius_x': 1.5, 'radius_y': 1.5, 'b': 0.5, 'c': 0.25},
        'sampler': {'kind': 'stratified', 'seed': 11},
        'logging': {'level': 'debug', 'json': True},
    }


@pytest.fixture
def write_yaml(tmp_path):
    def _write(data, name="render.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data))
        return path
    return _write


# ============================================================================
# LOADING
# ============================================================================

def test_load_valid_render_config(write_yaml, render_cfg):
    settings = validators.load_render_config(write_yaml(render_cfg))

    assert settings.schema_version == "render.v1"
    assert (settings.width, settings.height) == (12, 8)
    assert settings.filter.kind == "mitchell"
    assert settings.filter.b == 0.5
    assert settings.sampler.seed == 11
    assert settings.sampler.jitter is True
    assert settings.logging.level == "DEBUG"
    assert settings.logging.json_format is True


def test_defaults_filled_in():
    settings = validators.RenderSettingsV1(width=4, height=4, samples_per_pixel=1)
    assert settings.renderer == "multithreaded"
    assert settings.workers is None
    assert settings.tile_size == 32
    assert settings.tiles_per_worker == 24
    assert settings.value_shape is None
    assert settings.filter.kind == "gaussian"
    assert settings.sampler.kind == "stratified"
    assert settings.logging.level == "INFO"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Render config not found"):
        validators.load_render_config(tmp_path / "missing.yaml")


@pytest.mark.parametrize("patch", [
    {'width': 0},
    {'samples_per_pixel': -4},
    {'workers': 0},
    {'tile_size': 0},
    {'schema': 'render.v2'},
    {'value_shape': [3, 0]},
    {'filter': {'kind': 'sinc'}},
    {'filter': {'kind': 'gaussian', 'radius_x': 0.0}},
    {'filter': {'kind': 'gaussian', 'alpha': -1.0}},
    {'sampler': {'kind': 'halton'}},
    {'logging': {'level': 'LOUD'}},
    {'unknown_key': 1},
])
def test_invalid_config_rejected(write_yaml, render_cfg, patch):
    path = write_yaml({**render_cfg, **patch})
    with pytest.raises(ValueError, match="validation failed at .*render.yaml"):
        validators.load_render_config(path)


def test_missing_required_field(write_yaml, render_cfg):
    del render_cfg['width']
    with pytest.raises(ValueError, match="width"):
        validators.load_render_config(write_yaml(render_cfg))


@pytest.mark.parametrize("section", [
    {'kind': 'box', 'alpha': 2.0},
    {'kind': 'gaussian', 'tau': 3.0},
    {'kind': 'lanczos_sinc', 'b': 0.3},
])
def test_filter_rejects_foreign_parameters(section):
    with pytest.raises(ValueError, match="not valid for filter"):
        validators.FilterConfig(**section)


def test_non_mapping_yaml_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        validators.load_render_config(path)


def test_flatten_config(render_cfg):
    flat = validators.flatten_config(validators.RenderSettingsV1(**render_cfg))
    assert flat['filter.kind'] == 'mitchell'
    assert flat['sampler.seed'] == 11
    assert flat['width'] == 12


# ============================================================================
# BUILDING COMPONENTS
# ============================================================================

def test_build_filter():
    f = pipeline.build_filter(validators.FilterConfig(kind='mitchell', b=0.5, c=0.25))
    assert f == MitchellFilter(2.0, 2.0, 0.5, 0.25)

    f = pipeline.build_filter(validators.FilterConfig(kind='lanczos_sinc'))
    assert f == LanczosSincFilter.with_defaults()

    f = pipeline.build_filter(validators.FilterConfig(radius_x=1.0))
    assert f == GaussianFilter(1.0, 2.0, 2.0)


def test_build_sampler():
    s = pipeline.build_sampler(validators.SamplerConfig(seed=5, jitter=False))
    assert isinstance(s, StratifiedSampler)
    assert (s.seed, s.jitter) == (5, False)

    s = pipeline.build_sampler(validators.SamplerConfig(kind='independent', seed=9))
    assert isinstance(s, IndependentSampler)
    assert s.seed == 9


def test_build_renderer(render_cfg):
    settings = validators.RenderSettingsV1(**render_cfg)
    renderer = pipeline.build_renderer(settings)
    assert isinstance(renderer, MultiThreadedRenderer)
    assert (renderer.workers, renderer.tile_size) == (2, 4)

    settings = validators.RenderSettingsV1(**{**render_cfg, 'renderer': 'simple'})
    assert isinstance(pipeline.build_renderer(settings), SimpleRenderer)


# ============================================================================
# RENDER FROM CONFIG
# ============================================================================

def test_render_from_config_path(write_yaml, render_cfg):
    raster = pipeline.render_from_config(write_yaml(render_cfg), lambda x, y: 0.4)
    out = raster.finalize()
    assert out.shape == (8, 12)
    np.testing.assert_allclose(out, 0.4, rtol=1e-9)


def test_render_from_config_rgb(render_cfg):
    settings = validators.RenderSettingsV1(**{**render_cfg, 'value_shape': [3]})
    raster = pipeline.render_from_config(settings, lambda x, y: (0.1, 0.2, 0.3))
    np.testing.assert_allclose(raster.finalize()[3, 5], [0.1, 0.2, 0.3], rtol=1e-9)


def test_render_from_config_reproducible(render_cfg):
    settings = validators.RenderSettingsV1(**render_cfg)
    fn = lambda x, y: np.sin(x) * np.cos(y)
    a = pipeline.render_from_config(settings, fn)
    b = pipeline.render_from_config(settings, fn)
    np.testing.assert_array_equal(a.weighted_sums(), b.weighted_sums())
