"""Tests for per-pixel sample placement.

Test suites:
1. Stratification (strata counts, one sample per stratum, non-square counts)
2. Placement (samples inside the pixel cell, jitter off → stratum centers)
3. Determinism (seed/pixel keyed streams, tile independence)
4. Validation (negative / non-integer counts, zero count)
5. Registry lookup
"""

import numpy as np
import pytest

from pixelsplat.renderer.rectangle import Rectangle
from pixelsplat.renderer.registry import build, names
from pixelsplat.renderer.sampler import IndependentSampler, StratifiedSampler


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def sampler():
    return StratifiedSampler(seed=1234)


def _strata(samples, pixel, n):
    """Stratum index (row-major) of each sample within its pixel."""
    local = samples - np.asarray(pixel, dtype=np.float64)
    sx = np.floor(local[:, 0] * n).astype(int)
    sy = np.floor(local[:, 1] * n).astype(int)
    return sy * n + sx


# ============================================================================
# TEST SUITE 1: Stratification
# ============================================================================

@pytest.mark.parametrize("count,expected", [
    (0, 0), (1, 1), (2, 2), (4, 2), (5, 3), (9, 3), (10, 4), (16, 4), (17, 5),
])
def test_strata_per_axis(count, expected):
    assert StratifiedSampler.strata_per_axis(count) == expected


@pytest.mark.parametrize("count", [1, 4, 9, 16, 64])
def test_perfect_square_fills_every_stratum(sampler, count):
    n = StratifiedSampler.strata_per_axis(count)
    samples = sampler.generate((3, 5), count)
    strata = _strata(samples, (3, 5), n)
    assert sorted(strata.tolist()) == list(range(count))


@pytest.mark.parametrize("count", [2, 3, 5, 7, 10, 15])
def test_non_square_counts_use_distinct_strata(sampler, count):
    n = StratifiedSampler.strata_per_axis(count)
    samples = sampler.generate((0, 0), count)
    strata = _strata(samples, (0, 0), n)
    assert samples.shape == (count, 2)
    assert len(set(strata.tolist())) == count
    assert strata.max() < n * n


# ============================================================================
# TEST SUITE 2: Placement
# ============================================================================

@pytest.mark.parametrize("sampler_cls", [StratifiedSampler, IndependentSampler])
def test_samples_inside_pixel_cell(sampler_cls):
    s = sampler_cls(seed=7)
    for pixel in [(0, 0), (12, 3), (-4, 9)]:
        samples = s.generate(pixel, 25)
        assert samples.dtype == np.float64
        assert np.all(samples[:, 0] >= pixel[0]) and np.all(samples[:, 0] < pixel[0] + 1)
        assert np.all(samples[:, 1] >= pixel[1]) and np.all(samples[:, 1] < pixel[1] + 1)


def test_no_jitter_places_stratum_centers():
    samples = StratifiedSampler(seed=0, jitter=False).generate((2, 1), 4)
    expected = np.array([
        [2.25, 1.25],
        [2.75, 1.25],
        [2.25, 1.75],
        [2.75, 1.75],
    ])
    np.testing.assert_array_equal(samples, expected)


def test_jitter_moves_samples_off_centers(sampler):
    samples = sampler.generate((0, 0), 16)
    centers = StratifiedSampler(seed=1234, jitter=False).generate((0, 0), 16)
    assert not np.array_equal(samples, centers)


# ============================================================================
# TEST SUITE 3: Determinism
# ============================================================================

def test_same_seed_same_samples():
    a = StratifiedSampler(seed=99).generate((4, 4), 9)
    b = StratifiedSampler(seed=99).generate((4, 4), 9)
    np.testing.assert_array_equal(a, b)


def test_streams_differ_per_pixel_and_seed(sampler):
    base = sampler.generate((1, 2), 9) - np.array([1.0, 2.0])
    other_pixel = sampler.generate((2, 1), 9) - np.array([2.0, 1.0])
    other_seed = StratifiedSampler(seed=4321).generate((1, 2), 9) - np.array([1.0, 2.0])
    assert not np.array_equal(base, other_pixel)
    assert not np.array_equal(base, other_seed)


def test_generate_tile_matches_per_pixel_generation(sampler):
    """A pixel's samples don't depend on which tile produced them."""
    rect = Rectangle(2, 3, 5, 5)
    pixels, samples = sampler.generate_tile(rect, 4)

    assert pixels.shape == (rect.size * 4, 2)
    assert samples.shape == (rect.size * 4, 2)

    for i, (x, y) in enumerate(rect.index_iter()):
        np.testing.assert_array_equal(pixels[i * 4:(i + 1) * 4], [[x, y]] * 4)
        np.testing.assert_array_equal(samples[i * 4:(i + 1) * 4], sampler.generate((x, y), 4))


# ============================================================================
# TEST SUITE 4: Validation
# ============================================================================

def test_zero_count_is_empty(sampler):
    assert sampler.generate((0, 0), 0).shape == (0, 2)
    pixels, samples = sampler.generate_tile(Rectangle.from_size(3, 3), 0)
    assert pixels.shape == (0, 2)
    assert samples.shape == (0, 2)


@pytest.mark.parametrize("count", [-1, 2.5, True, "4"])
def test_invalid_counts_rejected(sampler, count):
    with pytest.raises(ValueError, match="Sample count"):
        sampler.generate((0, 0), count)


def test_numpy_integer_count_accepted(sampler):
    assert sampler.generate((0, 0), np.int64(4)).shape == (4, 2)


# ============================================================================
# TEST SUITE 5: Registry
# ============================================================================

def test_registry_builds_samplers():
    assert names("sampler") == ["independent", "stratified"]

    s = build("sampler", "stratified", seed=5, jitter=False)
    assert isinstance(s, StratifiedSampler)
    assert s.seed == 5 and s.jitter is False

    assert isinstance(build("sampler", "independent", seed=1), IndependentSampler)

    with pytest.raises(ValueError, match="Unknown sampler 'halton'"):
        build("sampler", "halton")
