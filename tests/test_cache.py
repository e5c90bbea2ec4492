"""
Tests for the basis cache builders.
"""

import jax.numpy as jnp
import pytest

from spharmx._src.basis import (
    build_radial_harmonic,
    build_scalar_harmonic,
    build_vector_harmonic,
)
from spharmx._src.cache import (
    build_cache,
    build_radial_cache,
    build_scalar_cache,
    build_vector_cache,
    build_vector_radial_cache,
)
from spharmx._src.config import ExpansionConfig
from spharmx._src.special import UnsupportedConfigurationError

# --- Fixtures ---


@pytest.fixture(scope="module")
def scalar_cache():
    return build_scalar_cache(3.0, 1.0, 2)


# --- Scalar caches ---


def test_scalar_cache_layout(scalar_cache):
    assert len(scalar_cache) == 9
    assert scalar_cache.kernel_shape == (13, 13, 13)
    assert scalar_cache.kernels.shape == (9, 13, 13, 13)
    assert scalar_cache.family == "scalar"
    assert not scalar_cache.is_vector


def test_scalar_cache_entries_match_builder(scalar_cache):
    for l, m in [(0, 0), (1, -1), (2, 2)]:
        assert jnp.allclose(scalar_cache[(l, m)], build_scalar_harmonic(3.0, 1.0, l, m))


def test_scalar_cache_keys_follow_scheme(scalar_cache):
    keys = list(scalar_cache)
    assert keys == list(scalar_cache.scheme.indices())
    assert [scalar_cache.offset(k) for k in keys] == list(range(9))


def test_scalar_cache_missing_key(scalar_cache):
    with pytest.raises(KeyError):
        scalar_cache[(3, 0)]


def test_scalar_cache_invalid_config():
    with pytest.raises(ValueError):
        build_scalar_cache(-1.0, 1.0, 2)
    with pytest.raises(ValueError):
        build_scalar_cache(3.0, 1.0, -1)


# --- Radial caches ---


def test_radial_cache_real_data():
    cache = build_radial_cache(3.0, 2, real_data=True)
    assert len(cache) == 2 * (1 + 2 + 3)
    assert cache.scheme.real_data
    assert jnp.allclose(cache[(2, 1, 1)], build_radial_harmonic(3.0, 2, 1, 1))


def test_radial_cache_band_limits():
    with pytest.raises(ValueError):
        build_radial_cache(3.0, 0)
    with pytest.raises(UnsupportedConfigurationError):
        build_radial_cache(3.0, 11)


# --- Vector caches ---


def test_vector_cache_layout():
    cache = build_vector_cache(3.0, 1.0, 1)
    assert len(cache) == 12
    assert cache.is_vector
    assert cache.kernels.shape == (12, 13, 13, 13, 3)
    assert jnp.allclose(cache[(1, 0, 0)], build_vector_harmonic(3.0, 1.0, 1, 0, 0))
    assert jnp.all(cache[(0, 0, 0)] == 0)


def test_vector_radial_cache_layout():
    cache = build_vector_radial_cache(2.0, 1)
    assert len(cache) == 12
    assert cache.kernels.shape[-1] == 3
    assert cache.family == "vector_radial"


# --- Dispatch ---


@pytest.mark.parametrize("family", ["scalar", "radial", "vector", "vector_radial"])
def test_build_cache_dispatch(family):
    config = ExpansionConfig(radius=2.0, band=1)
    cache = build_cache(config, family)
    assert cache.family == family
    assert (cache.config.radius, cache.config.band) == (2.0, 1)
    assert len(cache) == len(cache.scheme)


def test_build_cache_unknown_family():
    with pytest.raises(ValueError):
        build_cache(ExpansionConfig(radius=2.0, band=1), "tensor")
