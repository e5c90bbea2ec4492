"""
Basis Caches
============

Precomputed kernels for every index of a basis family up to a maximum band.

A cache is an arena: the kernels are stacked along a leading axis in the
canonical order of the family's IndexScheme, and a key (l, m), (n, l, m),
(l, k, m) or (n, l, k, m) is resolved to its slot by IndexScheme.offset.
All kernels of one cache share the same lattice, which lets the dense
projection hand the whole stack to a single batched convolution.
"""

from typing import Iterator

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Complex
from loguru import logger
import numpy as np

from .basis import (
    _radial_harmonic,
    _scalar_harmonic,
    _vector_harmonic,
    _vector_radial_harmonic,
)
from .config import ExpansionConfig
from .indexing import Family, IndexScheme
from .special import MAX_BESSEL_ORDER, MAX_BESSEL_ZERO, UnsupportedConfigurationError


class BasisCache(eqx.Module):
    """
    Kernels of one basis family, one per index of its scheme.

    Attributes:
    -----------
    scheme : IndexScheme
        Index layout (family, band, real-data flag).
    config : ExpansionConfig
        Parameters the kernels were built from.
    kernels : Complex[Array, "N Kz Ky Kx"] or Complex[Array, "N Kz Ky Kx 3"]
        Kernel stack in canonical index order.
    """

    scheme: IndexScheme
    config: ExpansionConfig
    kernels: Complex[Array, "N Kz Ky Kx ..."]

    def __getitem__(self, key: tuple[int, ...]) -> Array:
        return self.kernels[self.scheme.offset(tuple(key))]

    def offset(self, key: tuple[int, ...]) -> int:
        """Slot of `key` in the kernel stack."""
        return self.scheme.offset(tuple(key))

    def __iter__(self) -> Iterator[tuple[int, ...]]:
        return iter(self.scheme)

    def __len__(self) -> int:
        return self.kernels.shape[0]

    @property
    def family(self) -> Family:
        return self.scheme.family

    @property
    def is_vector(self) -> bool:
        return self.scheme.is_vector

    @property
    def kernel_shape(self) -> tuple[int, int, int]:
        """Spatial shape (Kz, Ky, Kx) shared by every kernel."""
        return tuple(self.kernels.shape[1:4])


def _fill(scheme: IndexScheme, config: ExpansionConfig, make_kernel) -> BasisCache:
    logger.debug(
        f"Building {scheme.family} cache: band={scheme.band}, "
        f"{len(scheme)} kernels, radius={config.radius}, spacing={config.spacing}"
    )
    kernels = np.stack([make_kernel(*key) for key in scheme])
    logger.debug(f"{scheme.family} cache ready, kernel shape {kernels.shape[1:4]}")
    return BasisCache(scheme=scheme, config=config, kernels=jnp.asarray(kernels))


def _check_radial_band(band: int) -> None:
    if band < 1:
        raise ValueError(f"radial caches need band >= 1 (n starts at 1), got {band}")
    if band > min(MAX_BESSEL_ORDER, MAX_BESSEL_ZERO):
        raise UnsupportedConfigurationError(
            f"band={band} exceeds the tabulated Bessel zeros "
            f"(max implemented band is {MAX_BESSEL_ORDER})"
        )


def build_scalar_cache(
    radius: float,
    fwhm: float,
    band: int,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> BasisCache:
    """
    Scalar surface harmonics for l in [0, band], m in [-l, l].

    Parameters:
    -----------
    radius : float
        Shell radius in physical units.
    fwhm : float
        Shell smoothing width (clamped to >= 1).
    band : int
        Maximum degree.
    spacing : tuple of float
        Voxel spacing (sz, sy, sx).

    Returns:
    --------
    BasisCache
    """
    config = ExpansionConfig(radius=radius, band=band, fwhm=fwhm, spacing=tuple(spacing))
    config.check_consistency()
    scheme = IndexScheme("scalar", band)
    return _fill(
        scheme,
        config,
        lambda l, m: _scalar_harmonic(radius, fwhm, l, m, False, config.spacing),
    )


def build_radial_cache(
    radius: float,
    band: int,
    real_data: bool = False,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> BasisCache:
    """
    Radial harmonics for n in [1, band], l in [0, band].

    With `real_data` only m in [0, l] is stored; the m < 0 partners of a real
    input are the conjugates of the stored coefficients and are restored at
    reconstruction.

    Raises:
    -------
    UnsupportedConfigurationError
        If band exceeds the tabulated Bessel zeros (10).
    """
    config = ExpansionConfig(
        radius=radius, band=band, spacing=tuple(spacing), real_data=real_data
    )
    config.check_consistency()
    _check_radial_band(band)
    scheme = IndexScheme("radial", band, real_data)
    return _fill(
        scheme,
        config,
        lambda n, l, m: _radial_harmonic(radius, n, l, m, config.spacing),
    )


def build_vector_cache(
    radius: float,
    fwhm: float,
    band: int,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> BasisCache:
    """Vector harmonics for l in [0, band], k in {-1, 0, 1}, m in [-l, l]."""
    config = ExpansionConfig(radius=radius, band=band, fwhm=fwhm, spacing=tuple(spacing))
    config.check_consistency()
    scheme = IndexScheme("vector", band)
    return _fill(
        scheme,
        config,
        lambda l, k, m: _vector_harmonic(radius, fwhm, l, k, m, config.spacing),
    )


def build_vector_radial_cache(
    radius: float,
    band: int,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> BasisCache:
    """Vector radial harmonics for n in [1, band], then as build_vector_cache."""
    config = ExpansionConfig(radius=radius, band=band, spacing=tuple(spacing))
    config.check_consistency()
    _check_radial_band(band)
    scheme = IndexScheme("vector_radial", band)
    return _fill(
        scheme,
        config,
        lambda n, l, k, m: _vector_radial_harmonic(radius, n, l, k, m, config.spacing),
    )


def build_cache(config: ExpansionConfig, family: Family) -> BasisCache:
    """Build the cache of `family` described by `config`."""
    if family == "scalar":
        return build_scalar_cache(config.radius, config.fwhm, config.band, config.spacing)
    if family == "radial":
        return build_radial_cache(
            config.radius, config.band, config.real_data, config.spacing
        )
    if family == "vector":
        return build_vector_cache(config.radius, config.fwhm, config.band, config.spacing)
    if family == "vector_radial":
        return build_vector_radial_cache(config.radius, config.band, config.spacing)
    raise ValueError(f"Unknown family {family!r}")
