"""
Local Harmonic Transforms
=========================

Forward projection of voxel fields onto a cached harmonic basis and the
inverse weighted-sum reconstruction.

Mathematical Formulation:
-------------------------
Local projection at probe p (correlation, no kernel flip, no conjugation):
    a_i(p) = sum_w f(p - h + w) * K_i(w),     h = kernel_shape // 2

Dense projection evaluates a_i(p) at every voxel at once:
    a_i = f * flip(K_i)                        (batched FFT convolution)

Reconstruction from local coefficients:
    scalar:  u(x) = sum_i Re(K_i(x) * conj(a_i))
    vector:  v(x) = sum_i K_i(x) * conj(a_i),  then spin -> Cartesian

For real-data radial sets only m >= 0 is stored; every m > 0 term stands for
itself and its conjugate m < 0 partner and is counted twice.

Vector fields are projected in spin components: a real Cartesian field is
converted first, and each coefficient pairs the three kernel components with
the matching spin components of the field.
"""

import math
from typing import Iterator

import equinox as eqx
import jax
import jax.numpy as jnp
from jaxtyping import Array, Complex, Float
from loguru import logger
import numpy as np

from .cache import BasisCache, build_cache
from .config import ExpansionConfig
from .convolution import convolve_many
from .grid import center_of_bbox
from .indexing import Family, IndexScheme
from .vectors import cartesian_to_spin, spin_to_cartesian


class CoefficientSet(eqx.Module):
    """
    Harmonic coefficients, one per index of a scheme.

    Attributes:
    -----------
    scheme : IndexScheme
        Index layout shared with the cache that produced the coefficients.
    config : ExpansionConfig
        Parameters of that cache; used to regenerate kernels on reconstruction.
    values : Complex[Array, "N"] or Complex[Array, "N Nz Ny Nx"]
        Local coefficients, or one coefficient volume per index (dense).
    """

    scheme: IndexScheme
    config: ExpansionConfig
    values: Complex[Array, "N ..."]

    def __getitem__(self, key: tuple[int, ...]) -> Array:
        return self.values[self.scheme.offset(tuple(key))]

    def __iter__(self) -> Iterator[tuple[int, ...]]:
        return iter(self.scheme)

    def __len__(self) -> int:
        return self.values.shape[0]

    @property
    def family(self) -> Family:
        return self.scheme.family

    @property
    def is_dense(self) -> bool:
        """True for coefficient volumes produced by project_volume."""
        return self.values.ndim > 1


# ============================================================================
# Helpers
# ============================================================================


def _prepare_field(field: Array, cache: BasisCache, spin_basis: bool) -> Array:
    field = jnp.asarray(field)
    if cache.is_vector:
        if field.ndim != 4 or field.shape[-1] != 3:
            raise ValueError(
                f"{cache.family} projection needs a (Nz, Ny, Nx, 3) field, got {field.shape}"
            )
        return field if spin_basis else cartesian_to_spin(field)
    if field.ndim != 3:
        raise ValueError(f"{cache.family} projection needs a 3D field, got {field.shape}")
    return field


def _window(field: Array, position, k_shape: tuple[int, int, int]) -> Array:
    """Kernel-sized window whose first voxel is floor(position - k // 2); zeros outside the field."""
    if len(position) != 3:
        raise ValueError(f"position must have 3 entries, got {position}")
    starts = [int(math.floor(p - k // 2)) for p, k in zip(position, k_shape)]
    pads = [
        (max(0, -s), max(0, s + k - n))
        for s, k, n in zip(starts, k_shape, field.shape[:3])
    ]
    padded = jnp.pad(field, pads + [(0, 0)] * (field.ndim - 3))
    sz, sy, sx = (s + before for s, (before, _) in zip(starts, pads))
    kz, ky, kx = k_shape
    return padded[sz : sz + kz, sy : sy + ky, sx : sx + kx]


def _conjugate_weights(scheme: IndexScheme) -> np.ndarray:
    if scheme.family == "radial" and scheme.real_data:
        return np.array([2.0 if key[-1] > 0 else 1.0 for key in scheme])
    return np.ones(len(scheme))


def _check_cache(coeffs: CoefficientSet, cache: BasisCache) -> None:
    a, b = coeffs.scheme, cache.scheme
    if (a.family, a.band, a.real_data) != (b.family, b.band, b.real_data):
        raise ValueError(
            f"coefficient set ({a.family}, band={a.band}, real_data={a.real_data}) "
            f"does not match cache ({b.family}, band={b.band}, real_data={b.real_data})"
        )


# ============================================================================
# Forward projection
# ============================================================================


def project_at(
    field: Array,
    cache: BasisCache,
    position: tuple[float, float, float],
    spin_basis: bool = False,
) -> CoefficientSet:
    """
    Local harmonic expansion of `field` at one probe position.

    Parameters:
    -----------
    field : Array [Nz, Ny, Nx] or [Nz, Ny, Nx, 3]
        Scalar volume, or vector volume for vector caches.
    cache : BasisCache
        Precomputed basis.
    position : tuple of float
        Probe position (z, y, x) in voxel coordinates.
    spin_basis : bool
        Vector caches only: the field already holds complex spin components.

    Returns:
    --------
    CoefficientSet
        One complex coefficient per basis index.
    """
    field = _prepare_field(field, cache, spin_basis)
    window = _window(field, position, cache.kernel_shape)
    if cache.is_vector:
        values = jnp.einsum("nzyxc,zyxc->n", cache.kernels, window)
    else:
        values = jnp.einsum("nzyx,zyx->n", cache.kernels, window)
    return CoefficientSet(scheme=cache.scheme, config=cache.config, values=values)


def project_at_center(
    field: Array, cache: BasisCache, spin_basis: bool = False
) -> CoefficientSet:
    """Local harmonic expansion at the bounding-box centre of `field`."""
    return project_at(field, cache, center_of_bbox(jnp.shape(field)), spin_basis)


def project_volume(
    field: Array,
    cache: BasisCache,
    normalize: bool = False,
    spin_basis: bool = False,
) -> CoefficientSet:
    """
    Local harmonic expansion at every voxel of `field`.

    The value of coefficient i at voxel p equals project_at(field, cache, p)[i].

    The whole kernel arena goes through one batched convolution; the arena
    and the returned volumes share the canonical order of cache.scheme, so
    coefficients[key] addresses the volume of `key` directly.

    Parameters:
    -----------
    field : Array [Nz, Ny, Nx] or [Nz, Ny, Nx, 3]
        Input volume.
    cache : BasisCache
        Precomputed basis.
    normalize : bool
        Divide each kernel by its L1 norm before convolving.
    spin_basis : bool
        Vector caches only: the field already holds complex spin components.

    Returns:
    --------
    CoefficientSet
        Values of shape (N, Nz, Ny, Nx).
    """
    field = _prepare_field(field, cache, spin_basis)
    logger.debug(
        f"Dense {cache.family} projection: {len(cache)} kernels of shape "
        f"{cache.kernel_shape} over a volume of shape {field.shape[:3]}"
    )
    flipped = cache.kernels[:, ::-1, ::-1, ::-1]
    values = convolve_many(field, flipped, normalize=normalize)
    return CoefficientSet(scheme=cache.scheme, config=cache.config, values=values)


def power_spectrum(coeffs: CoefficientSet) -> Float[Array, "..."]:
    """
    Rotation-invariant energy per degree: sum over m of |a|^2.

    Terms are grouped by every index except m, giving shape (B+1,) for
    scalar, (B, B+1) for radial, (B+1, 3) for vector and (B, B+1, 3) for
    vector radial sets, followed by the volume axes of dense sets.  The
    vector axis is ordered k = -1, 0, 1.
    """
    scheme = coeffs.scheme
    b = scheme.band
    group_shape = ((b,) if scheme.is_radial else ()) + (b + 1,) + (
        (3,) if scheme.is_vector else ()
    )
    groups = []
    for key in scheme:
        outer = list(key[:-1])
        if scheme.is_radial:
            outer[0] -= 1
        if scheme.is_vector:
            outer[-1] += 1
        groups.append(outer)
    group_ids = np.ravel_multi_index(tuple(np.array(groups).T), group_shape)

    weights = jnp.asarray(_conjugate_weights(scheme))
    weights = weights.reshape((-1,) + (1,) * (coeffs.values.ndim - 1))
    energy = weights * jnp.abs(coeffs.values) ** 2
    total = jax.ops.segment_sum(
        energy, jnp.asarray(group_ids), num_segments=int(np.prod(group_shape))
    )
    return total.reshape(group_shape + coeffs.values.shape[1:])


# ============================================================================
# Reconstruction
# ============================================================================


def reconstruct(coeffs: CoefficientSet, cache: BasisCache | None = None) -> Array:
    """
    Field described by a local coefficient set.

    Parameters:
    -----------
    coeffs : CoefficientSet
        Local coefficients (as returned by project_at).
    cache : BasisCache, optional
        Basis to reuse.  If omitted, kernels are regenerated from coeffs.config.

    Returns:
    --------
    Float[Array, "Kz Ky Kx"] for scalar and radial sets,
    Float[Array, "Kz Ky Kx 3"] (Cartesian components) for vector sets.
    """
    if coeffs.is_dense:
        raise ValueError("reconstruction needs local coefficients, got a dense coefficient set")
    if cache is None:
        cache = build_cache(coeffs.config, coeffs.family)
    else:
        _check_cache(coeffs, cache)

    weighted = jnp.asarray(_conjugate_weights(coeffs.scheme)) * jnp.conj(coeffs.values)
    if cache.is_vector:
        v = jnp.einsum("nzyxc,n->zyxc", cache.kernels, weighted)
        return spin_to_cartesian(v)
    return jnp.real(jnp.einsum("nzyx,n->zyx", cache.kernels, weighted))


def _reconstruct_family(
    family: Family, coeffs: CoefficientSet, cache: BasisCache | None
) -> Array:
    if coeffs.family != family:
        raise ValueError(f"expected {family} coefficients, got {coeffs.family}")
    return reconstruct(coeffs, cache)


def reconstruct_scalar(
    coeffs: CoefficientSet, cache: BasisCache | None = None
) -> Float[Array, "Kz Ky Kx"]:
    """Scalar field from surface-harmonic coefficients."""
    return _reconstruct_family("scalar", coeffs, cache)


def reconstruct_radial(
    coeffs: CoefficientSet, cache: BasisCache | None = None
) -> Float[Array, "Kz Ky Kx"]:
    """Scalar field from radial-harmonic coefficients (real-data sets restore m < 0)."""
    return _reconstruct_family("radial", coeffs, cache)


def reconstruct_vector(
    coeffs: CoefficientSet, cache: BasisCache | None = None
) -> Float[Array, "Kz Ky Kx 3"]:
    """
    Cartesian vector field from vector-harmonic coefficients.

    Vector schemes keep m in [-l, l], so the harmonics of total momentum
    J = l + 1 with |m| = l + 1 are not in the basis.  Fields made mostly of
    those components (a uniform y- or z-directed shell, for instance) project
    to near-zero coefficients and are not recovered; x-directed and other
    in-basis fields are.
    """
    return _reconstruct_family("vector", coeffs, cache)


def reconstruct_vector_radial(
    coeffs: CoefficientSet, cache: BasisCache | None = None
) -> Float[Array, "Kz Ky Kx 3"]:
    """Cartesian vector field from vector radial-harmonic coefficients."""
    return _reconstruct_family("vector_radial", coeffs, cache)
