"""
Harmonic Basis Kernels
======================

Discretised basis functions for local harmonic expansions of voxel data.
Every kernel is sampled on a centred, odd-sized KernelGrid and returned as a
JAX array; sampling itself happens on the host with numpy/scipy.

Kernel families:
----------------
    • Scalar surface harmonics:
        K_lm(x) = w(|x|) * N_lm * P_l^m(cos theta) * exp(i*m*phi)
      with a Gaussian shell weight w(d) centred on the shell radius, or
      w = 1 inside the shell when the interior is filled.

    • Radial ("full") harmonics, band-limited in radius:
        K_nlm(x) = J_l(k_nl * r) / sqrt(N_nl) * K_lm^filled(x)
        k_nl = x_nl / R,   N_nl = R^3 / 2 * J_{l+1}(x_nl)^2
      where x_nl is the n-th zero of J_l.  Outside the shell the kernel is
      additionally damped by a fixed-width Gaussian.

    • Vector harmonics (three complex spin components sigma = +1, 0, -1):
        V_lkm[sigma](x) = <l+k m; l sigma-m | 1 sigma> * K_{l, sigma-m}(x)
      Components whose coupling violates the selection rules are zero.

References:
-----------
[1] Varshalovich, D. A. et al. (1988). Quantum Theory of Angular Momentum.
"""

import math

import jax.numpy as jnp
from jaxtyping import Array, Complex, Float
import numpy as np

from .grid import KernelGrid, gaussian_weight
from .special import bessel_j, bessel_zero, clebsch_gordan, legendre, sh_normalization

# Angular part of radial kernels uses a unit shell width.
RADIAL_SHELL_FWHM = 1.0
# Width of the Gaussian tail applied to radial kernels outside the shell.
RADIAL_TAIL_FWHM = 2.0
# Spin projections of the three vector components, in storage order.
SPIN_COMPONENTS = (1, 0, -1)


def _clamp_fwhm(fwhm: float) -> float:
    return 1.0 if fwhm <= 1.0 else float(fwhm)


def _scalar_harmonic(
    radius: float,
    fwhm: float,
    l: int,
    m: int,
    fill_interior: bool,
    spacing: tuple[float, float, float],
) -> np.ndarray:
    fwhm = _clamp_fwhm(fwhm)
    grid = KernelGrid.from_shell(radius, fwhm, spacing)
    dist = grid.distance
    theta, phi = grid.angles

    angular = sh_normalization(l, m) * legendre(l, m, np.cos(theta)) * np.exp(1j * m * phi)
    weight = gaussian_weight(dist - radius, fwhm)
    if fill_interior:
        weight = np.where(dist > radius, weight, 1.0)
    return weight * angular


def _radial_profile(radius: float, n: int, l: int, r: np.ndarray) -> np.ndarray:
    if not radius > 0:
        raise ValueError(f"radial harmonics need a positive radius, got {radius}")
    # n = 0 has no Bessel zero; fall back to k = 1 / radius.
    x_nl = bessel_zero(l, n) if n > 0 else 1.0
    k = x_nl / radius
    norm = radius**3 / 2.0 * bessel_j(l + 1, x_nl) ** 2
    return bessel_j(l, k * r) / math.sqrt(norm)


def _radial_harmonic(
    radius: float,
    n: int,
    l: int,
    m: int,
    spacing: tuple[float, float, float],
) -> np.ndarray:
    grid = KernelGrid.from_shell(radius, RADIAL_SHELL_FWHM, spacing)
    r = grid.distance
    angular = _scalar_harmonic(radius, RADIAL_SHELL_FWHM, l, m, True, spacing)
    psi = _radial_profile(radius, n, l, r) * angular
    tail = gaussian_weight(r - radius, RADIAL_TAIL_FWHM)
    return np.where(r <= radius, psi, tail * psi)


def _couple(l: int, k: int, m: int, scalar_kernel, shape: tuple[int, int, int]) -> np.ndarray:
    """Stack the three spin components of a vector harmonic built from `scalar_kernel(order)`."""
    out = np.zeros(shape + (3,), dtype=np.complex128)
    for i, sigma in enumerate(SPIN_COMPONENTS):
        order = sigma - m
        cg = clebsch_gordan(l + k, m, l, order, 1, sigma)
        if cg is None:
            continue
        out[..., i] = cg * scalar_kernel(order)
    return out


def _vector_harmonic(
    radius: float,
    fwhm: float,
    l: int,
    k: int,
    m: int,
    spacing: tuple[float, float, float],
) -> np.ndarray:
    shape = KernelGrid.from_shell(radius, _clamp_fwhm(fwhm), spacing).shape
    return _couple(
        l, k, m, lambda order: _scalar_harmonic(radius, fwhm, l, order, False, spacing), shape
    )


def _vector_radial_harmonic(
    radius: float,
    n: int,
    l: int,
    k: int,
    m: int,
    spacing: tuple[float, float, float],
) -> np.ndarray:
    shape = KernelGrid.from_shell(radius, RADIAL_SHELL_FWHM, spacing).shape
    return _couple(
        l, k, m, lambda order: _radial_harmonic(radius, n, l, order, spacing), shape
    )


# ============================================================================
# Public kernel builders
# ============================================================================


def build_scalar_harmonic(
    radius: float,
    fwhm: float,
    l: int,
    m: int,
    fill_interior: bool = False,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> Complex[Array, "Kz Ky Kx"]:
    """
    Discretised scalar spherical harmonic on a Gaussian shell.

    Parameters:
    -----------
    radius : float
        Shell radius in physical units.
    fwhm : float
        Shell smoothing width; values <= 1 are clamped to 1.
    l : int
        Degree, l >= 0.
    m : int
        Order, m in [-l, l].
    fill_interior : bool
        If True, voxels inside the shell get weight 1 instead of the
        Gaussian shell weight.
    spacing : tuple of float
        Voxel spacing (sz, sy, sx).

    Returns:
    --------
    kernel : Complex[Array, "Kz Ky Kx"]
        Kernel centred on its middle voxel, half extent
        ceil(radius / s + 3 * fwhm) per axis.
    """
    return jnp.asarray(_scalar_harmonic(radius, fwhm, l, m, fill_interior, spacing))


def build_radial_harmonic(
    radius: float,
    n: int,
    l: int,
    m: int,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> Complex[Array, "Kz Ky Kx"]:
    """
    Discretised radial ("full") harmonic with a Bessel radial profile.

    Parameters:
    -----------
    radius : float
        Shell radius in physical units (> 0).
    n : int
        Radial index, the Bessel zero used for the wavenumber (1..10).
        n = 0 selects the degenerate mode k = 1 / radius.
    l : int
        Degree (0..10).
    m : int
        Order, m in [-l, l].
    spacing : tuple of float
        Voxel spacing (sz, sy, sx).

    Returns:
    --------
    kernel : Complex[Array, "Kz Ky Kx"]
        Kernel with half extent ceil(radius / s + 3) per axis.

    Raises:
    -------
    UnsupportedConfigurationError
        If l or n exceed the tabulated Bessel zeros.
    """
    return jnp.asarray(_radial_harmonic(radius, n, l, m, spacing))


def build_vector_harmonic(
    radius: float,
    fwhm: float,
    l: int,
    k: int,
    m: int,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> Complex[Array, "Kz Ky Kx 3"]:
    """
    Discretised vector spherical harmonic of total momentum l + k.

    Component sigma (stored at index 0, 1, 2 for sigma = +1, 0, -1) couples the
    surface harmonic of order sigma - m through <l+k m; l sigma-m | 1 sigma>.

    Parameters:
    -----------
    radius, fwhm : float
        Shell radius and smoothing width, as for build_scalar_harmonic.
    l : int
        Degree of the coupled scalar harmonics.
    k : int
        Vector type in {-1, 0, 1}.
    m : int
        Projection.
    spacing : tuple of float
        Voxel spacing (sz, sy, sx).

    Returns:
    --------
    kernel : Complex[Array, "Kz Ky Kx 3"]
    """
    return jnp.asarray(_vector_harmonic(radius, fwhm, l, k, m, spacing))


def build_vector_radial_harmonic(
    radius: float,
    n: int,
    l: int,
    k: int,
    m: int,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> Complex[Array, "Kz Ky Kx 3"]:
    """Vector harmonic coupled from radial harmonics; see build_vector_harmonic."""
    return jnp.asarray(_vector_radial_harmonic(radius, n, l, k, m, spacing))


# ============================================================================
# Shell masks
# ============================================================================


def binary_sphere(
    radius: float,
    fwhm: float,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> Float[Array, "Kz Ky Kx"]:
    """
    Binary shell: 1 where |dist - radius| < sx / 2, 0 elsewhere.

    The lattice is the one of a shell with smoothing `fwhm` (not clamped).
    """
    grid = KernelGrid.from_shell(radius, fwhm, spacing)
    mask = np.abs(grid.distance - radius) < grid.spacing[2] / 2.0
    return jnp.asarray(mask.astype(np.float64))


def sphere_surface_gauss(
    radius: float,
    fwhm: float,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> Float[Array, "Kz Ky Kx"]:
    """Gaussian shell gaussian_weight(dist - radius, fwhm), normalised to unit sum."""
    grid = KernelGrid.from_shell(radius, fwhm, spacing)
    shell = gaussian_weight(grid.distance - radius, fwhm)
    return jnp.asarray(shell / shell.sum())
