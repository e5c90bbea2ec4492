"""
Tests for the scalar, radial and vector harmonic kernels.
"""

import math

import jax.numpy as jnp
import numpy as np
import pytest

from spharmx._src.basis import (
    binary_sphere,
    build_radial_harmonic,
    build_scalar_harmonic,
    build_vector_harmonic,
    build_vector_radial_harmonic,
    sphere_surface_gauss,
)
from spharmx._src.grid import KernelGrid, gaussian_weight
from spharmx._src.special import UnsupportedConfigurationError, bessel_j, bessel_zero

# ---------------------------------------------------------------------------
# Scalar harmonics
# ---------------------------------------------------------------------------


def test_scalar_kernel_shape_is_odd_and_centred():
    K = build_scalar_harmonic(5.0, 2.0, 0, 0)
    assert K.shape == (23, 23, 23)
    assert all(s % 2 == 1 and s >= 11 for s in K.shape)


def test_scalar_kernel_is_gaussian_shell():
    """Y_0^0 kernel = Gaussian(distance - 5) / sqrt(4 pi), peaked on the shell."""
    K = build_scalar_harmonic(5.0, 2.0, 0, 0)
    dist = KernelGrid.from_shell(5.0, 2.0).distance
    expected = gaussian_weight(dist - 5.0, 2.0) / math.sqrt(4 * math.pi)
    assert jnp.allclose(K.real, expected, atol=1e-12)
    assert jnp.allclose(K.imag, 0.0, atol=1e-12)

    peak = np.unravel_index(int(jnp.argmax(jnp.abs(K))), K.shape)
    assert abs(dist[peak] - 5.0) < 0.5
    assert jnp.abs(K[11, 11, 11]) < jnp.abs(K[11, 11, 16])


def test_scalar_kernel_fwhm_clamped():
    K_small = build_scalar_harmonic(4.0, 0.5, 1, 1)
    K_unit = build_scalar_harmonic(4.0, 1.0, 1, 1)
    assert K_small.shape == K_unit.shape
    assert jnp.allclose(K_small, K_unit)


def test_scalar_kernel_radius_zero_is_finite():
    K = build_scalar_harmonic(0.0, 1.0, 2, 1)
    assert jnp.all(jnp.isfinite(K.real))
    assert jnp.all(jnp.isfinite(K.imag))


def test_scalar_kernel_fill_interior():
    K = build_scalar_harmonic(4.0, 1.0, 0, 0, fill_interior=True)
    dist = KernelGrid.from_shell(4.0, 1.0).distance
    inside = dist <= 4.0
    assert jnp.allclose(K.real[inside], 1.0 / math.sqrt(4 * math.pi))


def test_scalar_kernel_negative_order_is_conjugate():
    """Y_l^{-m} = (-1)^m conj(Y_l^m)."""
    for l, m in [(1, 1), (2, 1), (3, 2)]:
        K_pos = build_scalar_harmonic(4.0, 1.5, l, m)
        K_neg = build_scalar_harmonic(4.0, 1.5, l, -m)
        assert jnp.allclose(K_neg, (-1) ** m * jnp.conj(K_pos), atol=1e-12)


def test_scalar_kernels_approximately_orthogonal():
    """Normalised Gram matrix of a band-2 basis is close to the identity."""
    keys = [(l, m) for l in range(3) for m in range(-l, l + 1)]
    K = jnp.stack([build_scalar_harmonic(5.0, 3.0, l, m).ravel() for l, m in keys])
    gram = K @ jnp.conj(K).T
    norms = jnp.sqrt(jnp.real(jnp.diag(gram)))
    corr = jnp.abs(gram) / jnp.outer(norms, norms)
    off_diagonal = corr - jnp.eye(len(keys))
    assert jnp.max(jnp.abs(off_diagonal)) < 1e-2


# ---------------------------------------------------------------------------
# Radial harmonics
# ---------------------------------------------------------------------------


def test_radial_kernel_profile():
    K = build_radial_harmonic(3.0, 1, 0, 0)
    assert K.shape == (13, 13, 13)

    x01 = bessel_zero(0, 1)
    norm = 3.0**3 / 2.0 * float(bessel_j(1, x01)) ** 2
    centre = 1.0 / math.sqrt(norm) / math.sqrt(4 * math.pi)
    assert float(K[6, 6, 6].real) == pytest.approx(centre)
    # first zero of J_0 sits on the shell
    assert abs(K[6, 6, 9]) < 1e-12


def test_radial_kernel_degenerate_mode_is_finite():
    K = build_radial_harmonic(3.0, 0, 1, 0)
    assert jnp.all(jnp.isfinite(K.real))
    assert jnp.all(jnp.isfinite(K.imag))


@pytest.mark.parametrize("n, l", [(1, 11), (11, 1)])
def test_radial_kernel_outside_table(n, l):
    with pytest.raises(UnsupportedConfigurationError):
        build_radial_harmonic(3.0, n, l, 0)


def test_radial_kernel_needs_positive_radius():
    with pytest.raises(ValueError):
        build_radial_harmonic(0.0, 1, 0, 0)


# ---------------------------------------------------------------------------
# Vector harmonics
# ---------------------------------------------------------------------------


def test_vector_kernel_l0_k0_is_zero():
    """No spin component of (l=0, k=0, m=0) satisfies the coupling rules."""
    V = build_vector_harmonic(4.0, 1.0, 0, 0, 0)
    assert V.shape == (15, 15, 15, 3)
    assert jnp.all(V == 0)


def test_vector_kernel_invalid_component_is_zero():
    """(l=1, k=0, m=1): sigma = -1 needs order -2 > l and stays zero."""
    V = build_vector_harmonic(4.0, 1.0, 1, 0, 1)
    assert jnp.all(V[..., 2] == 0)
    assert jnp.any(jnp.abs(V[..., 0]) > 0)
    assert jnp.any(jnp.abs(V[..., 1]) > 0)


def test_vector_kernel_components():
    """(l=1, k=0, m=0) = (-Y_1^1 / sqrt2, 0, Y_1^-1 / sqrt2)."""
    V = build_vector_harmonic(4.0, 1.0, 1, 0, 0)
    s = 1.0 / math.sqrt(2.0)
    assert jnp.allclose(V[..., 0], -s * build_scalar_harmonic(4.0, 1.0, 1, 1))
    assert jnp.allclose(V[..., 1], 0.0, atol=1e-12)
    assert jnp.allclose(V[..., 2], s * build_scalar_harmonic(4.0, 1.0, 1, -1))


def test_vector_kernel_l0_k1_is_scalar_monopole():
    V = build_vector_harmonic(4.0, 1.0, 0, 1, 0)
    assert jnp.allclose(V[..., 1], build_scalar_harmonic(4.0, 1.0, 0, 0))
    assert jnp.all(V[..., 0] == 0)
    assert jnp.all(V[..., 2] == 0)


def test_vector_radial_kernel_uses_radial_profile():
    V = build_vector_radial_harmonic(3.0, 1, 0, 1, 0)
    assert V.shape == (13, 13, 13, 3)
    assert jnp.allclose(V[..., 1], build_radial_harmonic(3.0, 1, 0, 0))
    assert jnp.all(V[..., 0] == 0)


# ---------------------------------------------------------------------------
# Shell masks
# ---------------------------------------------------------------------------


def test_binary_sphere():
    mask = binary_sphere(4.0, 1.0)
    h = mask.shape[0] // 2
    assert set(np.unique(np.asarray(mask))) <= {0.0, 1.0}
    assert mask[h, h, h + 4] == 1.0
    assert mask[h, h, h] == 0.0


def test_sphere_surface_gauss_unit_sum():
    shell = sphere_surface_gauss(4.0, 2.0)
    assert float(jnp.sum(shell)) == pytest.approx(1.0)
    assert jnp.all(shell > 0)
