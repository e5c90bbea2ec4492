"""
Special Functions
=================

Narrow adapter over the special functions the harmonic kernels need:
associated Legendre polynomials, Bessel functions of the first kind and their
zeros, and Clebsch-Gordan coupling coefficients.

Conventions:
------------
    • P_l^m carries the Condon-Shortley phase (scipy's lpmv convention).
    • Negative orders use P_l^{-m} = (-1)^m (l-m)!/(l+m)! P_l^m.
    • Orders with |m| > l evaluate to zero.

References:
-----------
[1] Abramowitz, M. & Stegun, I. A. (1964). Handbook of Mathematical Functions.
[2] Varshalovich, D. A. et al. (1988). Quantum Theory of Angular Momentum.
"""

import functools
import math

import numpy as np

MAX_BESSEL_ORDER = 10
MAX_BESSEL_ZERO = 10


class UnsupportedConfigurationError(ValueError):
    """Raised when a requested (degree, radial index) is outside the Bessel-zero table."""


def factorial_ratio(l: int, m: int) -> float:
    """
    (l+m)! / (l-m)! computed in log space.

    Parameters:
    -----------
    l : int
        Degree, l >= 0.
    m : int
        Order, |m| <= l.

    Returns:
    --------
    float
    """
    from scipy.special import gammaln

    return float(np.exp(gammaln(l + m + 1) - gammaln(l - m + 1)))


def sh_normalization(l: int, m: int) -> float:
    """
    Spherical harmonic normalisation sqrt((2l+1) / (4*pi * (l+m)!/(l-m)!)).

    Returns 0.0 for |m| > l, where no harmonic exists.
    """
    if abs(m) > l:
        return 0.0
    return math.sqrt((2.0 * l + 1.0) / (4.0 * math.pi * factorial_ratio(l, m)))


def legendre(l: int, m: int, x: np.ndarray) -> np.ndarray:
    """
    Associated Legendre polynomial P_l^m(x).

    Parameters:
    -----------
    l : int
        Degree, l >= 0.
    m : int
        Order, any sign.  |m| > l gives zeros.
    x : ndarray
        Evaluation points in [-1, 1].

    Returns:
    --------
    ndarray
        P_l^m(x), same shape as x.
    """
    from scipy.special import lpmv

    x = np.asarray(x, dtype=np.float64)
    if abs(m) > l:
        return np.zeros_like(x)
    if m >= 0:
        return lpmv(m, l, x)
    m_abs = -m
    sign = -1.0 if m_abs % 2 else 1.0
    return sign / factorial_ratio(l, m_abs) * lpmv(m_abs, l, x)


def bessel_j(l: int, x: np.ndarray) -> np.ndarray:
    """Bessel function of the first kind J_l(x)."""
    from scipy.special import jv

    return jv(l, np.asarray(x, dtype=np.float64))


@functools.lru_cache(maxsize=None)
def _bessel_zero_table() -> np.ndarray:
    """
    Zeros of J_l for l in [0, 10] and zero index n in [1, 10].

    Built once; table[n - 1, l] is the n-th positive zero of J_l.
    """
    from scipy.special import jn_zeros

    table = np.stack(
        [jn_zeros(l, MAX_BESSEL_ZERO) for l in range(MAX_BESSEL_ORDER + 1)], axis=1
    )
    table.setflags(write=False)
    return table


def bessel_zero(l: int, n: int) -> float:
    """
    The n-th positive zero of the Bessel function J_l.

    Parameters:
    -----------
    l : int
        Bessel order, 0 <= l <= 10.
    n : int
        Zero index, 1 <= n <= 10.

    Returns:
    --------
    float
        e.g. bessel_zero(0, 1) = 2.4048255576957729.

    Raises:
    -------
    UnsupportedConfigurationError
        If (l, n) lies outside the tabulated range.
    """
    if not (0 <= l <= MAX_BESSEL_ORDER and 1 <= n <= MAX_BESSEL_ZERO):
        raise UnsupportedConfigurationError(
            f"Bessel zero (l={l}, n={n}) not tabulated: "
            f"max implemented band is {MAX_BESSEL_ORDER}, "
            f"zero index must lie in [1, {MAX_BESSEL_ZERO}]."
        )
    return float(_bessel_zero_table()[n - 1, l])


def _coupling_allowed(j1: int, m1: int, j2: int, m2: int, j: int, m: int) -> bool:
    if min(j1, j2, j) < 0:
        return False
    if abs(m1) > j1 or abs(m2) > j2 or abs(m) > j:
        return False
    if m1 + m2 != m:
        return False
    return abs(j1 - j2) <= j <= j1 + j2


@functools.lru_cache(maxsize=4096)
def clebsch_gordan(j1: int, m1: int, j2: int, m2: int, j: int, m: int) -> float | None:
    """
    Clebsch-Gordan coefficient <j1 m1; j2 m2 | j m>.

    Parameters:
    -----------
    j1, m1 : int
        First angular momentum and its projection.
    j2, m2 : int
        Second angular momentum and its projection.
    j, m : int
        Coupled angular momentum and its projection.

    Returns:
    --------
    float or None
        The coefficient, or None when the combination violates the selection
        rules (negative momentum, |m_i| > j_i, m1 + m2 != m, or the triangle
        rule).  Callers substitute a zero contribution for None.
    """
    if not _coupling_allowed(j1, m1, j2, m2, j, m):
        return None
    from sympy.physics.wigner import clebsch_gordan as _sympy_cg

    return float(_sympy_cg(j1, j2, j, m1, m2, m))
