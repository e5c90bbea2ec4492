"""
Spin Components of Vector Fields
================================

Conversion between real Cartesian vector fields and the complex spin
components (sigma = +1, 0, -1) the vector harmonics act on.  Components are
stored on a trailing axis of length 3, spin component sigma = +1 first.

    Cartesian -> spin (index 0, 1, 2):
        s[0] = (-a[1] - i a[2]) / sqrt(2)
        s[1] =   a[0]
        s[2] = ( a[1] - i a[2]) / sqrt(2)

    spin -> Cartesian:
        x =  Re v[1]
        y = -sqrt(2) Re v[0]
        z =  sqrt(2) Im v[0]

The inverse map expects the conjugate of the spin field, which is what the
reconstruction Sum_c K * conj(c) yields for a real input.
"""

import math

import jax.numpy as jnp
from jaxtyping import Array, Complex, Float

SQRT2 = math.sqrt(2.0)


def cartesian_to_spin(a: Float[Array, "... 3"]) -> Complex[Array, "... 3"]:
    """Real Cartesian components (..., 3) -> complex spin components (..., 3)."""
    a = jnp.asarray(a)
    if a.shape[-1] != 3:
        raise ValueError(f"vector field needs a trailing axis of length 3, got {a.shape}")
    a0, a1, a2 = a[..., 0], a[..., 1], a[..., 2]
    plus = (-a1 - 1j * a2) / SQRT2
    minus = (a1 - 1j * a2) / SQRT2
    return jnp.stack([plus, a0 + 0j, minus], axis=-1)


def spin_to_cartesian(v: Complex[Array, "... 3"]) -> Float[Array, "... 3"]:
    """Complex spin components (..., 3) -> real Cartesian components (..., 3)."""
    v = jnp.asarray(v)
    if v.shape[-1] != 3:
        raise ValueError(f"vector field needs a trailing axis of length 3, got {v.shape}")
    x = jnp.real(v[..., 1])
    y = -SQRT2 * jnp.real(v[..., 0])
    z = SQRT2 * jnp.imag(v[..., 0])
    return jnp.stack([x, y, z], axis=-1)
