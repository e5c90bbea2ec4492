"""
Batched FFT Convolution
=======================

One field convolved with a stack of kernels in a single batched FFT.

    out[i] = field * kernel[i]       (linear convolution, zero padded)

The full convolution of size F + K - 1 per axis is cropped back to the
field's shape with every kernel centred on its middle voxel ("same" mode).
"""

from typing import Iterable

import jax
import jax.numpy as jnp
from jaxtyping import Array, Complex
import numpy as np

SPATIAL_AXES = (-3, -2, -1)


def _as_stack(kernels) -> Array:
    if isinstance(kernels, (jax.Array, np.ndarray)):
        return jnp.asarray(kernels)
    return jnp.stack([jnp.asarray(k) for k in kernels])


def convolve_many(
    field: Array,
    kernels: Array | Iterable[Array],
    normalize: bool = False,
) -> Complex[Array, "N Nz Ny Nx"]:
    """
    Convolve one field with many kernels of a common shape.

    Parameters:
    -----------
    field : Array [Nz, Ny, Nx] or [Nz, Ny, Nx, C]
        Input volume, optionally with a trailing component axis.
    kernels : Array [N, Kz, Ky, Kx] or [N, Kz, Ky, Kx, C], or an iterable of kernels
        Kernel stack.  With a component axis, component c of every kernel is
        convolved with component c of the field and the results are summed.
    normalize : bool
        If True, each kernel is divided by its L1 norm (sum of magnitudes)
        first.  All-zero kernels are left untouched.

    Returns:
    --------
    out : Complex[Array, "N Nz Ny Nx"]
        One convolution per kernel, in kernel order.

    The stack stands in for a begin/end cursor pair over a nested kernel
    structure: output i belongs to kernel i, so a stack laid out in an
    IndexScheme's order yields coefficient volumes in that same order.
    """
    field = jnp.asarray(field)
    kernels = _as_stack(kernels)

    if field.ndim not in (3, 4):
        raise ValueError(f"field must be 3D or 3D with components, got shape {field.shape}")
    if kernels.ndim != field.ndim + 1:
        raise ValueError(
            f"kernel stack of shape {kernels.shape} does not match field of shape {field.shape}"
        )
    if field.ndim == 4 and kernels.shape[-1] != field.shape[-1]:
        raise ValueError(
            f"component axis mismatch: field has {field.shape[-1]}, "
            f"kernels have {kernels.shape[-1]}"
        )

    if normalize:
        l1 = jnp.sum(jnp.abs(kernels), axis=tuple(range(1, kernels.ndim)), keepdims=True)
        kernels = kernels / jnp.where(l1 == 0, 1.0, l1)

    # Bring components next to the batch axis: field (C, Nz, Ny, Nx), kernels (N, C, Kz, Ky, Kx).
    if field.ndim == 4:
        field = jnp.moveaxis(field, -1, 0)
        kernels = jnp.moveaxis(kernels, -1, 1)
    else:
        field = field[None]
        kernels = kernels[:, None]

    f_shape = field.shape[-3:]
    k_shape = kernels.shape[-3:]
    full = tuple(f + k - 1 for f, k in zip(f_shape, k_shape))

    field_hat = jnp.fft.fftn(field, s=full, axes=SPATIAL_AXES)
    kernels_hat = jnp.fft.fftn(kernels, s=full, axes=SPATIAL_AXES)
    out = jnp.fft.ifftn(kernels_hat * field_hat[None], axes=SPATIAL_AXES).sum(axis=1)

    sz, sy, sx = ((k - 1) // 2 for k in k_shape)
    nz, ny, nx = f_shape
    return out[:, sz : sz + nz, sy : sy + ny, sx : sx + nx]
