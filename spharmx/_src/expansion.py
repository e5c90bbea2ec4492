"""
Harmonic Expansion
==================

Wraps a BasisCache with a to_coefficients / from_coefficients API.

References:
-----------
[1] Varshalovich, D. A. et al. (1988). Quantum Theory of Angular Momentum.
"""

import equinox as eqx
from jaxtyping import Array

from .cache import BasisCache, build_cache
from .config import ExpansionConfig
from .indexing import Family
from .transforms import (
    CoefficientSet,
    project_at,
    project_at_center,
    project_volume,
    reconstruct,
)


class HarmonicExpansion(eqx.Module):
    """
    Local harmonic expansion with a fixed, precomputed basis.

    The kernels are built once (scipy / sympy calls at construction) and
    reused for every probe position and every field.

    Mathematical Formulation:
    -------------------------
    Forward (local, at probe p):
        a_i(p) = sum_w f(p - h + w) * K_i(w)

    Inverse:
        u(x) = sum_i Re(K_i(x) * conj(a_i))

    Attributes:
    -----------
    cache : BasisCache
        The precomputed basis.
    """

    cache: BasisCache

    @classmethod
    def from_config(cls, config: ExpansionConfig, family: Family = "scalar") -> "HarmonicExpansion":
        """Build the basis of `family` described by `config`."""
        return cls(cache=build_cache(config, family))

    @property
    def config(self) -> ExpansionConfig:
        return self.cache.config

    def to_coefficients(
        self,
        field: Array,
        position: tuple[float, float, float] | None = None,
        spin_basis: bool = False,
    ) -> CoefficientSet:
        """
        Local coefficients of `field` at `position` (default: bounding-box centre).

        Parameters:
        -----------
        field : Array [Nz, Ny, Nx] or [Nz, Ny, Nx, 3]
            Input volume.
        position : tuple of float, optional
            Probe position (z, y, x).
        spin_basis : bool
            Vector bases only: the field already holds spin components.

        Returns:
        --------
        CoefficientSet
        """
        if position is None:
            return project_at_center(field, self.cache, spin_basis)
        return project_at(field, self.cache, position, spin_basis)

    def to_coefficients_dense(
        self, field: Array, normalize: bool = False, spin_basis: bool = False
    ) -> CoefficientSet:
        """Coefficient volumes, one per basis index, centred at every voxel."""
        return project_volume(field, self.cache, normalize, spin_basis)

    def from_coefficients(self, coeffs: CoefficientSet) -> Array:
        """Reconstruct the local field described by `coeffs` with the wrapped basis."""
        return reconstruct(coeffs, self.cache)
