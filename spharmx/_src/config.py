"""
Expansion Configuration
=======================

The parameters shared by every kernel, cache, projection and reconstruction:
shell radius, Gaussian shell width, maximum band, voxel spacing and the
real-data storage flag used by radial caches.
"""

import equinox as eqx


class ExpansionConfig(eqx.Module):
    """
    Configuration of a local harmonic expansion.

    Attributes:
    -----------
    radius : float
        Shell radius in physical units.
    band : int
        Maximum expansion degree l.
    fwhm : float
        Width of the Gaussian shell smoothing (floored at 1 when kernels are built).
    spacing : tuple of float
        Voxel spacing (sz, sy, sx).
    real_data : bool
        Store only m >= 0 in radial caches (conjugate symmetry of real inputs).
    """

    radius: float
    band: int
    fwhm: float = 1.0
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0)
    real_data: bool = False

    def check_consistency(self) -> bool:
        """
        Verify that the parameters describe a buildable basis.

        Returns:
        --------
        bool
            True if consistent, raises ValueError otherwise.
        """
        errors = []
        if not self.radius > 0:
            errors.append(f"radius must be positive, got {self.radius}")
        if self.band < 0:
            errors.append(f"band must be non-negative, got {self.band}")
        if len(self.spacing) != 3:
            errors.append(f"spacing must have 3 entries, got {self.spacing}")
        elif any(s <= 0 for s in self.spacing):
            errors.append(f"spacing must be positive, got {self.spacing}")
        if errors:
            raise ValueError("Invalid expansion configuration:\n" + "\n".join(errors))
        return True

    @property
    def effective_fwhm(self) -> float:
        """Shell width actually used by the kernels (never below 1)."""
        return max(float(self.fwhm), 1.0)
