"""
Kernel Grid Module
==================

Centred voxel lattices on which harmonic basis kernels are sampled.

Key Concepts:
-------------
    • Arrays are indexed (z, y, x); voxel spacing is (sz, sy, sx).
    • A kernel lattice has half extent h_i = ceil(radius / s_i + margin) per
      axis and shape 2*h_i + 1, so the middle voxel is the geometric centre.
    • Spherical angles: theta is the polar angle from the z axis, phi the
      azimuth in the x-y plane, phi in [0, 2*pi).
    • Poles and the centre voxel are handled by small fixed perturbations,
      never by raising.
"""

import math

import equinox as eqx
import numpy as np

# Perturbations keeping the angles finite on the z axis and at the centre voxel.
POLE_SHIFT_Y = 1e-5
ACOS_SHIFT = 1e-8


def gaussian_weight(d: np.ndarray, fwhm: float) -> np.ndarray:
    """
    Gaussian shell profile exp(-0.5 * d^2 * (-2 ln 0.5) / fwhm^2).

    Equals 1 at d = 0 and 0.5 at |d| = fwhm.
    """
    sigma_factor = -2.0 * math.log(0.5) / (fwhm * fwhm)
    return np.exp(-0.5 * d * d * sigma_factor)


def center_of_bbox(shape: tuple[int, ...]) -> tuple[float, float, float]:
    """Bounding-box centre of a volume: shape / 2 along each of the first three axes."""
    return tuple(float(s) / 2.0 for s in shape[:3])


def _guard_acos(t: np.ndarray) -> np.ndarray:
    t = np.where(t == 1.0, t - ACOS_SHIFT, t)
    return np.where(t == -1.0, t + ACOS_SHIFT, t)


def spherical_angles(
    z: np.ndarray, y: np.ndarray, x: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """
    Polar and azimuthal angles of Cartesian offsets.

    Parameters:
    -----------
    z, y, x : ndarray
        Physical offsets from the kernel centre.

    Returns:
    --------
    theta : ndarray
        Polar angle acos(z / r) in [0, pi].
    phi : ndarray
        Azimuth in [0, 2*pi): acos(x / rho) for y >= 0, 2*pi - acos(x / rho) otherwise.
    """
    y = np.where(x * x + y * y == 0.0, y + POLE_SHIFT_Y, y)
    r = np.sqrt(x * x + y * y + z * z)
    theta = np.arccos(_guard_acos(z / r))

    cos_phi = _guard_acos(x / np.sqrt(x * x + y * y))
    phi = np.where(y >= 0.0, np.arccos(cos_phi), 2.0 * math.pi - np.arccos(cos_phi))
    return theta, phi


class KernelGrid(eqx.Module):
    """
    Centred, odd-sized voxel lattice for one basis kernel.

    Attributes:
    -----------
    radius : float
        Shell radius in physical units.
    margin : float
        Extra half extent in voxels added beyond radius / spacing.
    spacing : tuple of float
        Voxel spacing (sz, sy, sx).
    half_extent : tuple of int
        Voxels from the centre to the edge along (z, y, x).
    """

    radius: float
    margin: float
    spacing: tuple[float, float, float]
    half_extent: tuple[int, int, int]

    def __init__(
        self,
        radius: float,
        margin: float,
        spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ):
        if len(spacing) != 3:
            raise ValueError(f"spacing must have 3 entries, got {spacing}")
        if any(s <= 0 for s in spacing):
            raise ValueError(f"spacing must be positive, got {spacing}")
        self.radius = float(radius)
        self.margin = float(margin)
        self.spacing = tuple(float(s) for s in spacing)
        self.half_extent = tuple(
            int(math.ceil(self.radius / s + self.margin)) for s in self.spacing
        )

    @classmethod
    def from_shell(
        cls,
        radius: float,
        fwhm: float,
        spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> "KernelGrid":
        """Lattice for a Gaussian shell: margin = 3 * fwhm."""
        return cls(radius=radius, margin=3.0 * fwhm, spacing=spacing)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, int, int]:
        """Kernel shape (2*h_z + 1, 2*h_y + 1, 2*h_x + 1)."""
        return tuple(2 * h + 1 for h in self.half_extent)

    @property
    def center(self) -> tuple[int, int, int]:
        """Index of the middle voxel."""
        return self.half_extent

    @property
    def offsets(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Physical offsets (Z, Y, X) of every voxel from the centre, each of shape `shape`."""
        axes = [
            (np.arange(2 * h + 1) - h) * s
            for h, s in zip(self.half_extent, self.spacing)
        ]
        Z, Y, X = np.meshgrid(*axes, indexing="ij")
        return Z, Y, X

    @property
    def distance(self) -> np.ndarray:
        """Euclidean distance of every voxel from the centre."""
        Z, Y, X = self.offsets
        return np.sqrt(Z * Z + Y * Y + X * X)

    @property
    def angles(self) -> tuple[np.ndarray, np.ndarray]:
        """(theta, phi) of every voxel, with pole guards applied."""
        Z, Y, X = self.offsets
        return spherical_angles(Z, Y, X)
