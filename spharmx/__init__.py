from loguru import logger

from spharmx._src.basis import (
    binary_sphere,
    build_radial_harmonic,
    build_scalar_harmonic,
    build_vector_harmonic,
    build_vector_radial_harmonic,
    sphere_surface_gauss,
)
from spharmx._src.cache import (
    BasisCache,
    build_cache,
    build_radial_cache,
    build_scalar_cache,
    build_vector_cache,
    build_vector_radial_cache,
)
from spharmx._src.config import ExpansionConfig
from spharmx._src.convolution import convolve_many
from spharmx._src.expansion import HarmonicExpansion
from spharmx._src.grid import KernelGrid, center_of_bbox
from spharmx._src.indexing import IndexScheme, MultiIndexOdometer, walk
from spharmx._src.special import (
    UnsupportedConfigurationError,
    bessel_j,
    bessel_zero,
    clebsch_gordan,
    legendre,
    sh_normalization,
)
from spharmx._src.transforms import (
    CoefficientSet,
    power_spectrum,
    project_at,
    project_at_center,
    project_volume,
    reconstruct,
    reconstruct_radial,
    reconstruct_scalar,
    reconstruct_vector,
    reconstruct_vector_radial,
)
from spharmx._src.vectors import cartesian_to_spin, spin_to_cartesian

# Library logging stays silent until an application calls logger.enable("spharmx").
logger.disable("spharmx")

__all__ = [
    # Configuration
    "ExpansionConfig",
    # Special functions
    "UnsupportedConfigurationError",
    "bessel_j",
    "bessel_zero",
    "clebsch_gordan",
    "legendre",
    "sh_normalization",
    # Kernels
    "KernelGrid",
    "center_of_bbox",
    "build_scalar_harmonic",
    "build_radial_harmonic",
    "build_vector_harmonic",
    "build_vector_radial_harmonic",
    "binary_sphere",
    "sphere_surface_gauss",
    # Indexing and caches
    "IndexScheme",
    "MultiIndexOdometer",
    "walk",
    "BasisCache",
    "build_cache",
    "build_scalar_cache",
    "build_radial_cache",
    "build_vector_cache",
    "build_vector_radial_cache",
    # Transforms
    "convolve_many",
    "CoefficientSet",
    "project_at",
    "project_at_center",
    "project_volume",
    "power_spectrum",
    "reconstruct",
    "reconstruct_scalar",
    "reconstruct_radial",
    "reconstruct_vector",
    "reconstruct_vector_radial",
    "cartesian_to_spin",
    "spin_to_cartesian",
    "HarmonicExpansion",
]
