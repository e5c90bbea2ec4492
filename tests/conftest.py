import jax
from loguru import logger


def pytest_sessionstart(session):
    """Kernels and FFT projections are compared at float64 precision."""
    jax.config.update("jax_enable_x64", True)
    # Cache builds and dense projections log at DEBUG; show them with failing tests.
    logger.enable("spharmx")
