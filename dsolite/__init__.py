"""Sparse direct visual odometry building blocks: accumulators, projections, pixel selection and Schur complement."""

__version__ = "0.1.0"

__all__ = [
    "accumulators",
    "accumulator9",
    "accumulator14",
    "residual_jacobian",
    "projections",
    "pixel_selector",
    "sc_hessian",
]