# Andy Zhao
"""
RANSAC package

This module provides:
- Typed geometry primitives and the ModelFitter protocol
- SE(2) poses
- Closed-form rigid fitting with covariance, Mahalanobis residuals
- An adaptive RANSAC loop that returns every accepted hypothesis
"""

from .types import (
    FloatArray, BoolArray, IndexArray, Points2D, Mat3x3, Cov3x3,
    ModelFitter, Hypothesis, RansacResult,
)

from .errors import (
    RobustDAError, InvalidInputError, InsufficientDataError,
    DegenerateGeometryError, ConfigurationError,
)

from .pose import Pose2D, wrap_to_pi

from .rigid import (
    fit_rigid_transform, rigid_information, residual_vectors, residuals_L2, mahalanobis_residuals,
)

from .rigid_fitter import RigidFitter, RigidEstimate

from .core import ransac, RansacParams, required_iterations, deadline_stop, draw_minimal_samples

__all__ = [
    "FloatArray", "BoolArray", "IndexArray", "Points2D", "Mat3x3", "Cov3x3",
    "ModelFitter", "Hypothesis", "RansacResult",
    "RobustDAError", "InvalidInputError", "InsufficientDataError",
    "DegenerateGeometryError", "ConfigurationError",
    "Pose2D", "wrap_to_pi",
    "fit_rigid_transform", "rigid_information", "residual_vectors", "residuals_L2",
    "mahalanobis_residuals",
    "RigidFitter", "RigidEstimate",
    "ransac", "RansacParams", "required_iterations", "deadline_stop", "draw_minimal_samples",
]
