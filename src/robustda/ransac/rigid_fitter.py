# Andy Zhao
"""
Adapter: makes the rigid-transform functions conform to the ModelFitter Protocol.

The model carried through RANSAC is a RigidEstimate: the pose and its covariance,
since inlier gating is Mahalanobis (needs the uncertainty of the fit, not just the mean).
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigurationError
from .pose import Pose2D
from .rigid import fit_rigid_transform, mahalanobis_residuals
from .types import Points2D, FloatArray, Cov3x3, ModelFitter


@dataclass(frozen=True)
class RigidEstimate:
    pose: Pose2D
    cov: Cov3x3     # already scaled by noise_std^2


@dataclass(frozen=True)
class RigidFitter(ModelFitter[RigidEstimate]):
    noise_std: float

    def __post_init__(self) -> None:
        if not self.noise_std > 0.0:
            raise ConfigurationError(f"noise_std must be > 0, got {self.noise_std}")

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> RigidEstimate:
        # The closed form is exact for 2 points, so minimal and LS share one solver
        return self.fit_least_squares(pts0, pts1)

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> RigidEstimate:
        pose, cov = fit_rigid_transform(pts0, pts1, noise_std=self.noise_std)
        return RigidEstimate(pose=pose, cov=cov)

    def residuals(self, model: RigidEstimate, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return mahalanobis_residuals(model.pose, model.cov, pts0, pts1, noise_std=self.noise_std)
