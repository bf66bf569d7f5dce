# Andy Zhao
"""
Shared typed primitives for the robust data-association pipeline.

Defines:
- Typed NumPy aliases for geometry
    - Points are (N,2) float arrays
    - Pose covariances are 3x3 float arrays over (x, y, theta)
    - Index arrays select correspondences out of a pool
- Generic model protocol for RANSAC
- Structured RANSAC result containers (hypotheses + loop statistics)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, TypeVar, Generic, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# float64 for geometry / matrices, intp for indices, bool_ for masks

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]
IndexArray: TypeAlias = npt.NDArray[np.intp]

# Points in a 2D metric frame (map or observation frame).
Points2D: TypeAlias = FloatArray      # shape: (N, 2)

# 3x3 homogeneous transform matrix of a rigid motion.
Mat3x3: TypeAlias = FloatArray        # shape: (3, 3)

# Covariance over the pose parameters (x, y, theta).
Cov3x3: TypeAlias = FloatArray        # shape: (3, 3)

M = TypeVar("M")


class ModelFitter(Protocol[M]):
    """
    Interface a model must implement to be usable by the generic RANSAC loop.

    Convention: pts0 are observation-frame points, pts1 are the paired map points.

    1) Fit a model from a minimal sample
    2) Refit from all inliers (least squares)
    3) Score every correspondence with a per-pair residual

    Fits raise DegenerateGeometryError when the points cannot constrain the model.
    """

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> M:
        ...

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> M:
        ...

    def residuals(self, model: M, pts0: Points2D, pts1: Points2D) -> FloatArray:
        """
        Return one residual per correspondence, shape (N,). Smaller = better.
        """
        ...


# ---------- RANSAC output containers ----------
@dataclass(frozen=True)
class Hypothesis(Generic[M]):
    model: M              # model refit on all inliers
    inliers: IndexArray   # positions into the scored arrays, in inclusion order


@dataclass(frozen=True)
class RansacResult(Generic[M]):
    hypotheses: list[Hypothesis[M]] = field(default_factory=list)   # every accepted trial
    best_inliers: IndexArray = field(default_factory=lambda: np.zeros((0,), dtype=np.intp))
    iterations: int = 0           # trials actually consumed
    target_iterations: int = 0    # adaptive budget when the loop ended
    num_fitted: int = 0           # trials that passed the sample checks and were fitted
    num_degenerate: int = 0       # trials discarded on degenerate geometry
    stopped: bool = False         # ended by stop signal or hard cap

    @property
    def num_accepted(self) -> int:
        return len(self.hypotheses)
