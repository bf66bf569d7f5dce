# Andy Zhao
"""
Pose hypotheses and the multi-modal (sum of Gaussians) pose belief.

The belief is a plain ordered collection of hypothesis records; merging lives in
fusion.py as pure functions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Any

import numpy as np

from ..ransac.pose import Pose2D
from ..ransac.types import Cov3x3, FloatArray
from .pool import CorrespondenceSet


@dataclass(frozen=True, eq=False)
class PoseHypothesis:
    """
    One Gaussian pose mode with the correspondence set that supports it.

    mean:    obs-frame -> map-frame pose
    cov:     3x3 covariance over (x, y, theta), scaled by the noise variance
    inliers: supporting correspondences (view into the pool)
    weight:  support of the mode (inlier count, summed over merged hypotheses)
    """
    mean: Pose2D
    cov: Cov3x3
    inliers: CorrespondenceSet
    weight: float

    @property
    def num_inliers(self) -> int:
        return len(self.inliers)

    def summary(self) -> dict[str, Any]:
        return {
            "mean": (self.mean.x, self.mean.y, self.mean.theta),
            "cov": self.cov.tolist(),
            "weight": float(self.weight),
            "num_inliers": self.num_inliers,
            "pairs": self.inliers.pairs(),
        }


@dataclass(frozen=True, eq=False)
class PoseBelief:
    """
    Ordered, pairwise non-duplicate pose modes.
    """
    modes: tuple[PoseHypothesis, ...] = ()

    def __len__(self) -> int:
        return len(self.modes)

    def __iter__(self) -> Iterator[PoseHypothesis]:
        return iter(self.modes)

    def __getitem__(self, i: int) -> PoseHypothesis:
        return self.modes[i]

    @property
    def is_empty(self) -> bool:
        return len(self.modes) == 0

    @property
    def total_weight(self) -> float:
        return float(sum(h.weight for h in self.modes))

    def normalized_weights(self) -> FloatArray:
        w = np.array([h.weight for h in self.modes], dtype=np.float64)
        total = float(w.sum())
        return w / total if total > 0.0 else w

    def best(self) -> Optional[PoseHypothesis]:
        """
        Mode with the largest inlier set; ties -> larger weight -> earlier mode.
        """
        best: Optional[PoseHypothesis] = None
        for h in self.modes:
            if best is None or (h.num_inliers, h.weight) > (best.num_inliers, best.weight):
                best = h
        return best

    def summaries(self) -> list[dict[str, Any]]:
        return [h.summary() for h in self.modes]
