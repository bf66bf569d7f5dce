# Andy Zhao
"""
End-to-end data association: map + observations -> pose, covariance, pairings.

  1) build every candidate pairing (map x observations)
  2) run the RANSAC engine -> multi-modal belief + best inlier set
  3) refit the best inlier set with least squares (covariance scaled by sigma^2)
  4) derive the observation -> map association vector and the fit error
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..ransac.core import RansacParams, StopFn
from ..ransac.rigid import fit_rigid_transform
from ..ransac.types import IndexArray
from .belief import PoseBelief, PoseHypothesis
from .engine import RansacEngine, EngineReport, RandomSource
from .fusion import FusionParams
from .pool import CorrespondencePool, CorrespondenceSet


@dataclass(frozen=True)
class AssociationResult:
    """
    belief:       all pose modes found
    best_inliers: pairings of the best-supported mode
    solution:     least-squares pose of best_inliers (None if nothing was accepted)
    obs_to_map:   (num_obs,) map index per observation, -1 when unmatched
    mse / rmse:   mean squared / root mean squared map-frame error of matched pairs
    report:       engine statistics
    """
    belief: PoseBelief
    best_inliers: CorrespondenceSet
    solution: Optional[PoseHypothesis]
    obs_to_map: IndexArray
    mse: float
    rmse: float
    report: EngineReport

    @property
    def num_pairings(self) -> int:
        return len(self.best_inliers)


def association_vector(inliers: CorrespondenceSet, num_obs: int) -> IndexArray:
    """
    obs_to_map[j] = map index paired with observation j, or -1.
    """
    obs_to_map = np.full((num_obs,), -1, dtype=np.intp)
    obs_to_map[inliers.obs_indices] = inliers.map_indices
    return obs_to_map


def associate(
        map_points,
        observations,
        params: RansacParams,
        fusion: FusionParams,
        rng: RandomSource,
        *,
        should_stop: Optional[StopFn] = None,
        max_iterations: Optional[int] = None,
) -> AssociationResult:
    pool = CorrespondencePool.build(map_points, observations)
    num_obs = int(np.asarray(observations).shape[0])

    engine = RansacEngine(params, fusion)
    report = engine.run_detailed(
        pool.full_set(), rng, should_stop=should_stop, max_iterations=max_iterations)

    best = report.best_inliers
    solution: Optional[PoseHypothesis] = None
    mse = 0.0
    if len(best) >= 2:
        pose, cov = fit_rigid_transform(best.obs_points, best.map_points, noise_std=params.noise_std)
        solution = PoseHypothesis(mean=pose, cov=cov, inliers=best, weight=float(len(best)))
        diff = pose.transform_points(best.obs_points) - best.map_points
        mse = float(np.mean(np.sum(diff * diff, axis=1)))

    return AssociationResult(
        belief=report.belief,
        best_inliers=best,
        solution=solution,
        obs_to_map=association_vector(best, num_obs),
        mse=mse,
        rmse=math.sqrt(mse),
        report=report,
    )
