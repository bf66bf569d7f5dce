# Andy Zhao
"""
RANSAC data-association engine: candidate pool in, multi-modal pose belief out.

    pool (CorrespondenceSet)
      -> ransac(): accepted hypotheses (pose, covariance, inlier positions)
      -> PoseHypothesis records viewing into the pool, weight = inlier count
      -> HypothesisFuser: PoseBelief
      -> best inliers = inlier set of the best-supported mode
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import numpy as np

from ..ransac.core import ransac, RansacParams, StopFn
from ..ransac.errors import InsufficientDataError
from ..ransac.rigid_fitter import RigidFitter
from .belief import PoseHypothesis, PoseBelief
from .fusion import FusionParams, HypothesisFuser
from .pool import CorrespondenceSet

logger = logging.getLogger(__name__)

RandomSource = Union[np.random.Generator, int]


def as_generator(rng: RandomSource) -> np.random.Generator:
    """
    Accept a Generator or an integer seed. Unseeded global randomness is not accepted.
    """
    if isinstance(rng, np.random.Generator):
        return rng
    if isinstance(rng, (int, np.integer)) and not isinstance(rng, bool):
        return np.random.default_rng(int(rng))
    raise TypeError(f"rng must be a numpy Generator or an int seed, got {type(rng).__name__}")


@dataclass(frozen=True)
class EngineReport:
    belief: PoseBelief
    best_inliers: CorrespondenceSet
    iterations: int
    target_iterations: int
    num_fitted: int
    num_degenerate: int
    num_accepted: int
    stopped: bool


@dataclass(frozen=True)
class RansacEngine:
    """
    Robust rigid-transform data association.

    - run(pool, rng) -> (belief, best_inliers)
    - run_detailed(pool, rng) -> EngineReport (same plus loop statistics)

    An empty belief / empty best set means no hypothesis reached min_inliers
    within the budget; that is a normal outcome, not an error.
    """
    params: RansacParams
    fusion: FusionParams
    fitter: RigidFitter = field(init=False)
    fuser: HypothesisFuser = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fitter", RigidFitter(noise_std=self.params.noise_std))
        object.__setattr__(self, "fuser", HypothesisFuser(self.fusion))

    def run(
            self,
            pool: CorrespondenceSet,
            rng: RandomSource,
            *,
            should_stop: Optional[StopFn] = None,
            max_iterations: Optional[int] = None,
    ) -> tuple[PoseBelief, CorrespondenceSet]:
        report = self.run_detailed(
            pool, rng, should_stop=should_stop, max_iterations=max_iterations)
        return report.belief, report.best_inliers

    def run_detailed(
            self,
            pool: CorrespondenceSet,
            rng: RandomSource,
            *,
            should_stop: Optional[StopFn] = None,
            max_iterations: Optional[int] = None,
    ) -> EngineReport:
        if len(pool) < self.params.sample_size:
            raise InsufficientDataError(
                f"Pool has {len(pool)} correspondences, minimal sample needs {self.params.sample_size}")

        result = ransac(
            self.fitter,
            pool.obs_points,
            pool.map_points,
            obs_ids=pool.obs_indices,
            map_ids=pool.map_indices,
            params=self.params,
            rng=as_generator(rng),
            should_stop=should_stop,
            max_iterations=max_iterations,
        )

        accepted = [
            PoseHypothesis(
                mean=h.model.pose,
                cov=h.model.cov,
                inliers=pool.take(h.inliers),
                weight=float(h.inliers.shape[0]),
            )
            for h in result.hypotheses
        ]
        belief = self.fuser.fuse(accepted)

        best = belief.best()
        best_inliers = best.inliers if best is not None else pool.take(np.zeros((0,), dtype=np.intp))

        logger.debug(
            "Association: %d candidates, %d accepted -> %d modes, best set %d",
            len(pool), len(accepted), len(belief), len(best_inliers))

        return EngineReport(
            belief=belief,
            best_inliers=best_inliers,
            iterations=result.iterations,
            target_iterations=result.target_iterations,
            num_fitted=result.num_fitted,
            num_degenerate=result.num_degenerate,
            num_accepted=result.num_accepted,
            stopped=result.stopped,
        )
