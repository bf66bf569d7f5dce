# Andy Zhao
"""
Hypothesis fusion: collapse near-duplicate accepted hypotheses into pose modes.

Two hypotheses are the same mode if
  - their positions are closer than max_diff_xy AND their wrapped angle
    difference is below max_diff_phi, or
  - by_correspondences is set and they are supported by the same pairings.

Merge policy (larger weight wins):
  - The survivor keeps the mean / covariance / inlier set of the larger-weight
    hypothesis. Equal weights -> larger inlier set; still equal -> the earlier one.
  - Weight of the merged mode = sum of both weights.

Merging can move a mode's mean, which can bring it within tolerance of another
mode, so fusion repeats until no pair matches. The output is therefore pairwise
non-duplicate, and fusing it again is a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..ransac.errors import ConfigurationError
from .belief import PoseHypothesis, PoseBelief


@dataclass(frozen=True)
class FusionParams:
    """
    max_diff_xy:
      - Position tolerance (map units).
    max_diff_phi:
      - Angle tolerance (radians).
    by_correspondences:
      - Also treat hypotheses with identical (map, obs) pairings as one mode.
    """
    max_diff_xy: float
    max_diff_phi: float
    by_correspondences: bool

    def __post_init__(self) -> None:
        if self.max_diff_xy < 0.0:
            raise ConfigurationError(f"max_diff_xy must be >= 0, got {self.max_diff_xy}")
        if self.max_diff_phi < 0.0:
            raise ConfigurationError(f"max_diff_phi must be >= 0, got {self.max_diff_phi}")


def is_same_mode(a: PoseHypothesis, b: PoseHypothesis, params: FusionParams) -> bool:
    if (a.mean.distance_to(b.mean) < params.max_diff_xy
            and a.mean.angle_to(b.mean) < params.max_diff_phi):
        return True
    if params.by_correspondences:
        return a.inliers.pair_key() == b.inliers.pair_key()
    return False


def merge_pair(a: PoseHypothesis, b: PoseHypothesis) -> PoseHypothesis:
    """
    Merge b into a. `a` is the earlier mode and wins exact ties.
    """
    winner = b if (b.weight, b.num_inliers) > (a.weight, a.num_inliers) else a
    return PoseHypothesis(
        mean=winner.mean,
        cov=winner.cov,
        inliers=winner.inliers,
        weight=a.weight + b.weight,
    )


def _absorb(modes: list[PoseHypothesis], h: PoseHypothesis, params: FusionParams) -> None:
    for j, mode in enumerate(modes):
        if is_same_mode(mode, h, params):
            modes[j] = merge_pair(mode, h)
            return
    modes.append(h)


def _merge_until_stable(modes: list[PoseHypothesis], params: FusionParams) -> None:
    changed = True
    while changed:
        changed = False
        for i in range(len(modes)):
            for j in range(i + 1, len(modes)):
                if is_same_mode(modes[i], modes[j], params):
                    modes[i] = merge_pair(modes[i], modes[j])
                    del modes[j]
                    changed = True
                    break
            if changed:
                break


def fuse_hypotheses(accepted: Iterable[PoseHypothesis], params: FusionParams) -> PoseBelief:
    """
    Fuse accepted hypotheses (in acceptance order) into a PoseBelief.
    """
    modes: list[PoseHypothesis] = []
    for h in accepted:
        _absorb(modes, h, params)
    _merge_until_stable(modes, params)
    return PoseBelief(modes=tuple(modes))


@dataclass(frozen=True)
class HypothesisFuser:
    params: FusionParams

    def fuse(self, accepted: Iterable[PoseHypothesis]) -> PoseBelief:
        return fuse_hypotheses(accepted, self.params)

    def fuse_belief(self, belief: PoseBelief) -> PoseBelief:
        """
        Fuse an existing belief again, e.g. after appending modes from another run.
        """
        return fuse_hypotheses(belief.modes, self.params)
