# Andy Zhao
"""
Adaptive RANSAC loop over candidate correspondences (model-agnostic).

RANSAC overview:
- Randomly sample a *minimal* subset of candidate correspondences
- Reject samples that cannot come from a rigid motion (distance check)
- Fit a candidate model from that subset
- Score all correspondences by Mahalanobis distance under the fitted model
- Gate inliers (distance <= threshold), optionally one-to-one for landmarks
- If enough inliers: refit on all of them and record the hypothesis
- Shrink the iteration budget as the best inlier ratio improves

Unlike "keep the single best model", every accepted hypothesis is returned:
downstream fusion turns them into a multi-modal pose belief.

Uses the ModelFitter Protocol from types.py.
"""
from __future__ import annotations

import logging
import math
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import numpy as np

from .errors import ConfigurationError, DegenerateGeometryError, InsufficientDataError
from .types import (
    Points2D, FloatArray, BoolArray, IndexArray, ModelFitter, Hypothesis, RansacResult)

M = TypeVar("M")
StopFn = Callable[[int], bool]

logger = logging.getLogger(__name__)
_RANSAC_DEBUG = os.environ.get("ROBUSTDA_RANSAC_DEBUG", "0") == "1"

# Minimal samples are drawn and pre-checked this many at a time.
_SAMPLE_BATCH = 2048

# Budget used when the inlier ratio gives no finite bound.
_UNBOUNDED_ITERS = 2**62


@dataclass(frozen=True)
class RansacParams:
    """
    RANSAC data-association settings. Every field is required.

    noise_std:
      - 1-sigma isotropic observation noise (map units).
    min_inliers:
      - Smallest inlier set accepted as a pose hypothesis.
    max_inliers:
      - Cap on how many gated correspondences enter one inlier set (may equal the pool size).
    mahalanobis_threshold:
      - Gate on the covariance-normalized residual.
    probability:
      - Target probability of drawing at least one all-inlier sample, in (0, 1).
    min_iterations:
      - Floor on the adaptive iteration budget.
    landmarks:
      - True: distinguishable landmarks. Samples of 2 and one-to-one inlier sets
        (each map landmark / observation used at most once).
      - False: samples of 3, repeated indices allowed.
    """
    noise_std: float
    min_inliers: int
    max_inliers: int
    mahalanobis_threshold: float
    probability: float
    min_iterations: int
    landmarks: bool

    def __post_init__(self) -> None:
        if not self.noise_std > 0.0:
            raise ConfigurationError(f"noise_std must be > 0, got {self.noise_std}")
        if not self.mahalanobis_threshold > 0.0:
            raise ConfigurationError(
                f"mahalanobis_threshold must be > 0, got {self.mahalanobis_threshold}")
        if not (0.0 < self.probability < 1.0):
            raise ConfigurationError(f"probability must be in (0, 1), got {self.probability}")
        if self.min_inliers < 1:
            raise ConfigurationError(f"min_inliers must be >= 1, got {self.min_inliers}")
        if self.min_inliers > self.max_inliers:
            raise ConfigurationError(
                f"min_inliers ({self.min_inliers}) > max_inliers ({self.max_inliers})")
        if self.min_iterations < 0:
            raise ConfigurationError(f"min_iterations must be >= 0, got {self.min_iterations}")

    @property
    def sample_size(self) -> int:
        return 2 if self.landmarks else 3


def required_iterations(
        *,
        probability: float,
        inlier_ratio: float,
        sample_size: int,
) -> int:
    """
    Number of trials so that P(at least one all-inlier minimal sample) >= probability.

    With inlier ratio w and sample size s:
    - P(sample is all inliers) = w^s
    - P(k samples all fail)    = (1 - w^s)^k
    - 1 - (1 - w^s)^k >= p  ->  k >= log(1 - p) / log(1 - w^s)
    """
    if sample_size <= 0:
        raise ValueError("sample_size must be >= 1")

    w = min(max(float(inlier_ratio), 0.0), 1.0)
    if w >= 1.0:
        return 1
    if w <= 0.0:
        return _UNBOUNDED_ITERS

    w_to_s = w ** sample_size
    # log1p keeps precision when w^s is tiny
    denominator = math.log1p(-w_to_s)
    if denominator == 0.0:
        return _UNBOUNDED_ITERS
    k = math.ceil(math.log1p(-float(probability)) / denominator)
    return int(min(max(1, k), _UNBOUNDED_ITERS))


def deadline_stop(seconds: float) -> StopFn:
    """
    Stop predicate that fires once `seconds` of wall-clock time have elapsed.
    """
    t_end = time.monotonic() + float(seconds)

    def _should_stop(_iteration: int) -> bool:
        return time.monotonic() >= t_end

    return _should_stop


# ---------- Sampling ----------
def draw_minimal_samples(rng: np.random.Generator, n: int, s: int, count: int) -> IndexArray:
    """
    Draw `count` samples of `s` distinct indices out of range(n), shape (count, s).

    Partial Fisher-Yates without materializing a permutation: the k-th pick is a
    rank among the n-k remaining indices, shifted past the already-taken ones
    (visited in increasing order).
    """
    if s > n:
        raise InsufficientDataError(f"Cannot draw {s} distinct indices out of {n}")

    draws = np.empty((count, s), dtype=np.intp)
    for k in range(s):
        idx = rng.integers(0, n - k, size=count).astype(np.intp)
        if k:
            taken = np.sort(draws[:, :k], axis=1)
            for c in range(k):
                idx += (idx >= taken[:, c])
        draws[:, k] = idx
    return draws


def consistent_samples(
        samples: IndexArray,
        obs_pts: Points2D,
        map_pts: Points2D,
        *,
        obs_ids: IndexArray,
        map_ids: IndexArray,
        max_dist_diff: float,
        landmarks: bool,
) -> BoolArray:
    """
    Vectorized pre-check of a batch of minimal samples.

    A rigid motion preserves distances, so for every pair (a, b) in a sample
        | |m_a - m_b| - |o_a - o_b| |  <=  max_dist_diff
    For landmarks, no map landmark or observation may appear twice in a sample.
    """
    ok = np.ones((samples.shape[0],), dtype=bool)
    s = samples.shape[1]
    for a in range(s):
        for b in range(a + 1, s):
            ia, ib = samples[:, a], samples[:, b]
            if landmarks:
                ok &= map_ids[ia] != map_ids[ib]
                ok &= obs_ids[ia] != obs_ids[ib]
            d_map = np.linalg.norm(map_pts[ia] - map_pts[ib], axis=1)
            d_obs = np.linalg.norm(obs_pts[ia] - obs_pts[ib], axis=1)
            ok &= np.abs(d_map - d_obs) <= max_dist_diff
    return ok


def select_inliers(
        distances: FloatArray,
        threshold: float,
        *,
        obs_ids: IndexArray,
        map_ids: IndexArray,
        max_inliers: int,
        landmarks: bool,
) -> IndexArray:
    """
    Gate by distance and return the inlier positions, best (smallest distance) first.

    With landmarks, a correspondence is skipped when its map landmark or its
    observation is already used by a better one.
    """
    gated = np.flatnonzero(distances <= threshold)
    order = gated[np.argsort(distances[gated], kind="stable")]

    if not landmarks:
        return order[:max_inliers].astype(np.intp)

    used_map: set[int] = set()
    used_obs: set[int] = set()
    keep: list[int] = []
    for k in order.tolist():
        m, o = int(map_ids[k]), int(obs_ids[k])
        if m in used_map or o in used_obs:
            continue
        used_map.add(m)
        used_obs.add(o)
        keep.append(k)
        if len(keep) >= max_inliers:
            break
    return np.asarray(keep, dtype=np.intp)


# ---------- Main loop ----------
def ransac(
        model_fitter: ModelFitter[M],
        obs_pts: Points2D,
        map_pts: Points2D,
        *,
        obs_ids: IndexArray,
        map_ids: IndexArray,
        params: RansacParams,
        rng: np.random.Generator,
        should_stop: Optional[StopFn] = None,
        max_iterations: Optional[int] = None,
) -> RansacResult[M]:
    """
    Run adaptive RANSAC over N candidate correspondences obs_pts[i] <-> map_pts[i].

    Inputs:
    - model_fitter: provides fit_minimal, fit_least_squares, residuals
    - obs_pts, map_pts: (N,2) paired points
    - obs_ids, map_ids: (N,) source indices of each pair (used for landmark uniqueness)
    - params: RansacParams
    - rng: seeded generator (the loop never touches global randomness)
    - should_stop: optional predicate, checked between trials with the trial counter
    - max_iterations: optional hard cap on the number of trials

    Returns:
    - RansacResult with every accepted hypothesis (possibly none) and loop statistics.
    """
    # ---------- Input validation ----------
    obs_pts = np.asarray(obs_pts, dtype=np.float64)
    map_pts = np.asarray(map_pts, dtype=np.float64)
    if obs_pts.shape != map_pts.shape or obs_pts.ndim != 2 or obs_pts.shape[1] != 2:
        raise ValueError(f"Expected matching (N,2) arrays, got {obs_pts.shape} vs {map_pts.shape}")
    obs_ids = np.asarray(obs_ids, dtype=np.intp)
    map_ids = np.asarray(map_ids, dtype=np.intp)
    if obs_ids.shape != (obs_pts.shape[0],) or map_ids.shape != (obs_pts.shape[0],):
        raise ValueError("obs_ids / map_ids must have shape (N,)")

    n = obs_pts.shape[0]
    s = params.sample_size
    if n < s:
        raise InsufficientDataError(f"Pool has {n} correspondences, minimal sample needs {s}")

    max_dist_diff = params.mahalanobis_threshold * math.sqrt(2.0) * params.noise_std
    threshold = params.mahalanobis_threshold
    cap = max_iterations if max_iterations is not None else _UNBOUNDED_ITERS

    hypotheses: list[Hypothesis[M]] = []
    best_inliers: IndexArray = np.zeros((0,), dtype=np.intp)
    num_fitted = 0
    num_degenerate = 0
    stopped = False

    # ---------- Adaptive budget ----------
    target_iters = max(params.min_iterations, 1)
    it = 0

    while it < target_iters:
        if it >= cap:
            stopped = True
            break

        count = min(_SAMPLE_BATCH, target_iters - it, cap - it)
        samples = draw_minimal_samples(rng, n, s, count)
        ok = consistent_samples(
            samples, obs_pts, map_pts,
            obs_ids=obs_ids, map_ids=map_ids,
            max_dist_diff=max_dist_diff, landmarks=params.landmarks,
        )

        # With a stop predicate every trial is visited, pre-rejected ones included
        batch_end = it + count
        trials = range(count) if should_stop is not None else np.flatnonzero(ok).tolist()
        for k in trials:
            trial = it + k
            if trial >= target_iters:
                break
            if should_stop is not None and should_stop(trial):
                stopped = True
                batch_end = trial
                break
            if not ok[k]:
                continue

            sample_idx = samples[k]
            num_fitted += 1
            try:
                model = model_fitter.fit_minimal(obs_pts[sample_idx], map_pts[sample_idx])
            except DegenerateGeometryError:
                num_degenerate += 1
                continue

            err = model_fitter.residuals(model, obs_pts, map_pts)
            inliers = select_inliers(
                err, threshold,
                obs_ids=obs_ids, map_ids=map_ids,
                max_inliers=params.max_inliers, landmarks=params.landmarks,
            )
            if inliers.shape[0] < params.min_inliers:
                continue

            # Refit on the whole inlier set, not just the seed
            try:
                refit = model_fitter.fit_least_squares(obs_pts[inliers], map_pts[inliers])
            except DegenerateGeometryError:
                num_degenerate += 1
                continue

            hypotheses.append(Hypothesis(model=refit, inliers=inliers))

            if inliers.shape[0] > best_inliers.shape[0]:
                best_inliers = inliers
                w = best_inliers.shape[0] / float(n)
                iter_needed = required_iterations(
                    probability=params.probability,
                    inlier_ratio=w,
                    sample_size=s,
                )
                target_iters = max(params.min_iterations, iter_needed, trial + 1)
                if _RANSAC_DEBUG:
                    logger.info(
                        "[RANSAC] better set: inliers=%d/%d, w=%.4f, target_iters=%d",
                        best_inliers.shape[0], n, w, target_iters)

        if stopped:
            it = batch_end
            break
        it = min(batch_end, target_iters)

    logger.debug(
        "RANSAC done: iterations=%d target=%d fitted=%d degenerate=%d accepted=%d best=%d stopped=%s",
        it, target_iters, num_fitted, num_degenerate, len(hypotheses), best_inliers.shape[0], stopped)

    return RansacResult(
        hypotheses=hypotheses,
        best_inliers=best_inliers,
        iterations=it,
        target_iterations=target_iters,
        num_fitted=num_fitted,
        num_degenerate=num_degenerate,
        stopped=stopped,
    )
