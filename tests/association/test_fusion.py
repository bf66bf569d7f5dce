"""
Unit tests for hypothesis fusion into a PoseBelief.
"""
import math

import numpy as np
import pytest

from robustda.association import (
    CorrespondencePool, FusionParams, HypothesisFuser, PoseHypothesis, PoseBelief,
    fuse_hypotheses, is_same_mode,
)
from robustda.ransac import ConfigurationError, Pose2D


@pytest.fixture
def pool():
    map_pts = np.arange(20, dtype=np.float64).reshape(10, 2)
    obs_pts = np.arange(20, dtype=np.float64).reshape(10, 2) * 0.5
    return CorrespondencePool.from_pairs(map_pts, obs_pts, [(i, i) for i in range(10)])


@pytest.fixture
def params():
    return FusionParams(max_diff_xy=0.01, max_diff_phi=math.radians(0.1), by_correspondences=False)


def _hyp(pool, pose, positions, weight=None):
    inliers = pool.subset(positions)
    return PoseHypothesis(
        mean=pose,
        cov=np.eye(3) * 0.01,
        inliers=inliers,
        weight=float(len(inliers) if weight is None else weight),
    )


def _as_tuples(belief):
    return [(h.mean.x, h.mean.y, h.mean.theta, h.weight, tuple(h.inliers.pairs())) for h in belief]


class TestFusionParams:
    """Validation"""

    def test_negative_tolerances_raise(self):
        with pytest.raises(ConfigurationError):
            FusionParams(max_diff_xy=-1.0, max_diff_phi=0.1, by_correspondences=False)
        with pytest.raises(ConfigurationError):
            FusionParams(max_diff_xy=0.1, max_diff_phi=-0.1, by_correspondences=False)


class TestSameMode:
    """Tests for is_same_mode"""

    def test_close_in_position_and_angle(self, pool, params):
        a = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0, 1])
        b = _hyp(pool, Pose2D(0.005, 0.0, math.radians(0.05)), [2, 3])
        assert is_same_mode(a, b, params)

    def test_angle_wraps(self, pool, params):
        a = _hyp(pool, Pose2D(0.0, 0.0, math.pi - 1e-4), [0, 1])
        b = _hyp(pool, Pose2D(0.0, 0.0, -math.pi + 1e-4), [2, 3])
        assert is_same_mode(a, b, params)

    def test_far_in_angle_is_distinct(self, pool, params):
        a = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0, 1])
        b = _hyp(pool, Pose2D(0.0, 0.0, 0.01), [0, 1])
        assert not is_same_mode(a, b, params)

    def test_same_correspondences(self, pool, params):
        a = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0, 1, 2])
        b = _hyp(pool, Pose2D(1.0, 0.0, 0.5), [2, 1, 0])
        assert not is_same_mode(a, b, params)
        by_corrs = FusionParams(params.max_diff_xy, params.max_diff_phi, by_correspondences=True)
        assert is_same_mode(a, b, by_corrs)


class TestFuse:
    """Tests for fuse_hypotheses / HypothesisFuser"""

    def test_merges_duplicates_and_sums_weights(self, pool, params):
        h1 = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0, 1, 2, 3, 4])
        h2 = _hyp(pool, Pose2D(0.005, 0.0, 0.0), [0, 1, 2])
        h3 = _hyp(pool, Pose2D(10.0, 0.0, 0.0), [5, 6, 7, 8])

        belief = fuse_hypotheses([h1, h2, h3], params)

        assert len(belief) == 2
        assert belief[0].weight == 8.0
        assert belief[0].mean == h1.mean
        assert belief[0].inliers is h1.inliers
        assert belief[1].weight == 4.0

    def test_larger_weight_wins_regardless_of_order(self, pool, params):
        small = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0, 1, 2])
        large = _hyp(pool, Pose2D(0.004, 0.0, 0.0), [0, 1, 2, 3, 4])

        belief = fuse_hypotheses([small, large], params)

        assert len(belief) == 1
        assert belief[0].mean == large.mean
        assert belief[0].num_inliers == 5
        assert belief[0].weight == 8.0

    def test_exact_tie_keeps_earlier(self, pool, params):
        first = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0, 1, 2])
        second = _hyp(pool, Pose2D(0.004, 0.0, 0.0), [3, 4, 5])
        belief = fuse_hypotheses([first, second], params)
        assert belief[0].mean == first.mean

    def test_equal_weight_prefers_larger_inlier_set(self, pool, params):
        first = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0, 1], weight=5.0)
        second = _hyp(pool, Pose2D(0.004, 0.0, 0.0), [3, 4, 5], weight=5.0)
        belief = fuse_hypotheses([first, second], params)
        assert belief[0].mean == second.mean

    def test_chained_modes_collapse(self, pool, params):
        """A merge moving a mean into range of another mode triggers a further merge"""
        a = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0], weight=1.0)
        c = _hyp(pool, Pose2D(0.018, 0.0, 0.0), [1], weight=1.0)
        b = _hyp(pool, Pose2D(0.009, 0.0, 0.0), [2], weight=5.0)

        belief = fuse_hypotheses([a, c, b], params)

        assert len(belief) == 1
        assert belief[0].weight == 7.0
        assert belief[0].mean == b.mean

    def test_output_is_pairwise_distinct(self, pool, params, rng):
        hyps = [
            _hyp(pool, Pose2D(float(x), 0.0, 0.0), [int(i)], weight=float(w))
            for x, i, w in zip(rng.uniform(0.0, 0.05, 40), rng.integers(0, 10, 40), rng.integers(1, 9, 40))
        ]
        belief = fuse_hypotheses(hyps, params)
        modes = list(belief)
        for i in range(len(modes)):
            for j in range(i + 1, len(modes)):
                assert not is_same_mode(modes[i], modes[j], params)
        assert belief.total_weight == pytest.approx(sum(h.weight for h in hyps))

    def test_idempotent(self, pool, params, rng):
        hyps = [
            _hyp(pool, Pose2D(float(x), float(y), float(t)), [int(i), int(i) + 1 if i < 9 else 0],
                 weight=float(w))
            for x, y, t, i, w in zip(
                rng.uniform(0.0, 0.04, 60), rng.uniform(0.0, 0.04, 60), rng.uniform(-0.003, 0.003, 60),
                rng.integers(0, 10, 60), rng.integers(1, 5, 60))
        ]
        fuser = HypothesisFuser(params)
        once = fuser.fuse(hyps)
        twice = fuser.fuse_belief(once)
        assert _as_tuples(twice) == _as_tuples(once)

    def test_empty(self, params):
        belief = fuse_hypotheses([], params)
        assert belief.is_empty
        assert belief.best() is None


class TestPoseBelief:
    """Tests for PoseBelief accessors"""

    def test_best_is_largest_inlier_set(self, pool):
        heavy = _hyp(pool, Pose2D(0.0, 0.0, 0.0), [0, 1, 2], weight=50.0)
        wide = _hyp(pool, Pose2D(5.0, 0.0, 0.0), [3, 4, 5, 6], weight=4.0)
        belief = PoseBelief(modes=(heavy, wide))
        assert belief.best() is wide

    def test_summaries_and_weights(self, pool):
        a = _hyp(pool, Pose2D(1.0, 2.0, 0.1), [0, 1], weight=3.0)
        b = _hyp(pool, Pose2D(5.0, 0.0, 0.0), [3], weight=1.0)
        belief = PoseBelief(modes=(a, b))

        summaries = belief.summaries()
        assert summaries[0]["mean"] == (1.0, 2.0, 0.1)
        assert summaries[0]["num_inliers"] == 2
        assert summaries[0]["pairs"] == [(0, 0), (1, 1)]
        np.testing.assert_array_almost_equal(belief.normalized_weights(), [0.75, 0.25])
