import math

import numpy as np
import pytest

from robustda.association import CorrespondencePool, FusionParams
from robustda.ransac import Pose2D, RansacParams


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_params():
    """Factory for RansacParams with test-friendly values, overridable per field."""
    def _make(**overrides):
        values = dict(
            noise_std=0.1,
            min_inliers=5,
            max_inliers=1000,
            mahalanobis_threshold=4.0,
            probability=0.9999,
            min_iterations=50,
            landmarks=True,
        )
        values.update(overrides)
        return RansacParams(**values)
    return _make


@pytest.fixture
def fusion_params():
    return FusionParams(max_diff_xy=0.01, max_diff_phi=math.radians(0.1), by_correspondences=True)


@pytest.fixture
def true_pose():
    return Pose2D(3.0, -2.0, 0.7)


@pytest.fixture
def make_consistent_scene(true_pose):
    """
    Factory: n map points and their observations under `true_pose`,
    returned with the identity pairing list [(i, i)].
    """
    def _make(n, rng, noise_std=0.0, extent=20.0):
        map_pts = rng.uniform(0.0, extent, size=(n, 2))
        obs = true_pose.inverse_transform_points(map_pts)
        if noise_std > 0.0:
            obs = obs + rng.normal(0.0, noise_std, size=obs.shape)
        pairs = [(i, i) for i in range(n)]
        return map_pts, obs, pairs
    return _make


@pytest.fixture
def make_consistent_pool(make_consistent_scene):
    def _make(n, rng, noise_std=0.0):
        map_pts, obs, pairs = make_consistent_scene(n, rng, noise_std)
        return CorrespondencePool.from_pairs(map_pts, obs, pairs)
    return _make
