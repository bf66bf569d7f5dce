# Andy Zhao
"""
Synthetic maps and observations for demos and tests.

Observation model: the sensor at `pose` (map frame) sees the landmarks closest
to it, each expressed in the sensor frame plus isotropic Gaussian noise:

    o_j = pose^-1 (m_id(j)) + N(0, sigma^2 I)
"""

from __future__ import annotations

import math

import numpy as np

from ..ransac.errors import InvalidInputError
from ..ransac.pose import Pose2D
from ..ransac.types import Points2D, IndexArray
from .pointset import PointSet


def random_map(n: int, size_x: float, size_y: float, rng: np.random.Generator) -> PointSet:
    """
    n landmarks uniform in [0, size_x] x [0, size_y].
    """
    xs = rng.uniform(0.0, size_x, size=n)
    ys = rng.uniform(0.0, size_y, size=n)
    return PointSet(np.column_stack([xs, ys]))


def random_pose(size_x: float, size_y: float, rng: np.random.Generator, *, margin: float = 10.0) -> Pose2D:
    """
    Uniform pose over the map area grown by `margin`, heading in [-pi, pi].
    """
    return Pose2D(
        float(rng.uniform(-margin, size_x + margin)),
        float(rng.uniform(-margin, size_y + margin)),
        float(rng.uniform(-math.pi, math.pi)),
    )


def simulate_observations(
        point_set: PointSet,
        pose: Pose2D,
        n_obs: int,
        noise_std: float,
        rng: np.random.Generator,
        *,
        search_radius: float = 1000.0,
) -> tuple[Points2D, IndexArray]:
    """
    Observe the n_obs landmarks closest to `pose`.

    Returns:
      observations: (n_obs,2) sensor-frame points
      gt_ids:       (n_obs,) ground-truth map index of each observation
    """
    idx, _ = point_set.radius_search((pose.x, pose.y), search_radius)
    if idx.shape[0] < n_obs:
        raise InvalidInputError(
            f"Only {idx.shape[0]} landmarks within {search_radius} of the pose, need {n_obs}")

    gt_ids = idx[:n_obs]
    local = pose.inverse_transform_points(point_set.points[gt_ids])
    if noise_std > 0.0:
        local = local + rng.normal(0.0, noise_std, size=local.shape)
    return local, gt_ids
