# Andy Zhao
"""
Rigid (SE(2)) model utilities.

We estimate the pose (x, y, theta) such that, for every correspondence:

    m_i  ≈  R(theta) @ o_i + t

where o_i are observation-frame points and m_i the paired map points.

Least-squares solution (2D Procrustes, closed form):

    a_i = o_i - mean(o),  b_i = m_i - mean(m)
    theta = atan2( sum(a_x*b_y - a_y*b_x), sum(a_x*b_x + a_y*b_y) )
    t     = mean(m) - R(theta) @ mean(o)

Uncertainty: isotropic Gaussian noise (variance sigma^2) on each observation,
propagated to the three pose parameters through the Jacobian

    J_i = d(R o_i + t) / d(x, y, theta) = [ I_2 | dR/dtheta @ o_i ]
    cov = sigma^2 * ( sum_i J_i^T J_i )^-1
"""

from __future__ import annotations

import math

import numpy as np

from .errors import DegenerateGeometryError
from .pose import Pose2D
from .types import Points2D, FloatArray, Cov3x3

# Below this, a centered point spread (sum of squared norms) counts as coincident.
_EPS_SPREAD = 1e-12


def _check_pair_shapes(obs: Points2D, map_pts: Points2D) -> tuple[Points2D, Points2D]:
    obs = np.asarray(obs, dtype=np.float64)
    map_pts = np.asarray(map_pts, dtype=np.float64)
    if obs.shape != map_pts.shape or obs.ndim != 2 or obs.shape[1] != 2:
        raise DegenerateGeometryError(
            f"Expected matching (N,2) point arrays, got {obs.shape} vs {map_pts.shape}")
    return obs, map_pts


def _rotation_derivative(theta: float) -> FloatArray:
    """
    dR/dtheta for R = [[c, -s], [s, c]].
    """
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[-s, -c], [c, -s]], dtype=np.float64)


# ---------- Fitting ----------
def rigid_information(obs: Points2D, theta: float) -> FloatArray:
    """
    Unit-noise information matrix sum_i J_i^T J_i over (x, y, theta).
    """
    q = obs @ _rotation_derivative(theta).T   # (N,2) = dR/dtheta @ o_i
    n = float(obs.shape[0])
    sx, sy = float(np.sum(q[:, 0])), float(np.sum(q[:, 1]))
    # |dR o|^2 == |o|^2 since dR/dtheta is a rotation by +90deg of R
    sqq = float(np.sum(q * q))
    return np.array(
        [
            [n, 0.0, sx],
            [0.0, n, sy],
            [sx, sy, sqq],
        ],
        dtype=np.float64,
    )


def fit_rigid_transform(
        obs: Points2D,
        map_pts: Points2D,
        *,
        noise_std: float = 1.0,
) -> tuple[Pose2D, Cov3x3]:
    """
    Least-squares rigid transform from N >= 2 correspondences, plus its covariance.

    obs:     (N,2) observation-frame points
    map_pts: (N,2) paired map points
    noise_std: per-point isotropic noise sigma; the covariance is scaled by sigma^2
               (noise_std=1.0 gives the normalized covariance)

    Raises DegenerateGeometryError if the rotation or translation is not constrained.
    """
    obs, map_pts = _check_pair_shapes(obs, map_pts)
    n = obs.shape[0]
    if n < 2:
        raise DegenerateGeometryError(f"Rigid fit needs at least 2 correspondences, got {n}")

    mean_o = obs.mean(axis=0)
    mean_m = map_pts.mean(axis=0)
    a = obs - mean_o
    b = map_pts - mean_m

    # Coincident points on either side leave the rotation undetermined
    if float(np.sum(a * a)) < _EPS_SPREAD or float(np.sum(b * b)) < _EPS_SPREAD:
        raise DegenerateGeometryError("Coincident points: rotation is not observable")

    cross = float(np.sum(a[:, 0] * b[:, 1] - a[:, 1] * b[:, 0]))
    dot = float(np.sum(a[:, 0] * b[:, 0] + a[:, 1] * b[:, 1]))
    if math.hypot(cross, dot) < _EPS_SPREAD:
        raise DegenerateGeometryError("Rotation is undefined (cross and dot sums vanish)")

    theta = math.atan2(cross, dot)
    c, s = math.cos(theta), math.sin(theta)
    tx = float(mean_m[0] - (c * mean_o[0] - s * mean_o[1]))
    ty = float(mean_m[1] - (s * mean_o[0] + c * mean_o[1]))

    info = rigid_information(obs, theta)
    try:
        cov = np.linalg.inv(info)
    except np.linalg.LinAlgError as exc:
        raise DegenerateGeometryError("Singular information matrix") from exc

    cov = 0.5 * (cov + cov.T) * float(noise_std) ** 2
    return Pose2D(tx, ty, theta), cov


# ---------- Residuals ----------
def residual_vectors(pose: Pose2D, obs: Points2D, map_pts: Points2D) -> Points2D:
    """
    r_i = R o_i + t - m_i, shape (N,2).
    """
    return pose.transform_points(obs) - np.asarray(map_pts, dtype=np.float64)


def residuals_L2(pose: Pose2D, obs: Points2D, map_pts: Points2D) -> FloatArray:
    """
    Euclidean residual per correspondence, shape (N,).
    """
    return np.linalg.norm(residual_vectors(pose, obs, map_pts), axis=1)


def mahalanobis_residuals(
        pose: Pose2D,
        cov: Cov3x3,
        obs: Points2D,
        map_pts: Points2D,
        *,
        noise_std: float,
) -> FloatArray:
    """
    Covariance-normalized distance per correspondence, shape (N,).

    Each residual has covariance

        S_i = sigma^2 I + J_i cov J_i^T

    i.e. the observation noise plus the pose uncertainty projected at o_i.
    Returns sqrt(r_i^T S_i^-1 r_i).
    """
    obs = np.asarray(obs, dtype=np.float64)
    r = residual_vectors(pose, obs, map_pts)
    q = obs @ _rotation_derivative(pose.theta).T

    P = np.asarray(cov, dtype=np.float64)
    var = float(noise_std) ** 2
    qx, qy = q[:, 0], q[:, 1]

    # Closed-form 2x2 S_i for all points at once
    s_xx = var + P[0, 0] + 2.0 * qx * P[0, 2] + qx * qx * P[2, 2]
    s_yy = var + P[1, 1] + 2.0 * qy * P[1, 2] + qy * qy * P[2, 2]
    s_xy = P[0, 1] + qx * P[1, 2] + qy * P[0, 2] + qx * qy * P[2, 2]

    det = s_xx * s_yy - s_xy * s_xy
    rx, ry = r[:, 0], r[:, 1]
    d2 = (s_yy * rx * rx - 2.0 * s_xy * rx * ry + s_xx * ry * ry) / det
    return np.sqrt(np.maximum(d2, 0.0))
