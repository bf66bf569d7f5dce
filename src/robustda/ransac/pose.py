# Andy Zhao
"""
SE(2) pose: rigid motion from the observation (sensor) frame to the map frame.

    p_map = R(theta) @ p_obs + [x, y]

Homogeneous form:

    T = [[cos, -sin, x],
         [sin,  cos, y],
         [  0,    0, 1]]

Composition follows the usual "oplus" convention:

    (a ⊕ b) maps b-frame points into a's parent frame, i.e. T_a @ T_b
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .types import Points2D, Mat3x3, FloatArray


def wrap_to_pi(angle: float) -> float:
    """
    Wrap an angle into (-pi, pi].
    """
    a = math.fmod(float(angle) + math.pi, 2.0 * math.pi)
    if a <= 0.0:
        a += 2.0 * math.pi
    return a - math.pi


@dataclass(frozen=True)
class Pose2D:
    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0

    # ---------- Construction ----------
    @classmethod
    def from_matrix(cls, T: Mat3x3) -> "Pose2D":
        if T.shape != (3, 3):
            raise ValueError(f"Expected T shape (3,3), got {T.shape}")
        return cls(float(T[0, 2]), float(T[1, 2]), math.atan2(float(T[1, 0]), float(T[0, 0])))

    @classmethod
    def from_array(cls, v: FloatArray) -> "Pose2D":
        x, y, theta = (float(c) for c in np.asarray(v, dtype=np.float64).reshape(3))
        return cls(x, y, wrap_to_pi(theta))

    # ---------- Conversions ----------
    def as_array(self) -> FloatArray:
        return np.array([self.x, self.y, self.theta], dtype=np.float64)

    def rotation(self) -> FloatArray:
        c, s = math.cos(self.theta), math.sin(self.theta)
        return np.array([[c, -s], [s, c]], dtype=np.float64)

    def as_matrix(self) -> Mat3x3:
        T = np.eye(3, dtype=np.float64)
        T[:2, :2] = self.rotation()
        T[0, 2] = self.x
        T[1, 2] = self.y
        return T

    # ---------- Group operations ----------
    def compose(self, other: "Pose2D") -> "Pose2D":
        """
        self ⊕ other
        """
        c, s = math.cos(self.theta), math.sin(self.theta)
        return Pose2D(
            self.x + c * other.x - s * other.y,
            self.y + s * other.x + c * other.y,
            wrap_to_pi(self.theta + other.theta),
        )

    def inverse(self) -> "Pose2D":
        """
        ⊖self, such that self.compose(self.inverse()) is the identity.
        """
        c, s = math.cos(self.theta), math.sin(self.theta)
        return Pose2D(
            -(c * self.x + s * self.y),
            s * self.x - c * self.y,
            wrap_to_pi(-self.theta),
        )

    # ---------- Acting on points ----------
    def transform_points(self, pts: Points2D) -> Points2D:
        """
        Map (N,2) observation-frame points into the map frame.
        """
        pts = np.asarray(pts, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[1] != 2:
            raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")
        return pts @ self.rotation().T + np.array([self.x, self.y], dtype=np.float64)

    def inverse_transform_points(self, pts: Points2D) -> Points2D:
        """
        Map (N,2) map-frame points into the observation frame.
        """
        pts = np.asarray(pts, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[1] != 2:
            raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")
        return (pts - np.array([self.x, self.y], dtype=np.float64)) @ self.rotation()

    def compose_point(self, x: float, y: float) -> tuple[float, float]:
        c, s = math.cos(self.theta), math.sin(self.theta)
        return self.x + c * x - s * y, self.y + s * x + c * y

    # ---------- Comparison helpers ----------
    def distance_to(self, other: "Pose2D") -> float:
        """
        Euclidean distance between the two positions (angle ignored).
        """
        return math.hypot(self.x - other.x, self.y - other.y)

    def angle_to(self, other: "Pose2D") -> float:
        """
        Absolute wrapped angular difference in [0, pi].
        """
        return abs(wrap_to_pi(self.theta - other.theta))

    def __str__(self) -> str:
        return f"[{self.x:.6f} {self.y:.6f} {math.degrees(self.theta):.6f}deg]"
