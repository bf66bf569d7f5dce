# Andy Zhao
"""
2D point set with KD-tree queries, plus the plain-text landmark map format.

Map file format, one landmark per line (whitespace separated):

    ID X Y

ID is an integer, X/Y are floats. Blank lines and '#' comments are ignored.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np
from scipy.spatial import KDTree

from ..ransac.errors import InvalidInputError
from ..ransac.types import Points2D, FloatArray, IndexArray

# Fewer landmarks than this cannot constrain a useful association.
MIN_MAP_LANDMARKS = 3


class PointSet:
    """
    Immutable (N,2) point storage. The KD-tree is built on first query.
    """

    def __init__(self, points) -> None:
        pts = np.array(points, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[1] != 2:
            raise InvalidInputError(f"Expected points shape (N,2), got {pts.shape}")
        if not np.isfinite(pts).all():
            raise InvalidInputError("Point set contains non-finite coordinates")
        pts.setflags(write=False)
        self._points = pts
        self._tree: Optional[KDTree] = None

    @classmethod
    def from_file(cls, path: str | Path) -> "PointSet":
        _, pts = load_map_file(path)
        return cls(pts)

    def __len__(self) -> int:
        return int(self._points.shape[0])

    @property
    def points(self) -> Points2D:
        return self._points

    def point(self, i: int) -> tuple[float, float]:
        p = self._points[i]
        return float(p[0]), float(p[1])

    def _kdtree(self) -> KDTree:
        if self._tree is None:
            if len(self) == 0:
                raise InvalidInputError("Cannot query an empty point set")
            self._tree = KDTree(self._points)
        return self._tree

    def radius_search(self, center, radius: float) -> tuple[IndexArray, FloatArray]:
        """
        All points within `radius` of `center`.

        Returns (indices, squared distances), sorted by increasing distance.
        """
        c = np.asarray(center, dtype=np.float64).reshape(2)
        idx = np.asarray(self._kdtree().query_ball_point(c, r=float(radius)), dtype=np.intp)
        if idx.size == 0:
            return idx, np.zeros((0,), dtype=np.float64)
        diff = self._points[idx] - c
        sq = np.sum(diff * diff, axis=1)
        order = np.argsort(sq, kind="stable")
        return idx[order], sq[order]

    def nearest(self, center, k: int = 1) -> tuple[IndexArray, FloatArray]:
        """
        The k nearest points to `center`: (indices, distances), closest first.
        """
        k = min(int(k), len(self))
        if k < 1:
            raise InvalidInputError("k must be >= 1")
        c = np.asarray(center, dtype=np.float64).reshape(2)
        dist, idx = self._kdtree().query(c, k=k)
        return (np.atleast_1d(np.asarray(idx, dtype=np.intp)),
                np.atleast_1d(np.asarray(dist, dtype=np.float64)))


# ---------- Map files ----------
def load_map_file(path: str | Path) -> tuple[IndexArray, Points2D]:
    """
    Read an 'ID X Y' landmark file -> (ids (N,), points (N,2)).
    """
    path = Path(path)
    ids: list[int] = []
    pts: list[tuple[float, float]] = []

    with path.open("r", encoding="utf-8") as f:
        for lineno, raw in enumerate(f, start=1):
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            fields = line.split()
            if len(fields) != 3:
                raise InvalidInputError(
                    f"{path}:{lineno}: expected 'ID X Y', got {len(fields)} fields")
            try:
                ids.append(int(fields[0]))
                pts.append((float(fields[1]), float(fields[2])))
            except ValueError as exc:
                raise InvalidInputError(f"{path}:{lineno}: {exc}") from exc

    if len(pts) < MIN_MAP_LANDMARKS:
        raise InvalidInputError(
            f"{path}: map needs at least {MIN_MAP_LANDMARKS} landmarks, got {len(pts)}")

    points = np.asarray(pts, dtype=np.float64)
    if not np.isfinite(points).all():
        raise InvalidInputError(f"{path}: non-finite coordinates")
    return np.asarray(ids, dtype=np.intp), points


def save_map_file(path: str | Path, points: Points2D, ids: Optional[IndexArray] = None) -> None:
    """
    Write points as 'ID X Y' lines. IDs default to 0..N-1.
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 2:
        raise InvalidInputError(f"Expected points shape (N,2), got {points.shape}")
    if ids is None:
        ids = np.arange(points.shape[0], dtype=np.intp)
    ids = np.asarray(ids, dtype=np.intp)
    if ids.shape != (points.shape[0],):
        raise InvalidInputError("ids must have one entry per point")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        for i, (x, y) in zip(ids.tolist(), points.tolist()):
            f.write(f"{i} {x!r} {y!r}\n")
