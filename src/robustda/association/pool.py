# Andy Zhao
"""
Candidate correspondences between map landmarks and observations.

The pool is built as the full cross product map x observations. No geometric
pruning happens here on purpose: rejecting wrong pairings is RANSAC's job.

Storage:
  CorrespondencePool owns four parallel read-only arrays (map index, obs index,
  map point, obs point). CorrespondenceSet is an ordered index view into a pool,
  so inlier sets never copy point storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from ..ransac.errors import InvalidInputError
from ..ransac.types import Points2D, IndexArray


def as_points(pts, *, name: str) -> Points2D:
    """
    Validate and convert an (N,2) array-like of finite coordinates to float64.
    """
    arr = np.asarray(pts, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidInputError(f"{name} must have shape (N,2), got {arr.shape}")
    if arr.shape[0] == 0:
        raise InvalidInputError(f"{name} is empty")
    if not np.isfinite(arr).all():
        raise InvalidInputError(f"{name} contains non-finite coordinates")
    return arr


def _read_only(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Correspondence:
    map_index: int
    obs_index: int
    map_point: tuple[float, float]
    obs_point: tuple[float, float]


class CorrespondencePool:
    """
    Exclusive owner of all candidate pairings.
    """

    def __init__(
            self,
            map_indices: IndexArray,
            obs_indices: IndexArray,
            map_points: Points2D,
            obs_points: Points2D,
    ) -> None:
        n = map_indices.shape[0]
        if obs_indices.shape != (n,) or map_points.shape != (n, 2) or obs_points.shape != (n, 2):
            raise InvalidInputError("Pool arrays must share the same length N")

        self._map_indices = _read_only(np.array(map_indices, dtype=np.intp))
        self._obs_indices = _read_only(np.array(obs_indices, dtype=np.intp))
        self._map_points = _read_only(np.array(map_points, dtype=np.float64))
        self._obs_points = _read_only(np.array(obs_points, dtype=np.float64))

    # ---------- Construction ----------
    @classmethod
    def build(cls, map_points, observations) -> "CorrespondencePool":
        """
        All |map| x |obs| pairings, observation-major:

            pool index = obs_index * |map| + map_index
        """
        map_pts = as_points(map_points, name="map_points")
        obs_pts = as_points(observations, name="observations")
        n_map, n_obs = map_pts.shape[0], obs_pts.shape[0]

        obs_idx = np.repeat(np.arange(n_obs, dtype=np.intp), n_map)
        map_idx = np.tile(np.arange(n_map, dtype=np.intp), n_obs)
        return cls(map_idx, obs_idx, map_pts[map_idx], obs_pts[obs_idx])

    @classmethod
    def from_pairs(
            cls,
            map_points,
            observations,
            pairs: Sequence[tuple[int, int]],
    ) -> "CorrespondencePool":
        """
        Pool restricted to explicit (map_index, obs_index) pairings, in the given order.
        """
        map_pts = as_points(map_points, name="map_points")
        obs_pts = as_points(observations, name="observations")

        arr = np.asarray(pairs, dtype=np.intp).reshape(-1, 2)
        if arr.shape[0] == 0:
            raise InvalidInputError("pairs is empty")
        map_idx, obs_idx = arr[:, 0], arr[:, 1]
        if map_idx.min() < 0 or map_idx.max() >= map_pts.shape[0]:
            raise InvalidInputError("map index out of range in pairs")
        if obs_idx.min() < 0 or obs_idx.max() >= obs_pts.shape[0]:
            raise InvalidInputError("observation index out of range in pairs")
        if len({(int(m), int(o)) for m, o in arr}) != arr.shape[0]:
            raise InvalidInputError("pairs contains duplicate (map_index, obs_index) entries")

        return cls(map_idx, obs_idx, map_pts[map_idx], obs_pts[obs_idx])

    # ---------- Access ----------
    def __len__(self) -> int:
        return int(self._map_indices.shape[0])

    def __getitem__(self, i: int) -> Correspondence:
        m = self._map_points[i]
        o = self._obs_points[i]
        return Correspondence(
            map_index=int(self._map_indices[i]),
            obs_index=int(self._obs_indices[i]),
            map_point=(float(m[0]), float(m[1])),
            obs_point=(float(o[0]), float(o[1])),
        )

    @property
    def map_indices(self) -> IndexArray:
        return self._map_indices

    @property
    def obs_indices(self) -> IndexArray:
        return self._obs_indices

    @property
    def map_points(self) -> Points2D:
        return self._map_points

    @property
    def obs_points(self) -> Points2D:
        return self._obs_points

    def full_set(self) -> "CorrespondenceSet":
        return CorrespondenceSet(self, np.arange(len(self), dtype=np.intp))

    def subset(self, indices) -> "CorrespondenceSet":
        return CorrespondenceSet(self, np.asarray(indices, dtype=np.intp))

    def empty_set(self) -> "CorrespondenceSet":
        return CorrespondenceSet(self, np.zeros((0,), dtype=np.intp))


@dataclass(frozen=True, eq=False)
class CorrespondenceSet:
    """
    Ordered view of pool entries. Used both as the candidate pool and as inlier sets.
    """
    pool: CorrespondencePool
    indices: IndexArray

    def __post_init__(self) -> None:
        idx = np.asarray(self.indices, dtype=np.intp).reshape(-1)
        if idx.size and (idx.min() < 0 or idx.max() >= len(self.pool)):
            raise InvalidInputError("CorrespondenceSet index out of range of its pool")
        # pool entries are unique pairs, so unique indices mean unique pairs
        if np.unique(idx).size != idx.size:
            raise InvalidInputError("CorrespondenceSet repeats a pool entry")
        object.__setattr__(self, "indices", _read_only(idx))

    def __len__(self) -> int:
        return int(self.indices.shape[0])

    def __iter__(self) -> Iterator[Correspondence]:
        for i in self.indices.tolist():
            yield self.pool[i]

    def __getitem__(self, k: int) -> Correspondence:
        return self.pool[int(self.indices[k])]

    # Array views, aligned with self.indices
    @property
    def map_indices(self) -> IndexArray:
        return self.pool.map_indices[self.indices]

    @property
    def obs_indices(self) -> IndexArray:
        return self.pool.obs_indices[self.indices]

    @property
    def map_points(self) -> Points2D:
        return self.pool.map_points[self.indices]

    @property
    def obs_points(self) -> Points2D:
        return self.pool.obs_points[self.indices]

    def take(self, positions) -> "CorrespondenceSet":
        """
        Sub-view from positions *within this set* (e.g. RANSAC inlier positions).
        """
        return CorrespondenceSet(self.pool, self.indices[np.asarray(positions, dtype=np.intp)])

    def pairs(self) -> list[tuple[int, int]]:
        """
        (map_index, obs_index) per entry, in set order.
        """
        return list(zip(self.map_indices.tolist(), self.obs_indices.tolist()))

    def pair_key(self) -> frozenset[tuple[int, int]]:
        return frozenset(self.pairs())


def build_correspondences(map_points, observations) -> CorrespondenceSet:
    """
    Full cross-product candidate set for map_points x observations.
    """
    return CorrespondencePool.build(map_points, observations).full_set()
