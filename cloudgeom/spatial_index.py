"""Spatial index contract and a k-d tree implementation.

Normal estimation only talks to SpatialIndex, so any structure that can
answer KNN / radius / hybrid queries (k-d tree, ball tree, grid) can be
swapped in through the index_factory argument of estimate_normals.
"""
import itertools
from abc import ABC, abstractmethod

import numpy as np
from scipy.spatial import cKDTree

from .errors import IndexUnavailable
from .search_param import (
    KNNSearchParam,
    RadiusSearchParam,
    check_search_param,
)


def _as_offsets(counts: np.ndarray) -> np.ndarray:
    offsets = np.zeros(len(counts) + 1, dtype=np.int64)
    np.cumsum(counts, out=offsets[1:])
    return offsets


class SpatialIndex(ABC):
    """Read-only neighbour index over a fixed set of positions.

    Implementations must be safe for concurrent queries once constructed and
    must return the query point itself when it is one of the indexed points.

    A constructor that cannot build the index should raise IndexUnavailable;
    estimate_normals wraps any other exception from it in IndexUnavailable.
    Returned neighbour indices must lie in [0, N).
    """

    @abstractmethod
    def query(self, point: np.ndarray, param):
        """Neighbours of one point.

        Args:
            point: (3,) query position.
            param: KNNSearchParam, RadiusSearchParam or HybridSearchParam.

        Returns:
            Tuple of (indices (K,) int64, distances (K,)) sorted by
            ascending distance.
        """

    def query_neighborhoods(self, points: np.ndarray, param):
        """Neighbours of many points in CSR layout.

        The neighbours of query i are indices[offsets[i]:offsets[i + 1]].

        Args:
            points: (M, 3) query positions.
            param: Search variant.

        Returns:
            Tuple of (offsets (M + 1,) int64, indices (total,) int64).
        """
        check_search_param(param)
        chunks = [self.query(p, param)[0] for p in np.asarray(points).reshape(-1, 3)]
        counts = np.array([len(c) for c in chunks], dtype=np.int64)
        if chunks:
            indices = np.concatenate(chunks).astype(np.int64)
        else:
            indices = np.zeros(0, dtype=np.int64)
        return _as_offsets(counts), indices


class KDTreeIndex(SpatialIndex):
    """SpatialIndex backed by scipy's cKDTree.

    Args:
        positions: (N, 3) point coordinates. Copied by cKDTree.

    Raises:
        IndexUnavailable: If the positions are empty, not (N, 3), or
            contain NaN/Inf.
    """

    def __init__(self, positions: np.ndarray):
        pts = np.asarray(positions, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[1] != 3:
            raise IndexUnavailable(f"positions must be (N, 3), got {pts.shape}")
        if len(pts) == 0:
            raise IndexUnavailable("cannot build an index over zero points")
        if not np.all(np.isfinite(pts)):
            raise IndexUnavailable("positions contain NaN or Inf")
        try:
            self._tree = cKDTree(pts)
        except (ValueError, MemoryError) as exc:
            raise IndexUnavailable(f"k-d tree construction failed: {exc}") from exc
        self._n = len(pts)

    def __len__(self) -> int:
        return self._n

    def _knn_bounds(self, param):
        """k and distance bound for the cKDTree.query based variants."""
        if isinstance(param, KNNSearchParam):
            return min(param.knn, self._n), np.inf
        # cKDTree's bound is exclusive; radius search is inclusive
        return min(param.max_nn, self._n), np.nextafter(param.radius, np.inf)

    def query(self, point: np.ndarray, param):
        check_search_param(param)
        p = np.asarray(point, dtype=np.float64).reshape(3)

        if isinstance(param, RadiusSearchParam):
            idx = np.asarray(self._tree.query_ball_point(p, param.radius),
                             dtype=np.int64)
            dist = np.linalg.norm(self._tree.data[idx] - p, axis=1)
            order = np.argsort(dist, kind='stable')
            return idx[order], dist[order]

        k, bound = self._knn_bounds(param)
        dist, idx = self._tree.query(p, k=k, distance_upper_bound=bound)
        dist = np.atleast_1d(dist)
        idx = np.atleast_1d(idx)
        valid = idx < self._n
        return idx[valid].astype(np.int64), dist[valid]

    def query_neighborhoods(self, points: np.ndarray, param):
        check_search_param(param)
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)

        if isinstance(param, RadiusSearchParam):
            lists = self._tree.query_ball_point(pts, param.radius, workers=-1)
            counts = np.fromiter((len(nbrs) for nbrs in lists),
                                 dtype=np.int64, count=len(lists))
            indices = np.fromiter(itertools.chain.from_iterable(lists),
                                  dtype=np.int64, count=int(counts.sum()))
            return _as_offsets(counts), indices

        k, bound = self._knn_bounds(param)
        _, idx = self._tree.query(pts, k=k, distance_upper_bound=bound, workers=-1)
        idx = np.asarray(idx).reshape(len(pts), -1)
        # Missing neighbours come back as index N
        valid = idx < self._n
        counts = valid.sum(axis=1).astype(np.int64)
        indices = idx[valid].astype(np.int64)
        return _as_offsets(counts), indices
