"""Surface normal estimation by local principal component analysis.

For every point the neighbourhood covariance is eigen-decomposed and the
eigenvector of the smallest eigenvalue is taken as the normal. Its sign is
chosen per point against a reference vector; no orientation is propagated
between neighbours, so a globally consistent orientation over a curved
surface is not guaranteed.
"""
import logging
import math
import numbers
import warnings

import numpy as np

from .errors import DegenerateNeighborhoodWarning, IndexUnavailable, InvalidArgument
from .numba_kernels import estimate_normals_jit
from .point_cloud import PointCloud
from .search_param import KNNSearchParam, check_search_param
from .spatial_index import KDTreeIndex

logger = logging.getLogger(__name__)

DEFAULT_ORIENTATION = np.array([0.0, 0.0, 1.0])
DEFAULT_DEGENERATE_TOL = 1e-12


def _reference_array(reference, n: int) -> np.ndarray:
    """Broadcast a (3,) or (N, 3) orientation reference to (N, 3)."""
    try:
        ref = np.asarray(reference, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"orientation_reference must be numeric: {exc}") from exc
    if ref.shape == (3,):
        ref = np.broadcast_to(ref, (n, 3))
    elif ref.shape != (n, 3):
        raise InvalidArgument(
            f"orientation_reference must be (3,) or ({n}, 3), got {ref.shape}")
    if not np.all(np.isfinite(ref)):
        raise InvalidArgument("orientation_reference contains NaN or Inf")
    if np.any(~ref.any(axis=1)):
        raise InvalidArgument("orientation_reference must be non-zero")
    return np.array(ref, dtype=np.float64, order='C')


def _unit_rows(vectors: np.ndarray) -> np.ndarray:
    return vectors / np.linalg.norm(vectors, axis=1, keepdims=True)


def estimate_normals(cloud: PointCloud, search_param=None,
                     orientation_reference=None,
                     index_factory=KDTreeIndex,
                     degenerate_tol: float = DEFAULT_DEGENERATE_TOL) -> np.ndarray:
    """Compute one unit normal per point and store them in the cloud.

    Orientation:
        * orientation_reference is None: each normal is flipped to agree with
          the normal the cloud already had at that index, or with +Z if the
          cloud had no normals.
        * orientation_reference given: each normal is flipped to agree with
          it; existing normals are not consulted for orientation.

    Degenerate neighbourhoods (fewer than 3 neighbours, or coincident or
    collinear neighbours) get a fallback instead of a fitted normal: the
    existing normal if the cloud had normals, otherwise the unit reference
    direction. They are reported through DegenerateNeighborhoodWarning.

    Args:
        cloud: Cloud with at least one point. Only its normals are changed.
        search_param: KNNSearchParam (default, k=30), RadiusSearchParam or
            HybridSearchParam. The query point counts as its own neighbour.
        orientation_reference: Optional (3,) direction, or (N, 3) per-point
            directions. Must be finite and non-zero.
        index_factory: Callable building a SpatialIndex from (N, 3)
            positions. Called once, before any query.
        degenerate_tol: Middle/largest eigenvalue ratio at or below which a
            neighbourhood counts as collinear.

    Returns:
        (N,) bool mask of points that received the fallback normal.

    Raises:
        InvalidArgument: On an empty cloud or bad parameters. The cloud is
            not modified.
        IndexUnavailable: If index_factory fails (its exception is chained),
            or the index returns malformed or out-of-range neighbourhoods.
    """
    if search_param is None:
        search_param = KNNSearchParam()
    check_search_param(search_param)
    if (isinstance(degenerate_tol, bool) or not isinstance(degenerate_tol, numbers.Real)
            or not math.isfinite(degenerate_tol) or degenerate_tol < 0):
        raise InvalidArgument(
            f"degenerate_tol must be a finite number >= 0, got {degenerate_tol!r}")
    if not cloud.has_points():
        raise InvalidArgument("estimate_normals requires a non-empty cloud")

    points = np.array(cloud.points, dtype=np.float64)
    n = len(points)
    previous = np.array(cloud.normals) if cloud.has_normals() else None

    if orientation_reference is not None:
        references = _reference_array(orientation_reference, n)
    elif previous is not None:
        references = previous
    else:
        references = np.tile(DEFAULT_ORIENTATION, (n, 1))

    fallbacks = previous if previous is not None else _unit_rows(references)

    logger.debug("Estimating normals for %d points with %s", n, search_param)
    try:
        index = index_factory(points)
    except IndexUnavailable:
        raise
    except Exception as exc:
        raise IndexUnavailable(f"spatial index construction failed: {exc}") from exc
    offsets, indices = index.query_neighborhoods(points, search_param)
    offsets = np.ascontiguousarray(offsets, dtype=np.int64)
    indices = np.ascontiguousarray(indices, dtype=np.int64)
    if (offsets.shape != (n + 1,) or offsets[0] != 0
            or offsets[-1] != len(indices) or np.any(np.diff(offsets) < 0)):
        raise IndexUnavailable(
            f"{type(index).__name__} returned malformed neighbourhoods")
    if len(indices) and (indices.min() < 0 or indices.max() >= n):
        raise IndexUnavailable(
            f"{type(index).__name__} returned neighbour indices outside [0, {n})")

    normals, degenerate = estimate_normals_jit(
        points, offsets, indices, references, fallbacks, float(degenerate_tol))

    n_degenerate = int(degenerate.sum())
    if n_degenerate:
        logger.warning("%d of %d neighbourhoods degenerate", n_degenerate, n)
        warnings.warn(
            f"{n_degenerate} of {n} points have degenerate neighbourhoods; "
            "fallback normals used",
            DegenerateNeighborhoodWarning, stacklevel=2)

    cloud.normals = normals
    return degenerate
