"""Voxel grid downsampling using NumPy.

Each occupied voxel of a uniform grid collapses to a single point at the
centroid of its members; normals and colors are averaged alongside.
"""
import logging
import math
import numbers

import numpy as np

from .errors import InvalidArgument
from .point_cloud import PointCloud

logger = logging.getLogger(__name__)

# Keys are shifted by their minimum before linearising
MAX_VOXEL_KEY = 2.0 ** 62


def check_voxel_size(voxel_size):
    if (isinstance(voxel_size, bool) or not isinstance(voxel_size, numbers.Real)
            or not math.isfinite(voxel_size) or voxel_size <= 0):
        raise InvalidArgument(
            f"voxel_size must be a positive finite number, got {voxel_size!r}")


def voxel_keys(points: np.ndarray, voxel_size: float) -> np.ndarray:
    """Integer grid cell of every point.

    Args:
        points: (N, 3) point coordinates.
        voxel_size: Voxel edge length, > 0.

    Returns:
        (N, 3) int64 keys, floor(points / voxel_size).

    Raises:
        InvalidArgument: If a scaled coordinate is outside +-2**62, where
            the int64 key (or the difference of two keys) would overflow.
    """
    check_voxel_size(voxel_size)
    scaled = np.floor(np.asarray(points, dtype=np.float64) / voxel_size)
    if scaled.size and not np.abs(scaled).max() < MAX_VOXEL_KEY:
        raise InvalidArgument(
            f"points span too many voxels of size {voxel_size!r} for int64 keys")
    return scaled.astype(np.int64)


def _group_by_voxel(keys: np.ndarray):
    """Map each point to an output slot.

    Returns:
        Tuple of (inverse (N,), n_voxels). Slots are numbered in ascending
        lexicographic order of voxel key.
    """
    # Shift to non-negative so the linear index preserves (x, y, z) order
    mins = keys.min(axis=0)
    shifted = keys - mins
    dims = shifted.max(axis=0) + 1

    if np.prod(dims.astype(np.float64)) < np.iinfo(np.int64).max:
        linear = (shifted[:, 0] * dims[1] * dims[2] +
                  shifted[:, 1] * dims[2] +
                  shifted[:, 2])
        unique_keys, inverse = np.unique(linear, return_inverse=True)
    else:
        # Grid too sparse/wide for a single int64 index
        unique_keys, inverse = np.unique(keys, axis=0, return_inverse=True)
    return inverse.reshape(-1), len(unique_keys)


def _voxel_means(values: np.ndarray, inverse: np.ndarray,
                 counts: np.ndarray, n_voxels: int) -> np.ndarray:
    means = np.empty((n_voxels, 3))
    for dim in range(3):
        means[:, dim] = np.bincount(
            inverse, weights=values[:, dim], minlength=n_voxels
        ) / counts
    return means


def voxel_down_sample(cloud: PointCloud, voxel_size: float,
                      out: PointCloud = None) -> PointCloud:
    """Downsample a point cloud using voxel grid filtering.

    For each occupied voxel, one point at the centroid of its members is
    emitted. If the input has normals (colors), the output carries the
    per-voxel mean normal (color). Averaged normals are not renormalized;
    call PointCloud.normalize_normals() for that.

    Output points are ordered by ascending voxel key (x, then y, then z),
    so the result does not depend on input order beyond floating-point
    summation.

    Args:
        cloud: Input cloud with at least one point. Never modified.
        voxel_size: Voxel edge length, > 0. Smaller values keep more points.
        out: Optional cloud to fill. It is cleared before anything else,
            so it is left empty if the call fails.

    Returns:
        The downsampled cloud (out, if given).

    Raises:
        InvalidArgument: On an empty input, non-finite coordinates, a
            non-positive voxel_size, or voxel keys that would overflow int64.
    """
    if out is None:
        out = PointCloud()
    else:
        out.clear()

    check_voxel_size(voxel_size)
    if not cloud.has_points():
        raise InvalidArgument("voxel_down_sample requires a non-empty cloud")

    points = cloud.points
    if not np.all(np.isfinite(points)):
        raise InvalidArgument("cannot voxelize points containing NaN or Inf")
    inverse, n_voxels = _group_by_voxel(voxel_keys(points, voxel_size))
    counts = np.bincount(inverse, minlength=n_voxels).astype(np.float64)

    out.points = _voxel_means(points, inverse, counts, n_voxels)
    if cloud.has_normals():
        out.normals = _voxel_means(cloud.normals, inverse, counts, n_voxels)
    if cloud.has_colors():
        out.colors = _voxel_means(cloud.colors, inverse, counts, n_voxels)

    logger.debug("Voxel downsample (size %g): %d -> %d points",
                 voxel_size, len(points), n_voxels)
    return out
