"""Axis-aligned bounds of a point set."""
import numpy as np


def compute_min_bound(points: np.ndarray) -> np.ndarray:
    """Componentwise minimum of (N, 3) points; zeros for an empty set."""
    if len(points) == 0:
        return np.zeros(3)
    return points.min(axis=0)


def compute_max_bound(points: np.ndarray) -> np.ndarray:
    """Componentwise maximum of (N, 3) points; zeros for an empty set."""
    if len(points) == 0:
        return np.zeros(3)
    return points.max(axis=0)


def compute_bounds(points: np.ndarray):
    """Return (min_bound, max_bound) as two (3,) arrays.

    An empty set yields two zero vectors, so callers that need to tell an
    empty cloud apart from one sitting at the origin must check for points
    first.
    """
    return compute_min_bound(points), compute_max_bound(points)
