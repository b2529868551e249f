"""Numba JIT-compiled kernels for the per-point normal fitting loop.

1. neighborhood_covariance: mean-centred 3x3 covariance of a neighbourhood
2. fit_normal: smallest-eigenvalue eigenvector with degeneracy test
3. estimate_normals: parallel loop over all points (one write per point)
"""
import math
import numpy as np
from numba import njit, prange


# ─────────────────────────────────────────────────────────────
#  Vector helpers
# ─────────────────────────────────────────────────────────────

@njit(cache=True)
def vec3_dot(a, b):
    """Dot product of two 3-vectors."""
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


@njit(cache=True)
def vec3_norm(a):
    """Norm of 3-vector."""
    return math.sqrt(a[0] * a[0] + a[1] * a[1] + a[2] * a[2])


# ─────────────────────────────────────────────────────────────
#  Local PCA
# ─────────────────────────────────────────────────────────────

@njit(cache=True)
def neighborhood_covariance_jit(points, nbr_idx):
    """Covariance of points[nbr_idx], divided by the neighbour count.

    Two passes (mean first, then centred outer products) to avoid the
    cancellation of the sum-of-squares form far from the origin.
    """
    n = nbr_idx.shape[0]
    mean = np.zeros(3)
    for m in range(n):
        p = points[nbr_idx[m]]
        mean[0] += p[0]
        mean[1] += p[1]
        mean[2] += p[2]
    mean[0] /= n
    mean[1] /= n
    mean[2] /= n

    cov = np.zeros((3, 3))
    d = np.empty(3)
    for m in range(n):
        p = points[nbr_idx[m]]
        d[0] = p[0] - mean[0]
        d[1] = p[1] - mean[1]
        d[2] = p[2] - mean[2]
        for i in range(3):
            for j in range(i, 3):
                cov[i, j] += d[i] * d[j]

    for i in range(3):
        for j in range(i, 3):
            cov[i, j] /= n
            cov[j, i] = cov[i, j]
    return cov


@njit(cache=True)
def fit_normal_jit(cov, degenerate_tol):
    """Least-variance direction of a symmetric 3x3 covariance.

    The neighbourhood is degenerate when the covariance has rank < 2:
    all points coincide (largest eigenvalue <= 0) or are collinear
    (middle eigenvalue <= degenerate_tol * largest).

    Returns:
        Tuple of (normal (3,), is_valid). normal is zeros when not valid.
    """
    evals, evecs = np.linalg.eigh(cov)  # ascending
    if evals[2] <= 0.0 or evals[1] <= degenerate_tol * evals[2]:
        return np.zeros(3), False
    return evecs[:, 0].copy(), True


# ─────────────────────────────────────────────────────────────
#  Batch normal estimation
# ─────────────────────────────────────────────────────────────

@njit(parallel=True, cache=True)
def estimate_normals_jit(points, offsets, indices, references, fallbacks,
                         degenerate_tol):
    """Fit and orient one normal per point.

    Args:
        points: (N, 3) positions.
        offsets: (N + 1,) CSR offsets into indices.
        indices: (total,) neighbour indices; point i's neighbourhood is
            indices[offsets[i]:offsets[i + 1]].
        references: (N, 3) orientation reference per point.
        fallbacks: (N, 3) normal written for degenerate neighbourhoods.
        degenerate_tol: Relative eigenvalue threshold for rank < 2.

    Returns:
        Tuple of (normals (N, 3), degenerate (N,) bool).
    """
    N = points.shape[0]
    normals = np.empty((N, 3))
    degenerate = np.zeros(N, dtype=np.bool_)

    for i in prange(N):
        start = offsets[i]
        end = offsets[i + 1]
        candidate = np.zeros(3)
        ok = False
        if end - start >= 3:
            cov = neighborhood_covariance_jit(points, indices[start:end])
            candidate, ok = fit_normal_jit(cov, degenerate_tol)

        if ok:
            # Eigenvectors have no canonical sign
            sign = -1.0 if vec3_dot(candidate, references[i]) < 0.0 else 1.0
            scale = sign / vec3_norm(candidate)
            normals[i, 0] = candidate[0] * scale
            normals[i, 1] = candidate[1] * scale
            normals[i, 2] = candidate[2] * scale
        else:
            degenerate[i] = True
            normals[i, 0] = fallbacks[i, 0]
            normals[i, 1] = fallbacks[i, 1]
            normals[i, 2] = fallbacks[i, 2]

    return normals, degenerate


# ─────────────────────────────────────────────────────────────
#  Warm-up: compile every kernel once before real data arrives
# ─────────────────────────────────────────────────────────────

def warmup():
    """Pre-compile all JIT functions with dummy data."""
    v = np.array([0.1, 0.2, 0.3])
    vec3_dot(v, v)
    vec3_norm(v)

    pts = np.array([[0.0, 0.0, 0.0],
                    [1.0, 0.0, 0.0],
                    [0.0, 1.0, 0.0],
                    [1.0, 1.0, 0.1]])
    idx = np.arange(4, dtype=np.int64)
    cov = neighborhood_covariance_jit(pts, idx)
    fit_normal_jit(cov, 1e-12)

    offsets = np.array([0, 4, 8, 12, 16], dtype=np.int64)
    indices = np.tile(idx, 4)
    refs = np.tile(np.array([0.0, 0.0, 1.0]), (4, 1))
    estimate_normals_jit(pts, offsets, indices, refs, refs, 1e-12)
