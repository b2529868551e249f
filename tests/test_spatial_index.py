import numpy as np
import pytest

from cloudgeom import (
    HybridSearchParam,
    IndexUnavailable,
    KDTreeIndex,
    KNNSearchParam,
    RadiusSearchParam,
)


@pytest.fixture
def line_points() -> np.ndarray:
    # Points at x = 0, 1, ..., 9
    pts = np.zeros((10, 3))
    pts[:, 0] = np.arange(10)
    return pts


def test_knn_is_self_inclusive_and_sorted(line_points) -> None:
    index = KDTreeIndex(line_points)
    idx, dist = index.query(line_points[4], KNNSearchParam(3))
    assert idx[0] == 4
    assert dist[0] == 0.0
    assert set(idx.tolist()) == {3, 4, 5}
    assert np.all(np.diff(dist) >= 0)


def test_knn_larger_than_cloud_returns_all(line_points) -> None:
    index = KDTreeIndex(line_points)
    idx, _ = index.query(line_points[0], KNNSearchParam(50))
    assert sorted(idx.tolist()) == list(range(10))


def test_radius_query_is_inclusive_and_sorted(line_points) -> None:
    index = KDTreeIndex(line_points)
    idx, dist = index.query(line_points[5], RadiusSearchParam(2.0))
    assert idx.tolist()[0] == 5
    assert sorted(idx.tolist()) == [3, 4, 5, 6, 7]
    assert np.all(np.diff(dist) >= 0)


def test_hybrid_caps_radius_result(line_points) -> None:
    index = KDTreeIndex(line_points)
    idx, dist = index.query(line_points[5], HybridSearchParam(2.0, max_nn=3))
    assert len(idx) == 3
    assert set(idx.tolist()) == {4, 5, 6}
    # Radius bound still applies when max_nn is generous
    idx, _ = index.query(line_points[5], HybridSearchParam(1.0, max_nn=30))
    assert sorted(idx.tolist()) == [4, 5, 6]


@pytest.mark.parametrize("param", [
    KNNSearchParam(3),
    KNNSearchParam(1),
    RadiusSearchParam(1.5),
    HybridSearchParam(1.5, max_nn=2),
])
def test_batch_matches_single_queries(line_points, param) -> None:
    index = KDTreeIndex(line_points)
    offsets, indices = index.query_neighborhoods(line_points, param)
    assert offsets.shape == (len(line_points) + 1,)
    assert offsets[-1] == len(indices)
    for i, p in enumerate(line_points):
        expected, _ = index.query(p, param)
        got = indices[offsets[i]:offsets[i + 1]]
        assert sorted(got.tolist()) == sorted(expected.tolist())


@pytest.mark.parametrize("positions", [
    np.zeros((0, 3)),
    np.zeros((4, 2)),
    np.array([[0.0, 0.0, np.nan]]),
])
def test_unbuildable_index(positions) -> None:
    with pytest.raises(IndexUnavailable):
        KDTreeIndex(positions)
