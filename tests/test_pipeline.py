import logging

import numpy as np
import pytest

from cloudgeom import PointCloud
from cloudgeom.config import config_from_dict
from cloudgeom.logging_config import TqdmLoggingHandler, setup_logging
from cloudgeom.pipeline import CloudPipeline


def _plane_cloud(seed: int = 0) -> PointCloud:
    rng = np.random.default_rng(seed)
    pts = rng.uniform(-1.0, 1.0, size=(400, 3))
    pts[:, 2] = 0.0
    return PointCloud(pts)


def test_process_downsamples_then_estimates_normals() -> None:
    cfg = config_from_dict({
        "downsample": {"voxel_size": 0.2},
        "normals": {"search": {"type": "knn", "knn": 10},
                    "orientation_reference": [0.0, 0.0, -1.0]},
    })
    cloud = _plane_cloud()
    out = CloudPipeline(cfg).process(cloud)
    assert len(out) < len(cloud)
    assert not cloud.has_normals()
    assert out.has_normals()
    np.testing.assert_allclose(out.normals, np.tile([0.0, 0.0, -1.0], (len(out), 1)),
                               atol=1e-9)


def test_disabled_steps_return_a_copy() -> None:
    cfg = config_from_dict({"downsample": {"enabled": False},
                            "normals": {"enabled": False}})
    cloud = _plane_cloud()
    out = CloudPipeline(cfg).process(cloud)
    assert out is not cloud
    np.testing.assert_array_equal(out.points, cloud.points)
    assert not out.has_normals()


def test_process_many_keeps_order() -> None:
    clouds = [_plane_cloud(seed) for seed in range(3)]
    results = CloudPipeline().process_many(clouds)
    assert len(results) == 3
    for cloud, result in zip(clouds, results):
        assert result.has_normals()
        assert len(result) <= len(cloud)


def test_setup_logging_is_idempotent(tmp_path) -> None:
    log_file = tmp_path / "run.log"
    setup_logging(logging.DEBUG, str(log_file))
    setup_logging(logging.DEBUG, str(log_file))
    logger = logging.getLogger("cloudgeom")
    assert len(logger.handlers) == 2
    logging.getLogger("cloudgeom.downsample").debug("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in log_file.read_text()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def package_logger():
    logger = logging.getLogger("cloudgeom")
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def test_run_applies_configured_logging(tmp_path, package_logger) -> None:
    log_file = tmp_path / "pipeline.log"
    cfg = config_from_dict({"downsample": {"voxel_size": 0.2},
                            "logging": {"level": "DEBUG", "file": str(log_file)}})
    results = CloudPipeline(cfg).run([_plane_cloud()])
    assert len(results) == 1 and results[0].has_normals()
    assert package_logger.getEffectiveLevel() == logging.DEBUG
    for handler in package_logger.handlers:
        handler.flush()
    text = log_file.read_text()
    assert "Voxel downsample" in text
    assert "Processed 1 clouds" in text


def test_run_compiles_kernels_before_the_loop(package_logger) -> None:
    pipeline = CloudPipeline()
    pipeline.run([])
    assert pipeline._warm


def test_console_output_goes_through_tqdm(capsys, package_logger) -> None:
    setup_logging(logging.INFO)
    assert isinstance(package_logger.handlers[0], TqdmLoggingHandler)
    logging.getLogger("cloudgeom.normals").info("fitted")
    assert "cloudgeom.normals - INFO - fitted" in capsys.readouterr().out
