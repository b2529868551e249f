"""Configuration loader for the processing pipeline.

Reads a YAML file with `downsample`, `normals` and `logging` sections;
any key left out keeps its dataclass default.
"""
import logging

import yaml
import numpy as np
from dataclasses import dataclass, field

from .downsample import check_voxel_size
from .errors import InvalidArgument
from .normals import DEFAULT_DEGENERATE_TOL
from .search_param import search_param_from_dict


@dataclass
class DownsampleConfig:
    """Voxel grid parameters."""
    enabled: bool = True
    voxel_size: float = 0.05


@dataclass
class NormalsConfig:
    """Normal estimation parameters."""
    enabled: bool = True
    search: dict = field(default_factory=lambda: {'type': 'knn', 'knn': 30})
    orientation_reference: np.ndarray = None  # None = existing normals / +Z
    degenerate_tol: float = DEFAULT_DEGENERATE_TOL


@dataclass
class ProcessingConfig:
    """Full pipeline configuration."""
    downsample: DownsampleConfig = field(default_factory=DownsampleConfig)
    normals: NormalsConfig = field(default_factory=NormalsConfig)
    log_level: int = logging.INFO
    log_file: str = None

    def search_param(self):
        """Search variant described by normals.search."""
        return search_param_from_dict(self.normals.search)


def _parse_level(level) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise InvalidArgument(f"unknown log level {level!r}")
    return value


def config_from_dict(cfg: dict) -> ProcessingConfig:
    """Build a ProcessingConfig from an already-parsed mapping."""
    cfg = cfg or {}
    pc = ProcessingConfig()

    # Downsample
    ds = cfg.get('downsample') or {}
    dc = pc.downsample
    dc.enabled = ds.get('enabled', dc.enabled)
    dc.voxel_size = ds.get('voxel_size', dc.voxel_size)

    # Normals
    nm = cfg.get('normals') or {}
    nc = pc.normals
    nc.enabled = nm.get('enabled', nc.enabled)
    nc.search = dict(nm.get('search', nc.search))
    nc.degenerate_tol = nm.get('degenerate_tol', nc.degenerate_tol)
    ref = nm.get('orientation_reference', None)
    if ref is not None:
        nc.orientation_reference = np.array(ref, dtype=np.float64).flatten()

    # Logging
    log = cfg.get('logging') or {}
    pc.log_level = _parse_level(log.get('level', pc.log_level))
    pc.log_file = log.get('file', pc.log_file)

    # Fail early on bad numbers rather than mid-run
    check_voxel_size(dc.voxel_size)
    pc.search_param()
    return pc


def load_config(yaml_path: str) -> ProcessingConfig:
    """Load configuration from a YAML file.

    Example:
        downsample:
          voxel_size: 0.02
        normals:
          search: {type: hybrid, radius: 0.1, max_nn: 30}
          orientation_reference: [0.0, 0.0, 1.0]
        logging:
          level: DEBUG
          file: cloudgeom.log
    """
    with open(yaml_path, 'r') as f:
        cfg = yaml.safe_load(f)
    return config_from_dict(cfg)
