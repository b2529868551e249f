"""Point-cloud voxel downsampling and local-PCA normal estimation."""
from .bounds import compute_bounds, compute_max_bound, compute_min_bound
from .downsample import voxel_down_sample, voxel_keys
from .errors import (
    CloudGeomError,
    DegenerateNeighborhoodWarning,
    IndexUnavailable,
    InvalidArgument,
)
from .geometry import Boundable, Clearable, Transformable
from .normals import estimate_normals
from .point_cloud import PointCloud
from .search_param import HybridSearchParam, KNNSearchParam, RadiusSearchParam
from .spatial_index import KDTreeIndex, SpatialIndex

__version__ = "0.1.0"

__all__ = [
    "Boundable",
    "Clearable",
    "CloudGeomError",
    "DegenerateNeighborhoodWarning",
    "HybridSearchParam",
    "IndexUnavailable",
    "InvalidArgument",
    "KDTreeIndex",
    "KNNSearchParam",
    "PointCloud",
    "RadiusSearchParam",
    "SpatialIndex",
    "Transformable",
    "compute_bounds",
    "compute_max_bound",
    "compute_min_bound",
    "estimate_normals",
    "voxel_down_sample",
    "voxel_keys",
]
