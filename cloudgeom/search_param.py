"""Neighbour search specifications: k-nearest, radius, or hybrid.

Each variant validates itself on construction, so an instance that exists
is always a usable query.
"""
import math
import numbers
from dataclasses import dataclass

from .errors import InvalidArgument


def _check_count(value, name: str):
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
        raise InvalidArgument(f"{name} must be a positive integer, got {value!r}")


def _check_radius(value):
    if (isinstance(value, bool) or not isinstance(value, numbers.Real)
            or not math.isfinite(value) or value <= 0):
        raise InvalidArgument(f"radius must be a positive finite number, got {value!r}")


@dataclass(frozen=True)
class KNNSearchParam:
    """The knn closest points, the query point included."""
    knn: int = 30

    def __post_init__(self):
        _check_count(self.knn, 'knn')


@dataclass(frozen=True)
class RadiusSearchParam:
    """All points within radius of the query point."""
    radius: float

    def __post_init__(self):
        _check_radius(self.radius)


@dataclass(frozen=True)
class HybridSearchParam:
    """Points within radius, capped to the max_nn closest of them."""
    radius: float
    max_nn: int = 30

    def __post_init__(self):
        _check_radius(self.radius)
        _check_count(self.max_nn, 'max_nn')


SEARCH_PARAM_TYPES = (KNNSearchParam, RadiusSearchParam, HybridSearchParam)


def check_search_param(param):
    """Raise InvalidArgument unless param is one of the search variants."""
    if not isinstance(param, SEARCH_PARAM_TYPES):
        raise InvalidArgument(
            f"search_param must be KNN, radius or hybrid, got {type(param).__name__}")
    return param


def search_param_from_dict(cfg: dict):
    """Build a search variant from a config mapping.

    Example:
        {'type': 'hybrid', 'radius': 0.1, 'max_nn': 30}
    """
    cfg = dict(cfg or {})
    kind = str(cfg.pop('type', 'knn')).lower()
    try:
        if kind == 'knn':
            return KNNSearchParam(**cfg)
        if kind == 'radius':
            return RadiusSearchParam(**cfg)
        if kind == 'hybrid':
            return HybridSearchParam(**cfg)
    except TypeError as exc:
        raise InvalidArgument(f"bad {kind} search parameters: {exc}") from exc
    raise InvalidArgument(f"unknown search type {kind!r}")
