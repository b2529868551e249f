"""Capability interfaces implemented by geometry containers.

Each interface covers one concern so a type only takes on what it
supports; PointCloud implements all three.
"""
from abc import ABC, abstractmethod

import numpy as np


class Boundable(ABC):
    """Exposes an axis-aligned bounding box."""

    __slots__ = ()

    @abstractmethod
    def get_min_bound(self) -> np.ndarray:
        ...

    @abstractmethod
    def get_max_bound(self) -> np.ndarray:
        ...


class Clearable(ABC):
    """Can be emptied and queried for emptiness."""

    __slots__ = ()

    @abstractmethod
    def clear(self):
        ...

    @abstractmethod
    def is_empty(self) -> bool:
        ...


class Transformable(ABC):
    """Accepts a rigid or affine 4x4 transformation."""

    __slots__ = ()

    @abstractmethod
    def transform(self, transformation: np.ndarray):
        ...
