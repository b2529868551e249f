"""Point cloud container: positions with optional per-point normals and colors.

The three attributes are parallel (N, 3) float64 arrays. Normals and colors
are all-or-nothing: each is either empty or exactly as long as the points,
and every mutation path enforces that.
"""
import numpy as np

from .bounds import compute_max_bound, compute_min_bound
from .errors import InvalidArgument
from .geometry import Boundable, Clearable, Transformable


def _empty_attr() -> np.ndarray:
    return np.zeros((0, 3))


def _as_attr_array(values, name: str) -> np.ndarray:
    """Copy array-like input into a fresh (M, 3) float64 array."""
    if values is None:
        return _empty_attr()
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"{name} must be numeric: {exc}") from exc
    if arr.size == 0:
        return _empty_attr()
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InvalidArgument(
            f"{name} must have shape (M, 3), got {arr.shape}")
    return arr


def _readonly(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.flags.writeable = False
    return view


class PointCloud(Boundable, Clearable, Transformable):
    """Unordered 3D point set with optional normals and colors.

    Args:
        points: (N, 3) positions.
        normals: Optional (N, 3) normals.
        colors: Optional (N, 3) colors, conventionally in [0, 1].

    Raises:
        InvalidArgument: On wrong shapes or attribute lengths that do not
            match the number of points.
    """

    __slots__ = ['_points', '_normals', '_colors']

    def __init__(self, points=None, normals=None, colors=None):
        self._points = _as_attr_array(points, 'points')
        self._normals = _empty_attr()
        self._colors = _empty_attr()
        self.normals = normals
        self.colors = colors

    # ─────────────────────────────────────────────────────────────
    #  Attribute access
    # ─────────────────────────────────────────────────────────────

    @property
    def points(self) -> np.ndarray:
        """Read-only (N, 3) view of the positions."""
        return _readonly(self._points)

    @points.setter
    def points(self, values):
        new_points = _as_attr_array(values, 'points')
        if len(new_points) != len(self._points) and (
                len(self._normals) or len(self._colors)):
            raise InvalidArgument(
                f"cannot resize points from {len(self._points)} to "
                f"{len(new_points)} while normals or colors are set; "
                "clear the cloud or build a new one")
        self._points = new_points

    @property
    def normals(self) -> np.ndarray:
        """Read-only (N, 3) view of the normals, or (0, 3) if absent."""
        return _readonly(self._normals)

    @normals.setter
    def normals(self, values):
        self._normals = self._checked_attr(values, 'normals')

    @property
    def colors(self) -> np.ndarray:
        """Read-only (N, 3) view of the colors, or (0, 3) if absent."""
        return _readonly(self._colors)

    @colors.setter
    def colors(self, values):
        self._colors = self._checked_attr(values, 'colors')

    def _checked_attr(self, values, name: str) -> np.ndarray:
        arr = _as_attr_array(values, name)
        if len(arr) not in (0, len(self._points)):
            raise InvalidArgument(
                f"{name} length {len(arr)} does not match "
                f"{len(self._points)} points")
        return arr

    # ─────────────────────────────────────────────────────────────
    #  Predicates
    # ─────────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._points)

    def has_points(self) -> bool:
        return len(self._points) > 0

    def has_normals(self) -> bool:
        return len(self._points) > 0 and len(self._normals) == len(self._points)

    def has_colors(self) -> bool:
        return len(self._points) > 0 and len(self._colors) == len(self._points)

    def is_empty(self) -> bool:
        return not self.has_points()

    # ─────────────────────────────────────────────────────────────
    #  Geometry capabilities
    # ─────────────────────────────────────────────────────────────

    def get_min_bound(self) -> np.ndarray:
        return compute_min_bound(self._points)

    def get_max_bound(self) -> np.ndarray:
        return compute_max_bound(self._points)

    def clear(self):
        """Discard points, normals and colors."""
        self._points = _empty_attr()
        self._normals = _empty_attr()
        self._colors = _empty_attr()
        return self

    def transform(self, transformation: np.ndarray):
        """Apply a 4x4 homogeneous transformation in place.

        Points get the full transform (no perspective divide). Normals are
        rotated by the upper-left 3x3 block only and are not renormalized.
        Colors are untouched.

        Args:
            transformation: (4, 4) matrix.

        Returns:
            self, for chaining.
        """
        T = np.asarray(transformation, dtype=np.float64)
        if T.shape != (4, 4):
            raise InvalidArgument(
                f"transformation must be 4x4, got {T.shape}")
        linear = T[:3, :3]
        self._points = self._points @ linear.T + T[:3, 3]
        self._normals = self._normals @ linear.T
        return self

    def normalize_normals(self):
        """Rescale every normal to unit length. Zero normals stay zero."""
        norms = np.linalg.norm(self._normals, axis=1, keepdims=True)
        self._normals = np.divide(self._normals, norms,
                                  out=np.zeros_like(self._normals),
                                  where=norms > 0)
        return self

    # ─────────────────────────────────────────────────────────────
    #  Concatenation and copying
    # ─────────────────────────────────────────────────────────────

    def __iadd__(self, other: 'PointCloud') -> 'PointCloud':
        """Append another cloud's points.

        Normals (and likewise colors) survive only if both sides carry them,
        or if this cloud was empty and the other carries them.
        """
        if not isinstance(other, PointCloud):
            return NotImplemented
        if other.is_empty():
            return self

        was_empty = self.is_empty()
        keep_normals = (was_empty or self.has_normals()) and other.has_normals()
        keep_colors = (was_empty or self.has_colors()) and other.has_colors()

        self._points = np.vstack([self._points, other._points])
        if keep_normals:
            self._normals = np.vstack([self._normals, other._normals])
        else:
            self._normals = _empty_attr()
        if keep_colors:
            self._colors = np.vstack([self._colors, other._colors])
        else:
            self._colors = _empty_attr()
        return self

    def __add__(self, other: 'PointCloud') -> 'PointCloud':
        if not isinstance(other, PointCloud):
            return NotImplemented
        result = self.copy()
        result += other
        return result

    def copy(self) -> 'PointCloud':
        """Deep copy; the result shares no arrays with this cloud."""
        result = PointCloud()
        result._points = self._points.copy()
        result._normals = self._normals.copy()
        result._colors = self._colors.copy()
        return result

    def __repr__(self) -> str:
        extras = [name for name, present in
                  (('normals', self.has_normals()), ('colors', self.has_colors()))
                  if present]
        suffix = f" with {', '.join(extras)}" if extras else ""
        return f"PointCloud({len(self)} points{suffix})"
