"""Exception and warning types raised by cloudgeom operations."""


class CloudGeomError(Exception):
    """Base class for all cloudgeom errors."""


class InvalidArgument(CloudGeomError, ValueError):
    """Bad voxel size, bad search parameter, or a violated precondition
    such as an empty input cloud or mismatched attribute lengths."""


class IndexUnavailable(CloudGeomError, RuntimeError):
    """The spatial index could not be built over the cloud positions."""


class DegenerateNeighborhoodWarning(UserWarning):
    """Some points had too few or collinear/coincident neighbours and
    received the fallback normal instead of a fitted one."""
