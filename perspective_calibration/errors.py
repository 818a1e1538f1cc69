"""
Exception types raised by the calibration engine.

Geometry and codec functions raise these instead of returning NaN/Inf, so callers
can tell a degenerate configuration apart from a valid but extreme one.
"""


class PerspectiveError(Exception):
    """Base class for all calibration errors."""


class DegenerateGeometryError(PerspectiveError, ValueError):
    """
    The input geometry does not determine a finite result.

    Raised for parallel line pairs, collinear vanishing points, a zero focal
    length, a singular projection-view matrix or a ray parallel to its
    constraint plane. Always recoverable: keep the previous pose.
    """


class MalformedInputError(PerspectiveError, ValueError):
    """A points file, scene buffer or image could not be parsed."""


class SceneIOError(PerspectiveError, OSError):
    """Writing a scene file failed; no partial file is left on disk."""
