"""
Vanishing point solver.

Each real-world axis is marked by two image line segments that are parallel in
the scene. Their image-space intersection is the vanishing point of that axis.
The orthocenter of the three vanishing points of mutually orthogonal axes is the
principal point of the camera.

Line segments are given in normalized canvas coordinates; the resulting vanishing
points are in the same space until converted with transforms.to_image_plane.
"""

import numpy as np
from typing import List, Sequence, Tuple
from dataclasses import dataclass
import logging

from .config import GEOMETRY_EPSILON
from .errors import DegenerateGeometryError

logger = logging.getLogger(__name__)

AXIS_NAMES = ('x', 'y', 'z')


@dataclass(frozen=True)
class LineSegment:
    """A 2D segment in normalized canvas coordinates (0..1, not enforced)."""
    a: Tuple[float, float]
    b: Tuple[float, float]

    @classmethod
    def from_points(cls, a, b) -> "LineSegment":
        return cls(
            a=(float(a[0]), float(a[1])),
            b=(float(b[0]), float(b[1])),
        )

    def as_array(self) -> np.ndarray:
        """Return endpoints as a 2x2 array, one point per row."""
        return np.array([self.a, self.b])


def vanishing_point(a, b, c, d, epsilon: float = GEOMETRY_EPSILON) -> np.ndarray:
    """
    Intersect the line through (a, b) with the line through (c, d).

    Args:
        a, b: Endpoints of the first segment
        c, d: Endpoints of the second segment
        epsilon: Smallest denominator magnitude accepted

    Returns:
        Intersection point a + t * (b - a)

    Raises:
        DegenerateGeometryError: If the lines are parallel in the image
    """
    x1, y1 = a[0], a[1]
    x2, y2 = b[0], b[1]
    x3, y3 = c[0], c[1]
    x4, y4 = d[0], d[1]

    denominator = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denominator) < epsilon:
        raise DegenerateGeometryError(
            "Line segments are parallel in the image: no finite vanishing point"
        )

    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denominator
    point = np.array([x1 + t * (x2 - x1), y1 + t * (y2 - y1)])

    if not np.all(np.isfinite(point)):
        raise DegenerateGeometryError(f"Vanishing point is not finite: {point}")

    return point


def orthocenter(x, y, z, epsilon: float = GEOMETRY_EPSILON) -> np.ndarray:
    """
    Compute the orthocenter of the triangle (x, y, z).

    Closed form with n = b*c + d*e + f*a - c*f - b*e - a*d, where (a, b), (c, d)
    and (e, f) are the three vertices. The formula is symmetric in its
    arguments.

    Raises:
        DegenerateGeometryError: If the three points are collinear
    """
    a, b = x[0], x[1]
    c, d = y[0], y[1]
    e, f = z[0], z[1]

    n = b * c + d * e + f * a - c * f - b * e - a * d
    if abs(n) < epsilon:
        raise DegenerateGeometryError(
            "Vanishing points are collinear: line pairs are not well distributed"
        )

    ox = ((d - f) * b * b
          + (f - b) * d * d
          + (b - d) * f * f
          + a * b * (c - e)
          + c * d * (e - a)
          + e * f * (a - c)) / n
    oy = ((e - c) * a * a
          + (a - e) * c * c
          + (c - a) * e * e
          + a * b * (f - d)
          + c * d * (b - f)
          + e * f * (d - b)) / n

    return np.array([ox, oy])


def vanishing_points_for_lines(lines: Sequence[LineSegment]) -> List[np.ndarray]:
    """
    Compute the three axis vanishing points from six line segments.

    Args:
        lines: Six segments ordered X, X, Y, Y, Z, Z

    Returns:
        Vanishing points for the X, Y and Z axes in normalized canvas space
    """
    if len(lines) != 6:
        raise ValueError(f"Expected 6 axis lines, got {len(lines)}")

    points = []
    for axis, (first, second) in zip(AXIS_NAMES, zip(lines[0::2], lines[1::2])):
        try:
            point = vanishing_point(first.a, first.b, second.a, second.b)
        except DegenerateGeometryError as e:
            raise DegenerateGeometryError(f"{axis.upper()} axis: {e}") from e
        logger.debug(f"Vanishing point {axis}: {point}")
        points.append(point)

    return points
