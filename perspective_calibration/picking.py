"""
Hit testing for editing the calibration state.

All positions are in normalized canvas coordinates, so the tolerance is a
fraction of the canvas size and independent of the display resolution.
"""

import numpy as np
from typing import Optional, Sequence, Tuple

from .config import HIT_TOLERANCE
from .vanishing import LineSegment


def is_control_point_hit(control_point, cursor, tolerance: float = HIT_TOLERANCE) -> bool:
    """True if the cursor is within `tolerance` Manhattan distance of the control point."""
    dx = abs(control_point[0] - cursor[0])
    dy = abs(control_point[1] - cursor[1])
    return dx + dy < tolerance


def is_near_point(point, cursor, tolerance: float = HIT_TOLERANCE) -> bool:
    """True if the cursor lies strictly inside the square box of half-size `tolerance`."""
    return (
        point[0] - tolerance < cursor[0] < point[0] + tolerance
        and point[1] - tolerance < cursor[1] < point[1] + tolerance
    )


def distance_to_line(a, b, point) -> float:
    """
    Perpendicular distance from `point` to the infinite line through a and b.

    Falls back to the distance to `a` when a and b coincide.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    p = np.asarray(point, dtype=np.float64)

    direction = b - a
    length = np.hypot(direction[0], direction[1])
    if length == 0:
        return float(np.hypot(*(p - a)))

    cross = direction[0] * (p[1] - a[1]) - direction[1] * (p[0] - a[0])
    return float(abs(cross) / length)


def is_point_on_line(a, b, point, tolerance: float = HIT_TOLERANCE) -> bool:
    """True if `point` is closer than `tolerance` to the line through a and b."""
    return distance_to_line(a, b, point) < tolerance


def find_endpoint(
    axis_lines: Sequence[LineSegment],
    cursor,
    tolerance: float = HIT_TOLERANCE,
) -> Optional[Tuple[int, int]]:
    """
    Find the first line endpoint under the cursor.

    Returns:
        (line index, endpoint index 0 for a or 1 for b), or None
    """
    for index, line in enumerate(axis_lines):
        for endpoint, p in enumerate((line.a, line.b)):
            if is_near_point(p, cursor, tolerance):
                return index, endpoint
    return None
