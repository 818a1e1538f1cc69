"""
Unprojection module: 2D cursor positions to 3D world points and back.

Projection loses one dimension, so a cursor position only defines a ray. The
missing degree of freedom is supplied by pinning the point to a plane through a
known anchor point:

    - Editing along Z: intersect with the X-normal plane through the anchor
    - Editing along X or Y, or free editing: intersect with the Z-normal plane

After intersecting, constrain_to_axis keeps only the edited component from the
new point and takes the others from the anchor.
"""

import numpy as np
from enum import Enum
from typing import Optional, Tuple
import logging

from .config import GEOMETRY_EPSILON
from .errors import DegenerateGeometryError
from .pose import CameraPose, project_point
from .transforms import from_image_plane, to_canvas, to_image_plane

logger = logging.getLogger(__name__)


class EditAxis(Enum):
    """World axis along which a point is being edited."""
    X = 'x'
    Y = 'y'
    Z = 'z'
    NONE = 'none'


_AXIS_INDEX = {EditAxis.X: 0, EditAxis.Y: 1, EditAxis.Z: 2}


def constraint_plane_normal(axis: EditAxis) -> np.ndarray:
    """Normal of the plane a cursor ray is intersected with for an edit axis."""
    if axis is EditAxis.Z:
        return np.array([1.0, 0.0, 0.0])
    return np.array([0.0, 0.0, 1.0])


def invert_transform(matrix: np.ndarray) -> np.ndarray:
    """
    Invert a 4x4 projection-view matrix.

    Raises:
        DegenerateGeometryError: If the matrix is singular
    """
    try:
        inverse = np.linalg.inv(matrix)
    except np.linalg.LinAlgError as e:
        raise DegenerateGeometryError(f"Projection-view matrix is singular: {e}") from e

    if not np.all(np.isfinite(inverse)):
        raise DegenerateGeometryError("Projection-view matrix is not invertible")
    return inverse


def _unproject(inverse: np.ndarray, clip_point) -> np.ndarray:
    world = inverse @ np.asarray(clip_point, dtype=np.float64)
    if abs(world[3]) < GEOMETRY_EPSILON:
        raise DegenerateGeometryError("Unprojected point is at infinity")
    return world[:3] / world[3]


def line_plane_intersection(a, b, plane_point, normal) -> np.ndarray:
    """
    Intersect the line through a and b with a plane.

    Uses t = n.(a - q) / -n.(b - a) and returns a + t * (b - a).

    Raises:
        DegenerateGeometryError: If the line is parallel to the plane
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    plane_point = np.asarray(plane_point, dtype=np.float64)
    normal = np.asarray(normal, dtype=np.float64)

    direction = b - a
    denominator = -np.dot(normal, direction)
    if abs(denominator) < GEOMETRY_EPSILON:
        raise DegenerateGeometryError("Cursor ray is parallel to the constraint plane")

    t = np.dot(normal, a - plane_point) / denominator
    return a + t * direction


def screen_to_world(
    pose: CameraPose,
    ratio: float,
    cursor,
    constrain_axis: EditAxis = EditAxis.NONE,
    anchor=(0.0, 0.0, 0.0),
) -> np.ndarray:
    """
    Unproject a cursor position onto the constraint plane through an anchor.

    Args:
        pose: Current camera pose
        ratio: Image aspect ratio (width / height)
        cursor: Cursor position in normalized canvas coordinates
        constrain_axis: Axis being edited; selects the constraint plane
        anchor: 3D point the constraint plane passes through

    Returns:
        3D world point under the cursor on the constraint plane

    Raises:
        DegenerateGeometryError: If the projection-view matrix is singular or the
            cursor ray is parallel to the constraint plane
    """
    projection = pose.projection_matrix()
    inverse = invert_transform(projection @ pose.view_transform)

    image_point = to_image_plane(ratio, cursor)

    # Column 3 of the projection is the clip-space image of the camera-frame origin
    eye = _unproject(inverse, projection[:, 3])
    far_point = _unproject(inverse, [image_point[0], image_point[1], 1.0, 1.0])

    point = line_plane_intersection(
        eye, far_point, anchor, constraint_plane_normal(constrain_axis)
    )
    logger.debug(f"Cursor {cursor} -> {point} (axis {constrain_axis.value})")
    return point


def constrain_to_axis(axis: EditAxis, new_point, anchor) -> np.ndarray:
    """
    Combine an unprojected point with its anchor for an axis-constrained edit.

    The component along the edited axis comes from new_point, the other two
    from anchor. With EditAxis.NONE the new point is returned unchanged.
    """
    new_point = np.asarray(new_point, dtype=np.float64).reshape(3)
    if axis is EditAxis.NONE:
        return new_point.copy()

    result = np.asarray(anchor, dtype=np.float64).reshape(3).copy()
    index = _AXIS_INDEX[axis]
    result[index] = new_point[index]
    return result


def world_to_screen(
    pose: CameraPose,
    ratio: float,
    point,
    bounds_size: Optional[Tuple[float, float]] = None,
) -> np.ndarray:
    """
    Project a 3D world point to the screen.

    Args:
        pose: Current camera pose
        ratio: Image aspect ratio (width / height)
        point: 3D world point
        bounds_size: Canvas (width, height); when given the result is in canvas
            pixels, otherwise in normalized canvas coordinates

    Returns:
        2D screen position
    """
    image_point = project_point(pose, point)
    if bounds_size is not None:
        return to_canvas(bounds_size, image_point)
    return from_image_plane(ratio, image_point)
