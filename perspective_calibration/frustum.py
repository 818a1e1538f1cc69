"""
View frustum extraction and line clipping.

The six clip planes are read straight from a projection (or projection @ view)
matrix M using its rows r0..r3:

    left   = r3 + r0        right = r3 - r0
    bottom = r3 + r1        top   = r3 - r1
    near   = r3 + r2        far   = r3 - r2

Each plane (n, d) is normalized so that n has unit length; a point p is inside
when n.p + d >= 0. Planes are recomputed from the current matrix on every use.
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass
import logging

from .config import OVERLAY_FAR, OVERLAY_NEAR
from .pose import CameraPose

logger = logging.getLogger(__name__)

Segment = Tuple[np.ndarray, np.ndarray]


@dataclass(frozen=True, eq=False)
class ClipPlane:
    """A clip plane with unit normal; inside means n.p + d >= 0."""
    unit_normal: np.ndarray
    signed_distance: float

    def distance(self, point: np.ndarray) -> float:
        return float(np.dot(self.unit_normal, point) + self.signed_distance)


def _extract_plane(v: np.ndarray) -> ClipPlane:
    normal = v[:3]
    length = np.linalg.norm(normal)
    return ClipPlane(unit_normal=normal / length, signed_distance=float(v[3] / length))


@dataclass(frozen=True)
class Frustum:
    """Six clip planes ordered left, right, bottom, top, near, far."""
    planes: Tuple[ClipPlane, ...]

    @classmethod
    def from_matrix(cls, m: np.ndarray) -> "Frustum":
        """
        Extract the frustum planes from a 4x4 projection matrix.

        Args:
            m: Projection or projection @ view matrix

        Returns:
            Frustum in the space the matrix takes points from
        """
        columns = np.asarray(m, dtype=np.float64).T

        planes = (
            _extract_plane(columns[:, 3] + columns[:, 0]),  # left
            _extract_plane(columns[:, 3] - columns[:, 0]),  # right
            _extract_plane(columns[:, 3] + columns[:, 1]),  # bottom
            _extract_plane(columns[:, 3] - columns[:, 1]),  # top
            _extract_plane(columns[:, 3] + columns[:, 2]),  # near
            _extract_plane(columns[:, 3] - columns[:, 2]),  # far
        )
        return cls(planes=planes)

    def contains(self, point) -> bool:
        p = np.asarray(point, dtype=np.float64)
        return all(plane.distance(p) >= 0 for plane in self.planes)


def clip_segment_against_plane(
    p0: np.ndarray, p1: np.ndarray, d0: float, d1: float
) -> Optional[Segment]:
    """
    Clip a segment against a single plane given its endpoint distances.

    Returns:
        The clipped segment, or None if it lies entirely outside
    """
    if d0 >= 0 and d1 >= 0:
        return p0, p1
    if d0 < 0 and d1 < 0:
        return None

    t = d0 / (d0 - d1)
    intersection = p0 + (p1 - p0) * t

    if d0 < 0:
        return intersection, p1
    return p0, intersection


def clip_segment(frustum: Frustum, p0, p1) -> Optional[Segment]:
    """
    Clip a 3D segment against all six frustum planes in turn.

    Args:
        frustum: Frustum to clip against
        p0: Segment start
        p1: Segment end

    Returns:
        Visible part of the segment, or None if no part is visible
    """
    p0 = np.asarray(p0, dtype=np.float64)
    p1 = np.asarray(p1, dtype=np.float64)

    for plane in frustum.planes:
        clipped = clip_segment_against_plane(p0, p1, plane.distance(p0), plane.distance(p1))
        if clipped is None:
            return None
        p0, p1 = clipped

    return p0, p1


def project_polyline(
    pose: CameraPose,
    points: Sequence,
    near: float = OVERLAY_NEAR,
    far: float = OVERLAY_FAR,
) -> List[Segment]:
    """
    Project a 3D world polyline to the image plane, dropping invisible parts.

    Each consecutive pair of points is moved into camera space, clipped against
    the overlay frustum and projected. Segments outside the frustum are skipped,
    which keeps geometry close to or behind the camera from exploding on screen.

    Args:
        pose: Current camera pose
        points: Nx3 world polyline
        near: Near clip distance of the overlay frustum
        far: Far clip distance of the overlay frustum

    Returns:
        List of visible (start, end) segments in image-plane coordinates
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(points) < 2:
        return []

    projection = pose.projection_matrix(near=near, far=far)
    frustum = Frustum.from_matrix(projection)

    homogeneous = np.hstack([points, np.ones((len(points), 1))])
    camera_points = homogeneous @ pose.view_transform.T
    camera_points = camera_points[:, :3] / camera_points[:, 3:4]

    segments = []
    for start, end in zip(camera_points[:-1], camera_points[1:]):
        clipped = clip_segment(frustum, start, end)
        if clipped is None:
            continue
        projected = []
        for p in clipped:
            clip = projection @ np.append(p, 1.0)
            projected.append(clip[:2] / clip[3])
        segments.append((projected[0], projected[1]))

    logger.debug(f"Projected {len(segments)}/{len(points) - 1} polyline segments")
    return segments
