"""
Camera pose module.

Builds a full camera pose from three orthogonal vanishing points and a
user-selected origin, following the classical single-view metrology method:

    1. The orthocenter of the vanishing point triangle is the principal point
    2. Focal length from orthogonality: f = sqrt(|(o - v0) . (o - v1)|)
    3. Rotation columns are the normalized rays (v_i - o, -f)
    4. Optional per-axis mirroring through a signed diagonal matrix
    5. Translation from the origin ray, scaled to an arbitrary world scale

All inputs are in image-plane coordinates (see transforms.to_image_plane).

Projection Model:
    OpenGL-style perspective with aspect 1 and vertical field of view
    2*atan(1/f). The principal point is encoded in the projection matrix by
    overwriting entries (0, 2) and (1, 2) with its negated coordinates, so
    projected points come out directly in image-plane coordinates.

Post-hoc scale divides the translation column of the view transform, leaving the
rotation rigid so the exported camera-to-world matrix stays orthonormal. A
translation is composed by right-multiplication, in the object frame before
rotation. Scale is applied before translation.
"""

import numpy as np
from typing import Optional, Sequence, Tuple
from dataclasses import dataclass, field, replace
import logging

from .config import (
    CalibrationSettings,
    DEFAULT_WORLD_SCALE,
    GEOMETRY_EPSILON,
    PROJECTION_FAR,
    PROJECTION_NEAR,
)
from .errors import DegenerateGeometryError
from .points_file import AxisData
from .transforms import to_image_plane
from .vanishing import orthocenter, vanishing_points_for_lines

logger = logging.getLogger(__name__)


def perspective_matrix(
    field_of_view: float,
    near: float,
    far: float,
    principal_point=(0.0, 0.0),
) -> np.ndarray:
    """
    Off-center perspective projection matrix.

    Args:
        field_of_view: Vertical field of view in radians (aspect is fixed to 1)
        near: Near clip distance
        far: Far clip distance
        principal_point: Image-plane principal point

    Returns:
        4x4 projection matrix
    """
    focal = 1.0 / np.tan(field_of_view / 2.0)

    m = np.zeros((4, 4))
    m[0, 0] = focal
    m[1, 1] = focal
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = 2.0 * far * near / (near - far)
    m[3, 2] = -1.0

    m[0, 2] = -principal_point[0]
    m[1, 2] = -principal_point[1]
    return m


@dataclass(frozen=True, eq=False)
class CameraPose:
    """
    Recovered camera pose.

    Attributes:
        view_transform: 4x4 homogeneous world-to-camera transform
        principal_point: Image-plane principal point (the orthocenter)
        focal_length: Focal length in image-plane units
        near: Near clip distance of the projection
        far: Far clip distance of the projection
        field_of_view: 2*atan(1/focal_length), derived at construction
    """
    view_transform: np.ndarray
    principal_point: np.ndarray
    focal_length: float
    near: float = PROJECTION_NEAR
    far: float = PROJECTION_FAR
    field_of_view: float = field(init=False)

    def __post_init__(self):
        if not np.isfinite(self.focal_length) or self.focal_length <= 0:
            raise DegenerateGeometryError(
                f"Focal length must be finite and positive, got {self.focal_length}"
            )

        view = np.array(self.view_transform, dtype=np.float64)
        if view.shape != (4, 4) or not np.all(np.isfinite(view)):
            raise DegenerateGeometryError("View transform must be a finite 4x4 matrix")
        view.setflags(write=False)

        principal = np.array(self.principal_point, dtype=np.float64).reshape(2)
        principal.setflags(write=False)

        object.__setattr__(self, 'view_transform', view)
        object.__setattr__(self, 'principal_point', principal)
        object.__setattr__(self, 'focal_length', float(self.focal_length))
        object.__setattr__(
            self, 'field_of_view', 2.0 * float(np.arctan(1.0 / self.focal_length))
        )

    def projection_matrix(
        self,
        near: Optional[float] = None,
        far: Optional[float] = None,
    ) -> np.ndarray:
        """Projection matrix of this camera, optionally with another clip range."""
        return perspective_matrix(
            self.field_of_view,
            self.near if near is None else near,
            self.far if far is None else far,
            self.principal_point,
        )

    @property
    def transform(self) -> np.ndarray:
        """Combined projection @ view_transform."""
        return self.projection_matrix() @ self.view_transform

    @property
    def rotation(self) -> np.ndarray:
        """Upper-left 3x3 block of the view transform."""
        return self.view_transform[:3, :3].copy()

    @property
    def translation(self) -> np.ndarray:
        """Translation column of the view transform."""
        return self.view_transform[:3, 3].copy()


def axis_flip_matrix(flip: Tuple[bool, bool, bool]) -> np.ndarray:
    """
    Signed diagonal matrix mirroring the world axes.

    An axis keeps the solver's native orientation (-1) unless its flip flag
    is set (+1). Existing points files depend on this mapping.
    """
    return np.diag([1.0 if f else -1.0 for f in flip])


def compute_pose(
    vanishing_points: Sequence,
    user_origin,
    axis_flip: Tuple[bool, bool, bool] = (False, False, False),
    world_scale: float = DEFAULT_WORLD_SCALE,
    near: float = PROJECTION_NEAR,
    far: float = PROJECTION_FAR,
) -> CameraPose:
    """
    Compute a camera pose from three orthogonal vanishing points.

    Args:
        vanishing_points: X, Y and Z vanishing points in image-plane coordinates
        user_origin: Image-plane position of the world origin
        axis_flip: Per-axis mirroring flags
        world_scale: Scale of the origin translation
        near: Near clip distance stored on the pose
        far: Far clip distance stored on the pose

    Returns:
        CameraPose

    Raises:
        DegenerateGeometryError: If the vanishing points are collinear or do not
            determine a positive focal length
    """
    if len(vanishing_points) != 3:
        raise ValueError(f"Expected 3 vanishing points, got {len(vanishing_points)}")

    vps = [np.asarray(v, dtype=np.float64).reshape(2) for v in vanishing_points]
    origin_2d = np.asarray(user_origin, dtype=np.float64).reshape(2)

    ortho = orthocenter(*vps)

    focal_length = float(np.sqrt(abs(np.dot(ortho - vps[0], ortho - vps[1]))))
    if not np.isfinite(focal_length) or focal_length < GEOMETRY_EPSILON:
        raise DegenerateGeometryError(
            f"Vanishing points do not determine a focal length (f={focal_length})"
        )

    columns = []
    for vp in vps:
        direction = vp - ortho
        ray = np.array([direction[0], direction[1], -focal_length])
        columns.append(ray / np.linalg.norm(ray))
    rotation = np.column_stack(columns)

    view_transform = np.eye(4)
    view_transform[:3, :3] = rotation @ axis_flip_matrix(axis_flip)

    offset = origin_2d - ortho
    origin_3d = np.array([offset[0], offset[1], -focal_length]) / focal_length
    view_transform[:3, 3] = origin_3d * world_scale

    pose = CameraPose(
        view_transform=view_transform,
        principal_point=ortho,
        focal_length=focal_length,
        near=near,
        far=far,
    )

    logger.debug(f"Orthocenter: {ortho}, focal length: {focal_length:.6f}")
    logger.debug(f"Field of view: {np.degrees(pose.field_of_view):.3f} deg")
    logger.debug(f"View transform:\n{pose.view_transform}")

    return pose


def apply_scale(pose: CameraPose, scale: float) -> CameraPose:
    """
    Return a pose whose view translation is divided by `scale`.

    The rotation block is untouched, so the pose sees a world point p exactly
    where the unscaled pose sees scale * p, while eye-space distances shrink
    by 1/scale.
    """
    if not np.isfinite(scale) or scale == 0:
        raise ValueError(f"Scale must be finite and non-zero, got {scale}")

    view_transform = pose.view_transform.copy()
    view_transform[:3, 3] /= scale
    return replace(pose, view_transform=view_transform)


def apply_translation(pose: CameraPose, translation) -> CameraPose:
    """
    Return a pose whose view transform is right-multiplied by a translation of
    -translation, moving the world origin to `translation`.
    """
    offset = np.asarray(translation, dtype=np.float64).reshape(3)

    translation_matrix = np.eye(4)
    translation_matrix[:3, 3] = -offset
    return replace(pose, view_transform=pose.view_transform @ translation_matrix)


def project_point(pose: CameraPose, point) -> np.ndarray:
    """
    Project a 3D world point to image-plane coordinates.

    Raises:
        DegenerateGeometryError: If the point lies on the camera plane (w = 0)
    """
    homogeneous = np.append(np.asarray(point, dtype=np.float64).reshape(3), 1.0)
    clip = pose.transform @ homogeneous

    if abs(clip[3]) < GEOMETRY_EPSILON:
        raise DegenerateGeometryError(f"Point {point} lies on the camera plane")

    return clip[:2] / clip[3]


def scale_to_dimension(
    start,
    end,
    dimension: float,
    previous_scale: Optional[float] = None,
) -> float:
    """
    Scale factor that makes a measured 3D segment match a known length.

    Args:
        start: Segment start in current world units
        end: Segment end in current world units
        dimension: Real-world length of the segment
        previous_scale: Scale already applied to the pose, composed multiplicatively

    Returns:
        Scale to pass to apply_scale on the unscaled pose
    """
    if dimension <= 0:
        raise ValueError(f"Dimension must be positive, got {dimension}")

    length = float(np.linalg.norm(
        np.asarray(end, dtype=np.float64) - np.asarray(start, dtype=np.float64)
    ))
    if length < GEOMETRY_EPSILON:
        raise DegenerateGeometryError("Reference segment has zero length")

    scale = length / dimension
    if previous_scale is not None:
        scale *= previous_scale
    return scale


def calibrate(
    axis_data: AxisData,
    image_size: Tuple[float, float],
    settings: Optional[CalibrationSettings] = None,
) -> CameraPose:
    """
    Run the full calibration chain on the user's axis lines.

    Steps:
        1. Vanishing point of each axis line pair (normalized canvas space)
        2. Convert vanishing points and control point to the image plane
        3. Compose the pose
        4. Apply the stored custom scale, then the stored custom translation

    Args:
        axis_data: Axis lines, control point, flips and custom adjustments
        image_size: Source image (width, height) in pixels
        settings: Engine policy; defaults when None

    Returns:
        CameraPose
    """
    settings = settings or CalibrationSettings()
    width, height = image_size
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size: {image_size}")
    ratio = width / height

    vanishing_points = to_image_plane(
        ratio, np.array(vanishing_points_for_lines(axis_data.axis_lines))
    )
    user_origin = to_image_plane(ratio, axis_data.control_point)

    pose = compute_pose(
        list(vanishing_points),
        user_origin,
        axis_data.flip,
        world_scale=settings.world_scale,
        near=settings.near,
        far=settings.far,
    )

    if axis_data.custom_scale is not None:
        pose = apply_scale(pose, axis_data.custom_scale)
    if axis_data.custom_origin_translation is not None:
        pose = apply_translation(pose, axis_data.custom_origin_translation)

    logger.info(
        f"Calibrated pose: focal length {pose.focal_length:.4f}, "
        f"fov {np.degrees(pose.field_of_view):.2f} deg"
    )
    return pose
