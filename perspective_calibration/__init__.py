"""
Perspective Calibration Package

Single-view camera calibration from three orthogonal vanishing points, with
export to the binary fSpy scene format.
"""

from .config import CalibrationSettings
from .errors import (
    DegenerateGeometryError,
    MalformedInputError,
    PerspectiveError,
    SceneIOError,
)
from .transforms import to_canvas, to_image_plane
from .vanishing import LineSegment, orthocenter, vanishing_point
from .points_file import AxisData, read_points_file, write_points_file
from .pose import (
    CameraPose,
    apply_scale,
    apply_translation,
    calibrate,
    compute_pose,
    project_point,
    scale_to_dimension,
)
from .unproject import EditAxis, constrain_to_axis, screen_to_world, world_to_screen
from .frustum import Frustum, clip_segment, project_polyline
from .scene import SceneData, SceneDescription
from .codec import SceneDecoder, decode, encode
from .refine import refine_axis_lines, submit_refinement
from .picking import find_endpoint, is_control_point_hit, is_near_point, is_point_on_line
from .loader import load_state
from .export import export_scene, read_scene

__version__ = "0.1.0"
__all__ = [
    "CalibrationSettings",
    "PerspectiveError",
    "DegenerateGeometryError",
    "MalformedInputError",
    "SceneIOError",
    "to_image_plane",
    "to_canvas",
    "LineSegment",
    "vanishing_point",
    "orthocenter",
    "AxisData",
    "read_points_file",
    "write_points_file",
    "CameraPose",
    "compute_pose",
    "apply_scale",
    "apply_translation",
    "project_point",
    "scale_to_dimension",
    "calibrate",
    "EditAxis",
    "screen_to_world",
    "world_to_screen",
    "constrain_to_axis",
    "Frustum",
    "clip_segment",
    "project_polyline",
    "SceneDescription",
    "SceneData",
    "encode",
    "decode",
    "SceneDecoder",
    "refine_axis_lines",
    "submit_refinement",
    "is_control_point_hit",
    "is_near_point",
    "is_point_on_line",
    "find_endpoint",
    "load_state",
    "export_scene",
    "read_scene",
]
