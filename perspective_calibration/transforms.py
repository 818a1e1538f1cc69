"""
Coordinate transformation module for single-view calibration.

Three 2D coordinate spaces are in play:
    - Canvas: pixels of the widget the image is drawn into (origin top-left, y down)
    - Normalized: canvas divided by its size, both axes in [0, 1] (y down)
    - Image plane: origin at the image centre, y up, x in [-1, 1] and
      y in [-1/ratio, 1/ratio] where ratio = width / height

Conventions:
    - Every transform is a homogeneous 3x3 affine matrix applied to column vectors
    - to_image_plane corrects the aspect ratio; to_canvas scales both axes by the
      canvas width and is meant for display only
    - Inputs may be a single point (2,) or a batch (N, 2); the float precision of
      the input is preserved
"""

import numpy as np
from typing import Tuple
import logging

logger = logging.getLogger(__name__)


def _as_points(p) -> np.ndarray:
    """Coerce to a float array, keeping float32 input as float32."""
    p = np.asarray(p)
    if not np.issubdtype(p.dtype, np.floating):
        p = p.astype(np.float64)
    if p.shape[-1] != 2:
        raise ValueError(f"Expected 2D point(s), got shape {p.shape}")
    return p


def apply_affine(matrix: np.ndarray, p) -> np.ndarray:
    """
    Apply a homogeneous 3x3 affine transform to one or more 2D points.

    Args:
        matrix: 3x3 affine matrix
        p: Point (2,) or points (N, 2)

    Returns:
        Transformed point(s) with the same shape and dtype as the input
    """
    p = _as_points(p)
    m = matrix.astype(p.dtype, copy=False)
    return p @ m[:2, :2].T + m[:2, 2]


def image_plane_matrix(ratio: float, dtype=np.float64) -> np.ndarray:
    """
    Affine matrix taking normalized canvas coordinates to the image plane.

    Scales by (2, -2/ratio) then translates by (-1, 1/ratio).
    """
    if ratio <= 0:
        raise ValueError(f"Aspect ratio must be positive, got {ratio}")

    scale = np.array([
        [2.0, 0.0, 0.0],
        [0.0, -2.0 / ratio, 0.0],
        [0.0, 0.0, 1.0]
    ], dtype=dtype)

    translation = np.array([
        [1.0, 0.0, -1.0],
        [0.0, 1.0, 1.0 / ratio],
        [0.0, 0.0, 1.0]
    ], dtype=dtype)

    return translation @ scale


def canvas_matrix(bounds_size: Tuple[float, float], dtype=np.float64) -> np.ndarray:
    """
    Affine matrix taking image-plane coordinates to canvas pixels.

    Scales by (w/2, -w/2) then translates by (w/2, h/2). The width is used for
    both axes: aspect correction already happened in image_plane_matrix.
    """
    width, height = bounds_size

    scale = np.array([
        [width / 2.0, 0.0, 0.0],
        [0.0, -width / 2.0, 0.0],
        [0.0, 0.0, 1.0]
    ], dtype=dtype)

    translation = np.array([
        [1.0, 0.0, width / 2.0],
        [0.0, 1.0, height / 2.0],
        [0.0, 0.0, 1.0]
    ], dtype=dtype)

    return translation @ scale


def to_image_plane(ratio: float, p) -> np.ndarray:
    """
    Map normalized canvas coordinates to the centered image plane.

    Args:
        ratio: Image aspect ratio (width / height); must be the true ratio
        p: Normalized point(s), nominally in [0, 1] x [0, 1]

    Returns:
        Image-plane point(s): x in [-1, 1], y in [-1/ratio, 1/ratio], y up
    """
    p = _as_points(p)
    return apply_affine(image_plane_matrix(ratio, p.dtype), p)


def from_image_plane(ratio: float, p) -> np.ndarray:
    """Inverse of to_image_plane: image plane back to normalized canvas coordinates."""
    p = _as_points(p)
    inverse = np.linalg.inv(image_plane_matrix(ratio))
    return apply_affine(inverse.astype(p.dtype), p)


def to_canvas(bounds_size: Tuple[float, float], p) -> np.ndarray:
    """
    Map image-plane coordinates to canvas pixels for display.

    Args:
        bounds_size: Canvas (width, height) in pixels
        p: Image-plane point(s)

    Returns:
        Canvas pixel coordinates (origin top-left, y down)
    """
    p = _as_points(p)
    return apply_affine(canvas_matrix(bounds_size, p.dtype), p)


def normalize_to_canvas(point, bounds_size: Tuple[float, float]) -> np.ndarray:
    """Divide canvas pixel coordinates by the canvas size."""
    p = _as_points(point)
    return p / np.asarray(bounds_size, dtype=p.dtype)


def scale_to_canvas(point, bounds_size: Tuple[float, float]) -> np.ndarray:
    """Multiply normalized coordinates by the canvas size."""
    p = _as_points(point)
    return p * np.asarray(bounds_size, dtype=p.dtype)
