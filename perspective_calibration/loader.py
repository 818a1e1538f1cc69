"""
Calibration state loader.

Loads everything needed to calibrate one image:
    1. Axis data and the optional polyline from the image's points file
    2. Source image dimensions

A missing or unreadable points file is not fatal: the default axis lines are
used instead so a new image can be calibrated from scratch. A missing image is.
"""

import numpy as np
from pathlib import Path
from typing import Optional, Tuple
from dataclasses import dataclass
import logging

from PIL import Image, UnidentifiedImageError

from .errors import MalformedInputError
from .points_file import AxisData, read_points_file

logger = logging.getLogger(__name__)

POINTS_SUFFIX = '.points'
SCENE_SUFFIX = '.fspy'


@dataclass
class CalibrationState:
    """
    Loaded calibration state for one image.

    Attributes:
        image_path: Path of the source image
        image_size: (width, height) in pixels
        axis_data: Axis lines and adjustments (defaults if none were saved)
        points: Optional Nx3 polyline
        from_defaults: True if axis_data came from the defaults
    """
    image_path: str
    image_size: Tuple[int, int]
    axis_data: AxisData
    points: Optional[np.ndarray] = None
    from_defaults: bool = False

    @property
    def ratio(self) -> float:
        width, height = self.image_size
        return width / height


def default_points_path(image_path: str) -> str:
    """Points file next to the image: <stem>.points."""
    path = Path(image_path)
    return str(path.with_name(path.stem + POINTS_SUFFIX))


def default_scene_path(image_path: str) -> str:
    """Scene file next to the image: <stem>.fspy."""
    path = Path(image_path)
    return str(path.with_name(path.stem + SCENE_SUFFIX))


def read_image_size(image_path: str) -> Tuple[int, int]:
    """
    Read image dimensions without decoding the pixel data.

    Raises:
        FileNotFoundError: If the image does not exist
        MalformedInputError: If the file is not a readable image
    """
    path = Path(image_path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    try:
        with Image.open(path) as image:
            return image.size
    except UnidentifiedImageError as e:
        raise MalformedInputError(f"Cannot read image {image_path}: {e}") from e


def load_state(
    image_path: str,
    points_path: Optional[str] = None,
    load_points: bool = True,
) -> CalibrationState:
    """
    Load the calibration state for an image.

    Args:
        image_path: Path of the source image
        points_path: Points file path; defaults to <stem>.points next to the image
        load_points: Whether to load the stored 3D polyline

    Returns:
        CalibrationState
    """
    image_size = read_image_size(image_path)
    points_path = points_path or default_points_path(image_path)

    points = None
    from_defaults = False
    try:
        axis_data, points = read_points_file(points_path)
    except FileNotFoundError:
        logger.warning(f"Could not read data for {points_path}; using default axis lines")
        axis_data, from_defaults = AxisData(), True
    except MalformedInputError as e:
        logger.warning(f"Ignoring malformed points file {points_path}: {e}")
        axis_data, from_defaults = AxisData(), True
    except OSError as e:
        logger.warning(f"Could not read data for {points_path} ({e}); using default axis lines")
        axis_data, from_defaults = AxisData(), True

    if not load_points:
        points = None

    logger.info(f"Loaded state for {image_path} ({image_size[0]}x{image_size[1]})")
    return CalibrationState(
        image_path=image_path,
        image_size=image_size,
        axis_data=axis_data,
        points=points,
        from_defaults=from_defaults,
    )
