"""
Points file module for reading and writing editable calibration state.

Points File Format (JSON):
    {
        "controlPoint": {"x": 0.5, "y": 0.5},
        "lines": [{"a": {"x": .., "y": ..}, "b": {"x": .., "y": ..}}, ...],
        "points": [{"x": .., "y": .., "z": ..}, ...],
        "flip": [false, false, false],
        "customOriginTanslation": {"x": .., "y": .., "z": ..},
        "customScale": 1.0
    }

    - lines: exactly 6 entries ordered X, X, Y, Y, Z, Z in normalized canvas space
    - points: optional 3D polyline drawn in world coordinates
    - flip, customOriginTanslation, customScale: optional
    - "customOriginTanslation" is misspelled on purpose; it is the external name

Older files written with snake_case keys (control_point, custom_origin_tanslation,
custom_scale) are accepted on read.
"""

import json
import numpy as np
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import logging

from .errors import MalformedInputError
from .vanishing import LineSegment

logger = logging.getLogger(__name__)

NUM_AXIS_LINES = 6


def _default_axis_lines() -> List[LineSegment]:
    return [
        LineSegment((0.49291667, 0.8496296), (0.66791666, 0.6798148)),
        LineSegment((0.315, 0.27925926), (0.50166667, 0.17685185)),
        LineSegment((0.47104168, 0.8211111), (0.27052084, 0.6020371)),
        LineSegment((0.5264583, 0.18981482), (0.81083333, 0.3622222)),
        LineSegment((0.6715625, 0.5838889), (0.68833333, 0.11722221)),
        LineSegment((0.32958332, 0.58518517), (0.30770832, 0.05111111)),
    ]


@dataclass
class AxisData:
    """
    Editable calibration state for one image.

    Attributes:
        axis_lines: Six segments, two per axis, ordered X, X, Y, Y, Z, Z
        control_point: Normalized canvas position of the world origin
        flip: Per-axis mirroring flags
        custom_origin_translation: Optional world-space origin shift
        custom_scale: Optional uniform world scale
    """
    axis_lines: List[LineSegment] = field(default_factory=_default_axis_lines)
    control_point: Tuple[float, float] = (0.5, 0.5)
    flip: Tuple[bool, bool, bool] = (False, False, False)
    custom_origin_translation: Optional[Tuple[float, float, float]] = None
    custom_scale: Optional[float] = None

    def __post_init__(self):
        if len(self.axis_lines) != NUM_AXIS_LINES:
            raise MalformedInputError(
                f"Expected {NUM_AXIS_LINES} axis lines, got {len(self.axis_lines)}"
            )
        if len(self.flip) != 3:
            raise MalformedInputError(f"Expected 3 flip flags, got {len(self.flip)}")


def _get(data: Dict[str, Any], camel: str, snake: str, default=None):
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def _point2(raw: Dict[str, Any]) -> Tuple[float, float]:
    return float(raw['x']), float(raw['y'])


def _point3(raw: Dict[str, Any]) -> Tuple[float, float, float]:
    return float(raw['x']), float(raw['y']), float(raw['z'])


def parse_points_data(data: Any) -> Tuple[AxisData, Optional[np.ndarray]]:
    """
    Build axis data and the optional polyline from a decoded points document.

    Raises:
        MalformedInputError: If required keys are missing or have the wrong shape
    """
    if not isinstance(data, dict):
        raise MalformedInputError("Points document must be a JSON object")

    try:
        control_point = _point2(_get(data, 'controlPoint', 'control_point'))
        lines = [
            LineSegment(_point2(line['a']), _point2(line['b']))
            for line in data['lines']
        ]

        raw_points = data.get('points')
        points = None
        if raw_points is not None:
            points = np.array([_point3(p) for p in raw_points], dtype=np.float64).reshape(-1, 3)

        raw_flip = data.get('flip')
        flip = (False, False, False)
        if raw_flip is not None:
            if len(raw_flip) != 3:
                raise MalformedInputError(f"Expected 3 flip flags, got {len(raw_flip)}")
            flip = tuple(bool(f) for f in raw_flip)

        raw_translation = _get(data, 'customOriginTanslation', 'custom_origin_tanslation')
        translation = _point3(raw_translation) if raw_translation is not None else None

        raw_scale = _get(data, 'customScale', 'custom_scale')
        custom_scale = float(raw_scale) if raw_scale is not None else None
    except MalformedInputError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedInputError(f"Invalid points document: {e!r}") from e

    axis_data = AxisData(
        axis_lines=lines,
        control_point=control_point,
        flip=flip,
        custom_origin_translation=translation,
        custom_scale=custom_scale,
    )
    return axis_data, points


def read_points_file(filepath: str) -> Tuple[AxisData, Optional[np.ndarray]]:
    """
    Read a points file.

    Args:
        filepath: Path to the JSON points file

    Returns:
        Tuple of (axis data, optional Nx3 polyline)

    Raises:
        FileNotFoundError: If the file does not exist
        MalformedInputError: If the file is not a valid points document
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Points file not found: {filepath}")

    with open(path, 'r') as f:
        try:
            data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedInputError(f"Points file is not valid JSON: {filepath}: {e}") from e

    axis_data, points = parse_points_data(data)

    n_points = 0 if points is None else len(points)
    logger.info(f"Loaded points file {filepath} ({n_points} polyline points)")
    return axis_data, points


def points_document(axis_data: AxisData, points=None) -> Dict[str, Any]:
    """Serialize axis data and an optional polyline to a points document."""
    data: Dict[str, Any] = {
        'controlPoint': {
            'x': float(axis_data.control_point[0]),
            'y': float(axis_data.control_point[1]),
        },
        'lines': [
            {
                'a': {'x': float(line.a[0]), 'y': float(line.a[1])},
                'b': {'x': float(line.b[0]), 'y': float(line.b[1])},
            }
            for line in axis_data.axis_lines
        ],
        'flip': [bool(f) for f in axis_data.flip],
    }

    if points is not None:
        data['points'] = [
            {'x': float(p[0]), 'y': float(p[1]), 'z': float(p[2])}
            for p in np.asarray(points, dtype=np.float64).reshape(-1, 3)
        ]

    if axis_data.custom_origin_translation is not None:
        x, y, z = axis_data.custom_origin_translation
        data['customOriginTanslation'] = {'x': float(x), 'y': float(y), 'z': float(z)}

    if axis_data.custom_scale is not None:
        data['customScale'] = float(axis_data.custom_scale)

    return data


def write_points_file(filepath: str, axis_data: AxisData, points=None) -> None:
    """Write axis data and an optional polyline to a JSON points file."""
    with open(filepath, 'w') as f:
        json.dump(points_document(axis_data, points), f, indent=2)

    logger.info(f"Points file saved to {filepath}")
