"""
Serializable scene description.

The camera block written to scene files is a fixed JSON document:

    {
        "cameraParameters": {
            "principalPoint": {"x": .., "y": ..},
            "cameraTransform": {"rows": [[..4..], [..4..], [..4..], [..4..]]},
            "horizontalFieldOfView": ..,
            "imageWidth": ..,
            "imageHeight": ..
        },
        "calibrationSettingsBase": {"referenceDistanceUnit": "Meters"}
    }

cameraTransform holds the inverted view transform (camera-to-world), which is
what external tools such as Blender's fSpy importer expect.
"""

import numpy as np
from typing import Any, Dict, Tuple
from dataclasses import dataclass
import logging

from .config import REFERENCE_DISTANCE_UNIT
from .errors import DegenerateGeometryError, MalformedInputError
from .pose import CameraPose

logger = logging.getLogger(__name__)

Matrix4Rows = Tuple[Tuple[float, float, float, float], ...]


@dataclass(frozen=True)
class SceneDescription:
    """
    Camera description stored in a scene file.

    Attributes:
        principal_point: Image-plane principal point (x, y)
        camera_transform: Camera-to-world transform as four rows of four
        horizontal_field_of_view: Field of view in radians
        image_width: Source image width in pixels
        image_height: Source image height in pixels
        reference_distance_unit: Unit tag of world distances
    """
    principal_point: Tuple[float, float]
    camera_transform: Matrix4Rows
    horizontal_field_of_view: float
    image_width: int
    image_height: int
    reference_distance_unit: str = REFERENCE_DISTANCE_UNIT

    @classmethod
    def from_pose(cls, pose: CameraPose, image_width: int, image_height: int) -> "SceneDescription":
        """
        Describe a camera pose for export.

        Raises:
            DegenerateGeometryError: If the view transform cannot be inverted
        """
        try:
            camera_to_world = np.linalg.inv(pose.view_transform)
        except np.linalg.LinAlgError as e:
            raise DegenerateGeometryError(f"View transform is singular: {e}") from e

        logger.debug(f"View transform inverse:\n{camera_to_world}")

        rows = tuple(tuple(float(v) for v in row) for row in camera_to_world)
        return cls(
            principal_point=(float(pose.principal_point[0]), float(pose.principal_point[1])),
            camera_transform=rows,
            horizontal_field_of_view=float(pose.field_of_view),
            image_width=int(image_width),
            image_height=int(image_height),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cameraParameters': {
                'principalPoint': {
                    'x': self.principal_point[0],
                    'y': self.principal_point[1],
                },
                'cameraTransform': {
                    'rows': [list(row) for row in self.camera_transform],
                },
                'horizontalFieldOfView': self.horizontal_field_of_view,
                'imageWidth': self.image_width,
                'imageHeight': self.image_height,
            },
            'calibrationSettingsBase': {
                'referenceDistanceUnit': self.reference_distance_unit,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SceneDescription":
        """
        Build a description from a decoded camera block.

        Raises:
            MalformedInputError: If required fields are missing or malformed
        """
        try:
            camera = data['cameraParameters']
            rows = tuple(
                tuple(float(v) for v in row)
                for row in camera['cameraTransform']['rows']
            )
            if len(rows) != 4 or any(len(row) != 4 for row in rows):
                raise MalformedInputError("cameraTransform.rows must be 4x4")

            return cls(
                principal_point=(
                    float(camera['principalPoint']['x']),
                    float(camera['principalPoint']['y']),
                ),
                camera_transform=rows,
                horizontal_field_of_view=float(camera['horizontalFieldOfView']),
                image_width=int(camera['imageWidth']),
                image_height=int(camera['imageHeight']),
                reference_distance_unit=str(
                    data['calibrationSettingsBase']['referenceDistanceUnit']
                ),
            )
        except MalformedInputError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedInputError(f"Invalid camera block: {e!r}") from e

    def camera_transform_matrix(self) -> np.ndarray:
        return np.array(self.camera_transform, dtype=np.float64)


@dataclass(frozen=True)
class SceneData:
    """A scene description bundled with the original image file bytes."""
    description: SceneDescription
    image: bytes
