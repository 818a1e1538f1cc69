"""
Configuration module for single-view calibration.

The numeric policy of the engine (default world scale, clip ranges, tolerances)
lives here as named constants. The defaults must stay as they are so that saved
points files and exported scenes keep reproducing the same camera.

A YAML file can override any of them through CalibrationSettings.
"""

import yaml
from pathlib import Path
from dataclasses import dataclass, asdict
import logging

logger = logging.getLogger(__name__)

# Arbitrary world scale applied to the user-selected origin
DEFAULT_WORLD_SCALE = 10.0

# Clip range of the camera projection used for pose, unprojection and export
PROJECTION_NEAR = 0.01
PROJECTION_FAR = 10.0

# Clip range used when clipping overlay polylines against the view frustum
OVERLAY_NEAR = 0.1
OVERLAY_FAR = 1000.0

# Canvas-normalized distance under which a click selects a point or line
HIT_TOLERANCE = 0.01

# Denominators below this magnitude are treated as degenerate
GEOMETRY_EPSILON = 1e-12

# Orthocenter refinement bounds
REFINE_MAX_ITERATIONS = 12
REFINE_TOLERANCE = 1e-7

REFERENCE_DISTANCE_UNIT = "Meters"


@dataclass
class CalibrationSettings:
    """
    Tunable policy values of the calibration engine.

    Attributes:
        world_scale: Scale applied to the origin translation of a fresh pose
        near: Near clip distance of the camera projection
        far: Far clip distance of the camera projection
        overlay_near: Near clip distance for overlay polylines
        overlay_far: Far clip distance for overlay polylines
        hit_tolerance: Picking tolerance in canvas-normalized units
        refine_max_iterations: Iteration cap for orthocenter refinement
        refine_tolerance: Gradient tolerance for orthocenter refinement
    """
    world_scale: float = DEFAULT_WORLD_SCALE
    near: float = PROJECTION_NEAR
    far: float = PROJECTION_FAR
    overlay_near: float = OVERLAY_NEAR
    overlay_far: float = OVERLAY_FAR
    hit_tolerance: float = HIT_TOLERANCE
    refine_max_iterations: int = REFINE_MAX_ITERATIONS
    refine_tolerance: float = REFINE_TOLERANCE

    def __post_init__(self):
        if self.world_scale <= 0:
            raise ValueError(f"world_scale must be positive, got {self.world_scale}")
        if not 0 < self.near < self.far:
            raise ValueError(f"Invalid clip range: near={self.near}, far={self.far}")
        if not 0 < self.overlay_near < self.overlay_far:
            raise ValueError(
                f"Invalid overlay clip range: near={self.overlay_near}, far={self.overlay_far}"
            )
        if self.refine_max_iterations < 1:
            raise ValueError("refine_max_iterations must be at least 1")

    @classmethod
    def from_yaml(cls, config_path: str) -> "CalibrationSettings":
        """
        Load settings from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            CalibrationSettings with defaults for any missing key

        Example YAML structure:
            world_scale: 10.0
            projection:
              near: 0.01
              far: 10.0
            overlay:
              near: 0.1
              far: 1000.0
            hit_tolerance: 0.01
            refine:
              max_iterations: 12
              tolerance: 1.0e-7
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {config_path}")

        logger.info(f"Loading configuration from {config_path}")

        projection = data.get('projection', {})
        overlay = data.get('overlay', {})
        refine = data.get('refine', {})

        return cls(
            world_scale=float(data.get('world_scale', DEFAULT_WORLD_SCALE)),
            near=float(projection.get('near', PROJECTION_NEAR)),
            far=float(projection.get('far', PROJECTION_FAR)),
            overlay_near=float(overlay.get('near', OVERLAY_NEAR)),
            overlay_far=float(overlay.get('far', OVERLAY_FAR)),
            hit_tolerance=float(data.get('hit_tolerance', HIT_TOLERANCE)),
            refine_max_iterations=int(refine.get('max_iterations', REFINE_MAX_ITERATIONS)),
            refine_tolerance=float(refine.get('tolerance', REFINE_TOLERANCE)),
        )

    def to_yaml(self, config_path: str) -> None:
        """Save settings to a YAML file."""
        data = {
            'world_scale': self.world_scale,
            'projection': {
                'near': self.near,
                'far': self.far,
            },
            'overlay': {
                'near': self.overlay_near,
                'far': self.overlay_far,
            },
            'hit_tolerance': self.hit_tolerance,
            'refine': {
                'max_iterations': self.refine_max_iterations,
                'tolerance': self.refine_tolerance,
            },
        }

        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")

    def as_dict(self) -> dict:
        return asdict(self)
