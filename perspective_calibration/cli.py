"""
Command-line interface for single-view camera calibration.

Usage:
    perspective-calibrate calibrate IMAGE [--points POINTS] [--output OUTPUT]
                                          [--config CONFIG] [--dimension LENGTH]
                                          [--refine] [--save-points] [-v]
    perspective-calibrate inspect SCENE [-v]
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

import numpy as np

from .config import CalibrationSettings
from .errors import PerspectiveError
from .export import export_scene, read_scene
from .loader import default_points_path, default_scene_path, load_state
from .points_file import write_points_file
from .pose import calibrate, scale_to_dimension
from .refine import refine_axis_lines


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Recover a camera from three vanishing points in a single image',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
    # Calibrate using photo.points next to the image, writing photo.fspy
    perspective-calibrate calibrate photo.jpg

    # Scale the scene so the first polyline segment is 2.5 meters long
    perspective-calibrate calibrate photo.jpg --dimension 2.5

    # Refine the axis lines first and store them back into the points file
    perspective-calibrate calibrate photo.jpg --refine --save-points

    # Show the camera stored in a scene file
    perspective-calibrate inspect photo.fspy
'''
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    calibrate_parser = subparsers.add_parser(
        'calibrate', help='Calibrate an image and export a scene file'
    )
    calibrate_parser.add_argument(
        'image',
        type=str,
        help='Path to the source image'
    )
    calibrate_parser.add_argument(
        '--points', '-p',
        type=str,
        default=None,
        help='Points file (default: <image stem>.points next to the image)'
    )
    calibrate_parser.add_argument(
        '--output', '-o',
        type=str,
        default=None,
        help='Scene file to write (default: <image stem>.fspy next to the image)'
    )
    calibrate_parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Optional YAML settings file'
    )
    calibrate_parser.add_argument(
        '--dimension', '-d',
        type=float,
        default=None,
        help='Real-world length of the first polyline segment'
    )
    calibrate_parser.add_argument(
        '--refine',
        action='store_true',
        help='Refine the axis lines so the principal point approaches the image center'
    )
    calibrate_parser.add_argument(
        '--save-points',
        action='store_true',
        help='Write refined lines and scale back into the points file'
    )
    calibrate_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        default=argparse.SUPPRESS,
        help='Enable verbose output'
    )

    inspect_parser = subparsers.add_parser(
        'inspect', help='Print the camera stored in a scene file'
    )
    inspect_parser.add_argument(
        'scene',
        type=str,
        help='Path to the scene file'
    )
    inspect_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        default=argparse.SUPPRESS,
        help='Enable verbose output'
    )

    return parser


def run_calibrate(args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)

    if args.config:
        settings = CalibrationSettings.from_yaml(args.config)
    else:
        settings = CalibrationSettings()
    logger.debug(f"Settings: {settings.as_dict()}")

    state = load_state(args.image, args.points)
    axis_data = state.axis_data
    changed = False

    if args.refine:
        result = refine_axis_lines(
            axis_data.axis_lines,
            state.ratio,
            max_iterations=settings.refine_max_iterations,
            tolerance=settings.refine_tolerance,
        )
        if result.improved:
            axis_data = replace(axis_data, axis_lines=result.axis_lines)
            changed = True

    pose = calibrate(axis_data, state.image_size, settings)

    if args.dimension is not None:
        if state.points is None or len(state.points) < 2:
            raise ValueError("--dimension needs a polyline with at least two points")

        scale = scale_to_dimension(
            state.points[0], state.points[1], args.dimension, axis_data.custom_scale
        )
        logger.info(f"Scaling scene by {scale:.6f} to match dimension {args.dimension}")
        axis_data = replace(axis_data, custom_scale=scale)
        pose = calibrate(axis_data, state.image_size, settings)
        changed = True

    if args.save_points and changed:
        points_path = args.points or default_points_path(args.image)
        write_points_file(points_path, axis_data, state.points)

    output_path = args.output or default_scene_path(args.image)
    description = export_scene(pose, args.image, output_path, state.image_size)

    principal = description.principal_point
    print("\n" + "=" * 60)
    print("CALIBRATION SUMMARY")
    print("=" * 60)
    print(f"Image:                  {args.image} ({state.image_size[0]}x{state.image_size[1]})")
    print(f"Axis lines from:        {'defaults' if state.from_defaults else 'points file'}")
    print(f"Principal point:        ({principal[0]:.5f}, {principal[1]:.5f})")
    print(f"Focal length:           {pose.focal_length:.5f}")
    print(f"Field of view:          {np.degrees(pose.field_of_view):.3f} deg")
    print(f"Scene file:             {output_path}")
    print("=" * 60)

    return 0


def run_inspect(args: argparse.Namespace) -> int:
    scene = read_scene(args.scene)
    description = scene.description

    print(json.dumps(description.to_dict(), indent=2))
    print(f"\nField of view:          "
          f"{np.degrees(description.horizontal_field_of_view):.3f} deg")
    print(f"Embedded image:         {len(scene.image)} bytes")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        if args.command == 'calibrate':
            return run_calibrate(args)
        return run_inspect(args)

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except PerspectiveError as e:
        logger.error(f"Calibration error: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
