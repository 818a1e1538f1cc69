"""
Orthocenter refinement.

Hand-placed axis lines rarely put the principal point exactly at the image
center. This module nudges the twelve line endpoints so that the orthocenter of
the three vanishing points moves toward the image-plane origin, using a bounded
gradient-based minimization with numerical gradients.

The optimization is bounded by an iteration cap and a gradient tolerance, so it
always terminates. It can be submitted to a concurrent.futures executor; the
caller receives the refined lines as a single value when the Future completes.
"""

import numpy as np
from concurrent.futures import Executor, Future
from typing import List, Sequence, Tuple
from dataclasses import dataclass
import logging

from scipy.optimize import minimize

from .config import REFINE_MAX_ITERATIONS, REFINE_TOLERANCE
from .errors import DegenerateGeometryError
from .transforms import to_image_plane
from .vanishing import LineSegment, orthocenter, vanishing_point

logger = logging.getLogger(__name__)

# Objective value for endpoint configurations without a finite orthocenter
DEGENERATE_PENALTY = 1e6


@dataclass
class RefinementResult:
    """
    Outcome of an orthocenter refinement.

    Attributes:
        axis_lines: Refined segments (the input segments if nothing improved)
        initial_distance: Orthocenter distance from the origin before refinement
        final_distance: Orthocenter distance from the origin after refinement
        iterations: Iterations performed by the optimizer
        improved: True if the refined lines replaced the input
    """
    axis_lines: List[LineSegment]
    initial_distance: float
    final_distance: float
    iterations: int
    improved: bool


def _flatten(axis_lines: Sequence[LineSegment]) -> np.ndarray:
    return np.array([line.as_array() for line in axis_lines], dtype=np.float64).ravel()


def _unflatten(x: np.ndarray) -> List[LineSegment]:
    endpoints = np.asarray(x, dtype=np.float64).reshape(-1, 2, 2)
    return [LineSegment.from_points(a, b) for a, b in endpoints]


def orthocenter_distance(x: np.ndarray, ratio: float) -> float:
    """
    Distance of the orthocenter from the image-plane origin.

    Args:
        x: Flattened endpoints, 24 values ordered X, X, Y, Y, Z, Z
        ratio: Image aspect ratio

    Raises:
        DegenerateGeometryError: If any axis pair is parallel or the vanishing
            points are collinear
    """
    endpoints = np.asarray(x, dtype=np.float64).reshape(3, 4, 2)

    vanishing_points = np.array([
        vanishing_point(*axis) for axis in endpoints
    ])
    vanishing_points = to_image_plane(ratio, vanishing_points)

    return float(np.linalg.norm(orthocenter(*vanishing_points)))


def _objective(x: np.ndarray, ratio: float) -> float:
    try:
        value = orthocenter_distance(x, ratio)
    except DegenerateGeometryError:
        return DEGENERATE_PENALTY
    return value if np.isfinite(value) else DEGENERATE_PENALTY


def refine_axis_lines(
    axis_lines: Sequence[LineSegment],
    ratio: float,
    max_iterations: int = REFINE_MAX_ITERATIONS,
    tolerance: float = REFINE_TOLERANCE,
) -> RefinementResult:
    """
    Move the axis line endpoints so the orthocenter approaches the image center.

    Args:
        axis_lines: Six segments ordered X, X, Y, Y, Z, Z
        ratio: Image aspect ratio (width / height)
        max_iterations: Iteration cap of the optimizer
        tolerance: Gradient tolerance of the optimizer

    Returns:
        RefinementResult

    Raises:
        DegenerateGeometryError: If the starting lines are degenerate
    """
    if len(axis_lines) != 6:
        raise ValueError(f"Expected 6 axis lines, got {len(axis_lines)}")

    x0 = _flatten(axis_lines)
    initial_distance = orthocenter_distance(x0, ratio)

    logger.info(f"Refining axis lines: initial orthocenter distance {initial_distance:.6f}")

    result = minimize(
        _objective,
        x0,
        args=(ratio,),
        method='BFGS',
        options={'maxiter': max_iterations, 'gtol': tolerance},
    )

    final_distance = float(result.fun)
    improved = bool(np.all(np.isfinite(result.x))) and final_distance < initial_distance

    logger.debug(f"Optimizer stopped after {result.nit} iterations: {result.message}")

    if not improved:
        logger.warning("Refinement did not reduce the orthocenter distance; keeping lines")
        return RefinementResult(
            axis_lines=list(axis_lines),
            initial_distance=initial_distance,
            final_distance=initial_distance,
            iterations=int(result.nit),
            improved=False,
        )

    logger.info(f"Refined orthocenter distance: {final_distance:.6f}")
    return RefinementResult(
        axis_lines=_unflatten(result.x),
        initial_distance=initial_distance,
        final_distance=final_distance,
        iterations=int(result.nit),
        improved=True,
    )


def submit_refinement(
    executor: Executor,
    axis_lines: Sequence[LineSegment],
    ratio: float,
    max_iterations: int = REFINE_MAX_ITERATIONS,
    tolerance: float = REFINE_TOLERANCE,
) -> "Future[RefinementResult]":
    """
    Run refine_axis_lines on an executor.

    The segments are copied before submission so later edits by the caller do
    not affect the running refinement.
    """
    snapshot: Tuple[LineSegment, ...] = tuple(axis_lines)
    return executor.submit(refine_axis_lines, snapshot, ratio, max_iterations, tolerance)
