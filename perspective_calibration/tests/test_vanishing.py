"""
Tests for the vanishing point solver.
"""

import itertools

import pytest
import numpy as np
from numpy.testing import assert_allclose

from perspective_calibration.errors import DegenerateGeometryError
from perspective_calibration.points_file import AxisData
from perspective_calibration.vanishing import (
    LineSegment,
    orthocenter,
    vanishing_point,
    vanishing_points_for_lines,
)


class TestVanishingPoint:
    """Tests for line pair intersection."""

    def test_crossing_lines(self):
        result = vanishing_point((0, 0), (1, 1), (0, 1), (1, 0))
        assert_allclose(result, [0.5, 0.5])

    def test_intersection_outside_segments(self):
        """Lines are infinite: the intersection may lie beyond both segments."""
        result = vanishing_point((0, 0), (1, 0.1), (0, 1), (1, 0.9))
        assert_allclose(result, [5.0, 0.5])

    def test_parallel_lines_raise(self):
        with pytest.raises(DegenerateGeometryError):
            vanishing_point((0, 0), (1, 1), (0, 1), (1, 2))

    def test_degenerate_is_value_error(self):
        """Callers catching ValueError also see degenerate geometry."""
        with pytest.raises(ValueError):
            vanishing_point((0, 0), (1, 0), (0, 1), (1, 1))


class TestOrthocenter:
    """Tests for the triangle orthocenter."""

    def test_right_triangle(self):
        """The orthocenter of a right triangle is the right-angle vertex."""
        result = orthocenter((0.0, 0.0), (2.0, 0.0), (0.0, 3.0))
        assert_allclose(result, [0.0, 0.0], atol=1e-12)

    def test_equilateral_triangle(self):
        """For an equilateral triangle it coincides with the centroid."""
        x = np.array([0.0, 0.0])
        y = np.array([1.0, 0.0])
        z = np.array([0.5, np.sqrt(3) / 2])

        assert_allclose(orthocenter(x, y, z), (x + y + z) / 3, atol=1e-12)

    def test_permutation_invariance(self):
        vertices = [np.array([-1.2, 0.4]), np.array([0.9, 0.7]), np.array([0.1, -1.5])]
        expected = orthocenter(*vertices)

        for permutation in itertools.permutations(vertices):
            assert_allclose(orthocenter(*permutation), expected, rtol=1e-10)

    def test_altitudes_are_perpendicular(self):
        x, y, z = np.array([-1.2, 0.4]), np.array([0.9, 0.7]), np.array([0.1, -1.5])
        o = orthocenter(x, y, z)

        assert np.dot(o - x, z - y) == pytest.approx(0.0, abs=1e-10)
        assert np.dot(o - y, z - x) == pytest.approx(0.0, abs=1e-10)

    def test_collinear_raise(self):
        with pytest.raises(DegenerateGeometryError):
            orthocenter((0.0, 0.0), (1.0, 1.0), (2.0, 2.0))


class TestVanishingPointsForLines:

    def test_default_lines(self):
        points = vanishing_points_for_lines(AxisData().axis_lines)

        assert len(points) == 3
        for p in points:
            assert np.all(np.isfinite(p))

    def test_wrong_line_count(self):
        with pytest.raises(ValueError):
            vanishing_points_for_lines(AxisData().axis_lines[:4])

    def test_parallel_pair_names_axis(self):
        lines = list(AxisData().axis_lines)
        lines[2] = LineSegment((0.0, 0.0), (1.0, 0.0))
        lines[3] = LineSegment((0.0, 0.5), (1.0, 0.5))

        with pytest.raises(DegenerateGeometryError, match="Y axis"):
            vanishing_points_for_lines(lines)

    def test_line_segment_as_array(self):
        segment = LineSegment.from_points(np.array([1, 2]), [3, 4])

        assert segment.a == (1.0, 2.0)
        assert_allclose(segment.as_array(), [[1.0, 2.0], [3.0, 4.0]])
