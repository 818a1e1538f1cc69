"""
Tests for hit testing helpers.
"""

import pytest

from perspective_calibration.picking import (
    distance_to_line,
    find_endpoint,
    is_control_point_hit,
    is_near_point,
    is_point_on_line,
)
from perspective_calibration.points_file import AxisData


class TestControlPointHit:

    def test_hit(self):
        assert is_control_point_hit((0.5, 0.5), (0.503, 0.504))

    def test_manhattan_distance(self):
        """Each offset is inside the tolerance but their sum is not."""
        assert not is_control_point_hit((0.5, 0.5), (0.506, 0.506))


class TestNearPoint:

    def test_inside_box(self):
        assert is_near_point((0.2, 0.2), (0.208, 0.192))

    def test_outside_box(self):
        assert not is_near_point((0.2, 0.2), (0.212, 0.2))

    def test_custom_tolerance(self):
        assert is_near_point((0.2, 0.2), (0.212, 0.2), tolerance=0.05)


class TestPointOnLine:

    def test_distance(self):
        assert distance_to_line((0, 0), (1, 0), (0.5, 0.25)) == pytest.approx(0.25)

    def test_infinite_line(self):
        """Points beyond the segment ends still count as on the line."""
        assert is_point_on_line((0, 0), (1, 1), (2.0, 2.005))

    def test_off_line(self):
        assert not is_point_on_line((0, 0), (1, 0), (0.5, 0.02))

    def test_degenerate_line(self):
        assert distance_to_line((0.3, 0.3), (0.3, 0.3), (0.3, 0.4)) == pytest.approx(0.1)


class TestFindEndpoint:

    def test_finds_endpoint(self):
        lines = AxisData().axis_lines
        target = lines[3].b

        assert find_endpoint(lines, (target[0] + 0.002, target[1])) == (3, 1)

    def test_no_endpoint(self):
        assert find_endpoint(AxisData().axis_lines, (0.0, 0.0)) is None


class TestPackageExports:

    def test_helpers_exported(self):
        import perspective_calibration

        assert perspective_calibration.is_control_point_hit is is_control_point_hit
        assert perspective_calibration.is_point_on_line is is_point_on_line
        assert perspective_calibration.find_endpoint is find_endpoint
        assert 'is_near_point' in perspective_calibration.__all__
