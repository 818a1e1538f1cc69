"""
Tests for cursor unprojection and axis-constrained editing.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from perspective_calibration.errors import DegenerateGeometryError
from perspective_calibration.points_file import AxisData
from perspective_calibration.pose import CameraPose, calibrate
from perspective_calibration.unproject import (
    EditAxis,
    constrain_to_axis,
    constraint_plane_normal,
    invert_transform,
    line_plane_intersection,
    screen_to_world,
    world_to_screen,
)

IMAGE_SIZE = (1920, 1080)
RATIO = IMAGE_SIZE[0] / IMAGE_SIZE[1]


@pytest.fixture
def pose():
    return calibrate(AxisData(), IMAGE_SIZE)


class TestLinePlaneIntersection:

    def test_hits_plane(self):
        result = line_plane_intersection([0, 0, 5], [0, 0, -5], [0, 0, 1], [0, 0, 1])
        assert_allclose(result, [0, 0, 1])

    def test_oblique_line(self):
        result = line_plane_intersection([0, 0, 2], [2, 2, 0], [0, 0, 0], [0, 0, 1])
        assert_allclose(result, [2, 2, 0])

    def test_parallel_line_raises(self):
        with pytest.raises(DegenerateGeometryError):
            line_plane_intersection([0, 0, 1], [1, 0, 1], [0, 0, 0], [0, 0, 1])


class TestConstraintPlane:

    def test_z_edit_uses_x_normal(self):
        assert_allclose(constraint_plane_normal(EditAxis.Z), [1, 0, 0])

    @pytest.mark.parametrize("axis", [EditAxis.X, EditAxis.Y, EditAxis.NONE])
    def test_other_edits_use_ground_plane(self, axis):
        assert_allclose(constraint_plane_normal(axis), [0, 0, 1])


class TestScreenToWorld:
    """Tests for cursor to world unprojection."""

    def test_control_point_hits_world_origin(self, pose):
        result = screen_to_world(pose, RATIO, AxisData().control_point)
        assert_allclose(result, [0.0, 0.0, 0.0], atol=1e-6)

    def test_result_lies_on_ground_plane(self, pose):
        result = screen_to_world(pose, RATIO, (0.45, 0.55))
        assert result[2] == pytest.approx(0.0, abs=1e-9)

    def test_anchor_moves_plane(self, pose):
        result = screen_to_world(pose, RATIO, (0.45, 0.55), anchor=(0.0, 0.0, 0.7))
        assert result[2] == pytest.approx(0.7, abs=1e-9)

    def test_z_edit_stays_on_anchor_x(self, pose):
        anchor = (0.2, 0.1, 0.0)
        result = screen_to_world(pose, RATIO, (0.5, 0.4), EditAxis.Z, anchor)
        assert result[0] == pytest.approx(0.2, abs=1e-9)

    @pytest.mark.parametrize("cursor", [(0.5, 0.5), (0.45, 0.55), (0.6, 0.52), (0.38, 0.61)])
    def test_unproject_project_inverse(self, pose, cursor):
        world = screen_to_world(pose, RATIO, cursor)
        assert_allclose(world_to_screen(pose, RATIO, world), cursor, atol=1e-6)

    def test_singular_transform(self):
        with pytest.raises(DegenerateGeometryError):
            invert_transform(np.zeros((4, 4)))


class TestWorldToScreen:

    def test_canvas_pixels(self, pose):
        world = screen_to_world(pose, RATIO, (0.45, 0.55))
        pixels = world_to_screen(pose, RATIO, world, bounds_size=IMAGE_SIZE)

        assert_allclose(pixels, [0.45 * IMAGE_SIZE[0], 0.55 * IMAGE_SIZE[1]], atol=1e-3)

    def test_identity_camera(self):
        pose = CameraPose(view_transform=np.eye(4), principal_point=(0, 0), focal_length=1.0)

        # Straight ahead lands in the middle of the canvas
        assert_allclose(world_to_screen(pose, 1.0, [0.0, 0.0, -3.0]), [0.5, 0.5])


class TestConstrainToAxis:
    """Tests for combining an edit with its anchor."""

    def test_none_returns_new_point(self):
        assert_allclose(constrain_to_axis(EditAxis.NONE, [1, 2, 3], [7, 8, 9]), [1, 2, 3])

    def test_x_takes_new_x(self):
        assert_allclose(constrain_to_axis(EditAxis.X, [1, 2, 3], [7, 8, 9]), [1, 8, 9])

    def test_y_takes_new_y(self):
        assert_allclose(constrain_to_axis(EditAxis.Y, [1, 2, 3], [7, 8, 9]), [7, 2, 9])

    def test_z_takes_new_z(self):
        assert_allclose(constrain_to_axis(EditAxis.Z, [1, 2, 3], [7, 8, 9]), [7, 8, 3])

    def test_anchor_not_mutated(self):
        anchor = np.array([7.0, 8.0, 9.0])
        constrain_to_axis(EditAxis.X, [1, 2, 3], anchor)
        assert_allclose(anchor, [7.0, 8.0, 9.0])
