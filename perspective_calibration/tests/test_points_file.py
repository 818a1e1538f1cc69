"""
Tests for points file reading and writing.
"""

import json

import pytest
import numpy as np
from numpy.testing import assert_allclose

from perspective_calibration.errors import MalformedInputError
from perspective_calibration.points_file import (
    AxisData,
    parse_points_data,
    points_document,
    read_points_file,
    write_points_file,
)
from perspective_calibration.vanishing import LineSegment


def _line(ax, ay, bx, by):
    return {'a': {'x': ax, 'y': ay}, 'b': {'x': bx, 'y': by}}


@pytest.fixture
def document():
    return {
        'controlPoint': {'x': 0.4, 'y': 0.6},
        'lines': [_line(0.1 * i, 0.2, 0.1 * i + 0.05, 0.8) for i in range(6)],
        'points': [{'x': 0.0, 'y': 0.0, 'z': 0.0}, {'x': 1.0, 'y': 0.0, 'z': 0.5}],
        'flip': [True, False, True],
        'customOriginTanslation': {'x': 0.5, 'y': -0.5, 'z': 0.0},
        'customScale': 2.0,
    }


class TestDefaults:

    def test_default_axis_data(self):
        axis_data = AxisData()

        assert len(axis_data.axis_lines) == 6
        assert axis_data.control_point == (0.5, 0.5)
        assert axis_data.flip == (False, False, False)
        assert axis_data.custom_scale is None
        assert axis_data.custom_origin_translation is None

    def test_defaults_are_independent(self):
        first = AxisData()
        first.axis_lines[0] = LineSegment((0.0, 0.0), (1.0, 1.0))

        assert AxisData().axis_lines[0] != first.axis_lines[0]

    def test_wrong_line_count(self):
        with pytest.raises(MalformedInputError):
            AxisData(axis_lines=AxisData().axis_lines[:5])


class TestParsePointsData:
    """Tests for decoding points documents."""

    def test_full_document(self, document):
        axis_data, points = parse_points_data(document)

        assert axis_data.control_point == (0.4, 0.6)
        assert_allclose(axis_data.axis_lines[1].as_array(), [[0.1, 0.2], [0.15, 0.8]])
        assert axis_data.flip == (True, False, True)
        assert axis_data.custom_origin_translation == (0.5, -0.5, 0.0)
        assert axis_data.custom_scale == 2.0
        assert_allclose(points, [[0.0, 0.0, 0.0], [1.0, 0.0, 0.5]])

    def test_optional_fields(self, document):
        for key in ('points', 'flip', 'customOriginTanslation', 'customScale'):
            del document[key]

        axis_data, points = parse_points_data(document)

        assert points is None
        assert axis_data.flip == (False, False, False)
        assert axis_data.custom_scale is None

    def test_snake_case_keys(self, document):
        document['control_point'] = document.pop('controlPoint')
        document['custom_origin_tanslation'] = document.pop('customOriginTanslation')
        document['custom_scale'] = document.pop('customScale')

        axis_data, _ = parse_points_data(document)

        assert axis_data.control_point == (0.4, 0.6)
        assert axis_data.custom_origin_translation == (0.5, -0.5, 0.0)
        assert axis_data.custom_scale == 2.0

    def test_missing_lines(self, document):
        del document['lines']
        with pytest.raises(MalformedInputError):
            parse_points_data(document)

    def test_wrong_line_count(self, document):
        document['lines'] = document['lines'][:4]
        with pytest.raises(MalformedInputError):
            parse_points_data(document)

    def test_bad_flip(self, document):
        document['flip'] = [True]
        with pytest.raises(MalformedInputError):
            parse_points_data(document)

    def test_not_an_object(self):
        with pytest.raises(MalformedInputError):
            parse_points_data([1, 2, 3])


class TestPointsFileIO:
    """Tests for points file round trips on disk."""

    def test_write_then_read(self, tmp_path, document):
        axis_data, points = parse_points_data(document)
        path = tmp_path / 'photo.points'

        write_points_file(str(path), axis_data, points)
        loaded, loaded_points = read_points_file(str(path))

        assert loaded == axis_data
        assert_allclose(loaded_points, points)

    def test_external_key_spelling(self, tmp_path):
        axis_data = AxisData(custom_origin_translation=(1.0, 2.0, 3.0), custom_scale=0.5)
        path = tmp_path / 'photo.points'

        write_points_file(str(path), axis_data)
        raw = json.loads(path.read_text())

        assert raw['customOriginTanslation'] == {'x': 1.0, 'y': 2.0, 'z': 3.0}
        assert raw['customScale'] == 0.5
        assert 'points' not in raw

    def test_document_omits_unset_fields(self):
        data = points_document(AxisData())

        assert set(data) == {'controlPoint', 'lines', 'flip'}
        assert len(data['lines']) == 6

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_points_file(str(tmp_path / 'missing.points'))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'broken.points'
        path.write_text('{"controlPoint": ')

        with pytest.raises(MalformedInputError):
            read_points_file(str(path))

    def test_polyline_array_shape(self, tmp_path):
        path = tmp_path / 'photo.points'
        write_points_file(str(path), AxisData(), np.array([[0, 0, 0], [1, 2, 3], [4, 5, 6]]))

        _, points = read_points_file(str(path))

        assert points.shape == (3, 3)
        assert points.dtype == np.float64
