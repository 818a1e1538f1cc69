"""
Tests for calibration settings.
"""

import pytest

from perspective_calibration.config import (
    CalibrationSettings,
    DEFAULT_WORLD_SCALE,
    OVERLAY_FAR,
    PROJECTION_NEAR,
    REFINE_MAX_ITERATIONS,
)


class TestCalibrationSettings:

    def test_defaults(self):
        settings = CalibrationSettings()

        assert settings.world_scale == DEFAULT_WORLD_SCALE == 10.0
        assert settings.near == PROJECTION_NEAR == 0.01
        assert settings.far == 10.0
        assert settings.overlay_near == 0.1
        assert settings.overlay_far == OVERLAY_FAR == 1000.0
        assert settings.hit_tolerance == 0.01
        assert settings.refine_max_iterations == REFINE_MAX_ITERATIONS == 12
        assert settings.refine_tolerance == pytest.approx(1e-7)

    def test_invalid_clip_range(self):
        with pytest.raises(ValueError):
            CalibrationSettings(near=1.0, far=0.5)

    def test_invalid_world_scale(self):
        with pytest.raises(ValueError):
            CalibrationSettings(world_scale=0.0)

    def test_invalid_iterations(self):
        with pytest.raises(ValueError):
            CalibrationSettings(refine_max_iterations=0)


class TestYaml:
    """Tests for YAML loading and saving."""

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / 'settings.yaml'
        path.write_text(
            "world_scale: 2.0\n"
            "projection:\n"
            "  far: 100.0\n"
            "refine:\n"
            "  max_iterations: 30\n"
        )

        settings = CalibrationSettings.from_yaml(str(path))

        assert settings.world_scale == 2.0
        assert settings.near == 0.01
        assert settings.far == 100.0
        assert settings.overlay_near == 0.1
        assert settings.refine_max_iterations == 30

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'settings.yaml'
        path.write_text("")

        assert CalibrationSettings.from_yaml(str(path)) == CalibrationSettings()

    def test_round_trip(self, tmp_path):
        settings = CalibrationSettings(world_scale=3.0, overlay_far=500.0, hit_tolerance=0.02)
        path = tmp_path / 'settings.yaml'

        settings.to_yaml(str(path))

        assert CalibrationSettings.from_yaml(str(path)) == settings

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CalibrationSettings.from_yaml(str(tmp_path / 'missing.yaml'))

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / 'settings.yaml'
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ValueError):
            CalibrationSettings.from_yaml(str(path))

    def test_as_dict(self):
        data = CalibrationSettings().as_dict()

        assert data['world_scale'] == 10.0
        assert 'refine_tolerance' in data
