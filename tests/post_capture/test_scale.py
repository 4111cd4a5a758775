import pytest

from optic_measure.my_dataclasses.calibration import Calibration
from optic_measure.post_capture.scale import HORIZONTAL_GAP_MM, Scale


def test_default_scale_is_not_reliable():
    scale = Scale.default()
    assert not scale.is_reliable
    assert scale.horizontal_reference_mm == 120.0
    assert scale.vertical_reference_mm == 80.0


def test_normalized_conversions():
    scale = Scale(Calibration(120.0, 80.0))
    assert scale.normalized_horizontal(60.0) == pytest.approx(0.5)
    assert scale.normalized_vertical(40.0) == pytest.approx(0.5)
    assert scale.normalized_horizontal(HORIZONTAL_GAP_MM) == pytest.approx(50.0 / 120.0)
    assert scale.horizontal_mm(0.25) == pytest.approx(30.0)
    assert scale.vertical_mm(0.25) == pytest.approx(20.0)


def test_collapsed_reference_is_floored():
    scale = Scale(Calibration(0.2, -5.0))
    assert scale.horizontal_reference_mm == 1.0
    assert scale.vertical_reference_mm == 1.0
    assert scale.normalized_horizontal(2.0) == pytest.approx(2.0)
    assert not scale.is_reliable


def test_mm_per_pixel_needs_crop():
    assert Scale(Calibration(30.0, 20.0)).mm_per_pixel_x is None
    scale = Scale(Calibration(30.0, 20.0), crop_size=(600, 400))
    assert scale.mm_per_pixel_x == pytest.approx(0.05)
    assert scale.mm_per_pixel_y == pytest.approx(0.05)
    assert scale.mm_per_unit_x == pytest.approx(30.0)
    assert "reliable=True" in repr(scale)
