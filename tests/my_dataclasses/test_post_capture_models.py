import pytest

from optic_measure.my_dataclasses.post_capture_models import EyeData, NormalizedPoint, NormalizedRect


def test_point_from_absolute():
    assert NormalizedPoint.from_absolute(300, 100, 600, 400) == NormalizedPoint(0.5, 0.25)
    assert NormalizedPoint.from_absolute(900, -5, 600, 400) == NormalizedPoint(1.0, 0.0)
    assert NormalizedPoint.from_absolute(10, 10, 0, 400) == NormalizedPoint()
    assert NormalizedPoint(0.5, 0.25).absolute(600, 400) == (300, 100)


def test_mirrored_eye():
    eye = EyeData(pupil=NormalizedPoint(0.34, 0.5), nasal_bar_x=0.46, temporal_bar_x=0.22)
    other = eye.mirrored(0.5)
    assert other.pupil.x == pytest.approx(0.66)
    assert other.nasal_bar_x == pytest.approx(0.78)
    assert other.temporal_bar_x == pytest.approx(0.54)
    assert other.inferior_bar_y == eye.inferior_bar_y


def test_normalized_keeps_order_on_tie():
    eye = EyeData(nasal_bar_x=0.4, temporal_bar_x=0.6).normalized(0.5)
    assert eye.nasal_bar_x == 0.4
    assert eye.temporal_bar_x == 0.6


def test_normalized_swaps_and_clamps():
    eye = EyeData(pupil=NormalizedPoint(1.5, -0.2), nasal_bar_x=1.4, temporal_bar_x=0.6,
                  inferior_bar_y=0.2, superior_bar_y=0.7).normalized(0.5)
    assert eye.pupil == NormalizedPoint(1.0, 0.0)
    assert eye.nasal_bar_x == 0.6
    assert eye.temporal_bar_x == 1.0
    assert eye.inferior_bar_y == 0.7
    assert eye.superior_bar_y == 0.2


def test_rect_clamped_and_inset():
    rect = NormalizedRect(0.8, -0.1, 0.5, 0.5).clamped()
    assert (rect.x, rect.y, rect.height) == (0.8, 0.0, 0.5)
    assert rect.width == pytest.approx(0.2)

    inset = NormalizedRect().inset_by(0.1, 0.2)
    assert inset.x == pytest.approx(0.1)
    assert inset.width == pytest.approx(0.8)
    assert inset.height == pytest.approx(0.6)
    assert inset.absolute(100, 100) == pytest.approx((10, 20, 80, 60))
