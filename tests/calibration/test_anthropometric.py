import numpy as np
import pytest

from frame_factory import camera, eye_landmarks

from optic_measure.calibration.anthropometric import (
    interpupillary_candidate,
    merge_horizontal_estimate,
    project_points,
)
from optic_measure.config.estimator_config import EstimatorConfig
from optic_measure.my_dataclasses.calibration_sample import AxisEstimate
from optic_measure.my_dataclasses.depth_frame import EyeLandmarks

CFG = EstimatorConfig()


def test_project_points_pinhole():
    pts = project_points(np.array([[0.0, 0.0, 1.0], [0.1, -0.05, 0.5]]), camera())
    np.testing.assert_allclose(pts[0], [320.0, 240.0])
    np.testing.assert_allclose(pts[1], [320.0 + 2000.0 * 0.2, 240.0 - 2000.0 * 0.1])


def test_interpupillary_candidate_matches_depth_scale():
    # at 0.3 m with fx = 2000 one image pixel spans 0.15 mm
    value = interpupillary_candidate(eye_landmarks(62.0, 0.3), camera(), False, CFG)
    assert value == pytest.approx(0.15, rel=1e-6)


def test_interpupillary_candidate_uses_vertical_axis_when_rotated():
    landmarks = eye_landmarks(62.0, 0.3, vertical=True)
    assert interpupillary_candidate(landmarks, camera(), False, CFG) is None
    assert interpupillary_candidate(landmarks, camera(), True, CFG) == pytest.approx(0.15, rel=1e-6)


@pytest.mark.parametrize("ipd_mm", [30.0, 95.0])
def test_implausible_interpupillary_distance_is_rejected(ipd_mm):
    assert interpupillary_candidate(eye_landmarks(ipd_mm, 0.3), camera(), False, CFG) is None


def test_missing_or_invalid_landmarks():
    assert interpupillary_candidate(None, camera(), False, CFG) is None
    behind = EyeLandmarks(left_eye_center=[-0.031, 0.0, -0.3], right_eye_center=[0.031, 0.0, -0.3])
    assert interpupillary_candidate(behind, camera(), False, CFG) is None
    nan = EyeLandmarks(left_eye_center=[np.nan, 0.0, 0.3], right_eye_center=[0.031, 0.0, 0.3])
    assert interpupillary_candidate(nan, camera(), False, CFG) is None


def test_merge_blends_agreeing_candidate():
    base = AxisEstimate(mean=0.05, weight=1000.0)
    merged = merge_horizontal_estimate(base, 0.052, CFG)
    expected = (0.05 * 1000.0 + 0.052 * 450.0) / 1450.0
    assert merged.mean == pytest.approx(expected)
    assert merged.weight == pytest.approx(1450.0)


def test_merge_keeps_base_on_disagreement():
    base = AxisEstimate(mean=0.05, weight=1000.0)
    assert merge_horizontal_estimate(base, 0.08, CFG) is base
    assert merge_horizontal_estimate(base, None, CFG) is base


def test_merge_uses_absolute_tolerance_for_small_scales():
    # 12% of 0.016 is below the 0.002 floor
    base = AxisEstimate(mean=0.016, weight=500.0)
    merged = merge_horizontal_estimate(base, 0.0178, CFG)
    assert merged is not base


def test_merge_weight_saturates_without_biasing_mean():
    base = AxisEstimate(mean=0.05, weight=CFG.max_axis_weight)
    merged = merge_horizontal_estimate(base, 0.05, CFG)
    assert merged.mean == pytest.approx(0.05)
    assert merged.weight == CFG.max_axis_weight
