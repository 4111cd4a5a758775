"""
Second opinion on the horizontal scale from the interpupillary distance:
the 3-D distance between the tracked eye centres divided by the pixel gap
between their projections.
"""
from __future__ import annotations

import math

import cv2
import numpy as np

from optic_measure.calibration.robust_statistics import clamped_weight, is_valid_mm_per_pixel
from optic_measure.config.estimator_config import EstimatorConfig
from optic_measure.my_dataclasses.calibration_sample import AxisEstimate
from optic_measure.my_dataclasses.depth_frame import CameraIntrinsics, EyeLandmarks


def project_points(points_cam: np.ndarray, intrinsics: CameraIntrinsics) -> np.ndarray:
    """(N,3) camera-space points -> (N,2) image pixels, no distortion."""
    pts = np.asarray(points_cam, dtype=np.float64).reshape(-1, 1, 3)
    rvec = np.zeros(3, dtype=np.float64)
    tvec = np.zeros(3, dtype=np.float64)
    imgpts, _ = cv2.projectPoints(pts, rvec, tvec, intrinsics.K, None)
    return imgpts.reshape(-1, 2)


def interpupillary_candidate(landmarks: EyeLandmarks | None, intrinsics: CameraIntrinsics,
                             rotates_dimensions: bool, cfg: EstimatorConfig) -> float | None:
    """
    Horizontal mm per image pixel implied by the eye centres, or None when the
    landmarks are absent or implausible.
    """
    if landmarks is None:
        return None

    left = landmarks.left_eye_center
    right = landmarks.right_eye_center
    if not (np.all(np.isfinite(left)) and np.all(np.isfinite(right))):
        return None
    if left[2] <= 0 or right[2] <= 0:
        return None

    distance_mm = float(np.linalg.norm(left - right)) * 1000.0
    if not cfg.min_interpupillary_mm <= distance_mm <= cfg.max_interpupillary_mm:
        return None

    projected = project_points(np.stack([left, right]), intrinsics)
    # The oriented image's horizontal axis is the sensor's vertical axis when rotated
    axis = 1 if rotates_dimensions else 0
    pixel_gap = abs(float(projected[1, axis] - projected[0, axis]))
    if not math.isfinite(pixel_gap) or pixel_gap <= cfg.min_pupil_gap_px:
        return None

    mm_per_pixel = distance_mm / pixel_gap
    if not is_valid_mm_per_pixel(mm_per_pixel, cfg):
        return None
    return mm_per_pixel


def merge_horizontal_estimate(base: AxisEstimate, ipd_candidate: float | None,
                              cfg: EstimatorConfig) -> AxisEstimate:
    """
    Blend the ipd candidate into the depth-derived estimate when both agree.
    On disagreement the depth estimate is returned untouched.
    """
    if ipd_candidate is None or not is_valid_mm_per_pixel(ipd_candidate, cfg):
        return base

    tolerance = max(base.mean * cfg.agreement_tolerance_factor, cfg.min_agreement_tolerance)
    if abs(ipd_candidate - base.mean) > tolerance:
        return base

    ipd_weight = clamped_weight(base.weight * cfg.ipd_weight_factor, cfg)
    total_weight = base.weight + ipd_weight
    combined_mean = (base.mean * base.weight + ipd_candidate * ipd_weight) / total_weight
    return AxisEstimate(mean=combined_mean, weight=clamped_weight(total_weight, cfg))
