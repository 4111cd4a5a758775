from __future__ import annotations

import math

from optic_measure.logging_utils.logging_setup import get_logger
from optic_measure.my_dataclasses.post_capture_models import (
    EyeData,
    EyeMetrics,
    Metrics,
    NormalizedPoint,
    PostCaptureConfiguration,
)
from optic_measure.post_capture.scale import Scale

log = get_logger(__name__)

_PRECISION_MM = 0.1


class UnreliableCalibrationError(ValueError):
    """The capture has no sensor-derived calibration; it has to be retaken."""

    def __init__(self, message: str = "Invalid calibration. Retake the photo with the depth sensor active."):
        super().__init__(message)


def sanitized_millimeters(value: float) -> float:
    """Non-finite or negative -> 0, otherwise rounded half away from zero to 0.1 mm."""
    if not math.isfinite(value) or value < 0:
        return 0.0
    steps = math.floor(value / _PRECISION_MM + 0.5)
    return steps / 10.0


def _span_mm(first: float, second: float, reference_mm: float) -> float:
    return sanitized_millimeters(abs(first - second) * reference_mm)


def _eye_metrics(eye: EyeData, central_x: float, h_ref: float, v_ref: float) -> EyeMetrics:
    return EyeMetrics(
        width=_span_mm(eye.temporal_bar_x, eye.nasal_bar_x, h_ref),
        height=_span_mm(eye.inferior_bar_y, eye.superior_bar_y, v_ref),
        dnp=_span_mm(eye.pupil.x, central_x, h_ref),
        pupil_height=_span_mm(eye.inferior_bar_y, eye.pupil.y, v_ref),
    )


def compute_metrics(right_eye: EyeData, left_eye: EyeData, central_point: NormalizedPoint,
                    scale: Scale) -> Metrics:
    """
    Final millimetre measurements of both eyes.

    Raises UnreliableCalibrationError when the scale is not backed by a real
    sensor calibration; no numbers are produced in that case.
    """
    if not scale.is_reliable:
        log.warning(f"Refusing to compute metrics with unreliable calibration {scale.calibration}")
        raise UnreliableCalibrationError()

    h_ref = scale.horizontal_reference_mm
    v_ref = scale.vertical_reference_mm
    center = central_point.clamped()

    right = right_eye.normalized(center.x)
    left = left_eye.normalized(center.x)

    return Metrics(
        right_eye=_eye_metrics(right, center.x, h_ref, v_ref),
        left_eye=_eye_metrics(left, center.x, h_ref, v_ref),
        bridge=_span_mm(left.nasal_bar_x, right.nasal_bar_x, h_ref),
    )


class MeasurementCalculator:
    """compute_metrics() bound to a whole post-capture configuration."""

    def __init__(self, configuration: PostCaptureConfiguration, scale: Scale):
        self.configuration = configuration
        self.scale = scale

    def make_metrics(self) -> Metrics:
        cfg = self.configuration
        return compute_metrics(cfg.right_eye, cfg.left_eye, cfg.central_point, self.scale)
