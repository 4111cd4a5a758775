from __future__ import annotations

import bisect
import math
from dataclasses import dataclass, replace
from typing import Optional

from optic_measure.calibration.anthropometric import interpupillary_candidate, merge_horizontal_estimate
from optic_measure.calibration.depth_candidates import extract_depth_candidates
from optic_measure.calibration.depth_source import DepthSourceKind, select_depth_source
from optic_measure.calibration.robust_statistics import (
    has_sufficient_weight,
    is_valid_mm_per_pixel,
    robust_axis_estimate,
    stabilized_weighted_mean,
)
from optic_measure.config.estimator_config import EstimatorConfig, estimator_config
from optic_measure.helpers.rw_lock import ReadWriteLock
from optic_measure.helpers.thread_safe_config import ThreadSafeConfig
from optic_measure.logging_utils.logging_setup import get_logger
from optic_measure.my_dataclasses.calibration import Calibration
from optic_measure.my_dataclasses.calibration_sample import CalibrationSample, DepthCandidates, WeightedValue
from optic_measure.my_dataclasses.depth_frame import DepthFrame
from optic_measure.my_dataclasses.estimator_diagnostics import EstimatorDiagnostics

log = get_logger(__name__)


@dataclass
class _FrameEvaluation:
    sample: Optional[CalibrationSample] = None
    candidates: Optional[DepthCandidates] = None
    source_kind: Optional[DepthSourceKind] = None
    ipd_accepted: bool = False


class CalibrationEstimator:
    """
    Turns a stream of depth frames into a stable mm reference for a capture.

    ingest() is called from the capture thread for every frame and keeps a
    short sliding window of per-frame samples. When the user captures,
    finalize_calibration() fuses the fresh frame with the window;
    instant_calibration() is the single-frame fallback.

    The sample pool is guarded by a reader/writer lock: storing and reset()
    are exclusive, pool reads and diagnostics() may overlap. All per-pixel
    work happens outside the lock.
    """

    def __init__(self, config: ThreadSafeConfig | EstimatorConfig | None = None):
        if config is None:
            config = estimator_config
        elif isinstance(config, EstimatorConfig):
            config = ThreadSafeConfig(config)
        self._config = config
        self._lock = ReadWriteLock()
        self._samples: list[CalibrationSample] = []
        self._last_frame = EstimatorDiagnostics()

    # ---------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------
    def ingest(self, frame: DepthFrame) -> None:
        cfg = self._config.get()
        evaluation = self._evaluate_frame(frame, cfg)
        with self._lock.write_locked():
            self._record_frame(frame, evaluation)
            if evaluation.sample is not None:
                self._store(evaluation.sample, cfg)

    def finalize_calibration(self, frame: DepthFrame, crop_width_px: float,
                             crop_height_px: float) -> Calibration | None:
        """
        Fused calibration for a capture, or None without usable data.

        crop_width_px / crop_height_px must be the pixel size of the exact
        crop the markers will be normalized against: the returned references
        span that crop's full width and height.
        """
        if not _valid_crop(crop_width_px, crop_height_px):
            return None

        cfg = self._config.get()
        reference_time = frame.timestamp
        evaluation = self._evaluate_frame(frame, cfg)
        current = evaluation.sample if _qualifies(evaluation.sample, cfg) else None

        # A frame already ingested is represented by its fresh evaluation only
        skip_time = current.timestamp if current is not None else None
        with self._lock.read_locked():
            pooled = [s for s in self._samples
                      if reference_time - s.timestamp <= cfg.sample_lifetime_s and s.timestamp != skip_time]

        aggregated = ([current] if current is not None else []) + pooled
        if not aggregated:
            fallback = self._most_recent_sample(reference_time, cfg)
            if fallback is not None:
                aggregated.append(fallback)

        with self._lock.write_locked():
            self._record_frame(frame, evaluation)
            if current is not None:
                self._store(current, cfg)

        if not aggregated:
            log.debug(f"No calibration samples available at t={reference_time:.3f}")
            return None

        mm_x = self._stabilized_axis(aggregated, cfg, horizontal=True)
        mm_y = self._stabilized_axis(aggregated, cfg, horizontal=False)
        if mm_x is None or mm_y is None:
            return None
        if not (is_valid_mm_per_pixel(mm_x, cfg) and is_valid_mm_per_pixel(mm_y, cfg)):
            log.debug(f"Fused mm/pixel out of range: x={mm_x}, y={mm_y}")
            return None

        calibration = _make_calibration(mm_x, mm_y, crop_width_px, crop_height_px)
        if calibration is not None:
            log.info(
                f"Calibration finalized from {len(aggregated)} samples: "
                f"{calibration.horizontal_reference_mm:.2f} x {calibration.vertical_reference_mm:.2f} mm"
            )
        return calibration

    def instant_calibration(self, frame: DepthFrame, crop_width_px: float,
                            crop_height_px: float) -> Calibration | None:
        """Single-sample calibration: this frame, else the most recent pooled sample."""
        if not _valid_crop(crop_width_px, crop_height_px):
            return None

        cfg = self._config.get()
        evaluation = self._evaluate_frame(frame, cfg)
        sample = evaluation.sample if _qualifies(evaluation.sample, cfg) else None

        with self._lock.write_locked():
            self._record_frame(frame, evaluation)
            if sample is not None:
                self._store(sample, cfg)

        if sample is None:
            sample = self._most_recent_sample(frame.timestamp, cfg)
        if sample is None:
            log.debug(f"No sample for instant calibration at t={frame.timestamp:.3f}")
            return None

        calibration = _make_calibration(sample.mm_per_pixel_x, sample.mm_per_pixel_y,
                                        crop_width_px, crop_height_px)
        if calibration is not None:
            log.info(
                f"Instant calibration: {calibration.horizontal_reference_mm:.2f} x "
                f"{calibration.vertical_reference_mm:.2f} mm"
            )
        return calibration

    def reset(self) -> None:
        """Drop every sample, e.g. when tracking is lost or a new session starts."""
        with self._lock.write_locked():
            self._samples.clear()
            self._last_frame = EstimatorDiagnostics()
        log.debug("Calibration estimator reset")

    def diagnostics(self) -> EstimatorDiagnostics:
        cfg = self._config.get()
        with self._lock.read_locked():
            pool_size = len(self._samples)
            last = self._last_frame
            if self._samples:
                reference_time = max(self._samples[-1].timestamp, last.last_timestamp or -math.inf)
                recent = sum(
                    1 for s in self._samples
                    if reference_time - s.timestamp <= cfg.sample_lifetime_s and _qualifies(s, cfg)
                )
            else:
                recent = 0
        return replace(last, pool_size=pool_size, recent_count=recent)

    # ---------------------------------------------------------------
    # Per-frame evaluation (no lock held)
    # ---------------------------------------------------------------
    def _evaluate_frame(self, frame: DepthFrame, cfg: EstimatorConfig) -> _FrameEvaluation:
        if not (frame.is_tracking_normal and frame.is_face_tracked):
            log.debug(f"Frame t={frame.timestamp:.3f} skipped: tracking not normal")
            return _FrameEvaluation()

        source = select_depth_source(frame)
        if source is None:
            log.debug(f"Frame t={frame.timestamp:.3f} skipped: no usable depth source")
            return _FrameEvaluation()

        candidates = extract_depth_candidates(source, frame.rotates_dimensions, cfg)
        if candidates is None:
            log.debug(f"Frame t={frame.timestamp:.3f} skipped: no depth candidates ({source.kind.value})")
            return _FrameEvaluation(source_kind=source.kind)

        horizontal = robust_axis_estimate(candidates.horizontal, cfg)
        vertical = robust_axis_estimate(candidates.vertical, cfg)
        if horizontal is None or vertical is None:
            log.debug(
                f"Frame t={frame.timestamp:.3f} skipped: too few axis candidates "
                f"({candidates.horizontal.size}/{candidates.vertical.size})"
            )
            return _FrameEvaluation(candidates=candidates, source_kind=source.kind)

        ipd = interpupillary_candidate(frame.eye_landmarks, frame.intrinsics, frame.rotates_dimensions, cfg)
        refined = merge_horizontal_estimate(horizontal, ipd, cfg)

        if not (is_valid_mm_per_pixel(refined.mean, cfg) and is_valid_mm_per_pixel(vertical.mean, cfg)):
            return _FrameEvaluation(candidates=candidates, source_kind=source.kind)

        sample = CalibrationSample(
            mm_per_pixel_x=refined.mean,
            mm_per_pixel_y=vertical.mean,
            weight_x=refined.weight,
            weight_y=vertical.weight,
            timestamp=frame.timestamp,
        )
        return _FrameEvaluation(
            sample=sample,
            candidates=candidates,
            source_kind=source.kind,
            ipd_accepted=refined is not horizontal,
        )

    # ---------------------------------------------------------------
    # Pool handling
    # ---------------------------------------------------------------
    def _store(self, sample: CalibrationSample, cfg: EstimatorConfig) -> None:
        """Caller holds the write lock."""
        if not _qualifies(sample, cfg):
            log.debug(f"Sample t={sample.timestamp:.3f} below weight floor: {sample.weight_x:.1f}/{sample.weight_y:.1f}")
            return

        reference_time = sample.timestamp
        # Re-evaluating a frame replaces its earlier sample
        self._samples = [s for s in self._samples
                         if s.timestamp != reference_time and reference_time - s.timestamp <= cfg.sample_lifetime_s]
        bisect.insort(self._samples, sample, key=lambda s: s.timestamp)
        overflow = len(self._samples) - cfg.max_samples
        if overflow > 0:
            del self._samples[:overflow]

    def _most_recent_sample(self, reference_time: float, cfg: EstimatorConfig) -> CalibrationSample | None:
        lifetime = cfg.sample_lifetime_s * cfg.recent_lifetime_factor
        with self._lock.read_locked():
            for sample in reversed(self._samples):
                if reference_time - sample.timestamp <= lifetime and _qualifies(sample, cfg):
                    return sample
        return None

    def _record_frame(self, frame: DepthFrame, evaluation: _FrameEvaluation) -> None:
        """Caller holds the write lock."""
        c = evaluation.candidates
        s = evaluation.sample
        self._last_frame = EstimatorDiagnostics(
            last_timestamp=frame.timestamp,
            last_source=evaluation.source_kind,
            last_mm_per_pixel_x=s.mm_per_pixel_x if s else None,
            last_mm_per_pixel_y=s.mm_per_pixel_y if s else None,
            last_weight_x=s.weight_x if s else None,
            last_weight_y=s.weight_y if s else None,
            last_mean_depth_m=c.mean_depth_m if c else None,
            evaluated_pixels=c.evaluated_pixels if c else 0,
            high_confidence_pixels=c.high_confidence_pixels if c else 0,
            raw_candidates=c.raw_candidates if c else 0,
            filtered_candidates=c.filtered_candidates if c else 0,
            ipd_candidate_accepted=evaluation.ipd_accepted,
        )

    @staticmethod
    def _stabilized_axis(samples: list[CalibrationSample], cfg: EstimatorConfig, horizontal: bool) -> float | None:
        entries = []
        for s in samples:
            value, weight = (s.mm_per_pixel_x, s.weight_x) if horizontal else (s.mm_per_pixel_y, s.weight_y)
            if is_valid_mm_per_pixel(value, cfg) and has_sufficient_weight(weight, cfg):
                entries.append(WeightedValue(value=value, weight=weight))
        return stabilized_weighted_mean(entries, cfg)


def _qualifies(sample: CalibrationSample | None, cfg: EstimatorConfig) -> bool:
    return (
        sample is not None
        and has_sufficient_weight(sample.weight_x, cfg)
        and has_sufficient_weight(sample.weight_y, cfg)
    )


def _valid_crop(width: float, height: float) -> bool:
    return math.isfinite(width) and math.isfinite(height) and width > 0 and height > 0


def _make_calibration(mm_per_pixel_x: float, mm_per_pixel_y: float,
                      crop_width_px: float, crop_height_px: float) -> Calibration | None:
    horizontal = mm_per_pixel_x * crop_width_px
    vertical = mm_per_pixel_y * crop_height_px
    if not (math.isfinite(horizontal) and math.isfinite(vertical)):
        return None
    if horizontal <= 0 or vertical <= 0:
        return None
    return Calibration(horizontal_reference_mm=float(horizontal), vertical_reference_mm=float(vertical))
