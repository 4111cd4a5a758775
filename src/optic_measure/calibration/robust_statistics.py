"""
Robust statistics shared by the per-frame axis estimate and the temporal
fusion of samples: median / MAD outlier rejection followed by a (weighted)
mean of the survivors.
"""
from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np
from scipy.stats import median_abs_deviation

from optic_measure.config.estimator_config import EstimatorConfig
from optic_measure.my_dataclasses.calibration_sample import AxisEstimate, WeightedValue


def valid_mm_per_pixel_mask(values: np.ndarray, cfg: EstimatorConfig) -> np.ndarray:
    values = np.asarray(values, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        return np.isfinite(values) & (values >= cfg.min_mm_per_pixel) & (values <= cfg.max_mm_per_pixel)


def is_valid_mm_per_pixel(value: float, cfg: EstimatorConfig) -> bool:
    return math.isfinite(value) and cfg.min_mm_per_pixel <= value <= cfg.max_mm_per_pixel


def clamped_weight(weight: float, cfg: EstimatorConfig) -> float:
    if not math.isfinite(weight):
        return cfg.min_axis_weight
    return min(max(weight, cfg.min_axis_weight), cfg.max_axis_weight)


def has_sufficient_weight(weight: float, cfg: EstimatorConfig) -> bool:
    return math.isfinite(weight) and weight >= cfg.min_sample_weight


def median(values: Sequence[float] | np.ndarray) -> float | None:
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return None
    return float(np.median(arr))


def reject_outliers(values: np.ndarray, threshold_scale: float, min_threshold: float) -> np.ndarray:
    """
    Boolean mask of values within max(threshold_scale * MAD, min_threshold)
    of the median. If nothing survives, every value is kept.
    """
    values = np.asarray(values, dtype=np.float64)
    center = np.median(values)
    mad = median_abs_deviation(values, scale=1.0)
    threshold = max(threshold_scale * mad, min_threshold)
    keep = np.abs(values - center) <= threshold
    if not np.any(keep):
        return np.ones_like(keep)
    return keep


def robust_axis_estimate(values: Iterable[float] | np.ndarray, cfg: EstimatorConfig) -> AxisEstimate | None:
    """
    Mean and confidence weight of one axis from per-pixel mm/pixel candidates.

    Needs at least cfg.min_axis_samples plausible candidates. Values further
    than 3 sigma (sigma = 1.4826 * MAD) from the median are dropped; the
    weight grows with sqrt(count) and shrinks with the spread of survivors.
    """
    arr = np.asarray(values if isinstance(values, np.ndarray) else list(values), dtype=np.float64)
    arr = arr[valid_mm_per_pixel_mask(arr, cfg)]
    if arr.size < cfg.min_axis_samples:
        return None

    keep = reject_outliers(
        arr,
        threshold_scale=cfg.axis_mad_factor * cfg.mad_to_sigma,
        min_threshold=cfg.min_rejection_threshold,
    )
    candidates = arr[keep]

    n = candidates.size
    mean = float(np.mean(candidates))
    variance = float(np.sum((candidates - mean) ** 2)) / max(n - 1, 1)
    std = math.sqrt(max(variance, 0.0))

    density = math.sqrt(n)
    stability = 1.0 / max(std, cfg.min_standard_deviation)
    return AxisEstimate(mean=mean, weight=clamped_weight(density * stability, cfg))


def weighted_mean(entries: Sequence[WeightedValue]) -> float | None:
    if not entries:
        return None
    values = np.array([e.value for e in entries], dtype=np.float64)
    weights = np.array([e.weight for e in entries], dtype=np.float64)
    total = float(np.sum(weights))
    if total <= 0:
        return None
    return float(np.dot(values, weights) / total)


def stabilized_weighted_mean(entries: Sequence[WeightedValue], cfg: EstimatorConfig) -> float | None:
    """
    Weighted mean across samples after dropping values further than
    max(3 * MAD, min_rejection_threshold) from the median. Unlike the per-pixel
    estimate the MAD is not rescaled to sigma here.
    """
    valid = [e for e in entries if e.weight > 0 and math.isfinite(e.value) and math.isfinite(e.weight)]
    if not valid:
        return None

    values = np.array([e.value for e in valid], dtype=np.float64)
    keep = reject_outliers(values, cfg.fusion_mad_factor, cfg.min_rejection_threshold)
    return weighted_mean([e for e, k in zip(valid, keep) if k])
