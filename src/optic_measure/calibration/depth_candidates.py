from __future__ import annotations

import numpy as np
from scipy.stats import median_abs_deviation

from optic_measure.calibration.depth_source import DepthSource
from optic_measure.calibration.robust_statistics import valid_mm_per_pixel_mask
from optic_measure.config.estimator_config import EstimatorConfig
from optic_measure.my_dataclasses.calibration_sample import DepthCandidates


def analysis_margin(size: int, fraction: float) -> int:
    """Border skipped on one side; dropped entirely if it would eat more than half the axis."""
    margin = int(size * fraction)
    if size - 2 * margin < size / 2:
        return 0
    return margin


def extract_depth_candidates(source: DepthSource, rotates_dimensions: bool,
                             cfg: EstimatorConfig) -> DepthCandidates | None:
    """
    Turn every usable depth pixel into a mm-per-image-pixel candidate for
    both axes.

    A pixel at depth z spans z / f metres on the depth raster, i.e.
    z * (1/f) * 1000 / scale millimetres per image pixel. Candidates outside
    the plausible mm/pixel range are dropped, then pixels whose depth strays
    from the median depth by more than max(2.5 * MAD, 0.5 mm) are dropped as
    well (background, hair, edges of the face).

    Returns None when the raster holds no usable pixel or the mean depth is
    outside the sensor's working range.
    """
    depth = np.asarray(source.depth, dtype=np.float64)
    height, width = depth.shape
    if width < 2 or height < 2:
        return None

    mx = analysis_margin(width, cfg.analysis_margin_fraction)
    my = analysis_margin(height, cfg.analysis_margin_fraction)
    interior = depth[my:height - my, mx:width - mx]

    with np.errstate(invalid="ignore"):
        usable = np.isfinite(interior) & (interior > 0)
    evaluated = int(np.count_nonzero(usable))

    if source.confidence is not None:
        confidence = source.confidence[my:height - my, mx:width - mx]
        usable &= confidence >= cfg.high_confidence_level
    high_confidence = int(np.count_nonzero(usable))
    if high_confidence == 0:
        return None

    depths = interior[usable]
    mean_depth = float(np.mean(depths))
    if not cfg.min_depth_m <= mean_depth <= cfg.max_depth_m:
        return None

    mm_x = depths * source.inv_fx * 1000.0 / source.scale_x
    mm_y = depths * source.inv_fy * 1000.0 / source.scale_y
    in_range_x = valid_mm_per_pixel_mask(mm_x, cfg)
    in_range_y = valid_mm_per_pixel_mask(mm_y, cfg)

    in_range = in_range_x | in_range_y
    raw_candidates = int(np.count_nonzero(in_range))
    if raw_candidates == 0:
        return None

    candidate_depths = depths[in_range]
    median_depth = float(np.median(candidate_depths))
    mad = float(median_abs_deviation(candidate_depths, scale=1.0))
    tolerance = max(cfg.depth_mad_factor * mad, cfg.min_depth_tolerance_m)
    stable = np.abs(depths - median_depth) <= tolerance

    keep_x = in_range_x & stable
    if not np.any(keep_x):
        keep_x = in_range_x
    keep_y = in_range_y & stable
    if not np.any(keep_y):
        keep_y = in_range_y

    horizontal = mm_x[keep_x]
    vertical = mm_y[keep_y]
    if rotates_dimensions:
        horizontal, vertical = vertical, horizontal

    if horizontal.size == 0 or vertical.size == 0:
        return None

    return DepthCandidates(
        horizontal=horizontal,
        vertical=vertical,
        mean_depth_m=mean_depth,
        evaluated_pixels=evaluated,
        high_confidence_pixels=high_confidence,
        raw_candidates=raw_candidates,
        filtered_candidates=int(np.count_nonzero(keep_x | keep_y)),
    )
