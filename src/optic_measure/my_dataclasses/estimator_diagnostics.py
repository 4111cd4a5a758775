from dataclasses import dataclass
from typing import Optional

from optic_measure.calibration.depth_source import DepthSourceKind


@dataclass(frozen=True)
class EstimatorDiagnostics:
    """Operator-facing snapshot of the estimator state. Not used for any decision."""
    pool_size: int = 0
    recent_count: int = 0
    last_timestamp: Optional[float] = None
    last_source: Optional[DepthSourceKind] = None
    last_mm_per_pixel_x: Optional[float] = None
    last_mm_per_pixel_y: Optional[float] = None
    last_weight_x: Optional[float] = None
    last_weight_y: Optional[float] = None
    last_mean_depth_m: Optional[float] = None
    evaluated_pixels: int = 0
    high_confidence_pixels: int = 0
    raw_candidates: int = 0
    filtered_candidates: int = 0
    ipd_candidate_accepted: bool = False
