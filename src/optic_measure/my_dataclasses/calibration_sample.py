from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class CalibrationSample:
    """One frame's fused estimate, in mm per image pixel of the oriented image."""
    mm_per_pixel_x: float
    mm_per_pixel_y: float
    weight_x: float
    weight_y: float
    timestamp: float


@dataclass(frozen=True)
class AxisEstimate:
    mean: float
    weight: float


@dataclass(frozen=True)
class WeightedValue:
    value: float
    weight: float


@dataclass
class DepthCandidates:
    """
    Per-pixel mm/pixel candidates of one depth frame, already swapped to the
    oriented image axes.
    """
    horizontal: np.ndarray = field(default_factory=lambda: np.empty(0))
    vertical: np.ndarray = field(default_factory=lambda: np.empty(0))
    mean_depth_m: float = float("nan")
    evaluated_pixels: int = 0
    high_confidence_pixels: int = 0
    raw_candidates: int = 0
    filtered_candidates: int = 0
