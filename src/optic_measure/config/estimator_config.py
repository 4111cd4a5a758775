# config/estimator_config.py
from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any

import tomli
import tomli_w

from optic_measure.helpers.thread_safe_config import ThreadSafeConfig


@dataclass
class EstimatorConfig:
    """
    Every tunable constant of the depth calibration estimator.

    Depth values are in metres, mm/pixel bounds in millimetres per image pixel,
    times in seconds. The anthropometric fusion constants (agreement tolerance
    and ipd weight factor) were chosen empirically on device.
    """
    # ----------------------------
    # Plausibility bounds
    # ----------------------------
    min_depth_m: float = 0.08
    max_depth_m: float = 1.2
    min_mm_per_pixel: float = 0.015
    max_mm_per_pixel: float = 0.8
    min_interpupillary_mm: float = 40.0
    max_interpupillary_mm: float = 80.0
    min_pupil_gap_px: float = 2.0

    # ----------------------------
    # Per-pixel candidate extraction
    # ----------------------------
    analysis_margin_fraction: float = 0.08
    high_confidence_level: int = 2
    depth_mad_factor: float = 2.5
    min_depth_tolerance_m: float = 0.0005

    # ----------------------------
    # Robust axis estimate
    # ----------------------------
    min_axis_samples: int = 24
    axis_mad_factor: float = 3.0
    mad_to_sigma: float = 1.4826
    min_rejection_threshold: float = 0.0002
    min_standard_deviation: float = 0.0003
    min_axis_weight: float = 25.0
    max_axis_weight: float = 6000.0

    # ----------------------------
    # Anthropometric fusion
    # ----------------------------
    agreement_tolerance_factor: float = 0.12
    min_agreement_tolerance: float = 0.002
    ipd_weight_factor: float = 0.45

    # ----------------------------
    # Sample pool / temporal fusion
    # ----------------------------
    min_sample_weight: float = 25.0
    fusion_mad_factor: float = 3.0
    max_samples: int = 90
    sample_lifetime_s: float = 1.5
    recent_lifetime_factor: float = 1.5

    def __post_init__(self):
        validate_estimator_config(self)


def validate_estimator_config(cfg: EstimatorConfig) -> None:
    """Raise ValueError for settings the estimator cannot work with."""
    for name, value in asdict(cfg).items():
        if not math.isfinite(value):
            raise ValueError(f"{name} must be finite, got {value}")
    if not 0 < cfg.min_depth_m < cfg.max_depth_m:
        raise ValueError("depth range must satisfy 0 < min_depth_m < max_depth_m")
    if not 0 < cfg.min_mm_per_pixel < cfg.max_mm_per_pixel:
        raise ValueError("mm/pixel range must satisfy 0 < min < max")
    if not 0 < cfg.min_interpupillary_mm < cfg.max_interpupillary_mm:
        raise ValueError("interpupillary range must satisfy 0 < min < max")
    if not 0 <= cfg.analysis_margin_fraction < 0.5:
        raise ValueError("analysis_margin_fraction must lie in [0, 0.5)")
    if not 0 < cfg.min_axis_weight <= cfg.max_axis_weight:
        raise ValueError("axis weights must satisfy 0 < min_axis_weight <= max_axis_weight")
    if cfg.min_axis_samples < 1:
        raise ValueError("min_axis_samples must be at least 1")
    if cfg.max_samples < 1:
        raise ValueError("max_samples must be at least 1")
    if cfg.sample_lifetime_s <= 0:
        raise ValueError("sample_lifetime_s must be positive")
    if cfg.recent_lifetime_factor < 1:
        raise ValueError("recent_lifetime_factor must be >= 1")


# Path to the TOML config file
ESTIMATOR_TOML_PATH = Path(__file__).parent.resolve() / "estimator_config.toml"


def _toml_to_kwargs(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a TOML section to EstimatorConfig kwargs.

    Filters unknown keys so older TOML files still load.
    """
    allowed = set(EstimatorConfig.__dataclass_fields__.keys())
    return {k: v for k, v in raw.items() if k in allowed}


def load_estimator_config(path: Path = ESTIMATOR_TOML_PATH, section: str = "estimator") -> EstimatorConfig:
    """
    Load EstimatorConfig from a TOML file section.
    If the file or section is missing, fall back to dataclass defaults.
    """
    try:
        with path.open("rb") as f:
            data = tomli.load(f)
        raw = data.get(section, {})
    except FileNotFoundError:
        raw = {}

    return EstimatorConfig(**_toml_to_kwargs(raw))


def save_estimator_config(path: Path, config: ThreadSafeConfig, section: str = "estimator") -> None:
    """Persist the estimator section back to TOML, keeping other sections intact."""
    try:
        with path.open("rb") as f:
            data = tomli.load(f)
    except FileNotFoundError:
        data = {}

    data[section] = asdict(config.get_raw())

    with path.open("wb") as f:
        tomli_w.dump(data, f)


# Default configuration instance, loaded from TOML at import time
estimator_config = ThreadSafeConfig(load_estimator_config(ESTIMATOR_TOML_PATH))
