import numpy as np
import pytest

from optic_measure.calibration.robust_statistics import (
    clamped_weight,
    has_sufficient_weight,
    median,
    robust_axis_estimate,
    stabilized_weighted_mean,
    weighted_mean,
)
from optic_measure.config.estimator_config import EstimatorConfig
from optic_measure.my_dataclasses.calibration_sample import WeightedValue


@pytest.fixture
def cfg():
    return EstimatorConfig()


def test_axis_estimate_ignores_far_outliers(cfg):
    rng = np.random.default_rng(0)
    values = list(0.05 + rng.normal(0, 0.0002, size=30)) + [0.5] * 5
    estimate = robust_axis_estimate(values, cfg)
    assert estimate is not None
    assert abs(estimate.mean - 0.05) <= 0.05 * 0.01


def test_axis_estimate_needs_minimum_candidates(cfg):
    assert robust_axis_estimate([0.05] * 23, cfg) is None
    assert robust_axis_estimate([0.05] * 24, cfg) is not None


def test_axis_estimate_drops_implausible_values_before_counting(cfg):
    values = [0.05] * 20 + [0.001] * 10 + [2.0] * 10
    assert robust_axis_estimate(values, cfg) is None


def test_axis_weight_is_clamped(cfg):
    tight = robust_axis_estimate(np.full(100, 0.05), cfg)
    assert tight.weight == cfg.max_axis_weight

    spread = robust_axis_estimate(np.linspace(0.02, 0.7, 30), cfg)
    assert cfg.min_axis_weight <= spread.weight < cfg.max_axis_weight


def test_axis_weight_grows_with_density(cfg):
    rng = np.random.default_rng(1)
    few = robust_axis_estimate(0.05 + rng.normal(0, 0.01, size=40), cfg)
    many = robust_axis_estimate(0.05 + rng.normal(0, 0.01, size=4000), cfg)
    assert many.weight > few.weight


def test_clamped_weight_handles_non_finite(cfg):
    assert clamped_weight(float("nan"), cfg) == cfg.min_axis_weight
    assert clamped_weight(1.0, cfg) == cfg.min_axis_weight
    assert clamped_weight(1e9, cfg) == cfg.max_axis_weight
    assert not has_sufficient_weight(float("inf") * 0, cfg)


def test_median_even_and_odd():
    assert median([3.0, 1.0, 2.0]) == 2.0
    assert median([4.0, 1.0, 2.0, 3.0]) == 2.5
    assert median([]) is None


def test_weighted_mean():
    entries = [WeightedValue(1.0, 1.0), WeightedValue(3.0, 3.0)]
    assert weighted_mean(entries) == pytest.approx(2.5)
    assert weighted_mean([]) is None
    assert weighted_mean([WeightedValue(1.0, 0.0)]) is None


def test_stabilized_weighted_mean_rejects_outlier_sample(cfg):
    entries = [WeightedValue(v, 100.0) for v in (0.050, 0.051, 0.049, 0.050, 0.050)]
    entries.append(WeightedValue(0.3, 6000.0))
    result = stabilized_weighted_mean(entries, cfg)
    assert result == pytest.approx(0.05, abs=0.001)


def test_stabilized_weighted_mean_skips_invalid_entries(cfg):
    entries = [WeightedValue(float("nan"), 10.0), WeightedValue(0.05, -1.0)]
    assert stabilized_weighted_mean(entries, cfg) is None
    assert stabilized_weighted_mean([WeightedValue(0.05, 10.0)], cfg) == pytest.approx(0.05)
