import logging
from pathlib import Path

from optic_measure.logging_utils.logging_setup import (
    LOG_DIR_ENV,
    get_logger,
    log_dir,
    shutdown_logging,
    start_logging,
)


def test_logger_names_share_the_app_root():
    assert get_logger().name == "optic_measure"
    assert get_logger("optic_measure").name == "optic_measure"
    assert get_logger("optic_measure.calibration.calibration_estimator").name == \
        "optic_measure.calibration.calibration_estimator"
    assert get_logger("tools").name == "optic_measure.tools"


def test_log_dir_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    assert log_dir() == Path(tmp_path)

    monkeypatch.delenv(LOG_DIR_ENV)
    assert log_dir() == Path.home() / "OpticMeasureLogs"


def test_shutdown_without_start_is_harmless():
    shutdown_logging()
    shutdown_logging()


def test_records_reach_the_log_file(monkeypatch, tmp_path):
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    log_path = start_logging(logging.DEBUG)
    try:
        assert log_path.parent == tmp_path
        assert start_logging() == log_path
        get_logger("tests").info("calibration finalized")
    finally:
        shutdown_logging(timeout=10.0)

    text = log_path.read_text()
    assert "[INFO] optic_measure.tests calibration finalized" in text
