from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from optic_measure.my_dataclasses.calibration import Calibration
from optic_measure.my_dataclasses.post_capture_models import (
    EyeData,
    EyeMetrics,
    Metrics,
    NormalizedPoint,
    NormalizedRect,
    PostCaptureConfiguration,
)
from optic_measure.saving_and_loading.safe_and_load_hdf5 import load_from_hdf5, register_dataclass, save_to_hdf5


@dataclass
class MeasurementRecord:
    """
    A saved measurement. The calibration is stored verbatim next to the marker
    configuration, so the metrics can be recomputed after editing a reloaded
    record.
    """
    client_name: str
    calibration: Calibration
    configuration: PostCaptureConfiguration
    metrics: Metrics
    date: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))


for _cls in (Calibration, NormalizedPoint, NormalizedRect, EyeData, PostCaptureConfiguration,
             EyeMetrics, Metrics, MeasurementRecord):
    register_dataclass(_cls)


def save_measurement_record(path: str | Path, record: MeasurementRecord) -> None:
    save_to_hdf5(path, record)


def load_measurement_record(path: str | Path) -> MeasurementRecord:
    record = load_from_hdf5(path)
    if not isinstance(record, MeasurementRecord):
        raise ValueError(f"{path} does not contain a measurement record")
    return record
