import math
from dataclasses import dataclass

# Reference values the overlay layout falls back to when no sensor-derived
# calibration exists. They must never be taken for a measurement.
DEFAULT_HORIZONTAL_REFERENCE_MM = 120.0
DEFAULT_VERTICAL_REFERENCE_MM = 80.0
_SENTINEL_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Calibration:
    """
    Millimetres spanned by the *entire* normalized width and height (0..1) of
    the final cropped image.

    The values are tied to the crop the estimator was given: a calibration
    computed for one crop rectangle is meaningless for markers normalized
    against another.
    """
    horizontal_reference_mm: float
    vertical_reference_mm: float

    @classmethod
    def default(cls) -> "Calibration":
        """The untrusted placeholder calibration."""
        return cls(DEFAULT_HORIZONTAL_REFERENCE_MM, DEFAULT_VERTICAL_REFERENCE_MM)

    @property
    def is_default(self) -> bool:
        return (
            abs(self.horizontal_reference_mm - DEFAULT_HORIZONTAL_REFERENCE_MM) <= _SENTINEL_TOLERANCE
            and abs(self.vertical_reference_mm - DEFAULT_VERTICAL_REFERENCE_MM) <= _SENTINEL_TOLERANCE
        )

    @property
    def is_reliable(self) -> bool:
        h = float(self.horizontal_reference_mm)
        v = float(self.vertical_reference_mm)
        if not (math.isfinite(h) and math.isfinite(v)):
            return False
        if h <= 0 or v <= 0:
            return False
        return not self.is_default
