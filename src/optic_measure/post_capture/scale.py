from __future__ import annotations

from optic_measure.my_dataclasses.calibration import Calibration

# Overlay layout used to place the initial markers, in millimetres
PUPIL_DIAMETER_MM = 2.0
VERTICAL_BAR_HEIGHT_MM = 50.0
HORIZONTAL_BAR_LENGTH_MM = 60.0
NASAL_OFFSET_MM = 9.0
HORIZONTAL_GAP_MM = 50.0
INFERIOR_OFFSET_MM = 15.0
SUPERIOR_OFFSET_MM = 20.0

# Guards the divisions below against a collapsed reference
_MIN_REFERENCE_MM = 1.0


class Scale:
    """
    Converts between millimetres and normalized image units using a
    Calibration.

    One normalized unit is the full width (or height) of the crop the
    calibration was computed for, so 1.0 horizontally equals
    horizontal_reference_mm. crop_size, when given, must be that same crop in
    pixels and enables the per-pixel helpers.
    """

    def __init__(self, calibration: Calibration, crop_size: tuple[int, int] | None = None):
        self.calibration = calibration
        self.crop_size = crop_size

    @classmethod
    def default(cls) -> Scale:
        return cls(Calibration.default())

    @property
    def is_reliable(self) -> bool:
        return self.calibration.is_reliable

    @property
    def horizontal_reference_mm(self) -> float:
        return max(float(self.calibration.horizontal_reference_mm), _MIN_REFERENCE_MM)

    @property
    def vertical_reference_mm(self) -> float:
        return max(float(self.calibration.vertical_reference_mm), _MIN_REFERENCE_MM)

    @property
    def mm_per_unit_x(self) -> float:
        return self.horizontal_reference_mm

    @property
    def mm_per_unit_y(self) -> float:
        return self.vertical_reference_mm

    def normalized_horizontal(self, millimeters: float) -> float:
        return millimeters / self.horizontal_reference_mm

    def normalized_vertical(self, millimeters: float) -> float:
        return millimeters / self.vertical_reference_mm

    def horizontal_mm(self, units: float) -> float:
        return units * self.horizontal_reference_mm

    def vertical_mm(self, units: float) -> float:
        return units * self.vertical_reference_mm

    @property
    def mm_per_pixel_x(self) -> float | None:
        if not self.crop_size or self.crop_size[0] <= 0:
            return None
        return self.horizontal_reference_mm / self.crop_size[0]

    @property
    def mm_per_pixel_y(self) -> float | None:
        if not self.crop_size or self.crop_size[1] <= 0:
            return None
        return self.vertical_reference_mm / self.crop_size[1]

    def __repr__(self):
        return (f"Scale(h={self.horizontal_reference_mm:.3f} mm, v={self.vertical_reference_mm:.3f} mm, "
                f"reliable={self.is_reliable})")
