from __future__ import annotations
from dataclasses import dataclass, field


def _clamp01(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


@dataclass(frozen=True)
class NormalizedPoint:
    """Point in image space, 0..1 on both axes (origin top-left)."""
    x: float = 0.5
    y: float = 0.5

    @classmethod
    def from_absolute(cls, px: float, py: float, width: float, height: float) -> NormalizedPoint:
        if width <= 0 or height <= 0:
            return cls()
        return cls(_clamp01(px / width), _clamp01(py / height))

    def absolute(self, width: float, height: float) -> tuple[float, float]:
        return self.x * width, self.y * height

    def mirrored(self, center_x: float) -> NormalizedPoint:
        return NormalizedPoint(2 * center_x - self.x, self.y)

    def clamped(self) -> NormalizedPoint:
        return NormalizedPoint(_clamp01(self.x), _clamp01(self.y))


@dataclass(frozen=True)
class NormalizedRect:
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    def clamped(self) -> NormalizedRect:
        x = _clamp01(self.x)
        y = _clamp01(self.y)
        return NormalizedRect(
            x=x,
            y=y,
            width=min(max(self.width, 0.0), 1.0 - x),
            height=min(max(self.height, 0.0), 1.0 - y),
        )

    def inset_by(self, dx: float, dy: float) -> NormalizedRect:
        return NormalizedRect(self.x + dx, self.y + dy, self.width - 2 * dx, self.height - 2 * dy).clamped()

    def absolute(self, width: float, height: float) -> tuple[float, float, float, float]:
        return self.x * width, self.y * height, self.width * width, self.height * height


@dataclass(frozen=True)
class EyeData:
    """
    Editable markers of one eye. Bars are the lens edges: nasal/temporal are
    vertical bars (x), inferior/superior horizontal bars (y).
    """
    pupil: NormalizedPoint = field(default_factory=NormalizedPoint)
    nasal_bar_x: float = 0.45
    temporal_bar_x: float = 0.55
    inferior_bar_y: float = 0.6
    superior_bar_y: float = 0.4

    def mirrored(self, center_x: float) -> EyeData:
        """Same markers reflected about center_x, e.g. to seed the other eye."""
        return EyeData(
            pupil=self.pupil.mirrored(center_x).clamped(),
            nasal_bar_x=2 * center_x - self.temporal_bar_x,
            temporal_bar_x=2 * center_x - self.nasal_bar_x,
            inferior_bar_y=self.inferior_bar_y,
            superior_bar_y=self.superior_bar_y,
        )

    def normalized(self, central_x: float) -> EyeData:
        """
        Clamp every marker to 0..1, make the nasal bar the one closer to
        central_x and make inferior >= superior. Drags in the editor can leave
        the bars crossed for a moment.
        """
        reference = _clamp01(central_x)
        nasal = _clamp01(self.nasal_bar_x)
        temporal = _clamp01(self.temporal_bar_x)
        inferior = _clamp01(self.inferior_bar_y)
        superior = _clamp01(self.superior_bar_y)

        if abs(nasal - reference) > abs(temporal - reference):
            nasal, temporal = temporal, nasal

        return EyeData(
            pupil=self.pupil.clamped(),
            nasal_bar_x=nasal,
            temporal_bar_x=temporal,
            inferior_bar_y=max(inferior, superior),
            superior_bar_y=min(inferior, superior),
        )


@dataclass(frozen=True)
class PostCaptureConfiguration:
    """Full marker state of one capture, enough to rebuild the editor."""
    central_point: NormalizedPoint = field(default_factory=NormalizedPoint)
    right_eye: EyeData = field(default_factory=EyeData)
    left_eye: EyeData = field(default_factory=EyeData)
    face_bounds: NormalizedRect = field(default_factory=NormalizedRect)


@dataclass(frozen=True)
class EyeMetrics:
    """Millimetres, rounded to 0.1."""
    width: float
    height: float
    dnp: float
    pupil_height: float


@dataclass(frozen=True)
class Metrics:
    right_eye: EyeMetrics
    left_eye: EyeMetrics
    bridge: float

    @property
    def total_pupillary_distance(self) -> float:
        return round(self.right_eye.dnp + self.left_eye.dnp, 1)
