"""
Initial marker placement for a fresh capture.

Offsets come from the overlay layout in millimetres (post_capture/scale.py)
converted with the capture's Scale, so the markers open at a realistic size
for the face distance. The placeholder scale is fine here: nothing is
measured until the user confirms the markers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from optic_measure.my_dataclasses.post_capture_models import (
    EyeData,
    NormalizedPoint,
    NormalizedRect,
    PostCaptureConfiguration,
)
from optic_measure.post_capture.scale import (
    HORIZONTAL_BAR_LENGTH_MM,
    HORIZONTAL_GAP_MM,
    INFERIOR_OFFSET_MM,
    NASAL_OFFSET_MM,
    PUPIL_DIAMETER_MM,
    SUPERIOR_OFFSET_MM,
    VERTICAL_BAR_HEIGHT_MM,
    Scale,
)

DEFAULT_RIGHT_PUPIL = NormalizedPoint(0.35, 0.5)
DEFAULT_LEFT_PUPIL = NormalizedPoint(0.65, 0.5)


@dataclass(frozen=True)
class OverlayGeometry:
    """Drawn marker sizes in normalized units, each capped at the full image."""
    pupil_diameter: float
    vertical_bar_height: float
    horizontal_bar_length: float


def overlay_geometry(scale: Scale) -> OverlayGeometry:
    return OverlayGeometry(
        pupil_diameter=min(scale.normalized_horizontal(PUPIL_DIAMETER_MM), 1.0),
        vertical_bar_height=min(scale.normalized_vertical(VERTICAL_BAR_HEIGHT_MM), 1.0),
        horizontal_bar_length=min(scale.normalized_horizontal(HORIZONTAL_BAR_LENGTH_MM), 1.0),
    )


def initial_eye_data(scale: Scale, central_point: NormalizedPoint, is_right_eye: bool,
                     pupil: Optional[NormalizedPoint] = None) -> EyeData:
    """
    Nasal bar a fixed distance from the central axis, temporal bar one lens
    width further out, horizontal bars below and above the pupil. The right
    eye sits on the image's left half.
    """
    center = central_point.clamped()
    if pupil is None:
        pupil = DEFAULT_RIGHT_PUPIL if is_right_eye else DEFAULT_LEFT_PUPIL
    pupil = pupil.clamped()

    nasal_offset = scale.normalized_horizontal(NASAL_OFFSET_MM)
    lens_width = scale.normalized_horizontal(HORIZONTAL_GAP_MM)
    direction = -1.0 if is_right_eye else 1.0
    nasal = center.x + direction * nasal_offset

    eye = EyeData(
        pupil=pupil,
        nasal_bar_x=nasal,
        temporal_bar_x=nasal + direction * lens_width,
        inferior_bar_y=pupil.y + scale.normalized_vertical(INFERIOR_OFFSET_MM),
        superior_bar_y=pupil.y - scale.normalized_vertical(SUPERIOR_OFFSET_MM),
    )
    return eye.normalized(center.x)


def initial_configuration(scale: Scale, central_point: Optional[NormalizedPoint] = None,
                          right_pupil: Optional[NormalizedPoint] = None,
                          left_pupil: Optional[NormalizedPoint] = None,
                          face_bounds: Optional[NormalizedRect] = None) -> PostCaptureConfiguration:
    """
    Starting marker state. Without a detected left pupil the left eye is the
    mirror image of the right one about the central axis.
    """
    center = (central_point or NormalizedPoint()).clamped()
    right = initial_eye_data(scale, center, is_right_eye=True, pupil=right_pupil)
    if left_pupil is None:
        left = right.mirrored(center.x).normalized(center.x)
    else:
        left = initial_eye_data(scale, center, is_right_eye=False, pupil=left_pupil)

    return PostCaptureConfiguration(
        central_point=center,
        right_eye=right,
        left_eye=left,
        face_bounds=(face_bounds or NormalizedRect()).clamped(),
    )
