from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from optic_measure.my_dataclasses.depth_frame import DepthFrame, DepthMap, CameraIntrinsics


class DepthSourceKind(Enum):
    SCENE_DEPTH = "scene_depth"        # dense stream, carries a confidence raster
    CAPTURED_DEPTH = "captured_depth"  # single-shot depth, no confidence


@dataclass
class DepthSource:
    """
    The depth raster chosen for one frame, with everything needed to turn a
    depth value into mm per *image* pixel.

    scale_x / scale_y: image pixels per depth pixel on each sensor axis.
    inv_fx / inv_fy: inverse focal lengths of the depth raster (1/pixels).
    """
    kind: DepthSourceKind
    depth: np.ndarray
    confidence: Optional[np.ndarray]
    scale_x: float
    scale_y: float
    inv_fx: float
    inv_fy: float

    @property
    def width(self) -> int:
        return int(self.depth.shape[1])

    @property
    def height(self) -> int:
        return int(self.depth.shape[0])


def _positive_finite(*values: float) -> bool:
    return all(math.isfinite(v) and v > 0 for v in values)


def _make_source(kind: DepthSourceKind, depth_map: DepthMap, camera: CameraIntrinsics,
                 use_confidence: bool) -> DepthSource | None:
    depth = np.asarray(depth_map.depth)
    if depth.ndim != 2:
        return None
    height, width = depth.shape
    if width < 2 or height < 2:
        return None

    img_w, img_h = camera.image_size
    if img_w <= 0 or img_h <= 0:
        return None
    scale_x = img_w / width
    scale_y = img_h / height

    if depth_map.intrinsics is not None:
        depth_intr = depth_map.intrinsics
    else:
        depth_intr = camera.scaled_to(width, height)
    fx, fy = depth_intr.fx, depth_intr.fy

    if not _positive_finite(scale_x, scale_y, fx, fy):
        return None

    confidence = None
    if use_confidence and depth_map.confidence is not None:
        conf = np.asarray(depth_map.confidence)
        # A raster of another resolution cannot be matched pixel by pixel
        if conf.shape == depth.shape:
            confidence = conf

    return DepthSource(
        kind=kind,
        depth=depth,
        confidence=confidence,
        scale_x=float(scale_x),
        scale_y=float(scale_y),
        inv_fx=1.0 / fx,
        inv_fy=1.0 / fy,
    )


def select_depth_source(frame: DepthFrame) -> DepthSource | None:
    """
    Dense scene depth when present, otherwise the single-shot captured depth.
    The first available source wins; they are never averaged.
    """
    if frame.scene_depth is not None:
        return _make_source(DepthSourceKind.SCENE_DEPTH, frame.scene_depth, frame.intrinsics, use_confidence=True)
    if frame.captured_depth is not None:
        return _make_source(DepthSourceKind.CAPTURED_DEPTH, frame.captured_depth, frame.intrinsics, use_confidence=False)
    return None
