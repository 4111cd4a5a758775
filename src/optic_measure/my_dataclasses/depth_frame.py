from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


def _np(a, shape=None, dtype=float) -> np.ndarray:
    x = np.asarray(a, dtype=dtype)
    return x.reshape(shape) if shape else x


@dataclass
class CameraIntrinsics:
    """
    Pinhole model of the colour image (or of a depth raster, when attached to
    a DepthMap):
      - K (3x3) in pixels
      - image_size: (w, h) of the raster K refers to
    """
    K: np.ndarray
    image_size: Tuple[int, int]

    def __post_init__(self):
        self.K = _np(self.K, (3, 3))
        self.image_size = (int(self.image_size[0]), int(self.image_size[1]))

    @classmethod
    def from_focal(cls, fx: float, fy: float, cx: float, cy: float, image_size: Tuple[int, int]) -> CameraIntrinsics:
        K = np.array([[fx, 0.0, cx],
                      [0.0, fy, cy],
                      [0.0, 0.0, 1.0]])
        return cls(K=K, image_size=image_size)

    @property
    def fx(self) -> float:
        return float(self.K[0, 0])

    @property
    def fy(self) -> float:
        return float(self.K[1, 1])

    @property
    def cx(self) -> float:
        return float(self.K[0, 2])

    @property
    def cy(self) -> float:
        return float(self.K[1, 2])

    def scaled_to(self, width: int, height: int) -> CameraIntrinsics:
        """Rescale K to a raster of another resolution covering the same field of view."""
        sx = width / self.image_size[0]
        sy = height / self.image_size[1]
        K = self.K.copy()
        K[0, :] *= sx
        K[1, :] *= sy
        return CameraIntrinsics(K=K, image_size=(width, height))


@dataclass
class DepthMap:
    """
    depth: (H, W) distances in metres; NaN / <= 0 marks missing pixels.
    confidence: optional (H, W) per-pixel level (0 low, 1 medium, 2 high).
    intrinsics: optional calibration of the depth raster itself.
    """
    depth: np.ndarray
    confidence: Optional[np.ndarray] = None
    intrinsics: Optional[CameraIntrinsics] = None

    @property
    def width(self) -> int:
        return int(self.depth.shape[1]) if self.depth.ndim == 2 else 0

    @property
    def height(self) -> int:
        return int(self.depth.shape[0]) if self.depth.ndim == 2 else 0


@dataclass
class EyeLandmarks:
    """Eye centres in camera coordinates (metres, +z forward, OpenCV convention)."""
    left_eye_center: np.ndarray
    right_eye_center: np.ndarray

    def __post_init__(self):
        self.left_eye_center = _np(self.left_eye_center, (3,))
        self.right_eye_center = _np(self.right_eye_center, (3,))


@dataclass
class DepthFrame:
    """
    Everything the estimator needs from one sensor frame.

    scene_depth is the dense (confidence-carrying) stream, captured_depth the
    single-shot depth delivered with a photo. Either may be absent.
    rotates_dimensions is True when the final image is rotated by 90 degrees
    relative to the sensor, swapping width and height.
    """
    timestamp: float
    intrinsics: CameraIntrinsics
    scene_depth: Optional[DepthMap] = None
    captured_depth: Optional[DepthMap] = None
    eye_landmarks: Optional[EyeLandmarks] = None
    is_tracking_normal: bool = True
    is_face_tracked: bool = True
    rotates_dimensions: bool = False
