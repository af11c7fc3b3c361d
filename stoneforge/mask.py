"""Binary pixel masks handed over by the segmentation stage."""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

FOREGROUND_THRESHOLD = 128


def _binarize(arr: np.ndarray, threshold: int) -> np.ndarray:
    if arr.dtype == bool:
        return arr.copy()
    if arr.ndim == 3:
        if arr.shape[2] == 4:
            arr = cv2.cvtColor(np.ascontiguousarray(arr, dtype=np.uint8), cv2.COLOR_BGRA2GRAY)
        elif arr.shape[2] == 3:
            arr = cv2.cvtColor(np.ascontiguousarray(arr, dtype=np.uint8), cv2.COLOR_BGR2GRAY)
        else:
            arr = arr[..., 0]
    # THRESH_BINARY keeps values strictly above the threshold
    _, binary = cv2.threshold(arr.astype(np.float32), threshold, 255, cv2.THRESH_BINARY)
    return binary > 0


class PixelMask:
    """Read-only foreground/background raster, indexed ``data[y, x]``."""

    def __init__(self, data: np.ndarray):
        data = np.array(data, dtype=bool)
        if data.ndim != 2:
            raise ValueError("Mask dimensionality invalid")
        self.data = data
        self.data.setflags(write=False)

    @classmethod
    def from_array(cls, arr, threshold: int = FOREGROUND_THRESHOLD) -> "PixelMask":
        """Threshold a grayscale, BGR(A) or boolean array into a mask."""
        arr = np.asarray(arr)
        if arr.ndim not in (2, 3):
            raise ValueError("Mask dimensionality invalid")
        return cls(_binarize(arr, threshold))

    @classmethod
    def from_bytes(cls, buf: bytes, width: int, height: int,
                   threshold: int = FOREGROUND_THRESHOLD) -> "PixelMask":
        """Build a mask from a raw row-major single-channel byte buffer."""
        arr = np.frombuffer(buf, dtype=np.uint8)
        if arr.size != width * height:
            raise ValueError(f"Expected {width * height} bytes, got {arr.size}")
        return cls.from_array(arr.reshape(height, width), threshold)

    @classmethod
    def from_image_bytes(cls, image_bytes: bytes,
                         threshold: int = FOREGROUND_THRESHOLD) -> "PixelMask":
        """Decode a PNG/JPEG mask image."""
        img = cv2.imdecode(np.frombuffer(image_bytes, np.uint8), cv2.IMREAD_GRAYSCALE)
        if img is None:
            raise ValueError("Invalid image")
        return cls.from_array(img, threshold)

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def foreground_count(self) -> int:
        return int(np.count_nonzero(self.data))

    def is_foreground(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height and bool(self.data[y, x])

    def first_foreground(self) -> Optional[tuple[int, int]]:
        """First foreground pixel of a row-major scan, as ``(x, y)``."""
        flat = self.data.ravel()
        idx = int(np.argmax(flat))
        if not flat[idx]:
            return None
        y, x = divmod(idx, self.width)
        return x, y

    def bounding_box(self) -> Optional[tuple[int, int, int, int]]:
        """``(x_min, y_min, x_max, y_max)`` of the foreground, inclusive."""
        ys, xs = np.nonzero(self.data)
        if xs.size == 0:
            return None
        return int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max())

    def to_image(self) -> np.ndarray:
        """0/255 uint8 image, the form OpenCV drawing routines expect."""
        return self.data.astype(np.uint8) * 255

    def __repr__(self) -> str:
        return f"PixelMask({self.width}x{self.height}, foreground={self.foreground_count})"
