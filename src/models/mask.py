"""
SegmentationMask model.

The mask is an RGBA byte buffer (4 bytes per pixel, row-major):
- Background pixels: RGBA(255, 255, 255, 255)
- Foreground pixels: RGBA(0, 0, 0, 0)
"""

from __future__ import annotations

from typing import Union

import cv2
import numpy as np

from ops.errors import ArgumentError, BoundsError

BACKGROUND_RGBA = (255, 255, 255, 255)
FOREGROUND_RGBA = (0, 0, 0, 0)

_ALPHA = 3


class SegmentationMask:
    """
    Foreground/background mask for one image.

    The buffer is copied on construction and kept read-only afterwards.

    Attributes:
        width: Mask width in pixels.
        height: Mask height in pixels.
        data: Flat uint8 buffer of width * height * 4 bytes (RGBA).
    """

    def __init__(self, width: int, height: int, data: Union[bytes, bytearray, np.ndarray]):
        if width < 0 or height < 0:
            raise ArgumentError(f"Invalid mask size {width}x{height}")
        if not isinstance(data, np.ndarray):
            data = np.frombuffer(bytes(data), dtype=np.uint8)
        buf = np.array(data, dtype=np.uint8, copy=True).reshape(-1)
        if buf.size != width * height * 4:
            raise ArgumentError(
                f"Mask buffer has {buf.size} bytes, expected {width * height * 4} for {width}x{height} RGBA"
            )
        buf.flags.writeable = False
        self._width = width
        self._height = height
        self._data = buf

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def area(self) -> int:
        return self._width * self._height

    @property
    def has_foreground(self) -> bool:
        """True if any pixel has alpha == 0."""
        return bool(np.any(self._data[_ALPHA::4] == 0))

    def _alpha_at(self, x: int, y: int) -> int:
        if x < 0 or x >= self._width:
            raise BoundsError(f"x must be between 0 and {self._width - 1}, got {x}")
        if y < 0 or y >= self._height:
            raise BoundsError(f"y must be between 0 and {self._height - 1}, got {y}")
        return int(self._data[(y * self._width + x) * 4 + _ALPHA])

    def is_foreground(self, x: int, y: int) -> bool:
        return self._alpha_at(x, y) == 0

    def is_background(self, x: int, y: int) -> bool:
        return not self.is_foreground(x, y)

    def get_foreground_probability(self, x: int, y: int) -> float:
        """1.0 for a foreground pixel, 0.0 for background."""
        return 1.0 if self.is_foreground(x, y) else 0.0

    def count_foreground_pixels(self) -> int:
        return int(np.count_nonzero(self._data[_ALPHA::4] == 0))

    def count_background_pixels(self) -> int:
        return self.area - self.count_foreground_pixels()

    @property
    def foreground_percentage(self) -> float:
        """Foreground share of the image in [0, 1]; 0.0 for an empty mask."""
        if self.area == 0:
            return 0.0
        return 1.0 - self.background_percentage

    @property
    def background_percentage(self) -> float:
        total = self.area
        if total == 0:
            return 0.0
        return self.count_background_pixels() / total

    def as_array(self) -> np.ndarray:
        """Read-only HxWx4 RGBA view of the buffer."""
        return self._data.reshape(self._height, self._width, 4)

    def to_bytes(self) -> bytes:
        return self._data.tobytes()

    def save(self, path: str) -> None:
        """Write the mask as a 4-channel PNG (or any format OpenCV infers from `path`)."""
        bgra = cv2.cvtColor(self.as_array().copy(), cv2.COLOR_RGBA2BGRA)
        if not cv2.imwrite(path, bgra):
            raise OSError(f"Failed to write mask image: {path}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SegmentationMask):
            return NotImplemented
        return (
            self._width == other._width
            and self._height == other._height
            and np.array_equal(self._data, other._data)
        )

    def __repr__(self) -> str:
        return f"SegmentationMask(width={self._width}, height={self._height})"
