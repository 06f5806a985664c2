"""
ImageBuffer model for raw pixel buffers with an explicit row stride.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

from ops.errors import ArgumentError


@dataclass(frozen=True)
class ImageBuffer:
    """
    Raw 8-bit pixel data in OpenCV channel order.

    Rows may be padded: `stride` is the number of bytes from the start of one
    row to the start of the next and can exceed `width * channels`.

    Attributes:
        data: Pixel bytes, at least stride * (height - 1) + width * channels long.
        width: Image width in pixels.
        height: Image height in pixels.
        stride: Bytes per row.
        channels: 1 (gray), 3 (BGR) or 4 (BGRA).
    """
    data: Union[bytes, bytearray, memoryview, np.ndarray]
    width: int
    height: int
    stride: int
    channels: int = 3

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ArgumentError(f"Invalid image size {self.width}x{self.height}")
        if self.channels not in (1, 3, 4):
            raise ArgumentError(f"Unsupported channel count: {self.channels}")
        if self.stride < self.width * self.channels:
            raise ArgumentError(
                f"Stride {self.stride} is smaller than a packed row ({self.width * self.channels} bytes)"
            )
        required = self.stride * (self.height - 1) + self.width * self.channels
        if len(memoryview(self.data).cast("B")) < required:
            raise ArgumentError(f"Buffer too small: need at least {required} bytes")

    @classmethod
    def from_numpy(cls, image: np.ndarray) -> "ImageBuffer":
        """Copy a uint8 HxW, HxWx3 or HxWx4 array into a packed buffer."""
        if image is None or image.ndim not in (2, 3) or image.dtype != np.uint8:
            raise ArgumentError("Expected a uint8 image array")
        h, w = image.shape[:2]
        channels = 1 if image.ndim == 2 else image.shape[2]
        packed = np.ascontiguousarray(image)
        return cls(data=packed.reshape(-1), width=w, height=h, stride=w * channels, channels=channels)

    @staticmethod
    def aligned_stride(width: int, channels: int, alignment: int = 4) -> int:
        """Row stride rounded up to `alignment` bytes, as in DIB/bitmap rows."""
        row = width * channels
        return (row + alignment - 1) // alignment * alignment

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    def as_array(self) -> np.ndarray:
        """
        Return an HxWxC view that walks rows by the declared stride.

        The view shares memory with `data` and never assumes packed rows.
        """
        flat = np.frombuffer(memoryview(self.data).cast("B"), dtype=np.uint8)
        return np.lib.stride_tricks.as_strided(
            flat,
            shape=(self.height, self.width, self.channels),
            strides=(self.stride, self.channels, 1),
            writeable=False,
        )
