"""
Tensor encoding for the segmentation model.

Both precisions use the channel-major [1, 3, H, W] layout in R, G, B order:
- FLOAT: float32 in [0, 1] (sample / 255)
- QUANTIZED: uint8 raw samples
"""

from __future__ import annotations

from typing import Union

import numpy as np

from inference.backend import Precision
from models.image import ImageBuffer
from ops.errors import ArgumentError


def _rows(image: Union[np.ndarray, ImageBuffer]) -> np.ndarray:
    # ImageBuffer rows are walked through the declared stride, never assumed packed.
    if isinstance(image, ImageBuffer):
        return image.as_array()
    if image is None or not isinstance(image, np.ndarray):
        raise ArgumentError("Expected an image array or ImageBuffer")
    return image


def encode(image: Union[np.ndarray, ImageBuffer], precision: Precision) -> np.ndarray:
    """
    Encode a BGR (or BGRA) uint8 image as an NCHW RGB tensor.

    Args:
        image: Letterboxed image, HxWx3 BGR or HxWx4 BGRA.
        precision: Numeric path of the selected model.

    Returns:
        Contiguous array of shape [1, 3, H, W], dtype float32 or uint8.
    """
    pixels = _rows(image)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ArgumentError(f"Expected an HxWx3 or HxWx4 image, got shape {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ArgumentError(f"Expected uint8 samples, got {pixels.dtype}")

    # BGR(A) -> R, G, B planes
    chw = pixels[:, :, 2::-1].transpose(2, 0, 1)[np.newaxis]

    if precision is Precision.QUANTIZED:
        return np.ascontiguousarray(chw, dtype=np.uint8)
    return np.ascontiguousarray(chw, dtype=np.float32) / np.float32(255.0)
