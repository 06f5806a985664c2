"""
Derived views of a segmentation result: background overlay and foreground cut-out.

Images are OpenCV-style BGR/BGRA uint8 arrays. Mask pixels with alpha > 128
count as background.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

from models.image import ImageBuffer
from models.result import SegmentationResult
from ops.errors import ArgumentError
from .letterbox import to_bgr

DEFAULT_OVERLAY_RGBA = (255, 0, 0, 100)  # translucent red


def _background(result: SegmentationResult) -> np.ndarray:
    if result is None:
        raise ArgumentError("result is required")
    return result.mask.as_array()[:, :, 3] > 128


def _check_size(image: np.ndarray, result: SegmentationResult) -> None:
    h, w = image.shape[:2]
    if (w, h) != (result.mask.width, result.mask.height):
        raise ArgumentError(
            f"Image size {w}x{h} does not match mask size {result.mask.width}x{result.mask.height}"
        )


def create_mask_overlay(
    image: Union[np.ndarray, ImageBuffer],
    result: SegmentationResult,
    overlay_color: Optional[Sequence[int]] = None,
) -> np.ndarray:
    """
    Tint background pixels on a copy of `image`.

    Args:
        image: Original image (gray, BGR or BGRA).
        result: Segmentation of that image.
        overlay_color: RGBA tint; alpha sets the blend strength.

    Returns:
        BGR uint8 image of the same size.
    """
    if image is None:
        raise ArgumentError("image is required")
    r, g, b, a = overlay_color if overlay_color is not None else DEFAULT_OVERLAY_RGBA
    background = _background(result)
    overlay = np.array(to_bgr(image), dtype=np.uint8, copy=True)
    _check_size(overlay, result)

    alpha = a / 255.0
    tint = np.array([b, g, r], dtype=np.float32)
    blended = overlay[background].astype(np.float32) * (1.0 - alpha) + tint * alpha
    overlay[background] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
    return overlay


def extract_foreground(image: Union[np.ndarray, ImageBuffer], result: SegmentationResult) -> np.ndarray:
    """
    Cut the foreground out of `image`.

    Returns:
        BGRA uint8 image: foreground pixels keep B, G, R with alpha 255,
        background pixels are (0, 0, 0, 0).
    """
    if image is None:
        raise ArgumentError("image is required")
    foreground = ~_background(result)
    bgr = to_bgr(image)
    _check_size(bgr, result)

    out = np.zeros((bgr.shape[0], bgr.shape[1], 4), dtype=np.uint8)
    out[foreground, :3] = bgr[foreground]
    out[foreground, 3] = 255
    return out
