"""
Letterbox resize: fit an image into the model canvas, keeping aspect ratio.

Scale and sizes are computed in 32-bit float with truncation so masks match
those produced by other implementations of the same model wrapper.
"""

from __future__ import annotations

from typing import Union

import cv2
import numpy as np

from models.image import ImageBuffer
from models.letterbox import LetterboxParams
from ops.errors import ArgumentError

PAD_VALUE = 255  # white


def compute_parameters(original_w: int, original_h: int, target_w: int, target_h: int) -> LetterboxParams:
    """Scale and centered offsets that fit original_w x original_h into target_w x target_h."""
    if original_w <= 0 or original_h <= 0:
        raise ArgumentError(f"Invalid image size {original_w}x{original_h}")
    if target_w <= 0 or target_h <= 0:
        raise ArgumentError(f"Invalid target size {target_w}x{target_h}")

    scale = min(np.float32(target_w) / np.float32(original_w), np.float32(target_h) / np.float32(original_h))
    scaled_w = int(np.float32(original_w) * scale)
    scaled_h = int(np.float32(original_h) * scale)

    return LetterboxParams(
        scale=float(scale),
        offset_x=(target_w - scaled_w) // 2,
        offset_y=(target_h - scaled_h) // 2,
        scaled_width=scaled_w,
        scaled_height=scaled_h,
        padded_width=target_w,
        padded_height=target_h,
    )


def to_bgr(image: Union[np.ndarray, ImageBuffer]) -> np.ndarray:
    """Return a uint8 HxWx3 BGR array for gray, BGR or BGRA input."""
    if isinstance(image, ImageBuffer):
        image = np.array(image.as_array())
    if image is None or not isinstance(image, np.ndarray) or image.size == 0:
        raise ArgumentError("Image is empty")
    if image.dtype != np.uint8:
        raise ArgumentError(f"Expected a uint8 image, got {image.dtype}")
    if image.ndim == 2 or (image.ndim == 3 and image.shape[2] == 1):
        return cv2.cvtColor(np.ascontiguousarray(image), cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(np.ascontiguousarray(image), cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    raise ArgumentError(f"Unsupported image shape {image.shape}")


def apply_forward(image: Union[np.ndarray, ImageBuffer], params: LetterboxParams) -> np.ndarray:
    """Draw the resized image centered on a white padded_height x padded_width canvas."""
    bgr = to_bgr(image)
    canvas = np.full((params.padded_height, params.padded_width, 3), PAD_VALUE, dtype=np.uint8)
    if params.scaled_width == 0 or params.scaled_height == 0:
        return canvas

    resized = cv2.resize(
        np.ascontiguousarray(bgr),
        (params.scaled_width, params.scaled_height),
        interpolation=cv2.INTER_CUBIC,
    )
    y0, x0 = params.offset_y, params.offset_x
    canvas[y0:y0 + params.scaled_height, x0:x0 + params.scaled_width] = resized
    return canvas
