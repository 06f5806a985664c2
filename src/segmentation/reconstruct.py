"""
Mask reconstruction: resample the low-resolution two-channel model output back
to the original image grid and decide foreground/background per pixel.

For each destination pixel (x, y), in 32-bit float:
    sx = x / original_w * scaled_w + offset_x
    sy = y / original_h * scaled_h + offset_y
clamped to the canvas, then both channels are sampled bilinearly. A pixel is
background when fg < bg; ties go to foreground.

Note the mapping resamples across the full destination size instead of using
`x * scale + offset_x`. The two differ when scaled_w was truncated, and the
former is kept so masks stay bit-compatible.
"""

from __future__ import annotations

import logging
import math
import os
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np

from models.letterbox import LetterboxParams
from ops.errors import ArgumentError

BACKGROUND_VALUE = 255
FOREGROUND_VALUE = 0


def _axis_samples(
    start: int, stop: int, original: int, scaled: int, offset: int, padded: int
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Lower index, upper index and fractional weight along one axis."""
    coords = np.arange(start, stop, dtype=np.float32)
    s = coords / np.float32(original) * np.float32(scaled) + np.float32(offset)
    s = np.clip(s, np.float32(0), np.float32(padded - 1))
    i0 = np.floor(s).astype(np.intp)
    i1 = np.minimum(i0 + 1, padded - 1)
    frac = s - i0.astype(np.float32)
    return i0, i1, frac


def _bilinear(plane: np.ndarray, y0, y1, x0, x1, fx: np.ndarray, fy: np.ndarray) -> np.ndarray:
    v00 = plane[y0[:, None], x0[None, :]]
    v10 = plane[y0[:, None], x1[None, :]]
    v01 = plane[y1[:, None], x0[None, :]]
    v11 = plane[y1[:, None], x1[None, :]]
    wx = fx[None, :]
    wy = fy[:, None]
    return (v00 * (1 - wx) + v10 * wx) * (1 - wy) + (v01 * (1 - wx) + v11 * wx) * wy


def _reconstruct_rows(
    bg: np.ndarray,
    fg: np.ndarray,
    params: LetterboxParams,
    original_w: int,
    original_h: int,
    x_axis: Tuple[np.ndarray, np.ndarray, np.ndarray],
    out_rows: np.ndarray,
    y_start: int,
) -> None:
    """Fill `out_rows` (rows y_start.. of the RGBA mask). Touches nothing else."""
    y_stop = y_start + out_rows.shape[0]
    y0, y1, fy = _axis_samples(
        y_start, y_stop, original_h, params.scaled_height, params.offset_y, params.padded_height
    )
    x0, x1, fx = x_axis

    bg_prob = _bilinear(bg, y0, y1, x0, x1, fx, fy)
    fg_prob = _bilinear(fg, y0, y1, x0, x1, fx, fy)

    is_background = fg_prob < bg_prob
    out_rows[...] = np.where(
        is_background[..., None], np.uint8(BACKGROUND_VALUE), np.uint8(FOREGROUND_VALUE)
    )


def _row_bands(height: int, workers: int, rows_per_task: Optional[int]) -> List[Tuple[int, int]]:
    step = rows_per_task if rows_per_task and rows_per_task > 0 else max(1, math.ceil(height / workers))
    return [(y, min(y + step, height)) for y in range(0, height, step)]


def reconstruct(
    raw_output: np.ndarray,
    params: LetterboxParams,
    original_w: int,
    original_h: int,
    workers: Optional[int] = None,
    rows_per_task: Optional[int] = None,
) -> np.ndarray:
    """
    Build the RGBA mask bytes for an original_w x original_h image.

    Args:
        raw_output: Float model output, at least 2 * padded_w * padded_h elements
            (channel 0 background, channel 1 foreground).
        params: Letterbox geometry used to encode the input.
        original_w: Width of the original image.
        original_h: Height of the original image.
        workers: Thread count for the row bands (None = executor default).
        rows_per_task: Rows per band (None = split evenly across workers).

    Returns:
        Flat uint8 array of original_w * original_h * 4 bytes.
    """
    if original_w < 0 or original_h < 0:
        raise ArgumentError(f"Invalid image size {original_w}x{original_h}")

    data = np.asarray(raw_output, dtype=np.float32).reshape(-1)
    plane = params.plane_size
    if data.size < 2 * plane:
        raise ArgumentError(
            f"Model output has {data.size} elements, expected {2 * plane} for "
            f"{params.padded_width}x{params.padded_height} with 2 channels"
        )

    mask = np.empty(original_w * original_h * 4, dtype=np.uint8)
    if original_w == 0 or original_h == 0:
        return mask

    bg = data[:plane].reshape(params.padded_height, params.padded_width)
    fg = data[plane:2 * plane].reshape(params.padded_height, params.padded_width)
    x_axis = _axis_samples(
        0, original_w, original_w, params.scaled_width, params.offset_x, params.padded_width
    )
    rows = mask.reshape(original_h, original_w, 4)

    n_workers = workers if workers and workers > 0 else min(32, (os.cpu_count() or 1) + 4)
    bands = _row_bands(original_h, n_workers, rows_per_task)

    if len(bands) == 1:
        _reconstruct_rows(bg, fg, params, original_w, original_h, x_axis, rows, 0)
        return mask

    # Each band gets its own disjoint row slice of the mask.
    with ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="mask") as executor:
        futures = [
            executor.submit(_reconstruct_rows, bg, fg, params, original_w, original_h, x_axis, rows[a:b], a)
            for a, b in bands
        ]
        for future in futures:
            future.result()

    logging.debug(f"Reconstructed {original_w}x{original_h} mask in {len(bands)} bands")
    return mask
