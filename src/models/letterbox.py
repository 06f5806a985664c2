"""
Letterbox geometry for fitting an image into the model's input canvas.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class LetterboxParams:
    """
    Geometry of one letterboxed image.

    Attributes:
        scale: min(padded_width / original_width, padded_height / original_height).
        offset_x: Left padding in pixels (centered).
        offset_y: Top padding in pixels (centered).
        scaled_width: Width of the resized image inside the canvas.
        scaled_height: Height of the resized image inside the canvas.
        padded_width: Canvas (model input) width.
        padded_height: Canvas (model input) height.
    """
    scale: float
    offset_x: int
    offset_y: int
    scaled_width: int
    scaled_height: int
    padded_width: int
    padded_height: int

    @property
    def padded_size(self) -> Tuple[int, int]:
        """Return (width, height) of the canvas."""
        return (self.padded_width, self.padded_height)

    @property
    def scaled_size(self) -> Tuple[int, int]:
        """Return (width, height) of the resized image."""
        return (self.scaled_width, self.scaled_height)

    @property
    def plane_size(self) -> int:
        """Number of elements in one output channel."""
        return self.padded_width * self.padded_height

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scale": self.scale,
            "offset_x": self.offset_x,
            "offset_y": self.offset_y,
            "scaled_width": self.scaled_width,
            "scaled_height": self.scaled_height,
            "padded_width": self.padded_width,
            "padded_height": self.padded_height,
        }
