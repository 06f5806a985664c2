"""
SegmentationResult model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .mask import SegmentationMask


@dataclass(frozen=True)
class SegmentationResult:
    """
    Result of segmenting one image.

    Attributes:
        mask: Foreground/background mask at the original resolution.
        original_width: Width of the input image.
        original_height: Height of the input image.
    """
    mask: SegmentationMask
    original_width: int
    original_height: int

    @property
    def has_foreground(self) -> bool:
        return self.mask.has_foreground

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.original_width, self.original_height)

    def to_dict(self) -> Dict[str, Any]:
        """Summary for logging and JSON output (the mask bytes are not included)."""
        fg = self.mask.count_foreground_pixels()
        return {
            "width": self.original_width,
            "height": self.original_height,
            "has_foreground": self.has_foreground,
            "foreground_pixels": fg,
            "background_pixels": self.mask.area - fg,
            "foreground_percentage": self.mask.foreground_percentage,
        }
