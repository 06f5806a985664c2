"""
Typed models for the image segmenter.

Value types shared by the inference and segmentation packages, plus the
typed configuration view.
"""

from .image import ImageBuffer
from .letterbox import LetterboxParams
from .mask import SegmentationMask, BACKGROUND_RGBA, FOREGROUND_RGBA
from .result import SegmentationResult
from .config import (
    Config,
    ModelConfig,
    BackendConfig,
    ReconstructionConfig,
    OverlayConfig,
)

__all__ = [
    # Images
    "ImageBuffer",
    "LetterboxParams",
    # Masks
    "SegmentationMask",
    "SegmentationResult",
    "BACKGROUND_RGBA",
    "FOREGROUND_RGBA",
    # Config
    "Config",
    "ModelConfig",
    "BackendConfig",
    "ReconstructionConfig",
    "OverlayConfig",
]
