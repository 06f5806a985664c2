"""
Segmentation pipeline: letterbox, encode, reconstruct and visualize.
"""

from .letterbox import apply_forward, compute_parameters
from .encoder import encode
from .reconstruct import reconstruct
from .visualize import create_mask_overlay, extract_foreground
from .segmenter import FeatureReadyState, ImageSegmenter, ensure_ready, get_ready_state

__all__ = [
    "apply_forward",
    "compute_parameters",
    "encode",
    "reconstruct",
    "create_mask_overlay",
    "extract_foreground",
    "FeatureReadyState",
    "ImageSegmenter",
    "ensure_ready",
    "get_ready_state",
]
