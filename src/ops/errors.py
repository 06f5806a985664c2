"""
Error taxonomy for the segmentation pipeline.

Configuration and preparation errors are raised before any native resource is
allocated. Inference errors leave the session usable for later calls.
"""

from __future__ import annotations


class SegmenterError(Exception):
    """Base class for all segmenter errors."""


class ConfigurationError(SegmenterError):
    """No usable model artifact or backend, or invalid model metadata."""


class BackendPreparationError(SegmenterError):
    """The backend readiness step failed. The underlying cause is chained."""


class InferenceError(SegmenterError):
    """Native execution failed during a run."""


class ArgumentError(SegmenterError, ValueError):
    """Invalid image or malformed parameters."""


class BoundsError(SegmenterError, IndexError):
    """Pixel coordinate outside the mask."""
