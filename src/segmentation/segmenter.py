"""
ImageSegmenter: foreground/background segmentation of arbitrary images.

Lifecycle:
    1. Optionally check get_ready_state() / call ensure_ready()
    2. ImageSegmenter.create(config) selects model + backend and opens the session
    3. segment_image() per image
    4. close() (or use as a context manager) to release the session

Example:
    with ImageSegmenter.create(config) as segmenter:
        result = segmenter.segment_image(cv2.imread("photo.jpg"))
        cutout = ImageSegmenter.extract_foreground(image, result)
"""

from __future__ import annotations

import logging
import os
import time
from enum import Enum
from typing import Optional, Sequence, Union

import numpy as np

from inference import invoker
from inference.backend import BackendCatalog, ReadyState, find_backend
from inference.catalog import OnnxRuntimeCatalog
from inference.selector import check_artifacts, create_session, prepare_backends
from inference.session import InferenceSession, SessionFactory
from models.config import Config
from models.image import ImageBuffer
from models.mask import SegmentationMask
from models.result import SegmentationResult
from ops.errors import ArgumentError, InferenceError
from . import visualize
from .encoder import encode
from .letterbox import apply_forward, compute_parameters
from .reconstruct import reconstruct


class FeatureReadyState(Enum):
    READY = "ready"
    NOT_READY = "not_ready"


def get_ready_state(config: Optional[Config] = None, catalog: Optional[BackendCatalog] = None) -> FeatureReadyState:
    """
    Whether the accelerator can be used without a preparation step.

    A provider that is present but not yet registered still counts as ready;
    ensure_ready() registers it. A missing accelerator means NOT_READY even
    though create() can still fall back to the float model on CPU.

    Never raises; problems are logged and reported as NOT_READY.
    """
    config = config or Config()
    model_cfg, backend_cfg = config.model, config.backend
    try:
        if not os.path.exists(model_cfg.float_model_path) and not os.path.exists(model_cfg.quantized_model_path):
            logging.info("Model files not found")
            return FeatureReadyState.NOT_READY

        catalog = catalog or OnnxRuntimeCatalog(backend_cfg)
        accelerator = find_backend(catalog, backend_cfg.accelerator_provider)
        if accelerator is None:
            logging.info(f"{backend_cfg.accelerator_provider} not found")
            return FeatureReadyState.NOT_READY
        if accelerator.ready_state is ReadyState.NOT_PRESENT:
            logging.info(f"{accelerator.name} is not present, needs preparation")
            return FeatureReadyState.NOT_READY
        return FeatureReadyState.READY
    except Exception as e:
        logging.warning(f"Error checking ready state: {e}")
        return FeatureReadyState.NOT_READY


def ensure_ready(config: Optional[Config] = None, catalog: Optional[BackendCatalog] = None) -> None:
    """
    Prepare the accelerator and register certified backends.

    Raises:
        ConfigurationError: No model file on disk.
        BackendPreparationError: Preparation failed; safe to retry.
    """
    config = config or Config()
    check_artifacts(config.model)
    if catalog is not None:
        prepare_backends(config.backend, catalog)
    else:
        own_catalog = OnnxRuntimeCatalog(config.backend)
        try:
            prepare_backends(config.backend, own_catalog)
        finally:
            own_catalog.close()
    logging.info("Image segmenter is ready")


class ImageSegmenter:
    """
    Segments the foreground of images with the best available model/backend pair.

    Not re-entrant: serialize segment_image() calls on one instance.
    """

    def __init__(self, session: InferenceSession, config: Optional[Config] = None):
        self._session: Optional[InferenceSession] = session
        self.config = config or Config()

    @classmethod
    def create(
        cls,
        config: Optional[Config] = None,
        catalog: Optional[BackendCatalog] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> "ImageSegmenter":
        """
        Select model and backend and open the inference session.

        Raises:
            ConfigurationError: No usable model file or backend.
            BackendPreparationError: Accelerator preparation failed.
        """
        config = config or Config()
        own_catalog = catalog is None
        catalog = catalog or OnnxRuntimeCatalog(config.backend)
        try:
            session = create_session(config.model, config.backend, catalog, session_factory)
        finally:
            if own_catalog:
                catalog.close()
        return cls(session, config)

    @property
    def session(self) -> InferenceSession:
        if self._session is None:
            raise InferenceError("Image segmenter is closed")
        return self._session

    @property
    def is_closed(self) -> bool:
        return self._session is None

    def segment_image(self, image: Union[np.ndarray, ImageBuffer]) -> SegmentationResult:
        """
        Segment one image.

        Args:
            image: Gray, BGR or BGRA uint8 image (numpy array or ImageBuffer).

        Returns:
            SegmentationResult with a mask at the image's own resolution.
        """
        session = self.session
        if image is None:
            raise ArgumentError("image is required")
        if isinstance(image, ImageBuffer):
            width, height = image.width, image.height
        else:
            if not isinstance(image, np.ndarray) or image.ndim not in (2, 3) or image.size == 0:
                raise ArgumentError("image must be a non-empty HxW or HxWxC array")
            height, width = image.shape[:2]

        start = time.time()
        params = compute_parameters(width, height, session.input_width, session.input_height)
        padded = apply_forward(image, params)
        tensor = encode(padded, session.precision)
        raw = invoker.run(session, tensor)
        mask_data = reconstruct(
            raw,
            params,
            width,
            height,
            workers=self.config.reconstruction.workers,
            rows_per_task=self.config.reconstruction.rows_per_task,
        )

        result = SegmentationResult(
            mask=SegmentationMask(width, height, mask_data),
            original_width=width,
            original_height=height,
        )
        logging.debug(f"Segmented {width}x{height} image in {(time.time() - start) * 1000:.1f}ms")
        return result

    @staticmethod
    def create_mask_overlay(
        image: Union[np.ndarray, ImageBuffer],
        result: SegmentationResult,
        overlay_color: Optional[Sequence[int]] = None,
    ) -> np.ndarray:
        return visualize.create_mask_overlay(image, result, overlay_color)

    @staticmethod
    def extract_foreground(image: Union[np.ndarray, ImageBuffer], result: SegmentationResult) -> np.ndarray:
        return visualize.extract_foreground(image, result)

    def close(self) -> None:
        """Release the inference session. Safe to call more than once."""
        session, self._session = self._session, None
        if session is not None:
            session.close()

    def __enter__(self) -> "ImageSegmenter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
