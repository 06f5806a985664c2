"""
Inference session bound to one model artifact and one backend.

The session exclusively owns the native onnxruntime handle. It is not
re-entrant: callers must serialize `run` calls on one instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import onnxruntime as ort

from ops.errors import ConfigurationError, InferenceError
from .backend import ComputeBackend, Precision


@dataclass(frozen=True)
class ModelArtifact:
    """A model file on disk and its numeric path."""
    path: str
    precision: Precision


# (model_path, backend) -> native session exposing get_inputs() and run()
SessionFactory = Callable[[str, ComputeBackend], Any]


def open_onnx_session(model_path: str, backend: ComputeBackend) -> ort.InferenceSession:
    """Open an onnxruntime session pinned to `backend`."""
    options = ort.SessionOptions()
    if backend.devices:
        # Plugin providers are attached per device rather than by name.
        options.add_provider_for_devices(list(backend.devices), {})
        return ort.InferenceSession(model_path, sess_options=options)
    return ort.InferenceSession(model_path, sess_options=options, providers=[backend.name])


def _static_dim(value: Any) -> Optional[int]:
    if isinstance(value, (int, np.integer)) and int(value) > 0:
        return int(value)
    return None


class InferenceSession:
    """
    Loaded model bound to a compute backend.

    Attributes:
        artifact: Model file and precision.
        backend: Backend the model runs on.
        input_name: Name of the model's image input.
        input_width: Required input width (fixed for the session lifetime).
        input_height: Required input height.
    """

    def __init__(
        self,
        native: Any,
        artifact: ModelArtifact,
        backend: ComputeBackend,
        input_name: str,
        input_width: int,
        input_height: int,
    ):
        self._native = native
        self.artifact = artifact
        self.backend = backend
        self.input_name = input_name
        self.input_width = input_width
        self.input_height = input_height

    @classmethod
    def open(
        cls,
        artifact: ModelArtifact,
        backend: ComputeBackend,
        session_factory: Optional[SessionFactory] = None,
        fallback_width: Optional[int] = None,
        fallback_height: Optional[int] = None,
    ) -> "InferenceSession":
        """
        Open the native session and read the input tensor metadata.

        The first input is expected to be [N, C, H, W]. Dynamic H/W fall back
        to the configured sizes.
        """
        factory = session_factory or open_onnx_session
        try:
            native = factory(artifact.path, backend)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load model {artifact.path} on {backend.name}: {e}") from e
        try:
            inputs = native.get_inputs()
            if not inputs:
                raise ConfigurationError(f"Model has no inputs: {artifact.path}")
            meta = inputs[0]
            shape = list(meta.shape or [])
            if len(shape) != 4:
                raise ConfigurationError(
                    f"Expected a 4-D [N, C, H, W] input, got {shape} in {artifact.path}"
                )
            height = _static_dim(shape[2]) or fallback_height
            width = _static_dim(shape[3]) or fallback_width
            if not width or not height:
                raise ConfigurationError(
                    f"Model input size is dynamic ({shape}); set model.input_width and model.input_height"
                )
        except Exception:
            _release(native)
            raise
        return cls(native, artifact, backend, meta.name, int(width), int(height))

    @property
    def precision(self) -> Precision:
        return self.artifact.precision

    @property
    def model_path(self) -> str:
        return self.artifact.path

    @property
    def is_closed(self) -> bool:
        return self._native is None

    def run(self, feeds: Dict[str, np.ndarray]) -> List[np.ndarray]:
        """Run the native session and return all outputs."""
        if self._native is None:
            raise InferenceError("Inference session is closed")
        return self._native.run(None, feeds)

    def close(self) -> None:
        """Release the native session. Safe to call more than once."""
        native, self._native = self._native, None
        if native is not None:
            _release(native)
            logging.debug(f"Closed inference session for {self.artifact.path}")

    def __enter__(self) -> "InferenceSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"InferenceSession(model={self.artifact.path!r}, backend={self.backend.name!r}, "
            f"precision={self.precision.value}, input={self.input_width}x{self.input_height})"
        )


def _release(native: Any) -> None:
    # onnxruntime sessions have no close(); dropping the reference frees them.
    close = getattr(native, "close", None)
    if callable(close):
        close()
