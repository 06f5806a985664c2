"""
Model/backend selection and inference invocation.
"""

from .backend import (
    BackendCatalog,
    ComputeBackend,
    DeviceType,
    Precision,
    ReadyState,
    find_backend,
)
from .catalog import OnnxRuntimeCatalog
from .session import InferenceSession, ModelArtifact, open_onnx_session
from .selector import check_artifacts, create_session, prepare_backends, select_backend
from .invoker import dequantize, run

__all__ = [
    "BackendCatalog",
    "ComputeBackend",
    "DeviceType",
    "Precision",
    "ReadyState",
    "find_backend",
    "OnnxRuntimeCatalog",
    "InferenceSession",
    "ModelArtifact",
    "open_onnx_session",
    "check_artifacts",
    "create_session",
    "prepare_backends",
    "select_backend",
    "dequantize",
    "run",
]
