"""
Inference invocation and output dequantization.
"""

from __future__ import annotations

import numpy as np

from ops.errors import ArgumentError, InferenceError
from .backend import Precision
from .session import InferenceSession


def dequantize(output: np.ndarray) -> np.ndarray:
    """Map 8-bit outputs to float32 probabilities (0 -> 0.0, 255 -> 1.0), keeping shape."""
    return np.asarray(output, dtype=np.uint8).astype(np.float32) / np.float32(255.0)


def run(session: InferenceSession, tensor: np.ndarray) -> np.ndarray:
    """
    Run the model on an encoded tensor and return the first output as flat float32.

    Quantized sessions return 8-bit outputs, which are dequantized. Native
    failures are raised as InferenceError and are not retried; the session
    stays usable.
    """
    if tensor.dtype != session.precision.dtype:
        raise ArgumentError(
            f"Tensor dtype {tensor.dtype} does not match {session.precision.value} model input ({session.precision.dtype})"
        )

    try:
        outputs = session.run({session.input_name: tensor})
    except InferenceError:
        raise
    except Exception as e:
        raise InferenceError(f"Inference failed: {e}") from e

    if not outputs:
        raise InferenceError("Model returned no outputs")

    raw = np.asarray(outputs[0])
    if session.precision is Precision.QUANTIZED and raw.dtype == np.uint8:
        return dequantize(raw).reshape(-1)
    return raw.astype(np.float32, copy=False).reshape(-1)
