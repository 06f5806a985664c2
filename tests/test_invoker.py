"""
Tests for inference invocation and dequantization.
"""

import numpy as np
import pytest

from conftest import FakeNativeSession, constant_output, cpu_backend, npu_backend
from inference.backend import Precision
from inference.invoker import dequantize, run
from inference.session import InferenceSession, ModelArtifact
from ops.errors import ArgumentError, InferenceError


def make_session(precision, output=None, error=None):
    backend = npu_backend() if precision is Precision.QUANTIZED else cpu_backend()
    native = FakeNativeSession("model.onnx", backend, output=output, error=error)
    session = InferenceSession(native, ModelArtifact("model.onnx", precision), backend, "input", 4, 4)
    return session, native


class TestDequantize:
    def test_extremes(self):
        out = dequantize(np.array([0, 255], dtype=np.uint8))
        assert out.dtype == np.float32
        assert out[0] == 0.0
        assert out[1] == 1.0

    def test_preserves_shape_and_order(self):
        raw = np.arange(24, dtype=np.uint8).reshape(1, 2, 3, 4)
        out = dequantize(raw)
        assert out.shape == raw.shape
        np.testing.assert_allclose(out.reshape(-1), np.arange(24) / 255.0, rtol=1e-6)


class TestRun:
    def test_float_output_passes_through(self):
        session, native = make_session(Precision.FLOAT, output=constant_output(4, 4, 0.8, 0.2))
        tensor = np.zeros((1, 3, 4, 4), dtype=np.float32)

        out = run(session, tensor)

        assert out.dtype == np.float32
        assert out.shape == (32,)
        assert out[0] == pytest.approx(0.8)
        assert out[16] == pytest.approx(0.2)
        assert list(native.feeds[0].keys()) == ["input"]
        assert native.feeds[0]["input"] is tensor

    def test_quantized_output_is_dequantized(self):
        session, _ = make_session(Precision.QUANTIZED, output=constant_output(4, 4, 255, 0, dtype=np.uint8))
        out = run(session, np.zeros((1, 3, 4, 4), dtype=np.uint8))

        assert out.dtype == np.float32
        assert np.all(out[:16] == 1.0)
        assert np.all(out[16:] == 0.0)

    def test_dtype_mismatch_fails_before_running(self):
        session, native = make_session(Precision.QUANTIZED, output=constant_output(4, 4, 0, 0, dtype=np.uint8))
        with pytest.raises(ArgumentError):
            run(session, np.zeros((1, 3, 4, 4), dtype=np.float32))
        assert native.feeds == []

    def test_native_failure_is_wrapped(self):
        session, native = make_session(Precision.FLOAT, error=RuntimeError("[ONNXRuntimeError] : 6 : RUNTIME_EXCEPTION"))
        with pytest.raises(InferenceError) as exc_info:
            run(session, np.zeros((1, 3, 4, 4), dtype=np.float32))
        assert "RUNTIME_EXCEPTION" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_session_usable_after_failure(self):
        session, native = make_session(Precision.FLOAT, error=RuntimeError("boom"))
        tensor = np.zeros((1, 3, 4, 4), dtype=np.float32)
        with pytest.raises(InferenceError):
            run(session, tensor)

        native.error = None
        native.output = constant_output(4, 4, 0.1, 0.9)
        out = run(session, tensor)
        assert out[16] == pytest.approx(0.9)
        assert len(native.feeds) == 2

    def test_closed_session(self):
        session, native = make_session(Precision.FLOAT, output=constant_output(4, 4, 0.1, 0.9))
        session.close()
        session.close()
        assert native.closed is True
        with pytest.raises(InferenceError):
            run(session, np.zeros((1, 3, 4, 4), dtype=np.float32))
