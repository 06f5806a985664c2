"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from concurrent.futures import Future
from types import SimpleNamespace

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from inference.backend import ComputeBackend, DeviceType, ReadyState  # noqa: E402
from models.config import BackendConfig, Config, ModelConfig  # noqa: E402


class FakeCatalog:
    """Backend catalog double with scripted readiness."""

    def __init__(self, backends=None, prepare_error=None):
        self.backends = {b.name: b for b in (backends or [])}
        self.prepare_error = prepare_error
        self.ensure_ready_calls = []
        self.register_calls = 0

    def find_all(self):
        return list(self.backends.values())

    def ensure_ready(self, name):
        self.ensure_ready_calls.append(name)
        future = Future()
        if self.prepare_error is not None:
            future.set_exception(self.prepare_error)
        else:
            b = self.backends[name]
            self.backends[name] = ComputeBackend(b.name, b.device_type, ReadyState.READY)
            future.set_result(None)
        return future

    def register_certified(self):
        self.register_calls += 1


class FakeNativeSession:
    """Stands in for onnxruntime.InferenceSession."""

    def __init__(self, path, backend, shape=(1, 3, 4, 4), input_name="input", output=None, error=None):
        self.path = path
        self.backend = backend
        self.shape = list(shape)
        self.input_name = input_name
        self.output = output
        self.error = error
        self.feeds = []
        self.closed = False

    def get_inputs(self):
        return [SimpleNamespace(name=self.input_name, shape=self.shape)]

    def run(self, output_names, feeds):
        self.feeds.append(feeds)
        if self.error is not None:
            raise self.error
        return [self.output]

    def close(self):
        self.closed = True


def cpu_backend():
    return ComputeBackend("CPUExecutionProvider", DeviceType.CPU, ReadyState.READY)


def npu_backend(state=ReadyState.READY):
    return ComputeBackend("QNNExecutionProvider", DeviceType.NPU, state)


def constant_output(width, height, bg, fg, dtype=np.float32):
    """Two-channel [1, 2, H, W] output with constant background/foreground planes."""
    out = np.empty((1, 2, height, width), dtype=dtype)
    out[0, 0] = bg
    out[0, 1] = fg
    return out


@pytest.fixture
def model_files(tmp_path):
    """Create both model artifacts and return a ModelConfig pointing at them."""
    float_path = tmp_path / "float" / "model.onnx"
    quant_path = tmp_path / "quantized" / "model.onnx"
    float_path.parent.mkdir()
    quant_path.parent.mkdir()
    float_path.write_bytes(b"float")
    quant_path.write_bytes(b"quantized")
    return ModelConfig(float_model_path=str(float_path), quantized_model_path=str(quant_path))


@pytest.fixture
def segmenter_config(model_files):
    return Config(model=model_files, backend=BackendConfig(prepare_timeout=5.0))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
model:
  float_model_path: "models/float.onnx"
  quantized_model_path: "models/quantized.onnx"

backend:
  accelerator_provider: "QNNExecutionProvider"
  cpu_provider: "CPUExecutionProvider"
  prepare_timeout: 300

overlay:
  color: [255, 0, 0, 100]

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "model": {
            "float_model_path": "models/float.onnx",
            "quantized_model_path": "models/quantized.onnx",
        },
        "backend": {
            "accelerator_provider": "QNNExecutionProvider",
            "cpu_provider": "CPUExecutionProvider",
            "provider_libraries": {},
            "prepare_timeout": 300,
        },
        "reconstruction": {
            "workers": 4,
        },
        "overlay": {
            "color": [255, 0, 0, 100],
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
