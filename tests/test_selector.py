"""
Tests for hardware/precision selection and session creation.
"""

import os

import pytest

from conftest import FakeCatalog, FakeNativeSession, cpu_backend, npu_backend
from inference.backend import ComputeBackend, DeviceType, Precision, ReadyState
from inference.selector import create_session, select_backend
from inference.session import InferenceSession, ModelArtifact
from models.config import BackendConfig, ModelConfig
from ops.errors import BackendPreparationError, ConfigurationError


class RecordingFactory:
    def __init__(self, shape=(1, 3, 320, 224), input_name="input_image"):
        self.shape = shape
        self.input_name = input_name
        self.sessions = []

    def __call__(self, path, backend):
        native = FakeNativeSession(path, backend, shape=self.shape, input_name=self.input_name)
        self.sessions.append(native)
        return native


@pytest.fixture
def backend_cfg():
    return BackendConfig(prepare_timeout=5.0)


class TestSelectionPolicy:
    def test_quantized_on_ready_accelerator(self, model_files, backend_cfg):
        catalog = FakeCatalog([npu_backend(), cpu_backend()])
        artifact, backend = select_backend(model_files, backend_cfg, catalog)
        assert artifact.precision is Precision.QUANTIZED
        assert artifact.path == model_files.quantized_model_path
        assert backend.name == "QNNExecutionProvider"

    def test_float_on_cpu_without_accelerator(self, model_files, backend_cfg):
        catalog = FakeCatalog([cpu_backend()])
        artifact, backend = select_backend(model_files, backend_cfg, catalog)
        assert artifact.precision is Precision.FLOAT
        assert backend.name == "CPUExecutionProvider"

    def test_float_on_cpu_without_quantized_file(self, model_files, backend_cfg):
        os.remove(model_files.quantized_model_path)
        catalog = FakeCatalog([npu_backend(), cpu_backend()])
        artifact, backend = select_backend(model_files, backend_cfg, catalog)
        assert artifact.precision is Precision.FLOAT
        assert backend.name == "CPUExecutionProvider"

    def test_quantized_only_without_accelerator_fails(self, model_files, backend_cfg):
        os.remove(model_files.float_model_path)
        catalog = FakeCatalog([cpu_backend()])
        with pytest.raises(ConfigurationError):
            select_backend(model_files, backend_cfg, catalog)

    def test_missing_cpu_backend_fails(self, model_files, backend_cfg):
        catalog = FakeCatalog([])
        with pytest.raises(ConfigurationError):
            select_backend(model_files, backend_cfg, catalog)

    def test_accelerator_must_be_an_npu(self, model_files, backend_cfg):
        gpu = ComputeBackend("QNNExecutionProvider", DeviceType.GPU, ReadyState.READY)
        artifact, backend = select_backend(model_files, backend_cfg, FakeCatalog([gpu, cpu_backend()]))
        assert artifact.precision is Precision.FLOAT
        assert backend.name == "CPUExecutionProvider"

    def test_accelerator_of_unknown_type_is_used(self, model_files, backend_cfg):
        plugin = ComputeBackend("QNNExecutionProvider", DeviceType.UNKNOWN, ReadyState.READY)
        artifact, backend = select_backend(model_files, backend_cfg, FakeCatalog([plugin, cpu_backend()]))
        assert artifact.precision is Precision.QUANTIZED


class TestCreateSession:
    def test_no_model_files(self, tmp_path, backend_cfg):
        model_cfg = ModelConfig(
            float_model_path=str(tmp_path / "missing_float.onnx"),
            quantized_model_path=str(tmp_path / "missing_quant.onnx"),
        )
        catalog = FakeCatalog([npu_backend(ReadyState.NOT_READY), cpu_backend()])
        factory = RecordingFactory()

        with pytest.raises(ConfigurationError):
            create_session(model_cfg, backend_cfg, catalog, factory)
        # Checked before any backend work
        assert catalog.ensure_ready_calls == []
        assert catalog.register_calls == 0
        assert factory.sessions == []

    def test_reads_input_metadata(self, model_files, backend_cfg):
        catalog = FakeCatalog([cpu_backend()])
        session = create_session(model_files, backend_cfg, catalog, RecordingFactory())

        assert isinstance(session, InferenceSession)
        assert session.input_name == "input_image"
        assert session.input_height == 320
        assert session.input_width == 224
        assert session.precision is Precision.FLOAT
        assert catalog.register_calls == 1

    def test_prepares_unready_accelerator(self, model_files, backend_cfg):
        catalog = FakeCatalog([npu_backend(ReadyState.NOT_READY), cpu_backend()])
        factory = RecordingFactory()
        session = create_session(model_files, backend_cfg, catalog, factory)

        assert catalog.ensure_ready_calls == ["QNNExecutionProvider"]
        assert session.precision is Precision.QUANTIZED
        assert session.backend.name == "QNNExecutionProvider"
        assert factory.sessions[0].path == model_files.quantized_model_path

    def test_ready_accelerator_is_not_prepared_again(self, model_files, backend_cfg):
        catalog = FakeCatalog([npu_backend(), cpu_backend()])
        create_session(model_files, backend_cfg, catalog, RecordingFactory())
        assert catalog.ensure_ready_calls == []

    def test_preparation_failure_is_surfaced(self, model_files, backend_cfg):
        error = OSError("download failed")
        catalog = FakeCatalog([npu_backend(ReadyState.NOT_PRESENT), cpu_backend()], prepare_error=error)
        factory = RecordingFactory()

        with pytest.raises(BackendPreparationError) as exc_info:
            create_session(model_files, backend_cfg, catalog, factory)
        assert exc_info.value.__cause__ is error
        assert factory.sessions == []

    def test_dynamic_dims_use_config_fallback(self, model_files, backend_cfg):
        model_files.input_width = 96
        model_files.input_height = 64
        factory = RecordingFactory(shape=(1, 3, "height", "width"))
        session = create_session(model_files, backend_cfg, FakeCatalog([cpu_backend()]), factory)
        assert (session.input_width, session.input_height) == (96, 64)

    def test_dynamic_dims_without_fallback_release_session(self, model_files, backend_cfg):
        factory = RecordingFactory(shape=(1, 3, None, None))
        with pytest.raises(ConfigurationError):
            create_session(model_files, backend_cfg, FakeCatalog([cpu_backend()]), factory)
        assert factory.sessions[0].closed is True

    def test_wrong_rank_input(self, model_files, backend_cfg):
        factory = RecordingFactory(shape=(3, 224, 224))
        with pytest.raises(ConfigurationError):
            create_session(model_files, backend_cfg, FakeCatalog([cpu_backend()]), factory)

    def test_model_load_failure_is_a_configuration_error(self, model_files, backend_cfg):
        def corrupt_model(path, backend):
            raise RuntimeError("[ONNXRuntimeError] : 7 : INVALID_PROTOBUF : Load model failed")

        with pytest.raises(ConfigurationError, match="Failed to load model") as exc_info:
            create_session(model_files, backend_cfg, FakeCatalog([cpu_backend()]), corrupt_model)
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestInferenceSession:
    def test_context_manager_closes(self):
        native = FakeNativeSession("m.onnx", cpu_backend())
        artifact = ModelArtifact("m.onnx", Precision.FLOAT)
        with InferenceSession(native, artifact, cpu_backend(), "input", 4, 4) as session:
            assert session.is_closed is False
            assert session.model_path == "m.onnx"
        assert session.is_closed is True
        assert native.closed is True
