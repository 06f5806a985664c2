"""
Hardware/precision selection.

Policy, in order:
1. Accelerator backend ready on an NPU (or unreported hardware) and quantized
   model on disk -> quantized on accelerator.
2. Float model on disk -> float on CPU.
3. Otherwise fail with ConfigurationError.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional, Tuple

from models.config import BackendConfig, ModelConfig
from ops.errors import BackendPreparationError, ConfigurationError
from .backend import BackendCatalog, ComputeBackend, DeviceType, Precision, ReadyState, find_backend
from .session import InferenceSession, ModelArtifact, SessionFactory

# Plugin providers may not report their hardware class until devices are listed.
ACCELERATOR_DEVICE_TYPES = (DeviceType.NPU, DeviceType.UNKNOWN)


def check_artifacts(model_cfg: ModelConfig) -> None:
    """Raise ConfigurationError unless at least one model file exists."""
    if not os.path.exists(model_cfg.float_model_path) and not os.path.exists(model_cfg.quantized_model_path):
        raise ConfigurationError(
            f"Model files not found: {model_cfg.float_model_path} or {model_cfg.quantized_model_path}"
        )


def prepare_backends(backend_cfg: BackendConfig, catalog: BackendCatalog) -> None:
    """
    Make the accelerator ready (if the catalog knows it) and register certified backends.

    Blocks until preparation finishes or `prepare_timeout` elapses.
    """
    accelerator = find_backend(catalog, backend_cfg.accelerator_provider)
    try:
        if accelerator is not None and accelerator.ready_state is not ReadyState.READY:
            logging.info(f"Preparing execution provider {accelerator.name} ({accelerator.ready_state.value})")
            catalog.ensure_ready(accelerator.name).result(timeout=backend_cfg.prepare_timeout)
        catalog.register_certified()
    except FutureTimeoutError as e:
        raise BackendPreparationError(
            f"Timed out after {backend_cfg.prepare_timeout}s preparing {backend_cfg.accelerator_provider}"
        ) from e
    except Exception as e:
        raise BackendPreparationError(f"Failed to prepare execution providers: {e}") from e


def select_backend(
    model_cfg: ModelConfig,
    backend_cfg: BackendConfig,
    catalog: BackendCatalog,
) -> Tuple[ModelArtifact, ComputeBackend]:
    """Apply the selection policy to the current catalog state."""
    accelerator = find_backend(catalog, backend_cfg.accelerator_provider)
    if (
        accelerator is not None
        and accelerator.is_ready
        and accelerator.device_type in ACCELERATOR_DEVICE_TYPES
        and os.path.exists(model_cfg.quantized_model_path)
    ):
        logging.info(f"Using quantized model with {accelerator.name}")
        return ModelArtifact(model_cfg.quantized_model_path, Precision.QUANTIZED), accelerator

    if os.path.exists(model_cfg.float_model_path):
        cpu = find_backend(catalog, backend_cfg.cpu_provider)
        if cpu is None or not cpu.is_ready:
            raise ConfigurationError(f"CPU execution provider {backend_cfg.cpu_provider} is not available")
        logging.info(f"Using float model with {cpu.name}")
        return ModelArtifact(model_cfg.float_model_path, Precision.FLOAT), cpu

    raise ConfigurationError("No suitable model found for available execution provider")


def create_session(
    model_cfg: ModelConfig,
    backend_cfg: BackendConfig,
    catalog: BackendCatalog,
    session_factory: Optional[SessionFactory] = None,
) -> InferenceSession:
    """
    Prepare backends, pick model and backend, and open the session.

    Raises:
        ConfigurationError: No model file, no usable backend or bad model metadata.
        BackendPreparationError: Accelerator preparation or registration failed.
    """
    check_artifacts(model_cfg)
    prepare_backends(backend_cfg, catalog)
    artifact, backend = select_backend(model_cfg, backend_cfg, catalog)

    session = InferenceSession.open(
        artifact,
        backend,
        session_factory=session_factory,
        fallback_width=model_cfg.input_width,
        fallback_height=model_cfg.input_height,
    )
    logging.info(f"Created session with model: {artifact.path}")
    logging.info(f"Model input size: {session.input_width}x{session.input_height}")
    logging.info(f"Execution provider: {backend.name} ({backend.device_type.value})")
    logging.info(
        f"Model type: {'Quantized (UInt8)' if artifact.precision is Precision.QUANTIZED else 'Float (FP32)'}"
    )
    return session
