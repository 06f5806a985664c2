"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_FLOAT_MODEL_PATH = "models/sinet/float/model.onnx"
DEFAULT_QUANTIZED_MODEL_PATH = "models/sinet/quantized/model.onnx"


@dataclass
class ModelConfig:
    """Model artifact locations and optional input-size fallbacks."""
    float_model_path: str = DEFAULT_FLOAT_MODEL_PATH
    quantized_model_path: str = DEFAULT_QUANTIZED_MODEL_PATH
    # Used only when the model declares dynamic spatial dimensions.
    input_width: Optional[int] = None
    input_height: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            float_model_path=d.get("float_model_path", DEFAULT_FLOAT_MODEL_PATH),
            quantized_model_path=d.get("quantized_model_path", DEFAULT_QUANTIZED_MODEL_PATH),
            input_width=d.get("input_width"),
            input_height=d.get("input_height"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "float_model_path": self.float_model_path,
            "quantized_model_path": self.quantized_model_path,
        }
        if self.input_width is not None:
            d["input_width"] = self.input_width
        if self.input_height is not None:
            d["input_height"] = self.input_height
        return d


@dataclass
class BackendConfig:
    """Execution provider selection."""
    accelerator_provider: str = "QNNExecutionProvider"
    cpu_provider: str = "CPUExecutionProvider"
    # Plugin execution provider libraries: registration name -> shared library path.
    provider_libraries: Dict[str, str] = field(default_factory=dict)
    prepare_timeout: float = 300.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BackendConfig":
        return cls(
            accelerator_provider=d.get("accelerator_provider", "QNNExecutionProvider"),
            cpu_provider=d.get("cpu_provider", "CPUExecutionProvider"),
            provider_libraries=dict(d.get("provider_libraries") or {}),
            prepare_timeout=d.get("prepare_timeout", 300.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accelerator_provider": self.accelerator_provider,
            "cpu_provider": self.cpu_provider,
            "provider_libraries": dict(self.provider_libraries),
            "prepare_timeout": self.prepare_timeout,
        }


@dataclass
class ReconstructionConfig:
    """Mask reconstruction parallelism."""
    workers: Optional[int] = None
    rows_per_task: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ReconstructionConfig":
        return cls(
            workers=d.get("workers"),
            rows_per_task=d.get("rows_per_task"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.workers is not None:
            d["workers"] = self.workers
        if self.rows_per_task is not None:
            d["rows_per_task"] = self.rows_per_task
        return d


@dataclass
class OverlayConfig:
    """Mask overlay tint as RGBA."""
    color: List[int] = field(default_factory=lambda: [255, 0, 0, 100])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OverlayConfig":
        return cls(color=list(d.get("color", [255, 0, 0, 100])))

    def to_dict(self) -> Dict[str, Any]:
        return {"color": list(self.color)}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    reconstruction: ReconstructionConfig = field(default_factory=ReconstructionConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    log_path: str = "logs/image_segmenter.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            model=ModelConfig.from_dict(d.get("model") or {}),
            backend=BackendConfig.from_dict(d.get("backend") or {}),
            reconstruction=ReconstructionConfig.from_dict(d.get("reconstruction") or {}),
            overlay=OverlayConfig.from_dict(d.get("overlay") or {}),
            log_path=d.get("log_path", "logs/image_segmenter.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "model": self.model.to_dict(),
            "backend": self.backend.to_dict(),
            "reconstruction": self.reconstruction.to_dict(),
            "overlay": self.overlay.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
