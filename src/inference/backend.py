"""
Inference backend interface.

A backend catalog enumerates named execution targets (accelerator or CPU) and
their readiness. The selector only talks to this protocol, so tests can inject
catalogs that simulate "no accelerator" or "accelerator present but unprepared".
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Protocol, Tuple

import numpy as np


class Precision(Enum):
    """Numeric path of a model artifact, chosen once per session."""
    QUANTIZED = "quantized"
    FLOAT = "float"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(np.uint8) if self is Precision.QUANTIZED else np.dtype(np.float32)


class ReadyState(Enum):
    NOT_PRESENT = "not_present"
    NOT_READY = "not_ready"
    READY = "ready"


class DeviceType(Enum):
    CPU = "CPU"
    GPU = "GPU"
    NPU = "NPU"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ComputeBackend:
    """
    A named execution target.

    Attributes:
        name: Execution provider name (e.g. "QNNExecutionProvider").
        device_type: Hardware class of the target.
        ready_state: Whether the backend can be used right now.
        devices: Runtime device handles for plugin providers, if any.
    """
    name: str
    device_type: DeviceType = DeviceType.UNKNOWN
    ready_state: ReadyState = ReadyState.READY
    devices: Tuple[Any, ...] = ()

    @property
    def is_ready(self) -> bool:
        return self.ready_state is ReadyState.READY


class BackendCatalog(Protocol):
    def find_all(self) -> List[ComputeBackend]:
        ...

    def ensure_ready(self, name: str) -> "Future[None]":
        ...

    def register_certified(self) -> None:
        ...


def find_backend(catalog: BackendCatalog, name: str) -> Optional[ComputeBackend]:
    """Return the first backend named `name`, or None."""
    for backend in catalog.find_all():
        if backend.name == name:
            return backend
    return None
