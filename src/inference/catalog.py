"""
ONNX Runtime backend catalog.

Built-in providers come from `onnxruntime.get_available_providers()`. Plugin
providers listed in `backend.provider_libraries` are reported as NOT_READY
until their shared library has been registered with the runtime.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Set

import onnxruntime as ort

from models.config import BackendConfig
from .backend import ComputeBackend, DeviceType, ReadyState

# Hardware class of the well-known built-in providers.
PROVIDER_DEVICE_TYPES: Dict[str, DeviceType] = {
    "CPUExecutionProvider": DeviceType.CPU,
    "QNNExecutionProvider": DeviceType.NPU,
    "VitisAIExecutionProvider": DeviceType.NPU,
    "OpenVINOExecutionProvider": DeviceType.NPU,
    "CUDAExecutionProvider": DeviceType.GPU,
    "TensorrtExecutionProvider": DeviceType.GPU,
    "ROCMExecutionProvider": DeviceType.GPU,
    "DmlExecutionProvider": DeviceType.GPU,
    "CoreMLExecutionProvider": DeviceType.NPU,
}


def _device_type_of(ep_device) -> DeviceType:
    hw = getattr(ep_device, "device", None)
    hw_type = getattr(hw, "type", None)
    name = getattr(hw_type, "name", str(hw_type or "")).upper()
    for dt in DeviceType:
        if dt.value in name:
            return dt
    return DeviceType.UNKNOWN


class OnnxRuntimeCatalog:
    """Backend catalog backed by the installed onnxruntime package."""

    def __init__(self, cfg: Optional[BackendConfig] = None):
        self.cfg = cfg or BackendConfig()
        self._registered: Set[str] = set()
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    def _ep_devices(self) -> list:
        get_ep_devices = getattr(ort, "get_ep_devices", None)
        if get_ep_devices is None:
            return []
        return list(get_ep_devices())

    def _devices_by_ep(self) -> Dict[str, list]:
        devices: Dict[str, list] = {}
        for dev in self._ep_devices():
            devices.setdefault(getattr(dev, "ep_name", ""), []).append(dev)
        return devices

    def find_all(self) -> List[ComputeBackend]:
        backends: Dict[str, ComputeBackend] = {}

        for name in ort.get_available_providers():
            backends[name] = ComputeBackend(
                name=name,
                device_type=PROVIDER_DEVICE_TYPES.get(name, DeviceType.UNKNOWN),
                ready_state=ReadyState.READY,
            )

        devices_by_ep = self._devices_by_ep()
        # The runtime's library registry is process-wide: a library registered
        # through another catalog shows up here as listed devices.
        with self._lock:
            registered = set(self._registered)
        registered.update(name for name in self.cfg.provider_libraries if devices_by_ep.get(name))
        for name in registered:
            devs = devices_by_ep.get(name, [])
            backends[name] = ComputeBackend(
                name=name,
                device_type=_device_type_of(devs[0]) if devs else PROVIDER_DEVICE_TYPES.get(name, DeviceType.UNKNOWN),
                ready_state=ReadyState.READY if devs else ReadyState.NOT_READY,
                devices=tuple(devs),
            )

        for name, path in self.cfg.provider_libraries.items():
            if name in backends:
                continue
            backends[name] = ComputeBackend(
                name=name,
                device_type=PROVIDER_DEVICE_TYPES.get(name, DeviceType.UNKNOWN),
                ready_state=ReadyState.NOT_READY if os.path.exists(path) else ReadyState.NOT_PRESENT,
            )

        return list(backends.values())

    def _register_library(self, name: str) -> None:
        with self._lock:
            if name in self._registered:
                return
            path = self.cfg.provider_libraries.get(name)
            if path is None:
                if name in ort.get_available_providers():
                    return
                raise RuntimeError(f"No provider library configured for {name}")
            if self._devices_by_ep().get(name):
                logging.debug(f"Execution provider library {name} is already registered")
                self._registered.add(name)
                return
            if not os.path.exists(path):
                raise FileNotFoundError(f"Provider library not found for {name}: {path}")
            logging.info(f"Registering execution provider library {name} from {path}")
            ort.register_execution_provider_library(name, path)
            self._registered.add(name)

    def ensure_ready(self, name: str) -> "Future[None]":
        """Prepare `name` in the background. The returned future raises on failure."""
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ep-prepare")
            executor = self._executor
        return executor.submit(self._register_library, name)

    def register_certified(self) -> None:
        """Register every configured provider library that is present on disk."""
        for name, path in self.cfg.provider_libraries.items():
            if os.path.exists(path):
                self._register_library(name)

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
