"""Compute backends: device buffers, programs and dispatch."""

from backends.base import (
    AccessMode,
    Buffer,
    ComputeBackend,
    Event,
    FLOAT_SIZE,
    Program,
)
from backends.numpy_backend import NumpyBackend
from backends.device_detector import (
    detect_device,
    get_device_display_string,
    create_backend,
    TORCH_AVAILABLE,
)

__all__ = [
    "AccessMode",
    "Buffer",
    "ComputeBackend",
    "Event",
    "FLOAT_SIZE",
    "Program",
    "NumpyBackend",
    # Device detection
    "detect_device",
    "get_device_display_string",
    "create_backend",
    "TORCH_AVAILABLE",
]
