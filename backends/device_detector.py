"""Device detection and backend construction."""

import logging
from typing import Optional

from models.errors import ComputeError

logger = logging.getLogger('haar_denoise')

TORCH_AVAILABLE = False

try:
    import torch
    TORCH_AVAILABLE = True
except ImportError:
    torch = None

BACKEND_NAMES = ('auto', 'numpy', 'torch')


def detect_device() -> tuple[str, str | None, str]:
    """Detect compute device. Returns (device, gpu_name, reason)."""
    if not TORCH_AVAILABLE:
        return ("cpu", None, "PyTorch not installed")
    
    try:
        if torch.cuda.is_available():
            gpu_name = torch.cuda.get_device_name(0)
            return ("cuda", gpu_name, "CUDA GPU detected")
        return ("cpu", None, "No CUDA GPU available")
    except Exception as e:
        return ("cpu", None, f"CUDA detection failed: {e}")


def get_device_display_string() -> str:
    """Get formatted device string for UI."""
    device, gpu_name, reason = detect_device()
    if device == "cuda" and gpu_name:
        return f"{gpu_name} (CUDA)"
    return f"CPU ({reason})"


def create_backend(name: str = "auto", max_group_size: Optional[int] = None):
    """Build a compute backend by name.
    
    ``auto`` picks the torch backend when a CUDA GPU is present and the
    NumPy backend otherwise.
    """
    from backends.numpy_backend import NumpyBackend
    
    if name not in BACKEND_NAMES:
        raise ValueError(f"Backend must be one of {BACKEND_NAMES}, got {name!r}")
    
    kwargs = {} if max_group_size is None else {'max_group_size': max_group_size}
    
    if name == "auto":
        device, _, reason = detect_device()
        name = "torch" if device == "cuda" else "numpy"
        logger.info('Selected %s backend: %s', name, reason)
    
    if name == "torch":
        if not TORCH_AVAILABLE:
            raise ComputeError("PyTorch is not installed", operation='build')
        from backends.torch_backend import TorchBackend
        return TorchBackend(**kwargs)
    
    return NumpyBackend(**kwargs)
