"""Error types raised by the denoising engines and backends."""

from typing import Optional


class DenoiseError(Exception):
    """Base class for all denoising failures."""


class DimensionError(DenoiseError, ValueError):
    """Signal or matrix edge is not an exact power of two."""


class ComputeError(DenoiseError, RuntimeError):
    """A compute backend call failed (allocation, dispatch, transfer)."""

    def __init__(self, message: str, operation: Optional[str] = None, program: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.program = program


class UnsupportedFormatError(DenoiseError, ValueError):
    """Image has an unsupported bit depth or channel count."""
