"""Data models for denoising parameters, results and errors."""

from .errors import DenoiseError, DimensionError, ComputeError, UnsupportedFormatError
from .threshold_params import ThresholdMode, ThresholdParams
from .denoise_result import DenoiseResult

__all__ = [
    'DenoiseError',
    'DimensionError',
    'ComputeError',
    'UnsupportedFormatError',
    'ThresholdMode',
    'ThresholdParams',
    'DenoiseResult',
]
