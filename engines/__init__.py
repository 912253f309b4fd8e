"""DSP engines - pure computation, no GUI dependencies."""

from .haar import (
    get_num_levels,
    require_levels,
    execution_capacity,
    dispatch_plan,
    forward_haar,
    inverse_haar,
    HaarTransform,
)
from .transpose import TILE_SIZE, round_up, transpose_matrix, transpose_host
from .threshold import hard_threshold, soft_threshold, apply_threshold, threshold_matrix
from .denoise import DenoiseEngine, denoise_reference, validate_image, MAX_EDGE

__all__ = [
    'get_num_levels',
    'require_levels',
    'execution_capacity',
    'dispatch_plan',
    'forward_haar',
    'inverse_haar',
    'HaarTransform',
    'TILE_SIZE',
    'round_up',
    'transpose_matrix',
    'transpose_host',
    'hard_threshold',
    'soft_threshold',
    'apply_threshold',
    'threshold_matrix',
    'DenoiseEngine',
    'denoise_reference',
    'validate_image',
    'MAX_EDGE',
]
