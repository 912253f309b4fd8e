"""Hard and soft thresholding of wavelet coefficients."""

import numpy as np

from backends.base import Buffer, ComputeBackend, Program
from engines.transpose import round_up
from models.threshold_params import ThresholdParams

THRESHOLD_GROUP_SIZE = 256


def hard_threshold(coeffs: np.ndarray, thresh: float) -> np.ndarray:
    """Keep coefficients with ``|x| > thresh``, zero the rest."""
    x = np.asarray(coeffs, dtype=np.float32)
    return np.where(np.abs(x) > np.float32(thresh), x, np.float32(0))


def soft_threshold(coeffs: np.ndarray, thresh: float) -> np.ndarray:
    """Shrink coefficients towards zero by ``thresh``."""
    x = np.asarray(coeffs, dtype=np.float32)
    return np.sign(x) * np.maximum(np.abs(x) - np.float32(thresh), np.float32(0))


def apply_threshold(coeffs: np.ndarray, params: ThresholdParams) -> np.ndarray:
    if params.is_soft:
        return soft_threshold(coeffs, params.threshold)
    return hard_threshold(coeffs, params.threshold)


def threshold_matrix(
    backend: ComputeBackend,
    src: Buffer,
    dst: Buffer,
    length: int,
    params: ThresholdParams
) -> float:
    """Threshold ``length`` coefficients of ``src`` into ``dst``; returns kernel ms."""
    program = Program.SOFT_THRESHOLD if params.is_soft else Program.HARD_THRESHOLD
    group = min(THRESHOLD_GROUP_SIZE, backend.max_group_size(program))
    return backend.run(
        program, (src, dst, float(params.threshold), length), round_up(length, group), group
    )
