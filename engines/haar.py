"""Orthonormal 1D Haar wavelet transform.

Two forms are provided:

* ``forward_haar`` / ``inverse_haar``: direct single-pass host transforms
  that define the exact float32 recurrence.
* ``HaarTransform``: the same recurrence split into several dispatches on a
  compute backend. A dispatch can only run as many consecutive levels as
  one synchronized thread group covers, so signals that need more levels
  than the backend's execution capacity take several passes.
"""

import logging
from typing import List, Tuple

import numpy as np

from backends.base import Buffer, ComputeBackend, Program
from engines.kernels import HALF, INV_SQRT_2, SQRT_2
from models.errors import DimensionError

logger = logging.getLogger('haar_denoise')


def get_num_levels(length: int) -> Tuple[int, bool]:
    """Return ``(levels, valid)`` where ``valid`` means ``2**levels == length``.

    ``levels`` is meaningless when ``valid`` is False.
    """
    length = int(length)
    if length < 1:
        return 0, False
    levels = length.bit_length() - 1
    return levels, (1 << levels) == length


def require_levels(length: int) -> int:
    """Number of decomposition levels of ``length``; raises DimensionError."""
    levels, valid = get_num_levels(length)
    if not valid:
        raise DimensionError(f"Length must be a power of two, got {length}")
    return levels


def execution_capacity(max_group_size: int) -> int:
    """Levels one dispatch can run: floor(log2(max_group_size)) + 1."""
    if max_group_size < 1:
        raise ValueError(f"max_group_size must be >= 1, got {max_group_size}")
    return int(max_group_size).bit_length()


def forward_haar(signal: np.ndarray) -> np.ndarray:
    """Full forward transform along the last axis."""
    out = np.array(signal, dtype=np.float32)
    w = out.shape[-1]
    require_levels(w)
    while w > 1:
        even = out[..., 0:w:2]
        odd = out[..., 1:w:2]
        approx = (even + odd) * INV_SQRT_2
        detail = (even - odd) * INV_SQRT_2
        w //= 2
        out[..., :w] = approx
        out[..., w:2 * w] = detail
    return out


def inverse_haar(coeffs: np.ndarray) -> np.ndarray:
    """Full inverse transform along the last axis."""
    out = np.array(coeffs, dtype=np.float32)
    n = out.shape[-1]
    require_levels(n)
    w = 1
    while w < n:
        approx = out[..., :w]
        detail = out[..., w:2 * w]
        even = (approx + detail) * SQRT_2 * HALF
        odd = approx * SQRT_2 - even
        out[..., 0:2 * w:2] = even
        out[..., 1:2 * w:2] = odd
        w *= 2
    return out


def dispatch_plan(levels: int, capacity: int) -> List[int]:
    """Level counts of the consecutive dispatches for ``levels`` levels."""
    plan = []
    while levels > 0:
        curr = min(levels, capacity)
        plan.append(curr)
        levels -= curr
    return plan


class HaarTransform:
    """Capacity-constrained Haar transform over rows of a device matrix."""

    def __init__(self, backend: ComputeBackend):
        self.backend = backend
        self.forward_capacity = execution_capacity(backend.max_group_size(Program.FORWARD_STEP))
        self.inverse_capacity = execution_capacity(backend.max_group_size(Program.INVERSE_STEP))

    def forward_plan(self, data_len: int) -> List[int]:
        return dispatch_plan(require_levels(data_len), self.forward_capacity)

    def inverse_plan(self, data_len: int) -> List[int]:
        return dispatch_plan(require_levels(data_len), self.inverse_capacity)

    def forward(self, src: Buffer, dst: Buffer, num_groups: int, data_len: int) -> float:
        """Forward transform of ``num_groups`` rows of ``data_len`` samples.

        Reads ``src`` and leaves the coefficients in ``dst``. Returns the
        accumulated kernel time in milliseconds.
        """
        levels_left = require_levels(data_len)
        if levels_left == 0:
            self.backend.copy_buffer(src, dst, num_groups * data_len)
            return 0.0

        threads_left = data_len >> 1
        total_ms = 0.0
        source = src
        while threads_left > 0:
            curr = min(levels_left, self.forward_capacity)
            local = 1 << (curr - 1)
            total_ms += self.backend.run(
                Program.FORWARD_STEP,
                (source, dst, curr, data_len, num_groups),
                threads_left * num_groups,
                local,
            )
            levels_left -= curr
            threads_left >>= curr
            source = dst
        logger.debug('Forward transform of %d x %d ran in %s', num_groups, data_len, self.forward_plan(data_len))
        return total_ms

    def inverse(self, src: Buffer, dst: Buffer, num_groups: int, data_len: int) -> float:
        """Inverse transform of ``num_groups`` rows; ``src`` is left untouched."""
        levels_left = require_levels(data_len)
        self.backend.copy_buffer(src, dst, num_groups * data_len)

        approx = 1
        total_ms = 0.0
        while approx < data_len:
            curr = min(levels_left, self.inverse_capacity)
            local = 1 << (curr - 1)
            total_ms += self.backend.run(
                Program.INVERSE_STEP,
                (dst, curr, approx, data_len, num_groups),
                approx * local * num_groups,
                local,
            )
            approx <<= curr
            levels_left -= curr
        logger.debug('Inverse transform of %d x %d ran in %s', num_groups, data_len, self.inverse_plan(data_len))
        return total_ms
