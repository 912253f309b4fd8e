"""Host-memory backend running the NumPy kernels."""

import time
from typing import Dict, Optional

import numpy as np

from backends.base import ComputeBackend, Event, Program
from engines import kernels

DEFAULT_MAX_GROUP_SIZE = 256


class NumpyBackend(ComputeBackend):
    """Executes every program synchronously on the host.

    ``max_group_size`` emulates the device limit on cooperating threads;
    ``group_sizes`` overrides it per program.
    """

    name = 'numpy'

    def __init__(self, max_group_size: int = DEFAULT_MAX_GROUP_SIZE,
                 group_sizes: Optional[Dict[Program, int]] = None):
        if max_group_size < 1:
            raise ValueError(f"max_group_size must be >= 1, got {max_group_size}")
        self._max_group_size = int(max_group_size)
        self._group_sizes = {Program(p): int(s) for p, s in (group_sizes or {}).items()}
        super().__init__()

    def _build_programs(self):
        return {
            Program.FORWARD_STEP: kernels.fwt_step,
            Program.INVERSE_STEP: kernels.iwt_step,
            Program.TRANSPOSE: kernels.transpose_tiles,
            Program.HARD_THRESHOLD: kernels.hard_threshold,
            Program.SOFT_THRESHOLD: kernels.soft_threshold,
        }

    def max_group_size(self, program: Program) -> int:
        return self._group_sizes.get(Program(program), self._max_group_size)

    def _alloc(self, length: int) -> np.ndarray:
        return np.zeros(length, dtype=np.float32)

    def _write(self, storage: np.ndarray, host_data: np.ndarray) -> None:
        storage[:host_data.size] = host_data

    def _read(self, storage: np.ndarray, length: int) -> np.ndarray:
        return storage[:length].copy()

    def _copy(self, src: np.ndarray, dst: np.ndarray, length: int) -> None:
        dst[:length] = src[:length]

    def _launch(self, kernel, args, global_size, local_size) -> Event:
        start = time.perf_counter()
        kernel(args, global_size, local_size)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        return Event(program='', elapsed_ms=elapsed_ms, complete=True)
