"""PyTorch tensor backend (CUDA when available, CPU otherwise)."""

import time
from typing import Optional

import numpy as np

from backends.base import ComputeBackend, Event, Program
from backends.device_detector import TORCH_AVAILABLE, torch
from models.errors import ComputeError

DEFAULT_MAX_GROUP_SIZE = 1024


def _rows(buf, num_rows, data_len):
    return buf[:num_rows * data_len].view(num_rows, data_len)


class TorchBackend(ComputeBackend):
    """Buffers are float32 tensors on ``device``; programs are tensor ops."""

    name = 'torch'

    def __init__(self, device: Optional[str] = None, max_group_size: int = DEFAULT_MAX_GROUP_SIZE):
        if not TORCH_AVAILABLE:
            raise ComputeError("PyTorch is not installed", operation='build')
        if max_group_size < 1:
            raise ValueError(f"max_group_size must be >= 1, got {max_group_size}")
        if device is None:
            device = 'cuda' if torch.cuda.is_available() else 'cpu'
        self.device = torch.device(device)
        self._max_group_size = int(max_group_size)
        self._inv_sqrt_2 = torch.tensor(0.70710678118654752440, dtype=torch.float32, device=self.device)
        self._sqrt_2 = torch.tensor(1.41421356237309504880, dtype=torch.float32, device=self.device)
        self._half = torch.tensor(0.5, dtype=torch.float32, device=self.device)
        super().__init__()

    def describe(self) -> str:
        return f"torch:{self.device} (max group {self._max_group_size})"

    def max_group_size(self, program: Program) -> int:
        return self._max_group_size

    def _build_programs(self):
        return {
            Program.FORWARD_STEP: self._fwt_step,
            Program.INVERSE_STEP: self._iwt_step,
            Program.TRANSPOSE: self._transpose_tiles,
            Program.HARD_THRESHOLD: self._hard_threshold,
            Program.SOFT_THRESHOLD: self._soft_threshold,
        }

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _alloc(self, length):
        return torch.zeros(length, dtype=torch.float32, device=self.device)

    def _write(self, storage, host_data: np.ndarray) -> None:
        storage[:host_data.size] = torch.from_numpy(host_data).to(self.device)

    def _read(self, storage, length: int) -> np.ndarray:
        return storage[:length].to('cpu', copy=True).numpy()

    def _copy(self, src, dst, length: int) -> None:
        dst[:length] = src[:length].clone()

    def _launch(self, kernel, args, global_size, local_size) -> Event:
        if self.device.type == 'cuda':
            start = torch.cuda.Event(enable_timing=True)
            end = torch.cuda.Event(enable_timing=True)
            start.record()
            kernel(args, global_size, local_size)
            end.record()

            def sync():
                end.synchronize()
                return start.elapsed_time(end)

            return Event(program='', sync=sync)

        start = time.perf_counter()
        kernel(args, global_size, local_size)
        return Event(program='', elapsed_ms=(time.perf_counter() - start) * 1000.0, complete=True)

    # ------------------------------------------------------------------
    # Programs
    # ------------------------------------------------------------------

    def _fwt_step(self, args, global_size, local_size):
        src, dst, levels, data_len, num_rows = args
        chunk = 2 * local_size[0]
        n = 2 * (global_size[0] // num_rows)
        if n % chunk or n > data_len or chunk != 1 << levels:
            raise ValueError(f"invalid forward step: n={n} chunk={chunk} levels={levels}")
        num_chunks = n // chunk

        local = _rows(src, num_rows, data_len)[:, :n].reshape(num_rows, num_chunks, chunk).clone()
        out = _rows(dst, num_rows, data_len)
        w = n
        for _ in range(levels):
            even = local[:, :, 0::2]
            odd = local[:, :, 1::2]
            approx = (even + odd) * self._inv_sqrt_2
            detail = (even - odd) * self._inv_sqrt_2
            w //= 2
            out[:, w:2 * w] = detail.reshape(num_rows, w)
            local = approx
        out[:, :num_chunks] = local.reshape(num_rows, num_chunks)

    def _iwt_step(self, args, global_size, local_size):
        buf, levels, approx_len, data_len, num_rows = args
        group = local_size[0]
        if group != 1 << (levels - 1) or global_size[0] != approx_len * group * num_rows:
            raise ValueError(f"invalid inverse step: approx_len={approx_len} levels={levels}")
        if approx_len << levels > data_len:
            raise ValueError(f"inverse step overruns row: {approx_len << levels} > {data_len}")

        rows = _rows(buf, num_rows, data_len)
        local = rows[:, :approx_len].reshape(num_rows, approx_len, 1).clone()
        details = [
            rows[:, (approx_len << j):(approx_len << (j + 1))].reshape(num_rows, approx_len, 1 << j).clone()
            for j in range(levels)
        ]
        for d in details:
            even = (local + d) * self._sqrt_2 * self._half
            odd = local * self._sqrt_2 - even
            merged = torch.empty((num_rows, approx_len, 2 * local.shape[2]),
                                 dtype=torch.float32, device=self.device)
            merged[:, :, 0::2] = even
            merged[:, :, 1::2] = odd
            local = merged
        rows[:, :approx_len << levels] = local.reshape(num_rows, -1)

    def _transpose_tiles(self, args, global_size, local_size):
        src, dst, width, height = args
        tile = local_size[0]
        grid_w, grid_h = global_size
        padded = torch.zeros((grid_h, grid_w), dtype=torch.float32, device=self.device)
        padded[:height, :width] = src[:width * height].view(height, width)
        tiles = padded.reshape(grid_h // tile, tile, grid_w // tile, tile)
        flipped = tiles.permute(2, 3, 0, 1).reshape(grid_w, grid_h)
        dst[:width * height] = flipped[:width, :height].reshape(-1)

    def _hard_threshold(self, args, global_size, local_size):
        src, dst, thresh, length = args
        n = min(global_size[0], length)
        x = src[:n]
        dst[:n] = torch.where(x.abs() > thresh, x, torch.zeros_like(x))

    def _soft_threshold(self, args, global_size, local_size):
        src, dst, thresh, length = args
        n = min(global_size[0], length)
        x = src[:n]
        dst[:n] = torch.sign(x) * torch.clamp(x.abs() - thresh, min=0.0)
