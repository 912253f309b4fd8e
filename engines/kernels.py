"""Vectorized NumPy versions of the device programs.

Each kernel is called as ``kernel(args, global_size, local_size)`` with the
launch geometry already validated by the backend. Kernels stage the whole
input range of a dispatch before writing, the same way a work group first
loads its slice into local memory, so in-place dispatches are safe.
"""

import numpy as np

INV_SQRT_2 = np.float32(0.70710678118654752440)
SQRT_2 = np.float32(1.41421356237309504880)
HALF = np.float32(0.5)


def _rows(buf: np.ndarray, num_rows: int, data_len: int) -> np.ndarray:
    return buf[:num_rows * data_len].reshape(num_rows, data_len)


def fwt_step(args, global_size, local_size):
    """Forward Haar levels for every chunk of ``2 * local`` approximation samples.

    Args: ``src, dst, levels, data_len, num_rows``. The global size is the
    number of pair-threads still active per row times ``num_rows``.
    """
    src, dst, levels, data_len, num_rows = args
    group = local_size[0]
    chunk = 2 * group
    n = 2 * (global_size[0] // num_rows)
    if n % chunk or n > data_len or chunk != 1 << levels:
        raise ValueError(f"invalid forward step: n={n} chunk={chunk} levels={levels}")
    num_chunks = n // chunk

    local = _rows(src, num_rows, data_len)[:, :n].reshape(num_rows, num_chunks, chunk).copy()
    out = _rows(dst, num_rows, data_len)

    w = n
    for _ in range(levels):
        even = local[:, :, 0::2]
        odd = local[:, :, 1::2]
        approx = (even + odd) * INV_SQRT_2
        detail = (even - odd) * INV_SQRT_2
        w //= 2
        out[:, w:2 * w] = detail.reshape(num_rows, w)
        local = approx
    out[:, :num_chunks] = local.reshape(num_rows, num_chunks)


def iwt_step(args, global_size, local_size):
    """Inverse Haar levels, in place, one approximation sample per group.

    Args: ``buf, levels, approx_len, data_len, num_rows``.
    """
    buf, levels, approx_len, data_len, num_rows = args
    group = local_size[0]
    if group != 1 << (levels - 1) or global_size[0] != approx_len * group * num_rows:
        raise ValueError(f"invalid inverse step: approx_len={approx_len} levels={levels}")
    if approx_len << levels > data_len:
        raise ValueError(f"inverse step overruns row: {approx_len << levels} > {data_len}")

    rows = _rows(buf, num_rows, data_len)
    local = rows[:, :approx_len].reshape(num_rows, approx_len, 1).copy()
    details = []
    for j in range(levels):
        w = approx_len << j
        details.append(rows[:, w:2 * w].reshape(num_rows, approx_len, 1 << j).copy())

    for d in details:
        even = (local + d) * SQRT_2 * HALF
        odd = local * SQRT_2 - even
        merged = np.empty((num_rows, approx_len, 2 * local.shape[2]), dtype=np.float32)
        merged[:, :, 0::2] = even
        merged[:, :, 1::2] = odd
        local = merged
    rows[:, :approx_len << levels] = local.reshape(num_rows, -1)


def transpose_tiles(args, global_size, local_size):
    """Tiled transpose of a ``width`` x ``height`` row-major matrix.

    Args: ``src, dst, width, height``. The grid covers the matrix rounded up
    to whole tiles; cells outside the matrix are masked.
    """
    src, dst, width, height = args
    tile = local_size[0]
    grid_w, grid_h = global_size
    if grid_w < width or grid_h < height:
        raise ValueError(f"grid {global_size} does not cover a {width}x{height} matrix")

    padded = np.zeros((grid_h, grid_w), dtype=np.float32)
    padded[:height, :width] = src[:width * height].reshape(height, width)
    tiles = padded.reshape(grid_h // tile, tile, grid_w // tile, tile)
    flipped = tiles.transpose(2, 3, 0, 1).reshape(grid_w, grid_h)
    dst[:width * height] = flipped[:width, :height].ravel()


def _active(global_size, length):
    return min(global_size[0], length)


def hard_threshold(args, global_size, local_size):
    src, dst, thresh, length = args
    n = _active(global_size, length)
    x = src[:n]
    dst[:n] = np.where(np.abs(x) > np.float32(thresh), x, np.float32(0))


def soft_threshold(args, global_size, local_size):
    src, dst, thresh, length = args
    n = _active(global_size, length)
    x = src[:n]
    dst[:n] = np.sign(x) * np.maximum(np.abs(x) - np.float32(thresh), np.float32(0))
