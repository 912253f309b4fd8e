"""Tiled matrix transpose on the compute backend."""

import numpy as np

from backends.base import Buffer, ComputeBackend, Program

TILE_SIZE = 16


def round_up(value: int, multiple: int) -> int:
    """Smallest multiple of ``multiple`` that is >= ``value``."""
    return ((value - 1) // multiple + 1) * multiple


def tile_edge(max_group_size: int) -> int:
    """Tile edge for a device group limit; TILE_SIZE unless the group cannot hold it."""
    edge = TILE_SIZE
    while edge > 1 and edge * edge > max_group_size:
        edge //= 2
    return edge


def transpose_matrix(backend: ComputeBackend, src: Buffer, dst: Buffer, width: int, height: int) -> float:
    """Transpose a ``width`` x ``height`` row-major matrix from ``src`` into ``dst``.

    ``dst`` receives a ``height`` x ``width`` row-major matrix. Returns the
    kernel time in ms.
    """
    tile = tile_edge(backend.max_group_size(Program.TRANSPOSE))
    global_size = (round_up(width, tile), round_up(height, tile))
    return backend.run(Program.TRANSPOSE, (src, dst, width, height), global_size, (tile, tile))


def transpose_host(matrix: np.ndarray, tile: int = TILE_SIZE) -> np.ndarray:
    """Tile-by-tile host transpose of a 2D array."""
    h, w = matrix.shape
    result = np.empty((w, h), dtype=matrix.dtype)
    for i in range(0, h, tile):
        for j in range(0, w, tile):
            block = matrix[i:i+tile, j:j+tile]
            result[j:j+block.shape[1], i:i+block.shape[0]] = block.T
    return result
