"""Tests for the tiled matrix transpose."""

import numpy as np
import pytest
from backends.numpy_backend import NumpyBackend
from engines.transpose import round_up, tile_edge, transpose_host, transpose_matrix


def _device_transpose(backend, matrix):
    height, width = matrix.shape
    with backend.buffer_scope(matrix.size, matrix.size) as (src, dst):
        backend.upload(src, matrix)
        transpose_matrix(backend, src, dst, width, height)
        return backend.download(dst, matrix.size).reshape(width, height)


def test_transpose_512_consecutive():
    """Element (r, c) of a 512x512 ramp lands at (c, r)."""
    matrix = np.arange(512 * 512, dtype=np.float32).reshape(512, 512)
    result = _device_transpose(NumpyBackend(), matrix)
    assert np.array_equal(result, matrix.T)


def test_double_transpose_is_identity():
    matrix = np.random.default_rng(0).random((64, 128), dtype=np.float32)
    backend = NumpyBackend()
    once = _device_transpose(backend, matrix)
    assert np.array_equal(_device_transpose(backend, once), matrix)


@pytest.mark.parametrize("shape", [(16, 256), (256, 16), (8, 4), (1, 32), (20, 37)])
def test_non_square(shape):
    """Edges that are not tile multiples are masked by the grid."""
    matrix = np.random.default_rng(1).random(shape, dtype=np.float32)
    assert np.array_equal(_device_transpose(NumpyBackend(), matrix), matrix.T)


def test_small_group_limit_shrinks_tile():
    assert tile_edge(256) == 16
    assert tile_edge(1024) == 16
    assert tile_edge(64) == 8
    assert tile_edge(2) == 1

    matrix = np.arange(32 * 64, dtype=np.float32).reshape(32, 64)
    assert np.array_equal(_device_transpose(NumpyBackend(max_group_size=16), matrix), matrix.T)


def test_round_up():
    assert round_up(512, 16) == 512
    assert round_up(20, 16) == 32
    assert round_up(1, 256) == 256


def test_transpose_host():
    matrix = np.arange(40 * 24).reshape(40, 24)
    assert np.array_equal(transpose_host(matrix), matrix.T)
    assert np.array_equal(transpose_host(matrix, tile=7), matrix.T)
