"""Tests for the Haar transform, direct and multi-dispatch."""

import numpy as np
import pytest
from backends.numpy_backend import NumpyBackend
from engines.haar import (
    HaarTransform, dispatch_plan, execution_capacity, forward_haar, get_num_levels, inverse_haar
)
from models.errors import DimensionError


def _run_forward(backend, rows):
    num_groups, data_len = rows.shape
    haar = HaarTransform(backend)
    with backend.buffer_scope(rows.size, rows.size) as (src, dst):
        backend.upload(src, rows)
        haar.forward(src, dst, num_groups, data_len)
        return backend.download(dst, rows.size).reshape(rows.shape)


def _run_inverse(backend, coeffs):
    num_groups, data_len = coeffs.shape
    haar = HaarTransform(backend)
    with backend.buffer_scope(coeffs.size, coeffs.size) as (src, dst):
        backend.upload(src, coeffs)
        haar.inverse(src, dst, num_groups, data_len)
        return backend.download(dst, coeffs.size).reshape(coeffs.shape)


def test_get_num_levels():
    assert get_num_levels(256) == (8, True)
    assert get_num_levels(1) == (0, True)
    assert get_num_levels(200)[1] is False
    assert get_num_levels(0) == (0, False)
    assert get_num_levels(-4)[1] is False


def test_execution_capacity():
    """floor(log2(g)) + 1."""
    assert execution_capacity(1) == 1
    assert execution_capacity(2) == 2
    assert execution_capacity(256) == 9
    assert execution_capacity(1000) == 10
    with pytest.raises(ValueError):
        execution_capacity(0)


def test_dispatch_plan():
    assert dispatch_plan(10, 4) == [4, 4, 2]
    assert dispatch_plan(8, 9) == [8]
    assert dispatch_plan(0, 3) == []


@pytest.mark.parametrize("k", range(1, 11))
def test_direct_round_trip(k):
    """inverse(forward(x)) recovers x for every power-of-two length."""
    rng = np.random.default_rng(k)
    signal = rng.random(2 ** k, dtype=np.float32)
    assert np.allclose(inverse_haar(forward_haar(signal)), signal, atol=1e-5)


def test_direct_known_values():
    coeffs = forward_haar(np.array([1, 1, 1, 1], dtype=np.float32))
    assert np.allclose(coeffs, [2, 0, 0, 0], atol=1e-6)

    coeffs = forward_haar(np.array([4, 2], dtype=np.float32))
    s = np.float32(np.sqrt(2.0))
    assert np.allclose(coeffs, [6 / s, 2 / s], atol=1e-6)


def test_energy_preservation():
    """Orthonormal transform keeps the sum of squares."""
    signal = np.random.default_rng(0).random(512, dtype=np.float32)
    coeffs = forward_haar(signal)
    assert np.isclose(np.sum(signal ** 2), np.sum(coeffs ** 2), rtol=1e-4)


def test_length_one_is_identity():
    assert np.array_equal(forward_haar(np.array([0.25], dtype=np.float32)), [0.25])
    rows = np.array([[0.5], [0.75]], dtype=np.float32)
    assert np.array_equal(_run_forward(NumpyBackend(), rows), rows)
    assert np.array_equal(_run_inverse(NumpyBackend(), rows), rows)


def test_non_power_of_two_rejected():
    with pytest.raises(DimensionError):
        forward_haar(np.zeros(200, dtype=np.float32))
    with pytest.raises(DimensionError):
        HaarTransform(NumpyBackend()).forward_plan(200)


@pytest.mark.parametrize("max_group_size", [1, 2, 4, 256])
def test_multi_dispatch_matches_direct(max_group_size):
    """Splitting levels across dispatches yields the single-pass result."""
    rows = np.random.default_rng(1).random((4, 1024), dtype=np.float32)
    device = _run_forward(NumpyBackend(max_group_size=max_group_size), rows)
    assert np.allclose(device, forward_haar(rows), atol=1e-3)


def test_small_capacity_needs_several_dispatches():
    haar = HaarTransform(NumpyBackend(max_group_size=2))
    assert haar.forward_capacity == 2
    assert haar.forward_plan(1024) == [2, 2, 2, 2, 2]
    assert len(HaarTransform(NumpyBackend(max_group_size=256)).forward_plan(1024)) == 2


@pytest.mark.parametrize("max_group_size", [1, 2, 8, 256])
def test_inverse_multi_dispatch(max_group_size):
    """Every inverse level runs, whatever the capacity."""
    rows = np.random.default_rng(2).random((3, 512), dtype=np.float32)
    coeffs = forward_haar(rows)
    restored = _run_inverse(NumpyBackend(max_group_size=max_group_size), coeffs)
    assert np.allclose(restored, inverse_haar(coeffs), atol=1e-3)
    assert np.allclose(restored, rows, atol=1e-4)


def test_inverse_leaves_source_untouched():
    backend = NumpyBackend(max_group_size=4)
    coeffs = forward_haar(np.random.default_rng(3).random((2, 64), dtype=np.float32))
    with backend.buffer_scope(coeffs.size, coeffs.size) as (src, dst):
        backend.upload(src, coeffs)
        HaarTransform(backend).inverse(src, dst, 2, 64)
        assert np.array_equal(backend.download(src).reshape(coeffs.shape), coeffs)


def test_transform_returns_kernel_time():
    backend = NumpyBackend()
    with backend.buffer_scope(256, 256) as (src, dst):
        backend.upload(src, np.ones(256, dtype=np.float32))
        elapsed = HaarTransform(backend).forward(src, dst, 1, 256)
    assert elapsed >= 0.0
