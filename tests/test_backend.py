"""Tests for the compute backend contract."""

import numpy as np
import pytest
from backends import FLOAT_SIZE, AccessMode, NumpyBackend, Program, create_backend
from models.errors import ComputeError


def test_allocate_and_release():
    backend = NumpyBackend()
    buf = backend.allocate_buffer(16 * FLOAT_SIZE, AccessMode.READ_ONLY)
    assert buf.length == 16
    assert backend.live_buffers == 1
    backend.release_buffer(buf)
    backend.release_buffer(buf)
    assert backend.live_buffers == 0
    assert backend.total_allocations == 1


@pytest.mark.parametrize("size", [0, -4, 6])
def test_bad_allocation_size(size):
    with pytest.raises(ComputeError) as exc:
        NumpyBackend().allocate_buffer(size)
    assert exc.value.operation == 'allocate'


def test_upload_download_copy():
    backend = NumpyBackend()
    data = np.arange(8, dtype=np.float32)
    with backend.buffer_scope(8, 8) as (a, b):
        backend.upload(a, data)
        backend.copy_buffer(a, b)
        assert np.array_equal(backend.download(b), data)
        assert np.array_equal(backend.download(b, 3), data[:3])
        with pytest.raises(ComputeError):
            backend.upload(a, np.zeros(9, dtype=np.float32))
        with pytest.raises(ComputeError):
            backend.download(a, 9)
    assert backend.live_buffers == 0


def test_released_buffer_rejected():
    backend = NumpyBackend()
    with backend.buffer_scope(4) as (buf,):
        pass
    assert buf.released
    with pytest.raises(ComputeError):
        backend.download(buf)
    with pytest.raises(ComputeError):
        backend.dispatch(Program.HARD_THRESHOLD, (buf, buf, 0.1, 4), 4, 4)


def test_scope_releases_on_error():
    backend = NumpyBackend()
    with pytest.raises(RuntimeError):
        with backend.buffer_scope(4, 4):
            raise RuntimeError("boom")
    assert backend.live_buffers == 0


def test_geometry_local_must_divide_global():
    backend = NumpyBackend()
    with backend.buffer_scope(10, 10) as (a, b):
        with pytest.raises(ComputeError) as exc:
            backend.dispatch(Program.HARD_THRESHOLD, (a, b, 0.1, 10), 10, 4)
    assert exc.value.program == Program.HARD_THRESHOLD.value


def test_geometry_group_limit():
    backend = NumpyBackend(max_group_size=8)
    with backend.buffer_scope(16, 16) as (a, b):
        with pytest.raises(ComputeError):
            backend.dispatch(Program.HARD_THRESHOLD, (a, b, 0.1, 16), 16, 16)
        with pytest.raises(ComputeError):
            backend.dispatch(Program.TRANSPOSE, (a, b, 4, 4), (4, 4), (4, 4))
        with pytest.raises(ComputeError):
            backend.dispatch(Program.HARD_THRESHOLD, (a, b, 0.1, 16), (16, 1), 8)


def test_per_program_group_sizes():
    backend = NumpyBackend(max_group_size=256, group_sizes={Program.INVERSE_STEP: 4})
    assert backend.max_group_size(Program.FORWARD_STEP) == 256
    assert backend.max_group_size(Program.INVERSE_STEP) == 4


def test_unknown_program():
    with pytest.raises(ComputeError):
        NumpyBackend().dispatch('median_kernel', (), 1, 1)


def test_kernel_failure_becomes_compute_error():
    """A kernel rejecting its arguments surfaces as ComputeError."""
    backend = NumpyBackend()
    with backend.buffer_scope(8, 8) as (a, b):
        with pytest.raises(ComputeError) as exc:
            # chunk of 4 cannot run 3 levels
            backend.dispatch(Program.FORWARD_STEP, (a, b, 3, 8, 1), 4, 2)
    assert exc.value.operation == 'dispatch'


def test_event_timing():
    backend = NumpyBackend()
    with backend.buffer_scope(4, 4) as (a, b):
        event = backend.dispatch(Program.SOFT_THRESHOLD, (a, b, 0.1, 4), 4, 4)
        assert event.program == Program.SOFT_THRESHOLD.value
        assert backend.elapsed_time(event) >= 0.0
        assert event.complete


def test_create_backend():
    backend = create_backend("numpy", max_group_size=32)
    assert backend.name == 'numpy'
    assert backend.max_group_size(Program.TRANSPOSE) == 32
    assert create_backend("auto") is not None
    with pytest.raises(ValueError):
        create_backend("opencl")


def test_torch_backend_matches_numpy():
    pytest.importorskip("torch")
    from backends.torch_backend import TorchBackend
    from engines.denoise import DenoiseEngine
    from models.threshold_params import ThresholdParams
    from utils.test_images import add_gaussian_noise, generate_shapes

    image = add_gaussian_noise(generate_shapes(64), seed=0)
    params = ThresholdParams()
    expected = DenoiseEngine(NumpyBackend()).clean_noise(image, params.threshold)
    result = DenoiseEngine(TorchBackend(device='cpu', max_group_size=8)).clean_noise(image, params.threshold)
    assert np.abs(result.astype(int) - expected.astype(int)).max() <= 1


def test_read_only_buffer_cannot_be_written_by_program():
    backend = NumpyBackend()
    src = backend.allocate_buffer(4 * FLOAT_SIZE, AccessMode.READ_ONLY)
    dst = backend.allocate_buffer(4 * FLOAT_SIZE, AccessMode.READ_ONLY)
    backend.upload(src, np.array([0, -1, 2, -3], dtype=np.float32))
    with pytest.raises(ComputeError) as exc:
        backend.dispatch(Program.HARD_THRESHOLD, (src, dst, 1.0, 4), 4, 4)
    assert 'read-only' in str(exc.value)
    backend.release_buffer(src)
    backend.release_buffer(dst)


def test_write_only_buffer_cannot_be_read_by_program():
    backend = NumpyBackend()
    buf = backend.allocate_buffer(8 * FLOAT_SIZE, AccessMode.WRITE_ONLY)
    with pytest.raises(ComputeError):
        backend.dispatch(Program.INVERSE_STEP, (buf, 1, 1, 2, 4), 4, 1)
    backend.release_buffer(buf)


def test_access_modes_respected_on_valid_dispatch():
    backend = NumpyBackend()
    src = backend.allocate_buffer(4 * FLOAT_SIZE, AccessMode.READ_ONLY)
    dst = backend.allocate_buffer(4 * FLOAT_SIZE, AccessMode.WRITE_ONLY)
    backend.upload(src, np.array([0, -1, 2, -3], dtype=np.float32))
    backend.run(Program.SOFT_THRESHOLD, (src, dst, 1.0, 4), 4, 4)
    assert np.array_equal(backend.download(dst), [0, 0, 1, -2])
    backend.release_buffer(src)
    backend.release_buffer(dst)
