"""Compute backend interface: device buffers, programs and dispatches.

A backend owns device-resident buffers and a table of compiled programs.
Work is submitted with :meth:`ComputeBackend.dispatch`, which validates the
launch geometry against the per-program group size limit the same way a GPU
driver would, and returns an :class:`Event` the host waits on before issuing
the next dispatch.

All failures are reported as :class:`models.errors.ComputeError`; the
backend never terminates the process.
"""

import logging
import math
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple, Union

import numpy as np

from models.errors import ComputeError

logger = logging.getLogger('haar_denoise')

FLOAT_SIZE = np.dtype(np.float32).itemsize

Extent = Union[int, Sequence[int]]


class AccessMode(str, Enum):
    """How programs may use a buffer. Host transfers are not restricted."""

    READ_ONLY = 'read_only'
    WRITE_ONLY = 'write_only'
    READ_WRITE = 'read_write'


class Program(str, Enum):
    """The compute programs every backend has to provide."""

    FORWARD_STEP = 'fwt_kernel'
    INVERSE_STEP = 'iwt_kernel'
    TRANSPOSE = 'mat_transpose_kernel'
    HARD_THRESHOLD = 'mat_ht_threshold_kernel'
    SOFT_THRESHOLD = 'mat_st_threshold_kernel'


# Positional buffer arguments each program reads and writes
PROGRAM_ACCESS = {
    Program.FORWARD_STEP: ((0,), (1,)),
    Program.INVERSE_STEP: ((0,), (0,)),
    Program.TRANSPOSE: ((0,), (1,)),
    Program.HARD_THRESHOLD: ((0,), (1,)),
    Program.SOFT_THRESHOLD: ((0,), (1,)),
}


@dataclass
class Buffer:
    """Opaque handle to backend-resident float32 memory."""

    size_bytes: int
    access: AccessMode
    storage: Any = field(default=None, repr=False)
    released: bool = False

    @property
    def length(self) -> int:
        """Capacity in float32 elements."""
        return self.size_bytes // FLOAT_SIZE


@dataclass
class Event:
    """Completion signal of a single dispatch."""

    program: str
    elapsed_ms: Optional[float] = None
    complete: bool = False
    sync: Optional[Callable[[], float]] = field(default=None, repr=False)


def normalize_extent(extent: Extent) -> Tuple[int, ...]:
    if isinstance(extent, (int, np.integer)):
        return (int(extent),)
    return tuple(int(e) for e in extent)


class ComputeBackend(ABC):
    """Base class for compute backends.

    Subclasses provide storage primitives (``_alloc``, ``_write``, ``_read``,
    ``_copy``), the program table (``_build_programs``) and the per-program
    group size limit. The public methods add validation, locking, error
    translation and buffer bookkeeping.
    """

    name = 'base'

    def __init__(self):
        # One command stream per backend: each operation is atomic.
        self._lock = threading.RLock()
        self._live_buffers = 0
        self._total_allocations = 0
        try:
            self._programs: Dict[Program, Callable] = self._build_programs()
        except Exception as e:
            raise ComputeError(f"building programs failed: {e}", operation='build') from e
        missing = [p.value for p in Program if p not in self._programs]
        if missing:
            raise ComputeError(f"backend '{self.name}' is missing programs: {missing}", operation='build')

    # ------------------------------------------------------------------
    # Hooks for concrete backends
    # ------------------------------------------------------------------

    @abstractmethod
    def _build_programs(self) -> Dict[Program, Callable]:
        """Return the program table, keyed by :class:`Program`."""

    @abstractmethod
    def _alloc(self, length: int) -> Any:
        ...

    @abstractmethod
    def _write(self, storage: Any, host_data: np.ndarray) -> None:
        ...

    @abstractmethod
    def _read(self, storage: Any, length: int) -> np.ndarray:
        ...

    @abstractmethod
    def _copy(self, src: Any, dst: Any, length: int) -> None:
        ...

    @abstractmethod
    def _launch(self, kernel: Callable, args: tuple, global_size: Tuple[int, ...],
                local_size: Tuple[int, ...]) -> Event:
        """Run ``kernel`` and return an event carrying its timing."""

    @abstractmethod
    def max_group_size(self, program: Program) -> int:
        """Maximum number of cooperating threads in one group for ``program``."""

    # ------------------------------------------------------------------
    # Buffers
    # ------------------------------------------------------------------

    @property
    def live_buffers(self) -> int:
        return self._live_buffers

    @property
    def total_allocations(self) -> int:
        return self._total_allocations

    def allocate_buffer(self, size_bytes: int, access: AccessMode = AccessMode.READ_WRITE) -> Buffer:
        if size_bytes <= 0 or size_bytes % FLOAT_SIZE:
            raise ComputeError(
                f"buffer size must be a positive multiple of {FLOAT_SIZE} bytes, got {size_bytes}",
                operation='allocate'
            )
        with self._lock:
            try:
                storage = self._alloc(size_bytes // FLOAT_SIZE)
            except (MemoryError, RuntimeError) as e:
                raise ComputeError(f"allocating {size_bytes} bytes failed: {e}", operation='allocate') from e
            self._live_buffers += 1
            self._total_allocations += 1
        return Buffer(size_bytes=size_bytes, access=AccessMode(access), storage=storage)

    def release_buffer(self, buffer: Buffer) -> None:
        with self._lock:
            if buffer.released:
                return
            buffer.storage = None
            buffer.released = True
            self._live_buffers -= 1

    @contextmanager
    def buffer_scope(self, *lengths: int,
                     access: AccessMode = AccessMode.READ_WRITE) -> Iterator[Tuple[Buffer, ...]]:
        """Allocate one buffer per element count and release all of them on exit."""
        buffers = []
        try:
            for length in lengths:
                buffers.append(self.allocate_buffer(length * FLOAT_SIZE, access))
            yield tuple(buffers)
        finally:
            for buffer in buffers:
                self.release_buffer(buffer)

    def _storage(self, buffer: Buffer, operation: str) -> Any:
        if buffer.released:
            raise ComputeError(f"{operation} on a released buffer", operation=operation)
        return buffer.storage

    def upload(self, buffer: Buffer, host_data: np.ndarray) -> None:
        data = np.ascontiguousarray(host_data, dtype=np.float32).ravel()
        with self._lock:
            storage = self._storage(buffer, 'upload')
            if data.size > buffer.length:
                raise ComputeError(
                    f"upload of {data.size} elements into a buffer of {buffer.length}",
                    operation='upload'
                )
            try:
                self._write(storage, data)
            except (MemoryError, RuntimeError) as e:
                raise ComputeError(f"writing buffer data to device failed: {e}", operation='upload') from e

    def download(self, buffer: Buffer, length: Optional[int] = None) -> np.ndarray:
        with self._lock:
            storage = self._storage(buffer, 'download')
            length = buffer.length if length is None else int(length)
            if not 0 <= length <= buffer.length:
                raise ComputeError(
                    f"download of {length} elements from a buffer of {buffer.length}",
                    operation='download'
                )
            try:
                return self._read(storage, length)
            except (MemoryError, RuntimeError) as e:
                raise ComputeError(f"reading data from device failed: {e}", operation='download') from e

    def copy_buffer(self, src: Buffer, dst: Buffer, length: Optional[int] = None) -> None:
        with self._lock:
            src_storage = self._storage(src, 'copy')
            dst_storage = self._storage(dst, 'copy')
            length = min(src.length, dst.length) if length is None else int(length)
            if length > src.length or length > dst.length:
                raise ComputeError(
                    f"copy of {length} elements exceeds buffer capacity", operation='copy'
                )
            try:
                self._copy(src_storage, dst_storage, length)
            except (MemoryError, RuntimeError) as e:
                raise ComputeError(f"copy buffers inside device failed: {e}", operation='copy') from e

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def check_geometry(self, program: Program, global_size: Tuple[int, ...], local_size: Tuple[int, ...]) -> None:
        if len(global_size) != len(local_size) or not 1 <= len(global_size) <= 2:
            raise ComputeError(
                f"global {global_size} and local {local_size} extents must both be 1D or 2D",
                operation='dispatch', program=program.value
            )
        for g, l in zip(global_size, local_size):
            if l <= 0 or g <= 0:
                raise ComputeError(
                    f"extents must be positive, got global {global_size} local {local_size}",
                    operation='dispatch', program=program.value
                )
            if g % l:
                raise ComputeError(
                    f"global extent {g} is not a multiple of local extent {l}",
                    operation='dispatch', program=program.value
                )
        group = math.prod(local_size)
        limit = self.max_group_size(program)
        if group > limit:
            raise ComputeError(
                f"group of {group} threads exceeds the limit of {limit} for {program.value}",
                operation='dispatch', program=program.value
            )

    def check_access(self, program: Program, args: Sequence[Any]) -> None:
        reads, writes = PROGRAM_ACCESS[program]
        for index in reads:
            arg = args[index] if index < len(args) else None
            if isinstance(arg, Buffer) and arg.access is AccessMode.WRITE_ONLY:
                raise ComputeError(
                    f"argument {index} of {program.value} is read from a write-only buffer",
                    operation='dispatch', program=program.value
                )
        for index in writes:
            arg = args[index] if index < len(args) else None
            if isinstance(arg, Buffer) and arg.access is AccessMode.READ_ONLY:
                raise ComputeError(
                    f"argument {index} of {program.value} is written to a read-only buffer",
                    operation='dispatch', program=program.value
                )

    def dispatch(self, program: Program, args: Sequence[Any], global_size: Extent, local_size: Extent) -> Event:
        """Enqueue ``program`` over ``global_size`` threads in groups of ``local_size``.

        ``Buffer`` arguments are bound to their device storage; everything
        else is passed through unchanged.
        """
        try:
            program = Program(program)
        except ValueError as e:
            raise ComputeError(f"unknown program {program!r}", operation='dispatch') from e
        global_size = normalize_extent(global_size)
        local_size = normalize_extent(local_size)
        self.check_geometry(program, global_size, local_size)
        self.check_access(program, args)

        with self._lock:
            bound = tuple(
                self._storage(a, 'dispatch') if isinstance(a, Buffer) else a for a in args
            )
            logger.debug('Dispatching %s global=%s local=%s', program.value, global_size, local_size)
            try:
                event = self._launch(self._programs[program], bound, global_size, local_size)
            except ComputeError:
                raise
            except Exception as e:
                raise ComputeError(
                    f"enqueuing {program.value} failed: {e}", operation='dispatch', program=program.value
                ) from e
        event.program = program.value
        return event

    def wait(self, event: Event) -> None:
        """Block until ``event`` has completed."""
        if event.complete:
            return
        try:
            elapsed = event.sync() if event.sync is not None else event.elapsed_ms
        except Exception as e:
            raise ComputeError(
                f"wait for kernel to finish failed: {e}", operation='wait', program=event.program
            ) from e
        event.elapsed_ms = float(elapsed or 0.0)
        event.complete = True

    def elapsed_time(self, event: Event) -> float:
        """Kernel execution time of a completed dispatch, in milliseconds."""
        self.wait(event)
        return event.elapsed_ms

    def run(self, program: Program, args: Sequence[Any], global_size: Extent, local_size: Extent) -> float:
        """Dispatch, wait for completion and return the kernel time in ms."""
        event = self.dispatch(program, args, global_size, local_size)
        return self.elapsed_time(event)

    def describe(self) -> str:
        return f"{self.name} (max group {self.max_group_size(Program.FORWARD_STEP)})"
