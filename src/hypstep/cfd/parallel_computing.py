"""
Parallel Reductions for Wavespeed and Time Step Bounds

Implements the two-level reduction that turns many per-edge (or per-node)
values into one global scalar:
- Shared memory: independent chunks evaluated on a thread pool, each chunk
  reduced locally and folded into a shared atomic by a compare-and-swap
  retry loop (one update per chunk, not per edge)
- Distributed memory: one collective max/min across MPI ranks

Max and min are associative, commutative and exact in floating point, so
the result does not depend on thread scheduling or on how the degrees of
freedom are partitioned. A NaN value absorbs every other value.
"""

import numpy as np
from typing import Any, Callable, List, Optional, Tuple, Union
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
import logging
import threading
import time

from ..utils.parallel import ParallelConfig, create_work_chunks

logger = logging.getLogger(__name__)


class ReductionOperation(Enum):
    """Enumeration of supported reduction operations."""
    MAX = "max"
    MIN = "min"

    @property
    def identity(self) -> float:
        return -np.inf if self is ReductionOperation.MAX else np.inf

    def improves(self, candidate: float, current: float) -> bool:
        """True if `candidate` would replace `current`. NaN replaces everything and is never replaced."""
        if np.isnan(current):
            return False
        if np.isnan(candidate):
            return True
        if self is ReductionOperation.MAX:
            return candidate > current
        return candidate < current

    def reduce_array(self, values: np.ndarray) -> float:
        """Reduce an array; the result is NaN if any value is NaN."""
        if values.size == 0:
            return self.identity
        if self is ReductionOperation.MAX:
            return float(np.max(values))
        return float(np.min(values))

    @classmethod
    def from_string(cls, operation: Union[str, "ReductionOperation"]) -> "ReductionOperation":
        if isinstance(operation, cls):
            return operation
        try:
            return cls(str(operation).lower())
        except ValueError:
            raise ValueError(f"Unknown reduction operation: {operation}. "
                             f"Available operations: {[op.value for op in cls]}")


class AtomicScalar:
    """
    Floating point value with an atomic compare-and-exchange.

    compare_exchange is the only serialized section (it plays the role of
    the hardware instruction); fetch_max/fetch_min are lock-free retry
    loops on top of it. A retry happens only when another worker stored a
    value in between, and every successful store strictly improves the
    value, so the loops terminate.
    """

    def __init__(self, value: float = 0.0):
        self._value = float(value)
        self._guard = threading.Lock()
        self.retries = 0

    def load(self) -> float:
        return self._value

    def store(self, value: float) -> None:
        with self._guard:
            self._value = float(value)

    def compare_exchange(self, expected: float, desired: float) -> Tuple[bool, float]:
        """
        Replace the value by `desired` if it still equals `expected`.

        Returns:
            (success, value observed before the call)
        """
        with self._guard:
            current = self._value
            if current == expected:
                self._value = float(desired)
                return True, current
            self.retries += 1
            return False, current

    def fetch_update(self, candidate: float, operation: ReductionOperation) -> float:
        """Fold `candidate` into the value with `operation`; returns the previous value."""
        current = self.load()
        while operation.improves(candidate, current):
            success, observed = self.compare_exchange(current, candidate)
            if success:
                return current
            current = observed
        return current

    def fetch_max(self, candidate: float) -> float:
        return self.fetch_update(candidate, ReductionOperation.MAX)

    def fetch_min(self, candidate: float) -> float:
        return self.fetch_update(candidate, ReductionOperation.MIN)


class DistributedReducer:
    """
    Collective reductions across distributed-memory partitions.

    Wraps an mpi4py communicator. Without a communicator the process is
    the only partition and reductions are the identity.
    """

    def __init__(self, comm: Optional[Any] = None):
        self.comm = comm
        self.rank = comm.Get_rank() if comm is not None else 0
        self.size = comm.Get_size() if comm is not None else 1

    def global_reduction(self, local_value: float,
                         operation: Union[str, ReductionOperation] = "max") -> float:
        """Perform global reduction operation."""
        operation = ReductionOperation.from_string(operation)
        if self.comm is None or self.size == 1:
            return local_value

        from mpi4py import MPI

        # MPI max/min leave the treatment of NaN unspecified
        if self.comm.allreduce(bool(np.isnan(local_value)), op=MPI.LOR):
            return np.nan

        mpi_op = MPI.MAX if operation is ReductionOperation.MAX else MPI.MIN
        return self.comm.allreduce(local_value, op=mpi_op)


class WavespeedReduction:
    """
    Two-level max/min reduction of per-item values.

    A kernel `kernel(start, end)` evaluates the items of one chunk
    (vectorized) and returns their values; the chunks are independent and
    free of side effects. Each worker folds its chunk result into a shared
    AtomicScalar, the thread pool join is the barrier, and the partition
    result finally enters the collective reduction.
    """

    def __init__(self,
                 config: Optional[ParallelConfig] = None,
                 comm: Optional[Any] = None):
        """
        Initialize the reduction.

        Args:
            config: Thread pool configuration
            comm: mpi4py communicator (None for a single partition)
        """
        self.config = config or ParallelConfig()
        self.distributed = DistributedReducer(comm)
        self.thread_pool: Optional[ThreadPoolExecutor] = None
        self.total_retries = 0
        self.total_time = 0.0

        logger.info(f"Initialized wavespeed reduction: workers={self.config.workers}, "
                    f"partitions={self.distributed.size}")

    def local_reduction(self,
                        kernel: Callable[[int, int], np.ndarray],
                        n_items: int,
                        operation: Union[str, ReductionOperation] = "max") -> float:
        """Reduce over the items owned by this partition."""
        operation = ReductionOperation.from_string(operation)
        result = AtomicScalar(operation.identity)

        def reduce_chunk(start: int, end: int) -> None:
            local_value = operation.reduce_array(np.asarray(kernel(start, end)))
            result.fetch_update(local_value, operation)

        chunks = create_work_chunks(n_items, self.config)

        if len(chunks) <= 1:
            for start, end in chunks:
                reduce_chunk(start, end)
        else:
            if self.thread_pool is None:
                self.thread_pool = ThreadPoolExecutor(max_workers=self.config.workers)
            futures = [self.thread_pool.submit(reduce_chunk, start, end) for start, end in chunks]
            for future in futures:
                future.result()

        self.total_retries += result.retries
        return result.load()

    def reduce(self,
               kernel: Callable[[int, int], np.ndarray],
               n_items: int,
               operation: Union[str, ReductionOperation] = "max") -> float:
        """
        Reduce kernel values over all items of all partitions.

        Args:
            kernel: Function evaluating the half-open item range [start, end)
            n_items: Number of items owned by this partition
            operation: 'max' or 'min'

        Returns:
            Global reduced value (the identity, ∓inf, if there are no items;
            NaN if any item is NaN)
        """
        start_time = time.time()
        local_value = self.local_reduction(kernel, n_items, operation)
        global_value = self.distributed.global_reduction(local_value, operation)
        self.total_time += time.time() - start_time
        return global_value

    def reduce_array(self, values: np.ndarray,
                     operation: Union[str, ReductionOperation] = "max") -> float:
        """Reduce a precomputed array of per-item values."""
        values = np.asarray(values).ravel()
        return self.reduce(lambda start, end: values[start:end], values.size, operation)

    def cleanup(self):
        """Shut down the thread pool."""
        if self.thread_pool is not None:
            self.thread_pool.shutdown(wait=True)
            self.thread_pool = None

    def get_statistics(self) -> dict:
        return {
            'workers': self.config.workers,
            'partitions': self.distributed.size,
            'cas_retries': self.total_retries,
            'reduction_time': self.total_time,
        }


def partition_ranges(n_items: int, n_partitions: int) -> List[Tuple[int, int]]:
    """Contiguous block partitioning of [0, n_items) into n_partitions ranges."""
    if n_partitions < 1:
        raise ValueError(f"n_partitions must be positive, got {n_partitions}")
    bounds = np.linspace(0, n_items, n_partitions + 1).astype(int)
    return [(int(bounds[k]), int(bounds[k + 1])) for k in range(n_partitions)]
