"""
Parallel processing utilities for hypstep.

This module provides the worker-pool configuration and the work
partitioning helpers used by the shared-memory reductions.
"""

import logging
import multiprocessing as mp
from typing import List, Optional, Tuple

# Configure logging
logger = logging.getLogger(__name__)


class ParallelConfig:
    """Configuration for shared-memory parallel processing.
    
    This class provides configuration options for the thread pool that
    evaluates independent per-edge and per-node kernels.
    """
    
    def __init__(
        self,
        enabled: bool = True,
        max_workers: Optional[int] = None,
        chunk_size: Optional[int] = None,
        threshold: int = 4096,
    ):
        """Initialize parallel processing configuration.
        
        Args:
            enabled: Whether parallel processing is enabled
            max_workers: Number of worker threads (defaults to CPU count)
            chunk_size: Number of items per work chunk
            threshold: Minimum number of items to trigger parallelization
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        if chunk_size is not None and chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")

        self.enabled = enabled
        self.max_workers = max_workers
        self.chunk_size = chunk_size
        self.threshold = threshold

    @property
    def workers(self) -> int:
        """Number of worker threads actually used."""
        if self.max_workers is not None:
            return self.max_workers
        return max(1, min(mp.cpu_count(), 16))

    def to_dict(self) -> dict:
        return {
            'enabled': self.enabled,
            'max_workers': self.max_workers,
            'chunk_size': self.chunk_size,
            'threshold': self.threshold,
        }

    def __repr__(self) -> str:
        return (f"ParallelConfig(enabled={self.enabled}, max_workers={self.max_workers}, "
                f"chunk_size={self.chunk_size}, threshold={self.threshold})")


def is_parallelizable(data_size: int, config: Optional[ParallelConfig] = None) -> bool:
    """Determine if a task is parallelizable based on data size and configuration.
    
    Args:
        data_size: Size of the data to process
        config: Parallel processing configuration
        
    Returns:
        True if the task should be parallelized, False otherwise
    """
    if config is None:
        config = ParallelConfig()

    return config.enabled and config.workers > 1 and data_size >= config.threshold


def get_optimal_chunk_size(total_size: int, target_chunks: int = None) -> int:
    """Calculate chunk size for parallel processing.
    
    Args:
        total_size: Total number of items to be processed
        target_chunks: Target number of chunks (defaults to CPU count)
        
    Returns:
        Chunk size to use for parallel processing
    """
    if target_chunks is None:
        target_chunks = min(8, mp.cpu_count())

    return max(1, -(-total_size // max(1, target_chunks)))


def chunk_ranges(total_size: int, chunk_size: int) -> List[Tuple[int, int]]:
    """Split the index range [0, total_size) into half-open chunks.
    
    Args:
        total_size: Number of items
        chunk_size: Size of each chunk
        
    Returns:
        List of (start, end) pairs covering the range in order
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    return [(start, min(start + chunk_size, total_size))
            for start in range(0, total_size, chunk_size)]


def create_work_chunks(total_size: int, config: Optional[ParallelConfig] = None) -> List[Tuple[int, int]]:
    """Create work chunks for the given configuration.
    
    A serial configuration (or a small problem) yields a single chunk.
    """
    if config is None:
        config = ParallelConfig()

    if total_size == 0:
        return []

    if not is_parallelizable(total_size, config):
        return [(0, total_size)]

    chunk_size = config.chunk_size
    if chunk_size is None:
        chunk_size = get_optimal_chunk_size(total_size, config.workers)

    return chunk_ranges(total_size, chunk_size)
