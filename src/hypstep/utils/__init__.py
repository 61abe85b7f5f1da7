"""Utility functions for hypstep."""

from hypstep.utils.parallel import (
    get_optimal_chunk_size,
    chunk_ranges,
    create_work_chunks,
    is_parallelizable,
    ParallelConfig
)

__all__ = [
    "get_optimal_chunk_size",
    "chunk_ranges",
    "create_work_chunks",
    "is_parallelizable",
    "ParallelConfig"
]
