"""Memory engines — demand paging and dynamic partitioning.

Re-exports public symbols so callers can write::

    from memsim.memory import PagingEngine, PartitionAllocator
"""

from memsim.memory.errors import (
    AllocationFailedError,
    AlreadyFreeError,
    InvalidAddressError,
    InvalidConfigurationError,
    InvalidIndexError,
    MemoryModelError,
    ValidationError,
)
from memsim.memory.paging import (
    Frame,
    PagingEngine,
    PagingStats,
    TranslationResult,
    VirtualPage,
    WriteBack,
)
from memsim.memory.partition import (
    FitStrategy,
    Partition,
    PartitionAllocator,
    PartitionStats,
)

__all__ = [
    "AllocationFailedError",
    "AlreadyFreeError",
    "FitStrategy",
    "Frame",
    "InvalidAddressError",
    "InvalidConfigurationError",
    "InvalidIndexError",
    "MemoryModelError",
    "PagingEngine",
    "PagingStats",
    "Partition",
    "PartitionAllocator",
    "PartitionStats",
    "TranslationResult",
    "ValidationError",
    "VirtualPage",
    "WriteBack",
]
