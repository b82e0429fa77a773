"""Dynamic partitioning — contiguous allocation with fit strategies.

Before paging, operating systems handed each request one **contiguous**
region of a single address space.  The allocator keeps the address
space as an ordered list of partitions, each either free or occupied,
that together cover ``[0, total_size)`` with no gaps and no overlaps.

Allocation picks a free partition large enough for the request:

    - **First fit** — the first one found, scanning by address.
    - **Best fit** — the smallest one that fits (least leftover).
    - **Worst fit** — the largest one (biggest leftover, which is more
      likely to be useful later).

If the chosen partition is larger than needed it is **split** into an
occupied head and a free tail.  Freeing a partition **coalesces** it
with free neighbours, so the list never holds two adjacent free
partitions.  Without coalescing, memory would end up as many small
free slivers: **external fragmentation**.

Design choices:
    - **Strategy as an enum, not a class hierarchy.**  The three
      strategies differ only in how they rank candidates, so each maps
      to a selection key.
    - **Ties go to the lowest address** for best and worst fit, making
      the choice deterministic.
"""

from dataclasses import dataclass
from enum import StrEnum

from memsim.memory.errors import (
    AllocationFailedError,
    AlreadyFreeError,
    InvalidConfigurationError,
    InvalidIndexError,
    ValidationError,
)

DEFAULT_MEMORY_SIZE = 1024


class FitStrategy(StrEnum):
    """Placement policy for ``PartitionAllocator.allocate``."""

    FIRST_FIT = "first"
    BEST_FIT = "best"
    WORST_FIT = "worst"

    @classmethod
    def parse(cls, text: str) -> "FitStrategy":
        """Return the strategy named by *text*.

        Accepts ``first``, ``first-fit``, ``first_fit`` and ``firstfit``
        (and likewise for best and worst), case-insensitively.

        Raises:
            ValidationError: If *text* names no strategy.

        """
        key = text.strip().lower().replace("-", "").replace("_", "")
        key = key.removesuffix("fit")
        try:
            return cls(key)
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            msg = f"Unknown strategy '{text}' (choose from {choices})"
            raise ValidationError(msg) from None


@dataclass(frozen=True)
class Partition:
    """One contiguous region of the address space.

    Attributes:
        start: First address of the region.
        length: Number of units in the region.
        free: True if the region is available for allocation.

    """

    start: int
    length: int
    free: bool

    @property
    def end(self) -> int:
        """Return the first address past the region."""
        return self.start + self.length


@dataclass(frozen=True)
class PartitionStats:
    """Occupancy and fragmentation figures for the address space."""

    total: int
    used: int
    free: int
    free_blocks: int
    largest_free: int

    @property
    def fragmentation(self) -> float:
        """Return the external fragmentation ratio.

        ``1 - largest_free / free``: 0.0 when all free memory is one
        block (or nothing is free), approaching 1.0 as free memory is
        scattered across many small blocks.
        """
        if self.free == 0:
            return 0.0
        return 1 - self.largest_free / self.free


class PartitionAllocator:
    """Own the partition list and apply allocate/free to it."""

    def __init__(self, total_size: int = DEFAULT_MEMORY_SIZE) -> None:
        """Create an allocator with one free partition of *total_size*.

        Raises:
            InvalidConfigurationError: If *total_size* is not positive.

        """
        self._total_size = 0
        self._partitions: list[Partition] = []
        self.init(total_size)

    def init(self, total_size: int) -> None:
        """Replace every partition with a single free ``[0, total_size)``.

        Raises:
            InvalidConfigurationError: If *total_size* is not a positive
                int.  Existing partitions are kept.

        """
        if isinstance(total_size, bool) or not isinstance(total_size, int) or total_size <= 0:
            msg = f"Memory size must be a positive integer, got {total_size!r}"
            raise InvalidConfigurationError(msg)
        self._total_size = total_size
        self._partitions = [Partition(start=0, length=total_size, free=True)]

    @property
    def total_size(self) -> int:
        """Return the size of the managed address space."""
        return self._total_size

    @property
    def partitions(self) -> tuple[Partition, ...]:
        """Return the partitions in address order."""
        return tuple(self._partitions)

    @property
    def stats(self) -> PartitionStats:
        """Return current occupancy and fragmentation figures."""
        free_lengths = [p.length for p in self._partitions if p.free]
        free_total = sum(free_lengths)
        return PartitionStats(
            total=self._total_size,
            used=self._total_size - free_total,
            free=free_total,
            free_blocks=len(free_lengths),
            largest_free=max(free_lengths, default=0),
        )

    def __len__(self) -> int:
        """Return the number of partitions."""
        return len(self._partitions)

    def block_at(self, start: int) -> int:
        """Return the index of the partition beginning at *start*.

        Raises:
            InvalidIndexError: If no partition starts at that address.

        """
        for index, partition in enumerate(self._partitions):
            if partition.start == start:
                return index
        msg = f"No partition starts at address {start}"
        raise InvalidIndexError(msg)

    def allocate(self, size: int, strategy: FitStrategy | str = FitStrategy.FIRST_FIT) -> int:
        """Reserve *size* units using *strategy*.

        Args:
            size: Number of units requested (> 0).
            strategy: Which free partition to choose, as a ``FitStrategy``
                or any name ``FitStrategy.parse`` accepts.

        Returns:
            Index of the newly occupied partition.

        Raises:
            ValidationError: If *size* is not a positive int or *strategy*
                names no strategy.
            AllocationFailedError: If no free partition is large enough.

        """
        if not isinstance(strategy, FitStrategy):
            strategy = FitStrategy.parse(str(strategy))
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            msg = f"Allocation size must be a positive integer, got {size!r}"
            raise ValidationError(msg)

        index = self._choose(size, strategy)
        if index is None:
            largest = self.stats.largest_free
            msg = f"No free partition can hold {size} units (largest free block: {largest})"
            raise AllocationFailedError(msg)

        chosen = self._partitions[index]
        if chosen.length == size:
            self._partitions[index] = Partition(start=chosen.start, length=size, free=False)
        else:
            self._partitions[index : index + 1] = [
                Partition(start=chosen.start, length=size, free=False),
                Partition(start=chosen.start + size, length=chosen.length - size, free=True),
            ]
        return index

    def free(self, index: int) -> Partition:
        """Release the partition at *index* and coalesce free neighbours.

        Args:
            index: Position of the partition in address order.

        Returns:
            The free partition that now covers the released region.

        Raises:
            InvalidIndexError: If *index* is out of range.
            AlreadyFreeError: If the partition is already free.

        """
        valid = isinstance(index, int) and not isinstance(index, bool)
        if not valid or not 0 <= index < len(self._partitions):
            msg = f"Block index must be between 0 and {len(self._partitions) - 1}, got {index!r}"
            raise InvalidIndexError(msg)
        target = self._partitions[index]
        if target.free:
            msg = f"Block {index} at address {target.start} is already free"
            raise AlreadyFreeError(msg)

        self._partitions[index] = Partition(start=target.start, length=target.length, free=True)
        return self._coalesce(index)

    # -- Internals -----------------------------------------------------------

    def _choose(self, size: int, strategy: FitStrategy) -> int | None:
        """Return the index of the partition *strategy* picks, or None."""
        candidates = [
            (index, p) for index, p in enumerate(self._partitions) if p.free and p.length >= size
        ]
        if not candidates:
            return None
        if strategy is FitStrategy.BEST_FIT:
            return min(candidates, key=lambda c: (c[1].length, c[1].start))[0]
        if strategy is FitStrategy.WORST_FIT:
            return min(candidates, key=lambda c: (-c[1].length, c[1].start))[0]
        return candidates[0][0]

    def _coalesce(self, index: int) -> Partition:
        """Merge the free partition at *index* with free neighbours."""
        merged = True
        while merged:
            merged = False
            current = self._partitions[index]
            if index + 1 < len(self._partitions):
                successor = self._partitions[index + 1]
                if successor.free and current.end == successor.start:
                    self._partitions[index : index + 2] = [
                        Partition(
                            start=current.start,
                            length=current.length + successor.length,
                            free=True,
                        ),
                    ]
                    merged = True
                    continue
            if index > 0:
                predecessor = self._partitions[index - 1]
                if predecessor.free and predecessor.end == current.start:
                    self._partitions[index - 1 : index + 1] = [
                        Partition(
                            start=predecessor.start,
                            length=predecessor.length + current.length,
                            free=True,
                        ),
                    ]
                    index -= 1
                    merged = True
        return self._partitions[index]
