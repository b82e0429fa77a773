"""Tests for the dynamic partition allocator.

The allocator hands out contiguous blocks of one address space using
first-, best- or worst-fit, splits oversized blocks, and coalesces
neighbouring free blocks when memory is released.
"""

import random

import pytest

from memsim.memory.errors import (
    AllocationFailedError,
    AlreadyFreeError,
    InvalidConfigurationError,
    InvalidIndexError,
    ValidationError,
)
from memsim.memory.partition import (
    DEFAULT_MEMORY_SIZE,
    FitStrategy,
    Partition,
    PartitionAllocator,
)

TOTAL = 1024
BLOCK = 100
RANDOM_OPS = 300


def _layout(allocator: PartitionAllocator) -> list[tuple[int, int, bool]]:
    """Return partitions as (start, length, free) tuples."""
    return [(p.start, p.length, p.free) for p in allocator.partitions]


def _assert_well_formed(allocator: PartitionAllocator) -> None:
    """Check coverage, ordering and the no-adjacent-free rule."""
    parts = allocator.partitions
    assert sum(p.length for p in parts) == allocator.total_size
    assert parts[0].start == 0
    for left, right in zip(parts, parts[1:], strict=False):
        assert left.end == right.start
        assert not (left.free and right.free)
    assert all(p.length > 0 for p in parts)


def _carve(total: int, blocks: int) -> PartitionAllocator:
    """Fill *total* units with *blocks* equal allocations of BLOCK units."""
    allocator = PartitionAllocator(total)
    for _ in range(blocks):
        allocator.allocate(BLOCK)
    return allocator


# -- Initialisation -----------------------------------------------------------


class TestInit:
    """Verify init() creates a single free partition."""

    def test_default_size(self) -> None:
        """A new allocator should cover the default address space."""
        allocator = PartitionAllocator()
        assert allocator.total_size == DEFAULT_MEMORY_SIZE
        assert _layout(allocator) == [(0, DEFAULT_MEMORY_SIZE, True)]

    def test_init_replaces_partitions(self) -> None:
        """init() should discard existing blocks."""
        allocator = PartitionAllocator(TOTAL)
        allocator.allocate(BLOCK)
        allocator.init(2 * TOTAL)
        assert _layout(allocator) == [(0, 2 * TOTAL, True)]

    @pytest.mark.parametrize("size", [0, -1, "10", True])
    def test_invalid_size_rejected(self, size: object) -> None:
        """Non-positive or non-integer sizes should raise without change."""
        allocator = PartitionAllocator(TOTAL)
        allocator.allocate(BLOCK)
        before = allocator.partitions
        with pytest.raises(InvalidConfigurationError):
            allocator.init(size)  # type: ignore[arg-type]
        assert allocator.partitions == before
        assert allocator.total_size == TOTAL


# -- Allocation ---------------------------------------------------------------


class TestAllocate:
    """Verify the three fit strategies and block splitting."""

    def test_split_into_occupied_and_free(self) -> None:
        """An oversized block should split into occupied head and free tail."""
        allocator = PartitionAllocator(TOTAL)
        index = allocator.allocate(300)
        assert index == 0
        assert _layout(allocator) == [(0, 300, False), (300, TOTAL - 300, True)]

    def test_exact_fit_marks_in_place(self) -> None:
        """A block of exactly the requested size should not be split."""
        allocator = PartitionAllocator(BLOCK)
        index = allocator.allocate(BLOCK)
        assert index == 0
        assert _layout(allocator) == [(0, BLOCK, False)]

    def test_first_fit_takes_lowest_address(self) -> None:
        """First fit should pick the first free block that is big enough."""
        allocator = _carve(1000, 4)
        allocator.free(2)
        # Free: [200, 300) and [400, 1000)
        index = allocator.allocate(50, FitStrategy.FIRST_FIT)
        assert allocator.partitions[index].start == 200

    def test_best_fit_takes_smallest_sufficient(self) -> None:
        """Best fit should pick the tightest free block."""
        allocator = _carve(1000, 4)
        allocator.free(1)
        # Free: [100, 200) and [400, 1000); a 600-unit block comes later.
        index = allocator.allocate(BLOCK, FitStrategy.BEST_FIT)
        assert allocator.partitions[index] == Partition(start=100, length=BLOCK, free=False)

    def test_best_fit_skips_too_small(self) -> None:
        """Best fit should ignore free blocks smaller than the request."""
        allocator = _carve(1000, 4)
        allocator.free(1)
        index = allocator.allocate(200, FitStrategy.BEST_FIT)
        assert allocator.partitions[index].start == 400

    def test_best_fit_tie_goes_to_lowest_start(self) -> None:
        """Equal-sized candidates should resolve to the lowest address."""
        allocator = _carve(400, 4)
        allocator.free(2)
        allocator.free(0)
        index = allocator.allocate(50, FitStrategy.BEST_FIT)
        assert allocator.partitions[index].start == 0

    def test_worst_fit_takes_largest(self) -> None:
        """Worst fit should pick the biggest free block."""
        allocator = _carve(1000, 4)
        allocator.free(0)
        index = allocator.allocate(50, FitStrategy.WORST_FIT)
        assert allocator.partitions[index].start == 400

    def test_worst_fit_tie_goes_to_lowest_start(self) -> None:
        """Equal-sized largest candidates should resolve to the lowest address."""
        allocator = _carve(400, 4)
        allocator.free(2)
        allocator.free(0)
        index = allocator.allocate(50, FitStrategy.WORST_FIT)
        assert allocator.partitions[index].start == 0

    @pytest.mark.parametrize("name", ["worst", "Worst-Fit"])
    def test_strategy_given_by_name(self, name: str) -> None:
        """A strategy name should select that strategy, not first fit."""
        allocator = PartitionAllocator(1000)
        allocator.allocate(BLOCK)
        allocator.allocate(BLOCK)
        allocator.free(0)
        index = allocator.allocate(50, name)
        assert allocator.partitions[index].start == 2 * BLOCK

    def test_best_fit_given_by_name(self) -> None:
        """The plain name "best" should pick the smallest sufficient block."""
        allocator = PartitionAllocator(1000)
        allocator.allocate(BLOCK)
        allocator.allocate(BLOCK)
        allocator.free(0)
        index = allocator.allocate(50, "best")
        assert allocator.partitions[index].start == 0
        assert _layout(allocator)[:2] == [(0, 50, False), (50, 50, True)]

    def test_unknown_strategy_name_rejected(self) -> None:
        """An unknown strategy name should raise and leave memory untouched."""
        allocator = PartitionAllocator(TOTAL)
        with pytest.raises(ValidationError, match="Unknown strategy"):
            allocator.allocate(BLOCK, "nearest")
        assert _layout(allocator) == [(0, TOTAL, True)]

    def test_no_fit_raises_and_keeps_state(self) -> None:
        """A request larger than every free block should fail cleanly."""
        allocator = PartitionAllocator(TOTAL)
        allocator.allocate(TOTAL - BLOCK)
        before = allocator.partitions
        with pytest.raises(AllocationFailedError, match="largest free block: 100"):
            allocator.allocate(BLOCK + 1, FitStrategy.BEST_FIT)
        assert allocator.partitions == before

    def test_full_memory_raises(self) -> None:
        """Allocation should fail once nothing is free."""
        allocator = _carve(400, 4)
        with pytest.raises(AllocationFailedError):
            allocator.allocate(1)

    @pytest.mark.parametrize("size", [0, -5, "10", False])
    def test_invalid_size_rejected(self, size: object) -> None:
        """Non-positive or non-integer sizes should raise a validation error."""
        allocator = PartitionAllocator(TOTAL)
        with pytest.raises(ValidationError):
            allocator.allocate(size)  # type: ignore[arg-type]
        assert _layout(allocator) == [(0, TOTAL, True)]


# -- Freeing and coalescing ---------------------------------------------------


class TestFree:
    """Verify free() and coalescing of neighbouring free blocks."""

    def test_free_without_free_neighbours(self) -> None:
        """A block between occupied neighbours should simply become free."""
        allocator = _carve(400, 4)
        merged = allocator.free(1)
        assert merged == Partition(start=100, length=BLOCK, free=True)
        assert len(allocator) == 4

    def test_merge_with_predecessor(self) -> None:
        """Freeing a block after a free one should merge them."""
        allocator = _carve(300, 3)
        allocator.free(0)
        merged = allocator.free(1)
        assert merged == Partition(start=0, length=200, free=True)
        assert _layout(allocator) == [(0, 200, True), (200, 100, False)]

    def test_merge_with_successor(self) -> None:
        """Freeing a block before a free one should merge them."""
        allocator = _carve(300, 3)
        allocator.free(2)
        merged = allocator.free(1)
        assert merged == Partition(start=100, length=200, free=True)
        assert _layout(allocator) == [(0, 100, False), (100, 200, True)]

    def test_merge_both_sides(self) -> None:
        """Freeing a block between two free ones should make one block."""
        allocator = _carve(300, 3)
        allocator.free(0)
        allocator.free(2)
        merged = allocator.free(1)
        assert merged == Partition(start=0, length=300, free=True)
        assert len(allocator) == 1

    def test_already_free_rejected(self) -> None:
        """Freeing a free block should raise and change nothing."""
        allocator = PartitionAllocator(TOTAL)
        allocator.allocate(BLOCK)
        before = allocator.partitions
        with pytest.raises(AlreadyFreeError):
            allocator.free(1)
        assert allocator.partitions == before

    @pytest.mark.parametrize("index", [-1, 2, 99, "0"])
    def test_invalid_index_rejected(self, index: object) -> None:
        """Out-of-range indices should raise and change nothing."""
        allocator = PartitionAllocator(TOTAL)
        allocator.allocate(BLOCK)
        before = allocator.partitions
        with pytest.raises(InvalidIndexError):
            allocator.free(index)  # type: ignore[arg-type]
        assert allocator.partitions == before

    def test_block_at_finds_start(self) -> None:
        """block_at() should map a start address to its index."""
        allocator = _carve(400, 3)
        assert allocator.block_at(200) == 2

    def test_block_at_unknown_address(self) -> None:
        """block_at() should reject an address no block starts at."""
        allocator = _carve(400, 3)
        with pytest.raises(InvalidIndexError):
            allocator.block_at(150)


# -- Scenario -----------------------------------------------------------------


class TestScenario:
    """Walk through a mixed allocate/free session step by step."""

    def test_first_fit_best_fit_and_coalescing(self) -> None:
        """Allocate two blocks, free both, and end with one free block."""
        allocator = PartitionAllocator(TOTAL)

        allocator.allocate(300, FitStrategy.FIRST_FIT)
        assert _layout(allocator) == [(0, 300, False), (300, 724, True)]

        index = allocator.allocate(200, FitStrategy.BEST_FIT)
        assert index == 1
        assert _layout(allocator) == [(0, 300, False), (300, 200, False), (500, 524, True)]

        allocator.free(allocator.block_at(0))
        assert _layout(allocator) == [(0, 300, True), (300, 200, False), (500, 524, True)]

        merged = allocator.free(allocator.block_at(300))
        # [0, 300) and [300, 500) merge, and so does the free tail.
        assert merged.start == 0
        assert merged.end == TOTAL
        assert _layout(allocator) == [(0, TOTAL, True)]

    def test_random_workload_keeps_invariants(self) -> None:
        """Random allocate/free traffic should never break the layout."""
        allocator = PartitionAllocator(TOTAL)
        rng = random.Random(7)
        strategies = list(FitStrategy)
        for _ in range(RANDOM_OPS):
            if rng.random() < 0.6:
                try:
                    allocator.allocate(rng.randint(1, 200), rng.choice(strategies))
                except AllocationFailedError:
                    pass
            else:
                try:
                    allocator.free(rng.randrange(len(allocator)))
                except AlreadyFreeError:
                    pass
            _assert_well_formed(allocator)


# -- Statistics and parsing ---------------------------------------------------


class TestStats:
    """Verify occupancy and fragmentation figures."""

    def test_empty_memory(self) -> None:
        """A fresh allocator should be all free with no fragmentation."""
        stats = PartitionAllocator(TOTAL).stats
        assert stats.free == TOTAL
        assert stats.used == 0
        assert stats.free_blocks == 1
        assert stats.fragmentation == 0.0

    def test_fragmented_memory(self) -> None:
        """Split free space should report a non-zero fragmentation ratio."""
        allocator = PartitionAllocator(1000)
        allocator.allocate(300)
        allocator.allocate(200)
        allocator.free(0)
        stats = allocator.stats
        assert stats.used == 200
        assert stats.free == 800
        assert stats.free_blocks == 2
        assert stats.largest_free == 500
        assert stats.fragmentation == pytest.approx(0.375)

    def test_full_memory_has_no_fragmentation(self) -> None:
        """With nothing free the ratio should be zero, not a division error."""
        stats = _carve(200, 2).stats
        assert stats.free == 0
        assert stats.fragmentation == 0.0


class TestFitStrategyParse:
    """Verify strategy names accepted from user input."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("first", FitStrategy.FIRST_FIT),
            ("Best-Fit", FitStrategy.BEST_FIT),
            ("worst_fit", FitStrategy.WORST_FIT),
            ("firstfit", FitStrategy.FIRST_FIT),
            (" BEST ", FitStrategy.BEST_FIT),
        ],
    )
    def test_accepted_names(self, text: str, expected: FitStrategy) -> None:
        """Common spellings should all resolve to a strategy."""
        assert FitStrategy.parse(text) is expected

    def test_unknown_name_rejected(self) -> None:
        """An unknown strategy should raise a validation error."""
        with pytest.raises(ValidationError, match="Unknown strategy"):
            FitStrategy.parse("next")
