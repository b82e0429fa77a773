"""Demand paging with FIFO replacement.

The engine models a 64-page virtual address space backed by a small
pool of physical frames.  Pages are loaded only when first touched
(**demand paging**); when every frame is occupied, the page that has
been resident the longest is evicted (**FIFO replacement**).

Address translation::

    (page, offset)           →  page table[page]
    page table[page].frame   →  frame index
    physical address         →  frame index * PAGE_SIZE + offset

Each page also has a **dirty bit**.  A write sets it on both the page
table entry and the frame holding the page; when a dirty page is
evicted the engine reports a **write-back** to the page's backing-store
locator before the frame is reused.

Design choices:
    - **Logical load counter, not a clock.**  Every load stamps its frame
      with ``++counter``.  FIFO order is the order of those stamps, so
      two loads can never tie, whatever the timer resolution.
    - **Private mutable records, public frozen snapshots.**  Callers
      read ``VirtualPage`` and ``Frame`` dataclasses that cannot be
      written back; all mutation happens inside ``translate`` and
      ``configure`` so the present/occupied invariant lives in one place.
    - **Validate, then mutate.**  Out-of-range input raises before any
      field is touched.
"""

import random
from dataclasses import dataclass

from memsim.memory.errors import InvalidAddressError, InvalidConfigurationError

PAGE_COUNT = 64
PAGE_SIZE = 1024
MIN_FRAMES = 4
MAX_FRAMES = 64
DEFAULT_FRAMES = 4

# Backing-store locators start just above this base and grow by a
# random step in [1, _LOCATOR_MAX_STEP] per page.
_LOCATOR_BASE = 100
_LOCATOR_MAX_STEP = 20


@dataclass(frozen=True)
class VirtualPage:
    """Read-only view of one page table entry.

    Attributes:
        page: Page number in ``[0, PAGE_COUNT)``.
        present: Whether the page currently sits in a frame.
        frame: Index of that frame, or None when not present.
        dirty: Whether the in-memory copy differs from backing store.
        locator: Backing-store location of the page.

    """

    page: int
    present: bool
    frame: int | None
    dirty: bool
    locator: int


@dataclass(frozen=True)
class Frame:
    """Read-only view of one physical frame.

    Attributes:
        index: Frame number in ``[0, frame_count)``.
        occupant: The page loaded here, or None when the frame is empty.
        load_sequence: Logical time of the most recent load (0 = never).
        dirty: Mirrors the occupant's dirty bit.

    """

    index: int
    occupant: int | None
    load_sequence: int
    dirty: bool

    @property
    def occupied(self) -> bool:
        """Return True if a page is loaded in this frame."""
        return self.occupant is not None


@dataclass(frozen=True)
class WriteBack:
    """A dirty page flushed to its backing-store location on eviction."""

    page: int
    locator: int


@dataclass(frozen=True)
class TranslationResult:
    """Outcome of one successful address translation.

    Attributes:
        page: The virtual page that was accessed.
        offset: Offset within the page.
        write: Whether the access was a write.
        frame: The frame now holding the page.
        physical_address: ``frame * PAGE_SIZE + offset``.
        faulted: True if the page had to be loaded.
        evicted_page: Page removed to make room, if any.
        write_back: Write-back performed for a dirty victim, if any.

    """

    page: int
    offset: int
    write: bool
    frame: int
    physical_address: int
    faulted: bool
    evicted_page: int | None = None
    write_back: WriteBack | None = None


@dataclass(frozen=True)
class PagingStats:
    """Counters accumulated since the last ``configure``."""

    accesses: int
    hits: int
    faults: int
    evictions: int
    write_backs: int

    @property
    def fault_rate(self) -> float:
        """Return faults per access (0.0 before the first access)."""
        if self.accesses == 0:
            return 0.0
        return self.faults / self.accesses


@dataclass
class _PageEntry:
    present: bool
    frame: int | None
    dirty: bool
    locator: int


@dataclass
class _FrameSlot:
    occupant: int | None = None
    load_sequence: int = 0
    dirty: bool = False


def _assign_locators(rng: random.Random) -> list[int]:
    """Give every page a distinct, increasing backing-store location."""
    locators: list[int] = []
    current = _LOCATOR_BASE
    for _ in range(PAGE_COUNT):
        current += rng.randint(1, _LOCATOR_MAX_STEP)
        locators.append(current)
    return locators


class PagingEngine:
    """Page table, frame pool and FIFO fault handler.

    The engine is the single owner of paging state.  ``configure``
    rebuilds it from scratch; ``translate`` is the only operation that
    changes it afterwards.
    """

    def __init__(
        self,
        *,
        frame_count: int = DEFAULT_FRAMES,
        rng: random.Random | None = None,
    ) -> None:
        """Create an engine and configure it with *frame_count* frames.

        Args:
            frame_count: Number of physical frames, in ``[4, 64]``.
            rng: Random source for backing-store locators.  Pass a
                seeded ``random.Random`` for reproducible locators.

        Raises:
            InvalidConfigurationError: If *frame_count* is out of range.

        """
        self._rng = rng if rng is not None else random.Random()  # noqa: S311
        self._pages: list[_PageEntry] = []
        self._frames: list[_FrameSlot] = []
        self._load_counter = 0
        self._hits = 0
        self._faults = 0
        self._evictions = 0
        self._write_backs = 0
        self.configure(frame_count)

    # -- Configuration -------------------------------------------------------

    def configure(self, frame_count: int) -> None:
        """Reset the page table and frame pool.

        All pages become not-present with fresh locators, the pool is
        rebuilt with *frame_count* empty frames, and the load counter
        and statistics restart from zero.

        Raises:
            InvalidConfigurationError: If *frame_count* is not an int in
                ``[MIN_FRAMES, MAX_FRAMES]``.  Existing state is kept.

        """
        if (
            isinstance(frame_count, bool)
            or not isinstance(frame_count, int)
            or not MIN_FRAMES <= frame_count <= MAX_FRAMES
        ):
            msg = f"Frame count must be between {MIN_FRAMES} and {MAX_FRAMES}, got {frame_count!r}"
            raise InvalidConfigurationError(msg)

        self._pages = [
            _PageEntry(present=False, frame=None, dirty=False, locator=locator)
            for locator in _assign_locators(self._rng)
        ]
        self._frames = [_FrameSlot() for _ in range(frame_count)]
        self._load_counter = 0
        self._hits = 0
        self._faults = 0
        self._evictions = 0
        self._write_backs = 0

    # -- Queries -------------------------------------------------------------

    @property
    def frame_count(self) -> int:
        """Return the number of physical frames."""
        return len(self._frames)

    @property
    def page_table(self) -> tuple[VirtualPage, ...]:
        """Return a snapshot of all page table entries, by page number."""
        return tuple(self.page(number) for number in range(PAGE_COUNT))

    @property
    def frames(self) -> tuple[Frame, ...]:
        """Return a snapshot of the frame pool, by frame index."""
        return tuple(
            Frame(
                index=index,
                occupant=slot.occupant,
                load_sequence=slot.load_sequence,
                dirty=slot.dirty,
            )
            for index, slot in enumerate(self._frames)
        )

    @property
    def resident_pages(self) -> frozenset[int]:
        """Return the set of pages currently loaded in a frame."""
        return frozenset(n for n, entry in enumerate(self._pages) if entry.present)

    @property
    def stats(self) -> PagingStats:
        """Return access counters since the last configuration."""
        return PagingStats(
            accesses=self._hits + self._faults,
            hits=self._hits,
            faults=self._faults,
            evictions=self._evictions,
            write_backs=self._write_backs,
        )

    def page(self, number: int) -> VirtualPage:
        """Return a snapshot of one page table entry.

        Raises:
            InvalidAddressError: If *number* is not a valid page.

        """
        self._check_page(number)
        entry = self._pages[number]
        return VirtualPage(
            page=number,
            present=entry.present,
            frame=entry.frame,
            dirty=entry.dirty,
            locator=entry.locator,
        )

    # -- Translation ---------------------------------------------------------

    def translate(self, page: int, offset: int, *, write: bool = False) -> TranslationResult:
        """Resolve ``(page, offset)`` to a physical address.

        A missing page is loaded into the lowest-numbered empty frame,
        or into the frame of the oldest resident page when none is
        empty.  A dirty victim is written back first.  A write access
        marks the page and its frame dirty.

        Args:
            page: Virtual page number in ``[0, PAGE_COUNT)``.
            offset: Offset within the page in ``[0, PAGE_SIZE)``.
            write: True for a store, False for a load.

        Returns:
            The translation, with fault/eviction/write-back details.

        Raises:
            InvalidAddressError: If *page* or *offset* is out of range.

        """
        self._check_page(page)
        if isinstance(offset, bool) or not isinstance(offset, int) or not 0 <= offset < PAGE_SIZE:
            msg = f"Offset must be between 0 and {PAGE_SIZE - 1}, got {offset!r}"
            raise InvalidAddressError(msg)

        entry = self._pages[page]
        faulted = not entry.present
        evicted: int | None = None
        write_back: WriteBack | None = None

        if faulted:
            self._faults += 1
            index = self._find_free_frame()
            if index is None:
                index = self._select_victim()
                evicted, write_back = self._evict(index)
            self._load(page, index)
        else:
            self._hits += 1

        frame = entry.frame
        assert frame is not None  # noqa: S101

        if write:
            entry.dirty = True
            self._frames[frame].dirty = True

        return TranslationResult(
            page=page,
            offset=offset,
            write=write,
            frame=frame,
            physical_address=frame * PAGE_SIZE + offset,
            faulted=faulted,
            evicted_page=evicted,
            write_back=write_back,
        )

    # -- Internals -----------------------------------------------------------

    @staticmethod
    def _check_page(page: int) -> None:
        if isinstance(page, bool) or not isinstance(page, int) or not 0 <= page < PAGE_COUNT:
            msg = f"Page must be between 0 and {PAGE_COUNT - 1}, got {page!r}"
            raise InvalidAddressError(msg)

    def _find_free_frame(self) -> int | None:
        """Return the lowest-indexed empty frame, or None when all are full."""
        for index, slot in enumerate(self._frames):
            if slot.occupant is None:
                return index
        return None

    def _select_victim(self) -> int:
        """Return the occupied frame loaded earliest (lowest index on a tie)."""
        return min(
            (index for index, slot in enumerate(self._frames) if slot.occupant is not None),
            key=lambda index: (self._frames[index].load_sequence, index),
        )

    def _evict(self, index: int) -> tuple[int, WriteBack | None]:
        """Remove the occupant of frame *index*, flushing it if dirty."""
        slot = self._frames[index]
        victim = slot.occupant
        assert victim is not None  # noqa: S101
        victim_entry = self._pages[victim]

        write_back: WriteBack | None = None
        if slot.dirty:
            write_back = WriteBack(page=victim, locator=victim_entry.locator)
            self._write_backs += 1

        # Dirty bits are cleared here, before the new page arrives.
        victim_entry.present = False
        victim_entry.frame = None
        victim_entry.dirty = False
        slot.occupant = None
        slot.dirty = False
        self._evictions += 1
        return victim, write_back

    def _load(self, page: int, index: int) -> None:
        """Place *page* into the empty frame *index*."""
        self._load_counter += 1
        slot = self._frames[index]
        slot.occupant = page
        slot.load_sequence = self._load_counter
        slot.dirty = False

        entry = self._pages[page]
        entry.present = True
        entry.frame = index
        entry.dirty = False
