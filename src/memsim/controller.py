"""Controller — the single gateway from user input to the engines.

Display layers (shell, REPL, web UI) never touch an engine directly.
They hand raw user input to the controller, which:

1. **Validates** it — parses integers, operation names and strategy
   names, rejecting anything malformed before an engine sees it.
2. **Invokes** exactly one engine operation.
3. **Records** a history entry and log entries describing the outcome.
4. **Returns** a ``CommandResult`` — success or a typed failure — so
   callers never need to catch engine exceptions themselves.

Engine exceptions (``MemoryModelError`` and subclasses) are the only
ones converted to failed results.  Anything else is a bug and
propagates.
"""

import random
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from memsim.config import SimulatorConfig
from memsim.history import History, HistoryEntry
from memsim.logging import Logger, LogLevel
from memsim.memory.errors import MemoryModelError, ValidationError
from memsim.memory.paging import (
    Frame,
    PagingEngine,
    PagingStats,
    TranslationResult,
    VirtualPage,
)
from memsim.memory.partition import (
    FitStrategy,
    Partition,
    PartitionAllocator,
    PartitionStats,
)

_PAGING = "paging"
_PARTITION = "partition"


class AccessKind(StrEnum):
    """Instruction types for a paging access.

    Only ``save`` stores to memory; the load and arithmetic
    instructions all read their operand.
    """

    SAVE = "save"
    LOAD = "load"
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"

    @property
    def writes(self) -> bool:
        """Return True if this instruction modifies the page."""
        return self is AccessKind.SAVE

    @classmethod
    def parse(cls, text: str) -> "AccessKind":
        """Return the instruction named by *text*.

        ``write`` and ``read`` are accepted as aliases of ``save`` and
        ``load``.

        Raises:
            ValidationError: If *text* names no instruction.

        """
        key = text.strip().lower()
        key = {"write": "save", "read": "load"}.get(key, key)
        try:
            return cls(key)
        except ValueError:
            choices = ", ".join(k.value for k in cls)
            msg = f"Unknown operation '{text}' (choose from {choices}, read, write)"
            raise ValidationError(msg) from None


@dataclass(frozen=True)
class CommandResult:
    """The structured outcome of one controller command.

    Attributes:
        ok: True if the command succeeded.
        message: Human-readable outcome (or failure description).
        reason: Failure kind, e.g. ``"InvalidAddress"``; None on success.
        value: Success payload (translation, block index, partition).
        entry: The history entry recorded for this command, if any.

    """

    ok: bool
    message: str
    reason: str | None = None
    value: object = None
    entry: HistoryEntry | None = None


def _reason(exc: MemoryModelError) -> str:
    """Name the failure kind: ``InvalidAddressError`` → ``InvalidAddress``."""
    return type(exc).__name__.removesuffix("Error")


def _parse_int(name: str, raw: object) -> int:
    """Turn a raw user value into an int, or raise ``ValidationError``."""
    if isinstance(raw, bool):
        msg = f"{name} must be an integer, got {raw!r}"
        raise ValidationError(msg)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            pass
    msg = f"{name} must be an integer, got {raw!r}"
    raise ValidationError(msg)


def describe_translation(result: TranslationResult) -> str:
    """Summarise a translation the way the history table shows it."""
    if not result.faulted:
        return "hit"
    if result.evicted_page is None:
        return "page fault"
    return f"page fault, evicted page {result.evicted_page}"


class Controller:
    """Own both engines and mediate every command sent to them."""

    def __init__(
        self,
        config: SimulatorConfig | None = None,
        *,
        logger: Logger | None = None,
    ) -> None:
        """Build both engines from *config* (defaults if omitted).

        Args:
            config: Start-up settings.
            logger: Event log to write to; a fresh one if omitted.

        """
        self._config = config if config is not None else SimulatorConfig()
        self._logger = logger if logger is not None else Logger()
        self._paging = PagingEngine(
            frame_count=self._config.frames,
            rng=random.Random(self._config.seed),  # noqa: S311
        )
        self._allocator = PartitionAllocator(self._config.memory_size)
        self._paging_history = History()
        self._partition_history = History()
        self._logger.log(
            LogLevel.INFO,
            f"Paging ready: {self._paging.frame_count} frames",
            source=_PAGING,
        )
        self._logger.log(
            LogLevel.INFO,
            f"Partitioning ready: {self._allocator.total_size} units free",
            source=_PARTITION,
        )

    # -- Read-only views -----------------------------------------------------

    @property
    def config(self) -> SimulatorConfig:
        """Return the start-up configuration."""
        return self._config

    @property
    def logger(self) -> Logger:
        """Return the event log."""
        return self._logger

    @property
    def frame_count(self) -> int:
        """Return the current number of physical frames."""
        return self._paging.frame_count

    @property
    def page_table(self) -> tuple[VirtualPage, ...]:
        """Return a snapshot of the page table."""
        return self._paging.page_table

    @property
    def frames(self) -> tuple[Frame, ...]:
        """Return a snapshot of the frame pool."""
        return self._paging.frames

    @property
    def paging_stats(self) -> PagingStats:
        """Return paging counters since the last configuration."""
        return self._paging.stats

    @property
    def memory_size(self) -> int:
        """Return the size of the partitioned address space."""
        return self._allocator.total_size

    @property
    def partitions(self) -> tuple[Partition, ...]:
        """Return the partitions in address order."""
        return self._allocator.partitions

    @property
    def partition_stats(self) -> PartitionStats:
        """Return occupancy and fragmentation figures."""
        return self._allocator.stats

    @property
    def paging_history(self) -> list[HistoryEntry]:
        """Return paging history, oldest first."""
        return self._paging_history.entries

    @property
    def partition_history(self) -> list[HistoryEntry]:
        """Return partitioning history, oldest first."""
        return self._partition_history.entries

    # -- Paging commands -----------------------------------------------------

    def configure(self, frames: object) -> CommandResult:
        """Rebuild paging state with *frames* physical frames.

        On success the paging history is cleared, since its entries
        describe a page table that no longer exists.
        """
        try:
            count = _parse_int("Frame count", frames)
            self._paging.configure(count)
        except MemoryModelError as exc:
            self._logger.log(LogLevel.WARNING, f"Configuration rejected: {exc}", source=_PAGING)
            return CommandResult(ok=False, message=str(exc), reason=_reason(exc))

        self._paging_history.clear()
        message = f"System reset: {count} frames"
        self._logger.log(LogLevel.INFO, message, source=_PAGING)
        return CommandResult(ok=True, message=message, value=count)

    def access(self, operation: str, page: object, offset: object) -> CommandResult:
        """Execute one memory instruction against the paging engine.

        Args:
            operation: Instruction name (``save``, ``load``, ``+`` ...).
            page: Virtual page number (int or digit string).
            offset: Offset within the page (int or digit string).

        Returns:
            A result whose ``value`` is the ``TranslationResult``.

        """
        inputs: dict[str, object] = {"page": page, "offset": offset}
        try:
            kind = AccessKind.parse(operation)
            page_no = _parse_int("Page", page)
            offset_no = _parse_int("Offset", offset)
            inputs = {"page": page_no, "offset": offset_no}
            result = self._paging.translate(page_no, offset_no, write=kind.writes)
        except MemoryModelError as exc:
            return self._reject(self._paging_history, operation, inputs, exc, source=_PAGING)

        if result.faulted:
            self._log_fault(result)
        outcome = describe_translation(result)
        inputs["address"] = result.physical_address
        entry = self._paging_history.record(kind.value, inputs, outcome)
        message = (
            f"{kind.value} page {page_no} offset {offset_no}"
            f" -> physical address {result.physical_address} ({outcome})"
        )
        return CommandResult(ok=True, message=message, value=result, entry=entry)

    def read(self, page: object, offset: object) -> CommandResult:
        """Shortcut for ``access("load", page, offset)``."""
        return self.access(AccessKind.LOAD, page, offset)

    def write(self, page: object, offset: object) -> CommandResult:
        """Shortcut for ``access("save", page, offset)``."""
        return self.access(AccessKind.SAVE, page, offset)

    def _log_fault(self, result: TranslationResult) -> None:
        self._logger.log(LogLevel.INFO, f"Page fault on page {result.page}", source=_PAGING)
        if result.write_back is not None:
            back = result.write_back
            self._logger.log(
                LogLevel.INFO,
                f"Write back page {back.page} to disk location {back.locator:03d}",
                source=_PAGING,
            )
        if result.evicted_page is not None:
            self._logger.log(
                LogLevel.INFO,
                f"Evicted page {result.evicted_page} from frame {result.frame}",
                source=_PAGING,
            )
        self._logger.log(
            LogLevel.INFO,
            f"Loaded page {result.page} into frame {result.frame}",
            source=_PAGING,
        )

    # -- Partition commands --------------------------------------------------

    def init_memory(self, size: object) -> CommandResult:
        """Reset the address space to one free partition of *size* units."""
        try:
            total = _parse_int("Memory size", size)
            self._allocator.init(total)
        except MemoryModelError as exc:
            self._logger.log(LogLevel.WARNING, f"Initialisation rejected: {exc}", source=_PARTITION)
            return CommandResult(ok=False, message=str(exc), reason=_reason(exc))

        self._partition_history.clear()
        message = f"Memory initialised: {total} units free"
        self._logger.log(LogLevel.INFO, message, source=_PARTITION)
        return CommandResult(ok=True, message=message, value=total)

    def allocate(self, size: object, strategy: object = FitStrategy.FIRST_FIT) -> CommandResult:
        """Allocate *size* units with the named fit *strategy*.

        Returns:
            A result whose ``value`` is the new block's index.

        """
        inputs: dict[str, object] = {"size": size, "strategy": strategy}
        try:
            fit = (
                strategy if isinstance(strategy, FitStrategy) else FitStrategy.parse(str(strategy))
            )
            units = _parse_int("Size", size)
            inputs = {"size": units, "strategy": fit.value}
            index = self._allocator.allocate(units, fit)
        except MemoryModelError as exc:
            return self._reject(self._partition_history, "allocate", inputs, exc, source=_PARTITION)

        block = self._allocator.partitions[index]
        outcome = f"block {index} [{block.start}, {block.end})"
        self._logger.log(
            LogLevel.INFO,
            f"Allocated {units} units at {block.start} ({fit.value} fit)",
            source=_PARTITION,
        )
        entry = self._partition_history.record("allocate", inputs, outcome)
        return CommandResult(ok=True, message=f"Allocated {outcome}", value=index, entry=entry)

    def free(self, index: object) -> CommandResult:
        """Free the partition at position *index*.

        Returns:
            A result whose ``value`` is the coalesced free partition.

        """
        inputs: dict[str, object] = {"index": index}
        try:
            block_index = _parse_int("Block index", index)
            inputs = {"index": block_index}
            before = self._allocator.partitions
            merged = self._allocator.free(block_index)
        except MemoryModelError as exc:
            return self._reject(self._partition_history, "free", inputs, exc, source=_PARTITION)

        released = before[block_index]
        outcome = f"freed [{released.start}, {released.end})"
        if merged.length != released.length:
            outcome += f", merged into [{merged.start}, {merged.end})"
        self._logger.log(LogLevel.INFO, outcome.capitalize(), source=_PARTITION)
        entry = self._partition_history.record("free", inputs, outcome)
        return CommandResult(ok=True, message=outcome.capitalize(), value=merged, entry=entry)

    def free_at(self, start: object) -> CommandResult:
        """Free the partition that begins at address *start*."""
        try:
            address = _parse_int("Start address", start)
            index = self._allocator.block_at(address)
        except MemoryModelError as exc:
            return self._reject(
                self._partition_history, "free", {"start": start}, exc, source=_PARTITION
            )
        return self.free(index)

    # -- Shared --------------------------------------------------------------

    def _reject(
        self,
        history: History,
        operation: object,
        inputs: Mapping[str, object],
        exc: MemoryModelError,
        *,
        source: str,
    ) -> CommandResult:
        """Record a rejected command and build its failed result."""
        reason = _reason(exc)
        self._logger.log(LogLevel.WARNING, f"{operation} rejected: {exc}", source=source)
        entry = history.record(str(operation), inputs, f"{reason}: {exc}", ok=False)
        return CommandResult(ok=False, message=str(exc), reason=reason, entry=entry)
