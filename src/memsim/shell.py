"""The shell — command interpreter for the simulator.

The shell reads a command string, splits it into a command name and
arguments, dispatches to the matching handler, and returns a string.
It is the text rendering of the controller: every handler calls one
controller method and formats the result or the tables it exposes.

Design choices:
    - **Returns strings, not prints.**  The shell stays fully testable;
      the REPL or web UI decides how to display output.
    - **Command dispatch via a dict.**  Adding a command means writing a
      method and adding one dict entry.
    - **All engine interaction goes through the controller.**  The shell
      never holds an engine reference, so it cannot bypass validation.
"""

import shlex
from collections.abc import Callable

from memsim.controller import CommandResult, Controller
from memsim.history import HistoryEntry
from memsim.logging import LogLevel
from memsim.memory.paging import PAGE_SIZE

# Type alias for a command handler: takes a list of args, returns output.
_Handler = Callable[[list[str]], str]

_MEMMAP_WIDTH = 64
_LOG_SOURCES = ("paging", "partition")


def _render(result: CommandResult) -> str:
    """Format a controller result as shell output."""
    if result.ok:
        return result.message
    return f"Error: {result.reason}: {result.message}"


def _render_history(entries: list[HistoryEntry]) -> list[str]:
    lines = ["SEQ   OPERATION  INPUTS                         OUTCOME"]
    for entry in entries:
        inputs = " ".join(f"{k}={v}" for k, v in entry.inputs.items())
        lines.append(f"{entry.sequence:<5} {entry.operation:<10} {inputs:<30} {entry.outcome}")
    return lines


class Shell:
    """Command interpreter bound to a controller."""

    EXIT_SENTINEL = "__EXIT__"

    def __init__(self, *, controller: Controller) -> None:
        """Create a shell driving *controller*."""
        self._controller = controller
        self._halted = False
        self._history: list[str] = []

        # Command dispatch table: maps command names to handler methods.
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "config": self._cmd_config,
            "access": self._cmd_access,
            "read": self._cmd_read,
            "write": self._cmd_write,
            "pagetable": self._cmd_pagetable,
            "frames": self._cmd_frames,
            "pstats": self._cmd_pstats,
            "init": self._cmd_init,
            "alloc": self._cmd_alloc,
            "free": self._cmd_free,
            "freeat": self._cmd_freeat,
            "partitions": self._cmd_partitions,
            "memmap": self._cmd_memmap,
            "mstats": self._cmd_mstats,
            "history": self._cmd_history,
            "log": self._cmd_log,
            "exit": self._cmd_exit,
        }

    @property
    def command_names(self) -> list[str]:
        """Return the sorted list of command names."""
        return sorted(self._commands)

    @property
    def halted(self) -> bool:
        """Return True once ``exit`` has been run."""
        return self._halted

    def execute(self, command: str) -> str:
        """Parse and execute one command line.

        Args:
            command: The raw command string (e.g. "alloc 300 best").

        Returns:
            The command output, or an ``Error:`` / ``Unknown command:``
            line.

        """
        stripped = command.strip()
        if not stripped:
            return ""
        self._history.append(stripped)

        try:
            parts = shlex.split(stripped)
        except ValueError as e:
            return f"Error: {e}"
        name, args = parts[0], parts[1:]
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"
        return handler(args)

    # -- General -------------------------------------------------------------

    def _cmd_help(self, _args: list[str]) -> str:
        """List available commands."""
        return "Available commands: " + ", ".join(self.command_names)

    def _cmd_exit(self, _args: list[str]) -> str:
        """Signal the REPL to stop."""
        self._halted = True
        return self.EXIT_SENTINEL

    def _cmd_log(self, args: list[str]) -> str:
        """Show log entries, optionally for one source and a minimum level."""
        source: str | None = None
        min_level = LogLevel.DEBUG
        for arg in args:
            level = LogLevel.parse(arg)
            if level is not None:
                min_level = level
            elif arg in _LOG_SOURCES:
                source = arg
            else:
                return "Usage: log [paging|partition] [debug|info|warning|error]"
        entries = self._controller.logger.select(source=source, min_level=min_level)
        return "\n".join(str(e) for e in entries) if entries else "No log entries."

    def _cmd_history(self, args: list[str]) -> str:
        """Show command history for paging, partitioning, or the shell."""
        which = args[0] if args else "shell"
        if which == "paging":
            entries = self._controller.paging_history
        elif which == "partition":
            entries = self._controller.partition_history
        elif which == "shell":
            if not self._history:
                return "No history."
            return "\n".join(f"  {i + 1}  {cmd}" for i, cmd in enumerate(self._history))
        else:
            return "Usage: history [paging|partition|shell]"
        if not entries:
            return "No history."
        return "\n".join(_render_history(entries))

    # -- Paging --------------------------------------------------------------

    def _cmd_config(self, args: list[str]) -> str:
        """Reconfigure paging with a new frame count."""
        if not args:
            return "Usage: config <frames>"
        return _render(self._controller.configure(args[0]))

    def _cmd_access(self, args: list[str]) -> str:
        """Run one memory instruction: save, load, +, -, *, /."""
        min_args = 3
        if len(args) < min_args:
            return "Usage: access <save|load|+|-|*|/> <page> <offset>"
        return _render(self._controller.access(args[0], args[1], args[2]))

    def _cmd_read(self, args: list[str]) -> str:
        """Read from a virtual address."""
        min_args = 2
        if len(args) < min_args:
            return "Usage: read <page> <offset>"
        return _render(self._controller.read(args[0], args[1]))

    def _cmd_write(self, args: list[str]) -> str:
        """Write to a virtual address."""
        min_args = 2
        if len(args) < min_args:
            return "Usage: write <page> <offset>"
        return _render(self._controller.write(args[0], args[1]))

    def _cmd_pagetable(self, args: list[str]) -> str:
        """Show the page table (resident pages only with ``-r``)."""
        resident_only = "-r" in args
        lines = ["PAGE  PRESENT  FRAME  DIRTY  DISK"]
        for entry in self._controller.page_table:
            if resident_only and not entry.present:
                continue
            frame = str(entry.frame) if entry.frame is not None else "N/A"
            present = "yes" if entry.present else "no"
            dirty = "yes" if entry.dirty else "no"
            lines.append(f"{entry.page:<5} {present:<8} {frame:<6} {dirty:<6} {entry.locator:03d}")
        return "\n".join(lines)

    def _cmd_frames(self, _args: list[str]) -> str:
        """Show the frame pool."""
        lines = ["FRAME  PAGE   LOADED  DIRTY  BASE"]
        for frame in self._controller.frames:
            page = str(frame.occupant) if frame.occupied else "empty"
            loaded = str(frame.load_sequence) if frame.occupied else "N/A"
            dirty = "yes" if frame.dirty else "no"
            base = frame.index * PAGE_SIZE
            lines.append(f"{frame.index:<6} {page:<6} {loaded:<7} {dirty:<6} {base}")
        return "\n".join(lines)

    def _cmd_pstats(self, _args: list[str]) -> str:
        """Show paging counters."""
        stats = self._controller.paging_stats
        return (
            f"Frames: {self._controller.frame_count}\n"
            f"Accesses: {stats.accesses}  Hits: {stats.hits}  Faults: {stats.faults}\n"
            f"Evictions: {stats.evictions}  Write-backs: {stats.write_backs}\n"
            f"Fault rate: {stats.fault_rate:.1%}"
        )

    # -- Partitioning --------------------------------------------------------

    def _cmd_init(self, args: list[str]) -> str:
        """Reset the partitioned address space."""
        if not args:
            return "Usage: init <size>"
        return _render(self._controller.init_memory(args[0]))

    def _cmd_alloc(self, args: list[str]) -> str:
        """Allocate a block with first, best or worst fit."""
        if not args:
            return "Usage: alloc <size> [first|best|worst]"
        strategy = args[1] if len(args) > 1 else "first"
        return _render(self._controller.allocate(args[0], strategy))

    def _cmd_free(self, args: list[str]) -> str:
        """Free a block by its index in the partition table."""
        if not args:
            return "Usage: free <index>"
        return _render(self._controller.free(args[0]))

    def _cmd_freeat(self, args: list[str]) -> str:
        """Free the block starting at an address."""
        if not args:
            return "Usage: freeat <start>"
        return _render(self._controller.free_at(args[0]))

    def _cmd_partitions(self, _args: list[str]) -> str:
        """Show the partition table."""
        lines = ["INDEX  START  SIZE   STATE"]
        for i, p in enumerate(self._controller.partitions):
            state = "free" if p.free else "allocated"
            lines.append(f"{i:<6} {p.start:<6} {p.length:<6} {state}")
        return "\n".join(lines)

    def _cmd_memmap(self, _args: list[str]) -> str:
        """Draw the address space as a bar (``.`` free, ``#`` allocated)."""
        total = self._controller.memory_size
        bar: list[str] = []
        labels: list[str] = []
        for p in self._controller.partitions:
            cells = max(1, round(p.length * _MEMMAP_WIDTH / total))
            bar.append(("." if p.free else "#") * cells)
            labels.append(f"{p.start}-{p.end} {'free' if p.free else 'used'}")
        return "[" + "|".join(bar) + "]\n" + "\n".join(labels)

    def _cmd_mstats(self, _args: list[str]) -> str:
        """Show occupancy and fragmentation."""
        stats = self._controller.partition_stats
        return (
            f"Total: {stats.total}  Used: {stats.used}  Free: {stats.free}\n"
            f"Free blocks: {stats.free_blocks}  Largest free: {stats.largest_free}\n"
            f"Fragmentation: {stats.fragmentation:.1%}"
        )
