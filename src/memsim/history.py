"""Command history — the numbered table of everything the user ran.

Each command handed to the controller, accepted or rejected, produces
one ``HistoryEntry``: a sequence number, what was asked, with which
inputs, and how it turned out.  Display layers render the list as a
table; nothing ever edits an entry after it is recorded.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class HistoryEntry:
    """One row of command history.

    Attributes:
        sequence: 1-based position in the history.
        operation: Short description of the command (e.g. "save").
        inputs: The validated (or raw, if rejected) command arguments.
        outcome: Human-readable result (e.g. "page fault, evicted page 0").
        ok: False if the command was rejected.

    """

    sequence: int
    operation: str
    inputs: Mapping[str, object] = field(default_factory=dict)
    outcome: str = ""
    ok: bool = True

    def __str__(self) -> str:
        """Format as ``#seq operation key=value ... -> outcome``."""
        args = " ".join(f"{k}={v}" for k, v in self.inputs.items())
        head = f"#{self.sequence} {self.operation}"
        if args:
            head = f"{head} {args}"
        return f"{head} -> {self.outcome}"


class History:
    """Append-only list of history entries with automatic numbering."""

    def __init__(self) -> None:
        """Create an empty history."""
        self._entries: list[HistoryEntry] = []

    def record(
        self,
        operation: str,
        inputs: Mapping[str, object],
        outcome: str,
        *,
        ok: bool = True,
    ) -> HistoryEntry:
        """Append a new entry numbered after the last one and return it."""
        entry = HistoryEntry(
            sequence=len(self._entries) + 1,
            operation=operation,
            inputs=MappingProxyType(dict(inputs)),
            outcome=outcome,
            ok=ok,
        )
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> list[HistoryEntry]:
        """Return all entries, oldest first."""
        return list(self._entries)

    def clear(self) -> None:
        """Forget every entry; numbering restarts at 1."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        """Iterate over entries, oldest first."""
        return iter(list(self._entries))
