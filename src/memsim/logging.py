"""Simulator event log.

Every command the controller runs leaves a trail here: a page loaded
into a frame, a dirty victim written back to its disk location, a block
split off a free partition, a request turned away.  The shell's ``log``
command prints the trail beside the tables, so a student can follow
each step of a fault or a merge.

Design choices:
    - **Levels are an IntEnum**, so ``log warning`` is a plain ``>=``.
    - **Only the controller writes.**  Engines raise or return results;
      the log records what the user was actually told.
    - **Append-only.**  Resetting an engine starts a new history table,
      but the log keeps the whole session.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity of a log entry, ordered for minimum-level selection."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3

    @classmethod
    def parse(cls, name: str) -> "LogLevel | None":
        """Return the level called *name* (any case), or None."""
        return cls.__members__.get(name.strip().upper())


@dataclass(frozen=True)
class LogEntry:
    """One event, tagged with the engine it concerns.

    Attributes:
        level: How notable the event is.
        message: What happened, in the words the shell shows.
        source: ``"paging"`` or ``"partition"``.

    """

    level: LogLevel
    message: str
    source: str

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """The session's event log."""

    def __init__(self) -> None:
        """Start with no events."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        """Return every event, oldest first."""
        return tuple(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Record one event."""
        self._entries.append(LogEntry(level=level, message=message, source=source))

    def select(
        self,
        *,
        source: str | None = None,
        min_level: LogLevel = LogLevel.DEBUG,
    ) -> list[LogEntry]:
        """Return the events from *source* at *min_level* or above.

        Args:
            source: Engine to keep; None keeps both.
            min_level: Lowest level to keep.

        Returns:
            Matching events, oldest first.

        """
        return [
            e
            for e in self._entries
            if e.level >= min_level and (source is None or e.source == source)
        ]

    def __len__(self) -> int:
        """Return the number of events recorded."""
        return len(self._entries)
