"""Context-aware tab completer for the simulator shell.

The completer separates **what to complete** (pure logic, fully
testable) from **how to wire it** (readline integration in the REPL).

The ``complete(text, state)`` method is the readline callback.  It
delegates to ``completions(text, line)`` which analyses the input
context and returns a list of candidate strings.
"""

from __future__ import annotations

import readline
from typing import TYPE_CHECKING

from memsim.controller import AccessKind
from memsim.logging import LogLevel
from memsim.memory.partition import FitStrategy

if TYPE_CHECKING:
    from memsim.shell import Shell

# Word position (0 = command) → candidates, per command.
_ARGUMENTS: dict[str, dict[int, list[str]]] = {
    "access": {1: [k.value for k in AccessKind]},
    "alloc": {2: [s.value for s in FitStrategy]},
    "history": {1: ["paging", "partition", "shell"]},
    "log": {
        1: ["paging", "partition", *(level.name.lower() for level in LogLevel)],
        2: [level.name.lower() for level in LogLevel],
    },
    "pagetable": {1: ["-r"]},
}


class Completer:
    """Context-aware tab completer for the simulator shell."""

    def __init__(self, shell: Shell) -> None:
        """Create a completer attached to a shell instance."""
        self._shell = shell

    def complete(self, text: str, state: int) -> str | None:
        """Readline callback — return the *state*-th candidate for *text*.

        Args:
            text: The partial word being completed.
            state: Index into the candidate list (0, 1, 2, …).

        Returns:
            The candidate at *state*, or ``None`` when exhausted.

        """
        line = readline.get_line_buffer()
        candidates = self.completions(text, line)
        if state < len(candidates):
            return candidates[state]
        return None

    def completions(self, text: str, line: str) -> list[str]:
        """Return completion candidates based on context.

        Args:
            text: The partial word under the cursor.
            line: The full input line so far.

        Returns:
            Sorted list of matching candidates.

        """
        words = line.lstrip().split()

        # No words yet, or still typing the first word → command completion
        if not words or (len(words) == 1 and not line.endswith(" ")):
            return [cmd for cmd in self._shell.command_names if cmd.startswith(text)]

        position = len(words) if line.endswith(" ") else len(words) - 1
        choices = _ARGUMENTS.get(words[0], {}).get(position, [])
        return sorted(choice for choice in choices if choice.startswith(text))
