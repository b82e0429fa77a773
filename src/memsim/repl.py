"""Interactive REPL (Read-Eval-Print Loop) for the simulator.

The REPL builds a controller from the environment, creates a shell,
and enters the classic loop:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the command to ``shell.execute()``.
    3. **Print** — display the result.
    4. **Loop** — repeat until the shell returns the exit sentinel.

The shell is fully testable (returns strings, no I/O); the REPL is the
thin I/O wrapper that connects it to ``stdin``/``stdout``.  The helper
functions (``build_prompt``, ``format_banner``) are pure and testable.
"""

import os
import readline

from memsim.completer import Completer
from memsim.config import SimulatorConfig
from memsim.controller import Controller
from memsim.memory.errors import InvalidConfigurationError
from memsim.shell import Shell

_BANNER_WIDTH = 38


def format_banner(controller: Controller) -> str:
    """Format the start-up banner with the active configuration.

    Args:
        controller: The controller whose settings are shown.

    Returns:
        A formatted string suitable for printing to the console.

    """
    border = "=" * _BANNER_WIDTH
    header = (
        f"\n  {border}\n"
        "            memsim v0.1.0\n"
        "    Paging & partitioning simulator\n"
        f"  {border}\n\n"
    )
    body = (
        f"  Paging: {controller.frame_count} frames\n"
        f"  Partitioning: {controller.memory_size} units\n"
    )
    footer = "\nType 'help' for commands, 'exit' to quit.\n"
    return header + body + footer


def build_prompt(controller: Controller) -> str:
    """Build the prompt, showing the current frame count."""
    return f"memsim[{controller.frame_count}f] $ "


def run() -> None:
    """Run the interactive REPL.

    This is the ``memsim`` console entry point.  It handles:
    - Configuration from ``MEMSIM_*`` environment variables (a bad value
      prints an ``Error:`` line and returns before the loop starts).
    - The read-eval-print loop.
    - Graceful handling of Ctrl+C and Ctrl+D.
    """
    try:
        config = SimulatorConfig.from_env(os.environ)
    except InvalidConfigurationError as e:
        print(f"Error: {e}")  # noqa: T201
        return
    controller = Controller(config)
    shell = Shell(controller=controller)

    # Wire up tab completion via readline.
    completer = Completer(shell)
    readline.set_completer(completer.complete)
    readline.set_completer_delims(" \t")
    readline.parse_and_bind("tab: complete")

    print(format_banner(controller))  # noqa: T201

    try:
        while True:
            try:
                command = input(build_prompt(controller))
            except EOFError:
                # Ctrl+D: graceful exit
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                break
            if result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        # Ctrl+C: graceful exit
        print("\nInterrupted.")  # noqa: T201

    finally:
        print("Bye.")  # noqa: T201
