"""Flask application factory for the memsim web UI.

The ``create_app`` function builds a controller, creates a shell, and
returns a Flask app with three endpoints:

- ``GET /`` — render the HTML page.
- ``POST /api/execute`` — execute a command and return JSON.
- ``GET /api/state`` — return a JSON snapshot of both engines.
"""

from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any

from flask import Flask, Response, jsonify, render_template, request

from memsim.config import SimulatorConfig
from memsim.controller import Controller
from memsim.history import HistoryEntry
from memsim.shell import Shell

_HTTP_BAD_REQUEST = 400


def _history_rows(entries: list[HistoryEntry]) -> list[dict[str, Any]]:
    return [
        {
            "sequence": e.sequence,
            "operation": e.operation,
            "inputs": dict(e.inputs),
            "outcome": e.outcome,
            "ok": e.ok,
        }
        for e in entries
    ]


def state_snapshot(controller: Controller) -> dict[str, Any]:
    """Return both engines' state as JSON-ready data.

    Args:
        controller: The controller to read from.

    Returns:
        A dict with ``paging`` and ``partition`` sections.

    """
    paging_stats = controller.paging_stats
    partition_stats = controller.partition_stats
    return {
        "paging": {
            "frame_count": controller.frame_count,
            "page_table": [asdict(p) for p in controller.page_table],
            "frames": [asdict(f) for f in controller.frames],
            "stats": {**asdict(paging_stats), "fault_rate": paging_stats.fault_rate},
            "history": _history_rows(controller.paging_history),
        },
        "partition": {
            "total_size": controller.memory_size,
            "partitions": [asdict(p) for p in controller.partitions],
            "stats": {**asdict(partition_stats), "fragmentation": partition_stats.fragmentation},
            "history": _history_rows(controller.partition_history),
        },
    }


def create_app(config: SimulatorConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Simulator settings; read from ``MEMSIM_*`` environment
            variables if omitted.

    Returns:
        A configured Flask application ready to serve.

    """
    controller = Controller(config if config is not None else SimulatorConfig.from_env(os.environ))
    shell = Shell(controller=controller)

    app = Flask(__name__)

    @app.route("/")
    def index() -> str:  # pyright: ignore[reportUnusedFunction]
        """Render the simulator HTML page."""
        return render_template(
            "index.html",
            frame_count=controller.frame_count,
            memory_size=controller.memory_size,
        )

    @app.route("/api/execute", methods=["POST"])
    def execute() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Execute a shell command and return JSON output.

        Expects JSON body: ``{"command": "..."}``

        Returns:
            JSON with ``output`` and ``halted`` fields.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("command"), str):
            return jsonify({"error": "Missing or invalid 'command' field"}), _HTTP_BAD_REQUEST

        if shell.halted:
            return jsonify({"output": "Simulator stopped.", "halted": True})

        command: str = data["command"]
        result = shell.execute(command)
        if result == Shell.EXIT_SENTINEL:
            return jsonify({"output": "Simulator stopped.", "halted": True})
        return jsonify({"output": result, "halted": False})

    @app.route("/api/state")
    def state() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return a snapshot of both engines for the tables."""
        return jsonify(state_snapshot(controller))

    return app


def main() -> None:
    """Run the web UI development server.

    This is the ``memsim-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
