"""Browser-based web UI for memsim.

This package provides a Flask application that exposes the simulator
shell and live engine state through a web browser.  It is an
**optional** extra — install with::

    pip install memsim[web]

The ``create_app`` factory in ``app.py`` builds a controller, creates a
shell, and serves three endpoints:

- ``GET /`` — HTML page with a command box and state tables.
- ``POST /api/execute`` — execute a shell command and return JSON.
- ``GET /api/state`` — page table, frames, partitions and histories.
"""
