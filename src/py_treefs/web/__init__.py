"""Browser-facing HTTP front-end for py-treefs.

This package provides a Flask application that exposes the shell over
HTTP.  It is an **optional** extra — install with::

    pip install py-treefs[web]

The ``create_app`` factory in ``app.py`` mounts the store, creates a
shell, and serves:

- ``GET /`` — a plain page with the startup banner.
- ``POST /api/execute`` — execute a shell command and return JSON.
- ``GET /api/tree`` — the rendered tree and the current path.
- ``GET /api/status`` — whether the session is still open.
"""
