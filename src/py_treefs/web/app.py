"""Flask application factory for the py-treefs web front-end.

The ``create_app`` function mounts the store, creates a shell, and
returns a Flask app with four endpoints:

- ``GET /`` — the startup banner as a small HTML page.
- ``POST /api/execute`` — execute a command and return JSON.
- ``GET /api/tree`` — return the rendered tree and current path.
- ``GET /api/status`` — return whether the session is open.

After ``exit`` the session is closed: the tree has been saved and
further commands are refused.  ``close_session`` does the same for a
server that stops without an ``exit``; ``main`` registers it with
``atexit`` so stopping the server still saves.
"""

from __future__ import annotations

import atexit
from dataclasses import dataclass
from html import escape
from typing import TYPE_CHECKING

from flask import Flask, Response, jsonify, request

from py_treefs.config import load_config
from py_treefs.repl import final_save, format_banner
from py_treefs.session import Session
from py_treefs.shell import Shell

if TYPE_CHECKING:
    from py_treefs.config import FsConfig

_HTTP_BAD_REQUEST = 400
_CLOSED_MESSAGE = "Session closed."
_EXTENSION = "py_treefs"


@dataclass
class _WebSession:
    """The session behind an app, and whether it still takes commands."""

    session: Session
    open: bool = True


def create_app(config: FsConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Mount the store, create a shell, and wire up routes.

    Args:
        config: Session settings (default: ``load_config()``).

    Returns:
        A configured Flask application ready to serve.

    """
    session = Session.mount(config if config is not None else load_config())
    shell = Shell(session=session)
    banner = format_banner(session.dmesg())
    state = _WebSession(session)

    app = Flask(__name__)
    app.extensions[_EXTENSION] = state

    @app.route("/")
    def index() -> str:  # pyright: ignore[reportUnusedFunction]
        """Render the startup banner."""
        return f"<!doctype html><title>py-treefs</title><pre>{escape(banner)}</pre>"

    @app.route("/api/execute", methods=["POST"])
    def execute() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Execute a shell command and return JSON output.

        Expects JSON body: ``{"command": "..."}``

        Returns:
            JSON with ``output``, ``cwd`` and ``halted`` fields.

        """
        data = request.get_json(silent=True)
        if data is None or "command" not in data:
            return jsonify({"error": "Missing 'command' field"}), _HTTP_BAD_REQUEST

        if not state.open:
            return jsonify({"output": _CLOSED_MESSAGE, "halted": True})

        command: str = data["command"]
        result = shell.execute(command)

        if result == Shell.EXIT_SENTINEL:
            state.open = False
            return jsonify({"output": _CLOSED_MESSAGE, "halted": True})

        return jsonify({"output": result, "cwd": session.cwd_path, "halted": False})

    @app.route("/api/tree")
    def tree() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the rendered tree and the current directory."""
        return jsonify({"tree": session.tree(), "cwd": session.cwd_path})

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return session status for polling.

        Returns:
            JSON with ``running``, ``cwd`` and ``store`` fields.

        """
        return jsonify(
            {
                "running": state.open,
                "cwd": session.cwd_path,
                "store": str(session.config.store_path),
            }
        )

    return app


def close_session(app: Flask) -> bool:
    """Close the app's session, saving it unless ``exit`` already has.

    Returns:
        Whether the store was written.

    """
    state: _WebSession = app.extensions[_EXTENSION]
    if not state.open:
        return False
    state.open = False
    return final_save(state.session)


def main() -> None:
    """Run the web development server, saving the tree when it stops.

    This is the ``py-treefs-web`` console entry point.  The reloader is
    off: it would run a second session that saves a stale tree at exit.
    """
    app = create_app()
    atexit.register(close_session, app)
    app.run(debug=True, port=8080, use_reloader=False)
