"""Liveness Server - Imperative Shell.

A tiny HTTP server so hosting platforms can tell the polling process is
alive. It runs in a daemon thread next to the scheduler.
"""

import logging
import threading

from flask import Flask
from werkzeug.serving import BaseWSGIServer, make_server


logger = logging.getLogger(__name__)


def create_health_app() -> Flask:
    """Build the Flask app serving /, /health and /ping."""
    app = Flask(__name__)

    @app.route("/", methods=["GET"])
    def root():
        return "Seismic alert service is running!", 200

    @app.route("/health", methods=["GET"])
    def health():
        return "OK", 200

    @app.route("/ping", methods=["GET"])
    def ping():
        return "PONG", 200

    return app


class HealthServer:
    """Serves the liveness app from a background thread."""

    def __init__(self, port: int, host: str = "0.0.0.0") -> None:
        self.host = host
        self.port = port
        self._server: BaseWSGIServer | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Bind and start serving. Raises OSError if the port is taken."""
        self._server = make_server(self.host, self.port, create_health_app(), threaded=True)
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="health-server",
            daemon=True,
        )
        self._thread.start()
        logger.info("Health server listening on %s:%d", self.host, self._server.server_port)

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
