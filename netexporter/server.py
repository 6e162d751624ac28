from __future__ import annotations

import logging
from typing import Callable

from flask import Flask, Response
from werkzeug.serving import BaseWSGIServer, make_server

from .metrics import NetworkMetrics

logger = logging.getLogger("netexporter.server")

LISTEN_ADDRESS = "0.0.0.0"
LISTEN_PORT = 9091

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def create_app(
    metrics: NetworkMetrics,
    admin_hook: Callable[[], None] | None = None,
) -> Flask:
    """Build the Flask app serving ``/metrics`` and the reboot hook.

    ``admin_hook`` is called on every ``/reboot-wireguard`` request. Without
    one the endpoint accepts the request and does nothing.
    """
    app = Flask("netexporter")

    @app.get("/metrics")
    def metrics_view():
        payload, content_type = metrics.render()
        logger.debug("/metrics request served | payload_bytes=%d", len(payload))
        return Response(payload, status=200, content_type=content_type)

    @app.route("/reboot-wireguard", methods=_ALL_METHODS)
    def reboot_wireguard():
        if admin_hook is None:
            logger.debug("/reboot-wireguard called, no hook configured")
        else:
            logger.info("/reboot-wireguard called, running hook")
            admin_hook()
        return Response(status=204)

    return app


def make_http_server(
    app: Flask,
    host: str = LISTEN_ADDRESS,
    port: int = LISTEN_PORT,
) -> BaseWSGIServer:
    """Bind the server; raises ``OSError`` when the port is unavailable."""
    try:
        server = make_server(host, port, app, threaded=True)
    except SystemExit:
        # werkzeug reports bind errors on stderr and exits
        raise OSError(f"cannot bind {host}:{port}") from None
    logger.info("netexporter server listening on [%s:%s]", host, port)
    return server
