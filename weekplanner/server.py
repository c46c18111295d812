"""Process entrypoint: HTTP and Socket.IO server with a graceful drain."""

from __future__ import annotations

import logging
import os
import signal

from flask import Flask

from weekplanner import create_app
from weekplanner.extensions import socketio

logger = logging.getLogger(__name__)


def shutdown(app: Flask) -> None:
    """Drain subscription streams, then tear down the event bus."""
    gateway = app.extensions.get("subscription_gateway")
    bus = app.extensions.get("event_bus")
    if gateway is not None and not gateway.draining:
        gateway.drain(app.config.get("DRAIN_TIMEOUT_SECONDS", 5.0))
    if bus is not None:
        bus.close()


def install_signal_handlers(app: Flask) -> None:
    def _handle(signum, frame):
        logger.info("Received signal %s, draining before exit", signum)
        shutdown(app)
        raise SystemExit(0)

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _handle)


def main() -> None:
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    app = create_app(os.environ.get("APP_ENV"))
    install_signal_handlers(app)

    host = app.config["HOST"]
    port = app.config["PORT"]
    path = app.config["GRAPHQL_PATH"]
    logger.info("Query endpoint ready at http://%s:%s%s", host, port, path)
    logger.info("Subscription endpoint ready at ws://%s:%s%s", host, port, path)
    socketio.run(app, host=host, port=port, use_reloader=False, allow_unsafe_werkzeug=True)


if __name__ == "__main__":
    main()
