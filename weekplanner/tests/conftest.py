import sys
import time
from pathlib import Path

import pytest
from flask_migrate import upgrade

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from weekplanner import create_app
from weekplanner.extensions import db, socketio
from weekplanner.server import shutdown


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API, sockets)")


@pytest.fixture()
def app(tmp_path):
    """
    Create a per-test app backed by its own migrated SQLite file.

    Teardown runs the same drain as process shutdown so no stream pump
    outlives the test.
    """
    app = create_app(
        "testing",
        overrides={
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
            "UPLOAD_FOLDER": str(tmp_path / "files"),
        },
    )
    ctx = app.app_context()
    ctx.push()
    upgrade()
    try:
        yield app
    finally:
        shutdown(app)
        db.session.remove()
        db.engine.dispose()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def bus(app):
    return app.extensions["event_bus"]


@pytest.fixture()
def namespace(app):
    return app.config["GRAPHQL_PATH"]


@pytest.fixture()
def socket_client(app, namespace):
    """Factory for Socket.IO test clients on the subscription namespace."""
    clients = []

    def _connect(**kwargs):
        sock = socketio.test_client(app, namespace=namespace, **kwargs)
        clients.append(sock)
        return sock

    yield _connect
    for sock in clients:
        if sock.is_connected(namespace):
            sock.disconnect(namespace=namespace)


@pytest.fixture()
def receive(namespace):
    """Collect frames named ``event`` until ``count`` arrived or ``timeout`` passed."""

    def _receive(sock, event, count=1, timeout=2.0):
        frames = []
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            frames.extend(p for p in sock.get_received(namespace) if p["name"] == event)
            if len(frames) >= count:
                break
            time.sleep(0.01)
        return frames

    return _receive


@pytest.fixture()
def task_fields():
    return {
        "yearweek": "2024-W12",
        "dayofweek": "monday",
        "name": "Write report",
        "description": "Quarterly numbers",
        "color": "#2E86DE",
        "time_start": "09:00",
        "time_end": "10:30",
        "finished": 0,
        "priority": 2,
        "file": None,
    }


@pytest.fixture()
def week_fields():
    return {
        "year": 2024,
        "numweek": 12,
        "color": "#27AE60",
        "description": "Sprint week",
        "priority": 1,
        "link": "https://example.com/sprint",
    }
