"""Weekplanner application factory and bootstrap."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from flask import Flask, current_app, jsonify, send_from_directory

from weekplanner.config import _engine_options_from_uri, config_by_name
from weekplanner.core.errors import StoreUnavailable
from weekplanner.core.events.event_bus import EventBus
from weekplanner.core.operations.schema import build_registry, build_schema
from weekplanner.core.operations.subscriptions import SubscriptionGateway
from weekplanner.extensions import init_extensions, socketio


def create_app(config_name: Optional[str] = None, overrides: Optional[dict] = None) -> Flask:
    """Create and configure the Weekplanner Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    # Bundled client assets are served from the site root.
    app = Flask(
        __name__,
        instance_path=str(instance_root),
        instance_relative_config=True,
        static_folder=str(Path(__file__).parent / "static"),
        static_url_path="",
    )
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)
    if overrides:
        app.config.update(overrides)
        if "SQLALCHEMY_DATABASE_URI" in overrides and "SQLALCHEMY_ENGINE_OPTIONS" not in overrides:
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = _engine_options_from_uri(
                overrides["SQLALCHEMY_DATABASE_URI"]
            )

    # Ensure instance folders exist (uploads, sqlite files)
    instance_root.mkdir(parents=True, exist_ok=True)
    uploads_path = Path(app.config.get("UPLOAD_FOLDER", "instance/files"))
    if not uploads_path.is_absolute():
        uploads_path = project_root / uploads_path
    uploads_path.mkdir(parents=True, exist_ok=True)
    app.config["UPLOAD_FOLDER"] = str(uploads_path)

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///") and not db_uri.startswith("sqlite:////"):
        abs_path = project_root / db_uri.replace("sqlite:///", "", 1)
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"

    init_extensions(app)

    # One bus per application; handlers and the gateway receive it explicitly.
    bus = EventBus(queue_maxsize=app.config.get("EVENT_QUEUE_MAXSIZE", 0))
    registry = build_registry()
    schema = build_schema(registry)
    app.extensions["event_bus"] = bus
    app.extensions["operations"] = registry
    app.extensions["graphql_schema"] = schema
    gateway = SubscriptionGateway(
        bus,
        schema,
        registry.subscription_topics(),
        namespace=app.config.get("GRAPHQL_PATH", "/graphql"),
    )
    gateway.init_app(app, socketio)

    _register_blueprints(app)
    _register_error_handlers(app)

    @app.get("/")
    def index():
        return send_from_directory(app.static_folder, "index.html")

    @app.get("/files/<path:filename>")
    def uploaded_file(filename: str):
        return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    return app


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from weekplanner.core.operations.controllers import operations_api_bp
    from weekplanner.domains.tasks.controllers import task_api_bp
    from weekplanner.domains.weeks.controllers import week_api_bp

    app.register_blueprint(week_api_bp, url_prefix="/weeks")
    app.register_blueprint(task_api_bp, url_prefix="/tasks")
    app.register_blueprint(operations_api_bp, url_prefix=app.config.get("GRAPHQL_PATH", "/graphql"))


def _register_error_handlers(app: Flask) -> None:
    """Basic JSON error responses."""
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(StoreUnavailable)
    def _store_unavailable(exc: StoreUnavailable):
        return jsonify({"ok": False, "error": "store_unavailable"}), 503

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500
