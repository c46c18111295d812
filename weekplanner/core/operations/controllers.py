"""HTTP endpoint for GraphQL queries and mutations."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from weekplanner.core.events.event_bus import current_event_bus
from weekplanner.core.operations.executor import execute

operations_api_bp = Blueprint("operations_api", __name__)


@operations_api_bp.get("")
def type_defs():
    return current_app.extensions["operations"].type_defs(), 200, {"Content-Type": "text/plain; charset=utf-8"}


@operations_api_bp.post("")
def run_operation():
    status, body = execute(
        current_app.extensions["graphql_schema"],
        request.get_json(silent=True),
        current_event_bus(),
        debug=current_app.debug,
    )
    return jsonify(body), status
