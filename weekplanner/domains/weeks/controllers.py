"""Week API controllers."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from weekplanner.core.utils.validation import validation_error_response
from weekplanner.domains.weeks import services
from weekplanner.domains.weeks.mappers import map_week
from weekplanner.domains.weeks.schemas import WeekCreate, WeekListFilter

week_api_bp = Blueprint("week_api", __name__)


@week_api_bp.get("")
def list_weeks():
    try:
        params = WeekListFilter.model_validate(dict(request.args.items()))
    except ValidationError as exc:
        return validation_error_response(exc)
    items = services.list_weeks(year=params.year)
    return jsonify({"ok": True, "items": [map_week(w) for w in items]})


@week_api_bp.post("")
def create_week():
    payload = request.get_json(silent=True) or {}
    try:
        data = WeekCreate.model_validate(payload)
    except ValidationError as exc:
        return validation_error_response(exc)
    try:
        week = services.create_week(**data.model_dump())
    except ValueError:
        return jsonify({"ok": False, "error": "validation_error"}), 400
    return jsonify({"ok": True, "week": map_week(week)}), 201


@week_api_bp.put("/<week_id>")
def update_week(week_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        # Replacement: every field is required, as on create.
        data = WeekCreate.model_validate(payload)
    except ValidationError as exc:
        return validation_error_response(exc)
    try:
        week = services.replace_week(week_id, **data.model_dump())
    except ValueError:
        return jsonify({"ok": False, "error": "validation_error"}), 400
    if not week:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "week": map_week(week)})


@week_api_bp.delete("/<week_id>")
def delete_week(week_id: str):
    week = services.delete_week(week_id)
    if not week:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "week": map_week(week)})
