"""Task API controllers."""

from __future__ import annotations

import logging
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request
from pydantic import TypeAdapter, ValidationError
from werkzeug.utils import secure_filename

from weekplanner.core.events.event_bus import current_event_bus
from weekplanner.core.utils.validation import validation_error_response
from weekplanner.domains.tasks import services
from weekplanner.domains.tasks.mappers import map_task
from weekplanner.domains.tasks.schemas import TaskCreate, TaskListFilter, TaskPatch, TaskUpdate

logger = logging.getLogger(__name__)

task_api_bp = Blueprint("task_api", __name__)

_patch_list = TypeAdapter(list[TaskPatch])


@task_api_bp.get("")
def list_tasks():
    try:
        params = TaskListFilter.model_validate(dict(request.args.items()))
    except ValidationError as exc:
        return validation_error_response(exc)
    items = services.list_tasks(yearweek=params.yearweek, dayofweek=params.dayofweek)
    return jsonify({"ok": True, "items": [map_task(t) for t in items]})


@task_api_bp.post("")
def create_task():
    payload = request.get_json(silent=True) or {}
    try:
        data = TaskCreate.model_validate(payload)
    except ValidationError as exc:
        return validation_error_response(exc)
    try:
        task = services.create_task(current_event_bus(), **data.model_dump())
    except ValueError:
        return jsonify({"ok": False, "error": "validation_error"}), 400
    return jsonify({"ok": True, "task": map_task(task)}), 201


@task_api_bp.put("/<task_id>")
def update_task(task_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        data = TaskUpdate.model_validate(payload)
    except ValidationError as exc:
        return validation_error_response(exc)
    try:
        task = services.update_task(current_event_bus(), task_id, **data.changes())
    except ValueError:
        return jsonify({"ok": False, "error": "validation_error"}), 400
    if not task:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "task": map_task(task)})


@task_api_bp.put("")
def update_tasks():
    """Bulk partial update: ``[{"id": ..., <fields>}, ...]``."""
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        payload = payload.get("tasks")
    try:
        # Validate the whole batch before touching the store.
        patches = _patch_list.validate_python(payload if payload is not None else [])
    except ValidationError as exc:
        return validation_error_response(exc)
    try:
        updated = services.update_tasks(
            current_event_bus(),
            [dict(patch.changes(), id=patch.id) for patch in patches],
        )
    except ValueError:
        return jsonify({"ok": False, "error": "validation_error"}), 400
    found = {task.id for task in updated}
    missing = [patch.id for patch in patches if patch.id not in found]
    return jsonify({"ok": True, "items": [map_task(t) for t in updated], "missing": missing})


@task_api_bp.delete("/<task_id>")
def delete_task(task_id: str):
    task = services.delete_task(current_event_bus(), task_id)
    if not task:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "task": map_task(task)})


@task_api_bp.post("/upload")
def upload_file():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"ok": False, "error": "missing_file"}), 400
    filename = secure_filename(upload.filename)
    if not filename:
        return jsonify({"ok": False, "error": "invalid_filename"}), 400
    upload.save(Path(current_app.config["UPLOAD_FOLDER"]) / filename)
    logger.info("Stored upload %s", filename)
    return 'File uploaded and saved in the "files" folder.', 200, {"Content-Type": "text/plain; charset=utf-8"}
