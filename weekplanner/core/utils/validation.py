"""Input validation helpers."""

from __future__ import annotations

import json
from typing import List

from flask import jsonify
from pydantic import ValidationError


def validation_details(exc: ValidationError) -> List[dict]:
    """JSON-safe error list (validator contexts may hold exception objects)."""
    return json.loads(exc.json(include_url=False))


def validation_error_response(exc: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "details": validation_details(exc)}), 400
