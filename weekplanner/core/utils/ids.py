"""Identifier helpers for stored entities."""

from __future__ import annotations

import uuid


def new_id() -> str:
    """Opaque, store-assigned identifier (32 hex chars)."""
    return uuid.uuid4().hex
