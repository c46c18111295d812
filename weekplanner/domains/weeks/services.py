"""Week service.

Weeks follow the same create/replace/delete contract as tasks but have no
subscription type, so nothing here touches the event bus.
"""

from __future__ import annotations

from typing import List, Optional

from weekplanner.core.utils.store import store_call
from weekplanner.domains.weeks.models import Week

_WEEK_FIELDS = ("year", "numweek", "color", "description", "priority", "link")


def list_weeks(year: Optional[int] = None) -> List[Week]:
    with store_call("list_weeks"):
        query = Week.query
        if year is not None:
            query = query.filter(Week.year == year)
        return query.order_by(Week.year.asc(), Week.numweek.asc()).all()


def get_week(week_id: str) -> Week | None:
    with store_call("get_week") as session:
        return session.get(Week, week_id)


def create_week(**fields) -> Week:
    week = Week(**{key: fields[key] for key in _WEEK_FIELDS})
    with store_call("create_week", commit=True) as session:
        session.add(week)
    return week


def replace_week(week_id: str, **fields) -> Week | None:
    """Rewrite every field of an existing week; ``None`` when it does not exist."""
    with store_call("replace_week", commit=True) as session:
        week = session.get(Week, week_id)
        if not week:
            return None
        for key in _WEEK_FIELDS:
            setattr(week, key, fields[key])
    return week


def delete_week(week_id: str) -> Week | None:
    with store_call("delete_week", commit=True) as session:
        week = session.get(Week, week_id)
        if not week:
            return None
        session.delete(week)
    return week
