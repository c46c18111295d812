"""Task service.

Every mutation commits to the store first and only then publishes on the
event bus, so subscribers never see a write that could still fail. Lookups
that find nothing return ``None`` and publish nothing.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from weekplanner.core.events.event_bus import EventBus
from weekplanner.core.utils.store import store_call
from weekplanner.domains.tasks.events import TASK_ADDED, TASK_DELETED, TASK_UPDATED
from weekplanner.domains.tasks.mappers import map_task
from weekplanner.domains.tasks.models import Task

logger = logging.getLogger(__name__)

_TASK_FIELDS = (
    "yearweek",
    "dayofweek",
    "name",
    "description",
    "color",
    "time_start",
    "time_end",
    "finished",
    "priority",
    "file",
)


def _publish(bus: EventBus, topic: str, task: Task) -> None:
    delivered = bus.publish(topic, map_task(task))
    logger.debug("Published %s for task %s to %s listeners", topic, task.id, delivered)


def list_tasks(yearweek: Optional[str] = None, dayofweek: Optional[str] = None) -> List[Task]:
    with store_call("list_tasks"):
        query = Task.query
        if yearweek:
            query = query.filter(Task.yearweek == yearweek)
        if dayofweek:
            query = query.filter(Task.dayofweek == dayofweek)
        return query.order_by(Task.yearweek.asc(), Task.time_start.asc()).all()


def get_task(task_id: str) -> Task | None:
    with store_call("get_task") as session:
        return session.get(Task, task_id)


def create_task(bus: EventBus, **fields) -> Task:
    task = Task(**{key: fields.get(key) for key in _TASK_FIELDS})
    with store_call("create_task", commit=True) as session:
        session.add(task)
    _publish(bus, TASK_ADDED, task)
    return task


def update_task(bus: EventBus, task_id: str, **fields) -> Task | None:
    """Apply only the supplied fields; ``id`` is never rewritten."""
    changes = {key: value for key, value in fields.items() if key in _TASK_FIELDS}
    with store_call("update_task", commit=True) as session:
        task = session.get(Task, task_id)
        if not task:
            return None
        for key, value in changes.items():
            setattr(task, key, value)
    _publish(bus, TASK_UPDATED, task)
    return task


def update_tasks(bus: EventBus, patches: Iterable[dict]) -> List[Task]:
    """Apply a batch of partial updates, one commit each; missing ids are skipped."""
    updated = []
    for patch in patches:
        fields = dict(patch)
        task = update_task(bus, fields.pop("id"), **fields)
        if task is not None:
            updated.append(task)
    return updated


def delete_task(bus: EventBus, task_id: str) -> Task | None:
    """Delete a task and return it as it was just before deletion."""
    with store_call("delete_task", commit=True) as session:
        task = session.get(Task, task_id)
        if not task:
            return None
        session.delete(task)
    _publish(bus, TASK_DELETED, task)
    return task
