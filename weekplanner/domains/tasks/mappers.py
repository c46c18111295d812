"""DTO mappers for tasks."""

from __future__ import annotations

from weekplanner.domains.tasks.models import Task
from weekplanner.domains.tasks.schemas import TaskResponse


def map_task(task: Task) -> dict:
    """Wire shape shared by API responses and subscription payloads."""
    return TaskResponse.model_validate(task).model_dump()
