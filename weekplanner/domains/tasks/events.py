"""Task event topics."""

from __future__ import annotations

TASK_ADDED = "TASK_ADDED"
TASK_UPDATED = "TASK_UPDATED"
TASK_DELETED = "TASK_DELETED"

# Subscription field name -> bus topic.
SUBSCRIPTION_TOPICS = {
    "taskAdded": TASK_ADDED,
    "taskUpdated": TASK_UPDATED,
    "taskDeleted": TASK_DELETED,
}

__all__ = [
    "SUBSCRIPTION_TOPICS",
    "TASK_ADDED",
    "TASK_UPDATED",
    "TASK_DELETED",
]
