"""Tests for task mutation handlers: store write, then event."""

from __future__ import annotations

import queue

import pytest
from sqlalchemy.exc import OperationalError

pytestmark = pytest.mark.integration

from weekplanner.core.errors import StoreUnavailable
from weekplanner.domains.tasks.events import TASK_ADDED, TASK_DELETED, TASK_UPDATED
from weekplanner.domains.tasks.mappers import map_task
from weekplanner.domains.tasks.models import Task
from weekplanner.domains.tasks.services import (
    create_task,
    delete_task,
    get_task,
    list_tasks,
    update_task,
    update_tasks,
)
from weekplanner.extensions import db


def _events(subscription):
    events = []
    while True:
        try:
            event = subscription.get(timeout=0)
        except queue.Empty:
            return events
        if event is None:
            return events
        events.append(event)


class TestCreateTask:
    def test_create_assigns_id_and_publishes_stored_entity(self, app, bus, task_fields):
        subscription = bus.subscribe(TASK_ADDED)

        task = create_task(bus, **task_fields)

        assert task.id
        stored = get_task(task.id)
        assert map_task(stored) == dict(task_fields, id=task.id)
        [event] = _events(subscription)
        assert event.topic == TASK_ADDED
        assert event.payload == map_task(task)

    def test_file_is_optional(self, app, bus, task_fields):
        task_fields.pop("file")
        task = create_task(bus, **task_fields)
        assert task.file is None

    def test_missing_required_field_is_rejected_without_event(self, app, bus, task_fields):
        subscription = bus.subscribe(TASK_ADDED)
        task_fields["name"] = None

        with pytest.raises(ValueError, match="validation_error"):
            create_task(bus, **task_fields)

        assert _events(subscription) == []
        assert list_tasks() == []


class TestUpdateTask:
    def test_partial_update_leaves_other_fields(self, app, bus, task_fields):
        task = create_task(bus, **task_fields)
        before = map_task(task)
        subscription = bus.subscribe(TASK_UPDATED)

        updated = update_task(bus, task.id, priority=5)

        expected = dict(before, priority=5)
        assert map_task(updated) == expected
        [event] = _events(subscription)
        assert event.payload == expected

    def test_id_cannot_be_rewritten(self, app, bus, task_fields):
        task = create_task(bus, **task_fields)
        original_id = task.id

        updated = update_task(bus, task.id, id="other", name="Renamed")

        assert updated.id == original_id
        assert get_task("other") is None

    def test_missing_task_returns_none_and_publishes_nothing(self, app, bus):
        subscription = bus.subscribe(TASK_UPDATED)
        assert update_task(bus, "does-not-exist", priority=1) is None
        assert _events(subscription) == []

    def test_bulk_update_skips_missing_ids(self, app, bus, task_fields):
        first = create_task(bus, **task_fields)
        second = create_task(bus, **dict(task_fields, name="Second"))
        subscription = bus.subscribe(TASK_UPDATED)

        updated = update_tasks(
            bus,
            [
                {"id": first.id, "finished": 1},
                {"id": "missing", "finished": 1},
                {"id": second.id, "dayofweek": "friday"},
            ],
        )

        assert [t.id for t in updated] == [first.id, second.id]
        assert [e.payload["id"] for e in _events(subscription)] == [first.id, second.id]
        assert get_task(first.id).finished == 1
        assert get_task(second.id).dayofweek == "friday"


class TestDeleteTask:
    def test_delete_returns_and_publishes_pre_deletion_entity(self, app, bus, task_fields):
        task = create_task(bus, **task_fields)
        snapshot = map_task(task)
        subscription = bus.subscribe(TASK_DELETED)

        deleted = delete_task(bus, task.id)

        assert map_task(deleted) == snapshot
        assert get_task(task.id) is None
        [event] = _events(subscription)
        assert event.payload == snapshot

    def test_delete_missing_returns_none_without_event(self, app, bus):
        subscription = bus.subscribe(TASK_DELETED)
        assert delete_task(bus, "nope") is None
        assert _events(subscription) == []


class TestListTasks:
    def test_filters_by_yearweek_and_day(self, app, bus, task_fields):
        create_task(bus, **task_fields)
        create_task(bus, **dict(task_fields, dayofweek="tuesday"))
        create_task(bus, **dict(task_fields, yearweek="2024-W13"))

        assert len(list_tasks()) == 3
        assert len(list_tasks(yearweek="2024-W12")) == 2
        assert len(list_tasks(yearweek="2024-W12", dayofweek="tuesday")) == 1


class TestStoreUnavailable:
    def test_failed_commit_surfaces_error_and_publishes_nothing(self, app, bus, task_fields, monkeypatch):
        subscription = bus.subscribe(TASK_ADDED)

        def _boom():
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        monkeypatch.setattr(db.session, "commit", _boom)

        with pytest.raises(StoreUnavailable):
            create_task(bus, **task_fields)

        monkeypatch.undo()
        assert _events(subscription) == []
        assert db.session.query(Task).count() == 0
