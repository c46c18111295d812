"""Tests for the GraphQL query/mutation endpoint."""

from __future__ import annotations

import queue

import pytest
from sqlalchemy.exc import OperationalError

pytestmark = pytest.mark.integration

from weekplanner.domains.tasks.events import TASK_ADDED, TASK_DELETED, TASK_UPDATED
from weekplanner.extensions import db

TASK_FIELDS = "id yearweek dayofweek name description color time_start time_end finished priority file"
WEEK_FIELDS = "id year numweek color description priority link"

CREATE_TASK = f"""
mutation CreateTask(
  $yearweek: String!, $dayofweek: String!, $name: String!, $description: String!,
  $color: String!, $time_start: String!, $time_end: String!, $finished: Int!,
  $priority: Int!, $file: String
) {{
  createTask(
    yearweek: $yearweek, dayofweek: $dayofweek, name: $name, description: $description,
    color: $color, time_start: $time_start, time_end: $time_end, finished: $finished,
    priority: $priority, file: $file
  ) {{ {TASK_FIELDS} }}
}}
"""

CREATE_WEEK = f"""
mutation CreateWeek(
  $year: Int!, $numweek: Int!, $color: String!, $description: String!, $priority: Int!, $link: String!
) {{
  createWeek(
    year: $year, numweek: $numweek, color: $color, description: $description, priority: $priority, link: $link
  ) {{ {WEEK_FIELDS} }}
}}
"""

UPDATE_WEEK = f"""
mutation UpdateWeek(
  $id: ID!, $year: Int!, $numweek: Int!, $color: String!, $description: String!, $priority: Int!, $link: String!
) {{
  updateWeek(
    id: $id, year: $year, numweek: $numweek, color: $color, description: $description,
    priority: $priority, link: $link
  ) {{ {WEEK_FIELDS} }}
}}
"""


@pytest.fixture
def gql(client, namespace):
    def _gql(query, variables=None, status=200):
        body = {"query": query}
        if variables is not None:
            body["variables"] = variables
        resp = client.post(namespace, json=body)
        assert resp.status_code == status, resp.get_json()
        return resp.get_json()

    return _gql


@pytest.fixture
def created(gql, task_fields):
    return gql(CREATE_TASK, task_fields)["data"]["createTask"]


def _nothing_published(subscription):
    with pytest.raises(queue.Empty):
        subscription.get(timeout=0)
    return True


class TestTaskOperations:
    def test_plain_query_document(self, gql):
        assert gql("{ tasks { id } }") == {"data": {"tasks": []}}

    def test_create_then_query_back(self, gql, bus, task_fields):
        subscription = bus.subscribe(TASK_ADDED)

        created = gql(CREATE_TASK, task_fields)["data"]["createTask"]

        assert created == dict(task_fields, id=created["id"])
        assert gql(f"{{ tasks {{ {TASK_FIELDS} }} }}")["data"]["tasks"] == [created]
        assert subscription.get(timeout=1).payload == created
        assert _nothing_published(subscription)

    def test_field_selection_is_honoured(self, gql, created):
        tasks = gql("query { tasks { id name } }")["data"]["tasks"]
        assert tasks == [{"id": created["id"], "name": created["name"]}]

    def test_update_only_priority(self, gql, bus, created):
        subscription = bus.subscribe(TASK_UPDATED)

        query = f"mutation($id: ID!) {{ updateTask(id: $id, priority: 7) {{ {TASK_FIELDS} }} }}"
        updated = gql(query, {"id": created["id"]})["data"]["updateTask"]

        assert updated == dict(created, priority=7)
        assert subscription.get(timeout=1).payload == updated

    def test_update_can_clear_file(self, gql, task_fields):
        task = gql(CREATE_TASK, dict(task_fields, file="notes.pdf"))["data"]["createTask"]
        query = "mutation($id: ID!) { updateTask(id: $id, file: null) { file name } }"
        assert gql(query, {"id": task["id"]})["data"]["updateTask"] == {"file": None, "name": task["name"]}

    def test_null_on_required_field_is_rejected(self, gql, bus, created):
        subscription = bus.subscribe(TASK_UPDATED)
        query = "mutation($id: ID!) { updateTask(id: $id, name: null) { id } }"

        body = gql(query, {"id": created["id"]})

        assert body["data"] == {"updateTask": None}
        assert body["errors"][0]["extensions"]["code"] == "VALIDATION_ERROR"
        assert _nothing_published(subscription)

    def test_update_missing_returns_null(self, gql, bus):
        subscription = bus.subscribe(TASK_UPDATED)
        body = gql('mutation { updateTask(id: "missing", priority: 1) { id } }')
        assert body == {"data": {"updateTask": None}}
        assert _nothing_published(subscription)

    def test_delete_missing_returns_null_without_event(self, gql, bus):
        subscription = bus.subscribe(TASK_DELETED)
        assert gql('mutation { deleteTask(id: "missing") { id } }') == {"data": {"deleteTask": None}}
        assert _nothing_published(subscription)

    def test_delete_returns_entity(self, gql, created):
        query = f"mutation($id: ID!) {{ deleteTask(id: $id) {{ {TASK_FIELDS} }} }}"
        assert gql(query, {"id": created["id"]})["data"]["deleteTask"] == created
        assert gql("{ tasks { id } }")["data"]["tasks"] == []

    def test_tasks_query_filters(self, gql, task_fields):
        gql(CREATE_TASK, task_fields)
        gql(CREATE_TASK, dict(task_fields, yearweek="2024-W20"))
        tasks = gql('{ tasks(yearweek: "2024-W20") { yearweek } }')["data"]["tasks"]
        assert tasks == [{"yearweek": "2024-W20"}]


class TestWeekOperations:
    def test_week_lifecycle(self, gql, bus, week_fields):
        subscription = bus.subscribe({TASK_ADDED, TASK_UPDATED, TASK_DELETED})

        week = gql(CREATE_WEEK, week_fields)["data"]["createWeek"]
        replaced = gql(UPDATE_WEEK, dict(week_fields, id=week["id"], color="#FF0000"))["data"]["updateWeek"]
        assert replaced == dict(week, color="#FF0000")
        assert gql(f"{{ weeks(year: 2024) {{ {WEEK_FIELDS} }} }}")["data"]["weeks"] == [replaced]
        query = f"mutation($id: ID!) {{ deleteWeek(id: $id) {{ {WEEK_FIELDS} }} }}"
        assert gql(query, {"id": week["id"]})["data"]["deleteWeek"] == replaced

        assert _nothing_published(subscription)

    def test_update_week_requires_every_field(self, gql):
        body = gql('mutation { updateWeek(id: "x", color: "#fff") { id } }', status=400)
        assert "data" not in body
        assert body["errors"]


class TestErrors:
    def test_missing_required_variable_is_rejected_before_execution(self, client, namespace, bus, task_fields):
        subscription = bus.subscribe(TASK_ADDED)
        task_fields.pop("name")

        resp = client.post(namespace, json={"query": CREATE_TASK, "variables": task_fields})

        body = resp.get_json()
        assert resp.status_code in (200, 400)
        assert body.get("data") is None
        assert "$name" in body["errors"][0]["message"]
        assert client.post(namespace, json={"query": "{ tasks { id } }"}).get_json()["data"]["tasks"] == []
        assert _nothing_published(subscription)

    def test_model_validation_error(self, gql, bus, task_fields):
        subscription = bus.subscribe(TASK_ADDED)

        body = gql(CREATE_TASK, dict(task_fields, name=""))

        assert body["data"] is None
        error = body["errors"][0]
        assert error["path"] == ["createTask"]
        assert error["extensions"]["code"] == "VALIDATION_ERROR"
        assert error["extensions"]["details"][0]["loc"] == ["name"]
        assert _nothing_published(subscription)

    def test_unknown_field(self, gql):
        body = gql("mutation { dropEverything { id } }", status=400)
        assert "dropEverything" in body["errors"][0]["message"]

    def test_syntax_error(self, gql):
        body = gql("{ tasks { id ", status=400)
        assert body["errors"][0]["message"].startswith("Syntax Error")

    def test_subscriptions_are_not_executable_over_http(self, gql):
        body = gql("subscription { taskAdded { id } }", status=400)
        assert "subscription" in body["errors"][0]["message"].lower()

    def test_body_must_be_an_object(self, client, namespace):
        resp = client.post(namespace, json=["{ tasks { id } }"])
        assert resp.status_code == 400
        assert resp.get_json()["errors"]

    def test_store_unavailable(self, gql, bus, task_fields, monkeypatch):
        subscription = bus.subscribe(TASK_ADDED)

        def _boom():
            raise OperationalError("INSERT", {}, Exception("unable to open database file"))

        monkeypatch.setattr(db.session, "commit", _boom)

        body = gql(CREATE_TASK, task_fields, status=503)

        assert body["errors"][0]["extensions"]["code"] == "STORE_UNAVAILABLE"
        assert _nothing_published(subscription)


def test_type_definitions_are_served(client, namespace):
    resp = client.get(namespace)

    assert resp.status_code == 200
    assert resp.mimetype == "text/plain"
    sdl = resp.get_data(as_text=True)
    for root in ("type Query {", "type Mutation {", "type Subscription {"):
        assert root in sdl
    assert "createTask(" in sdl
