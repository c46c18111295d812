"""Operation schema: weeks, tasks and task subscriptions."""

from __future__ import annotations

from ariadne import MutationType, QueryType, SubscriptionType, make_executable_schema
from graphql import GraphQLSchema

from weekplanner.core.operations.executor import bind_resolver, resolve_event
from weekplanner.core.operations.registry import (
    MUTATION,
    QUERY,
    SUBSCRIPTION,
    Operation,
    OperationRegistry,
)
from weekplanner.domains.tasks import services as task_services
from weekplanner.domains.tasks.events import SUBSCRIPTION_TOPICS
from weekplanner.domains.tasks.schemas import TaskCreate, TaskId, TaskListFilter, TaskPatch, TaskResponse
from weekplanner.domains.weeks import services as week_services
from weekplanner.domains.weeks.schemas import WeekCreate, WeekId, WeekListFilter, WeekReplace, WeekResponse


def build_registry() -> OperationRegistry:
    registry = OperationRegistry()
    for op in _week_operations() + _task_operations():
        registry.register(op)
    registry.validate()
    return registry


def _week_operations() -> list:
    return [
        Operation(
            "weeks",
            QUERY,
            WeekResponse,
            input_model=WeekListFilter,
            resolver=lambda bus, args: week_services.list_weeks(year=args.year),
            many=True,
        ),
        Operation(
            "createWeek",
            MUTATION,
            WeekResponse,
            input_model=WeekCreate,
            resolver=lambda bus, args: week_services.create_week(**args.model_dump()),
        ),
        Operation(
            "updateWeek",
            MUTATION,
            WeekResponse,
            input_model=WeekReplace,
            resolver=lambda bus, args: week_services.replace_week(args.id, **args.model_dump(exclude={"id"})),
            nullable=True,
        ),
        Operation(
            "deleteWeek",
            MUTATION,
            WeekResponse,
            input_model=WeekId,
            resolver=lambda bus, args: week_services.delete_week(args.id),
            nullable=True,
        ),
    ]


def _task_operations() -> list:
    operations = [
        Operation(
            "tasks",
            QUERY,
            TaskResponse,
            input_model=TaskListFilter,
            resolver=lambda bus, args: task_services.list_tasks(yearweek=args.yearweek, dayofweek=args.dayofweek),
            many=True,
        ),
        Operation(
            "createTask",
            MUTATION,
            TaskResponse,
            input_model=TaskCreate,
            resolver=lambda bus, args: task_services.create_task(bus, **args.model_dump()),
        ),
        Operation(
            "updateTask",
            MUTATION,
            TaskResponse,
            input_model=TaskPatch,
            resolver=lambda bus, args: task_services.update_task(bus, args.id, **args.changes()),
            nullable=True,
        ),
        Operation(
            "deleteTask",
            MUTATION,
            TaskResponse,
            input_model=TaskId,
            resolver=lambda bus, args: task_services.delete_task(bus, args.id),
            nullable=True,
        ),
    ]
    for name, topic in SUBSCRIPTION_TOPICS.items():
        operations.append(Operation(name, SUBSCRIPTION, TaskResponse, topic=topic, nullable=True))
    return operations


def build_schema(registry: OperationRegistry) -> GraphQLSchema:
    """Bind every registry operation onto the SDL generated from its models."""
    roots = {QUERY: QueryType(), MUTATION: MutationType(), SUBSCRIPTION: SubscriptionType()}
    for op in registry:
        resolver = resolve_event if op.kind == SUBSCRIPTION else bind_resolver(op)
        roots[op.kind].set_field(op.name, resolver)
    bindables = [root for kind, root in roots.items() if registry.of_kind(kind)]
    return make_executable_schema(registry.type_defs(), *bindables)
