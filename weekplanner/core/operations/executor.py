"""GraphQL execution against the operation registry.

Queries and mutations run through ariadne's ``graphql_sync``. Subscription
documents are parsed and validated once when a stream opens; every bus event
is then executed against the same document with the event payload as root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

from ariadne import graphql_sync
from graphql import (
    DocumentNode,
    FieldNode,
    GraphQLError,
    GraphQLSchema,
    OperationDefinitionNode,
    OperationType,
    ValidationRule,
    execute_sync,
    get_operation_ast,
    parse,
    validate,
)
from pydantic import ValidationError

from weekplanner.core.errors import StoreUnavailable
from weekplanner.core.events.event_bus import EventBus
from weekplanner.core.operations.registry import Operation
from weekplanner.core.utils.validation import validation_details

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
INTERNAL_ERROR = "INTERNAL_ERROR"


class OperationError(Exception):
    """A GraphQL document that cannot be run; ``errors`` are formatted GraphQL errors."""

    def __init__(self, errors: Iterable[GraphQLError]) -> None:
        self.errors = [error.formatted for error in errors]
        super().__init__("; ".join(error["message"] for error in self.errors))


def serialize(op: Operation, result: Any) -> Any:
    if result is None:
        if op.nullable:
            return None
        raise GraphQLError(f"{op.name} returned no result", extensions={"code": INTERNAL_ERROR})
    if op.many:
        return [op.output_model.model_validate(item).model_dump() for item in result]
    return op.output_model.model_validate(result).model_dump()


def bind_resolver(op: Operation):
    """Adapt a registry resolver ``(bus, args)`` to a GraphQL field resolver."""

    def resolve(_root, info, **kwargs):
        bus = info.context["bus"]
        try:
            args = op.input_model.model_validate(kwargs) if op.input_model is not None else None
            result = op.resolver(bus, args)
        except ValidationError as exc:
            raise GraphQLError(
                "validation_error",
                extensions={"code": VALIDATION_ERROR, "details": validation_details(exc)},
            ) from exc
        except StoreUnavailable as exc:
            raise GraphQLError("store_unavailable", extensions={"code": STORE_UNAVAILABLE}) from exc
        except ValueError as exc:
            raise GraphQLError(str(exc), extensions={"code": VALIDATION_ERROR}) from exc
        return serialize(op, result)

    resolve.__name__ = f"resolve_{op.name}"
    return resolve


def resolve_event(payload, _info):
    return payload


class HttpOperationsOnly(ValidationRule):
    """Subscriptions are only served over the websocket namespace."""

    def enter_operation_definition(self, node: OperationDefinitionNode, *_args):
        if node.operation == OperationType.SUBSCRIPTION:
            self.report_error(GraphQLError("Subscriptions are served over the websocket endpoint", node))


def execute(schema: GraphQLSchema, data: Any, bus: EventBus, debug: bool = False) -> Tuple[int, dict]:
    """Run one query or mutation request and return ``(status, body)``.

    Documents that fail to parse or validate answer 400; a store outage
    answers 503; everything else, including field errors, answers 200.
    """
    success, result = graphql_sync(
        schema,
        data,
        context_value={"bus": bus},
        debug=debug,
        logger=__name__,
        validation_rules=[HttpOperationsOnly],
    )
    if not success:
        return 400, result
    codes = {(error.get("extensions") or {}).get("code") for error in result.get("errors") or ()}
    if STORE_UNAVAILABLE in codes:
        return 503, result
    return 200, result


@dataclass(frozen=True)
class SubscriptionRequest:
    field: str
    document: DocumentNode
    operation_name: Optional[str] = None
    variables: Optional[dict] = None


def prepare_subscription(schema: GraphQLSchema, payload: Any) -> SubscriptionRequest:
    """Parse and validate a ``{"query", "variables", "operationName"}`` subscription payload."""
    payload = payload if isinstance(payload, dict) else {}
    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        raise OperationError([GraphQLError("A subscription query string is required")])
    variables = payload.get("variables")
    if variables is not None and not isinstance(variables, dict):
        raise OperationError([GraphQLError("Query variables must be a JSON object")])
    operation_name = payload.get("operationName")

    try:
        document = parse(query)
    except GraphQLError as exc:
        raise OperationError([exc]) from exc
    errors = validate(schema, document)
    if errors:
        raise OperationError(errors)

    operation = get_operation_ast(document, operation_name)
    if operation is None:
        raise OperationError([GraphQLError(f"Unknown operation: {operation_name}")])
    if operation.operation != OperationType.SUBSCRIPTION:
        raise OperationError([GraphQLError("Only subscription operations can be streamed")])
    fields = [node for node in operation.selection_set.selections if isinstance(node, FieldNode)]
    if len(fields) != 1:
        raise OperationError([GraphQLError("A subscription must select exactly one root field")])
    return SubscriptionRequest(fields[0].name.value, document, operation_name, variables)


def execute_event(schema: GraphQLSchema, request: SubscriptionRequest, payload: Any, bus: EventBus) -> dict:
    """Execute a subscription document for one event; the payload is the root value."""
    result = execute_sync(
        schema,
        request.document,
        root_value=payload,
        context_value={"bus": bus},
        variable_values=request.variables,
        operation_name=request.operation_name,
    )
    body: dict = {"data": result.data}
    if result.errors:
        body["errors"] = [error.formatted for error in result.errors]
    return body
