"""Explicit operation schema for the query/mutation/subscription surface.

Each operation is a static entry: its name, kind, the pydantic model its
arguments are validated against, the pydantic model describing its result,
and either a resolver (queries, mutations) or a bus topic (subscriptions).
The GraphQL type definitions are generated from those models, and the
registry is checked once when the application is built.
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel

QUERY = "query"
MUTATION = "mutation"
SUBSCRIPTION = "subscription"
KINDS = (QUERY, MUTATION, SUBSCRIPTION)

ROOT_TYPES = {QUERY: "Query", MUTATION: "Mutation", SUBSCRIPTION: "Subscription"}

_SCALARS = {str: "String", int: "Int", float: "Float", bool: "Boolean"}


class SchemaError(ValueError):
    """The operation registry is inconsistent."""


def _unwrap_optional(annotation) -> Tuple[object, bool]:
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1 and len(args) < len(get_args(annotation)):
            return args[0], True
    return annotation, False


def _field_type(model: Type[BaseModel], name: str) -> str:
    annotation, optional = _unwrap_optional(model.model_fields[name].annotation)
    scalar = "ID" if name == "id" and annotation is str else _SCALARS.get(annotation)
    if scalar is None:
        raise SchemaError(f"{model.__name__}.{name}: no GraphQL scalar for {annotation!r}")
    return scalar if optional else f"{scalar}!"


def object_name(model: Type[BaseModel]) -> str:
    """``TaskResponse`` is exposed as ``Task``."""
    return model.__name__.removesuffix("Response")


def _is_model(value) -> bool:
    return isinstance(value, type) and issubclass(value, BaseModel)


@dataclass(frozen=True)
class Operation:
    name: str
    kind: str
    output_model: Type[BaseModel]
    input_model: Optional[Type[BaseModel]] = None
    resolver: Optional[Callable[..., object]] = None
    topic: Optional[str] = None
    many: bool = False
    nullable: bool = False

    def return_type(self) -> str:
        name = object_name(self.output_model)
        if self.many:
            return f"[{name}!]!"
        return name if self.nullable else f"{name}!"

    def signature(self) -> str:
        args = ""
        if self.input_model is not None and self.input_model.model_fields:
            args = "(%s)" % ", ".join(
                f"{field}: {_field_type(self.input_model, field)}" for field in self.input_model.model_fields
            )
        return f"{self.name}{args}: {self.return_type()}"


class OperationRegistry:
    def __init__(self) -> None:
        self._operations: Dict[str, Operation] = {}

    def register(self, operation: Operation) -> Operation:
        if operation.name in self._operations:
            raise SchemaError(f"duplicate operation: {operation.name}")
        self._operations[operation.name] = operation
        return operation

    def get(self, name: str) -> Operation | None:
        return self._operations.get(name)

    def of_kind(self, kind: str) -> List[Operation]:
        return [op for op in self._operations.values() if op.kind == kind]

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._operations.values())

    def __len__(self) -> int:
        return len(self._operations)

    def validate(self) -> None:
        for op in self:
            if op.kind not in KINDS:
                raise SchemaError(f"{op.name}: unknown kind {op.kind!r}")
            if not _is_model(op.output_model):
                raise SchemaError(f"{op.name}: output must be a pydantic model")
            if op.input_model is not None and not _is_model(op.input_model):
                raise SchemaError(f"{op.name}: input must be a pydantic model")
            if op.kind == SUBSCRIPTION:
                if not op.topic or op.resolver is not None:
                    raise SchemaError(f"{op.name}: subscriptions need a topic and no resolver")
                if op.many:
                    raise SchemaError(f"{op.name}: subscriptions yield single entities")
            elif op.resolver is None or op.topic is not None:
                raise SchemaError(f"{op.name}: {op.kind} operations need a resolver and no topic")
        if not self.of_kind(QUERY):
            raise SchemaError("at least one query operation is required")
        self.type_defs()

    def subscription_topics(self) -> Dict[str, str]:
        return {op.name: op.topic for op in self.of_kind(SUBSCRIPTION)}

    def type_defs(self) -> str:
        """Render the GraphQL SDL for every registered operation."""
        objects: Dict[str, Type[BaseModel]] = {}
        for op in self:
            name = object_name(op.output_model)
            if objects.setdefault(name, op.output_model) is not op.output_model:
                raise SchemaError(f"{op.name}: object type {name} is defined by two models")

        blocks = []
        for name, model in objects.items():
            fields = "\n".join(f"  {field}: {_field_type(model, field)}" for field in model.model_fields)
            blocks.append(f"type {name} {{\n{fields}\n}}")
        for kind in KINDS:
            operations = self.of_kind(kind)
            if operations:
                fields = "\n".join(f"  {op.signature()}" for op in operations)
                blocks.append(f"type {ROOT_TYPES[kind]} {{\n{fields}\n}}")
        return "\n\n".join(blocks) + "\n"
