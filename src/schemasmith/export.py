"""Export a generated schema as a ``graphql-core`` ``GraphQLSchema``."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict

import graphql
import structlog

from schemasmith.generator import GeneratedSchema
from schemasmith.kernel.graph import (
    EnumType,
    FieldDefinition,
    InputObjectType,
    InterfaceType,
    ListOf,
    NonNull,
    ObjectType,
    ScalarType,
    UnionType,
)

logger = structlog.get_logger(__name__)

SPECIFIED_SCALARS = dict(graphql.specified_scalar_types)


class _Exporter:
    """Converts graph types once each; fields are thunks so cycles need no ordering."""

    def __init__(self, schema: GeneratedSchema):
        self.schema = schema
        self._cache: Dict[int, graphql.GraphQLNamedType] = {}

    def type(self, graph_type: Any) -> graphql.GraphQLType:
        if isinstance(graph_type, NonNull):
            return graphql.GraphQLNonNull(self.type(graph_type.of_type))
        if isinstance(graph_type, ListOf):
            return graphql.GraphQLList(self.type(graph_type.of_type))
        key = id(graph_type)
        if key not in self._cache:
            self._cache[key] = self._named(graph_type)
        return self._cache[key]

    def _named(self, graph_type: Any) -> graphql.GraphQLNamedType:
        if isinstance(graph_type, ScalarType):
            if graph_type.name in SPECIFIED_SCALARS:
                return SPECIFIED_SCALARS[graph_type.name]
            return graphql.GraphQLScalarType(
                graph_type.name,
                serialize=graph_type.serialize,
                parse_value=graph_type.parse_value,
                description=graph_type.description or None,
            )
        if isinstance(graph_type, EnumType):
            return graphql.GraphQLEnumType(
                graph_type.name,
                {
                    name: graphql.GraphQLEnumValue(
                        value.value,
                        description=value.description or None,
                        deprecation_reason=value.deprecation_reason,
                    )
                    for name, value in graph_type.values.items()
                },
                description=graph_type.description or None,
            )
        if isinstance(graph_type, ObjectType):
            return graphql.GraphQLObjectType(
                graph_type.name,
                lambda: self._fields(graph_type),
                interfaces=lambda: [self.type(i) for i in graph_type.interfaces],
                description=graph_type.description or None,
            )
        if isinstance(graph_type, InterfaceType):
            return graphql.GraphQLInterfaceType(
                graph_type.name,
                lambda: self._fields(graph_type),
                interfaces=lambda: [self.type(i) for i in graph_type.interfaces],
                resolve_type=self._resolve_type(graph_type.type_resolver),
                description=graph_type.description or None,
            )
        if isinstance(graph_type, UnionType):
            return graphql.GraphQLUnionType(
                graph_type.name,
                lambda: [self.type(m) for m in graph_type.members],
                resolve_type=self._resolve_type(graph_type.type_resolver),
                description=graph_type.description or None,
            )
        if isinstance(graph_type, InputObjectType):
            return graphql.GraphQLInputObjectType(
                graph_type.name,
                lambda: {
                    name: graphql.GraphQLInputField(
                        self.type(f.type),
                        default_value=self._default(f.default) if f.has_default else graphql.Undefined,
                        description=f.description or None,
                    )
                    for name, f in graph_type.fields.items()
                },
                description=graph_type.description or None,
            )
        raise TypeError(f"Cannot export {graph_type!r}")

    def _resolve_type(self, type_resolver):
        type_resolver = type_resolver or self.schema.type_resolver

        def resolve_type(value, info, abstract_type):
            object_type = type_resolver(value)
            return object_type.name if object_type is not None else None

        return resolve_type

    def _default(self, value: Any) -> Any:
        if value is None or isinstance(value, (Enum, str, int, float, bool)):
            return value
        return self.schema.value_mapper.to_output_value(value)

    def _fields(self, graph_type) -> Dict[str, graphql.GraphQLField]:
        return {name: self._field(f) for name, f in graph_type.fields.items()}

    def _field(self, definition: FieldDefinition, subscription: bool = False) -> graphql.GraphQLField:
        args = {
            a.name: graphql.GraphQLArgument(
                self.type(a.type),
                default_value=self._default(a.default) if a.has_default else graphql.Undefined,
                description=a.description or None,
            )
            for a in definition.arguments
        }

        def resolve(source, info, **arguments):
            return definition.resolve(source, **arguments)

        if subscription:
            return graphql.GraphQLField(
                self.type(definition.type),
                args,
                resolve=lambda event, info, **arguments: event,
                subscribe=resolve,
                description=definition.description or None,
                deprecation_reason=definition.deprecation_reason,
            )
        return graphql.GraphQLField(
            self.type(definition.type),
            args,
            resolve=resolve,
            description=definition.description or None,
            deprecation_reason=definition.deprecation_reason,
        )

    def root(self, root: ObjectType, subscription: bool = False) -> graphql.GraphQLObjectType:
        exported = graphql.GraphQLObjectType(
            root.name,
            lambda: {name: self._field(f, subscription) for name, f in root.fields.items()},
            description=root.description or None,
        )
        self._cache[id(root)] = exported
        return exported


def to_graphql_schema(schema: GeneratedSchema) -> graphql.GraphQLSchema:
    """Build an executable ``GraphQLSchema``.

    Every mapped type is included, so implementations only reachable
    through an interface are still part of the schema.
    """
    exporter = _Exporter(schema)
    query = exporter.root(schema.query) if schema.query is not None else None
    mutation = exporter.root(schema.mutation) if schema.mutation is not None else None
    subscription = (
        exporter.root(schema.subscription, subscription=True) if schema.subscription is not None else None
    )
    roots = {id(r) for r in (schema.query, schema.mutation, schema.subscription) if r is not None}
    types = [
        exporter.type(t)
        for t in list(schema.output_types.values()) + list(schema.input_types.values())
        if id(t) not in roots
    ]
    logger.debug("Exporting schema", types=len(types))
    return graphql.GraphQLSchema(query=query, mutation=mutation, subscription=subscription, types=types)
