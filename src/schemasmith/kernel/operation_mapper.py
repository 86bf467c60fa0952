"""Operation mapper: turns discovered operations into root and nested fields."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from schemasmith.markers import ID as ID_TYPE
from schemasmith.markers import OperationKind

from . import graph
from .graph import ArgumentDefinition, FieldDefinition, Namespace, NonNull, ObjectType
from .introspection import async_item_type, is_none_type, strip_annotated, unwrap_optional
from .operations import Operation

logger = structlog.get_logger(__name__)

ROOT_TYPE_NAMES = {
    OperationKind.QUERY: "Query",
    OperationKind.MUTATION: "Mutation",
    OperationKind.SUBSCRIPTION: "Subscription",
}


class OperationResolver:
    """Field resolver for an operation: converts raw arguments, then dispatches to the best overload."""

    def __init__(self, operation: Operation, environment):
        self.operation = operation
        self.environment = environment
        self._host_types = {a.name: a.host_type for a in operation.arguments}
        self._void = is_none_type(operation.return_type)

    def __call__(self, source: Any, **arguments: Any) -> Any:
        value_mapper = self.environment.value_mapper
        if value_mapper is not None:
            arguments = {
                name: value_mapper.to_input_value(value, self._host_types.get(name, Any))
                for name, value in arguments.items()
            }
        result = self.operation.invoke(source, **arguments)
        return True if self._void else result

    def __repr__(self) -> str:
        return f"OperationResolver({self.operation.name!r})"


class OperationMapper:
    """Maps every operation of a build context into root types and fields.

    Construction does the whole job: roots are built, the Node query is
    added when some type implements Node, and all type references are
    resolved last.
    """

    def __init__(self, context):
        self.context = context
        self.roots: Dict[OperationKind, Optional[ObjectType]] = {}
        for kind in OperationKind:
            self.roots[kind] = self._root_type(kind)
        if self.context.node_used and self.context.relay_config.infer_node_interface:
            self._add_node_query()
        self.context.resolve_type_references()

    @property
    def query_root(self) -> Optional[ObjectType]:
        return self.roots[OperationKind.QUERY]

    @property
    def mutation_root(self) -> Optional[ObjectType]:
        return self.roots[OperationKind.MUTATION]

    @property
    def subscription_root(self) -> Optional[ObjectType]:
        return self.roots[OperationKind.SUBSCRIPTION]

    def _root_type(self, kind: OperationKind) -> Optional[ObjectType]:
        operations = self.context.operation_repository.operations(kind)
        if not operations:
            return None
        name = ROOT_TYPE_NAMES[kind]
        self.context.register_type_name(name)
        root = ObjectType(name)
        for operation in operations:
            root.fields[operation.name] = self.to_field(operation)
        self.context.complete_type(root)
        logger.debug("Mapped root type", type_name=name, fields=len(root.fields))
        return root

    def to_field(self, operation: Operation) -> FieldDefinition:
        return_type = operation.return_type
        if operation.kind is OperationKind.SUBSCRIPTION:
            return_type = async_item_type(return_type)
        return FieldDefinition(
            name=operation.name,
            type=self.to_output_type(return_type),
            arguments=[self.to_argument(a) for a in operation.arguments],
            description=operation.description,
            deprecation_reason=operation.deprecation_reason,
            complexity=operation.complexity,
            resolver=OperationResolver(operation, self.context.environment),
            operation=operation,
        )

    def to_argument(self, argument) -> ArgumentDefinition:
        return ArgumentDefinition(
            name=argument.name,
            type=self.to_input_type(argument.host_type, nullable=argument.nullable),
            description=argument.description,
            default=argument.default,
            host_type=argument.host_type,
            parameter_name=argument.parameter_name,
        )

    def nested_fields(self, host_type: type) -> List[FieldDefinition]:
        return [self.to_field(op) for op in self.context.operation_repository.nested_operations(host_type)]

    def to_output_type(self, host_type: Any, nullable: bool = False) -> Any:
        return self._map(host_type, nullable, Namespace.OUTPUT)

    def to_input_type(self, host_type: Any, nullable: bool = False) -> Any:
        return self._map(host_type, nullable, Namespace.INPUT)

    def _map(self, host_type: Any, nullable: bool, namespace: Namespace) -> Any:
        host_type, _ = strip_annotated(host_type)
        host_type, optional = unwrap_optional(host_type)
        mapper, host_type = self.context.type_mappers.get_mapper(host_type, self.context, namespace)
        if namespace is Namespace.OUTPUT:
            graph_type = mapper.to_output(host_type, self, self.context)
        else:
            graph_type = mapper.to_input(host_type, self, self.context)
        return graph_type if nullable or optional else NonNull(graph_type)

    def _add_node_query(self) -> None:
        """Add ``node(id: ID!): Node`` dispatching to each Node type's single-ID lookup query."""
        node = self.context.node
        node_query = self.context.node_query
        implementing = {t.name for t in self.context.type_repository.implementations(node.name)}
        for operation in self.context.operation_repository.query_operations:
            type_name = self._lookup_target(operation)
            if type_name in implementing:
                node_query.register(type_name, operation)
        query_name = self.context.relay_config.node_query_name
        root = self.query_root
        if root is None:
            self.context.register_type_name(ROOT_TYPE_NAMES[OperationKind.QUERY])
            root = ObjectType(ROOT_TYPE_NAMES[OperationKind.QUERY])
            self.context.complete_type(root)
            self.roots[OperationKind.QUERY] = root
        if query_name in root.fields:
            logger.warning("Node query name already taken, not adding it", query_name=query_name)
            return
        root.fields[query_name] = FieldDefinition(
            name=query_name,
            type=node,
            arguments=[ArgumentDefinition(
                "id", NonNull(self.context.type_repository.install_shared(graph.ID)),
                description="The global ID of the object",
            )],
            description="Fetches an object given its global ID",
            resolver=node_query,
        )
        logger.debug("Added node query", lookups=sorted(node_query.lookups))

    def _lookup_target(self, operation: Operation) -> Optional[str]:
        if len(operation.arguments) != 1:
            return None
        argument_type, _ = unwrap_optional(operation.arguments[0].host_type)
        if argument_type is not ID_TYPE:
            return None
        return_type, _ = unwrap_optional(operation.return_type)
        if not isinstance(return_type, type):
            return None
        return self.context.type_info_generator.generate_type_name(return_type)
