"""Type mapper pipeline.

Each mapper turns one family of host types into output and input graph
types. ``TypeMapperRepository`` picks the first mapper whose ``supports``
accepts a host type. Named types go through ``CachingMapper``: a name
already known in its namespace comes back as a ``TypeReference`` instead
of being mapped again, which is what breaks cycles.
"""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import inspect
import typing
import uuid
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple

import structlog

from schemasmith.markers import ID as ID_TYPE
from schemasmith.markers import NO_DEFAULT

from . import graph
from .errors import TypeMappingError
from .graph import (
    EnumType,
    EnumValue,
    FieldDefinition,
    InputFieldDefinition,
    InputObjectType,
    InterfaceType,
    ListOf,
    Namespace,
    NonNull,
    ObjectType,
    TypeReference,
    UnionType,
)
from .introspection import Member, is_new_type, is_union, iter_members, list_item_type
from .relay import GlobalIdResolver, has_node_id

logger = structlog.get_logger(__name__)

SCALARS: Dict[Any, graph.ScalarType] = {
    int: graph.INT,
    float: graph.FLOAT,
    str: graph.STRING,
    bool: graph.BOOLEAN,
    ID_TYPE: graph.ID,
    datetime.datetime: graph.DATETIME,
    datetime.date: graph.DATE,
    datetime.time: graph.TIME,
    decimal.Decimal: graph.DECIMAL,
    uuid.UUID: graph.UUID,
    dict: graph.JSON,
    typing.Any: graph.JSON,
    type(None): graph.BOOLEAN,  # void mutations report success
}


def scalar_for(host_type: Any, scalars: Dict[Any, graph.ScalarType] = SCALARS):
    try:
        return scalars.get(host_type)
    except TypeError:  # unhashable annotation
        return None


class TypeMapper:
    """Maps one family of host types.

    ``to_output``/``to_input`` return a named graph type, a ``ListOf`` or a
    ``TypeReference``; nullability is decided by the caller.
    """
    fallback = False

    def supports(self, host_type: Any, context) -> bool:
        raise NotImplementedError

    def to_output(self, host_type: Any, operation_mapper, context) -> Any:
        raise NotImplementedError

    def to_input(self, host_type: Any, operation_mapper, context) -> Any:
        raise NotImplementedError


class ScalarMapper(TypeMapper):
    """Primitives and mapped scalars (date/time, decimal, UUID, JSON)."""

    def __init__(self, scalars: Dict[Any, graph.ScalarType] = None):
        self.scalars = dict(SCALARS if scalars is None else scalars)

    def supports(self, host_type, context) -> bool:
        if scalar_for(host_type, self.scalars) is not None:
            return True
        return typing.get_origin(host_type) in (dict, Mapping)

    def _map(self, host_type, context) -> graph.ScalarType:
        scalar = scalar_for(host_type, self.scalars) or graph.JSON
        return context.type_repository.install_shared(scalar)

    def to_output(self, host_type, operation_mapper, context):
        return self._map(host_type, context)

    def to_input(self, host_type, operation_mapper, context):
        return self._map(host_type, context)


class ListMapper(TypeMapper):
    """Homogeneous collections: ``list[T]``, ``Sequence[T]``, ``set[T]``, ``tuple[T, ...]``."""

    def supports(self, host_type, context) -> bool:
        return list_item_type(host_type) is not None

    def to_output(self, host_type, operation_mapper, context):
        return ListOf(operation_mapper.to_output_type(list_item_type(host_type)))

    def to_input(self, host_type, operation_mapper, context):
        return ListOf(operation_mapper.to_input_type(list_item_type(host_type)))


class EnumMapper(TypeMapper):
    """``Enum`` subclasses. One enum type serves both namespaces."""

    def supports(self, host_type, context) -> bool:
        return inspect.isclass(host_type) and issubclass(host_type, Enum)

    def _map(self, host_type, context, namespace: Namespace):
        name = context.type_info_generator.generate_type_name(host_type)
        # The enum occupies its name in both namespaces.
        context.validator.check_output(name, host_type)
        context.validator.check_input(name, host_type)
        existing = context.type_repository.get(name, namespace)
        if existing is not None:
            return existing
        enum_type = EnumType(
            name,
            context.type_info_generator.generate_type_description(host_type),
            values={member.name: EnumValue(member.name, member) for member in host_type},
            host_type=host_type,
        )
        logger.debug("Mapped enum type", type_name=name)
        return context.type_repository.install_shared(enum_type)

    def to_output(self, host_type, operation_mapper, context):
        return self._map(host_type, context, Namespace.OUTPUT)

    def to_input(self, host_type, operation_mapper, context):
        return self._map(host_type, context, Namespace.INPUT)


class CachingMapper(TypeMapper):
    """Named types: reserve the name, build, complete. Revisits yield the known type or a reference."""

    def output_name(self, host_type, context) -> str:
        return context.type_info_generator.generate_type_name(host_type)

    def input_name(self, host_type, context) -> str:
        return context.type_info_generator.generate_input_type_name(host_type)

    def to_output(self, host_type, operation_mapper, context):
        name = self.output_name(host_type, context)
        context.validator.check_output(name, host_type)
        if context.is_known_type(name):
            return context.get_type(name) or TypeReference(name, Namespace.OUTPUT)
        context.register_type_name(name)
        graph_type = self.build_output(name, host_type, operation_mapper, context)
        context.complete_type(graph_type)
        logger.debug("Mapped output type", type_name=name, mapper=type(self).__name__)
        return graph_type

    def to_input(self, host_type, operation_mapper, context):
        name = self.input_name(host_type, context)
        context.validator.check_input(name, host_type)
        if context.is_known_input_type(name):
            return context.type_repository.get(name, Namespace.INPUT) or TypeReference(name, Namespace.INPUT)
        context.register_input_type_name(name)
        graph_type = self.build_input(name, host_type, operation_mapper, context)
        context.complete_input_type(graph_type)
        logger.debug("Mapped input type", type_name=name, mapper=type(self).__name__)
        return graph_type

    def build_output(self, name, host_type, operation_mapper, context):
        raise NotImplementedError

    def build_input(self, name, host_type, operation_mapper, context):
        raise NotImplementedError


class UnionMapper(CachingMapper):
    """``Union[A, B]`` of object classes, named ``AOrB``. Output only.

    Scalars, enums and interfaces cannot be union members; such unions are
    left to the fallback mapper, or fail as unmappable.
    """

    def supports(self, host_type, context) -> bool:
        return is_union(host_type) and all(_is_object_class(a, context) for a in typing.get_args(host_type))

    def output_name(self, host_type, context) -> str:
        return "Or".join(
            context.type_info_generator.generate_type_name(arg) for arg in typing.get_args(host_type)
        )

    def build_output(self, name, host_type, operation_mapper, context):
        members = [operation_mapper.to_output_type(arg, nullable=True) for arg in typing.get_args(host_type)]
        return UnionType(name, members=members, host_type=host_type, type_resolver=context.type_resolver)

    def to_input(self, host_type, operation_mapper, context):
        raise TypeMappingError(host_type, Namespace.INPUT.value, "unions cannot be used as input")


class InterfaceMapper(CachingMapper):
    """Classes selected by the build's interface strategy. Their implementations are mapped alongside."""

    def supports(self, host_type, context) -> bool:
        return inspect.isclass(host_type) and context.interface_strategy.supports(host_type)

    def build_output(self, name, host_type, operation_mapper, context):
        interface = InterfaceType(
            name,
            context.type_info_generator.generate_type_description(host_type),
            host_type=host_type,
            type_resolver=context.type_resolver,
        )
        interface.fields.update(_by_name(operation_mapper.nested_fields(host_type)))
        for base in context.interface_strategy.interfaces(host_type):
            interface.interfaces.append(operation_mapper.to_output_type(base, nullable=True))
        for implementation in context.interface_strategy.implementations(host_type, context.base_packages):
            implemented = operation_mapper.to_output_type(implementation, nullable=True)
            context.type_repository.register_implementation(name, implemented.name)
        return interface

    def build_input(self, name, host_type, operation_mapper, context):
        """The union of all implementations' fields, plus the discriminator field."""
        fields: Dict[str, InputFieldDefinition] = _by_name(input_fields(host_type, operation_mapper))
        for implementation in context.interface_strategy.implementations(host_type, context.base_packages):
            for definition in input_fields(implementation, operation_mapper):
                if definition.name not in fields:
                    definition.type = _nullable(definition.type)
                    fields[definition.name] = definition
        discriminator = context.settings.type_metadata_field
        fields[discriminator] = InputFieldDefinition(
            discriminator,
            NonNull(context.type_repository.install_shared(graph.STRING)),
            description="Name of the concrete type",
        )
        return InputObjectType(
            name,
            context.type_info_generator.generate_type_description(host_type),
            fields=fields,
            host_type=host_type,
        )


class ObjectTypeMapper(CachingMapper):
    """Structured classes: dataclasses, pydantic models, plain annotated classes."""

    def supports(self, host_type, context) -> bool:
        return inspect.isclass(host_type) and host_type.__module__ != "builtins"

    def build_output(self, name, host_type, operation_mapper, context):
        object_type = ObjectType(
            name,
            context.type_info_generator.generate_type_description(host_type),
            host_type=host_type,
        )
        # Interfaces first: recursive fields may already need the implementation registered.
        for base in context.interface_strategy.interfaces(host_type):
            interface = operation_mapper.to_output_type(base, nullable=True)
            object_type.interfaces.append(interface)
            context.type_repository.register_implementation(interface.name, name)
        object_type.fields.update(_by_name(operation_mapper.nested_fields(host_type)))
        if context.relay_config.infer_node_interface and has_node_id(object_type):
            self._implement_node(object_type, context)
        return object_type

    def _implement_node(self, object_type: ObjectType, context) -> None:
        node = context.use_node_interface()
        if all(getattr(i, "name", None) != node.name for i in object_type.interfaces):
            object_type.interfaces.append(node)
        context.type_repository.register_implementation(node.name, object_type.name)
        id_field = object_type.fields["id"]
        delegate = FieldDefinition(id_field.name, id_field.type, resolver=id_field.resolver)
        id_field.resolver = GlobalIdResolver(object_type.name, delegate)

    def build_input(self, name, host_type, operation_mapper, context):
        return InputObjectType(
            name,
            context.type_info_generator.generate_type_description(host_type),
            fields=_by_name(input_fields(host_type, operation_mapper)),
            host_type=host_type,
        )


class UnknownTypeMapper(TypeMapper):
    """Last resort: anything else becomes the ``JSON`` scalar."""
    fallback = True

    def supports(self, host_type, context) -> bool:
        return True

    def to_output(self, host_type, operation_mapper, context):
        return context.type_repository.install_shared(graph.JSON)

    def to_input(self, host_type, operation_mapper, context):
        return context.type_repository.install_shared(graph.JSON)


def _is_object_class(host_type: Any, context) -> bool:
    if not inspect.isclass(host_type) or host_type.__module__ == "builtins":
        return False
    if scalar_for(host_type) is not None or issubclass(host_type, Enum):
        return False
    return not context.interface_strategy.supports(host_type)


def _by_name(definitions) -> dict:
    return {d.name: d for d in definitions}


def _nullable(graph_type: Any) -> Any:
    return graph_type.of_type if isinstance(graph_type, NonNull) else graph_type


def input_members(host_type: type, inclusion_strategy) -> List[Member]:
    """Annotated attributes of ``host_type`` that the inclusion strategy admits as input fields."""
    return [
        member for member in iter_members(host_type)
        if member.kind == "attribute" and inclusion_strategy.include_input_field(member, member.annotation)
    ]


def input_fields(host_type: type, operation_mapper) -> List[InputFieldDefinition]:
    """Input fields of a structured class: its included public annotated attributes."""
    defaults = field_defaults(host_type)
    inclusion_strategy = operation_mapper.context.operation_repository.inclusion_strategy
    result = []
    for member in input_members(host_type, inclusion_strategy):
        result.append(InputFieldDefinition(
            member.name,
            operation_mapper.to_input_type(member.annotation),
            default=defaults.get(member.name, NO_DEFAULT),
            host_type=member.annotation,
        ))
    return result


def field_defaults(host_type: type) -> Dict[str, Any]:
    """Plain default values of a class's fields; factories are not evaluated."""
    defaults: Dict[str, Any] = {}
    if dataclasses.is_dataclass(host_type):
        for f in dataclasses.fields(host_type):
            if f.default is not dataclasses.MISSING:
                defaults[f.name] = f.default
        return defaults
    model_fields = getattr(host_type, "model_fields", None)
    if isinstance(model_fields, dict):
        for name, info in model_fields.items():
            if not info.is_required() and info.default_factory is None:
                defaults[name] = info.default
        return defaults
    for klass in reversed(host_type.__mro__):
        for name in klass.__dict__.get("__annotations__", {}):
            if name in klass.__dict__:
                defaults[name] = klass.__dict__[name]
    return defaults


class TypeMapperRepository:
    """Ordered mapper list; the first mapper that supports a host type wins.

    A ``NewType`` nobody maps explicitly is mapped as its supertype, before
    any fallback mapper gets a chance.
    """

    def __init__(self, mappers: Sequence[TypeMapper]):
        self.mappers = list(mappers)

    def get_mapper(self, host_type: Any, context, namespace: Namespace) -> Tuple[TypeMapper, Any]:
        while True:
            for mapper in self.mappers:
                if mapper.fallback and is_new_type(host_type):
                    break
                if mapper.supports(host_type, context):
                    return mapper, host_type
            if is_new_type(host_type):
                host_type = host_type.__supertype__
                continue
            raise TypeMappingError(host_type, namespace.value)


def default_mappers() -> List[TypeMapper]:
    return [
        ScalarMapper(),
        ListMapper(),
        EnumMapper(),
        UnionMapper(),
        InterfaceMapper(),
        ObjectTypeMapper(),
    ]
