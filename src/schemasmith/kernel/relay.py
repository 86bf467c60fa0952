"""Relay Node interface: identity lookup by opaque global id."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, Optional

import structlog

from .graph import ID, FieldDefinition, InterfaceType, NonNull, ObjectType, ScalarType, unwrap

logger = structlog.get_logger(__name__)

NODE_INTERFACE_NAME = "Node"


def to_global_id(type_name: str, local_id: Any) -> str:
    return base64.b64encode(f"{type_name}:{local_id}".encode("utf-8")).decode("ascii")


def from_global_id(global_id: str) -> tuple[str, str]:
    """Split a global id into ``(type_name, local_id)``."""
    try:
        decoded = base64.b64decode(global_id.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise ValueError(f"{global_id!r} is not a valid global id") from e
    type_name, sep, local_id = decoded.partition(":")
    if not sep or not type_name:
        raise ValueError(f"{global_id!r} is not a valid global id")
    return type_name, local_id


def node_interface(type_resolver=None) -> InterfaceType:
    return InterfaceType(
        NODE_INTERFACE_NAME,
        "An object with a globally unique ID",
        fields={"id": FieldDefinition("id", NonNull(ID), description="The ID of the object")},
        type_resolver=type_resolver,
    )


def is_relay_node_interface(graph_type: Any) -> bool:
    """True for an interface honouring the Node contract: ``Node { id: ID! }``."""
    if not isinstance(graph_type, InterfaceType) or graph_type.name != NODE_INTERFACE_NAME:
        return False
    id_field = graph_type.fields.get("id")
    if id_field is None or not isinstance(id_field.type, NonNull):
        return False
    inner = unwrap(id_field.type)
    return isinstance(inner, ScalarType) and inner.name == ID.name


def has_node_id(object_type: ObjectType) -> bool:
    id_field = object_type.fields.get("id")
    if id_field is None or not isinstance(id_field.type, NonNull):
        return False
    inner = id_field.type.of_type
    return isinstance(inner, ScalarType) and inner.name == ID.name


class GlobalIdResolver:
    """Wraps an ``id`` field so it returns the global id of its object."""

    def __init__(self, type_name: str, delegate: FieldDefinition):
        self.type_name = type_name
        self.delegate = delegate

    def __call__(self, source: Any, **arguments: Any) -> str:
        return to_global_id(self.type_name, self.delegate.resolve(source, **arguments))


class NodeQueryResolver:
    """Resolves ``node(id:)``: decodes the global id and calls the lookup registered for its type."""

    def __init__(self):
        self.lookups: Dict[str, Any] = {}

    def register(self, type_name: str, operation) -> None:
        self.lookups.setdefault(type_name, operation)

    def __call__(self, source: Any, id: str) -> Optional[Any]:
        type_name, local_id = from_global_id(id)
        operation = self.lookups.get(type_name)
        if operation is None:
            logger.debug("No node lookup registered", type_name=type_name)
            return None
        argument = operation.arguments[0]
        return operation.invoke(source, **{argument.name: local_id})
