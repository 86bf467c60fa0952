"""Tests for the type repository arena and reference resolution."""

import enum

import pytest

from schemasmith.kernel import graph
from schemasmith.kernel.errors import TypeNameCollisionError, UnresolvedTypeReferenceError
from schemasmith.kernel.graph import (
    EnumType,
    FieldDefinition,
    InputFieldDefinition,
    InputObjectType,
    ListOf,
    Namespace,
    NonNull,
    ObjectType,
    TypeReference,
)
from schemasmith.kernel.repository import TypeRepository, find_references


class Color(enum.Enum):
    RED = 1


class Base:
    pass


class Child(Base):
    pass


def test_reserving_a_name_twice_in_one_namespace_collides():
    repo = TypeRepository()
    repo.reserve("Foo", Namespace.OUTPUT)
    with pytest.raises(TypeNameCollisionError) as exc_info:
        repo.reserve("Foo", Namespace.OUTPUT)
    assert exc_info.value.name == "Foo"
    assert exc_info.value.namespace == "output"


def test_namespaces_are_independent():
    repo = TypeRepository()
    repo.reserve("Foo", Namespace.OUTPUT)
    repo.reserve("Foo", Namespace.INPUT)
    assert repo.is_known("Foo", Namespace.OUTPUT)
    assert repo.is_known("Foo", Namespace.INPUT)
    assert not repo.is_complete("Foo", Namespace.OUTPUT)
    assert repo.pending(Namespace.INPUT) == ["Foo"]


def test_cyclic_references_resolve_to_completed_types():
    repo = TypeRepository()
    repo.reserve("A", Namespace.OUTPUT)
    repo.reserve("B", Namespace.OUTPUT)
    a = ObjectType("A", fields={"b": FieldDefinition("b", NonNull(TypeReference("B")))})
    b = ObjectType("B", fields={"a": FieldDefinition("a", ListOf(NonNull(TypeReference("A"))))})
    repo.complete(a, Namespace.OUTPUT)
    repo.complete(b, Namespace.OUTPUT)

    assert len(find_references([a, b])) == 2
    repo.resolve_type_references()

    assert a.fields["b"].type.of_type is b
    assert b.fields["a"].type.of_type.of_type is a
    assert find_references([a, b]) == []
    assert repo.references_resolved

    repo.resolve_type_references()  # idempotent
    assert a.fields["b"].type.of_type is b


def test_input_references_resolve_in_input_namespace():
    repo = TypeRepository()
    repo.reserve("Node", Namespace.INPUT)
    node = InputObjectType("Node", fields={
        "next": InputFieldDefinition("next", TypeReference("Node", Namespace.INPUT)),
    })
    repo.complete(node, Namespace.INPUT)
    repo.resolve_type_references()
    assert node.fields["next"].type is node
    assert repo.get("Node") is None  # output namespace untouched


def test_pending_reservation_fails_resolution():
    repo = TypeRepository()
    repo.reserve("Ghost", Namespace.OUTPUT)
    with pytest.raises(UnresolvedTypeReferenceError, match="Ghost"):
        repo.resolve_type_references()


def test_dangling_reference_fails_resolution():
    repo = TypeRepository()
    holder = ObjectType("Holder", fields={"x": FieldDefinition("x", TypeReference("Missing"))})
    repo.complete(holder, Namespace.OUTPUT)
    with pytest.raises(UnresolvedTypeReferenceError):
        repo.resolve_type_references()


def test_references_are_never_installed():
    repo = TypeRepository()
    repo.complete(NonNull(TypeReference("Foo")), Namespace.OUTPUT)
    assert not repo.is_known("Foo", Namespace.OUTPUT)


def test_completing_a_different_type_under_a_taken_name_collides():
    repo = TypeRepository()
    repo.complete(ObjectType("Foo"), Namespace.OUTPUT)
    with pytest.raises(TypeNameCollisionError):
        repo.complete(ObjectType("Foo"), Namespace.OUTPUT)


def test_shared_types_live_in_both_namespaces():
    repo = TypeRepository()
    color = EnumType("Color", host_type=Color)
    assert repo.install_shared(color) is color
    assert repo.get("Color", Namespace.OUTPUT) is color
    assert repo.get("Color", Namespace.INPUT) is color

    # the first installed type of a name wins
    assert repo.install_shared(EnumType("Color")) is color


def test_seeded_scalars_replace_built_ins():
    custom_date = graph.ScalarType("Date", "Days since the epoch")
    repo = TypeRepository()
    repo.seed([custom_date])
    assert repo.install_shared(graph.DATE) is custom_date
    assert repo.get("Date", Namespace.INPUT) is custom_date


def test_object_type_lookup_walks_the_mro():
    repo = TypeRepository()
    base = ObjectType("Base", host_type=Base)
    repo.complete(base, Namespace.OUTPUT)
    assert repo.find_object_type(Child) is base
    assert repo.find_object_type(int) is None


def test_implementations_are_sorted_and_completed():
    repo = TypeRepository()
    zebra, ant = ObjectType("Zebra"), ObjectType("Ant")
    repo.complete(zebra, Namespace.OUTPUT)
    repo.complete(ant, Namespace.OUTPUT)
    repo.register_implementation("Animal", "Zebra")
    repo.register_implementation("Animal", "Ant")
    repo.register_implementation("Animal", "Unknown")
    assert repo.implementations("Animal") == [ant, zebra]


def test_context_registers_names_per_namespace(make_context):
    context = make_context()
    context.register_type_name("Foo")
    context.register_input_type_name("Foo")
    assert context.is_known_type("Foo")
    assert context.is_known_input_type("Foo")
    with pytest.raises(TypeNameCollisionError):
        context.register_type_name("Foo")
