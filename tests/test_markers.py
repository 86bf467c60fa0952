"""Tests for declarative operation markers."""

import pytest
from pydantic import ValidationError

from schemasmith.kernel.errors import MalformedMarkerError
from schemasmith.markers import (
    NO_DEFAULT,
    Arg,
    OperationDescriptor,
    OperationKind,
    OperationMarker,
    get_descriptor,
    ignore,
    interface,
    interface_packages,
    is_ignored,
    mutation,
    query,
)


def test_bare_decorator_attaches_descriptor():
    @query
    def books() -> list[str]:
        return ["Dune"]

    descriptor = get_descriptor(books)
    assert descriptor.kind is OperationKind.QUERY
    assert descriptor.name is None
    assert books() == ["Dune"]  # the function itself is returned unchanged


def test_decorator_options_are_recorded():
    @mutation(name="removeBook", description="Delete a book", deprecation_reason="Use archive", complexity=3)
    def delete_book(id: str) -> bool:
        return True

    descriptor = get_descriptor(delete_book)
    assert descriptor.kind is OperationKind.MUTATION
    assert descriptor.name == "removeBook"
    assert descriptor.description == "Delete a book"
    assert descriptor.deprecation_reason == "Use archive"
    assert descriptor.complexity == 3


def test_marker_on_property_marks_getter():
    class Shelf:
        @query(description="Number of books")
        @property
        def size(self) -> int:
            return 3

    prop = Shelf.__dict__["size"]
    assert isinstance(prop, property)
    assert get_descriptor(prop).description == "Number of books"
    assert Shelf().size == 3


def test_annotated_metadata_marker():
    marker = query(description="The title")
    assert isinstance(marker, OperationMarker)
    assert get_descriptor(marker).description == "The title"


def test_conflicting_kinds_rejected():
    with pytest.raises(MalformedMarkerError, match="already marked as query"):
        @mutation
        @query
        def thing() -> int:
            return 1


def test_same_kind_remark_replaces_descriptor():
    @query(description="outer")
    @query(description="inner")
    def thing() -> int:
        return 1

    assert get_descriptor(thing).description == "outer"


def test_negative_complexity_rejected():
    with pytest.raises(MalformedMarkerError, match="complexity"):
        query(complexity=-1)


def test_empty_name_rejected():
    with pytest.raises(MalformedMarkerError) as exc_info:
        query(name="   ")
    assert exc_info.value.code.value == "MALFORMED_MARKER"


def test_batched_only_on_queries():
    assert query(batched=True).descriptor.batched is True
    with pytest.raises(ValidationError):
        OperationDescriptor(kind=OperationKind.MUTATION, batched=True)


def test_descriptor_is_frozen_and_strict():
    descriptor = OperationDescriptor(kind=OperationKind.QUERY)
    with pytest.raises(ValidationError):
        descriptor.name = "other"
    with pytest.raises(ValidationError):
        OperationDescriptor(kind=OperationKind.QUERY, colour="red")


def test_ignore_on_class_is_not_inherited():
    @ignore
    class Secret:
        pass

    class Derived(Secret):
        pass

    assert is_ignored(Secret)
    assert not is_ignored(Derived)


def test_ignore_on_method():
    class Service:
        @ignore
        def hidden(self) -> int:
            return 1

        def shown(self) -> int:
            return 2

    assert is_ignored(Service.hidden)
    assert not is_ignored(Service.shown)


def test_interface_marker_packages():
    @interface
    class Shape:
        pass

    @interface(implementation_packages=("geometry",))
    class Solid:
        pass

    class Plain:
        pass

    class Circle(Shape):
        pass

    assert interface_packages(Shape) == ()
    assert interface_packages(Solid) == ("geometry",)
    assert interface_packages(Plain) is None
    assert interface_packages(Circle) is None


def test_arg_defaults():
    arg = Arg(description="Search text")
    assert arg.name is None
    assert arg.default is NO_DEFAULT
    assert repr(NO_DEFAULT) == "NO_DEFAULT"
