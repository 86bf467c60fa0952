"""Tests for polymorphic value conversion."""

import abc
from dataclasses import dataclass
from typing import Any, Optional

import pytest
from pydantic import ValidationError

from schemasmith.codes import ValidationCode
from schemasmith.kernel.environment import GlobalEnvironment
from schemasmith.kernel.errors import UnreachableAbstractTypeError, ValueMapperConfigurationError
from schemasmith.kernel.value_mapper import (
    AbstractClassAdapterConfigurer,
    PydanticValueMapperFactory,
    discriminator_for,
)
from schemasmith.kernel.type_info import TypeInfoGenerator


class Shape(abc.ABC):
    @abc.abstractmethod
    def area(self) -> float:
        ...


@dataclass
class Circle(Shape):
    radius: float

    def area(self) -> float:
        return 3.14159 * self.radius ** 2


@dataclass
class Square(Shape):
    side: float

    def area(self) -> float:
        return self.side ** 2


@dataclass
class Drawing:
    title: str


class Opaque:
    def __init__(self, handle):
        self.handle = handle


class UpperCaseConverter:
    def supports(self, host_type):
        return host_type is str

    def convert(self, value, host_type):
        return value.upper()


def _mapper(implementations=frozenset({Circle, Square}), converters=(), **kwargs):
    factory = PydanticValueMapperFactory(**kwargs)
    return factory.get_value_mapper({Shape: frozenset(implementations)}, GlobalEnvironment(input_converters=converters))


def test_payload_tag_selects_implementation():
    mapper = _mapper()
    assert mapper.to_input_value({"radius": 2.0, "_type_": "Circle"}, Shape) == Circle(2.0)
    assert mapper.to_input_value({"side": 3, "_type_": "Square"}, Shape) == Square(3.0)


def test_abstract_types_rewritten_inside_containers():
    mapper = _mapper()
    shapes = mapper.to_input_value(
        [{"radius": 1, "_type_": "Circle"}, {"side": 2, "_type_": "Square"}], list[Shape]
    )
    assert shapes == [Circle(1.0), Square(2.0)]

    pair = mapper.to_input_value([{"side": 1, "_type_": "Square"}], tuple[Shape, ...])
    assert pair == (Square(1.0),)

    assert mapper.to_input_value(None, Optional[Shape]) is None
    assert mapper.to_input_value({"radius": 1, "_type_": "Circle"}, Optional[Shape]) == Circle(1.0)


def test_unknown_or_missing_tag_rejected():
    mapper = _mapper()
    with pytest.raises(ValidationError):
        mapper.to_input_value({"radius": 1, "_type_": "Hexagon"}, Shape)
    with pytest.raises(ValidationError):
        mapper.to_input_value({"radius": 1}, Shape)


def test_instances_are_accepted_as_is():
    mapper = _mapper()
    assert mapper.to_input_value(Square(2.0), Shape) == Square(2.0)


def test_single_implementation_needs_no_tag():
    mapper = _mapper(implementations={Circle})
    assert mapper.to_input_value({"radius": 5}, Shape) == Circle(5.0)


def test_custom_metadata_field():
    mapper = _mapper(type_metadata_field="kind")
    assert mapper.to_input_value({"side": 1, "kind": "Square"}, Shape) == Square(1.0)
    assert mapper.to_output_value(Square(1.0)) == {"side": 1.0, "kind": "Square"}


def test_concrete_types_validated_directly():
    mapper = _mapper()
    assert mapper.to_input_value({"title": "Sketch"}, Drawing) == Drawing("Sketch")
    assert mapper.to_input_value("3", int) == 3


def test_self_describing_payloads_pass_through():
    mapper = _mapper()
    payload = {"anything": [1, 2]}
    assert mapper.is_directly_deserializable(dict)
    assert mapper.is_directly_deserializable(dict[str, int])
    assert mapper.is_directly_deserializable(Any)
    assert not mapper.is_directly_deserializable(Shape)
    assert mapper.to_input_value(payload, dict) is payload


def test_input_converters_run_first():
    mapper = _mapper(converters=[UpperCaseConverter()])
    assert mapper.to_input_value("dune", str) == "DUNE"
    assert mapper.to_input_value({"title": "dune"}, Drawing) == Drawing("dune")


def test_output_values_carry_their_tag():
    mapper = _mapper()
    assert mapper.to_output_value(Circle(1.5)) == {"radius": 1.5, "_type_": "Circle"}
    assert mapper.to_output_value([Square(2.0), Drawing("x")]) == [
        {"side": 2.0, "_type_": "Square"},
        {"title": "x"},
    ]
    assert mapper.to_output_value(3) == 3


def test_adapters_are_cached():
    mapper = _mapper()
    assert mapper.adapter(list[Shape]) is mapper.adapter(list[Shape])


def test_discriminator_is_a_named_callable():
    discriminate = discriminator_for("_type_", {Circle: "Circle", Square: "Square"})
    assert discriminate.__name__ == "discriminate"
    assert discriminate({"_type_": "Square", "side": 1}) == "Square"
    assert discriminate(Circle(1.0)) == "Circle"
    assert discriminate(Drawing("x")) is None


def test_unbuildable_adapter_is_a_configuration_error():
    mapper = _mapper()
    with pytest.raises(ValueMapperConfigurationError) as exc_info:
        mapper.to_input_value({"handle": 1}, Opaque)
    assert exc_info.value.host_type is Opaque
    assert exc_info.value.code is ValidationCode.VALUE_MAPPER_CONFIGURATION


def test_tags_follow_type_names():
    configurer = AbstractClassAdapterConfigurer(TypeInfoGenerator())
    assert list(configurer.tags(frozenset({Square, Circle})).values()) == ["Circle", "Square"]
    with pytest.raises(UnreachableAbstractTypeError):
        configurer.annotation(Shape, frozenset())
