"""Polymorphic value (de)serialization on top of pydantic.

Every abstract type gets a discriminated-union ``TypeAdapter``: one
``Tag`` per concrete implementation, named exactly like the
implementation's schema type, and a callable ``Discriminator`` reading the
configured metadata field (``_type_`` by default) from the raw payload.
"""

from __future__ import annotations

import collections.abc
import types
import typing
from typing import Annotated, Any, Dict, FrozenSet, Mapping, Optional, Union

import structlog
from pydantic import Discriminator, PydanticUserError, Tag, TypeAdapter
from pydantic_core import SchemaError, to_jsonable_python

from .errors import UnreachableAbstractTypeError, ValueMapperConfigurationError
from .introspection import is_union, strip_annotated
from .type_info import TypeInfoGenerator

logger = structlog.get_logger(__name__)


def discriminator_for(type_metadata_field: str, tags: Dict[type, str]):
    """Tag of a raw payload (its metadata field) or of an already built instance (its class)."""

    def discriminate(value: Any) -> Optional[str]:
        if isinstance(value, Mapping):
            return value.get(type_metadata_field)
        for klass in type(value).__mro__:
            if klass in tags:
                return tags[klass]
        return None

    return discriminate


class AbstractClassAdapterConfigurer:
    """Builds the discriminated annotation for each abstract type."""

    def __init__(self, type_info_generator: TypeInfoGenerator, type_metadata_field: str = "_type_"):
        self.type_info_generator = type_info_generator
        self.type_metadata_field = type_metadata_field

    def tags(self, implementations: FrozenSet[type]) -> Dict[type, str]:
        ordered = sorted(implementations, key=lambda t: (t.__module__, t.__qualname__))
        return {impl: self.type_info_generator.generate_type_name(impl) for impl in ordered}

    def annotation(self, abstract_type: type, implementations: FrozenSet[type]) -> Any:
        if not implementations:
            raise UnreachableAbstractTypeError(abstract_type)
        tags = self.tags(implementations)
        if len(tags) == 1:
            return next(iter(tags))
        choices = tuple(Annotated[impl, Tag(name)] for impl, name in tags.items())
        return Annotated[
            Union[choices],
            Discriminator(discriminator_for(self.type_metadata_field, tags)),
        ]


class PydanticValueMapper:
    """Converts raw input values to host values and host values to JSON-compatible output."""

    def __init__(self, concrete_sub_types: Mapping[type, FrozenSet[type]], environment,
                 configurer: AbstractClassAdapterConfigurer):
        self.concrete_sub_types = concrete_sub_types
        self.environment = environment
        self.type_metadata_field = configurer.type_metadata_field
        self._abstract_annotations = {
            abstract: configurer.annotation(abstract, impls)
            for abstract, impls in concrete_sub_types.items()
        }
        self._tags: Dict[type, str] = {}
        for impls in concrete_sub_types.values():
            self._tags.update(configurer.tags(impls))
        self._adapters: Dict[Any, TypeAdapter] = {}

    def is_directly_deserializable(self, host_type: Any) -> bool:
        """Self-describing payloads (``dict``, ``Mapping``, ``Any``) need no adapter."""
        host_type, _ = strip_annotated(host_type)
        if host_type is Any or host_type is dict:
            return True
        return typing.get_origin(host_type) in (dict, collections.abc.Mapping)

    def adapter(self, host_type: Any) -> TypeAdapter:
        """Validating adapter for ``host_type``, built on first use."""
        try:
            return self._adapters[host_type]
        except KeyError:
            pass
        try:
            adapter = TypeAdapter(self._rewrite(host_type))
        except (PydanticUserError, SchemaError) as e:
            raise ValueMapperConfigurationError(host_type, str(e)) from e
        self._adapters[host_type] = adapter
        return adapter

    def to_input_value(self, value: Any, host_type: Any) -> Any:
        for converter in self.environment.converters_for(host_type):
            value = converter.convert(value, host_type)
        if value is None or self.is_directly_deserializable(host_type):
            return value
        return self.adapter(host_type).validate_python(value)

    def to_output_value(self, value: Any) -> Any:
        """JSON-compatible form of ``value``; implementations of abstract types carry their discriminator."""
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.to_output_value(item) for item in value]
        data = to_jsonable_python(value)
        tag = self._tag_for(type(value))
        if tag is not None and isinstance(data, dict):
            data[self.type_metadata_field] = tag
        return data

    def _tag_for(self, klass: type) -> Optional[str]:
        for base in klass.__mro__:
            if base in self._tags:
                return self._tags[base]
        return None

    def _rewrite(self, host_type: Any) -> Any:
        """Swap abstract classes inside an annotation for their discriminated union."""
        host_type, _ = strip_annotated(host_type)
        if host_type in self._abstract_annotations:
            return self._abstract_annotations[host_type]
        args = typing.get_args(host_type)
        if not args:
            return host_type
        rewritten = tuple(a if a is Ellipsis else self._rewrite(a) for a in args)
        if rewritten == args:
            return host_type
        if is_union(host_type):
            return Union[rewritten]
        if isinstance(host_type, types.GenericAlias):
            return types.GenericAlias(typing.get_origin(host_type), rewritten)
        return host_type.copy_with(rewritten)


class PydanticValueMapperFactory:
    """Creates the value mapper once the abstract type map is final."""

    def __init__(self, type_info_generator: Optional[TypeInfoGenerator] = None,
                 type_metadata_field: str = "_type_"):
        self.type_info_generator = type_info_generator or TypeInfoGenerator()
        self.type_metadata_field = type_metadata_field

    def get_value_mapper(self, concrete_sub_types: Mapping[type, FrozenSet[type]], environment) -> PydanticValueMapper:
        configurer = AbstractClassAdapterConfigurer(self.type_info_generator, self.type_metadata_field)
        value_mapper = PydanticValueMapper(concrete_sub_types, environment, configurer)
        logger.debug(
            "Configured value mapper",
            abstract_types=sorted(t.__qualname__ for t in concrete_sub_types),
            type_metadata_field=self.type_metadata_field,
        )
        return value_mapper
