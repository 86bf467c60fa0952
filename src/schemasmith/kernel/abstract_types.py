"""Abstract type discovery: which concrete classes stand behind each polymorphic host type."""

from __future__ import annotations

import inspect
import typing
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Set

import structlog

from .introspection import (
    async_item_type,
    is_abstract_class,
    is_async_iterable,
    is_new_type,
    is_union,
    list_item_type,
    strip_annotated,
    unwrap_optional,
)
from .mappers import input_members, scalar_for

logger = structlog.get_logger(__name__)


class AbstractTypeDiscovery:
    """Walks host annotations and records the implementations of every abstract type met.

    Results accumulate in the context's ``abstract_type_cache``; an entry
    only ever grows. Structured classes are visited once per discovery, through
    their attribute annotations and their nested operations.
    """

    def __init__(self, context):
        self.context = context
        self._visited: Set[Any] = set()

    def is_abstract(self, host_type: Any) -> bool:
        if not inspect.isclass(host_type):
            return False
        return self.context.interface_strategy.supports(host_type) or is_abstract_class(host_type)

    def find_abstract_types(self, root_type: Any) -> Set[type]:
        """Abstract types reachable from ``root_type``."""
        found: Set[type] = set()
        self._walk(root_type, found)
        return found

    def _walk(self, host_type: Any, found: Set[type]) -> None:
        host_type, _ = strip_annotated(host_type)
        host_type, _ = unwrap_optional(host_type)
        if is_async_iterable(host_type):
            self._walk(async_item_type(host_type), found)
            return
        item = list_item_type(host_type)
        if item is not None:
            self._walk(item, found)
            return
        if is_union(host_type):
            for arg in typing.get_args(host_type):
                self._walk(arg, found)
            return
        while is_new_type(host_type):
            host_type = host_type.__supertype__
        if not inspect.isclass(host_type) or not self._is_structured(host_type):
            return
        if host_type in self._visited:
            if host_type in self.context.abstract_type_cache:
                found.add(host_type)
            return
        self._visited.add(host_type)
        if self.is_abstract(host_type):
            found.add(host_type)
            implementations = self.context.interface_strategy.implementations(
                host_type, self.context.base_packages
            )
            cached = self.context.abstract_type_cache.get(host_type, frozenset())
            self.context.abstract_type_cache[host_type] = cached | frozenset(implementations)
            logger.debug(
                "Discovered abstract type",
                host_type=host_type.__qualname__,
                implementations=[t.__qualname__ for t in implementations],
            )
            for implementation in implementations:
                self._walk(implementation, found)
        self._walk_members(host_type, found)

    def _walk_members(self, host_type: type, found: Set[type]) -> None:
        """Follow only what the schema exposes: nested field operations and admitted input fields."""
        repository = self.context.operation_repository
        for member in input_members(host_type, repository.inclusion_strategy):
            self._walk(member.annotation, found)
        for operation in repository.nested_operations(host_type):
            self._walk(operation.return_type, found)
            for argument in operation.arguments:
                self._walk(argument.host_type, found)

    @staticmethod
    def _is_structured(host_type: type) -> bool:
        if host_type.__module__ == "builtins" or scalar_for(host_type) is not None:
            return False
        return not issubclass(host_type, Enum)


def collect_abstract_types(context, operations: Iterable) -> Mapping[type, frozenset]:
    """Discover abstract types behind every operation's return and argument types; the result is frozen."""
    discovery = AbstractTypeDiscovery(context)
    for operation in operations:
        discovery.find_abstract_types(operation.return_type)
        for argument in operation.arguments:
            discovery.find_abstract_types(argument.host_type)
    return MappingProxyType(dict(context.abstract_type_cache))
