"""The build context: shared, single-build state threaded through every stage."""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

import structlog

from schemasmith.config import GeneratorSettings, RelayMappingConfig

from .environment import GlobalEnvironment
from .graph import InterfaceType, Namespace, ObjectType
from .relay import NodeQueryResolver, is_relay_node_interface, node_interface
from .repository import TypeRepository
from .type_info import TypeInfoGenerator
from .validator import Validator

logger = structlog.get_logger(__name__)


class DelegatingTypeResolver:
    """Finds the object type of a runtime value by its host class (nearest mapped ancestor wins)."""

    def __init__(self, type_repository: TypeRepository, type_info_generator: TypeInfoGenerator):
        self.type_repository = type_repository
        self.type_info_generator = type_info_generator

    def __call__(self, value: Any) -> Optional[ObjectType]:
        graph_type = self.type_repository.find_object_type(type(value))
        if graph_type is not None:
            return graph_type
        candidate = self.type_repository.get(self.type_info_generator.generate_type_name(type(value)))
        return candidate if isinstance(candidate, ObjectType) else None


class RelayNodeTypeResolver(DelegatingTypeResolver):
    """Like its parent, but only answers with types that implement Node."""

    def __call__(self, value: Any) -> Optional[ObjectType]:
        graph_type = super().__call__(value)
        if graph_type is None:
            return None
        if any(getattr(i, "name", None) == "Node" for i in graph_type.interfaces):
            return graph_type
        return None


class BuildContext:
    """Shared state of one schema build.

    Owns the known-type registry (through the type repository, one name
    space for output and one for input types), the abstract type cache,
    the interface strategy and the Node interface wiring. One context
    serves exactly one build and must not be shared between builds.
    """

    def __init__(self, operation_repository, type_mappers, environment: GlobalEnvironment,
                 interface_strategy, base_packages: Tuple[str, ...],
                 type_info_generator: TypeInfoGenerator, value_mapper_factory,
                 known_types: Iterable[Any] = (), relay_config: Optional[RelayMappingConfig] = None,
                 settings: Optional[GeneratorSettings] = None):
        known_types = list(known_types)
        self.settings = settings or GeneratorSettings()
        self.operation_repository = operation_repository
        self.type_mappers = type_mappers
        self.environment = environment
        self.type_repository = environment.type_repository
        self.interface_strategy = interface_strategy
        self.base_packages = tuple(base_packages)
        self.type_info_generator = type_info_generator
        self.value_mapper_factory = value_mapper_factory
        self.relay_config = relay_config or self.settings.relay
        self.type_repository.seed(known_types)
        self.type_resolver = DelegatingTypeResolver(self.type_repository, type_info_generator)

        supplied = next((t for t in known_types if is_relay_node_interface(t)), None)
        if supplied is not None:
            logger.info("Reusing supplied Node interface", type_name=supplied.name)
            self.node: InterfaceType = supplied
        else:
            self.node = node_interface(RelayNodeTypeResolver(self.type_repository, type_info_generator))
        self.node_used = False
        self.node_query = NodeQueryResolver()

        self.abstract_type_cache: Dict[Any, FrozenSet[type]] = {}
        self.validator = Validator(known_types)

    def register_type_name(self, type_name: str) -> None:
        self.type_repository.reserve(type_name, Namespace.OUTPUT)

    def register_input_type_name(self, type_name: str) -> None:
        self.type_repository.reserve(type_name, Namespace.INPUT)

    def is_known_type(self, type_name: str) -> bool:
        return self.type_repository.is_known(type_name, Namespace.OUTPUT)

    def is_known_input_type(self, type_name: str) -> bool:
        return self.type_repository.is_known(type_name, Namespace.INPUT)

    def complete_type(self, graph_type: Any) -> None:
        self.type_repository.complete(graph_type, Namespace.OUTPUT)

    def complete_input_type(self, graph_type: Any) -> None:
        self.type_repository.complete(graph_type, Namespace.INPUT)

    def get_type(self, type_name: str):
        return self.type_repository.get(type_name, Namespace.OUTPUT)

    def use_node_interface(self) -> InterfaceType:
        """The Node interface, installed in the output namespace on first use."""
        if not self.node_used:
            self.validator.check_output(self.node.name, self.node)
            self.complete_type(self.node)
            self.node_used = True
        return self.node

    def resolve_type_references(self, extra_types=()) -> None:
        self.type_repository.resolve_type_references(extra_types)

    def find_abstract_types(self, root_type: Any):
        from .abstract_types import AbstractTypeDiscovery

        return AbstractTypeDiscovery(self).find_abstract_types(root_type)

    def create_value_mapper(self, concrete_sub_types: Mapping[type, FrozenSet[type]]):
        value_mapper = self.value_mapper_factory.get_value_mapper(concrete_sub_types, self.environment)
        self.environment.value_mapper = value_mapper
        return value_mapper
