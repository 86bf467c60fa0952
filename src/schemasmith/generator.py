"""Schema generator: the public entry point that wires one build together."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog

from schemasmith.config import GeneratorSettings, RelayMappingConfig
from schemasmith.contracts import ValidationReport
from schemasmith.kernel.abstract_types import collect_abstract_types
from schemasmith.kernel.context import BuildContext
from schemasmith.kernel.discovery import AnnotatedResolverBuilder, PublicResolverBuilder
from schemasmith.kernel.environment import GlobalEnvironment, InputConverter
from schemasmith.kernel.errors import SchemaValidationError
from schemasmith.kernel.graph import GraphType, InterfaceType, Namespace, ObjectType
from schemasmith.kernel.interfaces import AbstractInterfaceStrategy, InterfaceMappingStrategy
from schemasmith.kernel.mappers import TypeMapper, TypeMapperRepository, UnknownTypeMapper, default_mappers
from schemasmith.kernel.operation_mapper import OperationMapper
from schemasmith.kernel.operations import OperationRepository, OperationSource
from schemasmith.kernel.repository import TypeRepository
from schemasmith.kernel.type_info import TypeInfoGenerator
from schemasmith.kernel.value_mapper import PydanticValueMapperFactory

logger = structlog.get_logger(__name__)


@dataclass
class GeneratedSchema:
    """The finished type graph handed to an execution engine."""
    query: Optional[ObjectType]
    mutation: Optional[ObjectType]
    subscription: Optional[ObjectType]
    output_types: Dict[str, GraphType]
    input_types: Dict[str, GraphType]
    type_resolver: Callable[[Any], Optional[ObjectType]]
    node_interface: Optional[InterfaceType]
    value_mapper: Any
    abstract_types: Mapping[type, frozenset]
    operations: OperationRepository
    report: ValidationReport = field(default_factory=lambda: ValidationReport(ok=True))

    def get_type(self, name: str, namespace: Namespace = Namespace.OUTPUT) -> Optional[GraphType]:
        types = self.output_types if namespace is Namespace.OUTPUT else self.input_types
        return types.get(name)


class SchemaGenerator:
    """Fluent builder for one schema.

    Usage::

        schema = (
            SchemaGenerator()
            .with_base_packages("myapp")
            .with_operations_from_singleton(UserService())
            .generate()
        )

    Without explicit resolver builders, only members marked with ``@query``,
    ``@mutation`` or ``@subscription`` are exposed on the roots, and domain
    types expose their public members as fields.
    """

    def __init__(self, settings: Optional[GeneratorSettings] = None):
        self.settings = settings or GeneratorSettings()
        self.operation_sources: List[OperationSource] = []
        self.resolver_builders: List[Any] = []
        self.nested_resolver_builders: List[Any] = []
        self.type_mappers: List[TypeMapper] = []
        self.unknown_type_fallback = False
        self.interface_strategy: Optional[InterfaceMappingStrategy] = None
        self.base_packages: tuple = ()
        self.additional_types: List[GraphType] = []
        self.value_mapper_factory = None
        self.input_converters: List[InputConverter] = []
        self.relay_config: Optional[RelayMappingConfig] = None
        self.inclusion_strategy = None
        self.type_info_generator: Optional[TypeInfoGenerator] = None

    def with_operations_from_singleton(self, instance: Any, *builders):
        self.operation_sources.append(OperationSource.of_instance(instance, *builders))
        return self

    def with_operations_from_type(self, source_type: type, *builders):
        self.operation_sources.append(OperationSource.of_type(source_type, *builders))
        return self

    def with_resolver_builders(self, *builders):
        self.resolver_builders.extend(builders)
        return self

    def with_nested_resolver_builders(self, *builders):
        self.nested_resolver_builders.extend(builders)
        return self

    def with_type_mappers(self, *mappers: TypeMapper):
        """Custom mappers run before the default ones."""
        self.type_mappers.extend(mappers)
        return self

    def with_unknown_type_fallback(self, enabled: bool = True):
        self.unknown_type_fallback = enabled
        return self

    def with_interface_mapping_strategy(self, strategy: InterfaceMappingStrategy):
        self.interface_strategy = strategy
        return self

    def with_base_packages(self, *packages: str):
        self.base_packages = self.base_packages + tuple(packages)
        return self

    def with_additional_types(self, *types: GraphType):
        self.additional_types.extend(types)
        return self

    def with_value_mapper_factory(self, factory):
        self.value_mapper_factory = factory
        return self

    def with_input_converters(self, *converters: InputConverter):
        self.input_converters.extend(converters)
        return self

    def with_relay_mapping_config(self, config: RelayMappingConfig):
        self.relay_config = config
        return self

    def with_settings(self, settings: GeneratorSettings):
        self.settings = settings
        return self

    def with_inclusion_strategy(self, strategy):
        self.inclusion_strategy = strategy
        return self

    def with_type_info_generator(self, generator: TypeInfoGenerator):
        self.type_info_generator = generator
        return self

    def _base_packages(self) -> tuple:
        packages = []
        for package in self.base_packages + self.settings.base_packages:
            if package and package not in packages:
                packages.append(package)
        return tuple(packages)

    def generate(self) -> GeneratedSchema:
        """Run the build. Raises a ``SchemaConfigurationError`` subclass on any configuration mistake."""
        settings = self.settings
        base_packages = self._base_packages()
        type_info = self.type_info_generator or TypeInfoGenerator(settings.input_type_suffix)
        mappers = list(self.type_mappers) + default_mappers()
        if self.unknown_type_fallback:
            mappers.append(UnknownTypeMapper())
        logger.debug(
            "Generating schema",
            sources=len(self.operation_sources),
            base_packages=list(base_packages),
            known_types=len(self.additional_types),
        )

        environment = GlobalEnvironment(TypeRepository(), self.input_converters)
        operation_repository = OperationRepository(
            self.operation_sources,
            self.resolver_builders or [AnnotatedResolverBuilder()],
            self.nested_resolver_builders or [PublicResolverBuilder()],
            inclusion_strategy=self.inclusion_strategy,
            base_packages=base_packages,
        )
        context = BuildContext(
            operation_repository=operation_repository,
            type_mappers=TypeMapperRepository(mappers),
            environment=environment,
            interface_strategy=self.interface_strategy or AbstractInterfaceStrategy(),
            base_packages=base_packages,
            type_info_generator=type_info,
            value_mapper_factory=self.value_mapper_factory or PydanticValueMapperFactory(
                type_info, settings.type_metadata_field
            ),
            known_types=self.additional_types,
            relay_config=self.relay_config,
            settings=settings,
        )
        operation_mapper = OperationMapper(context)
        roots = [operation_mapper.query_root, operation_mapper.mutation_root, operation_mapper.subscription_root]

        operations = operation_repository.all_operations()
        abstract_types = collect_abstract_types(context, operations)
        value_mapper = context.create_value_mapper(abstract_types)

        report = context.validator.validate(
            roots, context.type_repository, operation_repository.all_operations(), abstract_types
        )
        if not report.ok:
            raise SchemaValidationError(report)

        output_types = context.type_repository.types(Namespace.OUTPUT)
        input_types = context.type_repository.types(Namespace.INPUT)
        logger.info(
            "Schema generated",
            output_types=len(output_types),
            input_types=len(input_types),
            abstract_types=len(abstract_types),
        )
        return GeneratedSchema(
            query=operation_mapper.query_root,
            mutation=operation_mapper.mutation_root,
            subscription=operation_mapper.subscription_root,
            output_types=output_types,
            input_types=input_types,
            type_resolver=context.type_resolver,
            node_interface=context.node if context.node_used else None,
            value_mapper=value_mapper,
            abstract_types=abstract_types,
            operations=operation_repository,
            report=report,
        )
