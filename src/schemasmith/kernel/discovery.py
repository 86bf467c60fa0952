"""Resolver discovery strategies.

A resolver builder scans one operation-source type and produces the
``Resolver`` descriptors for its queries, mutations and subscriptions.
Builders are polymorphic over the scan strategy: marked members only
(``AnnotatedResolverBuilder``), every public member scoped to base
packages (``PublicResolverBuilder``) or a composition of several
(``CompositeResolverBuilder``).
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

import structlog

from schemasmith.markers import (
    NO_DEFAULT,
    Arg,
    OperationDescriptor,
    OperationKind,
    OperationMarker,
    get_descriptor,
    is_ignored,
)

from .errors import MalformedMarkerError
from .introspection import (
    Member,
    function_hints,
    has_return_annotation,
    in_packages,
    is_async_iterable,
    is_none_type,
    iter_members,
    list_item_type,
    member_type,
    strip_annotated,
    unwrap_optional,
)
from .resolvers import (
    FieldAccessor,
    MethodInvoker,
    OperationArgument,
    Resolver,
    SingletonMethodInvoker,
    StaticMethodInvoker,
)

logger = structlog.get_logger(__name__)


class InclusionStrategy(Protocol):
    def include_operation(self, member: Member, return_type: Any) -> bool: ...

    def include_argument(self, member: Member, parameter: inspect.Parameter, host_type: Any) -> bool: ...

    def include_input_field(self, member: Member, host_type: Any) -> bool: ...


class DefaultInclusionStrategy:
    """Rejects ``@ignore``d members and members returning or taking ``@ignore``d classes."""

    def include_operation(self, member: Member, return_type: Any) -> bool:
        if member.obj is not None and member.kind != "attribute" and is_ignored(member.obj):
            return False
        return not _references_ignored_type(return_type)

    def include_argument(self, member: Member, parameter: inspect.Parameter, host_type: Any) -> bool:
        return not _references_ignored_type(host_type)

    def include_input_field(self, member: Member, host_type: Any) -> bool:
        return member.is_public and not _references_ignored_type(host_type)


def _references_ignored_type(host_type: Any) -> bool:
    host_type, _ = strip_annotated(host_type)
    host_type, _ = unwrap_optional(host_type)
    item = list_item_type(host_type)
    if item is not None:
        return _references_ignored_type(item)
    return isinstance(host_type, type) and is_ignored(host_type)


@dataclass(frozen=True)
class ResolverBuilderParams:
    """What a builder is asked to scan."""
    source_type: type
    source_instance: Any = None
    inclusion_strategy: InclusionStrategy = field(default_factory=DefaultInclusionStrategy)
    base_packages: Tuple[str, ...] = ()


class OperationNameGenerator(Protocol):
    def generate_name(self, member: Member, descriptor: Optional[OperationDescriptor]) -> Optional[str]: ...


class MethodOperationNameGenerator:
    """Uses the member's own name."""

    def generate_name(self, member, descriptor):
        return member.name


class AnnotatedOperationNameGenerator:
    """Uses the explicit ``name`` from the member's marker, if any."""

    def generate_name(self, member, descriptor):
        return descriptor.name if descriptor is not None else None


class DelegatingOperationNameGenerator:
    """First non-empty answer from its delegates."""

    def __init__(self, *delegates):
        self.delegates = delegates

    def generate_name(self, member, descriptor):
        for delegate in self.delegates:
            name = delegate.generate_name(member, descriptor)
            if name:
                return name
        raise MalformedMarkerError(member.qualname, "no operation name could be generated")


class AnnotatedArgumentBuilder:
    """Builds arguments from a callable's signature and ``Annotated[..., Arg(...)]`` metadata."""

    def build_arguments(self, member: Member, inclusion_strategy: InclusionStrategy) -> Tuple[OperationArgument, ...]:
        if member.kind in ("attribute", "property"):
            return ()
        func = member.function
        hints = function_hints(func)
        parameters = list(inspect.signature(func).parameters.values())
        if member.kind == "method" or isinstance(member.obj, classmethod):
            parameters = parameters[1:]
        arguments = []
        for parameter in parameters:
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            if parameter.name not in hints:
                raise MalformedMarkerError(member.qualname, f"parameter {parameter.name!r} has no annotation")
            host_type, metadata = strip_annotated(hints[parameter.name])
            if not inclusion_strategy.include_argument(member, parameter, host_type):
                continue
            arg = next((m for m in metadata if isinstance(m, Arg)), Arg())
            default = arg.default
            if default is NO_DEFAULT and parameter.default is not inspect.Parameter.empty:
                default = parameter.default
            arguments.append(OperationArgument(
                name=arg.name or parameter.name,
                host_type=host_type,
                parameter_name=parameter.name,
                description=arg.description,
                default=default,
                nullable=unwrap_optional(host_type)[1],
            ))
        return tuple(arguments)


def _accept_public(member: Member) -> bool:
    return member.is_public


class FilteredResolverBuilder:
    """Shared plumbing: member filters, name generation and argument building."""

    operation_name_generator: Any
    argument_builder: AnnotatedArgumentBuilder

    def __init__(self):
        self.filters: List[Callable[[Member], bool]] = []

    def with_default_filters(self):
        return self.with_filters(_accept_public)

    def with_filters(self, *filters: Callable[[Member], bool]):
        self.filters.extend(filters)
        return self

    def with_operation_name_generator(self, generator):
        self.operation_name_generator = generator
        return self

    def with_argument_builder(self, argument_builder):
        self.argument_builder = argument_builder
        return self

    def accepts(self, member: Member) -> bool:
        return all(f(member) for f in self.filters)

    def build_query_resolvers(self, params: ResolverBuilderParams) -> List[Resolver]:
        raise NotImplementedError

    def build_mutation_resolvers(self, params: ResolverBuilderParams) -> List[Resolver]:
        raise NotImplementedError

    def build_subscription_resolvers(self, params: ResolverBuilderParams) -> List[Resolver]:
        raise NotImplementedError

    def build_resolvers(self, kind: OperationKind, params: ResolverBuilderParams) -> List[Resolver]:
        if kind is OperationKind.QUERY:
            return self.build_query_resolvers(params)
        if kind is OperationKind.MUTATION:
            return self.build_mutation_resolvers(params)
        return self.build_subscription_resolvers(params)

    def _resolver(self, member: Member, kind: OperationKind, params: ResolverBuilderParams,
                  return_type: Any, descriptor: Optional[OperationDescriptor],
                  description: str = "", deprecation_reason: Optional[str] = None) -> Resolver:
        if descriptor is not None:
            description = descriptor.description or description
            deprecation_reason = descriptor.deprecation_reason or deprecation_reason
        return Resolver(
            operation_name=self.operation_name_generator.generate_name(member, descriptor),
            description=description,
            deprecation_reason=deprecation_reason,
            batched=descriptor.batched if descriptor is not None else False,
            accessor=_accessor(member, params),
            return_type=return_type,
            arguments=self.argument_builder.build_arguments(member, params.inclusion_strategy),
            complexity=descriptor.complexity if descriptor is not None else None,
            kind=kind,
            declaring_type=member.declaring_type,
            source_type=params.source_type,
        )

    def _config_key(self) -> tuple:
        return (type(self), type(self.operation_name_generator), type(self.argument_builder))

    def __eq__(self, other) -> bool:
        if not isinstance(other, FilteredResolverBuilder):
            return NotImplemented
        return self._config_key() == other._config_key()

    def __hash__(self) -> int:
        return hash(self._config_key())


def _accessor(member: Member, params: ResolverBuilderParams):
    instance = params.source_instance
    if member.kind in ("attribute", "property"):
        return FieldAccessor(member.name, member.declaring_type, instance)
    if member.kind == "static":
        return StaticMethodInvoker(params.source_type, member.name, member.declaring_type)
    if instance is None:
        return MethodInvoker(member.function, member.declaring_type)
    return SingletonMethodInvoker(instance, member.function, member.declaring_type)


def _attribute_descriptor(member: Member) -> Optional[OperationDescriptor]:
    _, metadata = strip_annotated(member.annotation)
    for item in metadata:
        if isinstance(item, (OperationMarker, OperationDescriptor)):
            return get_descriptor(item)
    return None


def member_descriptor(member: Member) -> Optional[OperationDescriptor]:
    if member.kind == "attribute":
        return _attribute_descriptor(member)
    return get_descriptor(member.obj)


def _check_role(member: Member, descriptor: OperationDescriptor, return_type: Any) -> None:
    """Reject markers that cannot apply to this kind of member."""
    if member.kind in ("attribute", "property") and descriptor.kind is not OperationKind.QUERY:
        raise MalformedMarkerError(
            member.qualname, f"a {member.kind} can only be a query, not a {descriptor.kind.value}"
        )
    if descriptor.kind is OperationKind.SUBSCRIPTION and not is_async_iterable(return_type):
        raise MalformedMarkerError(member.qualname, "a subscription must return an async iterable")
    if descriptor.kind is not OperationKind.SUBSCRIPTION and is_async_iterable(return_type):
        raise MalformedMarkerError(
            member.qualname, f"a {descriptor.kind.value} cannot return an async iterable"
        )


class AnnotatedResolverBuilder(FilteredResolverBuilder):
    """Exposes only members explicitly marked with ``@query``, ``@mutation`` or ``@subscription``."""

    def __init__(self):
        super().__init__()
        self.operation_name_generator = DelegatingOperationNameGenerator(
            AnnotatedOperationNameGenerator(), MethodOperationNameGenerator()
        )
        self.argument_builder = AnnotatedArgumentBuilder()
        self.with_default_filters()

    def build_query_resolvers(self, params):
        return self._build(params, OperationKind.QUERY)

    def build_mutation_resolvers(self, params):
        return self._build(params, OperationKind.MUTATION)

    def build_subscription_resolvers(self, params):
        return self._build(params, OperationKind.SUBSCRIPTION)

    def _build(self, params: ResolverBuilderParams, kind: OperationKind) -> List[Resolver]:
        resolvers = []
        for member in iter_members(params.source_type):
            descriptor = member_descriptor(member)
            if descriptor is None or not self.accepts(member):
                continue
            return_type = member_type(member)
            _check_role(member, descriptor, return_type)
            if descriptor.kind is not kind:
                continue
            if not params.inclusion_strategy.include_operation(member, return_type):
                continue
            resolvers.append(self._resolver(member, kind, params, return_type, descriptor))
        logger.debug(
            "Discovered marked resolvers",
            source_type=params.source_type.__qualname__,
            kind=kind.value,
            count=len(resolvers),
        )
        return resolvers


def _no_description(member: Member) -> str:
    return ""


class PublicResolverBuilder(FilteredResolverBuilder):
    """Exposes all public members declared in or below the configured base packages.

    Methods returning ``None`` are mutations, methods returning an async
    iterable are subscriptions, everything else (including attributes and
    properties) is a query. A member carrying an explicit marker is
    classified, named and described by its marker.
    """

    def __init__(self, *base_packages: str):
        super().__init__()
        self.operation_name_generator = DelegatingOperationNameGenerator(
            AnnotatedOperationNameGenerator(), MethodOperationNameGenerator()
        )
        self.argument_builder = AnnotatedArgumentBuilder()
        self.description_mapper: Callable[[Member], str] = _no_description
        self.deprecation_reason_mapper: Callable[[Member], Optional[str]] = self._deprecation_reason
        self.respect_deprecation = True
        self.with_base_packages(*base_packages)
        self.with_default_filters()

    def with_base_packages(self, *base_packages: str):
        self.base_packages = tuple(base_packages)
        return self

    def with_deprecation_respected(self, respect: bool):
        self.respect_deprecation = respect
        return self

    def with_description_mapper(self, mapper: Callable[[Member], str]):
        self.description_mapper = mapper
        return self

    def with_deprecation_reason_mapper(self, mapper: Callable[[Member], Optional[str]]):
        self.deprecation_reason_mapper = mapper
        return self

    def _deprecation_reason(self, member: Member) -> Optional[str]:
        func = member.function
        if not self.respect_deprecation or func is None:
            return None
        message = getattr(func, "__deprecated__", None)
        if message is None:
            return None
        return str(message) or "Deprecated"

    def build_query_resolvers(self, params):
        return self._build(params, OperationKind.QUERY)

    def build_mutation_resolvers(self, params):
        return self._build(params, OperationKind.MUTATION)

    def build_subscription_resolvers(self, params):
        return self._build(params, OperationKind.SUBSCRIPTION)

    def classify(self, member: Member, return_type: Any) -> OperationKind:
        if member.kind in ("attribute", "property"):
            return OperationKind.QUERY
        if is_none_type(return_type):
            return OperationKind.MUTATION
        if is_async_iterable(return_type):
            return OperationKind.SUBSCRIPTION
        return OperationKind.QUERY

    def is_package_acceptable(self, member: Member, source_type: type, default_packages: Sequence[str]) -> bool:
        if self.base_packages:
            packages = self.base_packages
        elif default_packages:
            packages = tuple(default_packages)
        else:
            packages = (source_type.__module__,)
        return member.declaring_type is source_type or in_packages(member.declaring_type.__module__, packages)

    def _build(self, params: ResolverBuilderParams, kind: OperationKind) -> List[Resolver]:
        source_type = params.source_type
        if not inspect.isclass(source_type):
            return []
        resolvers = []
        for member in iter_members(source_type):
            if not self.accepts(member):
                continue
            if not self.is_package_acceptable(member, source_type, params.base_packages):
                continue
            descriptor = member_descriptor(member)
            if descriptor is None and not has_return_annotation(member):
                continue
            return_type = member_type(member)
            if descriptor is not None:
                _check_role(member, descriptor, return_type)
                member_kind = descriptor.kind
            else:
                member_kind = self.classify(member, return_type)
            if member_kind is not kind:
                continue
            if not params.inclusion_strategy.include_operation(member, return_type):
                continue
            resolvers.append(self._resolver(
                member, kind, params, return_type, descriptor,
                description=self.description_mapper(member),
                deprecation_reason=self.deprecation_reason_mapper(member),
            ))
        logger.debug(
            "Discovered public resolvers",
            source_type=source_type.__qualname__,
            kind=kind.value,
            count=len(resolvers),
        )
        return resolvers

    def _config_key(self) -> tuple:
        return super()._config_key() + (self.base_packages,)


class CompositeResolverBuilder:
    """Runs several builders and concatenates their results."""

    def __init__(self, *builders):
        self.builders = dedupe_builders(builders)

    def build_resolvers(self, kind: OperationKind, params: ResolverBuilderParams) -> List[Resolver]:
        resolvers: List[Resolver] = []
        for builder in self.builders:
            resolvers.extend(builder.build_resolvers(kind, params))
        return resolvers

    def build_query_resolvers(self, params):
        return self.build_resolvers(OperationKind.QUERY, params)

    def build_mutation_resolvers(self, params):
        return self.build_resolvers(OperationKind.MUTATION, params)

    def build_subscription_resolvers(self, params):
        return self.build_resolvers(OperationKind.SUBSCRIPTION, params)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CompositeResolverBuilder):
            return NotImplemented
        return self.builders == other.builders

    def __hash__(self) -> int:
        return hash(tuple(self.builders))


def dedupe_builders(builders) -> list:
    """Drop builders equal to one registered earlier, keeping registration order."""
    result: list = []
    for builder in builders:
        if builder not in result:
            result.append(builder)
    return result
