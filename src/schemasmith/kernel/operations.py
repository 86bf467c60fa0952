"""Operations: resolvers grouped by name, and the repository that discovers them."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from schemasmith.markers import OperationKind

from .discovery import DefaultInclusionStrategy, ResolverBuilderParams, dedupe_builders
from .errors import AmbiguousOverloadError, DuplicateOperationError
from .introspection import strip_annotated
from .resolvers import OperationArgument, Resolver

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OperationSource:
    """A host value (or type, for stateless sources) supplying operations."""
    source_type: type
    instance: Any = None
    builders: Tuple[Any, ...] = ()

    @classmethod
    def of_instance(cls, instance: Any, *builders) -> "OperationSource":
        return cls(type(instance), instance, tuple(builders))

    @classmethod
    def of_type(cls, source_type: type, *builders) -> "OperationSource":
        return cls(source_type, None, tuple(builders))


@dataclass(frozen=True)
class Operation:
    """One named operation; several resolvers make it an overloaded operation."""
    name: str
    kind: OperationKind
    resolvers: Tuple[Resolver, ...]
    arguments: Tuple[OperationArgument, ...]
    return_type: Any
    description: str = ""
    deprecation_reason: Optional[str] = None
    batched: bool = False
    complexity: Optional[int] = None

    @classmethod
    def merge(cls, name: str, kind: OperationKind, resolvers: Sequence[Resolver]) -> "Operation":
        """Merge same-named resolvers; their argument signatures must differ."""
        by_signature: Dict[frozenset, Resolver] = {}
        for resolver in resolvers:
            signature = resolver.argument_signature
            if signature in by_signature:
                raise DuplicateOperationError(name, kind.value, signature)
            by_signature[signature] = resolver

        return_types = {_type_key(r.return_type) for r in resolvers}
        if len(return_types) > 1:
            raise AmbiguousOverloadError(name, "overloads declare different return types")

        merged: Dict[str, OperationArgument] = {}
        for resolver in resolvers:
            for argument in resolver.arguments:
                existing = merged.get(argument.name)
                if existing is None:
                    merged[argument.name] = argument
                elif _type_key(existing.host_type) != _type_key(argument.host_type):
                    raise AmbiguousOverloadError(
                        name, f"argument {argument.name!r} has conflicting types across overloads"
                    )
        arguments = []
        for argument in merged.values():
            everywhere_required = all(
                argument.name in r.required_arguments for r in resolvers
            )
            if argument.required and not everywhere_required:
                # Present only in some overloads: optional on the merged operation.
                argument = OperationArgument(
                    name=argument.name,
                    host_type=argument.host_type,
                    parameter_name=argument.parameter_name,
                    description=argument.description,
                    default=argument.default,
                    nullable=True,
                )
            arguments.append(argument)

        first = resolvers[0]
        return cls(
            name=name,
            kind=kind,
            resolvers=tuple(resolvers),
            arguments=tuple(arguments),
            return_type=first.return_type,
            description=next((r.description for r in resolvers if r.description), ""),
            deprecation_reason=next((r.deprecation_reason for r in resolvers if r.deprecation_reason), None),
            batched=any(r.batched for r in resolvers),
            complexity=next((r.complexity for r in resolvers if r.complexity is not None), None),
        )

    @property
    def is_overloaded(self) -> bool:
        return len(self.resolvers) > 1

    def resolve_for(self, argument_names: Iterable[str]) -> Resolver:
        """Pick the overload that best matches the supplied argument names."""
        provided = frozenset(argument_names)
        if not self.is_overloaded:
            return self.resolvers[0]
        candidates = [
            r for r in self.resolvers
            if r.required_arguments <= provided <= r.argument_signature
        ]
        if not candidates:
            raise AmbiguousOverloadError(
                self.name, f"no overload accepts arguments ({', '.join(sorted(provided))})"
            )
        candidates.sort(key=lambda r: len(r.argument_signature))
        if len(candidates) > 1 and len(candidates[0].argument_signature) == len(candidates[1].argument_signature):
            raise AmbiguousOverloadError(
                self.name, f"several overloads accept arguments ({', '.join(sorted(provided))})"
            )
        return candidates[0]

    def ambiguous_overloads(self) -> List[Tuple[Resolver, Resolver]]:
        """Pairs of overloads that some argument set cannot tell apart."""
        pairs = []
        for i, left in enumerate(self.resolvers):
            for right in self.resolvers[i + 1:]:
                if (left.required_arguments == right.required_arguments
                        and len(left.argument_signature) == len(right.argument_signature)):
                    pairs.append((left, right))
        return pairs

    def invoke(self, source: Any, **arguments: Any) -> Any:
        return self.resolve_for(arguments).invoke(source, **arguments)


def _type_key(host_type: Any) -> Any:
    host_type, _ = strip_annotated(host_type)
    return host_type


def group_operations(resolvers: Iterable[Resolver], kind: OperationKind) -> List[Operation]:
    """Group resolvers by name into operations, sorted by name.

    The same member found by two builders counts once.
    """
    by_name: Dict[str, Dict[tuple, Resolver]] = defaultdict(dict)
    for resolver in resolvers:
        by_name[resolver.operation_name].setdefault(resolver.accessor.key, resolver)
    return [
        Operation.merge(name, kind, list(found.values()))
        for name, found in sorted(by_name.items())
    ]


class OperationRepository:
    """All operations of one build: root operations per kind plus nested (per-type) operations."""

    def __init__(self, sources: Sequence[OperationSource], builders: Sequence[Any],
                 nested_builders: Sequence[Any], inclusion_strategy=None,
                 base_packages: Tuple[str, ...] = ()):
        self.sources = list(sources)
        self.builders = dedupe_builders(builders)
        self.nested_builders = dedupe_builders(nested_builders)
        self.inclusion_strategy = inclusion_strategy or DefaultInclusionStrategy()
        self.base_packages = tuple(base_packages)
        self._operations: Dict[OperationKind, List[Operation]] = {
            kind: self._build_root(kind) for kind in OperationKind
        }
        self._nested: Dict[Any, List[Operation]] = {}
        logger.debug(
            "Operations discovered",
            queries=len(self._operations[OperationKind.QUERY]),
            mutations=len(self._operations[OperationKind.MUTATION]),
            subscriptions=len(self._operations[OperationKind.SUBSCRIPTION]),
        )

    def _params(self, source_type: type, instance: Any = None) -> ResolverBuilderParams:
        return ResolverBuilderParams(
            source_type=source_type,
            source_instance=instance,
            inclusion_strategy=self.inclusion_strategy,
            base_packages=self.base_packages,
        )

    def _build_root(self, kind: OperationKind) -> List[Operation]:
        resolvers: List[Resolver] = []
        for source in self.sources:
            params = self._params(source.source_type, source.instance)
            for builder in dedupe_builders(source.builders) or self.builders:
                resolvers.extend(builder.build_resolvers(kind, params))
        return group_operations(resolvers, kind)

    @property
    def query_operations(self) -> List[Operation]:
        return self._operations[OperationKind.QUERY]

    @property
    def mutation_operations(self) -> List[Operation]:
        return self._operations[OperationKind.MUTATION]

    @property
    def subscription_operations(self) -> List[Operation]:
        return self._operations[OperationKind.SUBSCRIPTION]

    def operations(self, kind: OperationKind) -> List[Operation]:
        return self._operations[kind]

    def nested_operations(self, host_type: type) -> List[Operation]:
        """Field operations of a domain type, invoked per request on the resolved value."""
        if host_type not in self._nested:
            params = self._params(host_type)
            resolvers: List[Resolver] = []
            for builder in self.nested_builders:
                resolvers.extend(builder.build_resolvers(OperationKind.QUERY, params))
            self._nested[host_type] = group_operations(resolvers, OperationKind.QUERY)
        return self._nested[host_type]

    def all_operations(self) -> List[Operation]:
        result = [op for kind in OperationKind for op in self._operations[kind]]
        for operations in self._nested.values():
            result.extend(operations)
        return result
