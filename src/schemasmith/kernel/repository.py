"""Type repository: the name-keyed arena of graph types."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterator, List, Optional, Set

import structlog

from .errors import TypeNameCollisionError, UnresolvedTypeReferenceError
from .graph import (
    ArgumentDefinition,
    GraphType,
    InputObjectType,
    InterfaceType,
    ListOf,
    Namespace,
    NonNull,
    ObjectType,
    TypeReference,
    UnionType,
    namespaces_of,
    unwrap,
)

logger = structlog.get_logger(__name__)


class TypeRepository:
    """Arena of graph types keyed by name, one map per namespace.

    A name mapped to ``None`` is reserved: its type is being assembled.
    Forward and cyclic references are ``TypeReference`` handles that are
    rewritten in one pass by ``resolve_type_references`` once every
    operation has been mapped.
    """

    def __init__(self):
        self._types: Dict[Namespace, Dict[str, Optional[GraphType]]] = {
            Namespace.OUTPUT: {},
            Namespace.INPUT: {},
        }
        self._object_types_by_host: Dict[Any, ObjectType] = {}
        self._implementations: Dict[str, Set[str]] = defaultdict(set)
        self.references_resolved = False

    def reserve(self, name: str, namespace: Namespace) -> None:
        arena = self._types[namespace]
        if name in arena:
            raise TypeNameCollisionError(name, namespace.value)
        arena[name] = None

    def is_known(self, name: str, namespace: Namespace) -> bool:
        return name in self._types[namespace]

    def is_complete(self, name: str, namespace: Namespace) -> bool:
        return self._types[namespace].get(name) is not None

    def get(self, name: str, namespace: Namespace = Namespace.OUTPUT) -> Optional[GraphType]:
        return self._types[namespace].get(name)

    def complete(self, graph_type: Any, namespace: Namespace) -> None:
        """Install a finished type under its (possibly reserved) name. References are never installed."""
        graph_type = unwrap(graph_type)
        if isinstance(graph_type, TypeReference):
            return
        current = self._types[namespace].get(graph_type.name)
        if current is not None and current is not graph_type:
            raise TypeNameCollisionError(graph_type.name, namespace.value)
        self._types[namespace][graph_type.name] = graph_type
        if isinstance(graph_type, ObjectType) and graph_type.host_type is not None:
            self._object_types_by_host.setdefault(graph_type.host_type, graph_type)

    def install_shared(self, graph_type: GraphType) -> GraphType:
        """Install a scalar or enum in every namespace it belongs to.

        An already-installed type of the same name wins, so pre-supplied
        scalars replace the built-in ones.
        """
        for namespace in namespaces_of(graph_type):
            existing = self._types[namespace].get(graph_type.name)
            if existing is not None:
                return existing
        for namespace in namespaces_of(graph_type):
            self._types[namespace][graph_type.name] = graph_type
        return graph_type

    def seed(self, known_types) -> None:
        """Pre-install externally supplied types."""
        for graph_type in known_types:
            for namespace in namespaces_of(graph_type):
                self.complete(graph_type, namespace)
                logger.debug("Seeded known type", type_name=graph_type.name, namespace=namespace.value)

    def register_implementation(self, interface_name: str, object_name: str) -> None:
        self._implementations[interface_name].add(object_name)

    def implementations(self, interface_name: str) -> List[ObjectType]:
        result = []
        for name in sorted(self._implementations.get(interface_name, ())):
            graph_type = self.get(name)
            if isinstance(graph_type, ObjectType):
                result.append(graph_type)
        return result

    def find_object_type(self, host_type: type) -> Optional[ObjectType]:
        """The object type mapped from ``host_type`` or its nearest mapped ancestor."""
        for klass in getattr(host_type, "__mro__", (host_type,)):
            graph_type = self._object_types_by_host.get(klass)
            if graph_type is not None:
                return graph_type
        return None

    def types(self, namespace: Namespace) -> Dict[str, GraphType]:
        return {name: t for name, t in self._types[namespace].items() if t is not None}

    def pending(self, namespace: Namespace) -> List[str]:
        return sorted(name for name, t in self._types[namespace].items() if t is None)

    def all_types(self) -> Iterator[GraphType]:
        seen: Set[int] = set()
        for arena in self._types.values():
            for graph_type in arena.values():
                if graph_type is not None and id(graph_type) not in seen:
                    seen.add(id(graph_type))
                    yield graph_type

    def resolve_type_references(self, extra_types=()) -> None:
        """Rewrite every ``TypeReference`` to its completed type.

        Types are visited as a flat list, never by following references,
        so the pass terminates regardless of cycle depth. Rewriting an
        already resolved slot is a no-op.
        """
        for namespace in Namespace:
            pending = self.pending(namespace)
            if pending:
                raise UnresolvedTypeReferenceError(pending[0], namespace.value)
        count = 0
        for graph_type in list(self.all_types()) + list(extra_types):
            count += self._resolve_type(graph_type)
        self.references_resolved = True
        logger.debug("Resolved type references", references=count)

    def _resolve_type(self, graph_type: GraphType) -> int:
        count = 0
        if isinstance(graph_type, (ObjectType, InterfaceType)):
            for definition in graph_type.fields.values():
                definition.type, n = self._resolve(definition.type)
                count += n
                for argument in definition.arguments:
                    count += self._resolve_argument(argument)
            resolved = []
            for interface in graph_type.interfaces:
                interface, n = self._resolve(interface)
                resolved.append(interface)
                count += n
            graph_type.interfaces = resolved
        elif isinstance(graph_type, UnionType):
            resolved = []
            for member in graph_type.members:
                member, n = self._resolve(member)
                resolved.append(member)
                count += n
            graph_type.members = resolved
        elif isinstance(graph_type, InputObjectType):
            for definition in graph_type.fields.values():
                definition.type, n = self._resolve(definition.type)
                count += n
        return count

    def _resolve_argument(self, argument: ArgumentDefinition) -> int:
        argument.type, n = self._resolve(argument.type)
        return n

    def _resolve(self, graph_type: Any) -> tuple[Any, int]:
        if isinstance(graph_type, TypeReference):
            resolved = self._types[graph_type.namespace].get(graph_type.name)
            if resolved is None:
                raise UnresolvedTypeReferenceError(graph_type.name, graph_type.namespace.value)
            return resolved, 1
        if isinstance(graph_type, (NonNull, ListOf)):
            graph_type.of_type, n = self._resolve(graph_type.of_type)
            return graph_type, n
        return graph_type, 0


def find_references(roots) -> List[TypeReference]:
    """Every ``TypeReference`` reachable from ``roots`` (used by the validator)."""
    found: List[TypeReference] = []
    for _, graph_type in walk(roots):
        if isinstance(graph_type, TypeReference):
            found.append(graph_type)
    return found


def walk(roots):
    """Yield ``(namespace, named_type)`` for every type reachable from ``roots``.

    References are reported but not followed.
    """
    seen: Set[int] = set()
    stack = [(Namespace.OUTPUT, root) for root in roots if root is not None]
    while stack:
        namespace, graph_type = stack.pop()
        graph_type = unwrap(graph_type)
        if id(graph_type) in seen:
            continue
        seen.add(id(graph_type))
        if isinstance(graph_type, InputObjectType):
            namespace = Namespace.INPUT
        yield namespace, graph_type
        if isinstance(graph_type, (ObjectType, InterfaceType)):
            for definition in graph_type.fields.values():
                stack.append((Namespace.OUTPUT, definition.type))
                for argument in definition.arguments:
                    stack.append((Namespace.INPUT, argument.type))
            stack.extend((Namespace.OUTPUT, i) for i in graph_type.interfaces)
        elif isinstance(graph_type, UnionType):
            stack.extend((Namespace.OUTPUT, m) for m in graph_type.members)
        elif isinstance(graph_type, InputObjectType):
            stack.extend((Namespace.INPUT, f.type) for f in graph_type.fields.values())
