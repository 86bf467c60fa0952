"""Schema validation: naming ledger during mapping, structural checks after assembly."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from schemasmith.codes import ValidationCode
from schemasmith.contracts import ValidationIssue, ValidationReport

from .errors import TypeNameCollisionError
from .graph import InputObjectType, InterfaceType, Namespace, ObjectType, namespaces_of
from .introspection import strip_annotated
from .repository import find_references, walk

logger = structlog.get_logger(__name__)


def _same_host(left: Any, right: Any) -> bool:
    left, _ = strip_annotated(left)
    right, _ = strip_annotated(right)
    return left is right or left == right


class Validator:
    """Tracks which host type claimed each type name, and validates the finished graph.

    ``check_output``/``check_input`` fail immediately when two different host
    types would map to the same name in one namespace. ``validate`` runs
    once, after assembly, and returns a report instead of raising.
    """

    def __init__(self, known_types: Iterable[Any] = ()):
        self._ledger: Dict[Namespace, Dict[str, Any]] = {Namespace.OUTPUT: {}, Namespace.INPUT: {}}
        for graph_type in known_types:
            host_type = getattr(graph_type, "host_type", None)
            if host_type is None:
                continue
            for namespace in namespaces_of(graph_type):
                self._ledger[namespace].setdefault(graph_type.name, host_type)

    def check_output(self, type_name: str, host_type: Any) -> None:
        self._check(type_name, host_type, Namespace.OUTPUT)

    def check_input(self, type_name: str, host_type: Any) -> None:
        self._check(type_name, host_type, Namespace.INPUT)

    def _check(self, type_name: str, host_type: Any, namespace: Namespace) -> None:
        existing = self._ledger[namespace].setdefault(type_name, host_type)
        if not _same_host(existing, host_type):
            raise TypeNameCollisionError(type_name, namespace.value, existing, host_type)

    def validate(self, roots: Iterable[Any], type_repository, operations: Iterable[Any] = (),
                 abstract_types: Optional[Mapping[type, frozenset]] = None) -> ValidationReport:
        roots = [r for r in roots if r is not None]
        graph_roots = roots + list(type_repository.all_types())
        issues: List[ValidationIssue] = []
        issues.extend(self._duplicate_names(graph_roots))
        issues.extend(self._unresolved_references(graph_roots))
        issues.extend(self._structure(graph_roots))
        issues.extend(self._overloads(operations))
        issues.extend(self._abstract_types(abstract_types or {}))
        if not any(r.name == "Query" for r in roots):
            issues.append(ValidationIssue(
                code=ValidationCode.MISSING_QUERY_ROOT,
                message="No query operations were discovered",
            ))
        report = ValidationReport.from_issues(issues)
        logger.debug("Validated schema", ok=report.ok, errors=len(report.errors))
        return report

    def _duplicate_names(self, roots) -> List[ValidationIssue]:
        seen: Dict[tuple, set] = defaultdict(set)
        for namespace, graph_type in walk(roots):
            name = getattr(graph_type, "name", None)
            if name is None or not hasattr(graph_type, "description"):
                continue
            seen[(namespace, name)].add(id(graph_type))
        return [
            ValidationIssue(
                code=ValidationCode.DUPLICATE_TYPE_NAME,
                message=f"{len(ids)} distinct {namespace.value} types are named {name}",
                type_name=name,
                namespace=namespace.value,
            )
            for (namespace, name), ids in sorted(seen.items()) if len(ids) > 1
        ]

    def _unresolved_references(self, roots) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                code=ValidationCode.UNRESOLVED_TYPE_REFERENCE,
                message=f"Type reference {ref.name} was never resolved",
                type_name=ref.name,
                namespace=ref.namespace.value,
            )
            for ref in {(r.name, r.namespace): r for r in find_references(roots)}.values()
        ]

    def _structure(self, roots) -> List[ValidationIssue]:
        issues = []
        for _, graph_type in walk(roots):
            if not isinstance(graph_type, (ObjectType, InterfaceType, InputObjectType)):
                continue
            if not graph_type.fields:
                issues.append(ValidationIssue(
                    code=ValidationCode.EMPTY_FIELD_SET,
                    message=f"{graph_type.name} defines no fields",
                    type_name=graph_type.name,
                ))
            if isinstance(graph_type, InputObjectType):
                continue
            for interface in graph_type.interfaces:
                missing = sorted(set(getattr(interface, "fields", {})) - set(graph_type.fields))
                if missing:
                    issues.append(ValidationIssue(
                        code=ValidationCode.MISSING_INTERFACE_FIELD,
                        message=f"{graph_type.name} implements {interface.name} without {', '.join(missing)}",
                        type_name=graph_type.name,
                    ))
        return issues

    def _overloads(self, operations) -> List[ValidationIssue]:
        issues = []
        for operation in operations:
            for left, right in operation.ambiguous_overloads():
                issues.append(ValidationIssue(
                    code=ValidationCode.AMBIGUOUS_OVERLOAD,
                    message=(
                        f"Overloads of {operation.name} cannot be told apart: "
                        f"({', '.join(sorted(left.argument_signature))}) vs "
                        f"({', '.join(sorted(right.argument_signature))})"
                    ),
                    type_name=operation.name,
                ))
        return issues

    def _abstract_types(self, abstract_types: Mapping[type, frozenset]) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                code=ValidationCode.UNREACHABLE_ABSTRACT_TYPE,
                message=f"Abstract type {host_type.__qualname__} has no concrete implementations",
                type_name=host_type.__qualname__,
            )
            for host_type, implementations in abstract_types.items() if not implementations
        ]
