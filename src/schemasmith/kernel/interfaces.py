"""Interface mapping strategies: which host classes surface as GraphQL interfaces."""

from __future__ import annotations

from typing import Any, List, Tuple

from schemasmith.markers import interface_packages

from .introspection import concrete_subclasses, is_abstract_class


class InterfaceMappingStrategy:
    """Decides, per host class, whether it maps to an interface and what implements it."""

    def supports(self, host_type: Any) -> bool:
        raise NotImplementedError

    def implementations(self, host_type: type, base_packages: Tuple[str, ...] = ()) -> List[type]:
        packages = interface_packages(host_type) or tuple(base_packages)
        return concrete_subclasses(host_type, packages)

    def interfaces(self, host_type: type) -> List[type]:
        """Ancestors of ``host_type`` that surface as interfaces, nearest first."""
        return [base for base in host_type.__mro__[1:] if base is not object and self.supports(base)]


class AnnotatedInterfaceStrategy(InterfaceMappingStrategy):
    """Only classes decorated with ``@interface``."""

    def supports(self, host_type: Any) -> bool:
        return interface_packages(host_type) is not None


class AbstractInterfaceStrategy(InterfaceMappingStrategy):
    """Abstract classes, plus ``@interface``-decorated ones when ``mapped_by_marker`` is set."""

    def __init__(self, mapped_by_marker: bool = True):
        self.mapped_by_marker = mapped_by_marker

    def supports(self, host_type: Any) -> bool:
        if not isinstance(host_type, type):
            return False
        if self.mapped_by_marker and interface_packages(host_type) is not None:
            return True
        return is_abstract_class(host_type)
