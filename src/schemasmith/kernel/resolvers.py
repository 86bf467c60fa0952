"""Resolver descriptors and the accessors that invoke host members."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from schemasmith.markers import NO_DEFAULT, OperationKind


class MethodInvoker:
    """Calls a method on the source value handed over at call time (per-request dispatch)."""
    needs_source = True

    def __init__(self, func, declaring_type: type):
        self.func = func
        self.declaring_type = declaring_type

    @property
    def key(self) -> tuple:
        return (None, self.declaring_type, self.func.__name__)

    def __call__(self, source: Any, **arguments: Any) -> Any:
        return self.func(source, **arguments)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.declaring_type.__qualname__}.{self.func.__name__})"


class SingletonMethodInvoker(MethodInvoker):
    """Calls a method on one bound operation-source instance (singleton dispatch)."""
    needs_source = False

    def __init__(self, instance: Any, func, declaring_type: type):
        super().__init__(func, declaring_type)
        self.instance = instance

    @property
    def key(self) -> tuple:
        return (id(self.instance), self.declaring_type, self.func.__name__)

    def __call__(self, source: Any, **arguments: Any) -> Any:
        return self.func(self.instance, **arguments)


class StaticMethodInvoker:
    """Calls a static or class method; no instance is involved."""
    needs_source = False

    def __init__(self, source_type: type, name: str, declaring_type: type):
        self.source_type = source_type
        self.name = name
        self.declaring_type = declaring_type

    @property
    def key(self) -> tuple:
        return (None, self.declaring_type, self.name)

    def __call__(self, source: Any, **arguments: Any) -> Any:
        return getattr(self.source_type, self.name)(**arguments)

    def __repr__(self) -> str:
        return f"StaticMethodInvoker({self.declaring_type.__qualname__}.{self.name})"


class FieldAccessor:
    """Reads an attribute or property, from a bound instance or from the source value."""

    def __init__(self, name: str, declaring_type: type, instance: Any = None):
        self.name = name
        self.declaring_type = declaring_type
        self.instance = instance

    @property
    def needs_source(self) -> bool:
        return self.instance is None

    @property
    def key(self) -> tuple:
        return (id(self.instance) if self.instance is not None else None, self.declaring_type, self.name)

    def __call__(self, source: Any, **arguments: Any) -> Any:
        target = self.instance if self.instance is not None else source
        return getattr(target, self.name)

    def __repr__(self) -> str:
        return f"FieldAccessor({self.declaring_type.__qualname__}.{self.name})"


@dataclass(frozen=True)
class OperationArgument:
    """One argument of a resolver."""
    name: str
    host_type: Any
    parameter_name: str
    description: str = ""
    default: Any = NO_DEFAULT
    nullable: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    @property
    def required(self) -> bool:
        return not self.has_default and not self.nullable


@dataclass(frozen=True)
class Resolver:
    """Immutable descriptor of one discovered operation member."""
    operation_name: str
    description: str
    deprecation_reason: Optional[str]
    batched: bool
    accessor: Any
    return_type: Any
    arguments: Tuple[OperationArgument, ...] = ()
    complexity: Optional[int] = None
    kind: OperationKind = OperationKind.QUERY
    declaring_type: Optional[type] = field(default=None, compare=False)
    source_type: Optional[type] = field(default=None, compare=False)

    @property
    def argument_signature(self) -> frozenset[str]:
        return frozenset(a.name for a in self.arguments)

    @property
    def required_arguments(self) -> frozenset[str]:
        return frozenset(a.name for a in self.arguments if a.required)

    @property
    def needs_source(self) -> bool:
        return self.accessor.needs_source

    def invoke(self, source: Any, **arguments: Any) -> Any:
        """Call the underlying member with arguments keyed by their schema names."""
        by_name = {a.name: a for a in self.arguments}
        call_args = {}
        for name, value in arguments.items():
            argument = by_name.get(name)
            if argument is None:
                raise TypeError(f"{self.operation_name} got an unexpected argument {name!r}")
            call_args[argument.parameter_name] = value
        return self.accessor(source, **call_args)
