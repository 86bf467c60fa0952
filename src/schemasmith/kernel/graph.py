"""Graph type model: the target schema's named types, wrappers and references."""

from __future__ import annotations

import datetime
import decimal
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from schemasmith.markers import NO_DEFAULT


class Namespace(str, Enum):
    """Type name spaces; a name is unique within one, not across both."""
    OUTPUT = "output"
    INPUT = "input"


@dataclass(eq=False)
class GraphType:
    """A named type in the target schema."""
    name: str
    description: str = ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


def _identity(value: Any) -> Any:
    return value


@dataclass(eq=False, repr=False)
class ScalarType(GraphType):
    serialize: Callable[[Any], Any] = _identity
    parse_value: Callable[[Any], Any] = _identity


@dataclass(eq=False)
class EnumValue:
    name: str
    value: Any
    description: str = ""
    deprecation_reason: Optional[str] = None


@dataclass(eq=False, repr=False)
class EnumType(GraphType):
    values: Dict[str, EnumValue] = field(default_factory=dict)
    host_type: Any = None


@dataclass(eq=False)
class ArgumentDefinition:
    name: str
    type: Any  # input GraphType, wrapper or TypeReference
    description: str = ""
    default: Any = NO_DEFAULT
    host_type: Any = None
    parameter_name: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT


@dataclass(eq=False)
class FieldDefinition:
    name: str
    type: Any  # output GraphType, wrapper or TypeReference
    arguments: List[ArgumentDefinition] = field(default_factory=list)
    description: str = ""
    deprecation_reason: Optional[str] = None
    complexity: Optional[int] = None
    resolver: Optional[Callable[..., Any]] = None  # resolver(source, **arguments)
    operation: Any = None

    def resolve(self, source: Any, **arguments: Any) -> Any:
        if self.resolver is None:
            return getattr(source, self.name)
        return self.resolver(source, **arguments)


@dataclass(eq=False)
class InputFieldDefinition:
    name: str
    type: Any
    description: str = ""
    default: Any = NO_DEFAULT
    host_type: Any = None

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT


@dataclass(eq=False, repr=False)
class ObjectType(GraphType):
    fields: Dict[str, FieldDefinition] = field(default_factory=dict)
    interfaces: List[Any] = field(default_factory=list)
    host_type: Any = None


@dataclass(eq=False, repr=False)
class InterfaceType(GraphType):
    fields: Dict[str, FieldDefinition] = field(default_factory=dict)
    interfaces: List[Any] = field(default_factory=list)
    host_type: Any = None
    type_resolver: Optional[Callable[[Any], Optional[ObjectType]]] = None


@dataclass(eq=False, repr=False)
class UnionType(GraphType):
    members: List[Any] = field(default_factory=list)
    host_type: Any = None
    type_resolver: Optional[Callable[[Any], Optional[ObjectType]]] = None


@dataclass(eq=False, repr=False)
class InputObjectType(GraphType):
    fields: Dict[str, InputFieldDefinition] = field(default_factory=dict)
    host_type: Any = None


@dataclass(eq=False)
class NonNull:
    of_type: Any

    @property
    def name(self) -> str:
        return f"{type_name(self.of_type)}!"


@dataclass(eq=False)
class ListOf:
    of_type: Any

    @property
    def name(self) -> str:
        return f"[{type_name(self.of_type)}]"


@dataclass(frozen=True)
class TypeReference:
    """Placeholder for a named type that is still being assembled."""
    name: str
    namespace: Namespace = Namespace.OUTPUT


OUTPUT_KINDS = (ScalarType, EnumType, ObjectType, InterfaceType, UnionType)
INPUT_KINDS = (ScalarType, EnumType, InputObjectType)


def unwrap(graph_type: Any) -> Any:
    """Strip ``NonNull``/``ListOf`` wrappers."""
    while isinstance(graph_type, (NonNull, ListOf)):
        graph_type = graph_type.of_type
    return graph_type


def type_name(graph_type: Any) -> str:
    return graph_type.name


def namespaces_of(graph_type: GraphType) -> tuple[Namespace, ...]:
    result = []
    if isinstance(graph_type, OUTPUT_KINDS):
        result.append(Namespace.OUTPUT)
    if isinstance(graph_type, INPUT_KINDS):
        result.append(Namespace.INPUT)
    return tuple(result)


def _parse_datetime(value: Any) -> datetime.datetime:
    return value if isinstance(value, datetime.datetime) else datetime.datetime.fromisoformat(value)


def _parse_date(value: Any) -> datetime.date:
    return value if isinstance(value, datetime.date) else datetime.date.fromisoformat(value)


def _parse_time(value: Any) -> datetime.time:
    return value if isinstance(value, datetime.time) else datetime.time.fromisoformat(value)


def _isoformat(value: Any) -> str:
    return value.isoformat()


# Built-in scalars, shared across builds; they carry no per-build state.
INT = ScalarType("Int", "A signed 32-bit integer", serialize=int, parse_value=int)
FLOAT = ScalarType("Float", "A double precision floating point value", serialize=float, parse_value=float)
STRING = ScalarType("String", "A UTF-8 character sequence", serialize=str, parse_value=str)
BOOLEAN = ScalarType("Boolean", "true or false", serialize=bool, parse_value=bool)
ID = ScalarType("ID", "A unique identifier", serialize=str, parse_value=str)
DATETIME = ScalarType("DateTime", "An ISO-8601 date-time", serialize=_isoformat, parse_value=_parse_datetime)
DATE = ScalarType("Date", "An ISO-8601 calendar date", serialize=_isoformat, parse_value=_parse_date)
TIME = ScalarType("Time", "An ISO-8601 time of day", serialize=_isoformat, parse_value=_parse_time)
DECIMAL = ScalarType("Decimal", "An arbitrary precision decimal number", serialize=str, parse_value=decimal.Decimal)
UUID = ScalarType("UUID", "A universally unique identifier", serialize=str, parse_value=uuid.UUID)
JSON = ScalarType("JSON", "An arbitrary JSON value")

BUILT_IN_SCALAR_NAMES = frozenset({"Int", "Float", "String", "Boolean", "ID"})
