"""Declarative operation markers.

Members of an operation source are marked as queries, mutations or
subscriptions with the decorators in this module. A marker is an explicit
``OperationDescriptor`` value attached to the underlying function (or to
the getter of a property), or placed in ``Annotated[...]`` metadata of a
class attribute for field-style queries::

    class BookService:
        @query(description="Find a book by its id")
        def book(self, id: ID) -> Book: ...

        @mutation
        def delete_book(self, id: ID) -> bool: ...

    class Book:
        title: Annotated[str, query(description="The title")]
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, NewType, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from schemasmith.kernel.errors import MalformedMarkerError

MARKER_ATTR = "__schemasmith_operation__"
IGNORE_ATTR = "__schemasmith_ignore__"
INTERFACE_ATTR = "__schemasmith_interface__"

ID = NewType("ID", str)


class OperationKind(str, Enum):
    """The root operation type an operation belongs to."""
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


class OperationDescriptor(BaseModel):
    """Explicit description of one marked member."""
    kind: OperationKind
    name: Optional[str] = None
    description: str = ""
    deprecation_reason: Optional[str] = None
    complexity: Optional[int] = None
    batched: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("explicit operation name must not be empty")
        return v

    @field_validator("complexity")
    @classmethod
    def validate_complexity(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError(f"complexity must be non-negative, got {v}")
        return v

    @model_validator(mode="after")
    def validate_batched(self):
        if self.batched and self.kind is not OperationKind.QUERY:
            raise ValueError("only queries can be batched")
        return self


class OperationMarker:
    """Decorator (and ``Annotated`` metadata) carrying an ``OperationDescriptor``."""

    def __init__(self, descriptor: OperationDescriptor):
        self.descriptor = descriptor

    def __call__(self, member):
        target = _underlying_function(member)
        existing = getattr(target, MARKER_ATTR, None)
        if existing is not None and existing.kind is not self.descriptor.kind:
            raise MalformedMarkerError(
                getattr(target, "__qualname__", repr(target)),
                f"already marked as {existing.kind.value}, cannot also be {self.descriptor.kind.value}",
            )
        setattr(target, MARKER_ATTR, self.descriptor)
        return member

    def __repr__(self) -> str:
        return f"OperationMarker({self.descriptor!r})"


def _underlying_function(member):
    if isinstance(member, property):
        return member.fget
    if isinstance(member, (staticmethod, classmethod)):
        return member.__func__
    return member


def _mark(kind: OperationKind, func: Optional[Callable], options: dict) -> Any:
    try:
        descriptor = OperationDescriptor(kind=kind, **options)
    except ValidationError as e:
        member = getattr(func, "__qualname__", kind.value) if func is not None else kind.value
        raise MalformedMarkerError(member, str(e.errors()[0]["msg"])) from e
    marker = OperationMarker(descriptor)
    if func is None:
        return marker
    return marker(func)


def query(func=None, /, *, name: Optional[str] = None, description: str = "",
          deprecation_reason: Optional[str] = None, complexity: Optional[int] = None,
          batched: bool = False):
    """Mark a method, property or annotated attribute as a query."""
    return _mark(OperationKind.QUERY, func, dict(
        name=name, description=description, deprecation_reason=deprecation_reason,
        complexity=complexity, batched=batched,
    ))


def mutation(func=None, /, *, name: Optional[str] = None, description: str = "",
             deprecation_reason: Optional[str] = None, complexity: Optional[int] = None):
    """Mark a method as a mutation."""
    return _mark(OperationKind.MUTATION, func, dict(
        name=name, description=description, deprecation_reason=deprecation_reason,
        complexity=complexity,
    ))


def subscription(func=None, /, *, name: Optional[str] = None, description: str = "",
                 deprecation_reason: Optional[str] = None, complexity: Optional[int] = None):
    """Mark a method returning an async iterable as a subscription."""
    return _mark(OperationKind.SUBSCRIPTION, func, dict(
        name=name, description=description, deprecation_reason=deprecation_reason,
        complexity=complexity,
    ))


def ignore(member):
    """Exclude a member, or every member returning a class, from discovery."""
    setattr(_underlying_function(member), IGNORE_ATTR, True)
    return member


def interface(cls=None, /, *, implementation_packages: tuple[str, ...] = ()):
    """Surface a class as a GraphQL interface.

    ``implementation_packages`` narrows where concrete implementations are
    looked up; by default the build's base packages are used.
    """
    def wrap(target):
        setattr(target, INTERFACE_ATTR, tuple(implementation_packages))
        return target
    if cls is None:
        return wrap
    return wrap(cls)


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class Arg:
    """``Annotated`` metadata describing an operation argument."""
    name: Optional[str] = None
    description: str = ""
    default: Any = NO_DEFAULT


def get_descriptor(member) -> Optional[OperationDescriptor]:
    """Return the descriptor attached to a function, property or marker."""
    if isinstance(member, OperationMarker):
        return member.descriptor
    if isinstance(member, OperationDescriptor):
        return member
    return getattr(_underlying_function(member), MARKER_ATTR, None)


def is_ignored(member) -> bool:
    target = _underlying_function(member)
    # Class-level flags are read from the class itself, never inherited.
    if isinstance(target, type):
        return bool(target.__dict__.get(IGNORE_ATTR, False))
    return bool(getattr(target, IGNORE_ATTR, False))


def interface_packages(cls) -> Optional[tuple[str, ...]]:
    """Implementation packages declared by ``@interface``, ``None`` if unmarked."""
    if not isinstance(cls, type):
        return None
    return cls.__dict__.get(INTERFACE_ATTR)
