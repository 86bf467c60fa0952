"""Host type and member introspection helpers.

Everything the build knows about the host object model goes through this
module: member enumeration over the MRO, return/parameter annotations and
the unwrapping of ``Annotated``, ``Optional``, collections and async
iterables.
"""

from __future__ import annotations

import abc
import collections.abc
import inspect
import types
import typing
from dataclasses import dataclass
from typing import Any, Iterator, Literal, Optional, Union

from .errors import MalformedMarkerError

MemberKind = Literal["method", "static", "property", "attribute"]

# Classes whose members never describe a host model.
_SKIPPED_MODULES = ("builtins", "abc", "typing", "pydantic.main", "pydantic._internal")

_LIST_ORIGINS = {
    list, set, frozenset, tuple,
    collections.abc.Sequence, collections.abc.MutableSequence,
    collections.abc.Set, collections.abc.MutableSet,
    collections.abc.Collection, collections.abc.Iterable,
}

_ASYNC_ITERABLE_ORIGINS = {
    collections.abc.AsyncIterator,
    collections.abc.AsyncIterable,
    collections.abc.AsyncGenerator,
}


@dataclass(frozen=True)
class Member:
    """A candidate operation member of a host class."""
    name: str
    kind: MemberKind
    declaring_type: type
    obj: Any = None  # function, staticmethod/classmethod, property or attribute default
    annotation: Any = None  # declared type for attributes

    @property
    def function(self):
        if self.kind == "property":
            return self.obj.fget
        if self.kind == "static":
            return self.obj.__func__
        if self.kind == "method":
            return self.obj
        return None

    @property
    def qualname(self) -> str:
        return f"{self.declaring_type.__qualname__}.{self.name}"

    @property
    def is_public(self) -> bool:
        return not self.name.startswith("_")


def iter_members(cls: type) -> Iterator[Member]:
    """Yield members of ``cls`` in MRO order; a name is reported once, by its most derived declaration."""
    seen: set[str] = set()
    for klass in cls.__mro__:
        if klass is object or in_packages(klass.__module__, _SKIPPED_MODULES):
            continue
        annotations = _own_annotations(klass)
        for name, annotation in annotations.items():
            if name in seen or _is_classvar(annotation):
                continue
            value = klass.__dict__.get(name)
            if isinstance(value, (property, staticmethod, classmethod)) or inspect.isfunction(value):
                continue
            seen.add(name)
            yield Member(name, "attribute", klass, value, annotation)
        for name, value in klass.__dict__.items():
            if name in seen:
                continue
            if isinstance(value, property):
                kind: MemberKind = "property"
            elif isinstance(value, (staticmethod, classmethod)):
                kind = "static"
            elif inspect.isfunction(value):
                kind = "method"
            else:
                continue
            seen.add(name)
            yield Member(name, kind, klass, value)


def _own_annotations(klass: type) -> dict[str, Any]:
    try:
        return inspect.get_annotations(klass, eval_str=True)
    except NameError as e:
        raise MalformedMarkerError(klass.__qualname__, f"unresolvable annotation ({e})") from e


def _is_classvar(annotation: Any) -> bool:
    annotation, _ = strip_annotated(annotation)
    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar


def function_hints(func) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func, include_extras=True)
    except NameError as e:
        raise MalformedMarkerError(func.__qualname__, f"unresolvable annotation ({e})") from e


def member_type(member: Member) -> Any:
    """The declared return (or attribute) type of a member."""
    if member.kind == "attribute":
        return member.annotation
    hints = function_hints(member.function)
    if "return" not in hints:
        raise MalformedMarkerError(member.qualname, "missing return annotation")
    return hints["return"]


def strip_annotated(tp: Any) -> tuple[Any, tuple]:
    if typing.get_origin(tp) is typing.Annotated:
        return tp.__origin__, tuple(tp.__metadata__)
    return tp, ()


def is_union(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin is Union or origin is types.UnionType


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """Split ``Optional[T]`` into ``(T, True)``; other types come back as ``(tp, False)``."""
    tp, _ = strip_annotated(tp)
    if is_union(tp):
        args = typing.get_args(tp)
        if type(None) in args:
            rest = tuple(a for a in args if a is not type(None))
            if len(rest) == 1:
                return rest[0], True
            return Union[rest], True
    return tp, False


def is_none_type(tp: Any) -> bool:
    return tp is None or tp is type(None)


def list_item_type(tp: Any) -> Optional[Any]:
    """Item type of a homogeneous collection annotation, ``None`` otherwise."""
    origin = typing.get_origin(tp)
    if origin not in _LIST_ORIGINS:
        return None
    args = typing.get_args(tp)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0]
        return None
    if len(args) != 1:
        return None
    return args[0]


def is_async_iterable(tp: Any) -> bool:
    tp, _ = strip_annotated(tp)
    return typing.get_origin(tp) in _ASYNC_ITERABLE_ORIGINS


def async_item_type(tp: Any) -> Any:
    tp, _ = strip_annotated(tp)
    args = typing.get_args(tp)
    return args[0] if args else Any


def is_new_type(tp: Any) -> bool:
    return hasattr(tp, "__supertype__")


def is_abstract_class(cls: Any) -> bool:
    """Abstract host classes: ABCs with unimplemented methods or direct ``abc.ABC`` subclasses."""
    if not isinstance(cls, type):
        return False
    return inspect.isabstract(cls) or abc.ABC in cls.__bases__


def in_packages(module: str, packages: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(p + ".") for p in packages if p)


def concrete_subclasses(cls: type, packages: tuple[str, ...] = ()) -> list[type]:
    """Instantiable subclasses of ``cls``, optionally limited to ``packages``; sorted by qualified name."""
    found: dict[type, None] = {}
    stack = list(cls.__subclasses__())
    while stack:
        sub = stack.pop()
        if sub in found:
            continue
        found[sub] = None
        stack.extend(sub.__subclasses__())
    result = [
        sub for sub in found
        if not is_abstract_class(sub) and (not packages or in_packages(sub.__module__, packages))
    ]
    return sorted(result, key=lambda t: (t.__module__, t.__qualname__))


def first_doc_paragraph(obj: Any) -> str:
    doc = obj.__dict__.get("__doc__") if isinstance(obj, type) else getattr(obj, "__doc__", None)
    if not doc:
        return ""
    doc = inspect.cleandoc(doc)
    # dataclasses fill in a signature-style docstring when none is written
    if isinstance(obj, type) and doc.startswith(f"{obj.__name__}("):
        return ""
    return doc.split("\n\n", 1)[0].strip()


def has_return_annotation(member: Member) -> bool:
    if member.kind == "attribute":
        return True
    return "return" in getattr(member.function, "__annotations__", {})
