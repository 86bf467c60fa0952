"""Type naming: the one place schema type names and discriminators come from."""

from __future__ import annotations

import re
import typing
from typing import Any

from .introspection import first_doc_paragraph, strip_annotated

_INVALID_NAME_CHARS = re.compile(r"[^_0-9A-Za-z]")


class TypeInfoGenerator:
    """Generates type names and descriptions for host types.

    Generic aliases are named by concatenating the origin and argument
    names, so ``Page[User]`` becomes ``PageUser``. The same names double
    as wire discriminators for abstract types.
    """

    def __init__(self, input_suffix: str = "Input"):
        self.input_suffix = input_suffix

    def generate_type_name(self, host_type: Any) -> str:
        host_type, _ = strip_annotated(host_type)
        origin = typing.get_origin(host_type)
        if origin is not None:
            parts = [self.generate_type_name(origin)]
            parts.extend(self.generate_type_name(arg) for arg in typing.get_args(host_type))
            return "".join(parts)
        name = getattr(host_type, "__name__", None) or str(host_type)
        return _INVALID_NAME_CHARS.sub("", name[:1].upper() + name[1:])

    def generate_input_type_name(self, host_type: Any) -> str:
        return self.generate_type_name(host_type) + self.input_suffix

    def generate_type_description(self, host_type: Any) -> str:
        host_type, _ = strip_annotated(host_type)
        return first_doc_paragraph(host_type) if isinstance(host_type, type) else ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(input_suffix={self.input_suffix!r})"
