"""State shared between the build and the schema it produces."""

from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence

from .repository import TypeRepository


class InputConverter(Protocol):
    """Converts a raw input value before it reaches the value mapper."""

    def supports(self, host_type: Any) -> bool: ...

    def convert(self, value: Any, host_type: Any) -> Any: ...


class GlobalEnvironment:
    """Holds what outlives one build: the type repository, input converters and the value mapper."""

    def __init__(self, type_repository: Optional[TypeRepository] = None,
                 input_converters: Sequence[InputConverter] = ()):
        self.type_repository = type_repository or TypeRepository()
        self.input_converters: List[InputConverter] = list(input_converters)
        self.value_mapper: Any = None

    def converters_for(self, host_type: Any) -> List[InputConverter]:
        return [c for c in self.input_converters if c.supports(host_type)]
