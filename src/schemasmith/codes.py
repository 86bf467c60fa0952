"""Validation code constants for schema builds.

These constants prevent stringly-typed error codes and ensure
client code uses the correct validation codes.
"""

from enum import Enum


class ValidationCode(str, Enum):
    """Schema build error codes."""

    # Naming
    TYPE_NAME_COLLISION = "TYPE_NAME_COLLISION"
    DUPLICATE_TYPE_NAME = "DUPLICATE_TYPE_NAME"

    # Operations
    DUPLICATE_OPERATION = "DUPLICATE_OPERATION"
    AMBIGUOUS_OVERLOAD = "AMBIGUOUS_OVERLOAD"
    MALFORMED_MARKER = "MALFORMED_MARKER"
    MISSING_QUERY_ROOT = "MISSING_QUERY_ROOT"

    # Type graph
    UNMAPPABLE_TYPE = "UNMAPPABLE_TYPE"
    UNRESOLVED_TYPE_REFERENCE = "UNRESOLVED_TYPE_REFERENCE"
    UNREACHABLE_ABSTRACT_TYPE = "UNREACHABLE_ABSTRACT_TYPE"
    EMPTY_FIELD_SET = "EMPTY_FIELD_SET"
    MISSING_INTERFACE_FIELD = "MISSING_INTERFACE_FIELD"

    # Serialization
    VALUE_MAPPER_CONFIGURATION = "VALUE_MAPPER_CONFIGURATION"
