"""Build-time configuration errors.

Every error raised while assembling a schema is a configuration error: it
signals a programming mistake in the operation sources or the generator
setup and is never retried.
"""

from typing import Any

from schemasmith.codes import ValidationCode


class SchemaConfigurationError(Exception):
    """Base exception for schema build errors."""
    code: ValidationCode = ValidationCode.MALFORMED_MARKER


class TypeNameCollisionError(SchemaConfigurationError):
    """Raised when a type name is reserved twice within one namespace."""
    code = ValidationCode.TYPE_NAME_COLLISION

    def __init__(self, name: str, namespace: str, existing: Any = None, incoming: Any = None):
        self.name = name
        self.namespace = namespace
        self.existing = existing
        self.incoming = incoming
        msg = f"Type name {name} is already in use in the {namespace} namespace"
        if existing is not None and incoming is not None:
            msg += f" (mapped from {_describe(existing)}, now requested for {_describe(incoming)})"
        super().__init__(msg)


class DuplicateOperationError(SchemaConfigurationError):
    """Raised when two resolvers share an operation name and argument signature."""
    code = ValidationCode.DUPLICATE_OPERATION

    def __init__(self, operation_name: str, kind: str, signature: frozenset[str]):
        self.operation_name = operation_name
        self.kind = kind
        self.signature = signature
        args = ", ".join(sorted(signature)) or "no arguments"
        super().__init__(
            f"Multiple {kind} resolvers named {operation_name} share the signature ({args})"
        )


class AmbiguousOverloadError(SchemaConfigurationError):
    """Raised when overloads of one operation cannot be told apart."""
    code = ValidationCode.AMBIGUOUS_OVERLOAD

    def __init__(self, operation_name: str, reason: str):
        self.operation_name = operation_name
        self.reason = reason
        super().__init__(f"Ambiguous overloads for operation {operation_name}: {reason}")


class MalformedMarkerError(SchemaConfigurationError):
    """Raised when member metadata is invalid for the role it is used in."""
    code = ValidationCode.MALFORMED_MARKER

    def __init__(self, member: str, reason: str):
        self.member = member
        self.reason = reason
        super().__init__(f"Invalid operation marker on {member}: {reason}")


class TypeMappingError(SchemaConfigurationError):
    """Raised when no registered type mapper accepts a host type."""
    code = ValidationCode.UNMAPPABLE_TYPE

    def __init__(self, host_type: Any, namespace: str, reason: str = ""):
        self.host_type = host_type
        self.namespace = namespace
        msg = f"No {namespace} type mapper supports {_describe(host_type)}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnresolvedTypeReferenceError(SchemaConfigurationError):
    """Raised when a type reference has no completed type behind it."""
    code = ValidationCode.UNRESOLVED_TYPE_REFERENCE

    def __init__(self, name: str, namespace: str):
        self.name = name
        self.namespace = namespace
        super().__init__(f"Type reference {name} ({namespace}) was never completed")


class UnreachableAbstractTypeError(SchemaConfigurationError):
    """Raised when an abstract type has no constructible implementation."""
    code = ValidationCode.UNREACHABLE_ABSTRACT_TYPE

    def __init__(self, host_type: Any):
        self.host_type = host_type
        super().__init__(f"Abstract type {_describe(host_type)} has no concrete implementations")


class ValueMapperConfigurationError(SchemaConfigurationError):
    """Raised when no validating adapter can be built for a host type."""
    code = ValidationCode.VALUE_MAPPER_CONFIGURATION

    def __init__(self, host_type: Any, reason: str):
        self.host_type = host_type
        self.reason = reason
        super().__init__(f"Cannot configure value conversion for {_describe(host_type)}: {reason}")


class SchemaValidationError(SchemaConfigurationError):
    """Raised when the validator rejects an assembled schema."""

    def __init__(self, report):
        self.report = report
        self.code = report.errors[0].code if report.errors else ValidationCode.MALFORMED_MARKER
        super().__init__("Schema validation failed:\n" + report.summary())


def _describe(host_type: Any) -> str:
    if isinstance(host_type, type):
        return f"{host_type.__module__}.{host_type.__qualname__}"
    return repr(host_type)
