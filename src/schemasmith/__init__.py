"""schemasmith: build GraphQL type systems from annotated Python classes."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("schemasmith")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
# Note: markers must be imported before the generator, which depends on them
from schemasmith.markers import ID, Arg, ignore, interface, mutation, query, subscription
from schemasmith.codes import ValidationCode
from schemasmith.config import GeneratorSettings, RelayMappingConfig
from schemasmith.contracts import ValidationIssue, ValidationReport
from schemasmith.generator import GeneratedSchema, SchemaGenerator
from schemasmith.kernel.errors import SchemaConfigurationError

__all__ = [
    "__version__",
    "ID",
    "Arg",
    "ignore",
    "interface",
    "mutation",
    "query",
    "subscription",
    "ValidationCode",
    "GeneratorSettings",
    "RelayMappingConfig",
    "ValidationIssue",
    "ValidationReport",
    "GeneratedSchema",
    "SchemaGenerator",
    "SchemaConfigurationError",
]
