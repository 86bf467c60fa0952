"""Test public API surface - ensure imports work correctly and no side effects.

This test verifies:
- schemasmith exposes the markers, the generator and the report models
- The root package does not leak kernel internals
- Importing the package does not configure logging or touch global state
"""

import types


def test_root_exports():
    import schemasmith

    expected = {
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
    }
    assert set(schemasmith.__all__) == expected
    for name in expected:
        assert hasattr(schemasmith, name), name


def test_markers_are_callables_not_modules():
    from schemasmith import mutation, query, subscription

    for marker in (query, mutation, subscription):
        assert callable(marker)
        assert not isinstance(marker, types.ModuleType)


def test_kernel_not_reexported():
    import schemasmith

    assert "TypeRepository" not in schemasmith.__all__
    assert "BuildContext" not in schemasmith.__all__


def test_errors_share_one_base():
    from schemasmith import SchemaConfigurationError
    from schemasmith.kernel import errors

    for name in (
        "TypeNameCollisionError",
        "DuplicateOperationError",
        "AmbiguousOverloadError",
        "MalformedMarkerError",
        "TypeMappingError",
        "UnresolvedTypeReferenceError",
        "UnreachableAbstractTypeError",
        "SchemaValidationError",
        "ValueMapperConfigurationError",
    ):
        assert issubclass(getattr(errors, name), SchemaConfigurationError), name


def test_export_module_is_importable_separately():
    from schemasmith.export import to_graphql_schema

    assert callable(to_graphql_schema)


def test_version_is_a_string():
    import schemasmith

    assert isinstance(schemasmith.__version__, str)
    assert schemasmith.__version__
