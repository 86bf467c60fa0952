"""Tests for generator settings models."""

import pytest
from pydantic import ValidationError

from schemasmith.config import GeneratorSettings, RelayMappingConfig


def test_defaults():
    settings = GeneratorSettings()
    assert settings.base_packages == ()
    assert settings.type_metadata_field == "_type_"
    assert settings.input_type_suffix == "Input"
    assert settings.relay == RelayMappingConfig()
    assert settings.relay.node_query_name == "node"


def test_base_packages_normalised():
    settings = GeneratorSettings(base_packages=[" acme.users ", "", "acme.users", "acme.billing"])
    assert settings.base_packages == ("acme.users", "acme.billing")


@pytest.mark.parametrize("field", ["", "__typename"])
def test_invalid_type_metadata_field_rejected(field):
    with pytest.raises(ValidationError, match="type_metadata_field"):
        GeneratorSettings(type_metadata_field=field)


def test_unknown_keys_rejected():
    with pytest.raises(ValidationError):
        GeneratorSettings(base_package="acme")
    with pytest.raises(ValidationError):
        RelayMappingConfig(node_name="node")


def test_settings_are_frozen():
    settings = GeneratorSettings()
    with pytest.raises(ValidationError):
        settings.input_type_suffix = "In"


def test_from_json_bytes():
    settings = GeneratorSettings.from_json_bytes(
        b'{"base_packages": ["acme"], "type_metadata_field": "kind", '
        b'"relay": {"infer_node_interface": false}}'
    )
    assert settings.base_packages == ("acme",)
    assert settings.type_metadata_field == "kind"
    assert settings.relay.infer_node_interface is False
    assert settings.relay.node_query_name == "node"
